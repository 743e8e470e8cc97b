from .auth import User, SessionToken
from .inventory import Counter, Product
from .sales import Sale
from .timekeeping import TimeSession
from .finance import Investment, Debt, CashMovement, Entry, UnplannedExpense, MonthlySummary

# Public collection names (as clients subscribe to them) -> model
COLLECTIONS = {
    model.__collection_name__: model
    for model in (
        User,
        Counter,
        Product,
        Sale,
        TimeSession,
        Investment,
        Debt,
        CashMovement,
        Entry,
        UnplannedExpense,
        MonthlySummary,
    )
}

__all__ = [
    'User', 'SessionToken',
    'Counter', 'Product',
    'Sale',
    'TimeSession',
    'Investment', 'Debt', 'CashMovement', 'Entry', 'UnplannedExpense', 'MonthlySummary',
    'COLLECTIONS',
]
