# Overview: Aggregations for dashboards and reports; pure functions plus thin DB-backed wrappers.

"""
Reporting Service

The aggregation functions take plain iterables of records (ORM objects or
dicts with the same keys) and have no side effects, so they can be
recomputed whenever a collection changes. The DB-backed wrappers at the
bottom load the records and call them.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Iterable

from ..extensions import db
from ..models import (
    CashMovement,
    Debt,
    Entry,
    Investment,
    MonthlySummary,
    Product,
    Sale,
    UnplannedExpense,
    User,
)
from ..models.finance import DEBT_FIXED, MOVEMENT_IN, MOVEMENT_OUT
from bizledger.time_utils import utcnow
from .auth_service import require_admin

logger = logging.getLogger("bizledger.reports")

# Chart colors for the investment distribution, in assignment order
CHART_COLORS = (
    "rgba(54, 162, 235, 0.8)",
    "rgba(255, 99, 132, 0.8)",
    "rgba(75, 192, 192, 0.8)",
    "rgba(255, 206, 86, 0.8)",
    "rgba(153, 102, 255, 0.8)",
    "rgba(255, 159, 64, 0.8)",
    "rgba(199, 199, 199, 0.8)",
)


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _get(record: Any, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _amount(record: Any, field: str = "amount") -> float:
    return float(_get(record, field) or 0)


def _as_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


# ---------------------------------------------------------------------------
# Investments


def total_investment(investments: Iterable) -> float:
    return sum(_amount(i) for i in investments)


def user_contribution(investments: Iterable, user_id: int) -> float:
    return sum(_amount(i) for i in investments if _get(i, "user_id") == user_id)


def user_investment_percentage(investments: Iterable, user_id: int) -> float:
    """Share of the total (0-100). 0 when nothing has been invested."""
    investments = list(investments)
    total = total_investment(investments)
    if total <= 0:
        return 0.0
    return user_contribution(investments, user_id) / total * 100


def investment_distribution(investments: Iterable) -> list[dict]:
    """
    Per-partner totals in first-seen order, with percentage of the total and
    a chart color (palette cycles).
    """
    investments = list(investments)
    totals: "OrderedDict[Any, dict]" = OrderedDict()
    for inv in investments:
        uid = _get(inv, "user_id")
        if uid not in totals:
            totals[uid] = {"user_id": uid, "name": _get(inv, "user_name"), "amount": 0.0}
        totals[uid]["amount"] += _amount(inv)

    total = total_investment(investments)
    rows = []
    for index, row in enumerate(totals.values()):
        row["percentage"] = row["amount"] / total * 100 if total > 0 else 0.0
        row["color"] = CHART_COLORS[index % len(CHART_COLORS)]
        rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# Cash


def cash_totals(movements: Iterable) -> dict:
    cash_in = 0.0
    cash_out = 0.0
    for m in movements:
        kind = _get(m, "movement_type")
        if kind == MOVEMENT_IN:
            cash_in += _amount(m)
        elif kind == MOVEMENT_OUT:
            cash_out += _amount(m)
    return {"cash_in": cash_in, "cash_out": cash_out, "balance": cash_in - cash_out}


def cash_balance(movements: Iterable, paid_debts: Iterable | None = None, unplanned_expenses: Iterable | None = None) -> float:
    """
    entrada - saida, optionally minus paid debts and/or unplanned expenses
    (the cash page and the overview page subtract different things).
    """
    balance = cash_totals(movements)["balance"]
    if paid_debts is not None:
        balance -= sum(_amount(d) for d in paid_debts if _get(d, "paid"))
    if unplanned_expenses is not None:
        balance -= sum(_amount(e) for e in unplanned_expenses)
    return balance


# ---------------------------------------------------------------------------
# Months


def month_key(value) -> str:
    d = _as_date(value)
    return f"{d.year:04d}-{d.month:02d}"


def _add_months(year: int, month: int, count: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


def month_range(start, end) -> list[str]:
    """Inclusive list of month keys from start's month to end's month."""
    start_d, end_d = _as_date(start), _as_date(end)
    if start_d is None or end_d is None or start_d > end_d:
        return []
    keys = []
    year, month = start_d.year, start_d.month
    while (year, month) <= (end_d.year, end_d.month):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = _add_months(year, month, 1)
    return keys


def group_by_month(records: Iterable, date_field: str = "date", amount_field: str = "amount") -> dict[str, float]:
    grouped: dict[str, float] = {}
    for record in records:
        when = _get(record, date_field)
        if when is None:
            continue
        key = month_key(when)
        grouped[key] = grouped.get(key, 0.0) + _amount(record, amount_field)
    return dict(sorted(grouped.items()))


def debt_occurrences(debt) -> list[tuple[str, float]]:
    """(month_key, amount) per month the debt falls due; FIXED debts repeat monthly."""
    due = _as_date(_get(debt, "due_date"))
    if due is None:
        return []
    months = 1
    if _get(debt, "debt_type") == DEBT_FIXED:
        months = max(int(_get(debt, "duration_months") or 1), 1)
    occurrences = []
    for offset in range(months):
        year, month = _add_months(due.year, due.month, offset)
        occurrences.append((f"{year:04d}-{month:02d}", _amount(debt)))
    return occurrences


def monthly_series(
    now=None,
    *,
    sales: Iterable = (),
    entries: Iterable = (),
    investments: Iterable = (),
    cash_movements: Iterable = (),
    debts: Iterable = (),
    unplanned_expenses: Iterable = (),
) -> dict:
    """
    Bar-chart series bucketed by calendar month.

    Months run from the earliest record through the current month, or
    further when debts fall due later. Every series has one value per month.
    """
    now = _as_date(now or utcnow())
    cash_movements = list(cash_movements)

    buckets = {
        "sales": group_by_month(sales, "sold_at", "total_price"),
        "entries": group_by_month(entries),
        "investments": group_by_month(investments),
        "cash_in": group_by_month(m for m in cash_movements if _get(m, "movement_type") == MOVEMENT_IN),
        "cash_out": group_by_month(m for m in cash_movements if _get(m, "movement_type") == MOVEMENT_OUT),
        "unplanned_expenses": group_by_month(unplanned_expenses),
    }
    debt_bucket: dict[str, float] = {}
    for debt in debts:
        for key, amount in debt_occurrences(debt):
            debt_bucket[key] = debt_bucket.get(key, 0.0) + amount
    buckets["debts"] = debt_bucket

    keys = [k for bucket in buckets.values() for k in bucket]
    if not keys:
        return {"months": [], "series": {name: [] for name in buckets}}

    first = min(keys)
    last = max(max(keys), month_key(now))
    months = month_range(f"{first}-01", f"{last}-01")

    return {
        "months": months,
        "series": {name: [bucket.get(m, 0.0) for m in months] for name, bucket in buckets.items()},
    }


# ---------------------------------------------------------------------------
# Products


def total_product_value(products: Iterable) -> float:
    """Sum of sale prices across the catalog (one unit of each product)."""
    return sum(_amount(p, "sale_price") for p in products)


def inventory_value(products: Iterable) -> float:
    """Stock on hand valued at sale price; negative stock counts as zero."""
    return sum(_amount(p, "sale_price") * max(int(_get(p, "quantity") or 0), 0) for p in products)


# ---------------------------------------------------------------------------
# DB-backed reports

ADMIN_CARDS = [
    {"title": "Gerenciar Usuários", "path": "/admin-users"},
]

PARTNER_CARDS = [
    {"title": "Registrar Venda", "path": "/register-sale"},
    {"title": "Registrar Investimento", "path": "/investments"},
    {"title": "Controle de Horas", "path": "/time-tracker"},
    {"title": "Registrar Dívida", "path": "/register-debt"},
    {"title": "Cadastro de Produtos", "path": "/register-product"},
    {"title": "Visualizar Dados", "path": "/data"},
    {"title": "Caixa", "path": "/cash-control"},
]


def dashboard(user: User) -> dict:
    investments = db.session.query(Investment).all()
    payload = {
        "greeting": "Administrador" if user.is_admin else user.display_name,
        "is_admin": bool(user.is_admin),
        "total_investment": total_investment(investments),
        "cards": ADMIN_CARDS if user.is_admin else PARTNER_CARDS,
    }
    if not user.is_admin:
        payload["user_contribution"] = user_contribution(investments, user.id)
        payload["user_percentage"] = user_investment_percentage(investments, user.id)
    return payload


def product_value_report() -> dict:
    products = db.session.query(Product).all()
    return {
        "count": len(products),
        "total_product_value": total_product_value(products),
        "inventory_value": inventory_value(products),
    }


def investments_report() -> dict:
    investments = db.session.query(Investment).all()
    return {
        "total": total_investment(investments),
        "distribution": investment_distribution(investments),
    }


def cash_flow_report(now=None) -> dict:
    now = now or utcnow()
    movements = db.session.query(CashMovement).all()
    debts = db.session.query(Debt).all()
    unplanned = db.session.query(UnplannedExpense).all()
    paid = [d for d in debts if d.paid]

    current = month_key(now)
    current_debts = [d for d in debts if month_key(d.due_date) == current]

    return {
        **cash_totals(movements),
        "paid_debts_total": sum(d.amount for d in paid),
        "unplanned_expenses_total": sum(e.amount for e in unplanned),
        "balance_after_debts": cash_balance(movements, paid_debts=paid),
        "balance_after_expenses": cash_balance(movements, paid_debts=paid, unplanned_expenses=unplanned),
        "current_month": {
            "month": current,
            "paid_total": sum(d.amount for d in current_debts if d.paid),
            "unpaid_total": sum(d.amount for d in current_debts if not d.paid),
        },
        "monthly": monthly_series(
            now,
            sales=db.session.query(Sale).all(),
            entries=db.session.query(Entry).all(),
            investments=db.session.query(Investment).all(),
            cash_movements=movements,
            debts=debts,
            unplanned_expenses=unplanned,
        ),
    }


def _in_month(query, column, year: int, month: int):
    start = datetime(year, month, 1)
    next_year, next_month = _add_months(year, month, 1)
    end = datetime(next_year, next_month, 1)
    return query.filter(column >= start, column < end)


def close_month(actor: User, year: int, month: int) -> MonthlySummary:
    """
    Freeze the month's totals into monthly_summaries (re-closing overwrites).
    """
    require_admin(actor)
    if not (1 <= int(month) <= 12):
        raise ReportError("month must be between 1 and 12")
    year, month = int(year), int(month)

    sales = _in_month(db.session.query(Sale), Sale.sold_at, year, month).all()
    entries = _in_month(db.session.query(Entry), Entry.date, year, month).all()
    investments = _in_month(db.session.query(Investment), Investment.date, year, month).all()
    movements = _in_month(db.session.query(CashMovement), CashMovement.date, year, month).all()
    unplanned = _in_month(db.session.query(UnplannedExpense), UnplannedExpense.date, year, month).all()

    key = f"{year:04d}-{month:02d}"
    paid_debts = [
        d for d in db.session.query(Debt).filter(Debt.paid.is_(True)).all()
        if any(k == key for k, _ in debt_occurrences(d))
    ]

    totals = cash_totals(movements)
    summary = db.session.query(MonthlySummary).filter_by(year=year, month=month).first()
    if summary is None:
        summary = MonthlySummary(year=year, month=month)
        db.session.add(summary)

    summary.total_sales = sum(s.total_price for s in sales)
    summary.sales_count = len(sales)
    summary.total_entries = sum(e.amount for e in entries)
    summary.total_investments = total_investment(investments)
    summary.total_cash_in = totals["cash_in"]
    summary.total_cash_out = totals["cash_out"]
    summary.total_debts_paid = sum(d.amount for d in paid_debts)
    summary.total_unplanned_expenses = sum(e.amount for e in unplanned)
    summary.balance = cash_balance(movements, paid_debts=paid_debts, unplanned_expenses=unplanned)
    summary.generated_at = utcnow()
    summary.generated_by_user_id = actor.id

    db.session.commit()
    logger.info("Month %s closed by %s (balance %.2f)", key, actor.username, summary.balance)
    return summary


def list_monthly_summaries() -> list[MonthlySummary]:
    return (
        db.session.query(MonthlySummary)
        .order_by(MonthlySummary.year.desc(), MonthlySummary.month.desc())
        .all()
    )
