from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from bizledger.time_utils import to_utc_z, to_iso_date

DEBT_SINGLE = "SINGLE"
DEBT_FIXED = "FIXED"
DEBT_TYPES = (DEBT_SINGLE, DEBT_FIXED)

MOVEMENT_IN = "entrada"
MOVEMENT_OUT = "saida"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)

SOURCE_MANUAL = "manual"
SOURCE_SALE = "sale"
SOURCE_DEBT_PAYMENT = "debt_payment"
MOVEMENT_SOURCES = (SOURCE_MANUAL, SOURCE_SALE, SOURCE_DEBT_PAYMENT)


class Investment(db.Model):
    """
    Partner contribution.

    WHY: Ownership percentages are computed from investments. Invested
    (unpaid) work time counts as a contribution, so completed unpaid time
    sessions own exactly one Investment through session_id.
    """
    __tablename__ = "investments"
    __collection_name__ = "investments"
    __table_args__ = (
        db.UniqueConstraint("session_id", name="uq_investments_session"),
        db.Index("ix_investments_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Display-name snapshot at write time
    user_name = db.Column(db.String(128), nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False)

    is_time_investment = db.Column(db.Boolean, nullable=False, default=False)
    session_id = db.Column(db.Integer, db.ForeignKey("time_sessions.id", ondelete="CASCADE"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "date": to_utc_z(self.date),
            "is_time_investment": self.is_time_investment,
            "session_id": self.session_id,
        }


class Debt(db.Model):
    """
    Business liability.

    SINGLE debts fall due once on due_date. FIXED debts repeat monthly for
    duration_months starting at due_date (rent, installments).
    """
    __tablename__ = "debts"
    __collection_name__ = "debts"
    __table_args__ = (
        db.CheckConstraint("debt_type IN ('SINGLE', 'FIXED')", name="ck_debts_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)

    debt_type = db.Column(db.String(16), nullable=False, default=DEBT_SINGLE)
    due_date = db.Column(db.Date, nullable=False, index=True)
    duration_months = db.Column(db.Integer, nullable=True)

    paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "debt_type": self.debt_type,
            "due_date": to_iso_date(self.due_date),
            "duration_months": self.duration_months,
            "paid": self.paid,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "user_id": self.user_id,
            "user_name": self.user_name,
        }


class CashMovement(db.Model):
    """Manual cash-box movement: money in (entrada) or out (saida)."""
    __tablename__ = "cash_movements"
    __collection_name__ = "cashMovements"
    __table_args__ = (
        db.CheckConstraint("movement_type IN ('entrada', 'saida')", name="ck_cash_movements_type"),
        db.Index("ix_cash_movements_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    movement_type = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=True)

    source = db.Column(db.String(32), nullable=False, default=SOURCE_MANUAL)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "movement_type": self.movement_type,
            "amount": self.amount,
            "description": self.description,
            "date": to_utc_z(self.date),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "source": self.source,
        }


class _LedgerLine:
    """Columns shared by entries and unplanned expenses."""

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    user_name = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @declared_attr
    def user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "date": to_utc_z(self.date),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "created_at": to_utc_z(self.created_at),
        }


class Entry(_LedgerLine, db.Model):
    """Revenue recorded outside the point of sale."""
    __tablename__ = "entries"
    __collection_name__ = "entries"


class UnplannedExpense(_LedgerLine, db.Model):
    """One-off expense that was not planned as a debt."""
    __tablename__ = "unplanned_expenses"
    __collection_name__ = "unplannedExpenses"


class MonthlySummary(db.Model):
    """
    Closed-month snapshot of the aggregation layer.

    WHY: Monthly numbers are recomputed from raw records on every read;
    closing a month freezes them so later edits to old records are visible
    as a difference instead of silently rewriting history.
    """
    __tablename__ = "monthly_summaries"
    __collection_name__ = "monthlySummaries"
    __table_args__ = (
        db.UniqueConstraint("year", "month", name="uq_monthly_summaries_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)

    total_sales = db.Column(db.Float, nullable=False, default=0.0)
    sales_count = db.Column(db.Integer, nullable=False, default=0)
    total_entries = db.Column(db.Float, nullable=False, default=0.0)
    total_investments = db.Column(db.Float, nullable=False, default=0.0)
    total_cash_in = db.Column(db.Float, nullable=False, default=0.0)
    total_cash_out = db.Column(db.Float, nullable=False, default=0.0)
    total_debts_paid = db.Column(db.Float, nullable=False, default=0.0)
    total_unplanned_expenses = db.Column(db.Float, nullable=False, default=0.0)
    balance = db.Column(db.Float, nullable=False, default=0.0)

    generated_at = db.Column(db.DateTime(timezone=True), nullable=False)
    generated_by_user_id = db.Column(db.Integer, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "year": self.year,
            "month": self.month,
            "total_sales": self.total_sales,
            "sales_count": self.sales_count,
            "total_entries": self.total_entries,
            "total_investments": self.total_investments,
            "total_cash_in": self.total_cash_in,
            "total_cash_out": self.total_cash_out,
            "total_debts_paid": self.total_debts_paid,
            "total_unplanned_expenses": self.total_unplanned_expenses,
            "balance": self.balance,
            "generated_at": to_utc_z(self.generated_at),
            "generated_by_user_id": self.generated_by_user_id,
        }
