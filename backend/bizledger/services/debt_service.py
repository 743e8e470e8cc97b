# Overview: Service-layer operations for debts (single and fixed monthly).

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Debt, User
from ..models.finance import DEBT_FIXED, DEBT_SINGLE, DEBT_TYPES
from ..validation import ValidationError, parse_amount, parse_date, parse_quantity, require_payload, require_text
from bizledger.time_utils import utcnow
from .auth_service import ensure_owner_or_admin

logger = logging.getLogger("bizledger.debts")

DEBT_FIELDS = {"description", "amount", "debt_type", "due_date", "duration_months"}

# Labels used by the original forms
_TYPE_ALIASES = {
    "único": DEBT_SINGLE,
    "unico": DEBT_SINGLE,
    "single": DEBT_SINGLE,
    "fixo": DEBT_FIXED,
    "fixed": DEBT_FIXED,
}


class DebtError(Exception):
    """Raised for debt operation errors."""
    pass


def normalize_debt_type(value) -> str:
    if value is None or value == "":
        return DEBT_SINGLE
    raw = str(value).strip()
    if raw.upper() in DEBT_TYPES:
        return raw.upper()
    mapped = _TYPE_ALIASES.get(raw.lower())
    if not mapped:
        raise ValidationError(f"debt_type must be one of: {', '.join(DEBT_TYPES)}")
    return mapped


def _apply_duration(debt: Debt, value) -> None:
    if debt.debt_type == DEBT_FIXED:
        if value is None:
            raise ValidationError("duration_months is required for FIXED debts")
        debt.duration_months = parse_quantity(value, "duration_months")
    else:
        debt.duration_months = None


def create_debt(actor: User, payload: dict) -> Debt:
    payload = require_payload(payload, DEBT_FIELDS)

    debt = Debt(
        description=require_text(payload.get("description"), "description"),
        amount=parse_amount(payload.get("amount"), "amount", allow_zero=False),
        debt_type=normalize_debt_type(payload.get("debt_type")),
        due_date=parse_date(payload.get("due_date"), "due_date"),
        paid=False,
        user_id=actor.id,
        user_name=actor.username,
        created_at=utcnow(),
    )
    _apply_duration(debt, payload.get("duration_months"))

    db.session.add(debt)
    db.session.commit()
    logger.info("Debt registered: id=%s %s %.2f due %s", debt.id, debt.debt_type, debt.amount, debt.due_date)
    return debt


def update_debt(actor: User, debt_id: int, payload: dict) -> Debt | None:
    payload = require_payload(payload, DEBT_FIELDS)

    debt = db.session.get(Debt, debt_id)
    if not debt:
        return None
    ensure_owner_or_admin(actor, debt.user_id, "debts")

    if "description" in payload:
        debt.description = require_text(payload["description"], "description")
    if "amount" in payload:
        debt.amount = parse_amount(payload["amount"], "amount", allow_zero=False)
    if "due_date" in payload:
        debt.due_date = parse_date(payload["due_date"], "due_date")
    if "debt_type" in payload:
        debt.debt_type = normalize_debt_type(payload["debt_type"])
    if "debt_type" in payload or "duration_months" in payload:
        _apply_duration(debt, payload.get("duration_months", debt.duration_months))

    db.session.commit()
    return debt


def set_paid(debt_id: int, paid: bool) -> Debt | None:
    """Mark a debt paid or unpaid. Any partner may settle a business debt."""
    debt = db.session.get(Debt, debt_id)
    if not debt:
        return None

    debt.paid = bool(paid)
    debt.paid_at = utcnow() if debt.paid else None
    db.session.commit()
    logger.info("Debt %s marked %s", debt.id, "paid" if debt.paid else "unpaid")
    return debt


def delete_debt(actor: User, debt_id: int) -> bool:
    debt = db.session.get(Debt, debt_id)
    if not debt:
        return False
    ensure_owner_or_admin(actor, debt.user_id, "debts")

    db.session.delete(debt)
    db.session.commit()
    return True


def list_debts(paid: bool | None = None, user_id: int | None = None) -> list[Debt]:
    query = db.session.query(Debt)
    if paid is not None:
        query = query.filter(Debt.paid.is_(paid))
    if user_id is not None:
        query = query.filter(Debt.user_id == user_id)
    return query.order_by(Debt.due_date.asc(), Debt.id.asc()).all()
