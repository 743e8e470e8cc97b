# Overview: Service-layer operations for revenue entries and unplanned expenses.

"""
Entries and unplanned expenses are the same shape (description, amount,
date, author) and differ only in which side of the books they land on, so
one set of functions serves both; callers pass the model.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Entry, UnplannedExpense, User
from ..validation import parse_amount, parse_datetime, require_payload, require_text
from bizledger.time_utils import utcnow
from .auth_service import ensure_owner_or_admin

LINE_FIELDS = {"description", "amount", "date"}

KINDS = {
    "entries": Entry,
    "unplanned-expenses": UnplannedExpense,
}


class EntryError(Exception):
    """Raised for entry / unplanned expense errors."""
    pass


def model_for(kind: str):
    model = KINDS.get(kind)
    if model is None:
        raise EntryError(f"Unknown ledger kind: {kind}")
    return model


def create_line(model, actor: User, payload: dict):
    payload = require_payload(payload, LINE_FIELDS)
    now = utcnow()

    line = model(
        description=require_text(payload.get("description"), "description"),
        amount=parse_amount(payload.get("amount"), "amount", allow_zero=False),
        date=parse_datetime(payload.get("date"), "date", required=False) or now,
        user_id=actor.id,
        user_name=actor.username,
        created_at=now,
    )
    db.session.add(line)
    db.session.commit()
    return line


def update_line(model, actor: User, line_id: int, payload: dict):
    payload = require_payload(payload, LINE_FIELDS)

    line = db.session.get(model, line_id)
    if not line:
        return None
    ensure_owner_or_admin(actor, line.user_id, model.__tablename__.replace("_", " "))

    if "description" in payload:
        line.description = require_text(payload["description"], "description")
    if "amount" in payload:
        line.amount = parse_amount(payload["amount"], "amount", allow_zero=False)
    if "date" in payload:
        line.date = parse_datetime(payload["date"], "date")

    db.session.commit()
    return line


def delete_line(model, actor: User, line_id: int) -> bool:
    line = db.session.get(model, line_id)
    if not line:
        return False
    ensure_owner_or_admin(actor, line.user_id, model.__tablename__.replace("_", " "))

    db.session.delete(line)
    db.session.commit()
    return True


def list_lines(model) -> list:
    return db.session.query(model).order_by(model.date.desc(), model.id.desc()).all()
