# Overview: Service-layer operations for cash-box movements.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import CashMovement, User
from ..models.finance import MOVEMENT_TYPES, MOVEMENT_SOURCES, SOURCE_MANUAL
from ..validation import parse_amount, parse_choice, parse_datetime, require_payload, require_text
from bizledger.time_utils import utcnow
from .auth_service import ensure_owner_or_admin

logger = logging.getLogger("bizledger.cash")

MOVEMENT_FIELDS = {"movement_type", "amount", "description", "date", "source"}


class CashError(Exception):
    """Raised for cash movement errors."""
    pass


def create_movement(actor: User, payload: dict) -> CashMovement:
    payload = require_payload(payload, MOVEMENT_FIELDS)

    movement = CashMovement(
        movement_type=parse_choice(payload.get("movement_type"), "movement_type", MOVEMENT_TYPES),
        amount=parse_amount(payload.get("amount"), "amount", allow_zero=False),
        description=require_text(payload.get("description"), "description"),
        date=parse_datetime(payload.get("date"), "date", required=False) or utcnow(),
        user_id=actor.id,
        user_name=actor.username,
        source=parse_choice(payload.get("source", SOURCE_MANUAL), "source", MOVEMENT_SOURCES),
    )

    db.session.add(movement)
    db.session.commit()
    logger.info("Cash %s recorded: %.2f (%s)", movement.movement_type, movement.amount, movement.description)
    return movement


def update_movement(actor: User, movement_id: int, payload: dict) -> CashMovement | None:
    payload = require_payload(payload, MOVEMENT_FIELDS - {"source"})

    movement = db.session.get(CashMovement, movement_id)
    if not movement:
        return None
    ensure_owner_or_admin(actor, movement.user_id, "cash movements")
    if movement.source != SOURCE_MANUAL:
        raise CashError("Only manual movements can be edited")

    if "movement_type" in payload:
        movement.movement_type = parse_choice(payload["movement_type"], "movement_type", MOVEMENT_TYPES)
    if "amount" in payload:
        movement.amount = parse_amount(payload["amount"], "amount", allow_zero=False)
    if "description" in payload:
        movement.description = require_text(payload["description"], "description")
    if "date" in payload:
        movement.date = parse_datetime(payload["date"], "date")

    db.session.commit()
    return movement


def delete_movement(actor: User, movement_id: int) -> bool:
    movement = db.session.get(CashMovement, movement_id)
    if not movement:
        return False
    ensure_owner_or_admin(actor, movement.user_id, "cash movements")

    db.session.delete(movement)
    db.session.commit()
    return True


def list_movements(movement_type: str | None = None) -> list[CashMovement]:
    query = db.session.query(CashMovement)
    if movement_type:
        query = query.filter(CashMovement.movement_type == parse_choice(movement_type, "type", MOVEMENT_TYPES))
    return query.order_by(CashMovement.date.desc(), CashMovement.id.desc()).all()
