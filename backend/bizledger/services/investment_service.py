# Overview: Service-layer operations for partner investments.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Investment, User
from ..validation import parse_amount, parse_datetime, require_payload, require_text
from bizledger.time_utils import utcnow
from .auth_service import ensure_owner_or_admin
from .concurrency import run_in_transaction

logger = logging.getLogger("bizledger.investments")

INVESTMENT_MUTABLE_FIELDS = {"description", "amount", "date"}


class InvestmentError(Exception):
    """Raised for investment operation errors."""
    pass


def time_investment_description(hours: float) -> str:
    return f"Investimento de Tempo ({hours:.2f}h)"


def create_investment(actor: User, payload: dict) -> Investment:
    """Record a cash contribution by the acting partner."""
    payload = require_payload(payload, INVESTMENT_MUTABLE_FIELDS)
    description = require_text(payload.get("description"), "description")
    amount = parse_amount(payload.get("amount"), "amount", allow_zero=False)
    when = parse_datetime(payload.get("date"), "date", required=False) or utcnow()

    def _op() -> Investment:
        investment = Investment(
            description=description,
            amount=amount,
            user_id=actor.id,
            user_name=actor.username,
            date=when,
            is_time_investment=False,
        )
        db.session.add(investment)
        db.session.flush()
        return investment

    investment = run_in_transaction(_op)
    logger.info("Investment recorded: id=%s user=%s amount=%.2f", investment.id, actor.username, amount)
    return investment


def update_investment(actor: User, investment_id: int, payload: dict) -> Investment | None:
    """
    Edit description/amount/date. Time investments follow their session and
    are edited through the session instead.
    """
    payload = require_payload(payload, INVESTMENT_MUTABLE_FIELDS)

    investment = db.session.get(Investment, investment_id)
    if not investment:
        return None
    ensure_owner_or_admin(actor, investment.user_id, "investments")
    if investment.session_id is not None:
        raise InvestmentError("Time investments are edited through their time session")

    if "description" in payload:
        investment.description = require_text(payload["description"], "description")
    if "amount" in payload:
        investment.amount = parse_amount(payload["amount"], "amount", allow_zero=False)
    if "date" in payload:
        investment.date = parse_datetime(payload["date"], "date")

    db.session.commit()
    return investment


def delete_investment(actor: User, investment_id: int) -> bool:
    investment = db.session.get(Investment, investment_id)
    if not investment:
        return False
    ensure_owner_or_admin(actor, investment.user_id, "investments")
    if investment.session_id is not None:
        raise InvestmentError("Delete the time session to remove its investment")

    db.session.delete(investment)
    db.session.commit()
    logger.info("Investment deleted: id=%s by %s", investment_id, actor.username)
    return True


def list_investments(user_id: int | None = None) -> list[Investment]:
    query = db.session.query(Investment)
    if user_id is not None:
        query = query.filter(Investment.user_id == user_id)
    return query.order_by(Investment.date.desc(), Investment.id.desc()).all()


def investment_for_session(session_id: int) -> Investment | None:
    return db.session.query(Investment).filter_by(session_id=session_id).first()
