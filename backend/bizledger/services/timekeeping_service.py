# Overview: Service-layer operations for timekeeping; work sessions and their invested-time investments.

"""
Timekeeping Service (work sessions)

WHY: Partners track the hours they work. When a session ends it is either
paid (wages, no ownership effect) or invested: the hours times the hourly
rate become an Investment that counts toward the partner's share.

INVARIANT: a completed session with is_paid = False owns exactly one
Investment (session_id link); a paid session owns none. Every operation
that changes a session reconciles its investment in the same transaction.
"""

import logging
from datetime import datetime

from ..extensions import db
from ..models import TimeSession, Investment, User
from ..validation import ValidationError, parse_amount, parse_bool, parse_datetime, parse_quantity
from bizledger.time_utils import utcnow, milliseconds_between
from .auth_service import ensure_owner_or_admin
from .concurrency import lock_for_update, run_in_transaction
from .investment_service import investment_for_session, time_investment_description

logger = logging.getLogger("bizledger.timekeeping")

MS_PER_HOUR = 3_600_000


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _get_running_session(user_id: int) -> TimeSession | None:
    return db.session.query(TimeSession).filter_by(user_id=user_id, is_completed=False).first()


def _load_session(session_id: int) -> TimeSession:
    session = lock_for_update(db.session.query(TimeSession).filter_by(id=session_id)).first()
    if not session:
        raise TimekeepingError("Time session not found", status_code=404)
    return session


def elapsed_ms(session: TimeSession, now: datetime | None = None) -> int:
    """Worked milliseconds: wall time minus finished and ongoing pauses."""
    end = session.end_time or now or utcnow()
    paused = session.paused_ms or 0
    if session.paused_at is not None and session.end_time is None:
        paused += max(milliseconds_between(session.paused_at, end), 0)
    return max(milliseconds_between(session.start_time, end) - paused, 0)


def elapsed_seconds(session: TimeSession, now: datetime | None = None) -> int:
    return elapsed_ms(session, now) // 1000


def session_hours(session: TimeSession, now: datetime | None = None) -> float:
    return elapsed_ms(session, now) / MS_PER_HOUR


def session_value(session: TimeSession, now: datetime | None = None) -> float:
    return session_hours(session, now) * session.hourly_rate


def _sync_investment(session: TimeSession, user: User) -> Investment | None:
    """
    Bring the session's investment in line with its paid flag.

    - invested, no investment: create
    - invested, investment exists: update amount/description in place
    - paid, investment exists: delete
    """
    investment = investment_for_session(session.id)

    if not session.is_completed or session.is_paid:
        if investment:
            db.session.delete(investment)
            logger.info("Time investment removed for session %s", session.id)
        return None

    hours = session_hours(session)
    amount = hours * session.hourly_rate
    description = time_investment_description(hours)

    if investment:
        investment.amount = amount
        investment.description = description
        investment.date = session.end_time
        return investment

    investment = Investment(
        description=description,
        amount=amount,
        user_id=session.user_id,
        user_name=user.username,
        date=session.end_time,
        is_time_investment=True,
        session_id=session.id,
    )
    db.session.add(investment)
    logger.info("Time investment created for session %s: %.2fh = %.2f", session.id, hours, amount)
    return investment


def start_session(*, user: User, hourly_rate) -> TimeSession:
    rate = parse_amount(hourly_rate, "hourly_rate", allow_zero=False)

    def _op() -> TimeSession:
        if _get_running_session(user.id):
            raise TimekeepingError("A time session is already running")

        session = TimeSession(
            user_id=user.id,
            start_time=utcnow(),
            end_time=None,
            paused_ms=0,
            paused_at=None,
            hourly_rate=rate,
            is_paid=False,
            is_completed=False,
        )
        db.session.add(session)
        db.session.flush()
        return session

    return run_in_transaction(_op)


def pause_session(*, session_id: int, user: User) -> TimeSession:
    def _op() -> TimeSession:
        session = _load_session(session_id)
        ensure_owner_or_admin(user, session.user_id, "time sessions")
        if session.is_completed:
            raise TimekeepingError("Time session already stopped")
        if session.paused_at is not None:
            raise TimekeepingError("Time session already paused")
        session.paused_at = utcnow()
        return session

    return run_in_transaction(_op)


def _close_pause(session: TimeSession, now: datetime) -> None:
    if session.paused_at is None:
        return
    session.paused_ms = (session.paused_ms or 0) + max(milliseconds_between(session.paused_at, now), 0)
    session.paused_at = None


def resume_session(*, session_id: int, user: User) -> TimeSession:
    def _op() -> TimeSession:
        session = _load_session(session_id)
        ensure_owner_or_admin(user, session.user_id, "time sessions")
        if session.is_completed:
            raise TimekeepingError("Time session already stopped")
        if session.paused_at is None:
            raise TimekeepingError("Time session is not paused")
        _close_pause(session, utcnow())
        return session

    return run_in_transaction(_op)


def stop_session(*, session_id: int, user: User, is_paid) -> TimeSession:
    """
    End a session. Unpaid (invested) time becomes an Investment of
    hours * hourly_rate, created in the same transaction.
    """
    is_paid = parse_bool(is_paid, "is_paid")

    def _op() -> TimeSession:
        session = _load_session(session_id)
        ensure_owner_or_admin(user, session.user_id, "time sessions")
        if session.is_completed:
            raise TimekeepingError("Time session already stopped")

        now = utcnow()
        _close_pause(session, now)
        session.end_time = now
        session.is_completed = True
        session.is_paid = is_paid

        db.session.flush()
        owner = db.session.get(User, session.user_id)
        _sync_investment(session, owner)
        return session

    session = run_in_transaction(_op)
    logger.info("Time session %s stopped (paid=%s, %.2fh)", session.id, session.is_paid, session_hours(session))
    return session


def edit_session(*, session_id: int, actor: User, fields: dict) -> TimeSession:
    """
    Correct a completed session (start/end time, rate, paused ms, paid flag)
    and reconcile its investment in the same transaction.
    """
    allowed = {"start_time", "end_time", "hourly_rate", "paused_ms", "is_paid"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    patch = {}
    if "start_time" in fields:
        patch["start_time"] = parse_datetime(fields["start_time"], "start_time")
    if "end_time" in fields:
        patch["end_time"] = parse_datetime(fields["end_time"], "end_time")
    if "hourly_rate" in fields:
        patch["hourly_rate"] = parse_amount(fields["hourly_rate"], "hourly_rate", allow_zero=False)
    if "paused_ms" in fields:
        patch["paused_ms"] = parse_quantity(fields["paused_ms"], "paused_ms", allow_zero=True)
    if "is_paid" in fields:
        patch["is_paid"] = parse_bool(fields["is_paid"], "is_paid")

    def _op() -> TimeSession:
        session = _load_session(session_id)
        ensure_owner_or_admin(actor, session.user_id, "time sessions")
        if not session.is_completed:
            raise TimekeepingError("Stop the time session before editing it")

        was_paid = session.is_paid
        for key, value in patch.items():
            setattr(session, key, value)

        if session.end_time is not None and session.end_time < session.start_time:
            raise TimekeepingError("end_time must be after start_time")

        db.session.flush()
        owner = db.session.get(User, session.user_id)
        _sync_investment(session, owner)
        logger.info("Time session %s edited by %s (paid %s -> %s)", session.id, actor.username, was_paid, session.is_paid)
        return session

    return run_in_transaction(_op)


def delete_session(*, session_id: int, actor: User) -> bool:
    """Delete a session and its investment together. False if not found."""
    def _op() -> bool:
        session = lock_for_update(db.session.query(TimeSession).filter_by(id=session_id)).first()
        if not session:
            return False
        ensure_owner_or_admin(actor, session.user_id, "time sessions")

        investment = investment_for_session(session.id)
        if investment:
            db.session.delete(investment)
            # Investment references the session row
            db.session.flush()
        db.session.delete(session)
        return True

    deleted = run_in_transaction(_op)
    if deleted:
        logger.info("Time session %s deleted by %s", session_id, actor.username)
    return deleted


def get_current_session(user_id: int) -> TimeSession | None:
    return _get_running_session(user_id)


def list_sessions(user_id: int | None = None) -> list[TimeSession]:
    query = db.session.query(TimeSession)
    if user_id is not None:
        query = query.filter(TimeSession.user_id == user_id)
    return query.order_by(TimeSession.start_time.desc(), TimeSession.id.desc()).all()
