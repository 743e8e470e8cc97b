# Overview: Monotonic per-domain sequence numbers for products and sales.

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Counter
from .subscription_service import mark_changed

PRODUCTS = "products"
SALES = "vendas"
DOMAINS = (PRODUCTS, SALES)


class CounterError(Exception):
    """Raised when sequence allocation fails."""
    pass


def _validate_domain(domain: str) -> None:
    if domain not in DOMAINS:
        raise CounterError(f"Unknown counter domain: {domain}")


def next_seq(domain: str) -> int:
    """
    Allocate the next seq for a domain inside the caller's transaction.

    Never commits: the increment becomes durable together with the record it
    numbers, and disappears with it on rollback. Concurrent callers serialize
    on the counter row, so every committed value is unique and increasing.
    A missing row counts as last_seq = 0.
    """
    _validate_domain(domain)

    stmt = (
        update(Counter)
        .where(Counter.domain == domain)
        .values(last_seq=Counter.last_seq + 1, updated_at=db.func.now())
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(Counter(domain=domain, last_seq=1))
        except IntegrityError:
            # Another transaction created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise CounterError(f"Could not allocate seq for {domain}")
        else:
            mark_changed(db.session, "counters")
            return 1

    mark_changed(db.session, "counters")
    return db.session.execute(
        select(Counter.last_seq).where(Counter.domain == domain)
    ).scalar_one()


def current_seq(domain: str) -> int:
    _validate_domain(domain)
    value = db.session.execute(
        select(Counter.last_seq).where(Counter.domain == domain)
    ).scalar_one_or_none()
    return value or 0


def list_counters() -> dict[str, int]:
    return {domain: current_seq(domain) for domain in DOMAINS}
