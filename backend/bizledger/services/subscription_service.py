# Overview: Live collection subscriptions; notifies listeners after commits that touched a collection.

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger("bizledger.subscriptions")

PENDING_KEY = "bizledger_changed_collections"

Listener = Callable[[str, int], None]


class SubscriptionError(Exception):
    """Raised for unknown collections or invalid subscription requests."""
    pass


class CollectionHub:
    """
    In-process publish/subscribe keyed by collection name.

    WHY: Clients keep their views current by re-reading a collection whenever
    it changes. The hub tracks a version counter per collection and calls
    every listener with (collection, version) after the change is committed.

    subscribe() returns an unsubscribe callable; callers must invoke it when
    they stop listening (the SSE route does so when the client disconnects).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, dict[int, Listener]] = {}
        self._versions: dict[str, int] = {}
        self._next_token = 0
        self._hooked = False

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        if not collection:
            raise SubscriptionError("collection is required")

        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners.setdefault(collection, {})[token] = callback

        released = False

        def unsubscribe() -> None:
            nonlocal released
            if released:
                return
            released = True
            with self._lock:
                listeners = self._listeners.get(collection)
                if listeners is not None:
                    listeners.pop(token, None)
                    if not listeners:
                        del self._listeners[collection]

        return unsubscribe

    def publish(self, collections: Iterable[str]) -> None:
        notifications = []
        with self._lock:
            for name in sorted(set(collections)):
                version = self._versions.get(name, 0) + 1
                self._versions[name] = version
                for callback in self._listeners.get(name, {}).values():
                    notifications.append((callback, name, version))

        # Listeners run outside the lock so they may subscribe/unsubscribe
        for callback, name, version in notifications:
            try:
                callback(name, version)
            except Exception:
                logger.exception("Collection listener failed for %s", name)

    def version(self, collection: str) -> int:
        with self._lock:
            return self._versions.get(collection, 0)

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, {}))

    def install_session_hooks(self) -> None:
        """
        Wire the hub to SQLAlchemy session events (idempotent).

        after_flush records which collections the flush touched,
        after_commit of the outermost transaction publishes them, and the end
        of an outermost transaction (commit or rollback) clears whatever is
        left. Releasing a SAVEPOINT also fires after_commit; the pending set
        is kept until the enclosing transaction finishes.
        """
        if self._hooked:
            return
        event.listen(Session, "after_flush", _collect_flushed)
        event.listen(Session, "after_commit", self._publish_committed)
        event.listen(Session, "after_transaction_end", _clear_on_end)
        self._hooked = True

    def _publish_committed(self, session: Session) -> None:
        if session.in_nested_transaction():
            return
        changed = session.info.pop(PENDING_KEY, None)
        if changed:
            self.publish(changed)


def mark_changed(session, *collections: str) -> None:
    """Record collections changed by statements that bypass the unit of work (bulk UPDATE)."""
    session.info.setdefault(PENDING_KEY, set()).update(collections)


def _collect_flushed(session: Session, flush_context) -> None:
    names = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        name = getattr(type(obj), "__collection_name__", None)
        if name:
            names.add(name)
    if names:
        session.info.setdefault(PENDING_KEY, set()).update(names)


def _clear_on_end(session: Session, transaction) -> None:
    if transaction.parent is None:
        session.info.pop(PENDING_KEY, None)


def collection_names() -> list[str]:
    from ..models import COLLECTIONS
    return sorted(COLLECTIONS)


def snapshot(collection: str) -> list[dict]:
    """Current contents of a collection, ordered by primary key."""
    from ..extensions import db
    from ..models import COLLECTIONS

    model = COLLECTIONS.get(collection)
    if model is None:
        raise SubscriptionError(f"Unknown collection: {collection}")

    pk = model.__mapper__.primary_key[0]
    rows = db.session.query(model).order_by(pk).all()
    return [row.to_dict() for row in rows]
