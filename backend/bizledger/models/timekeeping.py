from __future__ import annotations

from ..extensions import db
from bizledger.time_utils import to_utc_z


class TimeSession(db.Model):
    """
    Tracked work interval.

    LIFECYCLE:
    - running: end_time is NULL, paused_at is NULL
    - paused: end_time is NULL, paused_at holds when the pause started
    - completed: end_time set, is_completed = True

    paused_ms accumulates finished pauses. A completed session with
    is_paid = False owns exactly one Investment (Investment.session_id).
    """
    __tablename__ = "time_sessions"
    __collection_name__ = "timeSessions"
    __table_args__ = (
        db.Index("ix_time_sessions_user_completed", "user_id", "is_completed"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    paused_ms = db.Column(db.Integer, nullable=False, default=0)
    paused_at = db.Column(db.DateTime(timezone=True), nullable=True)

    hourly_rate = db.Column(db.Float, nullable=False)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("time_sessions", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None and self.end_time is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "paused_ms": self.paused_ms,
            "paused_at": to_utc_z(self.paused_at) if self.paused_at else None,
            "is_paused": self.is_paused,
            "hourly_rate": self.hourly_rate,
            "is_paid": self.is_paid,
            "is_completed": self.is_completed,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
