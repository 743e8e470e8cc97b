# backend/bizledger/routes/system.py
"""
System health and version endpoints.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db, hub
from ..models import User, SessionToken
from ..services import counter_service
from ..services.subscription_service import collection_names
from bizledger.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity with a couple of cheap queries."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        counters = counter_service.list_counters()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "counters": counters,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(
            is_revoked=False
        ).count()

        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False)
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


def check_admin_account() -> dict:
    """Degraded (not unhealthy) when nobody can manage users yet."""
    admins = db.session.query(User).filter(User.is_admin.is_(True), User.is_active.is_(True)).count()
    if admins == 0:
        return {"status": "degraded", "warning": "No active admin account (run flask system init)"}
    return {"status": "healthy", "details": {"admins": admins}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database or session storage unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()
    admin_health = check_admin_account() if database_health["status"] == "healthy" else {"status": "unknown"}

    all_checks = [database_health, session_health, admin_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
            "admin_account": admin_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    return {
        "name": "bizledger",
        "version": current_app.config.get("APP_VERSION", "unknown"),
        "collections": {name: hub.version(name) for name in collection_names()},
    }