# Overview: Flask API routes for work sessions; parses input and returns JSON responses.

"""
Time Session Routes

SECURITY:
- Partners start/pause/resume/stop/edit/delete their own sessions.
- Admins may edit or delete anyone's sessions and list all of them.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import investment_service, timekeeping_service
from ..services.auth_service import AuthorizationError
from ..services.timekeeping_service import TimekeepingError


timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/time-sessions")


def _session_payload(session) -> dict:
    payload = session.to_dict()
    payload["elapsed_seconds"] = timekeeping_service.elapsed_seconds(session)
    payload["hours"] = round(timekeeping_service.session_hours(session), 4)
    investment = investment_service.investment_for_session(session.id)
    payload["investment"] = investment.to_dict() if investment else None
    return payload


def _error(e: Exception):
    if isinstance(e, AuthorizationError):
        return jsonify({"error": str(e)}), 403
    if isinstance(e, TimekeepingError):
        return jsonify({"error": str(e)}), e.status_code
    return jsonify({"error": str(e)}), 400


@timekeeping_bp.post("/start")
@require_auth
def start_route():
    data = request.get_json(silent=True) or {}
    try:
        session = timekeeping_service.start_session(user=g.current_user, hourly_rate=data.get("hourly_rate"))
        return jsonify({"session": _session_payload(session)}), 201
    except ValueError as e:
        return _error(e)


@timekeeping_bp.get("/current")
@require_auth
def current_route():
    session = timekeeping_service.get_current_session(g.current_user.id)
    return jsonify({"session": _session_payload(session) if session else None})


@timekeeping_bp.post("/<int:session_id>/pause")
@require_auth
def pause_route(session_id: int):
    try:
        session = timekeeping_service.pause_session(session_id=session_id, user=g.current_user)
        return jsonify({"session": _session_payload(session)})
    except (ValueError, AuthorizationError) as e:
        return _error(e)


@timekeeping_bp.post("/<int:session_id>/resume")
@require_auth
def resume_route(session_id: int):
    try:
        session = timekeeping_service.resume_session(session_id=session_id, user=g.current_user)
        return jsonify({"session": _session_payload(session)})
    except (ValueError, AuthorizationError) as e:
        return _error(e)


@timekeeping_bp.post("/<int:session_id>/stop")
@require_auth
def stop_route(session_id: int):
    """Body: is_paid (bool). Unpaid time becomes an investment."""
    data = request.get_json(silent=True) or {}
    try:
        session = timekeeping_service.stop_session(
            session_id=session_id,
            user=g.current_user,
            is_paid=data.get("is_paid"),
        )
        return jsonify({"session": _session_payload(session)})
    except (ValueError, AuthorizationError) as e:
        return _error(e)


@timekeeping_bp.get("")
@require_auth
def list_route():
    """
    Own sessions; admins see everyone's, or one partner's with ?user_id=.
    """
    if g.current_user.is_admin:
        user_id = request.args.get("user_id", type=int)
    else:
        user_id = g.current_user.id
    sessions = timekeeping_service.list_sessions(user_id=user_id)
    return jsonify({"items": [_session_payload(s) for s in sessions], "count": len(sessions)})


@timekeeping_bp.patch("/<int:session_id>")
@require_auth
def edit_route(session_id: int):
    data = request.get_json(silent=True) or {}
    try:
        session = timekeeping_service.edit_session(session_id=session_id, actor=g.current_user, fields=data)
        return jsonify({"session": _session_payload(session)})
    except (ValueError, AuthorizationError) as e:
        return _error(e)


@timekeeping_bp.delete("/<int:session_id>")
@require_auth
def delete_route(session_id: int):
    try:
        if not timekeeping_service.delete_session(session_id=session_id, actor=g.current_user):
            return jsonify({"error": "Time session not found"}), 404
        return jsonify({"message": "Time session deleted"})
    except AuthorizationError as e:
        return _error(e)
