# backend/bizledger/routes/entries.py
"""
Revenue entries and unplanned expenses share one set of handlers; each
gets its own blueprint built by _ledger_blueprint.
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth
from ..validation import ValidationError
from ..services import entry_service
from ..services.auth_service import AuthorizationError


def _ledger_blueprint(kind: str, name: str, label: str) -> Blueprint:
    model = entry_service.model_for(kind)
    bp = Blueprint(name, __name__, url_prefix=f"/api/{kind}")

    @bp.get("")
    @require_auth
    def list_route():
        lines = entry_service.list_lines(model)
        return jsonify({
            "items": [line.to_dict() for line in lines],
            "count": len(lines),
            "total": sum(line.amount for line in lines),
        })

    @bp.post("")
    @require_auth
    def create_route():
        try:
            line = entry_service.create_line(model, g.current_user, request.get_json(silent=True))
            return jsonify({"item": line.to_dict()}), 201
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception:
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500

    @bp.patch("/<int:line_id>")
    @require_auth
    def update_route(line_id: int):
        try:
            line = entry_service.update_line(model, g.current_user, line_id, request.get_json(silent=True))
            if not line:
                return jsonify({"error": f"{label.capitalize()} not found"}), 404
            return jsonify({"item": line.to_dict()})
        except AuthorizationError as e:
            return jsonify({"error": str(e)}), 403
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

    @bp.delete("/<int:line_id>")
    @require_auth
    def delete_route(line_id: int):
        try:
            if not entry_service.delete_line(model, g.current_user, line_id):
                return jsonify({"error": f"{label.capitalize()} not found"}), 404
            return jsonify({"message": f"{label.capitalize()} deleted"})
        except AuthorizationError as e:
            return jsonify({"error": str(e)}), 403

    return bp


entries_bp = _ledger_blueprint("entries", "entries", "entry")
unplanned_expenses_bp = _ledger_blueprint("unplanned-expenses", "unplanned_expenses", "unplanned expense")
