# backend/bizledger/routes/debts.py
from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth
from ..validation import ValidationError, parse_bool
from ..services import debt_service
from ..services.auth_service import AuthorizationError
from ..services.debt_service import DebtError

debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_auth
def list_debts_route():
    try:
        paid = request.args.get("paid")
        paid = parse_bool(paid, "paid") if paid is not None else None
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    debts = debt_service.list_debts(paid=paid)
    return jsonify({"items": [d.to_dict() for d in debts], "count": len(debts)})


@debts_bp.post("")
@require_auth
def create_debt_route():
    """Body: description, amount, due_date (YYYY-MM-DD), debt_type (SINGLE|FIXED), duration_months (FIXED)."""
    try:
        debt = debt_service.create_debt(g.current_user, request.get_json(silent=True))
        return jsonify({"debt": debt.to_dict()}), 201
    except (ValidationError, DebtError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create debt")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.patch("/<int:debt_id>")
@require_auth
def update_debt_route(debt_id: int):
    try:
        debt = debt_service.update_debt(g.current_user, debt_id, request.get_json(silent=True))
        if not debt:
            return jsonify({"error": "Debt not found"}), 404
        return jsonify({"debt": debt.to_dict()})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except (ValidationError, DebtError) as e:
        return jsonify({"error": str(e)}), 400


@debts_bp.post("/<int:debt_id>/paid")
@require_auth
def mark_paid_route(debt_id: int):
    debt = debt_service.set_paid(debt_id, True)
    if not debt:
        return jsonify({"error": "Debt not found"}), 404
    return jsonify({"debt": debt.to_dict()})


@debts_bp.post("/<int:debt_id>/unpaid")
@require_auth
def mark_unpaid_route(debt_id: int):
    debt = debt_service.set_paid(debt_id, False)
    if not debt:
        return jsonify({"error": "Debt not found"}), 404
    return jsonify({"debt": debt.to_dict()})


@debts_bp.delete("/<int:debt_id>")
@require_auth
def delete_debt_route(debt_id: int):
    try:
        if not debt_service.delete_debt(g.current_user, debt_id):
            return jsonify({"error": "Debt not found"}), 404
        return jsonify({"message": "Debt deleted"})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
