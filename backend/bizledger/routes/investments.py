# backend/bizledger/routes/investments.py
from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth
from ..validation import ValidationError
from ..services import investment_service
from ..services.auth_service import AuthorizationError
from ..services.investment_service import InvestmentError

investments_bp = Blueprint("investments", __name__, url_prefix="/api/investments")


@investments_bp.get("")
@require_auth
def list_investments_route():
    """All partners' investments (ownership is shared knowledge); ?mine=1 filters."""
    user_id = g.current_user.id if request.args.get("mine") in ("1", "true") else request.args.get("user_id", type=int)
    items = investment_service.list_investments(user_id=user_id)
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@investments_bp.post("")
@require_auth
def create_investment_route():
    try:
        investment = investment_service.create_investment(g.current_user, request.get_json(silent=True))
        return jsonify({"investment": investment.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create investment")
        return jsonify({"error": "Internal server error"}), 500


@investments_bp.patch("/<int:investment_id>")
@require_auth
def update_investment_route(investment_id: int):
    try:
        investment = investment_service.update_investment(g.current_user, investment_id, request.get_json(silent=True))
        if not investment:
            return jsonify({"error": "Investment not found"}), 404
        return jsonify({"investment": investment.to_dict()})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except (ValidationError, InvestmentError) as e:
        return jsonify({"error": str(e)}), 400


@investments_bp.delete("/<int:investment_id>")
@require_auth
def delete_investment_route(investment_id: int):
    try:
        if not investment_service.delete_investment(g.current_user, investment_id):
            return jsonify({"error": "Investment not found"}), 404
        return jsonify({"message": "Investment deleted"})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except InvestmentError as e:
        return jsonify({"error": str(e)}), 400
