# backend/bizledger/routes/cash.py
from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth
from ..validation import ValidationError, parse_bool
from ..services import cash_service, reporting_service
from ..services.auth_service import AuthorizationError
from ..services.cash_service import CashError
from ..models import Debt, UnplannedExpense
from ..extensions import db

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash-movements")


@cash_bp.get("")
@require_auth
def list_movements_route():
    try:
        movements = cash_service.list_movements(request.args.get("type"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


@cash_bp.get("/balance")
@require_auth
def balance_route():
    """
    entrada - saida.

    Query params: subtract_paid_debts, subtract_unplanned (booleans).
    """
    try:
        with_debts = parse_bool(request.args.get("subtract_paid_debts"), "subtract_paid_debts", default=False)
        with_unplanned = parse_bool(request.args.get("subtract_unplanned"), "subtract_unplanned", default=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    movements = cash_service.list_movements()
    paid_debts = db.session.query(Debt).filter(Debt.paid.is_(True)).all() if with_debts else None
    unplanned = db.session.query(UnplannedExpense).all() if with_unplanned else None

    return jsonify({
        **reporting_service.cash_totals(movements),
        "adjusted_balance": reporting_service.cash_balance(movements, paid_debts, unplanned),
    })


@cash_bp.post("")
@require_auth
def create_movement_route():
    """Body: movement_type (entrada|saida), amount, description, date (optional)."""
    try:
        movement = cash_service.create_movement(g.current_user, request.get_json(silent=True))
        return jsonify({"movement": movement.to_dict()}), 201
    except (ValidationError, CashError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.patch("/<int:movement_id>")
@require_auth
def update_movement_route(movement_id: int):
    try:
        movement = cash_service.update_movement(g.current_user, movement_id, request.get_json(silent=True))
        if not movement:
            return jsonify({"error": "Cash movement not found"}), 404
        return jsonify({"movement": movement.to_dict()})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except (ValidationError, CashError) as e:
        return jsonify({"error": str(e)}), 400


@cash_bp.delete("/<int:movement_id>")
@require_auth
def delete_movement_route(movement_id: int):
    try:
        if not cash_service.delete_movement(g.current_user, movement_id):
            return jsonify({"error": "Cash movement not found"}), 404
        return jsonify({"message": "Cash movement deleted"})
    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
