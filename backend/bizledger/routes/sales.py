# backend/bizledger/routes/sales.py
"""Point-of-sale API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..validation import ValidationError
from ..services import sales_service
from ..services.sales_service import SaleError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Sell one product.

    Body: product_id, quantity, discount_percent (optional, 0-100),
    unit_price (optional, defaults to the product's sale price).
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("product_id")
        if isinstance(product_id, str) and product_id.strip().isdigit():
            product_id = int(product_id)
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            return jsonify({"error": "product_id required"}), 400

        sale = sales_service.create_sale(
            product_id,
            data.get("quantity"),
            discount_percent=data.get("discount_percent", 0),
            unit_price=data.get("unit_price"),
            actor_user_id=g.current_user.id,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params: recent=1 (last RECENT_SALES_DAYS days), product_id, limit.
    """
    if request.args.get("recent") in ("1", "true"):
        sales = sales_service.recent_sales()
    else:
        sales = sales_service.list_sales(
            product_id=request.args.get("product_id", type=int),
            limit=request.args.get("limit", type=int),
        )
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()})


@sales_bp.post("/<int:sale_id>/undo")
@require_auth
def undo_sale_route(sale_id: int):
    """
    Undo a sale: delete it and put its quantity back in stock.

    Undoing a sale that is already gone is not an error (undone=false).
    """
    try:
        result = sales_service.undo_sale(sale_id)
        if result is None:
            return jsonify({"undone": False, "message": "Sale already undone"}), 200
        return jsonify({"undone": True, **result}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to undo sale")
        return jsonify({"error": "Internal server error"}), 500
