# backend/bizledger/routes/products.py
from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth
from ..validation import ValidationError
from ..services import product_service, reporting_service
from ..services.product_service import ProductError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Products ordered by seq.

    Query params:
        page: Page number (1-indexed). If omitted, returns all products.
        per_page: Items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return jsonify(product_service.list_products(page=page, per_page=per_page))


@products_bp.get("/search")
@require_auth
def search_products_route():
    products = product_service.search_products(request.args.get("q", ""))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/value")
@require_auth
def product_value_route():
    return jsonify(reporting_service.product_value_report())


@products_bp.post("")
@require_auth
def create_product_route():
    try:
        product = product_service.create_product(request.get_json(silent=True), actor_user_id=g.current_user.id)
        return jsonify({"product": product.to_dict()}), 201
    except (ValidationError, ProductError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = product_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()})


@products_bp.patch("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    try:
        product = product_service.update_product(product_id, request.get_json(silent=True), actor_user_id=g.current_user.id)
        if not product:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"product": product.to_dict()})
    except (ValidationError, ProductError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        if not product_service.delete_product(product_id):
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"message": "Product deleted"})
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
