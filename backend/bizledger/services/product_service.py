# backend/bizledger/services/product_service.py
"""
Products Service

PRICING: sale_price is always recomputed from cost_price and profit_margin
on create and on every update; callers never set it directly.

STOCK: quantity is accepted on create only. After that, sales_service is
the only writer (sale create debits, sale undo credits).
"""
from __future__ import annotations

import logging

from sqlalchemy import or_

from ..extensions import db
from ..models import Product
from ..validation import ValidationError, parse_amount, parse_percent, parse_quantity, require_payload, require_text
from .concurrency import run_in_transaction
from .counter_service import PRODUCTS, next_seq
from bizledger.time_utils import utcnow

logger = logging.getLogger("bizledger.products")

PRODUCT_CREATE_FIELDS = {"description", "cost_price", "profit_margin", "quantity"}
PRODUCT_MUTABLE_FIELDS = {"description", "cost_price", "profit_margin"}


class ProductError(Exception):
    """Raised for product operation errors."""
    pass


def compute_sale_price(cost_price: float, profit_margin: float) -> float:
    return cost_price * (1 + profit_margin / 100)


def validate_product_payload(payload: dict, *, partial: bool) -> dict:
    """Clean create (partial=False) or update (partial=True) input."""
    allowed = PRODUCT_MUTABLE_FIELDS if partial else PRODUCT_CREATE_FIELDS
    payload = require_payload(payload)

    if partial and "quantity" in payload:
        raise ValidationError("quantity can only be changed by sales")
    payload = require_payload(payload, allowed)

    patch: dict = {}
    if not partial or "description" in payload:
        patch["description"] = require_text(payload.get("description"), "description")
    if not partial or "cost_price" in payload:
        patch["cost_price"] = parse_amount(payload.get("cost_price"), "cost_price")
    if not partial or "profit_margin" in payload:
        patch["profit_margin"] = parse_percent(payload.get("profit_margin"), "profit_margin", maximum=None)
    if not partial:
        patch["quantity"] = parse_quantity(payload.get("quantity", 0), "quantity", allow_zero=True)
    return patch


def create_product(patch: dict, actor_user_id: int | None = None) -> Product:
    """
    Create a product numbered from the "products" counter.

    The counter increment and the insert commit together.
    """
    patch = validate_product_payload(patch, partial=False)

    def _op() -> Product:
        product = Product(
            seq=next_seq(PRODUCTS),
            description=patch["description"],
            cost_price=patch["cost_price"],
            profit_margin=patch["profit_margin"],
            sale_price=compute_sale_price(patch["cost_price"], patch["profit_margin"]),
            quantity=patch["quantity"],
            created_at=utcnow(),
            created_by_user_id=actor_user_id,
        )
        db.session.add(product)
        db.session.flush()
        return product

    product = run_in_transaction(_op)
    logger.info("Product created: seq=%s id=%s", product.seq, product.id)
    return product


def update_product(product_id: int, patch: dict, actor_user_id: int | None = None) -> Product | None:
    """Update description/cost/margin and recompute sale_price. Returns None if not found."""
    patch = validate_product_payload(patch, partial=True)

    def _op() -> Product | None:
        product = db.session.get(Product, product_id)
        if not product:
            return None

        for key, value in patch.items():
            setattr(product, key, value)
        product.sale_price = compute_sale_price(product.cost_price, product.profit_margin)
        product.updated_at = utcnow()
        product.updated_by_user_id = actor_user_id
        return product

    return run_in_transaction(_op)


def delete_product(product_id: int) -> bool:
    """
    Hard-delete a product. Its sales stay (Sale.product_id is not a foreign key).

    Returns False if not found.
    """
    def _op() -> bool:
        product = db.session.get(Product, product_id)
        if not product:
            return False
        db.session.delete(product)
        logger.info("Product deleted: seq=%s id=%s", product.seq, product.id)
        return True

    return run_in_transaction(_op)


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_products(page: int | None = None, per_page: int | None = None) -> dict:
    """Products ordered by seq, optionally paginated."""
    base_query = db.session.query(Product).order_by(Product.seq.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def search_products(term: str, limit: int = 20) -> list[Product]:
    """
    Match by description substring or exact seq (the point-of-sale lookup).
    """
    term = (term or "").strip()
    if not term:
        return []

    conditions = [Product.description.ilike(f"%{term}%")]
    if term.isdigit():
        conditions.append(Product.seq == int(term))

    return (
        db.session.query(Product)
        .filter(or_(*conditions))
        .order_by(Product.seq.asc())
        .limit(limit)
        .all()
    )
