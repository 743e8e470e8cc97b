"""
Sales Service - point-of-sale transactions

WHY: A sale and its stock debit must never be observed apart. Creation
allocates the next "vendas" seq, snapshots the prices and debits the
product in one transaction; undo deletes the sale and credits the stock
back in one transaction.
"""

import logging
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Sale, Product
from ..validation import parse_amount, parse_percent, parse_quantity
from bizledger.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .counter_service import PRODUCTS, SALES, next_seq

logger = logging.getLogger("bizledger.sales")


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def compute_final_unit_price(unit_price: float, discount_percent: float) -> float:
    return unit_price * (1 - discount_percent / 100)


def create_sale(
    product_id: int,
    quantity,
    discount_percent=0,
    unit_price=None,
    actor_user_id: int | None = None,
) -> Sale:
    """
    Sell quantity units of one product.

    unit_price defaults to the product's current sale_price. Stock is not
    floored: selling more than is on hand leaves a negative quantity, which
    is logged as a warning.
    """
    quantity = parse_quantity(quantity)
    discount_percent = parse_percent(discount_percent, "discount_percent")
    if unit_price is not None:
        unit_price = parse_amount(unit_price, "unit_price")

    def _op() -> Sale:
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise SaleError("Product not found", details={"product_id": product_id}, status_code=404)

        price = product.sale_price if unit_price is None else unit_price
        final_unit_price = compute_final_unit_price(price, discount_percent)

        sale = Sale(
            seq=next_seq(SALES),
            product_id=product.id,
            description=product.description,
            unit_price=price,
            discount_percent=discount_percent,
            final_unit_price=final_unit_price,
            quantity=quantity,
            total_price=final_unit_price * quantity,
            sold_at=utcnow(),
            sold_by_user_id=actor_user_id,
            canceled=False,
        )
        db.session.add(sale)

        product.quantity = product.quantity - quantity
        if product.quantity < 0:
            logger.warning(
                "Stock below zero after sale: product seq=%s quantity=%s",
                product.seq, product.quantity,
            )

        db.session.flush()
        return sale

    sale = run_in_transaction(_op)
    logger.info("Sale created: seq=%s product_id=%s quantity=%s total=%.2f",
                sale.seq, sale.product_id, sale.quantity, sale.total_price)
    return sale


def undo_sale(sale_id: int) -> dict | None:
    """
    Reverse a sale: delete it and credit its quantity back to the product.

    Returns None when the sale no longer exists, so a repeated undo never
    credits twice.

    If the product was deleted after the sale, and
    RESTORE_DELETED_PRODUCT_ON_UNDO is on, a stub product is recreated with
    the sale's quantity and unit price. The stub has cost 0 and margin 0:
    the original cost basis is gone.
    """
    restore_deleted = bool(current_app.config.get("RESTORE_DELETED_PRODUCT_ON_UNDO", True))

    def _op() -> dict | None:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            return None

        result = {"sale": sale.to_dict(), "product_id": None, "restored_product": False}

        product = lock_for_update(db.session.query(Product).filter_by(id=sale.product_id)).first()
        if product:
            product.quantity = product.quantity + sale.quantity
            result["product_id"] = product.id
        elif restore_deleted:
            stub = Product(
                seq=next_seq(PRODUCTS),
                description=sale.description or f"Produto restaurado (venda {sale.seq})",
                cost_price=0.0,
                profit_margin=0.0,
                sale_price=sale.unit_price,
                quantity=sale.quantity,
                created_at=utcnow(),
            )
            db.session.add(stub)
            db.session.flush()
            result["product_id"] = stub.id
            result["restored_product"] = True
            logger.warning(
                "Sale seq=%s undone after its product was deleted; recreated product seq=%s without cost basis",
                sale.seq, stub.seq,
            )
        else:
            logger.warning("Sale seq=%s undone after its product was deleted; stock not restored", sale.seq)

        db.session.delete(sale)
        return result

    result = run_in_transaction(_op)
    if result:
        logger.info("Sale undone: seq=%s", result["sale"]["seq"])
    return result


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def list_sales(
    product_id: int | None = None,
    days: int | None = None,
    limit: int | None = None,
) -> list[Sale]:
    """Sales newest first; days limits to the recent window."""
    query = db.session.query(Sale)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    if days is not None:
        query = query.filter(Sale.sold_at >= utcnow() - timedelta(days=days))
    query = query.order_by(Sale.sold_at.desc(), Sale.seq.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def recent_sales() -> list[Sale]:
    return list_sales(days=int(current_app.config.get("RECENT_SALES_DAYS", 7)))
