from __future__ import annotations

from ..extensions import db
from bizledger.time_utils import to_utc_z


class Sale(db.Model):
    """
    Point-of-sale record against a single product.

    Prices are snapshots taken when the sale was written, so later product
    repricing does not change a sale's economics.

    Undo physically deletes the row and credits the stock back; the
    canceled column is kept for compatibility and is never set by undo.

    product_id is deliberately not a foreign key: products may be deleted
    while their sales remain.
    """
    __tablename__ = "sales"
    __collection_name__ = "vendas"
    __table_args__ = (
        db.UniqueConstraint("seq", name="uq_sales_seq"),
        db.Index("ix_sales_sold_at", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing number from the "vendas" counter
    seq = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)

    unit_price = db.Column(db.Float, nullable=False)
    discount_percent = db.Column(db.Float, nullable=False, default=0.0)
    final_unit_price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Float, nullable=False)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False)
    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    canceled = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seq": self.seq,
            "product_id": self.product_id,
            "description": self.description,
            "unit_price": self.unit_price,
            "discount_percent": self.discount_percent,
            "final_unit_price": self.final_unit_price,
            "quantity": self.quantity,
            "total_price": self.total_price,
            "sold_at": to_utc_z(self.sold_at),
            "sold_by_user_id": self.sold_by_user_id,
            "canceled": self.canceled,
        }
