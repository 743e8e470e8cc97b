from __future__ import annotations

from ..extensions import db
from bizledger.time_utils import to_utc_z


class Counter(db.Model):
    """
    Monotonic sequence per domain ("products", "vendas").

    Incremented inside the same transaction as the record it numbers;
    never decremented. A missing row means last_seq = 0.
    """
    __tablename__ = "counters"
    __collection_name__ = "counters"

    domain = db.Column(db.String(32), primary_key=True)
    last_seq = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "last_seq": self.last_seq,
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Sellable inventory item.

    PRICING: sale_price is derived (cost_price * (1 + profit_margin / 100))
    and recomputed on every create/update; it is stored so sales can snapshot it.

    STOCK: quantity is set once at creation. Afterwards only sale creation
    and sale undo touch it (see sales_service).
    """
    __tablename__ = "products"
    __collection_name__ = "products"
    __table_args__ = (
        db.UniqueConstraint("seq", name="uq_products_seq"),
        db.Index("ix_products_description", "description"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing number from the "products" counter
    seq = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=False)
    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    profit_margin = db.Column(db.Float, nullable=False, default=0.0)  # percent
    sale_price = db.Column(db.Float, nullable=False, default=0.0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by_user_id = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_by_user_id = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} seq={self.seq} description={self.description!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seq": self.seq,
            "description": self.description,
            "cost_price": self.cost_price,
            "profit_margin": self.profit_margin,
            "sale_price": self.sale_price,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "created_by_user_id": self.created_by_user_id,
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "updated_by_user_id": self.updated_by_user_id,
            "version_id": self.version_id,
        }
