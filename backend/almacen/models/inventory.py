from __future__ import annotations

from ..extensions import db
from almacen.time_utils import to_utc_z


class BusinessInventory(db.Model):
    """
    Stock ledger: one mutable quantity per (product, business).

    Rows are created lazily on the first stock write for a pair and are only
    deleted when their product is deleted. Writes go through a conditional
    update guarded on the previously observed stock (optimistic concurrency),
    never through a blind overwrite.
    """
    __tablename__ = "business_inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "business_id", name="uq_business_inventory_product_business"),
        db.CheckConstraint("stock >= 0", name="ck_business_inventory_stock_non_negative"),
        db.Index("ix_business_inventory_business", "business_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products_master.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("ProductMaster", backref=db.backref("inventory_rows", lazy=True))
    business = db.relationship("Business", backref=db.backref("inventory_rows", lazy=True))

    def __repr__(self) -> str:
        return f"<BusinessInventory product_id={self.product_id} business_id={self.business_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "business_id": self.business_id,
            "stock": self.stock,
            "updated_at": to_utc_z(self.updated_at),
        }
