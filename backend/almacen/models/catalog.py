from __future__ import annotations

from ..extensions import db
from almacen.time_utils import to_utc_z


class ProductMaster(db.Model):
    """
    Catalog record shared by every business.

    NAME CONVENTION:
    name is "<CATEGORY> <base name>" or just "<base name>" when uncategorized.
    The category is never stored separately; it is recovered by splitting the
    first token against the fixed vocabulary (see services/categories.py).

    MONEY:
    Prices are stored in cents, margin in basis points (35.5% -> 3550).

    code is NOT unique: the same barcode may be reused across product variants.
    deleted_at marks a soft-deleted product; its ledger rows are removed.
    """
    __tablename__ = "products_master"
    __table_args__ = (
        db.Index("ix_products_master_name", "name"),
        db.Index("ix_products_master_code", "code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False, default="")
    codes_asociados = db.Column(db.JSON, nullable=False, default=list)
    name = db.Column(db.String(255), nullable=False)

    default_purchase_cents = db.Column(db.Integer, nullable=False, default=0)
    margin_bps = db.Column(db.Integer, nullable=False, default=0)
    default_selling_cents = db.Column(db.Integer, nullable=False, default=0)

    # Price typed by hand at checkout instead of scanned
    entry_manual = db.Column(db.Boolean, nullable=False, default=False)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductMaster id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "codes_asociados": list(self.codes_asociados or []),
            "name": self.name,
            "default_purchase_cents": self.default_purchase_cents,
            "margin_bps": self.margin_bps,
            "default_selling_cents": self.default_selling_cents,
            "entry_manual": self.entry_manual,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
