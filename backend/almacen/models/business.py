from __future__ import annotations

from ..extensions import db
from almacen.time_utils import to_utc_z


class Business(db.Model):
    """
    A selling location (branch). Stock is tracked per product per business.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_businesses_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }
