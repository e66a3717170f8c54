from __future__ import annotations

from ..extensions import db
from almacen.time_utils import to_utc_z


class Activity(db.Model):
    """
    Append-only audit trail of catalog and stock changes.

    reason is one of CREATION, CORRECTION, LOSS, EXPIRY.
    lost_cash_cents is only set for LOSS / EXPIRY decrements.
    business_id is null for catalog-level entries (product created / edited).
    """
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("ix_activities_business_created", "business_id", "created_at"),
        db.Index("ix_activities_reason_created", "reason", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products_master.id"), nullable=True, index=True)

    details = db.Column(db.Text, nullable=False)
    reason = db.Column(db.String(16), nullable=False)
    lost_cash_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Activity id={self.id} reason={self.reason} product_id={self.product_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "product_id": self.product_id,
            "details": self.details,
            "reason": self.reason,
            "lost_cash_cents": self.lost_cash_cents,
            "created_at": to_utc_z(self.created_at),
        }
