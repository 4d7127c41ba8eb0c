from __future__ import annotations

from ..extensions import db
from packledger.time_utils import to_utc_z


MOVEMENT_RESERVATION = "reservation"
MOVEMENT_MANUAL_CORRECTION = "manual_correction"
MOVEMENT_REPLENISHMENT = "replenishment"

MOVEMENT_REASONS = {MOVEMENT_RESERVATION, MOVEMENT_MANUAL_CORRECTION, MOVEMENT_REPLENISHMENT}


class StockMovement(db.Model):
    """
    Append-only journal of ledger mutations.

    Written in the same transaction as the product row change it records.
    No updates or deletes.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    reason = db.Column(db.String(32), nullable=False, index=True)

    total_delta = db.Column(db.Float, nullable=False, default=0.0)
    available_delta = db.Column(db.Float, nullable=False, default=0.0)
    total_after = db.Column(db.Float, nullable=False)
    available_after = db.Column(db.Float, nullable=False)

    packlist_id = db.Column(db.Integer, db.ForeignKey("packlists.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    actor_id = db.Column(db.String(128), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "reason": self.reason,
            "total_delta": self.total_delta,
            "available_delta": self.available_delta,
            "total_after": self.total_after,
            "available_after": self.available_after,
            "packlist_id": self.packlist_id,
            "order_id": self.order_id,
            "actor_id": self.actor_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
