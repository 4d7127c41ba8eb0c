from __future__ import annotations

import enum
import math

from ..extensions import db
from packledger.time_utils import to_utc_z, to_iso_date
from .catalog import UnitType, unit_type_column


class OrderStatus(str, enum.Enum):
    OPEN = "open"
    CHECK_PENDING = "check_pending"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is OrderStatus.COMPLETED


# open -> check_pending is the "delivery arrived, being checked" step;
# confirmation may happen from either non-terminal state.
ORDER_TRANSITIONS = {
    OrderStatus.OPEN: {OrderStatus.CHECK_PENDING, OrderStatus.COMPLETED},
    OrderStatus.CHECK_PENDING: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
}


def order_status_column(**kwargs):
    return db.Column(
        db.Enum(
            OrderStatus,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class Order(db.Model):
    """
    One supplier purchase.

    total_kg / total_pieces are derived from the items' snapshot unit type,
    never from the live product, and are recomputed whenever items change.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_arrival", "status", "expected_arrival_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=True)

    status = order_status_column(nullable=False, default=OrderStatus.OPEN, index=True)
    order_date = db.Column(db.Date, nullable=False)
    expected_arrival_date = db.Column(db.Date, nullable=False, index=True)

    note = db.Column(db.Text, nullable=False, default="")
    template_id = db.Column(db.Integer, db.ForeignKey("order_templates.id"), nullable=True)

    total_kg = db.Column(db.Float, nullable=False, default=0.0)
    total_pieces = db.Column(db.Float, nullable=False, default=0.0)

    confirmed_by = db.Column(db.String(128), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status.value} arrival={self.expected_arrival_date}>"

    def recompute_totals(self) -> None:
        kg = []
        pieces = []
        for item in self.items:
            if item.unit_type is UnitType.PIECE:
                pieces.append(item.ordered_quantity)
            elif item.unit_type is UnitType.WEIGHT_G:
                kg.append(item.ordered_quantity / 1000.0)
            else:
                kg.append(item.ordered_quantity)
        self.total_kg = math.fsum(kg)
        self.total_pieces = math.fsum(pieces)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "order_date": to_iso_date(self.order_date),
            "expected_arrival_date": to_iso_date(self.expected_arrival_date),
            "note": self.note,
            "template_id": self.template_id,
            "total_kg": self.total_kg,
            "total_pieces": self.total_pieces,
            "confirmed_by": self.confirmed_by,
            "confirmed_at": to_utc_z(self.confirmed_at),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_items_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False, default="")
    # Snapshot taken at creation; later product unit changes do not apply
    unit_type = unit_type_column(nullable=False)
    unit_label = db.Column(db.String(32), nullable=False)

    ordered_quantity = db.Column(db.Float, nullable=False)
    received_quantity = db.Column(db.Float, nullable=True)
    note = db.Column(db.Text, nullable=False, default="")

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_type": self.unit_type.value,
            "unit_label": self.unit_label,
            "ordered_quantity": self.ordered_quantity,
            "received_quantity": self.received_quantity,
            "note": self.note,
        }
