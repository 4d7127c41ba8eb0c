from __future__ import annotations

import enum

from ..extensions import db
from packledger import settlement
from packledger.time_utils import to_utc_z, to_iso_date
from .catalog import unit_type_column


class PacklistStatus(str, enum.Enum):
    OPEN = "open"
    CURRENTLY_SELLING = "currently_selling"
    SOLD = "sold"
    COMPLETED = "completed"

    @property
    def next_status(self) -> "PacklistStatus | None":
        return PACKLIST_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return PACKLIST_TRANSITIONS[self] is None


# Forward-only lifecycle. No backward transition is exposed.
PACKLIST_TRANSITIONS = {
    PacklistStatus.OPEN: PacklistStatus.CURRENTLY_SELLING,
    PacklistStatus.CURRENTLY_SELLING: PacklistStatus.SOLD,
    PacklistStatus.SOLD: PacklistStatus.COMPLETED,
    PacklistStatus.COMPLETED: None,
}


def packlist_status_column(**kwargs):
    return db.Column(
        db.Enum(
            PacklistStatus,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class Packlist(db.Model):
    """
    One sales outing of a point of sale.

    LIFECYCLE:
    1. open: created; planned quantities reserved against current_stock
    2. currently_selling: worker confirmed what left the warehouse
    3. sold: worker confirmed leftovers and counted cash
    4. completed: admin reviewed and closed

    Reservations are consumed, never returned: unsold leftovers come back
    into available stock only through a manual stock correction.
    """
    __tablename__ = "packlists"
    __table_args__ = (
        db.Index("ix_packlists_status_date", "status", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    pos_id = db.Column(db.Integer, db.ForeignKey("points_of_sale.id"), nullable=False, index=True)
    # Snapshot so statistics keep the name the stand had on the day
    pos_name = db.Column(db.String(255), nullable=False, default="")

    status = packlist_status_column(nullable=False, default=PacklistStatus.OPEN, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    assigned_user_ids = db.Column(db.JSON, nullable=False, default=list)
    change_amount = db.Column(db.Float, nullable=False, default=0.0)
    note = db.Column(db.Text, nullable=False, default="")
    worker_note = db.Column(db.Text, nullable=True)
    template_id = db.Column(db.Integer, db.ForeignKey("packlist_templates.id"), nullable=True)

    # Populated at the sold boundary
    expected_cash = db.Column(db.Float, nullable=True)
    reported_cash = db.Column(db.Float, nullable=True)
    difference = db.Column(db.Float, nullable=True)

    created_by = db.Column(db.String(128), nullable=False)
    started_by = db.Column(db.String(128), nullable=True)
    sold_by = db.Column(db.String(128), nullable=True)
    completed_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    pos = db.relationship("PointOfSale")
    items = db.relationship(
        "PacklistItem",
        back_populates="packlist",
        cascade="all, delete-orphan",
        order_by="PacklistItem.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Packlist id={self.id} pos_id={self.pos_id} status={self.status.value} date={self.date}>"

    def item_for_product(self, product_id: int) -> "PacklistItem | None":
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def revenue(self) -> float:
        return settlement.total_revenue(self.items)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "pos_id": self.pos_id,
            "pos_name": self.pos_name,
            "status": self.status.value,
            "date": to_iso_date(self.date),
            "assigned_user_ids": list(self.assigned_user_ids or []),
            "change_amount": self.change_amount,
            "note": self.note,
            "worker_note": self.worker_note,
            "template_id": self.template_id,
            "expected_cash": self.expected_cash,
            "reported_cash": self.reported_cash,
            "difference": self.difference,
            "created_by": self.created_by,
            "started_by": self.started_by,
            "sold_by": self.sold_by,
            "completed_by": self.completed_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "closed_at": to_utc_z(self.closed_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PacklistItem(db.Model):
    """
    One line of a packlist.

    product_id, names, unit and prices are a snapshot taken at creation.
    planned/start/end quantities are the only mutable fields.
    """
    __tablename__ = "packlist_items"
    __table_args__ = (
        db.UniqueConstraint("packlist_id", "product_id", name="uq_packlist_items_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    packlist_id = db.Column(db.Integer, db.ForeignKey("packlists.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Reference key only; the line does not share identity with the product row
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False, default="")
    unit_type = unit_type_column(nullable=False)
    unit_label = db.Column(db.String(32), nullable=False)
    base_price = db.Column(db.Float, nullable=False)
    special_price = db.Column(db.Float, nullable=True)

    planned_quantity = db.Column(db.Float, nullable=False)
    start_quantity = db.Column(db.Float, nullable=True)
    end_quantity = db.Column(db.Float, nullable=True)

    note = db.Column(db.Text, nullable=False, default="")

    packlist = db.relationship("Packlist", back_populates="items")

    @property
    def effective_start_quantity(self) -> float:
        return settlement.effective_start_quantity(self.planned_quantity, self.start_quantity)

    @property
    def sold_quantity(self) -> float:
        return settlement.sold_quantity(self.planned_quantity, self.start_quantity, self.end_quantity)

    @property
    def effective_price(self) -> float:
        return settlement.effective_price(self.base_price, self.special_price)

    @property
    def line_revenue(self) -> float:
        return settlement.line_revenue(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_type": self.unit_type.value,
            "unit_label": self.unit_label,
            "base_price": self.base_price,
            "special_price": self.special_price,
            "planned_quantity": self.planned_quantity,
            "start_quantity": self.start_quantity,
            "end_quantity": self.end_quantity,
            "sold_quantity": self.sold_quantity,
            "line_revenue": self.line_revenue,
            "note": self.note,
        }
