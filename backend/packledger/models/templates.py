from __future__ import annotations

from ..extensions import db
from packledger.time_utils import to_utc_z
from .catalog import unit_type_column


class PacklistTemplate(db.Model):
    """Reusable packlist layout (default stand, float and product quantities)."""
    __tablename__ = "packlist_templates"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    default_pos_id = db.Column(db.Integer, db.ForeignKey("points_of_sale.id"), nullable=True)
    change_amount = db.Column(db.Float, nullable=True)
    note = db.Column(db.Text, nullable=False, default="")

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "PacklistTemplateItem",
        cascade="all, delete-orphan",
        order_by="PacklistTemplateItem.position",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "default_pos_id": self.default_pos_id,
            "change_amount": self.change_amount,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }


class PacklistTemplateItem(db.Model):
    __tablename__ = "packlist_template_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey("packlist_templates.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False, default="")
    unit_type = unit_type_column(nullable=False)
    unit_label = db.Column(db.String(32), nullable=False)
    base_price = db.Column(db.Float, nullable=False)
    special_price = db.Column(db.Float, nullable=True)
    default_quantity = db.Column(db.Float, nullable=False)
    note = db.Column(db.Text, nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_type": self.unit_type.value,
            "unit_label": self.unit_label,
            "base_price": self.base_price,
            "special_price": self.special_price,
            "default_quantity": self.default_quantity,
            "note": self.note,
        }


class OrderTemplate(db.Model):
    """Reusable supplier order (typical weekly delivery)."""
    __tablename__ = "order_templates"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    note = db.Column(db.Text, nullable=False, default="")

    created_by = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "OrderTemplateItem",
        cascade="all, delete-orphan",
        order_by="OrderTemplateItem.position",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }


class OrderTemplateItem(db.Model):
    __tablename__ = "order_template_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey("order_templates.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False, default="")
    unit_type = unit_type_column(nullable=False)
    unit_label = db.Column(db.String(32), nullable=False)
    default_quantity = db.Column(db.Float, nullable=False)
    note = db.Column(db.Text, nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_type": self.unit_type.value,
            "unit_label": self.unit_label,
            "default_quantity": self.default_quantity,
            "note": self.note,
        }
