from __future__ import annotations

import enum

from ..extensions import db
from packledger.time_utils import to_utc_z


class UnitType(str, enum.Enum):
    """
    Closed set of selling units.

    Stored by value. The legacy value "weight" (before grams existed) is
    read as kilograms.
    """
    PIECE = "piece"
    WEIGHT_KG = "weight-kg"
    WEIGHT_G = "weight-g"

    @classmethod
    def parse(cls, value) -> "UnitType":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        if raw in ("weight", "kg"):
            return cls.WEIGHT_KG
        if raw == "g":
            return cls.WEIGHT_G
        return cls(raw)

    @property
    def is_weight(self) -> bool:
        return self is not UnitType.PIECE

    @property
    def default_label(self) -> str:
        return DEFAULT_UNIT_LABELS[self]


DEFAULT_UNIT_LABELS = {
    UnitType.PIECE: "Stück",
    UnitType.WEIGHT_KG: "kg",
    UnitType.WEIGHT_G: "g",
}


def unit_type_column(**kwargs):
    return db.Column(
        db.Enum(
            UnitType,
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class Product(db.Model):
    """
    Product master data and its ledger row.

    STOCK SEMANTICS:
    - total_stock: durable count of owned physical inventory.
    - current_stock: available count, i.e. what is neither reserved by a
      packlist nor sold. May go negative: packlist reservations are allowed
      to overbook and the shortfall is reconciled by a later manual count.

    Stock columns are only written through StockLedger (delta based).
    Products are never deleted; is_active retires them from selection.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    unit_type = unit_type_column(nullable=False, default=UnitType.PIECE)
    unit_label = db.Column(db.String(32), nullable=False)
    base_price = db.Column(db.Float, nullable=False, default=0.0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    total_stock = db.Column(db.Float, nullable=False, default=0.0)
    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    last_stock_updated_by = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<Product id={self.id} sku={self.sku!r} total={self.total_stock} "
            f"current={self.current_stock}>"
        )

    @property
    def reserved_stock(self) -> float:
        return self.total_stock - self.current_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "unit_type": self.unit_type.value,
            "unit_label": self.unit_label,
            "base_price": self.base_price,
            "is_active": self.is_active,
            "total_stock": self.total_stock,
            "current_stock": self.current_stock,
            "last_stock_updated_by": self.last_stock_updated_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PointOfSale(db.Model):
    """A market stand or shop location that packlists are sent to."""
    __tablename__ = "points_of_sale"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_points_of_sale_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "notes": self.notes,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
