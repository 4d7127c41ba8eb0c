# Overview: Service-layer operations for points of sale.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import PointOfSale
from ..validation import clean_text
from .concurrency import run_in_transaction


def get_pos(pos_id: int) -> PointOfSale:
    pos = db.session.get(PointOfSale, pos_id)
    if pos is None:
        raise NotFoundError(f"Point of sale {pos_id} not found")
    return pos


def list_pos(*, active_only: bool = False) -> list[PointOfSale]:
    query = db.session.query(PointOfSale)
    if active_only:
        query = query.filter(PointOfSale.active.is_(True))
    return query.order_by(PointOfSale.name.asc()).all()


def create_pos(*, name: str, location: str | None = None, notes: str | None = None, active: bool = True) -> PointOfSale:
    name = clean_text(name, "name", required=True, max_length=255)

    def _op():
        if db.session.query(PointOfSale).filter_by(name=name).first() is not None:
            raise ConflictError(f"Point of sale {name!r} already exists")
        pos = PointOfSale(
            name=name,
            location=clean_text(location, "location", max_length=255),
            notes=clean_text(notes, "notes"),
            active=bool(active),
        )
        db.session.add(pos)
        db.session.flush()
        return pos

    return run_in_transaction(_op)
