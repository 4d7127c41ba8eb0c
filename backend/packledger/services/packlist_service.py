# Overview: Packlist lifecycle engine; reservation at creation, settlement at the sold boundary.

"""
Packlist Lifecycle

STATE MACHINE (forward only):
    open -> currently_selling -> sold -> completed

    (none) -> open                 reserve planned_quantity of every item
                                   (current_stock -= planned), in the same
                                   transaction that inserts the packlist
    open -> currently_selling      record start_quantity (default planned)
    currently_selling -> sold      record end_quantity (default 0) and
                                   reported cash; compute expected cash
                                   and difference
    sold -> completed              admin review; closed_at set

RULES:
1. Reservation happens exactly once, at creation. Nothing later in the
   lifecycle returns unsold units to current_stock; leftovers are
   reconciled by a manual stock correction.
2. Overbooking is allowed: a reservation may drive current_stock negative.
   It is logged by the ledger, never raised.
3. Every transition re-reads the packlist under lock and checks the source
   state. A packlist that already moved on raises ConflictError; repeating
   completion raises AlreadyCompletedError. No effect is applied twice.
4. Input is validated before any transaction is opened.
"""
from __future__ import annotations

from datetime import date as date_type

from flask import current_app

from ..errors import AlreadyCompletedError, ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Packlist, PacklistItem, PacklistStatus, PointOfSale
from .. import settlement
from ..time_utils import utcnow
from ..validation import (
    clean_id_list,
    clean_text,
    coerce_money,
    coerce_quantity,
    quantity_map,
    require_date,
    require_id,
    require_items,
)
from .concurrency import lock_for_update, run_in_transaction
from .permission_service import Actor, has_capability, require_capability
from .stock_ledger import StockLedger, get_ledger


# ---------------------------------------------------------------------------
# Input normalisation (runs before any transaction)
# ---------------------------------------------------------------------------

def _normalize_new_items(items) -> list[dict]:
    items = require_items(items)
    if not items:
        raise ValidationError("A packlist needs at least one item")

    normalized = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        product_id = require_id(raw.get("product_id"), f"items[{index}].product_id")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once")
        seen.add(product_id)
        normalized.append({
            "product_id": product_id,
            "planned_quantity": coerce_quantity(raw.get("planned_quantity"), f"items[{index}].planned_quantity"),
            "special_price": coerce_money(raw.get("special_price"), f"items[{index}].special_price", allow_none=True),
            "note": clean_text(raw.get("note"), f"items[{index}].note", max_length=500),
        })
    return normalized


def _check_known_products(packlist: Packlist, quantities: dict[int, float]) -> None:
    known = {item.product_id for item in packlist.items}
    unknown = sorted(set(quantities) - known)
    if unknown:
        raise ValidationError(f"Products not on packlist {packlist.id}: {unknown}")


# ---------------------------------------------------------------------------
# Loading and guards
# ---------------------------------------------------------------------------

def _load_packlist(packlist_id: int, *, lock: bool = False) -> Packlist:
    query = db.session.query(Packlist).filter_by(id=packlist_id)
    if lock:
        query = lock_for_update(query)
    packlist = query.first()
    if packlist is None:
        raise NotFoundError(f"Packlist {packlist_id} not found")
    return packlist


def _guard_status(packlist: Packlist, expected: PacklistStatus) -> None:
    if packlist.status is expected:
        return
    if packlist.status.is_terminal:
        raise AlreadyCompletedError(f"Packlist {packlist.id} is already completed")
    raise ConflictError(
        f"Packlist {packlist.id} is {packlist.status.value}, expected {expected.value}"
    )


def _guard_seller(packlist: Packlist, actor: Actor) -> None:
    """Workers may only work on packlists they are assigned to."""
    if has_capability(actor, "packlists.complete"):
        return
    if actor.id not in (packlist.assigned_user_ids or []):
        raise PermissionDeniedError(f"Actor {actor.id} is not assigned to packlist {packlist.id}")


def _log_transition(packlist: Packlist, source: PacklistStatus | None, actor: Actor) -> None:
    current_app.logger.info(
        "Packlist %s: %s -> %s (actor=%s)",
        packlist.id,
        source.value if source else "none",
        packlist.status.value,
        actor.id,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_packlist(packlist_id: int) -> Packlist:
    return _load_packlist(packlist_id)


def list_packlists(
    *,
    statuses: list[PacklistStatus | str] | None = None,
    assigned_user_id: str | None = None,
) -> list[Packlist]:
    query = db.session.query(Packlist)
    if statuses:
        try:
            wanted = [PacklistStatus(s) for s in statuses]
        except ValueError:
            raise ValidationError(
                f"status must be one of: {', '.join(s.value for s in PacklistStatus)}"
            )
        query = query.filter(Packlist.status.in_(wanted))
    packlists = query.order_by(Packlist.date.desc(), Packlist.id.desc()).all()

    # JSON membership is not portable across backends; filter in Python
    if assigned_user_id:
        packlists = [p for p in packlists if assigned_user_id in (p.assigned_user_ids or [])]
    return packlists


def list_completed_packlists(*, since: date_type | None = None) -> list[Packlist]:
    query = db.session.query(Packlist).filter(Packlist.status == PacklistStatus.COMPLETED)
    if since is not None:
        query = query.filter(Packlist.date >= since)
    return query.order_by(Packlist.date.asc(), Packlist.id.asc()).all()


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def create_packlist(
    *,
    pos_id,
    date,
    items,
    actor: Actor,
    assigned_user_ids=None,
    change_amount=0.0,
    note: str | None = None,
    template_id: int | None = None,
    ledger: StockLedger | None = None,
) -> Packlist:
    """
    Create a packlist in `open` and reserve every item's planned quantity.

    Packlist insert and all reservations are one transaction: a missing
    product aborts the whole creation and leaves no ledger change behind.
    Insufficient stock does not abort; the ledger logs the overbooking.
    """
    pos_id = require_id(pos_id, "pos_id")
    packlist_date = require_date(date, "date")
    lines = _normalize_new_items(items)
    change = coerce_money(change_amount, "change_amount")
    assigned = clean_id_list(assigned_user_ids, "assigned_user_ids")
    note = clean_text(note, "note")
    ledger = get_ledger(ledger)

    def _op():
        pos = db.session.get(PointOfSale, pos_id)
        if pos is None:
            raise NotFoundError(f"Point of sale {pos_id} not found")

        packlist = Packlist(
            pos_id=pos.id,
            pos_name=pos.name,
            status=PacklistStatus.OPEN,
            date=packlist_date,
            assigned_user_ids=assigned,
            change_amount=change,
            note=note,
            template_id=template_id,
            created_by=actor.id,
        )
        db.session.add(packlist)
        db.session.flush()

        # Ledger rows are touched in product-id order to keep lock order stable
        for line in sorted(lines, key=lambda l: l["product_id"]):
            product = ledger.get_row(line["product_id"], lock=True)
            if not product.is_active:
                raise ValidationError(f"Product {product.id} is inactive")
            line["product"] = product

        for position, line in enumerate(lines):
            product = line["product"]
            packlist.items.append(PacklistItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                unit_type=product.unit_type,
                unit_label=product.unit_label,
                base_price=product.base_price,
                special_price=line["special_price"],
                planned_quantity=line["planned_quantity"],
                note=line["note"],
            ))

        for line in sorted(lines, key=lambda l: l["product_id"]):
            if line["planned_quantity"] == 0:
                continue
            ledger.adjust_available(
                line["product_id"],
                -line["planned_quantity"],
                actor_id=actor.id,
                packlist_id=packlist.id,
            )

        db.session.flush()
        return packlist

    packlist = run_in_transaction(_op)
    _log_transition(packlist, None, actor)
    return packlist


def update_packlist_details(packlist_id: int, patch: dict, *, actor: Actor) -> Packlist:
    """
    Edit header fields while the packlist is still `open`.

    Items and quantities are not editable here: the reservation made at
    creation is the one and only ledger effect of a packlist.
    """
    cleaned: dict = {}
    if "date" in patch:
        cleaned["date"] = require_date(patch["date"], "date")
    if "assigned_user_ids" in patch:
        cleaned["assigned_user_ids"] = clean_id_list(patch["assigned_user_ids"], "assigned_user_ids")
    if "note" in patch:
        cleaned["note"] = clean_text(patch["note"], "note")
    if "change_amount" in patch:
        cleaned["change_amount"] = coerce_money(patch["change_amount"], "change_amount")

    def _op():
        packlist = _load_packlist(packlist_id, lock=True)
        _guard_status(packlist, PacklistStatus.OPEN)
        for key, value in cleaned.items():
            setattr(packlist, key, value)
        return packlist

    packlist = run_in_transaction(_op)
    current_app.logger.info("Packlist %s details updated by %s: %s", packlist.id, actor.id, sorted(cleaned))
    return packlist


def start_selling(packlist_id: int, *, actor: Actor, start_quantities=None) -> Packlist:
    """
    open -> currently_selling.

    Records what physically left the warehouse. Items without an explicit
    start quantity start with their planned quantity. No ledger effect.
    """
    quantities = quantity_map(start_quantities, "start_quantity")

    def _op():
        packlist = _load_packlist(packlist_id, lock=True)
        _guard_status(packlist, PacklistStatus.OPEN)
        _guard_seller(packlist, actor)
        _check_known_products(packlist, quantities)

        for item in packlist.items:
            item.start_quantity = quantities.get(item.product_id, item.planned_quantity)

        packlist.status = packlist.status.next_status
        packlist.started_by = actor.id
        return packlist

    packlist = run_in_transaction(_op)
    _log_transition(packlist, PacklistStatus.OPEN, actor)
    return packlist


def finish_selling(
    packlist_id: int,
    *,
    actor: Actor,
    reported_cash,
    end_quantities=None,
    worker_note: str | None = None,
) -> Packlist:
    """
    currently_selling -> sold.

    Records leftovers (default 0) and the counted cash, then settles:
        sold_quantity = max(0, start - end)
        expected_cash = change_amount + sum(sold_quantity * effective_price)
        difference    = reported_cash - expected_cash
    No ledger effect.
    """
    quantities = quantity_map(end_quantities, "end_quantity")
    cash = coerce_money(reported_cash, "reported_cash")
    worker_note = clean_text(worker_note, "worker_note") or None

    def _op():
        packlist = _load_packlist(packlist_id, lock=True)
        _guard_status(packlist, PacklistStatus.CURRENTLY_SELLING)
        _guard_seller(packlist, actor)
        _check_known_products(packlist, quantities)

        for item in packlist.items:
            item.end_quantity = quantities.get(item.product_id, 0.0)

        expected = settlement.expected_cash(packlist.change_amount, packlist.items)
        packlist.expected_cash = expected
        packlist.reported_cash = cash
        packlist.difference = settlement.cash_difference(cash, expected)
        packlist.worker_note = worker_note
        packlist.status = packlist.status.next_status
        packlist.sold_by = actor.id
        return packlist

    packlist = run_in_transaction(_op)
    _log_transition(packlist, PacklistStatus.CURRENTLY_SELLING, actor)
    if packlist.difference:
        current_app.logger.info(
            "Packlist %s cash difference %+.2f (expected %.2f, reported %.2f)",
            packlist.id,
            packlist.difference,
            packlist.expected_cash,
            packlist.reported_cash,
        )
    return packlist


def complete_packlist(packlist_id: int, *, actor: Actor) -> Packlist:
    """
    sold -> completed (admin review).

    Reservations stay consumed; nothing is returned to the ledger.
    A second call raises AlreadyCompletedError.
    """
    require_capability(actor, "packlists.complete")

    def _op():
        packlist = _load_packlist(packlist_id, lock=True)
        _guard_status(packlist, PacklistStatus.SOLD)
        packlist.status = packlist.status.next_status
        packlist.completed_by = actor.id
        packlist.closed_at = utcnow()
        return packlist

    packlist = run_in_transaction(_op)
    _log_transition(packlist, PacklistStatus.SOLD, actor)
    return packlist
