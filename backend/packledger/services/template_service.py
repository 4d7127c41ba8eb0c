# Overview: Packlist and order templates, and instantiating aggregates from them.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    OrderTemplate,
    OrderTemplateItem,
    PacklistTemplate,
    PacklistTemplateItem,
)
from ..validation import (
    clean_text,
    coerce_money,
    coerce_quantity,
    quantity_map,
    require_id,
    require_items,
)
from . import order_service, packlist_service
from .concurrency import run_in_transaction
from .permission_service import Actor
from .stock_ledger import StockLedger, get_ledger


def _template_lines(items, quantity_field: str, *, with_prices: bool) -> list[dict]:
    items = require_items(items)
    if not items:
        raise ValidationError("A template needs at least one item")
    lines = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        product_id = require_id(raw.get("product_id"), f"items[{index}].product_id")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once")
        seen.add(product_id)
        line = {
            "product_id": product_id,
            "default_quantity": coerce_quantity(raw.get(quantity_field), f"items[{index}].{quantity_field}"),
            "note": clean_text(raw.get("note"), f"items[{index}].note", max_length=500),
        }
        if with_prices:
            line["special_price"] = coerce_money(
                raw.get("special_price"), f"items[{index}].special_price", allow_none=True
            )
        lines.append(line)
    return lines


# ---------------------------------------------------------------------------
# Packlist templates
# ---------------------------------------------------------------------------

def get_packlist_template(template_id: int) -> PacklistTemplate:
    template = db.session.get(PacklistTemplate, template_id)
    if template is None:
        raise NotFoundError(f"Packlist template {template_id} not found")
    return template


def list_packlist_templates() -> list[PacklistTemplate]:
    return db.session.query(PacklistTemplate).order_by(PacklistTemplate.name.asc()).all()


def create_packlist_template(
    *,
    name: str,
    items,
    actor: Actor,
    description: str | None = None,
    default_pos_id=None,
    change_amount=None,
    note: str | None = None,
    ledger: StockLedger | None = None,
) -> PacklistTemplate:
    name = clean_text(name, "name", required=True, max_length=255)
    lines = _template_lines(items, "default_quantity", with_prices=True)
    pos_id = require_id(default_pos_id, "default_pos_id") if default_pos_id is not None else None
    change = coerce_money(change_amount, "change_amount", allow_none=True)
    ledger = get_ledger(ledger)

    def _op():
        template = PacklistTemplate(
            name=name,
            description=clean_text(description, "description"),
            default_pos_id=pos_id,
            change_amount=change,
            note=clean_text(note, "note"),
            created_by=actor.id,
        )
        db.session.add(template)
        for position, line in enumerate(lines):
            product = ledger.get_row(line["product_id"])
            template.items.append(PacklistTemplateItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                unit_type=product.unit_type,
                unit_label=product.unit_label,
                base_price=product.base_price,
                special_price=line["special_price"],
                default_quantity=line["default_quantity"],
                note=line["note"],
            ))
        db.session.flush()
        return template

    return run_in_transaction(_op)


def create_packlist_from_template(
    template_id: int,
    *,
    date,
    actor: Actor,
    pos_id=None,
    quantities=None,
    assigned_user_ids=None,
    change_amount=None,
    note: str | None = None,
    ledger: StockLedger | None = None,
):
    """
    Build items from the template and run the normal creation transaction.

    quantities overrides default quantities per product; prices are
    snapshotted from the live product at creation, special prices come
    from the template.
    """
    overrides = quantity_map(quantities, "planned_quantity")
    template = get_packlist_template(template_id)

    unknown = sorted(set(overrides) - {item.product_id for item in template.items})
    if unknown:
        raise ValidationError(f"Products not on template {template.id}: {unknown}")

    target_pos = pos_id if pos_id is not None else template.default_pos_id
    if target_pos is None:
        raise ValidationError("pos_id is required (template has no default point of sale)")

    items = [
        {
            "product_id": item.product_id,
            "planned_quantity": overrides.get(item.product_id, item.default_quantity),
            "special_price": item.special_price,
            "note": item.note,
        }
        for item in template.items
    ]
    change = change_amount if change_amount is not None else (template.change_amount or 0.0)

    return packlist_service.create_packlist(
        pos_id=target_pos,
        date=date,
        items=items,
        actor=actor,
        assigned_user_ids=assigned_user_ids,
        change_amount=change,
        note=note if note is not None else template.note,
        template_id=template.id,
        ledger=ledger,
    )


# ---------------------------------------------------------------------------
# Order templates
# ---------------------------------------------------------------------------

def get_order_template(template_id: int) -> OrderTemplate:
    template = db.session.get(OrderTemplate, template_id)
    if template is None:
        raise NotFoundError(f"Order template {template_id} not found")
    return template


def list_order_templates() -> list[OrderTemplate]:
    return db.session.query(OrderTemplate).order_by(OrderTemplate.name.asc()).all()


def create_order_template(
    *,
    name: str,
    items,
    actor: Actor,
    description: str | None = None,
    note: str | None = None,
    ledger: StockLedger | None = None,
) -> OrderTemplate:
    name = clean_text(name, "name", required=True, max_length=255)
    lines = _template_lines(items, "default_quantity", with_prices=False)
    ledger = get_ledger(ledger)

    def _op():
        template = OrderTemplate(
            name=name,
            description=clean_text(description, "description"),
            note=clean_text(note, "note"),
            created_by=actor.id,
        )
        db.session.add(template)
        for position, line in enumerate(lines):
            product = ledger.get_row(line["product_id"])
            template.items.append(OrderTemplateItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                unit_type=product.unit_type,
                unit_label=product.unit_label,
                default_quantity=line["default_quantity"],
                note=line["note"],
            ))
        db.session.flush()
        return template

    return run_in_transaction(_op)


def create_order_from_template(
    template_id: int,
    *,
    expected_arrival_date,
    actor: Actor,
    quantities=None,
    order_date=None,
    name: str | None = None,
    ledger: StockLedger | None = None,
):
    overrides = quantity_map(quantities, "ordered_quantity")
    template = get_order_template(template_id)

    unknown = sorted(set(overrides) - {item.product_id for item in template.items})
    if unknown:
        raise ValidationError(f"Products not on template {template.id}: {unknown}")

    items = [
        {
            "product_id": item.product_id,
            "ordered_quantity": overrides.get(item.product_id, item.default_quantity),
            "note": item.note,
        }
        for item in template.items
    ]
    return order_service.create_order(
        items=items,
        actor=actor,
        expected_arrival_date=expected_arrival_date,
        order_date=order_date,
        name=name if name is not None else template.name,
        note=template.note,
        template_id=template.id,
        ledger=ledger,
    )
