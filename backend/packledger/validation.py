from __future__ import annotations

import math
from datetime import date
from typing import Any

from packledger.errors import ValidationError
from packledger.time_utils import parse_calendar_date


# Guards against nonsensical values overflowing float columns or reports
MAX_QUANTITY = 1_000_000
MAX_MONEY = 10_000_000


def coerce_number(value: Any, field: str, *, allow_none: bool = False) -> float | None:
    """
    Strict numeric coercion for quantities and money.

    Accepts int/float and plain numeric strings. Rejects booleans, NaN,
    infinity and scientific notation in strings.
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            if allow_none:
                return None
            raise ValidationError(f"{field} is required")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain number (scientific notation not allowed)")
        try:
            number = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number")
    return number


def coerce_quantity(value: Any, field: str, *, allow_none: bool = False) -> float | None:
    number = coerce_number(value, field, allow_none=allow_none)
    if number is None:
        return None
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    if number > MAX_QUANTITY:
        raise ValidationError(f"{field} exceeds maximum of {MAX_QUANTITY}")
    return number


def coerce_money(value: Any, field: str, *, allow_none: bool = False) -> float | None:
    number = coerce_number(value, field, allow_none=allow_none)
    if number is None:
        return None
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    if number > MAX_MONEY:
        raise ValidationError(f"{field} exceeds maximum of {MAX_MONEY}")
    return number


def coerce_stock_level(value: Any, field: str) -> float:
    """Stock totals may be any finite number; manual counts can correct below zero."""
    number = coerce_number(value, field)
    if abs(number) > MAX_QUANTITY:
        raise ValidationError(f"{field} exceeds maximum of {MAX_QUANTITY}")
    return number


def require_date(value: Any, field: str) -> date:
    try:
        parsed = parse_calendar_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")
    if parsed is None:
        raise ValidationError(f"{field} is required")
    return parsed


def optional_date(value: Any, field: str) -> date | None:
    if value is None:
        return None
    return require_date(value, field)


def require_id(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer id")


def clean_text(value: Any, field: str, *, required: bool = False, max_length: int = 2000) -> str:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return ""
    text = str(value).strip()
    if required and not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds maximum length of {max_length}")
    return text


def clean_id_list(value: Any, field: str) -> list[str]:
    """Actor ids come from the external identity provider and are opaque strings."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field} must be a list")
    cleaned = []
    for raw in value:
        item = str(raw).strip()
        if not item:
            raise ValidationError(f"{field} cannot contain empty ids")
        if item not in cleaned:
            cleaned.append(item)
    return cleaned


def require_items(value: Any, field: str = "items") -> list[dict]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field} must be a list")
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValidationError(f"{field}[{index}] must be an object")
    return list(value)


def quantity_map(entries: Any, field: str) -> dict[int, float]:
    """
    Per-product quantities for a transition.

    Accepts {product_id: qty} or [{"product_id": .., field: ..}, ...].
    Every quantity must be >= 0; a product may appear only once.
    """
    if entries is None:
        return {}

    if isinstance(entries, dict):
        pairs = list(entries.items())
    elif isinstance(entries, (list, tuple)):
        pairs = []
        for index, raw in enumerate(entries):
            if not isinstance(raw, dict):
                raise ValidationError(f"{field}[{index}] must be an object")
            pairs.append((raw.get("product_id"), raw.get(field)))
    else:
        raise ValidationError(f"{field} must be a list or a mapping")

    result: dict[int, float] = {}
    for key, value in pairs:
        product_id = require_id(key, "product_id")
        if product_id in result:
            raise ValidationError(f"Product {product_id} appears more than once")
        result[product_id] = coerce_quantity(value, field)
    return result
