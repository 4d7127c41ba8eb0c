# Overview: Revenue aggregation over completed packlists; pure, read-side, no database access.

"""
Revenue Aggregation

Input is a caller-supplied collection of completed packlists (ORM rows or
any objects exposing the same attributes). Output is a daily revenue
series per point of sale and per product, sorted by total revenue.

- Window: last 30/90/180 days or "all", by packlist date, inclusive of the
  boundary day.
- Line revenue: max(0, (start ?? planned) - (end ?? 0)) * (special ?? base).
- Bucket key is (entity, packlist calendar day).
- Sums use math.fsum per bucket and ties sort by entity id, so the result
  is identical for any input order.
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from ..errors import ValidationError
from .. import settlement
from ..time_utils import today_utc


TIME_RANGES = {"30": 30, "90": 90, "180": 180, "all": None}

# x-axis span used for "all"
ALL_TIME_CHART_DAYS = 365


@dataclass(frozen=True)
class DailyRevenue:
    date: str
    revenue: float

    def to_dict(self) -> dict:
        return {"date": self.date, "revenue": self.revenue}


@dataclass(frozen=True)
class EntityRevenue:
    entity_id: int | str
    entity_name: str
    daily: tuple[DailyRevenue, ...]
    total_revenue: float

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "daily": [point.to_dict() for point in self.daily],
            "total_revenue": self.total_revenue,
        }


@dataclass(frozen=True)
class RevenueReport:
    time_range: str
    by_pos: tuple[EntityRevenue, ...] = field(default_factory=tuple)
    by_product: tuple[EntityRevenue, ...] = field(default_factory=tuple)
    has_data: bool = False

    def to_dict(self) -> dict:
        return {
            "time_range": self.time_range,
            "by_pos": [entity.to_dict() for entity in self.by_pos],
            "by_product": [entity.to_dict() for entity in self.by_product],
            "has_data": self.has_data,
        }


def parse_time_range(value) -> str:
    key = str(value).strip().lower() if value is not None else "all"
    if key not in TIME_RANGES:
        raise ValidationError(f"time range must be one of: {', '.join(TIME_RANGES)}")
    return key


def _calendar_day(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def window_start(time_range: str, today: date | None = None) -> date | None:
    """First calendar day inside the window, or None for "all"."""
    days = TIME_RANGES[parse_time_range(time_range)]
    if days is None:
        return None
    return (today or today_utc()) - timedelta(days=days)


def filter_by_time_range(packlists: Iterable, time_range: str, today: date | None = None) -> list:
    cutoff = window_start(time_range, today)
    if cutoff is None:
        return list(packlists)
    return [p for p in packlists if _calendar_day(p.date) >= cutoff]


def get_date_range(time_range: str, today: date | None = None) -> tuple[date, date]:
    """Chart x-axis bounds; "all" spans the last year."""
    end = today or today_utc()
    days = TIME_RANGES[parse_time_range(time_range)]
    return end - timedelta(days=days if days is not None else ALL_TIME_CHART_DAYS), end


class _Accumulator:
    """(entity, day) -> line revenues, plus a stable display name per entity."""

    def __init__(self):
        self.buckets: dict = defaultdict(lambda: defaultdict(list))
        self.names: dict = {}

    def add(self, entity_id, name: str, day: date, revenue: float) -> None:
        self.buckets[entity_id][day].append(revenue)
        # Latest day wins; ties resolved by name so input order never matters
        candidate = (day, name or "")
        current = self.names.get(entity_id)
        if current is None or candidate > current:
            self.names[entity_id] = candidate

    def materialize(self) -> tuple[EntityRevenue, ...]:
        entities = []
        for entity_id, days in self.buckets.items():
            daily = tuple(
                DailyRevenue(date=day.isoformat(), revenue=math.fsum(days[day]))
                for day in sorted(days)
            )
            all_lines = [value for day in sorted(days) for value in sorted(days[day])]
            name = self.names[entity_id][1] or str(entity_id)
            entities.append(EntityRevenue(
                entity_id=entity_id,
                entity_name=name,
                daily=daily,
                total_revenue=math.fsum(all_lines),
            ))
        entities.sort(key=lambda e: (-e.total_revenue, e.entity_id))
        return tuple(entities)


def compute_revenue(packlists: Iterable, time_range="all", *, today: date | None = None) -> RevenueReport:
    """
    Aggregate revenue from completed packlists.

    has_data is False only when no packlists were supplied at all; an empty
    window over existing data still reports has_data=True.
    """
    key = parse_time_range(time_range)
    packlists = list(packlists)
    if not packlists:
        return RevenueReport(time_range=key, has_data=False)

    by_pos = _Accumulator()
    by_product = _Accumulator()

    for packlist in filter_by_time_range(packlists, key, today):
        day = _calendar_day(packlist.date)
        for item in packlist.items:
            revenue = settlement.line_revenue(item)
            by_pos.add(packlist.pos_id, packlist.pos_name, day, revenue)
            by_product.add(item.product_id, item.product_name, day, revenue)

    return RevenueReport(
        time_range=key,
        by_pos=by_pos.materialize(),
        by_product=by_product.materialize(),
        has_data=True,
    )


def prepare_chart_series(entities: Iterable[EntityRevenue], selected_ids) -> list[dict]:
    """
    One row per date across the selected entities, 0.0 where an entity had
    no revenue that day. Keys are the entity ids.
    """
    wanted = set(selected_ids or [])
    selected = [e for e in entities if e.entity_id in wanted]
    if not selected:
        return []

    lookup = {e.entity_id: {p.date: p.revenue for p in e.daily} for e in selected}
    all_dates = sorted({p.date for e in selected for p in e.daily})

    rows = []
    for day in all_dates:
        row: dict = {"date": day}
        for entity in selected:
            row[entity.entity_id] = lookup[entity.entity_id].get(day, 0.0)
        rows.append(row)
    return rows
