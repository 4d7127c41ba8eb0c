"""
Revenue aggregation tests (pure, no database).

Verifies:
- Window filtering is inclusive of the boundary day
- Line revenue rules (start/end defaults, sold floor, special price)
- Per-POS and per-product daily series, sorted by total revenue
- Identical output for any input order
- has_data distinguishes "no packlists" from "nothing in range"
"""

import random
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from packledger.errors import ValidationError
from packledger.services import revenue_service


TODAY = date(2024, 6, 30)


def _item(product_id, planned, *, start=None, end=None, price=1.0, special=None, name=None):
    return SimpleNamespace(
        product_id=product_id,
        product_name=name or f"Product {product_id}",
        planned_quantity=planned,
        start_quantity=start,
        end_quantity=end,
        base_price=price,
        special_price=special,
    )


def _packlist(pos_id, day, *items, pos_name=None):
    return SimpleNamespace(pos_id=pos_id, pos_name=pos_name or f"POS {pos_id}", date=day, items=list(items))


def test_empty_input_has_no_data():
    report = revenue_service.compute_revenue([], "30", today=TODAY)
    assert report.has_data is False
    assert report.by_pos == ()
    assert report.by_product == ()


def test_nothing_in_window_still_has_data():
    old = _packlist(1, date(2023, 1, 1), _item(1, 5))
    report = revenue_service.compute_revenue([old], "30", today=TODAY)
    assert report.has_data is True
    assert report.by_pos == ()


def test_boundary_day_is_included():
    boundary = _packlist(1, date(2024, 5, 31), _item(1, 1, price=10))
    outside = _packlist(1, date(2024, 5, 30), _item(1, 1, price=100))

    report = revenue_service.compute_revenue([boundary, outside], "30", today=TODAY)

    assert report.by_pos[0].total_revenue == 10
    assert [p.date for p in report.by_pos[0].daily] == ["2024-05-31"]


def test_all_range_is_unbounded():
    ancient = _packlist(1, date(2001, 1, 1), _item(1, 1, price=3))
    report = revenue_service.compute_revenue([ancient], "all", today=TODAY)
    assert report.by_pos[0].total_revenue == 3


def test_line_revenue_rules():
    packlist = _packlist(
        1,
        TODAY,
        _item(1, 10, price=2.0),                        # start=planned, end=0 -> 20
        _item(2, 10, start=8, end=3, price=1.5),        # 5 * 1.5 -> 7.5
        _item(3, 4, start=4, end=6, price=9.0),         # floored -> 0
        _item(4, 2, price=5.0, special=3.0),            # special price -> 6
    )
    report = revenue_service.compute_revenue([packlist], "30", today=TODAY)

    by_product = {e.entity_id: e.total_revenue for e in report.by_product}
    assert by_product == {1: 20.0, 2: 7.5, 3: 0.0, 4: 6.0}
    assert report.by_pos[0].total_revenue == 33.5


def test_daily_points_are_keyed_by_packlist_day():
    packlists = [
        _packlist(1, date(2024, 6, 2), _item(1, 1, price=4)),
        _packlist(1, date(2024, 6, 1), _item(1, 1, price=1), _item(2, 1, price=2)),
        _packlist(1, datetime(2024, 6, 2, 18, 30), _item(2, 1, price=8)),
    ]
    report = revenue_service.compute_revenue(packlists, "30", today=TODAY)

    pos = report.by_pos[0]
    assert [(p.date, p.revenue) for p in pos.daily] == [("2024-06-01", 3.0), ("2024-06-02", 12.0)]
    assert pos.total_revenue == 15.0


def test_entities_sorted_by_total_then_id():
    packlists = [
        _packlist(3, TODAY, _item(1, 1, price=5)),
        _packlist(1, TODAY, _item(2, 1, price=5)),
        _packlist(2, TODAY, _item(3, 1, price=9)),
    ]
    report = revenue_service.compute_revenue(packlists, "30", today=TODAY)
    assert [e.entity_id for e in report.by_pos] == [2, 1, 3]


def test_output_does_not_depend_on_input_order():
    rng = random.Random(7)
    packlists = []
    for n in range(40):
        day = date(2024, 6, 1 + n % 28)
        items = [
            _item(pid, rng.choice([0.1, 0.2, 0.3, 1.7]), price=rng.choice([0.1, 0.7, 3.33]))
            for pid in rng.sample(range(1, 9), 3)
        ]
        packlists.append(_packlist(1 + n % 4, day, *items))

    expected = revenue_service.compute_revenue(packlists, "90", today=TODAY).to_dict()
    for _ in range(5):
        shuffled = packlists[:]
        rng.shuffle(shuffled)
        for packlist in shuffled:
            rng.shuffle(packlist.items)
        assert revenue_service.compute_revenue(shuffled, "90", today=TODAY).to_dict() == expected


def test_entity_name_follows_latest_packlist():
    packlists = [
        _packlist(1, date(2024, 6, 20), _item(1, 1), pos_name="New Name"),
        _packlist(1, date(2024, 6, 1), _item(1, 1), pos_name="Old Name"),
    ]
    report = revenue_service.compute_revenue(packlists, "30", today=TODAY)
    assert report.by_pos[0].entity_name == "New Name"


@pytest.mark.parametrize("value", ["7", "365", "", "ALL!"])
def test_invalid_time_range(value):
    with pytest.raises(ValidationError):
        revenue_service.compute_revenue([], value, today=TODAY)


def test_time_range_accepts_numbers_and_case():
    assert revenue_service.parse_time_range(90) == "90"
    assert revenue_service.parse_time_range("All") == "all"


def test_get_date_range():
    assert revenue_service.get_date_range("30", TODAY) == (date(2024, 5, 31), TODAY)
    assert revenue_service.get_date_range("all", TODAY) == (date(2023, 7, 1), TODAY)


def test_prepare_chart_series_fills_gaps():
    packlists = [
        _packlist(1, date(2024, 6, 1), _item(1, 1, price=2)),
        _packlist(2, date(2024, 6, 3), _item(1, 1, price=5)),
        _packlist(3, date(2024, 6, 2), _item(1, 1, price=7)),
    ]
    report = revenue_service.compute_revenue(packlists, "30", today=TODAY)

    rows = revenue_service.prepare_chart_series(report.by_pos, [1, 2])
    assert rows == [
        {"date": "2024-06-01", 1: 2.0, 2: 0.0},
        {"date": "2024-06-03", 1: 0.0, 2: 5.0},
    ]
    assert revenue_service.prepare_chart_series(report.by_pos, []) == []
