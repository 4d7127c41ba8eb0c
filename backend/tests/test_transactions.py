"""
Transaction helper tests.

Verifies:
- Concurrency failures are retried and a later success is returned
- A conflict that survives every attempt reaches the caller as ConflictError
- Domain errors are not retried and propagate unchanged
- The lost race maps to 409 at the HTTP boundary
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from packledger.errors import ConflictError, ValidationError
from packledger.services import packlist_service
from packledger.services.concurrency import run_in_transaction, run_with_retry


def _failing(exc, times, result="done"):
    calls = []

    def _op():
        calls.append(1)
        if len(calls) <= times:
            raise exc
        return result

    return _op, calls


def test_transient_conflict_is_retried(db_session):
    op, calls = _failing(StaleDataError("row version changed"), times=2)
    assert run_with_retry(op, attempts=3, backoff_base=0.0) == "done"
    assert len(calls) == 3


@pytest.mark.parametrize("exc", [
    StaleDataError("row version changed"),
    OperationalError("UPDATE products", {}, Exception("database is locked")),
])
def test_exhausted_retries_surface_as_conflict(db_session, exc):
    op, calls = _failing(exc, times=10)
    with pytest.raises(ConflictError) as info:
        run_in_transaction(op, attempts=3, backoff_base=0.0)

    assert len(calls) == 3
    assert info.value.__cause__ is exc
    assert info.value.http_status == 409


def test_domain_errors_are_not_retried(db_session):
    op, calls = _failing(ValidationError("bad input"), times=10)
    with pytest.raises(ValidationError):
        run_with_retry(op, attempts=3, backoff_base=0.0)
    assert len(calls) == 1


def test_lost_race_is_reported_as_409(client, db_session, make_product, pos, market_day, admin, monkeypatch):
    product = make_product("A", stock=5)
    packlist = packlist_service.create_packlist(
        pos_id=pos.id,
        date=market_day,
        items=[{"product_id": product.id, "planned_quantity": 1}],
        actor=admin,
    )

    def _always_stale(packlist_id, *, lock=False):
        raise StaleDataError("row version changed")

    monkeypatch.setattr(packlist_service, "_load_packlist", _always_stale)
    resp = client.post(
        f"/api/packlists/{packlist.id}/start-selling",
        json={},
        headers={"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"},
    )
    assert resp.status_code == 409
    assert resp.json["code"] == "conflict"
