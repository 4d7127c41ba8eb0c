# backend/packledger/routes/system.py
"""
System health endpoint.

Reports database reachability and ledger wiring for deployment checks.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..services.stock_ledger import StockLedger
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable and stock ledger registered
    - 503: otherwise
    """
    database_health = check_database_health()
    ledger_ready = isinstance(current_app.extensions.get(StockLedger.extension_name), StockLedger)

    healthy = database_health["status"] == "healthy" and ledger_ready
    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "stock_ledger": {"status": "healthy" if ledger_ready else "unhealthy"},
        },
    }
    return response, 200 if healthy else 503
