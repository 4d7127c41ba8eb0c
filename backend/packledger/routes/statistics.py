# Overview: Flask API routes for revenue statistics; read-only.

from flask import Blueprint, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import DomainError
from ..services import packlist_service, revenue_service
from ..time_utils import to_iso_date, today_utc


statistics_bp = Blueprint("statistics", __name__, url_prefix="/api/statistics")


@statistics_bp.get("/revenue")
@require_actor
@require_capability("statistics.view")
def revenue_route():
    """
    Revenue of completed packlists per point of sale and per product.

    Query parameters:
    - range: 30 | 90 | 180 | all (default 30)
    - pos_ids / product_ids: repeatable; adds chart rows for the selection
    """
    today = today_utc()
    try:
        time_range = revenue_service.parse_time_range(request.args.get("range", "30"))
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status

    packlists = packlist_service.list_completed_packlists()
    report = revenue_service.compute_revenue(packlists, time_range, today=today)
    start, end = revenue_service.get_date_range(time_range, today)

    body = report.to_dict()
    body["date_range"] = {"start": to_iso_date(start), "end": to_iso_date(end)}

    pos_ids = request.args.getlist("pos_ids", type=int)
    product_ids = request.args.getlist("product_ids", type=int)
    if pos_ids:
        body["pos_chart"] = _stringify_keys(revenue_service.prepare_chart_series(report.by_pos, pos_ids))
    if product_ids:
        body["product_chart"] = _stringify_keys(
            revenue_service.prepare_chart_series(report.by_product, product_ids)
        )
    return jsonify(body)


def _stringify_keys(rows: list[dict]) -> list[dict]:
    return [{str(key): value for key, value in row.items()} for row in rows]
