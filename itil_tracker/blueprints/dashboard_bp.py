"""
Dashboard Blueprint — status rollups and upcoming deadlines.

Endpoints:
    GET /api/v1/dashboard/summary?year=&month=   — practice, group and overall rollups
    GET /api/v1/dashboard/deadlines              — outstanding activities by due window

``year`` and ``month`` accept "all" or an integer; month is 0-based
(0 = January). Both default to the current year and month.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from itil_tracker.blueprints import current_access, get_store, today
from itil_tracker.middleware.permission_required import require_capability
from itil_tracker.models.auth import Capability
from itil_tracker.services import aggregation
from itil_tracker.services.deadlines import deadline_entries
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers
from itil_tracker.utils.helpers import parse_period_part

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")
register_service_error_handlers(dashboard_bp)


def _period_args(now):
    """Read year/month query params; raises ValueError on bad input."""
    year = parse_period_part(request.args.get("year", now.year), 1900, 9999, "year")
    month = parse_period_part(request.args.get("month", now.month - 1), 0, 11, "month")
    return year, month


@dashboard_bp.route("/summary", methods=["GET"])
@require_capability(Capability.VIEW_DASHBOARD)
def summary():
    now = today()
    try:
        year, month = _period_args(now)
    except ValueError as e:
        return api_error(E.VALIDATION_INVALID, str(e))

    ctx = current_access()
    visible = ctx.visible_practices(get_store().snapshot().practices)
    period = aggregation.PeriodFilter(year=year, month=month)

    by_practice = aggregation.practice_rollups(visible, period)
    by_group = aggregation.group_rollups(by_practice)
    overall = aggregation.combine_rollups(by_practice, name="Total")

    return jsonify({
        "period": {"year": year, "month": month, "label": period.label()},
        "available_years": aggregation.available_years(visible, now.year),
        "overall": overall.to_dict(),
        "groups": [r.to_dict() for r in by_group],
        "practices": [r.to_dict() for r in by_practice],
    }), 200


@dashboard_bp.route("/practices/<practice_id>/categories", methods=["GET"])
@require_capability(Capability.VIEW_DASHBOARD)
def practice_categories(practice_id):
    """Category rollups for one visible practice (dashboard drill-down)."""
    now = today()
    try:
        year, month = _period_args(now)
    except ValueError as e:
        return api_error(E.VALIDATION_INVALID, str(e))

    ctx = current_access()
    visible = ctx.visible_practices(get_store().snapshot().practices)
    practice = next((p for p in visible if p.id == practice_id), None)
    if practice is None:
        return api_error(E.NOT_FOUND, f"Practice id={practice_id} not found")
    period = aggregation.PeriodFilter(year=year, month=month)
    return jsonify([r.to_dict() for r in aggregation.category_rollups(practice, period)]), 200


@dashboard_bp.route("/deadlines", methods=["GET"])
@require_capability(Capability.VIEW_DASHBOARD)
def deadlines():
    ctx = current_access()
    visible = ctx.visible_practices(get_store().snapshot().practices)
    windows = current_app.config.get("DEADLINE_WINDOWS") or (7, 15, 30)
    buckets = deadline_entries(visible, today(), windows)
    return jsonify({
        "windows": list(buckets),
        "buckets": {str(w): [e.to_dict() for e in entries] for w, entries in buckets.items()},
    }), 200
