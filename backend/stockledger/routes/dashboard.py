# Overview: Flask API routes for dashboard aggregations; read-only.

from flask import Blueprint, request, jsonify

from ..models import ROLE_ADMIN, ROLE_STAFF
from ..services import dashboard_service
from ..decorators import require_auth, require_role

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _limit_arg(default: int = 10) -> int:
    limit = request.args.get("limit", default=default, type=int)
    return max(1, min(limit, 100))


@dashboard_bp.get("/stats")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def stats_route():
    return jsonify(dashboard_service.dashboard_stats())


@dashboard_bp.get("/low-stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def low_stock_route():
    products = dashboard_service.list_low_stock(limit=_limit_arg())
    return jsonify([p.to_dict() for p in products])


@dashboard_bp.get("/recent-activities")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def recent_activities_route():
    movements = dashboard_service.recent_activities(limit=_limit_arg())
    return jsonify([m.to_dict() for m in movements])
