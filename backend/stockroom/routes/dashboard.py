# Overview: Flask API routes for the admin dashboard and the activity log viewer.

# backend/stockroom/routes/dashboard.py
from flask import Blueprint, request, jsonify

from ..models import ROLE_ADMIN
from ..services import dashboard_service, activity_log_service
from ..decorators import require_auth, require_role

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/dashboard")
@require_auth
@require_role(ROLE_ADMIN)
def dashboard_route():
    """Totals, low stock, category summaries and the latest activity."""
    return jsonify(dashboard_service.get_dashboard()), 200


@dashboard_bp.get("/activity")
@require_auth
@require_role(ROLE_ADMIN)
def activity_route():
    """
    Activity log, newest first.

    Query params:
    - page: int (optional, default 1)
    - per_page: int (optional, default ACTIVITY_PAGE_SIZE)
    - user_id: int (optional) - latest 50 rows for one user, unpaginated
    """
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        rows = activity_log_service.list_for_user(user_id)
        return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200

    return jsonify(activity_log_service.list_page(
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", type=int),
    )), 200
