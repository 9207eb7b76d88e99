# backend/stockroom/routes/system.py
"""
System health and version endpoints.

Unauthenticated; neither exposes secrets, credentials or internal paths.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Category, StockItem, User, ROLE_ADMIN
from stockroom.time_utils import utcnow

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count rows in the core tables; any failure marks the database unhealthy."""
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "categories": db.session.query(Category).count(),
            "stock_items": db.session.query(StockItem).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_seed_health() -> dict:
    """Degraded (still usable) when `flask system init` has not been run."""
    try:
        has_admin = db.session.query(User).filter_by(role=ROLE_ADMIN, is_active=True).first() is not None
        has_categories = db.session.query(Category).first() is not None
    except Exception:
        current_app.logger.exception("Seed health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": "Database error"}

    if not has_admin or not has_categories:
        return {
            "status": "degraded",
            "warning": "Run 'flask system init' to create default categories and users",
            "details": {"admin_present": has_admin, "categories_present": has_categories},
        }
    return {"status": "healthy", "details": {"admin_present": True, "categories_present": True}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    seed_health = check_seed_health()

    all_checks = [database_health, seed_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "seed_data": seed_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
