# Overview: Read-only dashboard aggregates over stock, categories, users, and activity.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, StockItem, User
from stockroom.time_utils import format_cents
from . import activity_log_service
from .stock_service import list_low_stock


def _inventory_value_cents() -> int:
    q = db.session.query(
        func.coalesce(func.sum(StockItem.price_cents * StockItem.quantity), 0)
    )
    return int(q.scalar() or 0)


def get_category_summaries() -> list[dict]:
    rows = (
        db.session.query(
            Category.id,
            Category.name,
            func.count(StockItem.id).label("item_count"),
            func.coalesce(func.sum(StockItem.price_cents * StockItem.quantity), 0).label("value_cents"),
        )
        .join(StockItem, StockItem.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(Category.name.asc())
        .all()
    )
    return [
        {
            "category_id": row.id,
            "category_name": row.name,
            "item_count": int(row.item_count),
            "total_value_cents": int(row.value_cents),
            "total_value": format_cents(int(row.value_cents)),
        }
        for row in rows
    ]


def get_dashboard() -> dict:
    """
    Summary for administrators.

    Low stock means quantity below LOW_STOCK_THRESHOLD (default 5).
    """
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

    total_items = db.session.query(func.count(StockItem.id)).scalar() or 0
    low_stock_count = (
        db.session.query(func.count(StockItem.id))
        .filter(StockItem.quantity < threshold)
        .scalar() or 0
    )
    total_value_cents = _inventory_value_cents()
    total_categories = (
        db.session.query(func.count(Category.id))
        .filter(Category.is_active.is_(True))
        .scalar() or 0
    )
    total_users = (
        db.session.query(func.count(User.id))
        .filter(User.is_active.is_(True))
        .scalar() or 0
    )

    recent_items = (
        db.session.query(StockItem)
        .order_by(StockItem.created_at.desc(), StockItem.id.desc())
        .limit(5)
        .all()
    )

    return {
        "total_stock_items": int(total_items),
        "low_stock_items_count": int(low_stock_count),
        "low_stock_threshold": threshold,
        "total_value_cents": total_value_cents,
        "total_value": format_cents(total_value_cents),
        "total_categories": int(total_categories),
        "total_users": int(total_users),
        "category_summaries": get_category_summaries(),
        "recent_items": [i.to_dict() for i in recent_items],
        "low_stock_items": [i.to_dict() for i in list_low_stock(threshold, limit=10)],
        "recent_activities": [a.to_dict() for a in activity_log_service.list_recent(10)],
    }
