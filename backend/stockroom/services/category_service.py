# backend/stockroom/services/category_service.py
"""
Category Service

Categories are plain data-entry records. The one rule that matters to the
stock ledger: a category that still has stock items cannot be deleted.
"""
from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import NotFound, ReferentialIntegrityViolation
from ..extensions import db
from ..models import Category, StockItem
from ..models.audit import ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE, ENTITY_CATEGORY
from ..validation import ConflictError
from stockroom.time_utils import utcnow
from .activity_log_service import log_activity
from .concurrency import lock_for_update

CATEGORY_MUTABLE_FIELDS = {"name", "description", "is_active"}

DEFAULT_CATEGORIES = (
    ("Furniture", "Office and home furniture"),
    ("Electronics", "Electronic devices and equipment"),
    ("Goods", "General goods and supplies"),
    ("Technology", "Technology and IT equipment"),
)


def _item_count(category_id: int) -> int:
    return int(
        db.session.query(func.count(StockItem.id))
        .filter(StockItem.category_id == category_id)
        .scalar() or 0
    )


def _ensure_unique_name(name: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Category).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Category name already exists: {name}")


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found", details={"category_id": category_id})
    return category


def list_categories(*, active_only: bool = False) -> list[dict]:
    """All categories ordered by name, each with its stock item count."""
    counts = dict(
        db.session.query(StockItem.category_id, func.count(StockItem.id))
        .group_by(StockItem.category_id)
        .all()
    )
    q = db.session.query(Category)
    if active_only:
        q = q.filter(Category.is_active.is_(True))
    categories = q.order_by(Category.name.asc()).all()
    return [c.to_dict(item_count=counts.get(c.id, 0)) for c in categories]


def create_category(*, patch: dict, actor_id: int, ip_address: str | None = None) -> Category:
    _ensure_unique_name(patch["name"])

    category = Category(created_at=utcnow())
    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)

    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"Category name already exists: {patch['name']}") from exc

    log_activity(
        user_id=actor_id,
        action=ACTION_CREATE,
        entity_type=ENTITY_CATEGORY,
        entity_id=category.id,
        description=f"Created category: {category.name}",
        ip_address=ip_address,
    )
    return category


def update_category(
    category_id: int,
    *,
    patch: dict,
    actor_id: int,
    ip_address: str | None = None,
) -> Category:
    category = get_category(category_id)
    old_name = category.name

    if "name" in patch and patch["name"] != old_name:
        _ensure_unique_name(patch["name"], exclude_id=category_id)

    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"Category name already exists: {patch.get('name')}") from exc

    log_activity(
        user_id=actor_id,
        action=ACTION_UPDATE,
        entity_type=ENTITY_CATEGORY,
        entity_id=category.id,
        description=f"Updated category: {old_name} -> {category.name}",
        ip_address=ip_address,
    )
    return category


def delete_category(category_id: int, *, actor_id: int, ip_address: str | None = None) -> None:
    """
    Delete a category that has no stock items.

    Raises ReferentialIntegrityViolation (and changes nothing) when items
    still reference it.
    """
    category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
    if category is None:
        raise NotFound(f"Category {category_id} not found", details={"category_id": category_id})

    count = _item_count(category_id)
    if count:
        db.session.rollback()
        raise ReferentialIntegrityViolation(
            "Cannot delete category that has stock items. "
            "Please move or delete the stock items first.",
            details={"category_id": category_id, "relationship": "stock_items", "item_count": count},
        )

    name = category.name
    db.session.delete(category)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # A stock item was attached between the count and the delete
        db.session.rollback()
        raise ReferentialIntegrityViolation(
            "Cannot delete category that has stock items.",
            details={"category_id": category_id, "relationship": "stock_items"},
        ) from exc

    log_activity(
        user_id=actor_id,
        action=ACTION_DELETE,
        entity_type=ENTITY_CATEGORY,
        entity_id=category_id,
        description=f"Deleted category: {name}",
        ip_address=ip_address,
    )


def seed_default_categories() -> int:
    """Create the default categories that are missing. Returns how many were created."""
    created = 0
    for name, description in DEFAULT_CATEGORIES:
        exists = db.session.query(Category).filter_by(name=name).first()
        if exists:
            continue
        db.session.add(Category(name=name, description=description, is_active=True, created_at=utcnow()))
        created += 1
    db.session.commit()
    return created
