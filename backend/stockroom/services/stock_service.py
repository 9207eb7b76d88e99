# Overview: Service-layer operations for the stock ledger; the only sanctioned paths that change an item's quantity.

# backend/stockroom/services/stock_service.py

from __future__ import annotations

from flask import current_app
from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError

from ..errors import NotFound, InvalidQuantity, InsufficientStock, ReferentialIntegrityViolation
from ..extensions import db
from ..models import Category, StockItem
from ..models.audit import ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE, ENTITY_STOCK_ITEM
from ..validation import ValidationError
from stockroom.time_utils import utcnow
from .activity_log_service import log_activity
from .concurrency import run_with_retry
"""
Stock Ledger Invariants (authoritative)

Quantity of record:
- StockItem.quantity is the committed on-hand count; it is never negative.
- Only this module mutates quantity: create_item, adjust_item, decrement_for_purchase.
- Every mutation sets updated_at / updated_by.

Sales (decrement_for_purchase):
- Implemented as ONE conditional UPDATE:
      UPDATE stock_items SET quantity = quantity - :n ...
      WHERE id = :id AND is_active AND quantity >= :n
  Zero rows affected means the item is missing, inactive, or short; the row is
  re-read only to report which. There is no read-then-write window, so two
  concurrent buyers of the last unit cannot both succeed, across threads or
  processes.
- version_id is bumped in the same statement so in-flight administrative
  edits of the row fail their optimistic check and re-read.

Administrative edits (adjust_item):
- Full-field update through the ORM; version_id_col gives optimistic
  concurrency. StaleDataError is retried with a fresh read (bounded), then
  surfaced as WriteConflict.
- Quantity may be set to any value >= 0. This is a correction tool, not a sale.

Audit:
- Create / Update / Delete write one ActivityLog row after the mutation commits.
- Buy is audited by purchase_service, which owns the sale as a unit.
"""


STOCK_MUTABLE_FIELDS = {
    "name",
    "category_id",
    "quantity",
    "price_cents",
    "purchase_date",
    "supplier",
    "description",
    "location",
    "sku",
    "minimum_quantity",
    "reorder_point",
    "is_active",
}

SORT_ORDERS = {
    "name": (StockItem.name.asc(),),
    "name_desc": (StockItem.name.desc(),),
    "date": (StockItem.purchase_date.asc(),),
    "date_desc": (StockItem.purchase_date.desc(),),
    "quantity": (StockItem.quantity.asc(),),
    "quantity_desc": (StockItem.quantity.desc(),),
}


def _require_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found", details={"category_id": category_id})
    return category


def _ensure_quantity(value: int) -> None:
    if value is None or value < 0:
        raise ValidationError("quantity must be >= 0")


def apply_stock_patch(item: StockItem, patch: dict) -> None:
    for k, v in patch.items():
        if k not in STOCK_MUTABLE_FIELDS:
            continue
        setattr(item, k, v)


def get_item(item_id: int) -> StockItem:
    item = db.session.get(StockItem, item_id)
    if item is None:
        raise NotFound(f"Stock item {item_id} not found", details={"item_id": item_id})
    return item


def list_items(
    *,
    search: str | None = None,
    category_id: int | None = None,
    sort: str | None = None,
    page: int | None = 1,
    per_page: int | None = None,
    active_only: bool = False,
) -> dict:
    """
    Filtered, sorted page of stock items.

    search matches item name, supplier, or category name (substring).
    sort is one of SORT_ORDERS; anything else falls back to name ascending.
    """
    q = db.session.query(StockItem).join(Category, StockItem.category_id == Category.id)

    if search:
        # Literal substring: "%" and "_" typed by the user are not wildcards
        term = search.strip()
        q = q.filter(or_(
            StockItem.name.icontains(term, autoescape=True),
            StockItem.supplier.icontains(term, autoescape=True),
            Category.name.icontains(term, autoescape=True),
        ))

    if category_id is not None:
        q = q.filter(StockItem.category_id == category_id)

    if active_only:
        q = q.filter(StockItem.is_active.is_(True))

    order = SORT_ORDERS.get(sort or "name", SORT_ORDERS["name"])
    q = q.order_by(*order, StockItem.id.asc())

    if per_page is None:
        per_page = current_app.config.get("STOCK_PAGE_SIZE", 10)
    per_page = max(1, min(per_page, 100))
    page = max(page or 1, 1)

    total = q.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    items = q.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [i.to_dict() for i in items],
        "count": len(items),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_item(*, patch: dict, actor_id: int, ip_address: str | None = None) -> StockItem:
    """
    Create a stock item from a validated patch dict.

    Assigns identity and timestamps; created_by = updated_by = actor.
    """
    _ensure_quantity(patch.get("quantity", 0))
    _require_category(patch["category_id"])

    now = utcnow()
    item = StockItem(
        created_by=actor_id,
        updated_by=actor_id,
        created_at=now,
        updated_at=now,
    )
    apply_stock_patch(item, patch)
    if item.quantity is None:
        item.quantity = 0

    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError("stock item violates a data constraint") from exc

    log_activity(
        user_id=actor_id,
        action=ACTION_CREATE,
        entity_type=ENTITY_STOCK_ITEM,
        entity_id=item.id,
        description=f"Created stock item: {item.name}",
        ip_address=ip_address,
    )
    return item


def _describe_update(old: dict, item: StockItem) -> str:
    parts = [f"Updated stock item: {old['name']} -> {item.name}"]
    if old["quantity"] != item.quantity:
        parts.append(f"quantity {old['quantity']} -> {item.quantity}")
    if old["price_cents"] != item.price_cents:
        parts.append(f"price_cents {old['price_cents']} -> {item.price_cents}")
    return "; ".join(parts)


def adjust_item(
    item_id: int,
    *,
    patch: dict,
    actor_id: int,
    ip_address: str | None = None,
) -> StockItem:
    """
    Administrative full-field edit (name, category, price, quantity, ...).

    Quantity may be set to any value >= 0. Audited as "Update", never "Buy".
    """
    if "quantity" in patch:
        _ensure_quantity(patch["quantity"])
    if "category_id" in patch:
        _require_category(patch["category_id"])

    captured: dict = {}

    def _op():
        item = get_item(item_id)
        captured["old"] = {
            "name": item.name,
            "quantity": item.quantity,
            "price_cents": item.price_cents,
        }
        apply_stock_patch(item, patch)
        item.updated_by = actor_id
        item.updated_at = utcnow()
        db.session.commit()
        return item

    item = run_with_retry(_op)

    log_activity(
        user_id=actor_id,
        action=ACTION_UPDATE,
        entity_type=ENTITY_STOCK_ITEM,
        entity_id=item.id,
        description=_describe_update(captured["old"], item),
        ip_address=ip_address,
    )
    return item


def decrement_for_purchase(item_id: int, amount: int, actor_id: int) -> StockItem:
    """
    The sale path: atomically remove `amount` units from committed stock.

    Raises:
        InvalidQuantity: amount <= 0
        NotFound: item missing or inactive
        InsufficientStock: amount > current quantity (state unchanged)
    """
    if amount is None or amount <= 0:
        raise InvalidQuantity("Quantity must be at least 1.", details={"requested": amount})

    def _op():
        now = utcnow()
        stmt = (
            update(StockItem)
            .where(
                StockItem.id == item_id,
                StockItem.is_active.is_(True),
                StockItem.quantity >= amount,
            )
            .values(
                quantity=StockItem.quantity - amount,
                updated_at=now,
                updated_by=actor_id,
                version_id=StockItem.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)

        if result.rowcount == 0:
            db.session.rollback()
            current = db.session.get(StockItem, item_id)
            if current is None or not current.is_active:
                raise NotFound(
                    f"Stock item {item_id} is not available",
                    details={"item_id": item_id},
                )
            raise InsufficientStock(item_id=item_id, requested=amount, available=current.quantity)

        db.session.commit()
        return db.session.get(StockItem, item_id, populate_existing=True)

    return run_with_retry(_op)


def delete_item(item_id: int, *, actor_id: int, ip_address: str | None = None) -> None:
    """
    Hard-delete a stock item. The name is captured before removal because
    the activity row's entity_id dangles afterwards.
    """
    item = get_item(item_id)
    item_name = item.name

    db.session.delete(item)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ReferentialIntegrityViolation(
            f"Cannot delete stock item {item_name!r}: it is still referenced by other records",
            details={"item_id": item_id},
        ) from exc

    log_activity(
        user_id=actor_id,
        action=ACTION_DELETE,
        entity_type=ENTITY_STOCK_ITEM,
        entity_id=item_id,
        description=f"Deleted stock item: {item_name}",
        ip_address=ip_address,
    )


def list_low_stock(threshold: int | None = None, limit: int | None = None) -> list[StockItem]:
    """Items with quantity below the low-stock threshold, lowest first."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    q = (
        db.session.query(StockItem)
        .filter(StockItem.quantity < threshold)
        .order_by(StockItem.quantity.asc(), StockItem.name.asc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()
