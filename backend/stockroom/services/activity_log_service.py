# Overview: Service-layer operations for the activity log; append-only audit writes and reads.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog, User
from ..models.audit import ACTIONS
from stockroom.time_utils import utcnow
"""
Activity Log Invariants (authoritative)

- Append-only: rows are inserted once and never updated or deleted.
- No domain logic here; callers decide what to record.
- user_id / entity_id are plain identifiers that survive deletion of the referent.
- Stock mutations commit first, then log_activity() writes the audit row in its
  own transaction. A failed audit write is logged and swallowed: an unaudited
  sale is a lesser harm than a sale that fails to apply.
"""


def _resolve_user_name(user_id: int) -> str | None:
    user = db.session.get(User, user_id)
    return user.display_name if user else None


def append_activity(
    *,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    description: str | None = None,
    ip_address: str | None = None,
    user_name: str | None = None,
) -> ActivityLog:
    """
    Stage one activity row in the current session (flush, no commit).
    """
    if action not in ACTIONS:
        raise ValueError(f"unknown activity action: {action}")

    entry = ActivityLog(
        user_id=user_id,
        user_name=user_name if user_name is not None else _resolve_user_name(user_id),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=(description or "")[:500] or None,
        ip_address=ip_address,
        timestamp=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def log_activity(
    *,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    description: str | None = None,
    ip_address: str | None = None,
    user_name: str | None = None,
) -> ActivityLog | None:
    """
    Best-effort audit write in its own transaction.

    Call only after the mutation being described has committed. Returns the
    persisted row, or None if the write failed (the failure is logged).
    """
    try:
        entry = append_activity(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            ip_address=ip_address,
            user_name=user_name,
        )
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to write activity log (%s %s:%s by user %s)",
            action, entity_type, entity_id, user_id,
            exc_info=True,
        )
        return None


def list_recent(count: int = 10) -> list[ActivityLog]:
    return (
        ActivityLog.query
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(count)
        .all()
    )


def list_for_user(user_id: int, count: int = 50) -> list[ActivityLog]:
    return (
        ActivityLog.query
        .filter_by(user_id=user_id)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(count)
        .all()
    )


def list_for_entity(entity_type: str, entity_id: int) -> list[ActivityLog]:
    return (
        ActivityLog.query
        .filter_by(entity_type=entity_type, entity_id=entity_id)
        .order_by(ActivityLog.timestamp.asc(), ActivityLog.id.asc())
        .all()
    )


def list_page(page: int = 1, per_page: int | None = None) -> dict:
    """Newest-first page of activity rows with pagination metadata."""
    if per_page is None:
        per_page = current_app.config.get("ACTIVITY_PAGE_SIZE", 20)
    per_page = max(1, min(per_page, 100))
    page = max(page or 1, 1)

    base_query = ActivityLog.query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    rows = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [r.to_dict() for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
