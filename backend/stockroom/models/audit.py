from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from stockroom.time_utils import to_utc_z, utcnow


# Actions recorded in the activity log
ACTION_CREATE = "Create"
ACTION_UPDATE = "Update"
ACTION_DELETE = "Delete"
ACTION_BUY = "Buy"
ACTION_LOGIN = "Login"
ACTION_LOGOUT = "Logout"

ACTIONS = {
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
    ACTION_BUY,
    ACTION_LOGIN,
    ACTION_LOGOUT,
}

ENTITY_STOCK_ITEM = "StockItem"
ENTITY_CATEGORY = "Category"
ENTITY_USER = "User"


class ActivityLog(db.Model):
    """
    Append-only record of who did what to which entity.

    user_id and entity_id are plain identifiers, not foreign keys: the row
    must stay readable after the user or the entity is deleted. user_name
    snapshots the actor's display name at write time for the same reason.
    entity_id is NULL for account-level actions (Login/Logout).
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_timestamp", "user_id", "timestamp"),
        db.Index("ix_activity_logs_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False)
    user_name = db.Column(db.String(100), nullable=True)
    action = db.Column(db.String(50), nullable=False, index=True)
    entity_type = db.Column(db.String(100), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(500), nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    ip_address = db.Column(db.String(45), nullable=True)

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} action={self.action} {self.entity_type}:{self.entity_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "timestamp": to_utc_z(self.timestamp),
            "ip_address": self.ip_address,
        }


@event.listens_for(ActivityLog, "before_update")
def _reject_activity_log_update(mapper, connection, target):
    raise ValueError("activity log entries are append-only and cannot be updated")


@event.listens_for(ActivityLog, "before_delete")
def _reject_activity_log_delete(mapper, connection, target):
    raise ValueError("activity log entries are append-only and cannot be deleted")
