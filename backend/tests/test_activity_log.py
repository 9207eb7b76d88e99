"""
Activity log tests.

Rows are append-only: the ORM refuses to update or delete them. Reads come
back newest first and survive deletion of the user or entity they name.
"""

import pytest

from stockroom.extensions import db
from stockroom.models import ActivityLog
from stockroom.models.audit import ACTION_LOGIN, ENTITY_USER
from stockroom.services import activity_log_service


def _login_row(user):
    return activity_log_service.log_activity(
        user_id=user.id,
        action=ACTION_LOGIN,
        entity_type=ENTITY_USER,
        description="User logged in successfully",
        ip_address="127.0.0.1",
    )


class TestActivityLog:

    def test_log_snapshots_user_name(self, admin_user):
        entry = _login_row(admin_user)

        assert entry.id is not None
        assert entry.user_name == "Test Admin"
        assert entry.entity_id is None
        assert entry.to_dict()["timestamp"].endswith("Z")

    @pytest.mark.parametrize("action", ["Teleport", "Register", "Adjust"])
    def test_unknown_action_is_rejected(self, admin_user, action):
        with pytest.raises(ValueError):
            activity_log_service.append_activity(
                user_id=admin_user.id, action=action, entity_type=ENTITY_USER,
            )

    def test_rows_cannot_be_updated(self, admin_user):
        entry = _login_row(admin_user)

        entry.description = "rewritten"
        with pytest.raises(ValueError):
            db.session.commit()
        db.session.rollback()

    def test_rows_cannot_be_deleted(self, admin_user):
        entry = _login_row(admin_user)

        db.session.delete(entry)
        with pytest.raises(ValueError):
            db.session.commit()
        db.session.rollback()

        assert ActivityLog.query.count() == 1

    def test_list_page_is_newest_first(self, admin_user):
        ids = [_login_row(admin_user).id for _ in range(3)]

        page = activity_log_service.list_page(page=1, per_page=2)

        assert [row["id"] for row in page["items"]] == [ids[2], ids[1]]
        assert page["pagination"]["total"] == 3
        assert page["pagination"]["has_next"] is True

    def test_list_for_user(self, admin_user, staff_user):
        _login_row(admin_user)
        _login_row(staff_user)

        rows = activity_log_service.list_for_user(staff_user.id)

        assert [r.user_id for r in rows] == [staff_user.id]
