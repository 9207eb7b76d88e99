"""
Category tests: unique names, the referential delete guard, and seeding.
"""

import pytest

from stockroom.errors import NotFound, ReferentialIntegrityViolation
from stockroom.extensions import db
from stockroom.models import ActivityLog, Category, StockItem
from stockroom.models.audit import ACTION_DELETE, ENTITY_CATEGORY
from stockroom.services import category_service, stock_service
from stockroom.validation import ConflictError


class TestCategoryService:

    def test_create_and_list_with_counts(self, make_item, admin_user, category):
        make_item(name="Widget")
        other = category_service.create_category(patch={"name": "Furniture"}, actor_id=admin_user.id)

        listed = {c["name"]: c for c in category_service.list_categories()}

        assert listed["Goods"]["item_count"] == 1
        assert listed["Furniture"]["item_count"] == 0
        assert listed["Furniture"]["id"] == other.id

    def test_duplicate_name_is_a_conflict(self, admin_user, category):
        with pytest.raises(ConflictError):
            category_service.create_category(patch={"name": "goods"}, actor_id=admin_user.id)

    def test_rename(self, admin_user, category):
        updated = category_service.update_category(
            category.id, patch={"name": "General"}, actor_id=admin_user.id
        )

        assert updated.name == "General"

    def test_delete_with_items_is_blocked(self, make_item, admin_user, category):
        item = make_item(name="Widget")

        with pytest.raises(ReferentialIntegrityViolation) as exc_info:
            category_service.delete_category(category.id, actor_id=admin_user.id)

        assert "stock items" in str(exc_info.value)
        assert exc_info.value.details["relationship"] == "stock_items"
        assert db.session.get(Category, category.id) is not None
        assert db.session.get(StockItem, item.id) is not None

    def test_delete_empty_category(self, admin_user, category):
        category_id = category.id

        category_service.delete_category(category_id, actor_id=admin_user.id)

        assert db.session.get(Category, category_id) is None
        rows = ActivityLog.query.filter_by(entity_type=ENTITY_CATEGORY, action=ACTION_DELETE).all()
        assert len(rows) == 1
        assert rows[0].entity_id == category_id

    def test_delete_after_items_removed(self, make_item, admin_user, category):
        item = make_item(name="Widget")
        stock_service.delete_item(item.id, actor_id=admin_user.id)

        category_service.delete_category(category.id, actor_id=admin_user.id)

        assert Category.query.count() == 0

    def test_delete_missing_category(self, db_session, admin_user):
        with pytest.raises(NotFound):
            category_service.delete_category(12345, actor_id=admin_user.id)

    def test_seed_default_categories_is_idempotent(self, db_session):
        assert category_service.seed_default_categories() == 4
        assert category_service.seed_default_categories() == 0

        names = [c["name"] for c in category_service.list_categories()]
        assert names == ["Electronics", "Furniture", "Goods", "Technology"]
