"""
Purchase flow tests.

Verifies:
- A successful buy commits the decrement and records exactly one Buy row
- Rejected buys leave stock and the activity log untouched
- Checkout commits lines independently and keeps only rejected lines
- A failed audit write does not undo a committed sale
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from stockroom.errors import NotFound, InvalidQuantity, InsufficientStock
from stockroom.extensions import db
from stockroom.models import ActivityLog, StockItem
from stockroom.models.audit import ACTION_BUY
from stockroom.services import activity_log_service, purchase_service, stock_service
from stockroom.services.cart_service import Cart


def _buy_rows(item_id):
    return ActivityLog.query.filter_by(action=ACTION_BUY, entity_id=item_id).all()


def _quantity(item_id):
    return db.session.get(StockItem, item_id, populate_existing=True).quantity


# =============================================================================
# DIRECT BUY
# =============================================================================


class TestBuyOne:

    def test_widget_purchase(self, make_item, admin_user):
        widget = make_item(name="Widget", quantity=10, price_cents=250)

        receipt = purchase_service.buy_one(widget.id, 4, admin_user.id)

        assert receipt.remaining_quantity == 6
        assert receipt.line_total == Decimal("10.00")
        assert receipt.unit_price == Decimal("2.50")
        assert _quantity(widget.id) == 6

        rows = _buy_rows(widget.id)
        assert len(rows) == 1
        assert "4" in rows[0].description
        assert "6" in rows[0].description
        assert rows[0].user_id == admin_user.id

        with pytest.raises(InsufficientStock) as exc_info:
            purchase_service.buy_one(widget.id, 7, admin_user.id)

        assert exc_info.value.available == 6
        assert _quantity(widget.id) == 6
        assert len(_buy_rows(widget.id)) == 1

    @pytest.mark.parametrize("qty", [0, -3])
    def test_non_positive_quantity(self, make_item, admin_user, qty):
        item = make_item(quantity=5)

        with pytest.raises(InvalidQuantity):
            purchase_service.buy_one(item.id, qty, admin_user.id)

        assert _quantity(item.id) == 5
        assert _buy_rows(item.id) == []

    def test_inactive_item_cannot_be_bought(self, make_item, admin_user):
        item = make_item(quantity=5, is_active=False)

        with pytest.raises(NotFound):
            purchase_service.buy_one(item.id, 1, admin_user.id)

    def test_audit_failure_does_not_undo_sale(self, make_item, admin_user, monkeypatch):
        item = make_item(quantity=5)

        def _broken_append(**kwargs):
            raise SQLAlchemyError("audit table unavailable")

        monkeypatch.setattr(activity_log_service, "append_activity", _broken_append)

        receipt = purchase_service.buy_one(item.id, 2, admin_user.id)

        assert receipt.remaining_quantity == 3
        assert _quantity(item.id) == 3
        assert _buy_rows(item.id) == []

    def test_buy_form(self, make_item):
        item = make_item(name="Widget", quantity=10, price_cents=250)

        form = purchase_service.get_buy_form(item.id)

        assert form["available_quantity"] == 10
        assert form["unit_price"] == "2.50"
        assert form["quantity_to_buy"] == 1


# =============================================================================
# CART CHECKOUT
# =============================================================================


class TestCheckoutCart:

    def test_all_lines_commit(self, make_item, admin_user):
        chair = make_item(name="Chair", quantity=5, price_cents=5000)
        cart = Cart().add_item(chair.id, chair.name, chair.price_cents, 1)
        cart = cart.add_item(chair.id, chair.name, chair.price_cents, 2)

        result, remaining = purchase_service.checkout_cart(cart, admin_user.id)

        assert result.status == "complete"
        assert result.total_cents == 15000
        assert remaining.is_empty
        assert _quantity(chair.id) == 2
        assert len(_buy_rows(chair.id)) == 1

    def test_partial_checkout_keeps_rejected_lines(self, make_item, admin_user):
        widget = make_item(name="Widget", quantity=10, price_cents=250)
        gadget = make_item(name="Gadget", quantity=1, price_cents=1000)
        cart = (
            Cart()
            .add_item(widget.id, widget.name, widget.price_cents, 4)
            .add_item(gadget.id, gadget.name, gadget.price_cents, 3)
        )

        result, remaining = purchase_service.checkout_cart(cart, admin_user.id)

        assert result.status == "partial"
        assert [line.item_id for line in result.committed] == [widget.id]
        rejected = result.rejected[0]
        assert rejected.item_id == gadget.id
        assert rejected.reason == "INSUFFICIENT_STOCK"
        assert rejected.available == 1

        assert remaining.get(widget.id) is None
        assert remaining.get(gadget.id).quantity == 3
        assert _quantity(widget.id) == 6
        assert _quantity(gadget.id) == 1

    def test_deleted_item_is_rejected(self, make_item, admin_user):
        item = make_item(name="Ghost", quantity=3)
        cart = Cart().add_item(item.id, item.name, item.price_cents, 1)
        stock_service.delete_item(item.id, actor_id=admin_user.id)

        result, remaining = purchase_service.checkout_cart(cart, admin_user.id)

        assert result.status == "failed"
        assert result.rejected[0].reason == "NOT_FOUND"
        assert len(remaining) == 1

    def test_empty_cart(self, db_session, admin_user):
        result, remaining = purchase_service.checkout_cart(Cart(), admin_user.id)

        assert result.status == "empty"
        assert remaining.is_empty
