"""
Session cart tests.

The cart is a plain value: these tests need no database, only an app
context for the logger used when discarding unreadable session state.
"""

from decimal import Decimal

from stockroom.services.cart_service import Cart, CartItem, CART_SESSION_KEY, load_cart, save_cart


class TestCartValue:

    def test_new_cart_is_empty(self):
        cart = Cart()

        assert cart.is_empty
        assert len(cart) == 0
        assert cart.total() == Decimal("0.00")

    def test_adding_same_item_merges_lines(self):
        cart = Cart().add_item(7, "Chair", 5000, 1).add_item(7, "Chair", 5000, 2)

        assert len(cart) == 1
        assert cart.get(7).quantity == 3
        assert cart.total() == Decimal("150.00")

    def test_merge_keeps_original_name_and_price(self):
        cart = Cart().add_item(7, "Chair", 5000, 1).add_item(7, "Renamed Chair", 9999, 1)

        line = cart.get(7)
        assert line.name == "Chair"
        assert line.unit_price_cents == 5000
        assert line.quantity == 2

    def test_operations_return_new_carts(self):
        empty = Cart()
        one = empty.add_item(1, "Widget", 250, 2)
        none = one.remove_item(1)

        assert empty.is_empty
        assert len(one) == 1
        assert none.is_empty
        assert one.get(1).quantity == 2

    def test_total_sums_lines(self):
        cart = Cart().add_item(1, "Widget", 250, 4).add_item(2, "Gadget", 1999, 1)

        assert cart.total_cents() == 2999
        assert cart.total() == Decimal("29.99")

    def test_remove_absent_item_is_noop(self):
        cart = Cart().add_item(1, "Widget", 250, 1)

        assert cart.remove_item(2) == cart

    def test_clear(self):
        cart = Cart().add_item(1, "Widget", 250, 1).add_item(2, "Gadget", 100, 1)

        assert cart.clear().is_empty

    def test_line_totals(self):
        line = CartItem(item_id=1, name="Widget", quantity=3, unit_price_cents=250)

        assert line.total == Decimal("7.50")
        assert line.to_dict()["total"] == "7.50"

    def test_to_dict_counts_units(self):
        data = Cart().add_item(1, "Widget", 250, 4).add_item(2, "Gadget", 100, 1).to_dict()

        assert data["item_count"] == 5
        assert data["total"] == "11.00"
        assert [line["item_id"] for line in data["items"]] == [1, 2]


class TestCartSession:

    def test_missing_cart_is_created_and_persisted(self, app):
        session = {}

        cart = load_cart(session)

        assert cart.is_empty
        assert session[CART_SESSION_KEY] == {"items": []}

    def test_save_then_load(self, app):
        session = {}
        save_cart(session, Cart().add_item(3, "Lamp", 1500, 2))

        cart = load_cart(session)

        assert cart.get(3).quantity == 2
        assert cart.total() == Decimal("30.00")

    def test_duplicate_lines_in_session_are_merged(self, app):
        session = {CART_SESSION_KEY: {"items": [
            {"item_id": 3, "name": "Lamp", "quantity": 1, "unit_price_cents": 1500},
            {"item_id": 3, "name": "Lamp", "quantity": 2, "unit_price_cents": 1500},
        ]}}

        cart = load_cart(session)

        assert len(cart) == 1
        assert cart.get(3).quantity == 3

    def test_unreadable_state_becomes_empty_cart(self, app):
        session = {CART_SESSION_KEY: {"items": [{"item_id": "not-a-number"}]}}

        cart = load_cart(session)

        assert cart.is_empty
        assert session[CART_SESSION_KEY] == {"items": []}
