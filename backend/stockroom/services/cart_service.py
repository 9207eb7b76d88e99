# Overview: Session cart; accumulates purchase intent without touching committed stock.

"""
Cart semantics:
- A Cart is an immutable value. Every operation returns a new Cart; the
  caller persists it with save_cart(). Nothing here reads ambient request
  state.
- At most one line per item_id: adding an item already present increases
  that line's quantity (the line keeps its original name and unit price).
- Totals are recomputed on demand, never cached.
- No validation against live stock. Staleness is resolved at checkout.

Persistence:
- Serialized under the fixed session key "cart". Sessions are per-browser,
  expire when idle, and drop their cart with them. Two concurrent requests in
  the same session race last-write-wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import MutableMapping

from flask import current_app

from stockroom.time_utils import cents_to_decimal, format_cents

CART_SESSION_KEY = "cart"


@dataclass(frozen=True)
class CartItem:
    item_id: int
    name: str
    quantity: int
    unit_price_cents: int

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def total(self) -> Decimal:
        return cents_to_decimal(self.total_cents)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_price": format_cents(self.unit_price_cents),
            "total_cents": self.total_cents,
            "total": format_cents(self.total_cents),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            item_id=int(data["item_id"]),
            name=str(data.get("name") or ""),
            quantity=int(data["quantity"]),
            unit_price_cents=int(data["unit_price_cents"]),
        )


@dataclass(frozen=True)
class Cart:
    items: tuple[CartItem, ...] = field(default_factory=tuple)

    def get(self, item_id: int) -> CartItem | None:
        for line in self.items:
            if line.item_id == item_id:
                return line
        return None

    def add_item(self, item_id: int, name: str, unit_price_cents: int, quantity: int) -> "Cart":
        existing = self.get(item_id)
        if existing is None:
            line = CartItem(
                item_id=item_id,
                name=name,
                quantity=quantity,
                unit_price_cents=unit_price_cents,
            )
            return Cart(items=self.items + (line,))

        merged = replace(existing, quantity=existing.quantity + quantity)
        return Cart(items=tuple(merged if line.item_id == item_id else line for line in self.items))

    def remove_item(self, item_id: int) -> "Cart":
        if self.get(item_id) is None:
            return self
        return Cart(items=tuple(line for line in self.items if line.item_id != item_id))

    def clear(self) -> "Cart":
        return Cart()

    def total_cents(self) -> int:
        return sum(line.total_cents for line in self.items)

    def total(self) -> Decimal:
        return cents_to_decimal(self.total_cents())

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.items],
            "item_count": sum(line.quantity for line in self.items),
            "total_cents": self.total_cents(),
            "total": format_cents(self.total_cents()),
        }

    def to_session(self) -> dict:
        return {
            "items": [
                {
                    "item_id": line.item_id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price_cents": line.unit_price_cents,
                }
                for line in self.items
            ]
        }

    @classmethod
    def from_session(cls, data: dict) -> "Cart":
        cart = cls()
        for raw in data.get("items") or []:
            line = CartItem.from_dict(raw)
            # Re-merging on load keeps the one-line-per-item invariant even for hand-edited state
            cart = cart.add_item(line.item_id, line.name, line.unit_price_cents, line.quantity)
        return cart


def load_cart(session: MutableMapping) -> Cart:
    """
    Rehydrate the cart from session state. A missing cart is created empty
    and persisted immediately; an unreadable one is replaced by an empty cart.
    """
    raw = session.get(CART_SESSION_KEY)
    if raw is None:
        cart = Cart()
        save_cart(session, cart)
        return cart

    try:
        return Cart.from_session(raw)
    except (KeyError, TypeError, ValueError, AttributeError):
        current_app.logger.warning("Discarding unreadable cart session state", exc_info=True)
        cart = Cart()
        save_cart(session, cart)
        return cart


def save_cart(session: MutableMapping, cart: Cart) -> None:
    session[CART_SESSION_KEY] = cart.to_session()
