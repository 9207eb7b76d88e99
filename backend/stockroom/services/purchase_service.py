# Overview: Purchase orchestration; bridges a buy request or a session cart to the stock ledger.

"""
Purchase flow

WHY: The cart holds intent; the ledger holds truth. This module is the only
place they meet. Each purchase attempt is one ledger transaction:

    Requested -> Validated -> Committed
    Requested -> Rejected(reason)

There is no intermediate retry state. A rejected purchase is reported to the
caller, who may resubmit.

Checkout applies buy_one() to each cart line independently. A line that fails
(stock depleted since it was added, item deleted, ...) does not roll back lines
already committed; the result reports every line, and only rejected lines stay
in the returned cart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StockroomError, NotFound, InvalidQuantity, InsufficientStock
from ..models.audit import ACTION_BUY, ENTITY_STOCK_ITEM
from stockroom.time_utils import cents_to_decimal, format_cents
from .activity_log_service import log_activity
from .cart_service import Cart
from .stock_service import get_item, decrement_for_purchase

STATUS_COMMITTED = "committed"
STATUS_REJECTED = "rejected"


@dataclass(frozen=True)
class Receipt:
    item_id: int
    item_name: str
    quantity: int
    remaining_quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def unit_price(self) -> Decimal:
        return cents_to_decimal(self.unit_price_cents)

    @property
    def line_total(self) -> Decimal:
        return cents_to_decimal(self.line_total_cents)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "remaining_quantity": self.remaining_quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_price": format_cents(self.unit_price_cents),
            "line_total_cents": self.line_total_cents,
            "line_total": format_cents(self.line_total_cents),
        }


@dataclass(frozen=True)
class LineResult:
    item_id: int
    name: str
    requested_quantity: int
    status: str
    receipt: Receipt | None = None
    reason: str | None = None
    message: str | None = None
    available: int | None = None

    @property
    def committed(self) -> bool:
        return self.status == STATUS_COMMITTED

    def to_dict(self) -> dict:
        data = {
            "item_id": self.item_id,
            "name": self.name,
            "requested_quantity": self.requested_quantity,
            "status": self.status,
        }
        if self.receipt is not None:
            data["receipt"] = self.receipt.to_dict()
        if self.reason is not None:
            data["reason"] = self.reason
            data["message"] = self.message
        if self.available is not None:
            data["available"] = self.available
        return data


@dataclass(frozen=True)
class CheckoutResult:
    lines: tuple[LineResult, ...] = field(default_factory=tuple)

    @property
    def committed(self) -> list[LineResult]:
        return [line for line in self.lines if line.committed]

    @property
    def rejected(self) -> list[LineResult]:
        return [line for line in self.lines if not line.committed]

    @property
    def total_cents(self) -> int:
        return sum(line.receipt.line_total_cents for line in self.committed)

    @property
    def status(self) -> str:
        if not self.lines:
            return "empty"
        if not self.rejected:
            return "complete"
        if not self.committed:
            return "failed"
        return "partial"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "lines": [line.to_dict() for line in self.lines],
            "committed_count": len(self.committed),
            "rejected_count": len(self.rejected),
            "total_cents": self.total_cents,
            "total": format_cents(self.total_cents),
        }


def get_buy_form(item_id: int) -> dict:
    """What the buy form shows: name, unit price, what is available, default quantity 1."""
    item = get_item(item_id)
    if not item.is_active:
        raise NotFound(f"Stock item {item_id} is not available", details={"item_id": item_id})
    return {
        "item_id": item.id,
        "item_name": item.name,
        "unit_price_cents": item.price_cents,
        "unit_price": format_cents(item.price_cents),
        "available_quantity": item.quantity,
        "quantity_to_buy": 1,
    }


def buy_one(
    item_id: int,
    requested_qty: int,
    actor_id: int,
    *,
    ip_address: str | None = None,
) -> Receipt:
    """
    Purchase `requested_qty` units of one item.

    The pre-check against the current quantity gives the caller a prompt
    answer; the ledger's conditional decrement is what actually guarantees
    no oversell when another buyer wins the race in between.

    Raises NotFound, InvalidQuantity, InsufficientStock (with `available`),
    WriteConflict.
    """
    item = get_item(item_id)
    if not item.is_active:
        raise NotFound(f"Stock item {item_id} is not available", details={"item_id": item_id})

    if requested_qty is None or requested_qty < 1:
        raise InvalidQuantity("Quantity must be at least 1.", details={"requested": requested_qty})

    if requested_qty > item.quantity:
        raise InsufficientStock(item_id=item.id, requested=requested_qty, available=item.quantity)

    unit_price_cents = item.price_cents

    updated = decrement_for_purchase(item_id, requested_qty, actor_id)

    receipt = Receipt(
        item_id=updated.id,
        item_name=updated.name,
        quantity=requested_qty,
        remaining_quantity=updated.quantity,
        unit_price_cents=unit_price_cents,
    )

    current_app.logger.info(
        "Purchase committed: item=%s qty=%s remaining=%s actor=%s",
        receipt.item_id, receipt.quantity, receipt.remaining_quantity, actor_id,
    )

    log_activity(
        user_id=actor_id,
        action=ACTION_BUY,
        entity_type=ENTITY_STOCK_ITEM,
        entity_id=receipt.item_id,
        description=(
            f"Bought {receipt.quantity} x {receipt.item_name} "
            f"(remaining {receipt.remaining_quantity})"
        ),
        ip_address=ip_address,
    )
    return receipt


def checkout_cart(
    cart: Cart,
    actor_id: int,
    *,
    ip_address: str | None = None,
) -> tuple[CheckoutResult, Cart]:
    """
    Buy every cart line as an independent ledger transaction.

    Returns the per-line result and the cart that should be persisted:
    committed lines are removed, rejected lines stay for the caller to fix.
    """
    results: list[LineResult] = []
    remaining_cart = cart

    for line in cart.items:
        try:
            receipt = buy_one(line.item_id, line.quantity, actor_id, ip_address=ip_address)
        except InsufficientStock as e:
            results.append(LineResult(
                item_id=line.item_id,
                name=line.name,
                requested_quantity=line.quantity,
                status=STATUS_REJECTED,
                reason=e.code,
                message=str(e),
                available=e.available,
            ))
            continue
        except StockroomError as e:
            results.append(LineResult(
                item_id=line.item_id,
                name=line.name,
                requested_quantity=line.quantity,
                status=STATUS_REJECTED,
                reason=e.code,
                message=str(e),
            ))
            continue
        except SQLAlchemyError:
            current_app.logger.exception("Checkout line failed for item %s", line.item_id)
            results.append(LineResult(
                item_id=line.item_id,
                name=line.name,
                requested_quantity=line.quantity,
                status=STATUS_REJECTED,
                reason="ERROR",
                message="Purchase could not be completed",
            ))
            continue

        results.append(LineResult(
            item_id=line.item_id,
            name=line.name,
            requested_quantity=line.quantity,
            status=STATUS_COMMITTED,
            receipt=receipt,
        ))
        remaining_cart = remaining_cart.remove_item(line.item_id)

    return CheckoutResult(lines=tuple(results)), remaining_cart
