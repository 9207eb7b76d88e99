from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text

from .errors import InvalidQuantity
from stockroom.time_utils import parse_iso_datetime

# $9,999,999.99 expressed in cents
MAX_PRICE_CENTS = 999_999_999

# Upper bound for any single quantity field or purchase request
MAX_QUANTITY = 1_000_000

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (duplicate category name, existing email)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which model columns a client may send.

    writable_fields is the allowlist; anything outside it (ids, audit
    columns, version_id) is rejected rather than silently dropped.
    required_on_create only applies to full (non-partial) payloads.
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "writable_fields", frozenset(self.writable_fields))
        object.__setattr__(self, "required_on_create", frozenset(self.required_on_create or ()))


def _coerce_int(key: str, value: Any) -> int:
    """Whole numbers only: ints or digit strings. Bools, floats, "1e3" and "2.0" are refused."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a whole number")

    text = value.strip()
    digits = text[1:] if text[:1] in "+-" else text
    if not digits.isdigit():
        raise ValidationError(f"{key} must be a whole number")
    return int(text)


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
    raise ValidationError(f"{key} must be true or false")


def _coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 date or datetime")


def _coerce_column(column, value: Any):
    """Convert one JSON value to what `column` stores, enforcing blank and length limits."""
    coltype = column.type
    key = column.key

    if isinstance(coltype, Boolean):
        return _coerce_bool(key, value)
    if isinstance(coltype, Integer):
        return _coerce_int(key, value)
    if isinstance(coltype, DateTime):
        return _coerce_datetime(key, value)
    if not isinstance(coltype, (String, Text)):
        return value

    text = str(value).strip()
    if not text and not column.nullable:
        raise ValidationError(f"{key} cannot be blank")
    limit = getattr(coltype, "length", None)
    if limit and len(text) > limit:
        raise ValidationError(f"{key} is longer than {limit} characters")
    return text


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a request body into a patch dict for a stock item or category.

    Column metadata drives the checks (type, nullability, String length);
    the policy decides which keys are accepted at all. With partial=False
    every required_on_create key must be present (a PUT sends only what
    changes, so partial=True skips that check).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    columns = {c.key: c for c in model.__mapper__.columns}

    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if rejected:
        raise ValidationError(f"Field not allowed: {', '.join(rejected)}")

    if not partial:
        missing = sorted(policy.required_on_create.difference(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce_column(column, raw)
    return patch


def enforce_rules_stock_item(patch: dict) -> None:
    """Range rules for a stock item patch that column types cannot express."""
    price = patch.get("price_cents")
    if price is not None and not 0 <= price <= MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents must be between 0 and {MAX_PRICE_CENTS}")

    if "quantity" in patch:
        qty = patch["quantity"]
        if qty < 0:
            raise ValidationError("quantity must be >= 0")
        if qty > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")

    for key in ("minimum_quantity", "reorder_point"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def parse_purchase_quantity(raw: Any, *, field: str = "quantity") -> int:
    """
    Parse a requested purchase/cart quantity. Must be a whole number >= 1.

    Non-integers are a payload problem (ValidationError); integers below 1
    are InvalidQuantity so the caller can re-prompt.
    """
    if raw is None:
        raise ValidationError(f"{field} is required")
    qty = _coerce_int(field, raw)
    if qty <= 0:
        raise InvalidQuantity("Quantity must be at least 1.", details={"requested": qty})
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def parse_item_id(raw: Any, *, field: str = "item_id") -> int:
    if raw is None:
        raise ValidationError(f"{field} is required")
    return _coerce_int(field, raw)
