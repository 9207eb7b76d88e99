from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

_CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a purchase date or timestamp into a naive UTC datetime.

    Blank input yields None. A bare date ("2024-03-01") means midnight UTC;
    offsets, including a trailing "Z", are converted to UTC.
    Raises ValueError on anything else.
    """
    text = (value or "").strip()
    if not text:
        return None

    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time.min)

    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC with a 'Z' suffix; naive values are taken as UTC."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"


def cents_to_decimal(cents: int) -> Decimal:
    """Integer cents -> Decimal with exactly two places (250 -> Decimal('2.50'))."""
    return (Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_cents(cents: Optional[int]) -> Optional[str]:
    if cents is None:
        return None
    return f"{cents_to_decimal(cents)}"
