"""Determinism utilities for settlement and statistics.

Win rates, averages and profit figures are computed with Decimal arithmetic
and a fixed rounding mode so that recalculating the same history always
produces byte-identical snapshots.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError

DEFAULT_PLACES = 2
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """Convert a value to Decimal with validation.

    Args:
        value: Value to convert (int, float, str, Decimal)
        name: Name for error messages

    Returns:
        Decimal representation

    Raises:
        ValidationError: If value cannot be converted or is invalid
    """
    if value is None:
        raise ValidationError(f"{name} is None")

    try:
        if isinstance(value, Decimal):
            d = value
        else:
            d = Decimal(str(value))

        if d.is_nan():
            raise ValidationError(f"{name} is NaN")
        if d.is_infinite():
            raise ValidationError(f"{name} is infinite")

        return d

    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(f"Cannot convert {name}={value!r} to Decimal: {e}")


def round_decimal(value: Decimal, places: int = DEFAULT_PLACES) -> Decimal:
    """Round a Decimal to specified places using ROUND_HALF_EVEN."""
    quantize_str = "0." + "0" * places if places > 0 else "0"
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_EVEN)


def safe_divide(
    numerator: Decimal,
    denominator: Decimal,
    default: Decimal = ZERO,
) -> Decimal:
    """Safely divide two Decimals, returning default on zero/invalid."""
    if denominator == ZERO:
        return default
    if denominator.is_nan() or numerator.is_nan():
        return default

    result = numerator / denominator
    if result.is_nan() or result.is_infinite():
        return default

    return result


def percentage(part: int, whole: int, places: int = DEFAULT_PLACES) -> Decimal:
    """part / whole * 100 rounded to ``places``; 0 when whole is 0."""
    if whole <= 0:
        return round_decimal(ZERO, places)
    return round_decimal(safe_divide(Decimal(part) * HUNDRED, Decimal(whole)), places)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def window_start(days: int, reference_time: datetime | None = None) -> datetime:
    """Start of a trailing window of ``days`` ending at ``reference_time``."""
    if reference_time is None:
        reference_time = datetime.now(timezone.utc)
    return ensure_utc(reference_time) - timedelta(days=days)


__all__ = [
    "DEFAULT_PLACES",
    "to_decimal",
    "round_decimal",
    "safe_divide",
    "percentage",
    "ensure_utc",
    "window_start",
]
