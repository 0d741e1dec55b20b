"""Utility functions for the Qredi simulator.

This module provides helpers for turning loosely typed input (the extraction
service returns numbers, numeric strings or nothing at all) into ``Decimal``
values, and for converting loan terms in days into whole months.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, Decimal, InvalidOperation, getcontext
from typing import Any

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

DAYS_PER_MONTH = Decimal(30)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def rate_decimal_from_str(value: str) -> Decimal:
    """Convert a rate string into a ``Decimal``.

    Rates are small numbers, so a comma is never a thousands separator: a
    single comma with no dot is read as the decimal separator (``"1,5"`` is
    1.5) and any other comma is rejected.
    """
    cleaned = value.strip()
    if "," in cleaned:
        if cleaned.count(",") > 1 or "." in cleaned:
            raise ValueError(f"Invalid numeric value: {value}")
        cleaned = cleaned.replace(",", ".")
    try:
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Any, *, rate: bool = False) -> Decimal:
    """Return ``value`` as a finite ``Decimal``.

    Accepts ``Decimal``, ``int``, ``float`` and numeric strings. Floats go
    through their shortest ``repr`` so that ``42.58`` becomes
    ``Decimal("42.58")`` rather than its binary expansion. Strings are read
    with ``rate_decimal_from_str`` when ``rate`` is true and with
    ``decimal_from_str`` otherwise.

    Raises
    ------
    ValueError
        If the value is missing, boolean, not numeric, NaN or infinite.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = decimal_from_str(repr(value))
    elif rate:
        result = rate_decimal_from_str(str(value))
    else:
        result = decimal_from_str(str(value))
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def months_from_days(days: Decimal) -> int:
    """Number of 30-day months needed to cover ``days``, rounding up."""
    return int((days / DAYS_PER_MONTH).to_integral_value(rounding=ROUND_CEILING))
