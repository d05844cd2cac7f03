"""Utility functions for the special-payment calculator.

This module provides helpers for parsing user input into Python data types and
for handling calendar months: shifting a date by whole months, normalizing a
date to the first of its month and building ``(year, month)`` keys. It uses
Python's ``datetime`` and ``calendar`` modules for the month arithmetic.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
from typing import Tuple

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` (or ``YYYY-MM``) string into a ``date``.

    A bare year-month is interpreted as the first day of that month.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        parts = value.strip().split("-")
        if len(parts) == 2:
            return date(int(parts[0]), int(parts[1]), 1)
        if len(parts) != 3:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def first_of_month(dt: date) -> date:
    return dt.replace(day=1)


def month_key(dt: date) -> Tuple[int, int]:
    """Return the ``(year, month)`` pair used to bucket payments by month."""
    return dt.year, dt.month


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(dt: date, years: int) -> date:
    # Feb 29 + 1 year -> Feb 28
    return add_months(dt, years * 12)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails or the value is not
    finite (``nan``, ``inf``).
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to ``Decimal`` without binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return decimal_from_str(repr(value))
    return decimal_from_str(str(value))
