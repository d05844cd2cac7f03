"""Validation of loan and special-payment records before they are stored.

The checks operate on the plain dictionaries exchanged with the web API
(camelCase keys). They raise :class:`ValidationError` with a message suitable
for returning to the client.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Dict

REPAYMENT_PERCENTAGE = "PERCENTAGE"
REPAYMENT_ABSOLUTE = "ABSOLUTE"
REPAYMENT_TYPES = (REPAYMENT_PERCENTAGE, REPAYMENT_ABSOLUTE)

MAX_INTEREST_RATE = 20
MIN_FIXED_YEARS = 1
MAX_FIXED_YEARS = 50

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationError(ValueError):
    """Raised when a record fails validation."""


def is_valid_date(value: Any) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{key} must be a finite number")
    return value


def validate_loan(data: Dict[str, Any], partial: bool = False) -> None:
    """Validate a loan record.

    With ``partial`` set (updates) only the keys present in ``data`` are
    checked; otherwise every field is required.
    """

    def present(key: str) -> bool:
        return not partial or key in data

    if present("name"):
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required")
    if present("amount") and _number(data, "amount") <= 0:
        raise ValidationError("amount must be > 0")
    if present("interestRate"):
        rate = _number(data, "interestRate")
        if rate < 0 or rate > MAX_INTEREST_RATE:
            raise ValidationError(f"interestRate must be between 0 and {MAX_INTEREST_RATE}")
    if present("startDate") and not is_valid_date(data.get("startDate")):
        raise ValidationError("startDate must be in YYYY-MM-DD format")
    if present("fixedInterestYears"):
        years = data.get("fixedInterestYears")
        if isinstance(years, bool) or not isinstance(years, int) or not MIN_FIXED_YEARS <= years <= MAX_FIXED_YEARS:
            raise ValidationError(
                f"fixedInterestYears must be between {MIN_FIXED_YEARS} and {MAX_FIXED_YEARS}"
            )
    if present("repaymentType") and data.get("repaymentType") not in REPAYMENT_TYPES:
        raise ValidationError("repaymentType must be PERCENTAGE or ABSOLUTE")
    if present("repaymentValue") and _number(data, "repaymentValue") <= 0:
        raise ValidationError("repaymentValue must be > 0")


def validate_special_payment(data: Dict[str, Any]) -> None:
    if not data.get("date"):
        raise ValidationError("date is required")
    if not is_valid_date(data["date"]):
        raise ValidationError("date must be in YYYY-MM-DD format")
    if _number(data, "amount") <= 0:
        raise ValidationError("amount must be > 0")
    note = data.get("note")
    if note is not None and not isinstance(note, str):
        raise ValidationError("note must be a string")
