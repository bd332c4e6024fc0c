"""
Coercion of raw request values to column types.

Every helper returns None for input it cannot use; callers treat None
as "ignore this filter".
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..schema.reflector import ColumnKind


TRUTHY = frozenset({"true", "1", "yes", "on", "t", "y"})
FALSY = frozenset({"false", "0", "no", "off", "f", "n"})

_INTEGER_PATTERN = re.compile(r"-?[0-9]+")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# Accepted textual date forms besides ISO 8601
DATE_FORMATS = ("%m/%d/%Y",)


def coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUTHY:
            return True
        if text in FALSY:
            return False
    return None


def coerce_int(value: Any) -> Optional[int]:
    """Integer within the signed 64-bit range stores accept, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        # ASCII digits only: int() also accepts "1_000" and non-Latin digits
        text = value.strip()
        if not _INTEGER_PATTERN.fullmatch(text):
            return None
        try:
            number = int(text)
        except ValueError:
            # Longer than the interpreter's digit limit
            return None
    else:
        return None
    return number if INT64_MIN <= number <= INT64_MAX else None


def coerce_number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def parse_temporal(value: Any) -> tuple[Optional[date | datetime], bool]:
    """
    Parse a date or datetime.

    Returns:
        Tuple of (parsed value or None, True when the input carried no time)
    """
    if isinstance(value, datetime):
        return value, False
    if isinstance(value, date):
        return value, True
    if not isinstance(value, str):
        return None, False

    text = value.strip()
    if not text:
        return None, False

    try:
        return date.fromisoformat(text), True
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")), False
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date(), True
        except ValueError:
            continue
    return None, False


def coerce_date(value: Any) -> Optional[date]:
    parsed, _ = parse_temporal(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


def range_bound(value: Any, kind: ColumnKind, upper: bool) -> Optional[date | datetime]:
    """
    Inclusive bound for a date/datetime column.

    A date-only upper bound on a datetime column covers the whole day.
    """
    parsed, date_only = parse_temporal(value)
    if parsed is None:
        return None

    if kind is ColumnKind.DATE:
        return parsed.date() if isinstance(parsed, datetime) else parsed

    if date_only:
        return datetime.combine(parsed, time.max if upper else time.min)
    return parsed


def coerce_for_kind(kind: ColumnKind, value: Any) -> Any:
    """Coerce a scalar for equality against a column of ``kind``."""
    if kind is ColumnKind.INTEGER:
        return coerce_int(value)
    if kind is ColumnKind.NUMERIC:
        return coerce_number(value)
    if kind is ColumnKind.BOOLEAN:
        return coerce_bool(value)
    if kind.is_temporal:
        return range_bound(value, kind, upper=False)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)
