# crm_reports/query/coercion.py
"""Value coercions shared by the store predicate mapping and the in-memory evaluator."""

import json
import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional, Tuple


def to_number(value: Any) -> Optional[float]:
    """Coerce to float; None stands for NaN and never satisfies a comparison."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def to_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 value into an aware UTC datetime. Naive input is UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_date_only(value: Any) -> bool:
    """True for a calendar date without a time part ("2024-03-01" or a date object)."""
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    if isinstance(value, str):
        text = value.strip()
        return len(text) == 10 and to_timestamp(text) is not None
    return False


def day_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of the UTC day containing moment."""
    start = moment.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def is_midnight(moment: datetime) -> bool:
    return (moment.hour, moment.minute, moment.second, moment.microsecond) == (0, 0, 0, 0)


def to_naive_utc(moment: datetime) -> datetime:
    """DateTime columns hold naive UTC values."""
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def to_text(value: Any) -> str:
    """String form used by the text operators."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, dict)):
        # JSON columns are matched on their serialized text in the store
        return json.dumps(value)
    return str(value)


def to_bool_flag(value: Any) -> Optional[bool]:
    """Booleans or the strings "true"/"false"; anything else is neither."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None
