"""
Date helpers for billing cycles.

Month arithmetic uses relativedelta, which clamps to the last valid day of
the target month: 2024-01-31 + 1 month == 2024-02-29.
"""
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from app.core.exceptions import ValidationError

MONTH_LABEL_FORMATS = ("%B %Y", "%b %Y", "%Y-%m")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_months(value: date, months: int) -> date:
    """Calendar month addition, clamped to month end."""
    return value + relativedelta(months=months)


def month_start(value: date) -> date:
    return value.replace(day=1)


def month_label(value: date) -> str:
    """date(2024, 3, 9) -> 'March 2024'"""
    return value.strftime("%B %Y")


def parse_month_label(label: str) -> date:
    """
    Parse a payment month label into the first day of that month.

    Accepts "March 2024", "Mar 2024" and "2024-03".
    """
    text = " ".join(str(label or "").split())
    for fmt in MONTH_LABEL_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().replace(day=1)
        except ValueError:
            continue
    raise ValidationError(
        f"Invalid payment month '{label}'. Expected a label like 'March 2024'"
    )


def as_date(value: Any) -> Optional[date]:
    """Drop the time part of a datetime; dates pass through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(value: Any, field_name: str = "date") -> date:
    """Parse an ISO date/datetime string (or date object) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
