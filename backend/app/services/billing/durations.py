"""
Membership duration labels and cycle lengths.
"""
from typing import Any, Optional

from app.core.exceptions import InvalidDurationError

ALLOWED_DURATIONS = ("1 Month", "3 Months", "6 Months", "1 Year")

DURATION_MONTHS = {
    "1 Month": 1,
    "3 Months": 3,
    "6 Months": 6,
    "1 Year": 12,
}

_ALIASES = {
    "1 month": "1 Month",
    "1 months": "1 Month",
    "month": "1 Month",
    "monthly": "1 Month",
    "1": "1 Month",
    "3 months": "3 Months",
    "3 month": "3 Months",
    "quarterly": "3 Months",
    "3": "3 Months",
    "6 months": "6 Months",
    "6 month": "6 Months",
    "half yearly": "6 Months",
    "half-yearly": "6 Months",
    "6": "6 Months",
    "1 year": "1 Year",
    "year": "1 Year",
    "yearly": "1 Year",
    "annual": "1 Year",
    "annually": "1 Year",
    "12 months": "1 Year",
    "12": "1 Year",
}


def normalize_duration(value: Any, allow_empty: bool = False) -> Optional[str]:
    """
    Map free-form input to one of ALLOWED_DURATIONS.

    Returns None for empty input when allow_empty is set (meaning "no
    change"); raises InvalidDurationError otherwise.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_empty:
            return None
        raise InvalidDurationError(
            f"Duration is required. Allowed values: {', '.join(ALLOWED_DURATIONS)}"
        )
    if isinstance(value, bool):
        raise InvalidDurationError(
            f"Invalid duration {value!r}. Allowed values: {', '.join(ALLOWED_DURATIONS)}"
        )
    key = " ".join(str(value).lower().split())
    label = _ALIASES.get(key)
    if label is None:
        raise InvalidDurationError(
            f"Invalid duration {value!r}. Allowed values: {', '.join(ALLOWED_DURATIONS)}"
        )
    return label


def _legacy_months(value: str) -> int:
    # Rows written before durations were normalized
    text = value.lower()
    if "year" in text:
        return 12
    if "6" in text:
        return 6
    if "3" in text:
        return 3
    return 1


def cycle_months_for(duration: Any) -> int:
    """Number of months in one cycle for a duration label."""
    if duration is None:
        return 1
    if isinstance(duration, int) and not isinstance(duration, bool):
        return duration if duration > 0 else 1
    label = str(duration).strip()
    if label in DURATION_MONTHS:
        return DURATION_MONTHS[label]
    try:
        return DURATION_MONTHS[normalize_duration(label)]
    except InvalidDurationError:
        return _legacy_months(label)
