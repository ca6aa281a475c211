"""
Custom validators
"""
import re
from datetime import date, datetime
from typing import Any, Optional

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CLOCK_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
MERIDIEM_TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?(?::\d{2})?\s*([AaPp])\.?\s*[Mm]\.?$")


def parse_entry_date(value: Any) -> Optional[date]:
    """
    Parse a chronology date. Only calendar dates in YYYY-MM-DD form are
    accepted; anything else returns None so the caller can reject it.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not ISO_DATE_PATTERN.match(candidate):
        return None
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        return None


def normalize_clock_time(value: Any) -> str:
    """
    Zero-pad recognisable clock times ("8:05" -> "08:05") and convert
    12-hour times to 24-hour form ("1:30 PM" -> "13:30") so they order
    correctly as strings. Other free-form values are kept as given.
    """
    if value is None:
        return ""
    text = str(value).strip()
    meridiem = MERIDIEM_TIME_PATTERN.match(text)
    if meridiem:
        hour, minute = int(meridiem.group(1)), int(meridiem.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return text
        hour %= 12
        if meridiem.group(3).lower() == "p":
            hour += 12
        return f"{hour:02d}:{minute:02d}"
    match = CLOCK_TIME_PATTERN.match(text)
    if not match:
        return text
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return text
    return f"{hour:02d}:{minute:02d}"
