"""
Time String Service - turns free-text time input into a time of day.

Accepted shapes: "9", "900", "9:00", "9.00", "9;00", "0930", "1730",
"5:30 PM", "530p". Hours 13-23 written with two digits are read as 24-hour
time. Any other hour without AM/PM is placed strictly inside the typical work
window (07:00-19:00 by default), so "5" means 17:00, "9" means 09:00 and "7"
means 19:00.

Everything here is pure: no I/O, no state, and invalid input gives None
instead of raising.
"""

import re
from datetime import datetime, time
from typing import Optional

DEFAULT_WORK_START = time(7, 0)
DEFAULT_WORK_END = time(19, 0)

DISPLAY_FORMAT = "%I:%M %p"

_VALID_FORMAT = re.compile(r"^\d{1,2}[:;.]?(\d{2})?\s*([AP]M?)?$", re.IGNORECASE | re.ASCII)
_24_HOUR_PREFIX = re.compile(r"^(\d{2})(?:\D|$|\d{2}(?:\D|$))", re.ASCII)
_PERIOD = re.compile(r"([AP])M?$", re.IGNORECASE)
_SEPARATOR = re.compile(r"[:;.]")
_WHITESPACE = re.compile(r"\s")


def has_period(value: str) -> bool:
    """True if the text ends in an AM/PM marker (a, p, am or pm)"""
    return bool(_PERIOD.search(value.strip()))


def is_24_hour_format(value: str) -> bool:
    """
    Two leading digits forming an hour from 13 to 23.

    The two digits must be followed by a non-digit, the end, or exactly
    two more digits ("1730"), otherwise "130" would read as hour 13.
    """
    match = _24_HOUR_PREFIX.match(value.strip())
    if not match:
        return False
    return 13 <= int(match.group(1)) <= 23


def is_valid_time_format(value: Optional[str]) -> bool:
    if value is None:
        return False
    value = value.strip()
    if not _VALID_FORMAT.match(value):
        return False
    if is_24_hour_format(value):
        # "17:30 PM" is redundant but harmless; "17:30 AM" is a contradiction
        period = _PERIOD.search(value)
        return period is None or period.group(1).upper() == "P"
    return True


def _canonical(value: str) -> tuple:
    """
    Split cleaned input into ("HH" or "HH:MM", period or "").

    Separators and whitespace are dropped; a bare run of 3-4 digits gets a
    colon before its last two digits.
    """
    period = ""
    match = _PERIOD.search(value)
    if match:
        period = match.group(1).upper() + "M"
        value = value[:match.start()]

    value = _WHITESPACE.sub("", value)
    separated = _SEPARATOR.search(value) is not None
    parts = _SEPARATOR.split(value)
    if separated:
        hours, minutes = parts[0], parts[1] if len(parts) > 1 else ""
    else:
        digits = parts[0]
        hours, minutes = (digits[:-2], digits[-2:]) if len(digits) > 2 else (digits, "")

    hours = hours.zfill(2)
    return (f"{hours}:{minutes}" if minutes else hours), period


def _shift_into_window(value: time, work_start: time, work_end: time) -> time:
    """Move an AM/PM-less 12-hour time by 12 hours unless it lies strictly inside the window"""
    if work_start < value < work_end:
        return value
    if value.hour < 12:
        return value.replace(hour=value.hour + 12)
    return value.replace(hour=value.hour - 12)


def normalize_time(
    value: Optional[str],
    work_start: time = DEFAULT_WORK_START,
    work_end: time = DEFAULT_WORK_END,
) -> Optional[time]:
    """
    Parse loosely formatted time input.

    Args:
        value: Raw text from a time field
        work_start: Start of the typical work window
        work_end: End of the typical work window

    Returns:
        The time of day, or None if the text is not a valid time
    """
    if value is None or not value.strip():
        return None
    if not is_valid_time_format(value):
        return None

    value = value.strip()
    is_24_hour = is_24_hour_format(value)
    text, period = _canonical(value)
    if is_24_hour:
        # Only a redundant PM can get here
        period = ""

    has_minutes = ":" in text
    if is_24_hour:
        pattern = "%H:%M" if has_minutes else "%H"
    else:
        pattern = "%I:%M" if has_minutes else "%I"
    if period:
        pattern += "%p"

    try:
        parsed = datetime.strptime(text + period, pattern).time()
    except ValueError:
        return None

    if not is_24_hour and not period:
        parsed = _shift_into_window(parsed, work_start, work_end)
    return parsed


def format_time(value: Optional[time]) -> str:
    """Display form used by time fields, e.g. 05:30 PM. Empty for None."""
    if value is None:
        return ""
    return value.strftime(DISPLAY_FORMAT)
