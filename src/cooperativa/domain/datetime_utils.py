"""
Date and time helpers.

Canonical storage formats are ``YYYY-MM-DD`` for dates and zero-padded
24-hour ``HH:MM`` for times. Spreadsheet cells arrive loosely typed, so the
normalisers accept strings as well as the date/time objects openpyxl returns
for formatted cells.

All functions here are total: invalid input yields ``None``, never an exception.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone

TIME_PLACEHOLDER = "Seleccionar hora"
DATE_PLACEHOLDER = "Seleccionar fecha"

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DMY_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])?$")


def utc_now_iso() -> str:
    """Current UTC timestamp in ISO-8601 format."""
    return datetime.now(timezone.utc).isoformat()


def normalise_date(value: object) -> str | None:
    """
    Canonicalise a date to ``YYYY-MM-DD``.

    Accepts ``YYYY-MM-DD`` and ``DD-MM-YYYY`` strings, ``date`` and
    ``datetime`` objects. Any other separator or an impossible calendar
    date is rejected.

    Examples:
        >>> normalise_date("05-03-2024")
        '2024-03-05'
        >>> normalise_date("2024/03/05") is None
        True
    """
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _DMY_DATE.match(text)
        if not match:
            return None
        day, month, year = (int(part) for part in match.groups())

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalise_time(value: object) -> str | None:
    """
    Canonicalise a time of day to 24-hour ``HH:MM``.

    Accepts ``H:MM`` / ``HH:MM`` (an optional ``:SS`` part is dropped),
    optionally followed by ``AM`` or ``PM``. With a period suffix the hour
    must be between 1 and 12.

    Examples:
        >>> normalise_time("9:00 AM")
        '09:00'
        >>> normalise_time("12:30 PM")
        '12:30'
        >>> normalise_time("13:00 PM") is None
        True
    """
    if isinstance(value, (datetime, time)):
        return value.strftime("%H:%M")
    if not isinstance(value, str):
        return None

    match = _TIME.match(value.strip())
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    seconds = match.group(3)
    period = match.group(4)

    if minute > 59 or (seconds is not None and int(seconds) > 59):
        return None

    if period:
        if not 1 <= hour <= 12:
            return None
        if period.upper() == "AM":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
    elif hour > 23:
        return None

    return f"{hour:02d}:{minute:02d}"


def format_time_display(value: str | None) -> str:
    """Render a stored ``HH:MM`` time as ``h:MM AM/PM`` for people."""
    canonical = normalise_time(value) if value else None
    if canonical is None:
        return TIME_PLACEHOLDER

    hour, minute = (int(part) for part in canonical.split(":"))
    period = "PM" if hour >= 12 else "AM"
    twelve_hour = hour % 12 or 12
    return f"{twelve_hour}:{minute:02d} {period}"


def format_date_display(value: str | None) -> str:
    """Render a stored ``YYYY-MM-DD`` date as ``DD-MM-YYYY``."""
    canonical = normalise_date(value) if value else None
    if canonical is None:
        return DATE_PLACEHOLDER

    year, month, day = canonical.split("-")
    return f"{day}-{month}-{year}"
