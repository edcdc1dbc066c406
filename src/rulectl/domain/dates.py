"""Calendar date interface used by the temporal algebra.

Accepted textual forms:

- ISO ``YYYY-MM-DD``
- ``DD/MM/YYYY``
- ``MM/YYYY`` and ``YYYY`` (normalized to the first day of the month/year)
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASH_PATTERN = re.compile(r"^\d{1,2}(/\d{1,2})?/\d{4}$|^\d{4}$")


def _normalize_date_string(text: str) -> str:
    """Pad partial ``MM/YYYY`` and ``YYYY`` forms to ``DD/MM/YYYY``."""
    parts = text.split("/")
    if len(parts) == 1:
        return f"01/01/{parts[0]}"
    if len(parts) == 2:
        return f"01/{parts[0]}/{parts[1]}"
    return text


def to_calendar_date(value: date | str | int) -> date:
    """Convert *value* to a :class:`datetime.date`.

    Raises:
        ValueError: if *value* is not a recognized date form.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if _ISO_PATTERN.match(text):
        return date.fromisoformat(text)
    if _SLASH_PATTERN.match(text):
        day, month, year = _normalize_date_string(text).split("/")
        return date(int(year), int(month), int(day))
    msg = f"Invalid date {value!r}: expected YYYY-MM-DD, DD/MM/YYYY, MM/YYYY or YYYY"
    raise ValueError(msg)


def offset_date(day: date, days: int) -> date:
    """Return *day* shifted by *days* (negative goes back in time)."""
    return day + timedelta(days=days)
