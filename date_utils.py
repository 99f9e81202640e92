from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

# Accepted text formats, tried in order. ISO first: it is what the JSON
# snapshot and the browser date inputs produce.
_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d/%m/%y", "%Y/%m/%d", "%d-%b-%Y", "%b %d %Y")


def _is_missing(value: Any) -> bool:
    """None, NaN, NaT or pd.NA."""
    if value is None:
        return True
    try:
        return bool(value != value)
    except TypeError:
        # pd.NA refuses to be used as a bool
        return True


def coerce_date(value: Any) -> Optional[date]:
    """Convert a field value into a Python date (or None).

    Handles dates, datetimes, pandas Timestamps and strings. Blank or
    unparseable input gives None ("no date").
    """
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return None
        # ISO datetimes ("2024-01-31T00:00:00") as produced by some exporters
        if "T" in v:
            v = v.split("T", 1)[0]
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(v, fmt).date()
            except ValueError:
                continue
    return None


def format_date(d: Optional[date]) -> str:
    """ISO text for a date, or "" when there is none."""
    return d.isoformat() if d else ""


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days


def clamp_date(d: date, lower: date, upper: date) -> date:
    return min(max(d, lower), upper)
