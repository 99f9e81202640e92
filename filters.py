from __future__ import annotations

from typing import Iterable, List

from config import FILTER_ALL
from metrics import owner_label
from plan_models import Row


def row_matches(row: Row, *, status: str = FILTER_ALL, owner: str = FILTER_ALL, search: str = "") -> bool:
    if status != FILTER_ALL and row.status != status:
        return False
    if owner != FILTER_ALL and owner_label(row.owner) != owner:
        return False
    haystack = " ".join([row.action, row.owner, row.notes]).lower()
    return (search or "").lower() in haystack


def filter_rows(
    rows: Iterable[Row],
    *,
    status: str = FILTER_ALL,
    owner: str = FILTER_ALL,
    search: str = "",
) -> List[Row]:
    """
    Narrow the action list for display.

    - status: a status value, or FILTER_ALL
    - owner: an owner label as returned by metrics.unique_owners(), or FILTER_ALL
    - search: case-insensitive text matched against action, owner and notes

    Returns a new list in the original order; the input is never modified.
    """
    return [r for r in rows if row_matches(r, status=status, owner=owner, search=search)]
