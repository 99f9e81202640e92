from __future__ import annotations

# ---------------------------------------------------------------------------
# Derived values shown on the dashboard: completion %, per-owner progress,
# status/priority tallies and goal pacing.
#
# Everything here is a pure function of the plan (plus an explicit "today"
# for pacing) so the numbers are easy to test and never depend on the clock.
# ---------------------------------------------------------------------------
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from config import UNASSIGNED_OWNER
from date_utils import clamp_date, coerce_date, days_between
from plan_models import (
    PRIORITY_OPTIONS,
    STATUS_OPTIONS,
    Goal,
    Header,
    PlanState,
    Row,
    clamp_percent,
)


@dataclass(frozen=True)
class OwnerProgress:
    name: str
    completed: int
    total: int
    percent: int


@dataclass(frozen=True)
class Tally:
    key: str
    label: str
    count: int


@dataclass(frozen=True)
class GoalPacing:
    """Actual progress vs. a straight line from start date to target date.

    Every field except ``target`` is None when pacing can't be computed
    (missing dates, or target date not after the start date).
    """

    target: float
    total_days: Optional[int] = None
    days_elapsed: Optional[int] = None
    days_remaining: Optional[int] = None
    expected_progress_today: Optional[int] = None
    on_pace: Optional[bool] = None
    required_daily_rate: Optional[float] = None

    @property
    def defined(self) -> bool:
        return self.on_pace is not None


@dataclass(frozen=True)
class PlanMetrics:
    completion_percent: int
    progress_by_owner: List[OwnerProgress]
    counts_by_status: List[Tally]
    counts_by_priority: List[Tally]
    unique_owners: List[str]
    pacing: GoalPacing


def round_half_up(value: float) -> int:
    """Round .5 up (12.5 -> 13), unlike Python's round()."""
    return int(math.floor(value + 0.5))


def owner_label(owner: Optional[str]) -> str:
    """Trimmed owner name, or the unassigned label when blank."""
    name = (owner or "").strip()
    return name or UNASSIGNED_OWNER


def completion_percent(rows: Sequence[Row]) -> int:
    """Percent of rows marked done. An empty plan is 0%."""
    total = len(rows) or 1
    done = sum(1 for r in rows if r.is_done)
    return round_half_up(done * 100 / total)


def progress_by_owner(rows: Iterable[Row]) -> List[OwnerProgress]:
    """Completed/total per owner, in order of first appearance."""
    grouped: Dict[str, List[int]] = {}
    for r in rows:
        counts = grouped.setdefault(owner_label(r.owner), [0, 0])
        counts[1] += 1
        if r.is_done:
            counts[0] += 1

    return [
        OwnerProgress(
            name=name,
            completed=completed,
            total=total,
            percent=round_half_up(completed * 100 / (total or 1)),
        )
        for name, (completed, total) in grouped.items()
    ]


def _tally(values: Iterable[str], options) -> List[Tally]:
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return [Tally(key=k, label=label, count=counts[k]) for k, label in options if counts.get(k)]


def counts_by_status(rows: Iterable[Row]) -> List[Tally]:
    return _tally((r.status for r in rows), STATUS_OPTIONS)


def counts_by_priority(rows: Iterable[Row]) -> List[Tally]:
    return _tally((r.priority for r in rows), PRIORITY_OPTIONS)


def unique_owners(rows: Iterable[Row]) -> List[str]:
    """Distinct owner labels (the filter dropdown's choices)."""
    return list(dict.fromkeys(owner_label(r.owner) for r in rows))


def goal_pacing(header: Header, goal: Goal, completion: int, today: date) -> GoalPacing:
    """
    Compare actual completion with the expected completion for ``today``.

    Expected progress grows linearly from 0% on the start date to the target
    percent on the target date. ``today`` is clamped into that window, so a
    plan that hasn't started expects 0% and an overdue plan expects the full
    target. A target date on (or before) the start date gives no pacing.
    """
    target = clamp_percent(goal.target_percent)
    start = header.start_date
    end = goal.target_date
    today = coerce_date(today)

    if start is None or end is None or today is None or end <= start:
        return GoalPacing(target=target)

    total_days = days_between(start, end)
    clamped_today = clamp_date(today, start, end)
    days_elapsed = days_between(start, clamped_today)
    days_remaining = max(0, total_days - days_elapsed)
    expected = round_half_up(target * days_elapsed / total_days)

    if days_remaining > 0:
        required = max(0.0, (target - completion) / days_remaining)
    else:
        required = 0.0

    return GoalPacing(
        target=target,
        total_days=total_days,
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        expected_progress_today=expected,
        on_pace=completion >= expected,
        required_daily_rate=required,
    )


def pacing_message(pacing: GoalPacing) -> str:
    """Situation text for the goal panel."""
    if not pacing.defined:
        return "Defina início e data-alvo"
    return "Dentro do ritmo" if pacing.on_pace else "Abaixo do ritmo"


def compute_metrics(state: PlanState, today: date) -> PlanMetrics:
    """All derived dashboard values for one plan snapshot."""
    rows = state.rows
    completion = completion_percent(rows)
    return PlanMetrics(
        completion_percent=completion,
        progress_by_owner=progress_by_owner(rows),
        counts_by_status=counts_by_status(rows),
        counts_by_priority=counts_by_priority(rows),
        unique_owners=unique_owners(rows),
        pacing=goal_pacing(state.header, state.goal, completion, today),
    )
