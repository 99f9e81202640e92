from datetime import date, datetime

import pytest

from metrics import compute_metrics, goal_pacing, pacing_message
from plan_models import Goal, Header


def _pacing(start, target_date, completion, today, target=80):
    return goal_pacing(Header(inicio=start), Goal(targetPercent=target, targetDate=target_date), completion, today)


def test_mid_range_pacing_is_deterministic() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 40, date(2024, 1, 16))
    assert p.total_days == 30
    assert p.days_elapsed == 15
    assert p.days_remaining == 15
    assert p.expected_progress_today == 40
    assert p.on_pace is True
    assert p.required_daily_rate == pytest.approx(40 / 15)


def test_behind_pace() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 20, date(2024, 1, 16))
    assert p.on_pace is False
    assert pacing_message(p) == "Abaixo do ritmo"


def test_today_before_start_is_clamped() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 0, date(2023, 12, 1))
    assert p.days_elapsed == 0
    assert p.expected_progress_today == 0
    assert p.days_remaining == 30
    assert p.on_pace is True


def test_today_after_target_is_clamped() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 50, date(2024, 6, 1))
    assert p.days_elapsed == 30
    assert p.days_remaining == 0
    assert p.expected_progress_today == 80
    assert p.required_daily_rate == 0
    assert p.on_pace is False


def test_required_rate_never_negative() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 100, date(2024, 1, 10))
    assert p.required_daily_rate == 0


@pytest.mark.parametrize(
    "start, target_date",
    [
        ("", "2024-01-31"),
        ("2024-01-01", ""),
        ("2024-01-31", "2024-01-01"),
        ("2024-01-15", "2024-01-15"),  # same day: no pacing
    ],
)
def test_pacing_absent_without_valid_window(start, target_date) -> None:
    p = _pacing(start, target_date, 40, date(2024, 1, 16))
    assert p.target == 80
    assert p.total_days is None
    assert p.days_elapsed is None
    assert p.days_remaining is None
    assert p.expected_progress_today is None
    assert p.on_pace is None
    assert p.required_daily_rate is None
    assert pacing_message(p) == "Defina início e data-alvo"


def test_compute_metrics_uses_explicit_today(sample_state) -> None:
    m = compute_metrics(sample_state, date(2024, 1, 16))
    assert m.completion_percent == 25
    assert m.pacing.expected_progress_today == 40
    assert m.pacing.on_pace is False


def test_pacing_accepts_datetime_today() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 40, datetime(2024, 1, 16, 15, 30))
    assert p.days_elapsed == 15
    assert p.expected_progress_today == 40


def test_zero_required_rate_still_counts_as_defined() -> None:
    p = _pacing("2024-01-01", "2024-01-31", 100, date(2024, 1, 16))
    assert p.defined
    assert p.required_daily_rate == 0.0
