from datetime import date, datetime, timedelta

import pytest

from errors import AutoSaveDisabledError, AutoSaveNotDueError, InvalidStateError, ValidationError
from goals import (
    add_contribution,
    build_default_milestones,
    days_remaining,
    is_auto_save_due,
    is_overdue,
    milestone_amount,
    required_daily_savings,
    rescale_milestones,
    run_auto_save,
)
from models import AutoSaveFrequency, ContributionSource, Goal, GoalPriority, GoalStatus


NOW = datetime(2024, 6, 1, 12, 0)


def _goal(target_cents: int = 10_000, status: GoalStatus = GoalStatus.active) -> Goal:
    goal = Goal(
        user_id=1,
        title="Laptop",
        target_cents=target_cents,
        current_cents=0,
        priority=GoalPriority.medium,
        target_date=date(2024, 12, 31),
        status=status,
        auto_save_enabled=False,
        auto_save_amount_cents=0,
        auto_save_frequency=AutoSaveFrequency.monthly,
    )
    goal.milestones = build_default_milestones(target_cents)
    return goal


def test_contributions_sum_to_current_amount() -> None:
    goal = _goal()
    for amount in (2_500, 3_000, 1_200):
        add_contribution(goal, amount, now=NOW)
    assert goal.current_cents == sum(c.amount_cents for c in goal.contributions)
    assert goal.current_cents == 6_700
    assert [m.is_achieved for m in goal.milestones] == [True, True, False, False]


def test_reaching_target_completes_goal_once() -> None:
    goal = _goal()
    add_contribution(goal, 4_000, now=NOW)
    later = NOW + timedelta(days=1)
    add_contribution(goal, 6_500, now=later)
    assert goal.status == GoalStatus.completed
    assert goal.completed_at == later
    assert all(m.is_achieved for m in goal.milestones)
    assert goal.milestones[-1].achieved_at == later

    with pytest.raises(InvalidStateError):
        add_contribution(goal, 100, now=later)
    assert goal.current_cents == 10_500


@pytest.mark.parametrize(
    "status", [GoalStatus.paused, GoalStatus.completed, GoalStatus.cancelled]
)
def test_contribution_rejected_when_not_active(status: GoalStatus) -> None:
    goal = _goal(status=status)
    with pytest.raises(InvalidStateError):
        add_contribution(goal, 1_000, now=NOW)
    assert goal.current_cents == 0
    assert goal.contributions == []
    assert not any(m.is_achieved for m in goal.milestones)


def test_contribution_amount_must_be_positive() -> None:
    goal = _goal()
    with pytest.raises(ValidationError):
        add_contribution(goal, 0, now=NOW)


def test_milestone_thresholds_round_up() -> None:
    assert milestone_amount(999, 25) == 250
    assert milestone_amount(10_000, 75) == 7_500
    assert [m.amount_cents for m in build_default_milestones(999)] == [250, 500, 750, 999]


def test_rescale_keeps_achieved_flags() -> None:
    goal = _goal()
    add_contribution(goal, 3_000, now=NOW)
    goal.target_cents = 20_000
    rescale_milestones(goal)
    assert [m.amount_cents for m in goal.milestones] == [5_000, 10_000, 15_000, 20_000]
    assert goal.milestones[0].is_achieved


def test_weekly_auto_save_due_after_seven_days() -> None:
    goal = _goal()
    goal.auto_save_enabled = True
    goal.auto_save_amount_cents = 500
    goal.auto_save_frequency = AutoSaveFrequency.weekly

    goal.last_auto_save = NOW - timedelta(days=6)
    assert not is_auto_save_due(goal, NOW)
    with pytest.raises(AutoSaveNotDueError):
        run_auto_save(goal, NOW)
    assert goal.contributions == []

    goal.last_auto_save = NOW - timedelta(days=7)
    assert is_auto_save_due(goal, NOW)
    run_auto_save(goal, NOW)
    assert goal.last_auto_save == NOW
    assert len(goal.contributions) == 1
    assert goal.contributions[0].amount_cents == 500
    assert goal.contributions[0].source == ContributionSource.auto_save
    assert goal.current_cents == 500


def test_auto_save_requires_enabled_goal() -> None:
    goal = _goal()
    with pytest.raises(AutoSaveDisabledError):
        run_auto_save(goal, NOW)

    goal.auto_save_enabled = True
    goal.auto_save_amount_cents = 500
    goal.status = GoalStatus.paused
    with pytest.raises(InvalidStateError):
        run_auto_save(goal, NOW)


def test_first_auto_save_is_always_due() -> None:
    goal = _goal()
    goal.auto_save_enabled = True
    goal.auto_save_amount_cents = 500
    assert is_auto_save_due(goal, NOW)


def test_days_remaining_and_required_savings() -> None:
    goal = _goal()
    goal.target_date = date(2024, 6, 11)
    goal.current_cents = 2_000
    assert days_remaining(goal, NOW) == 10
    assert required_daily_savings(goal, NOW) == 800


def test_overdue_after_target_date_midnight() -> None:
    goal = _goal()
    goal.target_date = date(2024, 6, 1)
    assert not is_overdue(goal, datetime(2024, 6, 1, 0, 0))
    assert is_overdue(goal, datetime(2024, 6, 1, 0, 1))
    goal.status = GoalStatus.completed
    assert not is_overdue(goal, datetime(2024, 6, 2))
