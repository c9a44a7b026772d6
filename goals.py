"""Goal lifecycle rules: contributions, milestones, completion and auto-save.

Everything here mutates ORM objects in memory only; persisting (and the
optimistic version check on the goal row) is left to the caller's session.
"""

import logging
import math
from datetime import datetime, time, timedelta
from typing import Optional

from errors import (
    AutoSaveDisabledError,
    AutoSaveNotDueError,
    InvalidStateError,
    ValidationError,
)
from models import (
    AutoSaveFrequency,
    ContributionSource,
    Goal,
    GoalContribution,
    GoalMilestone,
    GoalPriority,
    GoalStatus,
)


logger = logging.getLogger(__name__)

DEFAULT_MILESTONE_PERCENTAGES = (25, 50, 75, 100)

# Monthly is a fixed 30 days, not calendar aware.
AUTO_SAVE_PERIODS = {
    AutoSaveFrequency.daily: timedelta(days=1),
    AutoSaveFrequency.weekly: timedelta(days=7),
    AutoSaveFrequency.monthly: timedelta(days=30),
}

PRIORITY_RANK = {
    GoalPriority.urgent: 0,
    GoalPriority.high: 1,
    GoalPriority.medium: 2,
    GoalPriority.low: 3,
}


def milestone_amount(target_cents: int, percentage: int) -> int:
    # Rounded up so that reaching the amount always means reaching the share.
    return -(-target_cents * percentage // 100)


def build_default_milestones(target_cents: int) -> list[GoalMilestone]:
    return [
        GoalMilestone(
            percentage=pct,
            amount_cents=milestone_amount(target_cents, pct),
            is_achieved=False,
        )
        for pct in DEFAULT_MILESTONE_PERCENTAGES
    ]


def rescale_milestones(goal: Goal) -> None:
    """Recompute thresholds from the current target.

    Achieved flags are left alone: a milestone reached under the old
    target stays reached even if its new threshold is above the current
    amount.
    """
    existing = {m.percentage: m for m in goal.milestones}
    for pct in DEFAULT_MILESTONE_PERCENTAGES:
        milestone = existing.get(pct)
        if milestone is None:
            goal.milestones.append(
                GoalMilestone(
                    percentage=pct,
                    amount_cents=milestone_amount(goal.target_cents, pct),
                    is_achieved=False,
                )
            )
        else:
            milestone.amount_cents = milestone_amount(goal.target_cents, pct)


def evaluate_goal(goal: Goal, now: datetime) -> list[GoalMilestone]:
    """Apply automatic transitions and return milestones reached just now."""
    if goal.status == GoalStatus.active and goal.current_cents >= goal.target_cents:
        goal.status = GoalStatus.completed
        if goal.completed_at is None:
            goal.completed_at = now
        logger.info(f"goal_completed: goal_id={goal.id} current={goal.current_cents}")

    reached: list[GoalMilestone] = []
    for milestone in goal.milestones:
        if not milestone.is_achieved and goal.current_cents >= milestone.amount_cents:
            milestone.is_achieved = True
            milestone.achieved_at = now
            reached.append(milestone)
            logger.info(
                f"goal_milestone_reached: goal_id={goal.id} percentage={milestone.percentage}"
            )
    return reached


def add_contribution(
    goal: Goal,
    amount_cents: int,
    *,
    now: datetime,
    note: Optional[str] = None,
    source: ContributionSource = ContributionSource.manual,
) -> GoalContribution:
    if amount_cents <= 0:
        raise ValidationError("Contribution amount must be greater than 0")
    if goal.status != GoalStatus.active:
        raise InvalidStateError(f"Cannot contribute to a {goal.status.value} goal")

    contribution = GoalContribution(
        amount_cents=amount_cents,
        contributed_at=now,
        note=note or None,
        source=source,
    )
    goal.contributions.append(contribution)
    goal.current_cents = (goal.current_cents or 0) + amount_cents
    logger.info(
        f"goal_contribution: goal_id={goal.id} amount={amount_cents} source={source.value}"
    )
    evaluate_goal(goal, now)
    return contribution


def is_auto_save_due(goal: Goal, now: datetime) -> bool:
    if goal.last_auto_save is None:
        return True
    return now - goal.last_auto_save >= AUTO_SAVE_PERIODS[goal.auto_save_frequency]


def run_auto_save(goal: Goal, now: datetime) -> GoalContribution:
    if not goal.auto_save_enabled or goal.auto_save_amount_cents <= 0:
        raise AutoSaveDisabledError("Auto-save is not enabled for this goal")
    if goal.status != GoalStatus.active:
        raise InvalidStateError(f"Cannot auto-save to a {goal.status.value} goal")
    if not is_auto_save_due(goal, now):
        raise AutoSaveNotDueError("Auto-save is not due yet")

    contribution = add_contribution(
        goal,
        goal.auto_save_amount_cents,
        now=now,
        note="Auto-save contribution",
        source=ContributionSource.auto_save,
    )
    goal.last_auto_save = now
    return contribution


def progress_percentage(goal: Goal) -> float:
    if goal.target_cents <= 0:
        return 0.0
    return min(goal.current_cents / goal.target_cents * 100, 100.0)


def days_remaining(goal: Goal, now: datetime) -> int:
    deadline = datetime.combine(goal.target_date, time.min)
    return math.ceil((deadline - now).total_seconds() / 86400)


def required_daily_savings(goal: Goal, now: datetime) -> float:
    days_left = days_remaining(goal, now)
    if days_left <= 0:
        return 0.0
    return max(0.0, (goal.target_cents - goal.current_cents) / days_left)


def is_overdue(goal: Goal, now: datetime) -> bool:
    return goal.status == GoalStatus.active and datetime.combine(
        goal.target_date, time.min
    ) < now


def priority_sort_key(goal: Goal) -> tuple:
    return (PRIORITY_RANK[goal.priority], goal.target_date, goal.id or 0)
