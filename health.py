"""Composite 0-100 financial health score.

Five independently capped factors are added up:

    savings rate        30
    budget adherence    25
    goal progress       20
    expense consistency 15  (only with at least two months of data)
    emergency fund      10
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence


@dataclass(frozen=True)
class HealthInputs:
    income_cents: int
    expense_cents: int
    budget_utilization: float
    active_goal_count: int = 0
    completed_goal_count: int = 0
    active_current_cents: int = 0
    active_target_cents: int = 0
    monthly_expense_totals: Sequence[int] = ()
    emergency_fund_current_cents: Optional[int] = None
    emergency_fund_target_cents: Optional[int] = None


@dataclass(frozen=True)
class HealthFactor:
    factor: str
    points: int
    status: str


@dataclass(frozen=True)
class HealthReport:
    score: int
    status: str
    factors: list[HealthFactor]
    savings_rate: float
    budget_utilization: float
    goal_progress: float
    active_goals: int
    completed_goals: int
    coefficient_of_variation: Optional[float]
    recommendations: list[str] = field(default_factory=list)


def savings_rate(income_cents: int, expense_cents: int) -> float:
    if income_cents <= 0:
        return 0.0
    return (income_cents - expense_cents) / income_cents * 100


def coefficient_of_variation(values: Sequence[int]) -> float:
    mean = sum(values) / len(values)
    if mean <= 0:
        return 0.0
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean * 100


def _savings_factor(rate: float) -> HealthFactor:
    if rate >= 20:
        return HealthFactor("Excellent savings rate", 30, "excellent")
    if rate >= 10:
        return HealthFactor("Good savings rate", 20, "good")
    if rate >= 0:
        return HealthFactor("Positive savings", 10, "fair")
    return HealthFactor("Negative savings", 0, "poor")


def _budget_factor(utilization: float) -> HealthFactor:
    if utilization <= 80:
        return HealthFactor("Excellent budget control", 25, "excellent")
    if utilization <= 100:
        return HealthFactor("Good budget control", 15, "good")
    if utilization <= 120:
        return HealthFactor("Slight budget overspend", 5, "fair")
    return HealthFactor("Significant budget overspend", 0, "poor")


def _goal_factor(progress: float, active: int, completed: int) -> HealthFactor:
    if completed > 0 and progress >= 50:
        return HealthFactor("Excellent goal achievement", 20, "excellent")
    if progress >= 25:
        return HealthFactor("Good goal progress", 15, "good")
    if active > 0:
        return HealthFactor("Goals set but limited progress", 10, "fair")
    return HealthFactor("No active financial goals", 0, "poor")


def _consistency_factor(cv: float) -> HealthFactor:
    if cv <= 20:
        return HealthFactor("Consistent spending patterns", 15, "excellent")
    if cv <= 40:
        return HealthFactor("Moderately consistent spending", 10, "good")
    return HealthFactor("Inconsistent spending patterns", 5, "fair")


def _emergency_factor(current: Optional[int], target: Optional[int]) -> HealthFactor:
    if target is None:
        return HealthFactor("No emergency fund", 0, "poor")
    if (current or 0) >= target * 0.5:
        return HealthFactor("Emergency fund in progress", 10, "good")
    return HealthFactor("Emergency fund started", 5, "fair")


def health_status(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


def score_financial_health(inputs: HealthInputs) -> HealthReport:
    rate = savings_rate(inputs.income_cents, inputs.expense_cents)
    progress = (
        inputs.active_current_cents / inputs.active_target_cents * 100
        if inputs.active_goal_count > 0 and inputs.active_target_cents > 0
        else 0.0
    )

    factors = [
        _savings_factor(rate),
        _budget_factor(inputs.budget_utilization),
        _goal_factor(progress, inputs.active_goal_count, inputs.completed_goal_count),
    ]

    cv: Optional[float] = None
    if len(inputs.monthly_expense_totals) >= 2:
        cv = coefficient_of_variation(inputs.monthly_expense_totals)
        factors.append(_consistency_factor(cv))

    factors.append(
        _emergency_factor(
            inputs.emergency_fund_current_cents, inputs.emergency_fund_target_cents
        )
    )

    score = max(0, min(100, sum(f.points for f in factors)))

    recommendations = []
    if rate < 10:
        recommendations.append("Try to save at least 10% of your income each month")
    if inputs.budget_utilization > 100:
        recommendations.append("Review and reduce expenses to stay within budget")
    if inputs.active_goal_count == 0:
        recommendations.append("Set specific financial goals to improve motivation")
    if inputs.emergency_fund_target_cents is None:
        recommendations.append(
            "Start building an emergency fund for unexpected expenses"
        )

    return HealthReport(
        score=score,
        status=health_status(score),
        factors=factors,
        savings_rate=rate,
        budget_utilization=inputs.budget_utilization,
        goal_progress=progress,
        active_goals=inputs.active_goal_count,
        completed_goals=inputs.completed_goal_count,
        coefficient_of_variation=cv,
        recommendations=recommendations,
    )
