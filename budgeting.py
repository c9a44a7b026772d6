from dataclasses import dataclass
from enum import Enum


class BudgetStatus(str, Enum):
    over_budget = "over-budget"
    warning = "warning"
    projected_overspend = "projected-overspend"
    on_track = "on-track"


# Share of the monthly budget suggested per expense category, in percent.
CATEGORY_BUDGET_SHARES = (
    ("food", 35),
    ("transport", 15),
    ("entertainment", 20),
    ("education", 15),
    ("other", 15),
)


@dataclass(frozen=True)
class BudgetProjection:
    monthly_budget_cents: int
    spent_cents: int
    budget_utilization: float
    remaining_budget_cents: int
    daily_average_cents: float
    projected_monthly_total_cents: float
    projected_overspend_cents: float
    recommended_daily_spending_cents: float
    days_in_month: int
    day_of_month: int
    days_remaining: int
    status: BudgetStatus


def budget_utilization(spent_cents: int, budget_cents: int) -> float:
    if budget_cents <= 0:
        return 0.0
    return spent_cents / budget_cents * 100


def classify_budget(utilization: float, projected_total: float, budget_cents: int) -> BudgetStatus:
    if utilization > 100:
        return BudgetStatus.over_budget
    if utilization > 80:
        return BudgetStatus.warning
    if projected_total > budget_cents:
        return BudgetStatus.projected_overspend
    return BudgetStatus.on_track


def project_budget(
    spent_cents: int,
    budget_cents: int,
    *,
    day_of_month: int,
    days_in_month: int,
) -> BudgetProjection:
    """Linear month-end projection from the spend so far.

    A budget of 0 means "unset": utilization is reported as 0 but the
    projection and overspend are still computed against 0.
    """
    utilization = budget_utilization(spent_cents, budget_cents)
    remaining = budget_cents - spent_cents
    days_remaining = days_in_month - day_of_month
    daily_average = spent_cents / day_of_month if day_of_month > 0 else 0.0
    projected_total = daily_average * days_in_month
    recommended = remaining / days_remaining if days_remaining > 0 else 0.0
    return BudgetProjection(
        monthly_budget_cents=budget_cents,
        spent_cents=spent_cents,
        budget_utilization=utilization,
        remaining_budget_cents=remaining,
        daily_average_cents=daily_average,
        projected_monthly_total_cents=projected_total,
        projected_overspend_cents=projected_total - budget_cents,
        recommended_daily_spending_cents=recommended,
        days_in_month=days_in_month,
        day_of_month=day_of_month,
        days_remaining=days_remaining,
        status=classify_budget(utilization, projected_total, budget_cents),
    )


def suggest_category_budgets(budget_cents: int) -> list[dict[str, object]]:
    if budget_cents <= 0:
        return [
            {
                "category": "general",
                "percent": 0,
                "suggested_amount_cents": 0,
                "description": "Set a monthly budget to get category-wise suggestions",
            }
        ]
    return [
        {
            "category": category,
            "percent": share,
            "suggested_amount_cents": budget_cents * share / 100,
            "description": f"Allocate {share}% of your budget to {category}",
        }
        for category, share in CATEGORY_BUDGET_SHARES
    ]
