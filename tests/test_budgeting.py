from budgeting import BudgetStatus, classify_budget, project_budget, suggest_category_budgets


def test_budget_status_labels() -> None:
    assert classify_budget(50, 90_000, 100_000) == BudgetStatus.on_track
    assert classify_budget(85, 90_000, 100_000) == BudgetStatus.warning
    assert classify_budget(105, 110_000, 100_000) == BudgetStatus.over_budget
    assert classify_budget(60, 120_000, 100_000) == BudgetStatus.projected_overspend


def test_projection_is_linear_in_elapsed_days() -> None:
    projection = project_budget(30_000, 100_000, day_of_month=10, days_in_month=30)
    assert projection.budget_utilization == 30
    assert projection.daily_average_cents == 3_000
    assert projection.projected_monthly_total_cents == 90_000
    assert projection.projected_overspend_cents == -10_000
    assert projection.remaining_budget_cents == 70_000
    assert projection.days_remaining == 20
    assert projection.recommended_daily_spending_cents == 3_500
    assert projection.status == BudgetStatus.on_track


def test_projection_flags_overspend_before_it_happens() -> None:
    projection = project_budget(60_000, 100_000, day_of_month=15, days_in_month=30)
    assert projection.projected_monthly_total_cents == 120_000
    assert projection.status == BudgetStatus.projected_overspend


def test_last_day_has_no_recommended_daily_spend() -> None:
    projection = project_budget(10_000, 100_000, day_of_month=31, days_in_month=31)
    assert projection.days_remaining == 0
    assert projection.recommended_daily_spending_cents == 0


def test_zero_budget_reports_zero_utilization() -> None:
    projection = project_budget(5_000, 0, day_of_month=5, days_in_month=30)
    assert projection.budget_utilization == 0
    assert projection.projected_overspend_cents == 30_000


def test_category_suggestions_split_budget() -> None:
    suggestions = suggest_category_budgets(100_000)
    assert [s["category"] for s in suggestions] == [
        "food",
        "transport",
        "entertainment",
        "education",
        "other",
    ]
    assert sum(s["percent"] for s in suggestions) == 100
    assert suggestions[0]["suggested_amount_cents"] == 35_000


def test_category_suggestions_without_budget() -> None:
    suggestions = suggest_category_budgets(0)
    assert len(suggestions) == 1
    assert suggestions[0]["category"] == "general"
