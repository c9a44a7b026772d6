from health import HealthInputs, coefficient_of_variation, score_financial_health


def test_reference_profile_scores_seventy() -> None:
    report = score_financial_health(
        HealthInputs(
            income_cents=100_000,
            expense_cents=70_000,
            budget_utilization=70,
            active_goal_count=1,
            active_current_cents=3_000,
            active_target_cents=10_000,
            monthly_expense_totals=[70_000],
        )
    )
    assert report.score == 70
    assert report.status == "good"
    assert [f.points for f in report.factors] == [30, 25, 15, 0]
    assert report.coefficient_of_variation is None
    assert report.recommendations == [
        "Start building an emergency fund for unexpected expenses"
    ]


def test_consistency_factor_needs_two_months() -> None:
    report = score_financial_health(
        HealthInputs(
            income_cents=0,
            expense_cents=0,
            budget_utilization=0,
            monthly_expense_totals=[10_000, 10_000],
        )
    )
    names = [f.factor for f in report.factors]
    assert "Consistent spending patterns" in names
    assert report.coefficient_of_variation == 0


def test_emergency_fund_points() -> None:
    base = dict(income_cents=0, expense_cents=0, budget_utilization=200)
    half = score_financial_health(
        HealthInputs(
            **base, emergency_fund_current_cents=5_000, emergency_fund_target_cents=10_000
        )
    )
    started = score_financial_health(
        HealthInputs(
            **base, emergency_fund_current_cents=100, emergency_fund_target_cents=10_000
        )
    )
    assert half.factors[-1].points == 10
    assert started.factors[-1].points == 5


def test_poor_profile_collects_all_recommendations() -> None:
    report = score_financial_health(
        HealthInputs(income_cents=10_000, expense_cents=20_000, budget_utilization=130)
    )
    assert report.score == 0
    assert report.status == "poor"
    assert len(report.recommendations) == 4


def test_goal_progress_factor_rewards_completion() -> None:
    report = score_financial_health(
        HealthInputs(
            income_cents=0,
            expense_cents=0,
            budget_utilization=0,
            active_goal_count=1,
            completed_goal_count=1,
            active_current_cents=6_000,
            active_target_cents=10_000,
        )
    )
    assert report.factors[2].points == 20


def test_coefficient_of_variation() -> None:
    assert round(coefficient_of_variation([100, 300]), 2) == 50.0
    assert coefficient_of_variation([0, 0]) == 0
