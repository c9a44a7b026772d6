from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from ledger import LedgerEntity, LedgerFilters, LedgerQueries
from periods import Period
from schemas import ExpenseIn, IncomeIn, UserIn
from services import (
    BudgetService,
    ExpenseService,
    HealthService,
    IncomeService,
    InsightsService,
    MetricsService,
    UserService,
)


def _engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


def _expense(session: Session, amount_cents: int, category: str, day: date) -> None:
    ExpenseService(session).create(
        ExpenseIn(
            amount_cents=amount_cents,
            description=f"{category} spend",
            category=category,
            date=day,
        )
    )


def _income(session: Session, amount_cents: int, day: date) -> None:
    IncomeService(session).create(
        IncomeIn(
            amount_cents=amount_cents,
            source="stipend",
            description="Stipend",
            date=day,
        )
    )


def _seed_june(session: Session) -> None:
    UserService(session).create(
        UserIn(name="Asha", email="asha@example.com", monthly_budget_cents=100_000)
    )
    _expense(session, 10_000, "food", date(2024, 6, 2))
    _expense(session, 20_000, "transport", date(2024, 5, 10))
    _income(session, 50_000, date(2024, 6, 1))
    _income(session, 40_000, date(2024, 5, 10))


def test_category_breakdown_orders_by_total() -> None:
    engine = _engine()
    with Session(engine) as session:
        _expense(session, 10_000, "food", date(2024, 6, 3))
        _expense(session, 5_000, "food", date(2024, 6, 4))
        _expense(session, 3_000, "transport", date(2024, 6, 5))

        period = Period("custom", date(2024, 6, 1), date(2024, 6, 30))
        rows = MetricsService(session).category_breakdown(period)

    assert rows == [
        {"category": "food", "total_cents": 15_000, "count": 2, "avg_cents": 7_500.0},
        {"category": "transport", "total_cents": 3_000, "count": 1, "avg_cents": 3_000.0},
    ]


def test_breakdown_ignores_other_users_and_dates_outside_window() -> None:
    engine = _engine()
    with Session(engine) as session:
        _expense(session, 10_000, "food", date(2024, 6, 3))
        _expense(session, 7_000, "food", date(2024, 7, 1))
        ExpenseService(session, user_id=2).create(
            ExpenseIn(amount_cents=999, description="Snacks", category="food", date=date(2024, 6, 3))
        )

        period = Period("custom", date(2024, 6, 1), date(2024, 6, 30))
        rows = MetricsService(session).category_breakdown(period)

    assert len(rows) == 1
    assert rows[0]["total_cents"] == 10_000


def test_monthly_trend_skips_empty_months() -> None:
    engine = _engine()
    with Session(engine) as session:
        _expense(session, 1_000, "food", date(2024, 2, 10))
        _expense(session, 2_000, "food", date(2024, 2, 20))
        _expense(session, 4_000, "rent", date(2024, 4, 1))

        trend = InsightsService(session).monthly_trend(
            LedgerEntity.expense, 6, today=date(2024, 6, 15)
        )

    assert trend == [
        {"year": 2024, "month": 2, "total_cents": 3_000, "count": 2},
        {"year": 2024, "month": 4, "total_cents": 4_000, "count": 1},
    ]


def test_weekday_pattern_omits_days_without_records() -> None:
    engine = _engine()
    with Session(engine) as session:
        _expense(session, 1_000, "food", date(2024, 6, 2))  # Sunday
        _expense(session, 3_000, "food", date(2024, 6, 5))  # Wednesday
        _expense(session, 1_000, "food", date(2024, 6, 12))  # Wednesday

        pattern = LedgerQueries(session, 1).group_by_weekday(
            LedgerEntity.expense, date(2024, 6, 1), None
        )

    assert [p["day_name"] for p in pattern] == ["Sunday", "Wednesday"]
    assert pattern[1]["total_cents"] == 4_000
    assert pattern[1]["avg_cents"] == 2_000


def test_dashboard_compares_with_previous_month() -> None:
    engine = _engine()
    with Session(engine) as session:
        _seed_june(session)
        data = MetricsService(session).dashboard("month", today=date(2024, 6, 15))

    summary = data["summary"]
    assert data["period"] == "month"
    assert summary["total_expenses_cents"] == 10_000
    assert summary["total_income_cents"] == 50_000
    assert summary["net_savings_cents"] == 40_000
    assert summary["savings_rate"] == 80.0
    assert summary["budget_utilization"] == 10.0
    assert summary["expense_change"] == -50.0
    assert summary["income_change"] == 25.0
    assert summary["transaction_count"] == 2
    assert [t["type"] for t in data["recent_transactions"]] == [
        "expense",
        "income",
        "expense",
        "income",
    ]
    assert data["goal_stats"]["active"]["count"] == 0


def test_budget_analysis_projects_month_end() -> None:
    engine = _engine()
    with Session(engine) as session:
        _seed_june(session)
        data = BudgetService(session).analysis(today=date(2024, 6, 15))

    assert data["spent_cents"] == 10_000
    assert data["budget_utilization"] == 10.0
    assert data["days_in_month"] == 30
    assert data["days_remaining"] == 15
    assert data["projected_monthly_total_cents"] == pytest.approx(20_000)
    assert data["status"] == "on-track"
    assert data["daily_spending"] == [{"day": 2, "total_cents": 10_000, "count": 1}]
    assert len(data["suggested_category_budgets"]) == 5


def test_budget_analysis_without_user_uses_zero_budget() -> None:
    engine = _engine()
    with Session(engine) as session:
        data = BudgetService(session).analysis(today=date(2024, 6, 15))

    assert data["monthly_budget_cents"] == 0
    assert data["budget_utilization"] == 0
    assert data["currency"] == "INR"


def test_spending_patterns_sections() -> None:
    engine = _engine()
    with Session(engine) as session:
        _expense(session, 1_000, "food", date(2024, 5, 2))
        _expense(session, 9_000, "rent", date(2024, 5, 3))
        _expense(session, 2_000, "food", date(2024, 6, 4))

        data = InsightsService(session).spending_patterns(3, today=date(2024, 6, 15))

    assert data["since"] == date(2024, 3, 1)
    assert [r["category"] for r in data["average_transaction_size"]] == ["rent", "food"]
    assert data["average_transaction_size"][1]["avg_cents"] == 1_500
    assert data["payment_method_breakdown"][0]["payment_method"] == "other"
    assert len(data["category_trend"]) == 3
    assert len(data["monthly_trend"]) == 2


def test_health_report_from_ledger() -> None:
    engine = _engine()
    with Session(engine) as session:
        _seed_june(session)
        report = HealthService(session).report_dict(today=date(2024, 6, 15))

    # savings 30, budget 25, no goals 0, consistency (cv 33%) 10, no fund 0
    assert report["health_score"] == 65
    assert report["health_status"] == "good"
    assert report["metrics"]["savings_rate"] == 66.67
    assert report["metrics"]["active_goals"] == 0


def test_ledger_filters_and_pagination() -> None:
    engine = _engine()
    with Session(engine) as session:
        for day in range(1, 6):
            _expense(session, day * 1_000, "food", date(2024, 6, day))
        _expense(session, 50_000, "rent", date(2024, 6, 1))

        items, total = ExpenseService(session).list(
            LedgerFilters(category="food", min_amount_cents=2_000), limit=2
        )

    assert total == 4
    assert [e.amount_cents for e in items] == [5_000, 4_000]
