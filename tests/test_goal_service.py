from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base, make_engine, make_session_factory
from errors import (
    AutoSaveNotDueError,
    InvalidStateError,
    NotFoundError,
    StoreFailure,
    ValidationError,
)
from models import Goal, GoalCategory, GoalPriority, GoalStatus
from schemas import AutoSaveIn, ContributionIn, GoalIn, GoalListOptions, GoalUpdate
from services import AutoSaveRunner, GoalService, HealthService


NOW = datetime(2024, 6, 1, 9, 30)


def _engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


def _create(session: Session, **overrides):
    payload = dict(title="Laptop", target_cents=10_000, target_date=date(2024, 12, 31))
    payload.update(overrides)
    return GoalService(session).create(GoalIn(**payload), now=NOW)


def test_create_goal_builds_default_milestones() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)

        assert goal.status == GoalStatus.active
        assert goal.current_cents == 0
        assert [m.percentage for m in goal.milestones] == [25, 50, 75, 100]
        assert [m.amount_cents for m in goal.milestones] == [2_500, 5_000, 7_500, 10_000]


def test_target_date_must_be_in_future() -> None:
    engine = _engine()
    with Session(engine) as session:
        with pytest.raises(ValidationError):
            _create(session, target_date=date(2024, 6, 1))


def test_contributions_persist_and_complete_goal() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)
        service = GoalService(session)
        service.contribute(goal.id, ContributionIn(amount_cents=4_000), now=NOW)
        goal = service.contribute(
            goal.id, ContributionIn(amount_cents=6_000, note="Bonus"), now=NOW
        )

        assert goal.current_cents == 10_000
        assert sum(c.amount_cents for c in goal.contributions) == goal.current_cents
        assert goal.status == GoalStatus.completed
        assert goal.completed_at == NOW

        with pytest.raises(InvalidStateError):
            service.contribute(goal.id, ContributionIn(amount_cents=100), now=NOW)
        assert service.get(goal.id).current_cents == 10_000


def test_missing_goal_raises_not_found() -> None:
    engine = _engine()
    with Session(engine) as session:
        with pytest.raises(NotFoundError):
            GoalService(session).get(404)


def test_goals_are_scoped_to_owner() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)
        with pytest.raises(NotFoundError):
            GoalService(session, user_id=2).get(goal.id)


def test_lowering_target_below_current_completes_goal() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)
        service = GoalService(session)
        service.contribute(goal.id, ContributionIn(amount_cents=4_000), now=NOW)

        goal = service.update(goal.id, GoalUpdate(target_cents=3_000), now=NOW)

        assert goal.status == GoalStatus.completed
        assert [m.amount_cents for m in goal.milestones] == [750, 1_500, 2_250, 3_000]
        assert all(m.is_achieved for m in goal.milestones)


def test_raising_target_keeps_reached_milestones() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)
        service = GoalService(session)
        service.contribute(goal.id, ContributionIn(amount_cents=3_000), now=NOW)

        goal = service.update(goal.id, GoalUpdate(target_cents=100_000), now=NOW)

        assert goal.status == GoalStatus.active
        assert goal.milestones[0].amount_cents == 25_000
        assert goal.milestones[0].is_achieved


def test_paused_goal_rejects_contribution() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session)
        service = GoalService(session)
        service.update(goal.id, GoalUpdate(status=GoalStatus.paused), now=NOW)

        with pytest.raises(InvalidStateError):
            service.contribute(goal.id, ContributionIn(amount_cents=500), now=NOW)
        assert service.get(goal.id).contributions == []


def test_list_defaults_to_active_and_supports_all() -> None:
    engine = _engine()
    with Session(engine) as session:
        first = _create(session, title="Phone")
        _create(session, title="Trip", category="travel")
        service = GoalService(session)
        service.update(first.id, GoalUpdate(status=GoalStatus.cancelled), now=NOW)

        assert [g.title for g in service.list()] == ["Trip"]
        assert len(service.list(GoalListOptions(status="all"))) == 2
        travel = service.list(GoalListOptions(status="all", category=GoalCategory.travel))
        assert [g.title for g in travel] == ["Trip"]


def test_priority_ordering_and_summary() -> None:
    engine = _engine()
    with Session(engine) as session:
        _create(session, title="Low", priority=GoalPriority.low)
        _create(session, title="Urgent", priority=GoalPriority.urgent)
        _create(session, title="High", priority=GoalPriority.high)
        service = GoalService(session)

        assert [g.title for g in service.by_priority()] == ["Urgent", "High", "Low"]
        by_sort = service.list(GoalListOptions(sort_by="priority", sort_order="desc"))
        assert [g.title for g in by_sort] == ["Low", "High", "Urgent"]

        summary = service.summary(now=NOW)
        assert summary["high_priority_count"] == 2
        assert summary["active_count"] == 3
        assert summary["total_target_cents"] == 30_000
        assert summary["stats"]["paused"]["count"] == 0


def test_overdue_goals() -> None:
    engine = _engine()
    with Session(engine) as session:
        _create(session, title="Soon", target_date=date(2024, 6, 10))
        _create(session, title="Later", target_date=date(2025, 1, 1))

        overdue = GoalService(session).overdue(now=datetime(2024, 6, 11, 8, 0))
        assert [g.title for g in overdue] == ["Soon"]


def test_manual_auto_save_and_due_check() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(
            session,
            auto_save=AutoSaveIn(enabled=True, amount_cents=500, frequency="weekly"),
        )
        service = GoalService(session)

        goal = service.auto_save(goal.id, now=NOW)
        assert goal.current_cents == 500
        assert goal.last_auto_save == NOW
        assert goal.contributions[0].note == "Auto-save contribution"

        with pytest.raises(AutoSaveNotDueError):
            service.auto_save(goal.id, now=NOW + timedelta(days=6))
        assert service.get(goal.id).current_cents == 500


def test_runner_applies_only_due_auto_saves() -> None:
    engine = _engine()
    with Session(engine) as session:
        weekly = _create(
            session,
            title="Weekly",
            auto_save=AutoSaveIn(enabled=True, amount_cents=500, frequency="weekly"),
        )
        _create(session, title="Manual")
        GoalService(session).auto_save(weekly.id, now=NOW)

        runner = AutoSaveRunner(session)
        assert runner.run_due(now=NOW + timedelta(days=3)) == 0
        assert runner.run_due(now=NOW + timedelta(days=7)) == 1
        assert GoalService(session).get(weekly.id).current_cents == 1_000


def test_emergency_fund_counts_toward_health() -> None:
    engine = _engine()
    with Session(engine) as session:
        goal = _create(session, title="Rainy day", category="emergency-fund")
        GoalService(session).contribute(
            goal.id, ContributionIn(amount_cents=6_000), now=NOW
        )
        report = HealthService(session).report(today=date(2024, 6, 1))

    assert report.factors[-1].points == 10
    assert report.active_goals == 1


def _file_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    return make_session_factory(engine)


def test_concurrent_contribution_loses_with_store_failure(tmp_path) -> None:
    factory = _file_factory(tmp_path)
    with factory() as setup:
        goal_id = _create(setup).id

    with factory() as first, factory() as second:
        GoalService(second).get(goal_id)
        GoalService(first).contribute(goal_id, ContributionIn(amount_cents=100), now=NOW)

        with pytest.raises(StoreFailure):
            GoalService(second).contribute(
                goal_id, ContributionIn(amount_cents=250), now=NOW
            )

    with factory() as check:
        goal = GoalService(check).get(goal_id)
        assert goal.current_cents == 100
        assert sum(c.amount_cents for c in goal.contributions) == goal.current_cents


def test_runner_skips_goal_changed_by_another_writer(tmp_path) -> None:
    factory = _file_factory(tmp_path)
    with factory() as setup:
        plan = AutoSaveIn(enabled=True, amount_cents=500, frequency="weekly")
        raced = _create(setup, title="Raced", auto_save=plan).id
        clear = _create(setup, title="Clear", auto_save=plan).id

    with factory() as runner_session, factory() as other:
        runner_session.get(Goal, raced)
        GoalService(other).contribute(raced, ContributionIn(amount_cents=100), now=NOW)

        assert AutoSaveRunner(runner_session).run_due(now=NOW) == 1

    with factory() as check:
        service = GoalService(check)
        for goal_id, expected in ((raced, 100), (clear, 500)):
            goal = service.get(goal_id)
            assert goal.current_cents == expected
            assert sum(c.amount_cents for c in goal.contributions) == expected
