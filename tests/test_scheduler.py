from datetime import date, datetime

from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from database import Base, make_engine, make_session_factory
from schemas import AutoSaveIn, GoalIn
from scheduler import SchedulerManager
from services import GoalService


def test_scheduled_run_applies_due_auto_saves() -> None:
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    factory = make_session_factory(engine)

    with factory() as session:
        goal = GoalService(session).create(
            GoalIn(
                title="Headphones",
                target_cents=20_000,
                target_date=date(2030, 1, 1),
                auto_save=AutoSaveIn(enabled=True, amount_cents=1_000, frequency="daily"),
            ),
            now=datetime(2024, 6, 1, 8, 0),
        )
        goal_id = goal.id

    manager = SchedulerManager(session_factory=factory)
    assert manager._run_job("test") == 1
    # A second run right away finds nothing due.
    assert manager._run_job("test") == 0

    with Session(engine) as session:
        saved = GoalService(session).get(goal_id)
        assert saved.current_cents == 1_000
        assert saved.contributions[0].source.value == "auto-save"
