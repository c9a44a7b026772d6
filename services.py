from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from budgeting import budget_utilization, project_budget, suggest_category_budgets
from categorizer import SUGGESTION_CONFIDENCE, suggest_category
from config import get_settings
from errors import NotFoundError, StoreFailure, ValidationError
from goals import (
    PRIORITY_RANK,
    add_contribution,
    build_default_milestones,
    evaluate_goal,
    is_auto_save_due,
    is_overdue,
    priority_sort_key,
    rescale_milestones,
    run_auto_save,
)
from health import HealthInputs, HealthReport, score_financial_health
from ledger import LedgerEntity, LedgerFilters, LedgerQueries
from models import (
    Expense,
    ExpenseCategory,
    Goal,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    Income,
    User,
)
from periods import (
    Period,
    add_months,
    days_in_month,
    local_now,
    local_today,
    month_start,
    resolve_window,
)
from recurrence import derive_next_expected_date
from schemas import (
    BudgetIn,
    ContributionIn,
    ExpenseIn,
    GoalIn,
    GoalListOptions,
    GoalUpdate,
    IncomeIn,
    UserIn,
)


logger = logging.getLogger(__name__)


def get_current_user_id() -> int:
    return 1


def percent_change(current: int, previous: int) -> float:
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def round2(value: float) -> float:
    return round(value, 2)


def _commit(session: Session, what: str) -> None:
    try:
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        logger.warning(f"store_conflict: {what}")
        raise StoreFailure(f"{what} was modified concurrently; retry") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception(f"store_failure: {what}")
        raise StoreFailure(f"Could not save {what}") from exc


@dataclass(frozen=True)
class BudgetContext:
    monthly_budget_cents: int
    currency: str


class UserService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def create(self, data: UserIn) -> User:
        email = data.email.strip().lower()
        existing = self.session.scalar(select(User.id).where(User.email == email))
        if existing:
            raise ValidationError("A user with this email already exists")
        user = User(
            name=data.name.strip(),
            email=email,
            monthly_budget_cents=data.monthly_budget_cents,
            currency=(data.currency or get_settings().default_currency).upper(),
        )
        self.session.add(user)
        _commit(self.session, "user")
        self.session.refresh(user)
        return user

    def get(self) -> User:
        user = self.session.get(User, self.user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def budget_context(self) -> BudgetContext:
        user = self.session.get(User, self.user_id)
        if not user:
            return BudgetContext(0, get_settings().default_currency)
        return BudgetContext(user.monthly_budget_cents, user.currency)

    def set_budget(self, data: BudgetIn) -> User:
        user = self.get()
        user.monthly_budget_cents = data.monthly_budget_cents
        if data.currency:
            user.currency = data.currency.upper()
        _commit(self.session, "user")
        self.session.refresh(user)
        return user


class ExpenseService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    def _build(self, data: ExpenseIn, today: date) -> Expense:
        expense = Expense(
            user_id=self.user_id,
            amount_cents=data.amount_cents,
            description=data.description,
            category=data.category or ExpenseCategory.other,
            subcategory=(data.subcategory or "").strip() or None,
            date=data.date or today,
            payment_method=data.payment_method,
            location=(data.location or "").strip() or None,
            is_recurring=data.is_recurring,
            recurring_frequency=data.recurring_frequency,
            notes=(data.notes or "").strip() or None,
        )
        expense.tags = data.tags
        if data.category in (None, ExpenseCategory.other):
            expense.category = suggest_category(data.description)
            expense.ai_generated = True
            expense.ai_confidence = SUGGESTION_CONFIDENCE
        return expense

    def create(self, data: ExpenseIn, *, today: Optional[date] = None) -> Expense:
        expense = self._build(data, today or local_today())
        self.session.add(expense)
        _commit(self.session, "expense")
        self.session.refresh(expense)
        return expense

    def bulk_create(
        self, items: list[dict[str, Any]], *, today: Optional[date] = None
    ) -> list[Expense]:
        if not items:
            raise ValidationError("Please provide a list of expenses")
        today = today or local_today()
        parsed: list[ExpenseIn] = []
        errors: list[str] = []
        for index, raw in enumerate(items, start=1):
            try:
                parsed.append(ExpenseIn.model_validate(raw))
            except SchemaError as exc:
                messages = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in exc.errors()
                )
                errors.append(f"Expense {index}: {messages}")
        if errors:
            raise ValidationError("Validation errors found", errors)

        expenses = [self._build(data, today) for data in parsed]
        self.session.add_all(expenses)
        _commit(self.session, "expenses")
        for expense in expenses:
            self.session.refresh(expense)
        return expenses

    def get(self, expense_id: int) -> Expense:
        expense = self.session.scalar(
            select(Expense).where(
                Expense.id == expense_id, Expense.user_id == self.user_id
            )
        )
        if not expense:
            raise NotFoundError("Expense not found")
        return expense

    def update(self, expense_id: int, data: ExpenseIn) -> Expense:
        expense = self.get(expense_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "tags":
                expense.tags = value
            elif field == "category":
                if value is not None:
                    expense.category = value
                    expense.ai_generated = False
                    expense.ai_confidence = None
            elif field == "date":
                if value is not None:
                    expense.date = value
            else:
                setattr(expense, field, value)
        _commit(self.session, "expense")
        self.session.refresh(expense)
        return expense

    def delete(self, expense_id: int) -> None:
        expense = self.get(expense_id)
        self.session.delete(expense)
        _commit(self.session, "expense")

    def list(
        self,
        filters: Optional[LedgerFilters] = None,
        *,
        sort_by: str = "date",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Expense], int]:
        items = self.ledger.find(
            LedgerEntity.expense,
            filters,
            sort_by=sort_by,
            descending=descending,
            limit=limit,
            offset=offset,
        )
        total = self.ledger.count_matching(LedgerEntity.expense, filters)
        return items, total


class IncomeService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    def create(self, data: IncomeIn, *, today: Optional[date] = None) -> Income:
        if data.is_recurring and data.recurring_frequency is None:
            raise ValidationError("Recurring income needs a frequency")
        income = Income(
            user_id=self.user_id,
            amount_cents=data.amount_cents,
            source=data.source,
            description=data.description.strip(),
            date=data.date or today or local_today(),
            is_recurring=data.is_recurring,
            recurring_frequency=data.recurring_frequency,
            next_expected_date=data.next_expected_date,
            payment_method=data.payment_method,
            notes=(data.notes or "").strip() or None,
        )
        income.tags = data.tags
        derive_next_expected_date(income)
        self.session.add(income)
        _commit(self.session, "income")
        self.session.refresh(income)
        return income

    def get(self, income_id: int) -> Income:
        income = self.session.scalar(
            select(Income).where(Income.id == income_id, Income.user_id == self.user_id)
        )
        if not income:
            raise NotFoundError("Income not found")
        return income

    def update(self, income_id: int, data: IncomeIn) -> Income:
        income = self.get(income_id)
        changes = data.model_dump(exclude_unset=True)
        recurring = changes.get("is_recurring", income.is_recurring)
        frequency = changes.get("recurring_frequency", income.recurring_frequency)
        if recurring and frequency is None:
            raise ValidationError("Recurring income needs a frequency")
        for field, value in changes.items():
            if field == "tags":
                income.tags = value
            elif field == "date" and value is None:
                continue
            else:
                setattr(income, field, value)
        derive_next_expected_date(income)
        _commit(self.session, "income")
        self.session.refresh(income)
        return income

    def delete(self, income_id: int) -> None:
        income = self.get(income_id)
        self.session.delete(income)
        _commit(self.session, "income")

    def list(
        self,
        filters: Optional[LedgerFilters] = None,
        *,
        sort_by: str = "date",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Income], int]:
        items = self.ledger.find(
            LedgerEntity.income,
            filters,
            sort_by=sort_by,
            descending=descending,
            limit=limit,
            offset=offset,
        )
        total = self.ledger.count_matching(LedgerEntity.income, filters)
        return items, total

    def upcoming_recurring(
        self, days: int = 30, *, today: Optional[date] = None
    ) -> list[Income]:
        today = today or local_today()
        horizon = today + timedelta(days=days)
        stmt = (
            select(Income)
            .where(
                Income.user_id == self.user_id,
                Income.is_recurring.is_(True),
                Income.next_expected_date.is_not(None),
                Income.next_expected_date <= horizon,
            )
            .order_by(Income.next_expected_date, Income.id)
        )
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise StoreFailure("Could not load recurring income") from exc

    def summary(self, *, today: Optional[date] = None) -> dict[str, object]:
        today = today or local_today()
        window = resolve_window("month", today=today)
        current = self.ledger.sum_and_count(
            LedgerEntity.income, window.current.start, window.current.end
        )
        previous = self.ledger.sum_and_count(
            LedgerEntity.income, window.previous.start, window.previous.end
        )
        upcoming = self.upcoming_recurring(30, today=today)
        return {
            "current_month_total_cents": current.total_cents,
            "previous_month_total_cents": previous.total_cents,
            "change_percentage": round2(
                percent_change(current.total_cents, previous.total_cents)
            ),
            "upcoming_recurring": len(upcoming),
            "expected_amount_cents": sum(i.amount_cents for i in upcoming),
        }


class GoalService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _query(self):
        return select(Goal).options(
            selectinload(Goal.milestones), selectinload(Goal.contributions)
        )

    def _load(self, stmt) -> list[Goal]:
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.exception(f"goal_query_failed: user_id={self.user_id}")
            raise StoreFailure("Could not load goals") from exc

    def create(self, data: GoalIn, *, now: Optional[datetime] = None) -> Goal:
        now = now or local_now()
        if data.target_date <= now.date():
            raise ValidationError("Target date must be in the future")
        goal = Goal(
            user_id=self.user_id,
            title=data.title,
            description=(data.description or "").strip() or None,
            target_cents=data.target_cents,
            current_cents=0,
            category=data.category,
            priority=data.priority,
            target_date=data.target_date,
            status=GoalStatus.active,
            is_public=data.is_public,
        )
        if data.auto_save:
            goal.auto_save_enabled = data.auto_save.enabled
            goal.auto_save_amount_cents = data.auto_save.amount_cents
            goal.auto_save_frequency = data.auto_save.frequency
        goal.tags = data.tags
        goal.milestones = build_default_milestones(data.target_cents)
        self.session.add(goal)
        _commit(self.session, "goal")
        self.session.refresh(goal)
        logger.info(f"goal_created: goal_id={goal.id} target={goal.target_cents}")
        return goal

    def get(self, goal_id: int) -> Goal:
        goals = self._load(
            self._query().where(Goal.id == goal_id, Goal.user_id == self.user_id)
        )
        if not goals:
            raise NotFoundError("Goal not found")
        return goals[0]

    def list(self, options: Optional[GoalListOptions] = None) -> list[Goal]:
        options = options or GoalListOptions()
        stmt = self._query().where(Goal.user_id == self.user_id)
        if options.status and options.status != "all":
            try:
                status = GoalStatus(options.status)
            except ValueError as exc:
                raise ValidationError(f"Unknown goal status: {options.status}") from exc
            stmt = stmt.where(Goal.status == status)
        if options.category:
            stmt = stmt.where(Goal.category == options.category)
        if options.priority:
            stmt = stmt.where(Goal.priority == options.priority)

        descending = options.sort_order == "desc"
        if options.sort_by == "priority":
            goals = self._load(stmt.order_by(Goal.id))
            goals.sort(key=lambda g: PRIORITY_RANK[g.priority], reverse=descending)
            return goals
        column = getattr(Goal, options.sort_by)
        order = column.desc() if descending else column.asc()
        return self._load(stmt.order_by(order, Goal.id))

    def update(
        self, goal_id: int, data: GoalUpdate, *, now: Optional[datetime] = None
    ) -> Goal:
        now = now or local_now()
        if data.target_date is not None and data.target_date <= now.date():
            raise ValidationError("Target date must be in the future")
        goal = self.get(goal_id)

        fields = data.model_dump(exclude_unset=True, exclude={"auto_save", "tags"})
        for field, value in fields.items():
            if value is None:
                continue
            if field == "title":
                value = value.strip()
            setattr(goal, field, value)
        if data.tags is not None:
            goal.tags = data.tags
        if data.auto_save is not None:
            patch = data.auto_save.model_dump(exclude_none=True)
            if "enabled" in patch:
                goal.auto_save_enabled = patch["enabled"]
            if "amount_cents" in patch:
                goal.auto_save_amount_cents = patch["amount_cents"]
            if "frequency" in patch:
                goal.auto_save_frequency = patch["frequency"]
        if data.target_cents is not None:
            rescale_milestones(goal)
        if goal.status == GoalStatus.completed and goal.completed_at is None:
            goal.completed_at = now

        evaluate_goal(goal, now)
        _commit(self.session, f"goal {goal_id}")
        self.session.refresh(goal)
        return goal

    def delete(self, goal_id: int) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        _commit(self.session, f"goal {goal_id}")
        logger.info(f"goal_deleted: goal_id={goal_id}")

    def contribute(
        self, goal_id: int, data: ContributionIn, *, now: Optional[datetime] = None
    ) -> Goal:
        now = now or local_now()
        goal = self.get(goal_id)
        add_contribution(
            goal, data.amount_cents, now=now, note=data.note, source=data.source
        )
        _commit(self.session, f"goal {goal_id}")
        self.session.refresh(goal)
        return goal

    def auto_save(self, goal_id: int, *, now: Optional[datetime] = None) -> Goal:
        now = now or local_now()
        goal = self.get(goal_id)
        run_auto_save(goal, now)
        _commit(self.session, f"goal {goal_id}")
        self.session.refresh(goal)
        logger.info(
            f"goal_auto_saved: goal_id={goal_id} amount={goal.auto_save_amount_cents}"
        )
        return goal

    def stats(self) -> dict[str, dict[str, int]]:
        stmt = (
            select(
                Goal.status,
                func.count(Goal.id).label("goal_count"),
                func.coalesce(func.sum(Goal.target_cents), 0).label("target"),
                func.coalesce(func.sum(Goal.current_cents), 0).label("current"),
            )
            .where(Goal.user_id == self.user_id)
            .group_by(Goal.status)
        )
        result = {
            status.value: {"count": 0, "total_target_cents": 0, "total_current_cents": 0}
            for status in GoalStatus
        }
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreFailure("Could not load goal statistics") from exc
        for row in rows:
            result[row.status.value] = {
                "count": int(row.goal_count),
                "total_target_cents": int(row.target or 0),
                "total_current_cents": int(row.current or 0),
            }
        return result

    def overdue(self, *, now: Optional[datetime] = None) -> list[Goal]:
        now = now or local_now()
        stmt = self._query().where(
            Goal.user_id == self.user_id,
            Goal.status == GoalStatus.active,
            Goal.target_date <= now.date(),
        )
        return [g for g in self._load(stmt.order_by(Goal.target_date)) if is_overdue(g, now)]

    def by_priority(self) -> list[Goal]:
        stmt = self._query().where(
            Goal.user_id == self.user_id, Goal.status == GoalStatus.active
        )
        return sorted(self._load(stmt), key=priority_sort_key)

    def summary(self, *, now: Optional[datetime] = None) -> dict[str, object]:
        now = now or local_now()
        stats = self.stats()
        total_saved = sum(s["total_current_cents"] for s in stats.values())
        total_target = sum(s["total_target_cents"] for s in stats.values())
        overall = total_saved / total_target * 100 if total_target > 0 else 0.0
        high_priority = [
            g
            for g in self.by_priority()
            if g.priority in (GoalPriority.high, GoalPriority.urgent)
        ]
        return {
            "stats": stats,
            "total_saved_cents": total_saved,
            "total_target_cents": total_target,
            "overall_progress": round2(overall),
            "overdue_count": len(self.overdue(now=now)),
            "active_count": stats[GoalStatus.active.value]["count"],
            "completed_count": stats[GoalStatus.completed.value]["count"],
            "high_priority_count": len(high_priority),
        }

    def emergency_fund(self) -> Optional[Goal]:
        stmt = (
            select(Goal)
            .where(
                Goal.user_id == self.user_id,
                Goal.status == GoalStatus.active,
                Goal.category == GoalCategory.emergency_fund,
            )
            .order_by(Goal.id)
            .limit(1)
        )
        goals = self._load(stmt)
        return goals[0] if goals else None


class AutoSaveRunner:
    """Runs every due auto-save across all users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def run_due(self, *, now: Optional[datetime] = None) -> int:
        now = now or local_now()
        stmt = (
            select(Goal)
            .options(selectinload(Goal.milestones), selectinload(Goal.contributions))
            .where(
                Goal.auto_save_enabled.is_(True),
                Goal.auto_save_amount_cents > 0,
                Goal.status == GoalStatus.active,
            )
            .order_by(Goal.id)
        )
        goals = list(self.session.scalars(stmt).all())
        count = 0
        for goal in goals:
            if not is_auto_save_due(goal, now):
                continue
            goal_id = goal.id
            try:
                run_auto_save(goal, now)
                _commit(self.session, f"goal {goal_id}")
            except StoreFailure:
                logger.warning(f"auto_save_skipped: goal_id={goal_id}")
                continue
            count += 1
            logger.info(f"goal_auto_saved: goal_id={goal_id} source=scheduler")
        return count


class MetricsService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    def category_breakdown(self, period: Period) -> list[dict[str, object]]:
        rows = self.ledger.group_by(
            LedgerEntity.expense, period.start, period.end, "category"
        )
        return [
            {
                "category": r["key"],
                "total_cents": r["total_cents"],
                "count": r["count"],
                "avg_cents": r["avg_cents"],
            }
            for r in rows
        ]

    def source_breakdown(self, period: Period) -> list[dict[str, object]]:
        rows = self.ledger.group_by(
            LedgerEntity.income, period.start, period.end, "source"
        )
        return [
            {
                "source": r["key"],
                "total_cents": r["total_cents"],
                "count": r["count"],
                "avg_cents": r["avg_cents"],
            }
            for r in rows
        ]

    def recent_transactions(self, limit: int = 10) -> list[dict[str, object]]:
        half = max(limit // 2, 1)
        expenses = self.ledger.find(LedgerEntity.expense, limit=half)
        incomes = self.ledger.find(LedgerEntity.income, limit=half)
        merged = [
            {
                "type": "expense",
                "id": e.id,
                "date": e.date,
                "amount_cents": e.amount_cents,
                "description": e.description,
                "category": e.category.value,
            }
            for e in expenses
        ] + [
            {
                "type": "income",
                "id": i.id,
                "date": i.date,
                "amount_cents": i.amount_cents,
                "description": i.description,
                "source": i.source.value,
            }
            for i in incomes
        ]
        merged.sort(key=lambda t: t["date"], reverse=True)
        return merged[:limit]

    def dashboard(
        self, period: Optional[str] = None, *, today: Optional[date] = None
    ) -> dict[str, object]:
        today = today or local_today()
        window = resolve_window(period, today=today)
        cur, prev = window.current, window.previous

        expenses = self.ledger.sum_and_count(LedgerEntity.expense, cur.start, cur.end)
        income = self.ledger.sum_and_count(LedgerEntity.income, cur.start, cur.end)
        prev_expenses = self.ledger.sum_and_count(
            LedgerEntity.expense, prev.start, prev.end
        )
        prev_income = self.ledger.sum_and_count(
            LedgerEntity.income, prev.start, prev.end
        )

        net = income.total_cents - expenses.total_cents
        rate = net / income.total_cents * 100 if income.total_cents > 0 else 0.0
        utilization = BudgetService(self.session, self.user_id).current_utilization(
            today=today
        )

        return {
            "period": cur.slug,
            "date_range": {"start": cur.start, "end": cur.end},
            "previous_range": {"start": prev.start, "end": prev.end},
            "summary": {
                "total_expenses_cents": expenses.total_cents,
                "total_income_cents": income.total_cents,
                "net_savings_cents": net,
                "savings_rate": round2(rate),
                "budget_utilization": round2(utilization),
                "expense_change": round2(
                    percent_change(expenses.total_cents, prev_expenses.total_cents)
                ),
                "income_change": round2(
                    percent_change(income.total_cents, prev_income.total_cents)
                ),
                "transaction_count": expenses.count + income.count,
            },
            "category_breakdown": self.category_breakdown(cur),
            "income_breakdown": self.source_breakdown(cur),
            "goal_stats": GoalService(self.session, self.user_id).stats(),
            "recent_transactions": self.recent_transactions(10),
        }


class InsightsService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    @staticmethod
    def trend_start(months: int, today: date) -> date:
        return month_start(add_months(month_start(today), -months))

    def monthly_trend(
        self,
        entity: LedgerEntity = LedgerEntity.expense,
        months: Optional[int] = None,
        *,
        today: Optional[date] = None,
    ) -> list[dict[str, object]]:
        months = months if months is not None else get_settings().trend_months
        if months < 1:
            raise ValidationError("months must be at least 1")
        since = self.trend_start(months, today or local_today())
        return self.ledger.group_by_time_bucket(entity, since)

    def weekly_pattern(self, start: date, end: Optional[date] = None) -> list[dict[str, object]]:
        return self.ledger.group_by_weekday(LedgerEntity.expense, start, end)

    def spending_patterns(
        self, months: Optional[int] = None, *, today: Optional[date] = None
    ) -> dict[str, object]:
        today = today or local_today()
        months = months if months is not None else get_settings().trend_months
        if months < 1:
            raise ValidationError("months must be at least 1")
        since = self.trend_start(months, today)
        payment_methods = self.ledger.group_by(
            LedgerEntity.expense, since, None, "payment_method"
        )
        sizes = self.ledger.amount_stats_by_key(
            LedgerEntity.expense, since, None, "category"
        )
        category_trend = self.ledger.group_by_key_and_month(
            LedgerEntity.expense, since, "category"
        )
        return {
            "since": since,
            "monthly_trend": self.ledger.group_by_time_bucket(
                LedgerEntity.expense, since
            ),
            "weekly_pattern": self.weekly_pattern(since),
            "category_trend": [
                {"category": r.pop("key"), **r} for r in category_trend
            ],
            "payment_method_breakdown": [
                {"payment_method": r.pop("key"), **r} for r in payment_methods
            ],
            "average_transaction_size": [
                {"category": r.pop("key"), **r} for r in sizes
            ],
        }


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    def _current_month(self, today: date) -> Period:
        return resolve_window("month", today=today).current

    def current_spend(self, *, today: Optional[date] = None) -> int:
        month = self._current_month(today or local_today())
        return self.ledger.sum_and_count(
            LedgerEntity.expense, month.start, month.end
        ).total_cents

    def current_utilization(self, *, today: Optional[date] = None) -> float:
        budget = UserService(self.session, self.user_id).budget_context()
        if budget.monthly_budget_cents <= 0:
            return 0.0
        return budget_utilization(
            self.current_spend(today=today), budget.monthly_budget_cents
        )

    def suggestions(self) -> list[dict[str, object]]:
        budget = UserService(self.session, self.user_id).budget_context()
        return suggest_category_budgets(budget.monthly_budget_cents)

    def analysis(self, *, today: Optional[date] = None) -> dict[str, object]:
        today = today or local_today()
        month = self._current_month(today)
        budget = UserService(self.session, self.user_id).budget_context()
        spent = self.ledger.sum_and_count(
            LedgerEntity.expense, month.start, month.end
        ).total_cents
        projection = project_budget(
            spent,
            budget.monthly_budget_cents,
            day_of_month=today.day,
            days_in_month=days_in_month(today.year, today.month),
        )
        data = asdict(projection)
        data["status"] = projection.status.value
        data["currency"] = budget.currency
        data["category_breakdown"] = MetricsService(
            self.session, self.user_id
        ).category_breakdown(month)
        data["daily_spending"] = self.ledger.group_by_day_of_month(
            LedgerEntity.expense, month.start, month.end
        )
        data["suggested_category_budgets"] = suggest_category_budgets(
            budget.monthly_budget_cents
        )
        return data


class HealthService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.ledger = LedgerQueries(session, self.user_id)

    def gather_inputs(self, *, today: Optional[date] = None) -> HealthInputs:
        today = today or local_today()
        since = add_months(today, -get_settings().health_window_months)

        expenses = self.ledger.sum_and_count(LedgerEntity.expense, since, None)
        income = self.ledger.sum_and_count(LedgerEntity.income, since, None)
        monthly = self.ledger.group_by_time_bucket(LedgerEntity.expense, since)

        goals = GoalService(self.session, self.user_id)
        stats = goals.stats()
        active = stats[GoalStatus.active.value]
        emergency = goals.emergency_fund()

        return HealthInputs(
            income_cents=income.total_cents,
            expense_cents=expenses.total_cents,
            budget_utilization=BudgetService(
                self.session, self.user_id
            ).current_utilization(today=today),
            active_goal_count=active["count"],
            completed_goal_count=stats[GoalStatus.completed.value]["count"],
            active_current_cents=active["total_current_cents"],
            active_target_cents=active["total_target_cents"],
            monthly_expense_totals=[int(m["total_cents"]) for m in monthly],
            emergency_fund_current_cents=emergency.current_cents if emergency else None,
            emergency_fund_target_cents=emergency.target_cents if emergency else None,
        )

    def report(self, *, today: Optional[date] = None) -> HealthReport:
        return score_financial_health(self.gather_inputs(today=today))

    def report_dict(self, *, today: Optional[date] = None) -> dict[str, object]:
        report = self.report(today=today)
        return {
            "health_score": report.score,
            "health_status": report.status,
            "score_factors": [asdict(f) for f in report.factors],
            "metrics": {
                "savings_rate": round2(report.savings_rate),
                "budget_utilization": round2(report.budget_utilization),
                "active_goals": report.active_goals,
                "completed_goals": report.completed_goals,
                "total_goal_progress": round2(report.goal_progress),
            },
            "recommendations": report.recommendations,
        }
