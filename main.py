import logging
from datetime import date
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal
from errors import (
    InvalidStateError,
    LedgerError,
    NotFoundError,
    StoreFailure,
    ValidationError,
)
from goals import days_remaining, is_overdue, progress_percentage, required_daily_savings
from ledger import LedgerEntity, LedgerFilters
from models import Expense, Goal, Income
from periods import local_now, resolve_range
from scheduler import SchedulerManager
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
from services import (
    BudgetService,
    ExpenseService,
    GoalService,
    HealthService,
    IncomeService,
    InsightsService,
    MetricsService,
    UserService,
    get_current_user_id,
    round2,
)


logger = logging.getLogger(__name__)

app = FastAPI(title="Student Ledger")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    return x_user_id or get_current_user_id()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    if get_settings().scheduler_enabled:
        scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (StoreFailure, 503),
)


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = 500
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break
    content: dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, ValidationError) and exc.errors:
        content["errors"] = exc.errors
    if status_code >= 500:
        logger.warning(f"request_failed: path={request.url.path} error={exc}")
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"detail": "Validation failed", "errors": errors}
    )


def _int_param(request: Request, name: str, default: int, low: int, high: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer") from exc
    return min(max(value, low), high)


def _optional_int(request: Request, name: str) -> Optional[int]:
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer") from exc


def filters_from_request(request: Request) -> LedgerFilters:
    params = request.query_params
    start = params.get("start")
    end = params.get("end")
    recurring = params.get("recurring")
    try:
        return LedgerFilters(
            start=date.fromisoformat(start) if start else None,
            end=date.fromisoformat(end) if end else None,
            category=params.get("category") or None,
            source=params.get("source") or None,
            payment_method=params.get("payment_method") or None,
            min_amount_cents=_optional_int(request, "min_amount_cents"),
            max_amount_cents=_optional_int(request, "max_amount_cents"),
            query=params.get("q") or None,
            is_recurring=None if recurring is None else recurring.lower() == "true",
        )
    except ValueError as exc:
        if isinstance(exc, ValidationError):
            raise
        raise ValidationError(f"Malformed date: {exc}") from exc


def paged_list(service, request: Request) -> dict[str, object]:
    page = _int_param(request, "page", 1, 1, 10_000)
    limit = _int_param(request, "limit", 20, 1, 100)
    sort_by = request.query_params.get("sort_by", "date")
    descending = request.query_params.get("sort_order", "desc") != "asc"
    items, total = service.list(
        filters_from_request(request),
        sort_by=sort_by,
        descending=descending,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


def expense_payload(expense: Expense) -> dict[str, object]:
    return {
        "id": expense.id,
        "amount_cents": expense.amount_cents,
        "description": expense.description,
        "category": expense.category.value,
        "subcategory": expense.subcategory,
        "tags": expense.tags,
        "date": expense.date.isoformat(),
        "payment_method": expense.payment_method.value,
        "location": expense.location,
        "is_recurring": expense.is_recurring,
        "recurring_frequency": (
            expense.recurring_frequency.value if expense.recurring_frequency else None
        ),
        "notes": expense.notes,
        "ai_generated": expense.ai_generated,
        "ai_confidence": expense.ai_confidence,
    }


def income_payload(income: Income) -> dict[str, object]:
    return {
        "id": income.id,
        "amount_cents": income.amount_cents,
        "source": income.source.value,
        "description": income.description,
        "date": income.date.isoformat(),
        "is_recurring": income.is_recurring,
        "recurring_frequency": (
            income.recurring_frequency.value if income.recurring_frequency else None
        ),
        "next_expected_date": (
            income.next_expected_date.isoformat() if income.next_expected_date else None
        ),
        "payment_method": income.payment_method.value,
        "notes": income.notes,
        "tags": income.tags,
    }


def goal_payload(goal: Goal) -> dict[str, object]:
    now = local_now()
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "target_cents": goal.target_cents,
        "current_cents": goal.current_cents,
        "category": goal.category.value,
        "priority": goal.priority.value,
        "target_date": goal.target_date.isoformat(),
        "status": goal.status.value,
        "auto_save": {
            "enabled": goal.auto_save_enabled,
            "amount_cents": goal.auto_save_amount_cents,
            "frequency": goal.auto_save_frequency.value,
            "last_auto_save": (
                goal.last_auto_save.isoformat() if goal.last_auto_save else None
            ),
        },
        "milestones": [
            {
                "percentage": m.percentage,
                "amount_cents": m.amount_cents,
                "is_achieved": m.is_achieved,
                "achieved_at": m.achieved_at.isoformat() if m.achieved_at else None,
            }
            for m in goal.milestones
        ],
        "contributions": [
            {
                "amount_cents": c.amount_cents,
                "date": c.contributed_at.isoformat(),
                "note": c.note,
                "source": c.source.value,
            }
            for c in goal.contributions
        ],
        "tags": goal.tags,
        "is_public": goal.is_public,
        "completed_at": goal.completed_at.isoformat() if goal.completed_at else None,
        "progress_percentage": round2(progress_percentage(goal)),
        "days_remaining": days_remaining(goal, now),
        "required_daily_savings_cents": round2(required_daily_savings(goal, now)),
        "is_overdue": is_overdue(goal, now),
    }


# Users


@app.post("/api/users", status_code=201)
def api_create_user(data: UserIn, db: Session = Depends(get_db)):
    user = UserService(db).create(data)
    return {"id": user.id, "name": user.name, "email": user.email}


@app.get("/api/users/me/budget")
def api_get_budget(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    budget = UserService(db, user_id).budget_context()
    return {
        "monthly_budget_cents": budget.monthly_budget_cents,
        "currency": budget.currency,
    }


@app.put("/api/users/me/budget")
def api_set_budget(
    data: BudgetIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    user = UserService(db, user_id).set_budget(data)
    return {"monthly_budget_cents": user.monthly_budget_cents, "currency": user.currency}


# Expenses


@app.get("/api/expenses")
def api_list_expenses(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    data = paged_list(ExpenseService(db, user_id), request)
    data["items"] = [expense_payload(e) for e in data["items"]]
    return data


@app.post("/api/expenses", status_code=201)
def api_create_expense(
    data: ExpenseIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return expense_payload(ExpenseService(db, user_id).create(data))


@app.post("/api/expenses/bulk", status_code=201)
def api_bulk_expenses(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    items = payload.get("expenses")
    if not isinstance(items, list):
        raise ValidationError("Please provide a list of expenses")
    created = ExpenseService(db, user_id).bulk_create(items)
    return {
        "count": len(created),
        "expenses": [expense_payload(e) for e in created],
    }


@app.get("/api/expenses/analytics/category-wise")
def api_expense_categories(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    period = resolve_range(
        request.query_params.get("start"), request.query_params.get("end")
    )
    return MetricsService(db, user_id).category_breakdown(period)


@app.get("/api/expenses/analytics/monthly-trend")
def api_expense_trend(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    months = _int_param(request, "months", get_settings().trend_months, 1, 120)
    return InsightsService(db, user_id).monthly_trend(LedgerEntity.expense, months)


@app.get("/api/expenses/{expense_id}")
def api_get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return expense_payload(ExpenseService(db, user_id).get(expense_id))


@app.put("/api/expenses/{expense_id}")
def api_update_expense(
    expense_id: int,
    data: ExpenseIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return expense_payload(ExpenseService(db, user_id).update(expense_id, data))


@app.delete("/api/expenses/{expense_id}")
def api_delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    ExpenseService(db, user_id).delete(expense_id)
    return {"deleted": True}


# Income


@app.get("/api/income")
def api_list_income(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    data = paged_list(IncomeService(db, user_id), request)
    data["items"] = [income_payload(i) for i in data["items"]]
    return data


@app.post("/api/income", status_code=201)
def api_create_income(
    data: IncomeIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return income_payload(IncomeService(db, user_id).create(data))


@app.get("/api/income/analytics/source-wise")
def api_income_sources(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    period = resolve_range(
        request.query_params.get("start"), request.query_params.get("end")
    )
    return MetricsService(db, user_id).source_breakdown(period)


@app.get("/api/income/analytics/monthly-trend")
def api_income_trend(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    months = _int_param(request, "months", get_settings().trend_months, 1, 120)
    return InsightsService(db, user_id).monthly_trend(LedgerEntity.income, months)


@app.get("/api/income/recurring/upcoming")
def api_upcoming_income(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    days = _int_param(request, "days", 30, 1, 365)
    return [income_payload(i) for i in IncomeService(db, user_id).upcoming_recurring(days)]


@app.get("/api/income/summary")
def api_income_summary(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return IncomeService(db, user_id).summary()


@app.get("/api/income/{income_id}")
def api_get_income(
    income_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return income_payload(IncomeService(db, user_id).get(income_id))


@app.put("/api/income/{income_id}")
def api_update_income(
    income_id: int,
    data: IncomeIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return income_payload(IncomeService(db, user_id).update(income_id, data))


@app.delete("/api/income/{income_id}")
def api_delete_income(
    income_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    IncomeService(db, user_id).delete(income_id)
    return {"deleted": True}


# Goals


@app.get("/api/goals")
def api_list_goals(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    params = request.query_params
    try:
        options = GoalListOptions(
            status=params.get("status", "active"),
            category=params.get("category") or None,
            priority=params.get("priority") or None,
            sort_by=params.get("sort_by", "target_date"),
            sort_order=params.get("sort_order", "asc"),
        )
    except SchemaError as exc:
        raise ValidationError("Invalid goal filters", [e["msg"] for e in exc.errors()]) from exc
    return [goal_payload(g) for g in GoalService(db, user_id).list(options)]


@app.post("/api/goals", status_code=201)
def api_create_goal(
    data: GoalIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return goal_payload(GoalService(db, user_id).create(data))


@app.get("/api/goals/overdue")
def api_overdue_goals(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return [goal_payload(g) for g in GoalService(db, user_id).overdue()]


@app.get("/api/goals/priority")
def api_goals_by_priority(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return [goal_payload(g) for g in GoalService(db, user_id).by_priority()]


@app.get("/api/goals/summary")
def api_goal_summary(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return GoalService(db, user_id).summary()


@app.get("/api/goals/{goal_id}")
def api_get_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return goal_payload(GoalService(db, user_id).get(goal_id))


@app.put("/api/goals/{goal_id}")
def api_update_goal(
    goal_id: int,
    data: GoalUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return goal_payload(GoalService(db, user_id).update(goal_id, data))


@app.delete("/api/goals/{goal_id}")
def api_delete_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    GoalService(db, user_id).delete(goal_id)
    return {"deleted": True}


@app.post("/api/goals/{goal_id}/contribute")
def api_contribute(
    goal_id: int,
    data: ContributionIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return goal_payload(GoalService(db, user_id).contribute(goal_id, data))


@app.post("/api/goals/{goal_id}/auto-save")
def api_auto_save(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return goal_payload(GoalService(db, user_id).auto_save(goal_id))


# Analytics


@app.get("/api/analytics/dashboard")
def api_dashboard(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return MetricsService(db, user_id).dashboard(request.query_params.get("period"))


@app.get("/api/analytics/spending-patterns")
def api_spending_patterns(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    months = _int_param(request, "months", get_settings().trend_months, 1, 120)
    return InsightsService(db, user_id).spending_patterns(months)


@app.get("/api/analytics/budget-analysis")
def api_budget_analysis(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return BudgetService(db, user_id).analysis()


@app.get("/api/analytics/budget-suggestions")
def api_budget_suggestions(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return BudgetService(db, user_id).suggestions()


@app.get("/api/analytics/financial-health")
def api_financial_health(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return HealthService(db, user_id).report_dict()
