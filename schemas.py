import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from categorizer import resolve_choice
from models import (
    AutoSaveFrequency,
    ContributionSource,
    ExpenseCategory,
    ExpenseFrequency,
    ExpensePaymentMethod,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    IncomeFrequency,
    IncomePaymentMethod,
    IncomeSource,
)


# Shorthand accepted on input; stored as the canonical value.
INCOME_SOURCE_ALIASES = {"job": IncomeSource.part_time_job}


def _tags(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


class UserIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=254)
    monthly_budget_cents: int = Field(default=0, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class BudgetIn(BaseModel):
    monthly_budget_cents: int = Field(..., ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class ExpenseIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=200)
    category: Optional[ExpenseCategory] = None
    subcategory: Optional[str] = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list)
    date: Optional[dt.date] = None
    payment_method: ExpensePaymentMethod = ExpensePaymentMethod.other
    location: Optional[str] = Field(default=None, max_length=200)
    is_recurring: bool = False
    recurring_frequency: Optional[ExpenseFrequency] = None
    notes: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return resolve_choice(value, ExpenseCategory)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _payment_method(cls, value):
        return resolve_choice(value, ExpensePaymentMethod) or ExpensePaymentMethod.other

    @field_validator("description")
    @classmethod
    def _description(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Description is required")
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return _tags(value)


class IncomeIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_cents: int = Field(..., gt=0)
    source: IncomeSource
    description: str = Field(..., min_length=1, max_length=200)
    date: Optional[dt.date] = None
    is_recurring: bool = False
    recurring_frequency: Optional[IncomeFrequency] = None
    next_expected_date: Optional[dt.date] = None
    payment_method: IncomePaymentMethod = IncomePaymentMethod.other
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, value):
        if isinstance(value, str) and value.strip().lower() in INCOME_SOURCE_ALIASES:
            return INCOME_SOURCE_ALIASES[value.strip().lower()]
        return resolve_choice(value, IncomeSource)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _payment_method(cls, value):
        return resolve_choice(value, IncomePaymentMethod) or IncomePaymentMethod.other

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return _tags(value)


class AutoSaveIn(BaseModel):
    enabled: bool = False
    amount_cents: int = Field(default=0, ge=0)
    frequency: AutoSaveFrequency = AutoSaveFrequency.monthly


class AutoSaveUpdate(BaseModel):
    enabled: Optional[bool] = None
    amount_cents: Optional[int] = Field(default=None, ge=0)
    frequency: Optional[AutoSaveFrequency] = None


class GoalIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    target_cents: int = Field(..., gt=0)
    category: GoalCategory = GoalCategory.other
    priority: GoalPriority = GoalPriority.medium
    target_date: dt.date
    auto_save: Optional[AutoSaveIn] = None
    tags: list[str] = Field(default_factory=list)
    is_public: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return resolve_choice(value, GoalCategory) or GoalCategory.other

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return _tags(value)


class GoalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    target_cents: Optional[int] = Field(default=None, gt=0)
    category: Optional[GoalCategory] = None
    priority: Optional[GoalPriority] = None
    target_date: Optional[dt.date] = None
    status: Optional[GoalStatus] = None
    auto_save: Optional[AutoSaveUpdate] = None
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return resolve_choice(value, GoalCategory)


class ContributionIn(BaseModel):
    amount_cents: int = Field(..., gt=0)
    note: Optional[str] = Field(default=None, max_length=200)
    source: ContributionSource = ContributionSource.manual


class GoalListOptions(BaseModel):
    status: Optional[str] = "active"
    category: Optional[GoalCategory] = None
    priority: Optional[GoalPriority] = None
    sort_by: Literal["target_date", "created_at", "target_cents", "priority"] = (
        "target_date"
    )
    sort_order: Literal["asc", "desc"] = "asc"
