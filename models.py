import json
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


def _value_enum(enum_cls: type[Enum], name: str) -> SAEnum:
    # Persist the hyphenated values ("emergency-fund"), not the member names.
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class ExpenseCategory(str, Enum):
    food = "food"
    transport = "transport"
    entertainment = "entertainment"
    shopping = "shopping"
    education = "education"
    health = "health"
    rent = "rent"
    utilities = "utilities"
    subscriptions = "subscriptions"
    party = "party"
    emergency = "emergency"
    other = "other"


class ExpensePaymentMethod(str, Enum):
    cash = "cash"
    card = "card"
    upi = "upi"
    netbanking = "netbanking"
    other = "other"


class ExpenseFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class IncomeSource(str, Enum):
    allowance = "allowance"
    stipend = "stipend"
    scholarship = "scholarship"
    part_time_job = "part-time-job"
    freelance = "freelance"
    internship = "internship"
    family = "family"
    gift = "gift"
    investment = "investment"
    side_hustle = "side-hustle"
    other = "other"


class IncomePaymentMethod(str, Enum):
    bank_transfer = "bank-transfer"
    cash = "cash"
    upi = "upi"
    cheque = "cheque"
    other = "other"


class IncomeFrequency(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class GoalCategory(str, Enum):
    emergency_fund = "emergency-fund"
    gadget = "gadget"
    travel = "travel"
    education = "education"
    investment = "investment"
    entertainment = "entertainment"
    health = "health"
    other = "other"


class GoalPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class GoalStatus(str, Enum):
    active = "active"
    completed = "completed"
    paused = "paused"
    cancelled = "cancelled"


class AutoSaveFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class ContributionSource(str, Enum):
    manual = "manual"
    auto_save = "auto-save"
    bonus = "bonus"
    other = "other"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class TaggedMixin:
    tags_json: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def tags(self) -> list[str]:
        if not self.tags_json:
            return []
        return list(json.loads(self.tags_json))

    @tags.setter
    def tags(self, values: list[str]) -> None:
        cleaned = [v.strip() for v in values if v and v.strip()]
        self.tags_json = json.dumps(cleaned) if cleaned else None


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    monthly_budget_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    __table_args__ = (
        CheckConstraint("monthly_budget_cents >= 0", name="ck_users_budget_positive"),
    )


class Expense(Base, TimestampMixin, TaggedMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[ExpenseCategory] = mapped_column(
        _value_enum(ExpenseCategory, "expensecategory"),
        nullable=False,
        default=ExpenseCategory.other,
    )
    subcategory: Mapped[Optional[str]] = mapped_column(String(100))
    date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[ExpensePaymentMethod] = mapped_column(
        _value_enum(ExpensePaymentMethod, "expensepaymentmethod"),
        nullable=False,
        default=ExpensePaymentMethod.other,
    )
    location: Mapped[Optional[str]] = mapped_column(String(200))
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_frequency: Mapped[Optional[ExpenseFrequency]] = mapped_column(
        _value_enum(ExpenseFrequency, "expensefrequency")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    ai_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_confidence: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category", "user_id", "category"),
        CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
    )


class Income(Base, TimestampMixin, TaggedMixin):
    __tablename__ = "incomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[IncomeSource] = mapped_column(
        _value_enum(IncomeSource, "incomesource"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_frequency: Mapped[Optional[IncomeFrequency]] = mapped_column(
        _value_enum(IncomeFrequency, "incomefrequency")
    )
    next_expected_date: Mapped[Optional[date]] = mapped_column(Date)
    payment_method: Mapped[IncomePaymentMethod] = mapped_column(
        _value_enum(IncomePaymentMethod, "incomepaymentmethod"),
        nullable=False,
        default=IncomePaymentMethod.other,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_incomes_user_date", "user_id", "date"),
        Index("ix_incomes_user_source", "user_id", "source"),
        Index(
            "ix_incomes_user_recurring_next",
            "user_id",
            "is_recurring",
            "next_expected_date",
        ),
        CheckConstraint("amount_cents > 0", name="ck_incomes_amount_positive"),
    )


class Goal(Base, TimestampMixin, TaggedMixin):
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    target_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    current_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[GoalCategory] = mapped_column(
        _value_enum(GoalCategory, "goalcategory"),
        nullable=False,
        default=GoalCategory.other,
    )
    priority: Mapped[GoalPriority] = mapped_column(
        SAEnum(GoalPriority), nullable=False, default=GoalPriority.medium
    )
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[GoalStatus] = mapped_column(
        SAEnum(GoalStatus), nullable=False, default=GoalStatus.active
    )
    auto_save_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    auto_save_amount_cents: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    auto_save_frequency: Mapped[AutoSaveFrequency] = mapped_column(
        SAEnum(AutoSaveFrequency), default=AutoSaveFrequency.monthly, nullable=False
    )
    last_auto_save: Mapped[Optional[datetime]] = mapped_column(DateTime)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    milestones: Mapped[list["GoalMilestone"]] = relationship(
        "GoalMilestone",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="GoalMilestone.percentage",
    )
    contributions: Mapped[list["GoalContribution"]] = relationship(
        "GoalContribution",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="GoalContribution.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("ix_goals_user_status", "user_id", "status"),
        Index("ix_goals_user_target_date", "user_id", "target_date"),
        Index("ix_goals_user_priority", "user_id", "priority"),
        CheckConstraint("target_cents > 0", name="ck_goals_target_positive"),
        CheckConstraint("current_cents >= 0", name="ck_goals_current_positive"),
        CheckConstraint(
            "auto_save_amount_cents >= 0", name="ck_goals_auto_save_positive"
        ),
    )


class GoalMilestone(Base):
    __tablename__ = "goal_milestones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    goal_id: Mapped[int] = mapped_column(
        ForeignKey("goals.id", ondelete="CASCADE"), nullable=False
    )
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_achieved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    achieved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    goal: Mapped["Goal"] = relationship("Goal", back_populates="milestones")

    __table_args__ = (
        CheckConstraint(
            "percentage >= 0 AND percentage <= 100", name="ck_milestone_percentage"
        ),
    )


class GoalContribution(Base):
    __tablename__ = "goal_contributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    goal_id: Mapped[int] = mapped_column(
        ForeignKey("goals.id", ondelete="CASCADE"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    contributed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(String(200))
    source: Mapped[ContributionSource] = mapped_column(
        _value_enum(ContributionSource, "contributionsource"),
        nullable=False,
        default=ContributionSource.manual,
    )

    goal: Mapped["Goal"] = relationship("Goal", back_populates="contributions")

    __table_args__ = (
        Index("ix_goal_contributions_goal", "goal_id"),
        CheckConstraint("amount_cents > 0", name="ck_contribution_amount_positive"),
    )
