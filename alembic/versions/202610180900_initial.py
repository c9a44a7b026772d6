"""ledger and goals schema

Revision ID: 202610180900
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610180900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False, unique=True),
        sa.Column(
            "monthly_budget_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="INR"),
        *_timestamps(),
        sa.CheckConstraint(
            "monthly_budget_cents >= 0", name="ck_users_budget_positive"
        ),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "food",
                "transport",
                "entertainment",
                "shopping",
                "education",
                "health",
                "rent",
                "utilities",
                "subscriptions",
                "party",
                "emergency",
                "other",
                name="expensecategory",
            ),
            nullable=False,
        ),
        sa.Column("subcategory", sa.String(length=100)),
        sa.Column("tags_json", sa.Text()),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum(
                "cash", "card", "upi", "netbanking", "other", name="expensepaymentmethod"
            ),
            nullable=False,
        ),
        sa.Column("location", sa.String(length=200)),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "recurring_frequency",
            sa.Enum("daily", "weekly", "monthly", "yearly", name="expensefrequency"),
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("ai_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ai_confidence", sa.Float()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"])
    op.create_index("ix_expenses_user_category", "expenses", ["user_id", "category"])

    op.create_table(
        "incomes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "source",
            sa.Enum(
                "allowance",
                "stipend",
                "scholarship",
                "part-time-job",
                "freelance",
                "internship",
                "family",
                "gift",
                "investment",
                "side-hustle",
                "other",
                name="incomesource",
            ),
            nullable=False,
        ),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "recurring_frequency",
            sa.Enum("weekly", "monthly", "quarterly", "yearly", name="incomefrequency"),
        ),
        sa.Column("next_expected_date", sa.Date()),
        sa.Column(
            "payment_method",
            sa.Enum(
                "bank-transfer", "cash", "upi", "cheque", "other", name="incomepaymentmethod"
            ),
            nullable=False,
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("tags_json", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_incomes_amount_positive"),
    )
    op.create_index("ix_incomes_user_date", "incomes", ["user_id", "date"])
    op.create_index("ix_incomes_user_source", "incomes", ["user_id", "source"])
    op.create_index(
        "ix_incomes_user_recurring_next",
        "incomes",
        ["user_id", "is_recurring", "next_expected_date"],
    )

    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("target_cents", sa.Integer(), nullable=False),
        sa.Column("current_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "category",
            sa.Enum(
                "emergency-fund",
                "gadget",
                "travel",
                "education",
                "investment",
                "entertainment",
                "health",
                "other",
                name="goalcategory",
            ),
            nullable=False,
        ),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "urgent", name="goalpriority"),
            nullable=False,
        ),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "paused", "cancelled", name="goalstatus"),
            nullable=False,
        ),
        sa.Column(
            "auto_save_enabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "auto_save_amount_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "auto_save_frequency",
            sa.Enum("daily", "weekly", "monthly", name="autosavefrequency"),
            nullable=False,
        ),
        sa.Column("last_auto_save", sa.DateTime()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("tags_json", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("target_cents > 0", name="ck_goals_target_positive"),
        sa.CheckConstraint("current_cents >= 0", name="ck_goals_current_positive"),
        sa.CheckConstraint(
            "auto_save_amount_cents >= 0", name="ck_goals_auto_save_positive"
        ),
    )
    op.create_index("ix_goals_user_status", "goals", ["user_id", "status"])
    op.create_index("ix_goals_user_target_date", "goals", ["user_id", "target_date"])
    op.create_index("ix_goals_user_priority", "goals", ["user_id", "priority"])

    op.create_table(
        "goal_milestones",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "goal_id",
            sa.Integer(),
            sa.ForeignKey("goals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("is_achieved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("achieved_at", sa.DateTime()),
        sa.CheckConstraint(
            "percentage >= 0 AND percentage <= 100", name="ck_milestone_percentage"
        ),
    )

    op.create_table(
        "goal_contributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "goal_id",
            sa.Integer(),
            sa.ForeignKey("goals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("contributed_at", sa.DateTime(), nullable=False),
        sa.Column("note", sa.String(length=200)),
        sa.Column(
            "source",
            sa.Enum("manual", "auto-save", "bonus", "other", name="contributionsource"),
            nullable=False,
        ),
        sa.CheckConstraint("amount_cents > 0", name="ck_contribution_amount_positive"),
    )
    op.create_index(
        "ix_goal_contributions_goal", "goal_contributions", ["goal_id"]
    )


def downgrade():
    op.drop_index("ix_goal_contributions_goal", table_name="goal_contributions")
    op.drop_table("goal_contributions")
    op.drop_table("goal_milestones")
    op.drop_index("ix_goals_user_priority", table_name="goals")
    op.drop_index("ix_goals_user_target_date", table_name="goals")
    op.drop_index("ix_goals_user_status", table_name="goals")
    op.drop_table("goals")
    op.drop_index("ix_incomes_user_recurring_next", table_name="incomes")
    op.drop_index("ix_incomes_user_source", table_name="incomes")
    op.drop_index("ix_incomes_user_date", table_name="incomes")
    op.drop_table("incomes")
    op.drop_index("ix_expenses_user_category", table_name="expenses")
    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("users")
