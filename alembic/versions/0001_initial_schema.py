"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-01-15 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


txn_type = sa.Enum("INCOME", "EXPENSE", name="txn_type")
recurring_frequency = sa.Enum("DAILY", "WEEKLY", "MONTHLY", "YEARLY", name="recurringfrequency")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(sa.inspect(bind).get_table_names())

    if "user" not in existing:
        op.create_table(
            "user",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(length=320), nullable=False, unique=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            *_timestamps(),
        )

    if "category" not in existing:
        op.create_table(
            "category",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("icon", sa.String(length=16), nullable=True),
            sa.Column("color", sa.String(length=9), nullable=True),
            sa.Column("is_system", sa.Boolean(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "name", name="uq_category_user_name"),
            sa.CheckConstraint("is_system = 0 OR user_id IS NULL", name="ck_category_system_unowned"),
        )

    if "recurringrule" not in existing:
        op.create_table(
            "recurringrule",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
            sa.Column("category_id", sa.Integer(), sa.ForeignKey("category.id"), nullable=False),
            sa.Column("description", sa.String(length=200), nullable=False),
            sa.Column("amount", sa.Numeric(18, 2), nullable=False),
            sa.Column("type", txn_type, nullable=False),
            sa.Column("frequency", recurring_frequency, nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("last_generated_at", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_recurring_date_order"),
            sa.CheckConstraint("amount > 0", name="ck_recurring_amount_positive"),
        )
        op.create_index("ix_recurring_user_active", "recurringrule", ["user_id", "is_active"])

    if "transaction" not in existing:
        op.create_table(
            "transaction",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
            sa.Column("category_id", sa.Integer(), sa.ForeignKey("category.id"), nullable=False),
            sa.Column("description", sa.String(length=200), nullable=False),
            sa.Column("amount", sa.Numeric(18, 2), nullable=False),
            sa.Column("type", txn_type, nullable=False),
            sa.Column("occurred_at", sa.Date(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column(
                "source_rule_id",
                sa.Integer(),
                sa.ForeignKey("recurringrule.id", ondelete="SET NULL"),
                nullable=True,
            ),
            *_timestamps(),
            sa.CheckConstraint("amount > 0", name="ck_txn_amount_positive"),
            sa.UniqueConstraint("source_rule_id", "occurred_at", name="uq_txn_rule_occurrence"),
        )
        op.create_index("ix_txn_user_date", "transaction", ["user_id", "occurred_at"])
        op.create_index("ix_txn_user_category", "transaction", ["user_id", "category_id"])

    if "budget" not in existing:
        op.create_table(
            "budget",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
            sa.Column("category_id", sa.Integer(), sa.ForeignKey("category.id"), nullable=False),
            sa.Column("amount", sa.Numeric(18, 2), nullable=False),
            sa.Column("month", sa.Integer(), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "category_id", "month", "year", name="uq_budget_category_month"),
            sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_budget_month"),
            sa.CheckConstraint("year BETWEEN 2000 AND 2100", name="ck_budget_year"),
            sa.CheckConstraint("amount > 0", name="ck_budget_amount_positive"),
        )


def downgrade() -> None:
    op.drop_table("budget")
    op.drop_index("ix_txn_user_category", table_name="transaction")
    op.drop_index("ix_txn_user_date", table_name="transaction")
    op.drop_table("transaction")
    op.drop_index("ix_recurring_user_active", table_name="recurringrule")
    op.drop_table("recurringrule")
    op.drop_table("category")
    op.drop_table("user")
    txn_type.drop(op.get_bind(), checkfirst=True)
    recurring_frequency.drop(op.get_bind(), checkfirst=True)
