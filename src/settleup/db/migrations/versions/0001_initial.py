"""initial schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(19, 4)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("tg_id", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("username", sa.Text()),
        sa.Column("full_name", sa.Text()),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("group_id", sa.BigInteger(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("added_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("is_incomplete_amount", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_settlement", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount >= 0", name="expenses_amount_check"),
    )

    op.create_table(
        "expense_splits",
        sa.Column("expense_id", sa.BigInteger(), sa.ForeignKey("expenses.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("is_paid", sa.Boolean(), primary_key=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.CheckConstraint("amount >= 0", name="expense_splits_amount_check"),
    )

    op.create_index("idx_groups_owner", "groups", ["owner_id"])
    op.create_index("idx_group_members_user", "group_members", ["user_id", "group_id"])
    op.create_index("idx_expenses_group_created", "expenses", ["group_id", "created_at"])
    op.create_index("idx_expense_splits_user_paid", "expense_splits", ["user_id", "is_paid", "expense_id"])


def downgrade() -> None:
    op.drop_index("idx_expense_splits_user_paid", table_name="expense_splits")
    op.drop_index("idx_expenses_group_created", table_name="expenses")
    op.drop_index("idx_group_members_user", table_name="group_members")
    op.drop_index("idx_groups_owner", table_name="groups")

    op.drop_table("expense_splits")
    op.drop_table("expenses")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
