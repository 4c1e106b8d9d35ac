"""initial expense approval schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(updated=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )
    op.create_index("ix_app_user_email", "app_user", ["email"])
    op.create_index("ix_app_user_role", "app_user", ["role"])

    op.create_table(
        "employee_manager",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["manager_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", name="uq_employee_manager_employee"),
    )
    op.create_index("ix_employee_manager_manager_id", "employee_manager", ["manager_id"])

    op.create_table(
        "approval_rule",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("manager_id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("employee_id", sa.Uuid(), nullable=True),
        sa.Column("max_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(["manager_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_approval_rule_manager_id", "approval_rule", ["manager_id"])

    op.create_table(
        "expense",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(updated=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=50), server_default="PENDING", nullable=False),
        sa.Column("manager_comment", sa.String(length=255), nullable=True),
        sa.Column("manager_decision_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_comment", sa.String(length=255), nullable=True),
        sa.Column("admin_decision_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("receipt_path", sa.String(length=500), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["manager_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_expense_employee_id", "expense", ["employee_id"])
    op.create_index("ix_expense_manager_id", "expense", ["manager_id"])
    op.create_index("ix_expense_status", "expense", ["status"])
    op.create_index("ix_expense_manager_status", "expense", ["manager_id", "status"])

    op.create_table(
        "receipt",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("expense_id", sa.Uuid(), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.ForeignKeyConstraint(["expense_id"], ["expense.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("expense_id"),
    )


def downgrade() -> None:
    op.drop_table("receipt")
    op.drop_index("ix_expense_manager_status", table_name="expense")
    op.drop_index("ix_expense_status", table_name="expense")
    op.drop_index("ix_expense_manager_id", table_name="expense")
    op.drop_index("ix_expense_employee_id", table_name="expense")
    op.drop_table("expense")
    op.drop_index("ix_approval_rule_manager_id", table_name="approval_rule")
    op.drop_table("approval_rule")
    op.drop_index("ix_employee_manager_manager_id", table_name="employee_manager")
    op.drop_table("employee_manager")
    op.drop_index("ix_app_user_role", table_name="app_user")
    op.drop_index("ix_app_user_email", table_name="app_user")
    op.drop_table("app_user")
