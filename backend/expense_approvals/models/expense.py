# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UUIDBase
from expense_approvals.models.enums import ExpenseStatus


class Expense(UUIDBase, TimestampMixin, table=True):
    """An expense claim with its two-stage approval state.

    ``manager_id`` is copied from the employee's assignment at submission and
    never re-resolved. ``version`` increments on every transition and guards
    concurrent decisions on the same claim.
    """

    __tablename__ = "expense"
    __table_args__ = (sa.Index("ix_expense_manager_status", "manager_id", "status"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    manager_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    category: str = Field(max_length=50)
    description: str | None = None
    status: str = Field(
        default=ExpenseStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    manager_comment: str | None = Field(default=None, max_length=255)
    manager_decision_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    admin_comment: str | None = Field(default=None, max_length=255)
    admin_decision_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    receipt_path: str | None = Field(default=None, max_length=500)
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
