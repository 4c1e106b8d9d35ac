# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class ApprovalRule(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Spending ceiling a manager may approve on their own.

    ``category`` and ``employee_id`` narrow the rule when set; a rule with
    both unset is the manager's default.
    """

    __tablename__ = "approval_rule"

    manager_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    category: str | None = Field(default=None, max_length=50)
    employee_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=True),
    )
    max_amount: Decimal = Field(max_digits=12, decimal_places=2)
