# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class ManagerAssignment(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Links an employee to the single manager who reviews their claims."""

    __tablename__ = "employee_manager"
    __table_args__ = (sa.UniqueConstraint("employee_id", name="uq_employee_manager_employee"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False),
    )
    manager_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
