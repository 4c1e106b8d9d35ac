# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class Receipt(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Location of the rendered approval artifact for a finalized expense."""

    __tablename__ = "receipt"

    expense_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("expense.id", ondelete="CASCADE"), nullable=False, unique=True
        ),
    )
    file_path: str = Field(max_length=500)
