# ruff: noqa: TC003
from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UUIDBase


class User(UUIDBase, TimestampMixin, table=True):
    """A directory identity with an immutable role."""

    __tablename__ = "app_user"
    __table_args__ = (sa.UniqueConstraint("email", name="uq_user_email"),)

    name: str = Field(max_length=100)
    email: str = Field(max_length=255, index=True)
    role: str = Field(max_length=20, index=True)
