# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from expense_approvals.models.enums import Role


class AuthContext(BaseModel):
    """Caller identity extracted from request headers."""

    user_id: uuid.UUID
    role: Role = Role.EMPLOYEE
