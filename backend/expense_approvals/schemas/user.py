# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from expense_approvals.models.enums import Role

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateUserRequest(BaseModel):
    """Request body for provisioning a directory user."""

    name: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: Role
    manager_id: uuid.UUID | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def _validate_manager(self) -> Self:
        if self.role == Role.EMPLOYEE and self.manager_id is None:
            msg = "manager_id is required for EMPLOYEE users"
            raise ValueError(msg)
        if self.role == Role.ADMIN and self.manager_id is not None:
            msg = "ADMIN users cannot have a manager"
            raise ValueError(msg)
        return self


class AssignManagerRequest(BaseModel):
    """Request body for assigning or reassigning an employee's manager."""

    manager_id: uuid.UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Response schema for a directory user."""

    id: uuid.UUID
    name: str
    email: str
    role: Role
    manager_id: uuid.UUID | None = None
    created_at: datetime


class UserListResponse(BaseModel):
    """Paginated list of users."""

    items: list[UserResponse]
    total: int


class AssignmentResponse(BaseModel):
    """Response schema for an employee-manager assignment."""

    id: uuid.UUID
    employee_id: uuid.UUID
    manager_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
