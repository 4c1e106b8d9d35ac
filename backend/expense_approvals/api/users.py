# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from expense_approvals.api.deps import Operation, require
from expense_approvals.db import SessionDep
from expense_approvals.models.enums import Role
from expense_approvals.schemas.auth import AuthContext
from expense_approvals.schemas.user import (
    AssignManagerRequest,
    AssignmentResponse,
    CreateUserRequest,
    UserListResponse,
    UserResponse,
)
from expense_approvals.services import directory as directory_service

users_router = APIRouter(prefix="/admin/users", tags=["users"])

UserAdminDep = Annotated[AuthContext, Depends(require(Operation.MANAGE_USERS))]


@users_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: CreateUserRequest,
    session: SessionDep,
    auth: UserAdminDep,
) -> UserResponse:
    """Provision a user, assigning their manager when given."""
    return await directory_service.create_user(session, payload)


@users_router.get("", response_model=UserListResponse)
async def list_users(
    session: SessionDep,
    auth: UserAdminDep,
    role: Role | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> UserListResponse:
    """List directory users with their current manager."""
    return await directory_service.list_users(session, role, offset, limit)


@users_router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    session: SessionDep,
    auth: UserAdminDep,
) -> UserResponse:
    """Get a single user with their current manager."""
    return await directory_service.get_user(session, user_id)


@users_router.put("/{user_id}/manager", response_model=AssignmentResponse)
async def assign_manager(
    user_id: uuid.UUID,
    payload: AssignManagerRequest,
    session: SessionDep,
    auth: UserAdminDep,
) -> AssignmentResponse:
    """Assign or reassign a user's manager. Existing claims keep their manager."""
    return await directory_service.assign_manager(session, user_id, payload.manager_id)
