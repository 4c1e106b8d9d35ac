# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from expense_approvals.exceptions import ConflictError, NotFoundError, ValidationFailedError
from expense_approvals.models.assignment import ManagerAssignment
from expense_approvals.models.enums import Role
from expense_approvals.models.user import User
from expense_approvals.schemas.user import AssignmentResponse, UserListResponse, UserResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.schemas.user import CreateUserRequest

logger = logging.getLogger(__name__)


def _build_user_response(user: User, manager_id: uuid.UUID | None = None) -> UserResponse:
    """Map a user model to its response schema."""
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=Role(user.role),
        manager_id=manager_id,
        created_at=user.created_at,
    )


def _build_assignment_response(assignment: ManagerAssignment) -> AssignmentResponse:
    """Map an assignment model to its response schema."""
    return AssignmentResponse(
        id=assignment.id,
        employee_id=assignment.employee_id,
        manager_id=assignment.manager_id,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
    )


async def _get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> User:
    """Fetch a user by ID. Raises 404 if not found."""
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _verify_manager(session: AsyncSession, manager_id: uuid.UUID) -> User:
    """Require that manager_id references a MANAGER user."""
    manager = await session.get(User, manager_id)
    if manager is None or manager.role != Role.MANAGER.value:
        raise ValidationFailedError("manager_id must reference an existing MANAGER user")
    return manager


async def get_assigned_manager_id(session: AsyncSession, employee_id: uuid.UUID) -> uuid.UUID | None:
    """Return the manager currently assigned to an employee, if any."""
    result = await session.execute(
        select(ManagerAssignment.manager_id).where(col(ManagerAssignment.employee_id) == employee_id)
    )
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, payload: CreateUserRequest) -> UserResponse:
    """Provision a user and, when a manager is given, their manager assignment."""
    existing = await session.execute(select(User.id).where(col(User.email) == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email already in use")

    if payload.manager_id is not None:
        await _verify_manager(session, payload.manager_id)

    user = User(name=payload.name, email=payload.email, role=payload.role.value)
    session.add(user)

    try:
        await session.flush()
        if payload.manager_id is not None:
            session.add(ManagerAssignment(employee_id=user.id, manager_id=payload.manager_id))
            await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Email already in use") from None

    await session.commit()
    await session.refresh(user)
    logger.info("Created %s user %s", user.role, user.id)
    return _build_user_response(user, payload.manager_id)


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> UserResponse:
    """Get a single user with their current manager."""
    user = await _get_user_or_404(session, user_id)
    manager_id = await get_assigned_manager_id(session, user_id)
    return _build_user_response(user, manager_id)


async def list_users(
    session: AsyncSession,
    role: Role | None = None,
    offset: int = 0,
    limit: int = 50,
) -> UserListResponse:
    """List users with their current manager, ordered by name."""
    base_filters = []
    if role is not None:
        base_filters.append(col(User.role) == role.value)

    count_result = await session.execute(select(func.count()).select_from(User).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(User, ManagerAssignment.manager_id)
        .outerjoin(ManagerAssignment, col(ManagerAssignment.employee_id) == col(User.id))
        .where(*base_filters)
        .order_by(col(User.name), col(User.id))
        .offset(offset)
        .limit(limit)
    )

    return UserListResponse(
        items=[_build_user_response(user, manager_id) for user, manager_id in result.all()],
        total=total,
    )


async def assign_manager(
    session: AsyncSession,
    employee_id: uuid.UUID,
    manager_id: uuid.UUID,
) -> AssignmentResponse:
    """Assign or reassign an employee's manager.

    Existing expenses keep the manager they were submitted under; only new
    submissions pick up the change.
    """
    employee = await _get_user_or_404(session, employee_id)
    if employee.role == Role.ADMIN.value:
        raise ValidationFailedError("ADMIN users cannot have a manager")
    if employee_id == manager_id:
        raise ValidationFailedError("An employee cannot be their own manager")
    await _verify_manager(session, manager_id)

    result = await session.execute(
        select(ManagerAssignment).where(col(ManagerAssignment.employee_id) == employee_id)
    )
    assignment = result.scalar_one_or_none()

    if assignment is None:
        assignment = ManagerAssignment(employee_id=employee_id, manager_id=manager_id)
        session.add(assignment)
    else:
        assignment.manager_id = manager_id
        assignment.updated_at = datetime.now(UTC)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Employee already has a manager assignment") from None

    await session.commit()
    await session.refresh(assignment)
    logger.info("Assigned manager %s to employee %s", manager_id, employee_id)
    return _build_assignment_response(assignment)
