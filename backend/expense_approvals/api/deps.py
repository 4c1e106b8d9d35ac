# ruff: noqa: B008, TC003
"""Caller identity and the operation-to-role capability table.

Route handlers declare the operation they perform with ``require``; the role
check happens here, once, before any service code runs. Services only ever
see the already-authorized actor id.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header

from expense_approvals.exceptions import ForbiddenError
from expense_approvals.models.enums import Role
from expense_approvals.schemas.auth import AuthContext


class Operation(enum.StrEnum):
    """Operations exposed to callers."""

    SUBMIT_EXPENSE = "submit_expense"
    LIST_OWN_EXPENSES = "list_own_expenses"
    LIST_ASSIGNED_EXPENSES = "list_assigned_expenses"
    VIEW_EXPENSE = "view_expense"
    MANAGER_DECIDE = "manager_decide"
    FETCH_RECEIPT = "fetch_receipt"
    LIST_ALL_EXPENSES = "list_all_expenses"
    ADMIN_FINALIZE = "admin_finalize"
    REISSUE_RECEIPT = "reissue_receipt"
    MANAGE_RULES = "manage_rules"
    MANAGE_USERS = "manage_users"


CAPABILITIES: dict[Operation, frozenset[Role]] = {
    Operation.SUBMIT_EXPENSE: frozenset({Role.EMPLOYEE, Role.MANAGER}),
    Operation.LIST_OWN_EXPENSES: frozenset({Role.EMPLOYEE, Role.MANAGER}),
    Operation.LIST_ASSIGNED_EXPENSES: frozenset({Role.MANAGER}),
    Operation.VIEW_EXPENSE: frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    Operation.MANAGER_DECIDE: frozenset({Role.MANAGER}),
    Operation.FETCH_RECEIPT: frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    Operation.LIST_ALL_EXPENSES: frozenset({Role.ADMIN}),
    Operation.ADMIN_FINALIZE: frozenset({Role.ADMIN}),
    Operation.REISSUE_RECEIPT: frozenset({Role.ADMIN}),
    Operation.MANAGE_RULES: frozenset({Role.ADMIN}),
    Operation.MANAGE_USERS: frozenset({Role.ADMIN}),
}


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default=Role.EMPLOYEE.value),
) -> AuthContext:
    """Extract the caller's identity from request headers."""
    try:
        role = Role(x_role.strip().upper())
    except ValueError:
        raise ForbiddenError(f"Unknown role {x_role!r}") from None
    return AuthContext(user_id=x_user_id, role=role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


def is_allowed(operation: Operation, role: Role) -> bool:
    """Return True if the role holds the capability for the operation."""
    return role in CAPABILITIES[operation]


def require(operation: Operation) -> Callable[[AuthContext], Awaitable[AuthContext]]:
    """Build a dependency that admits only roles allowed to perform operation."""

    async def _check(auth: AuthDep) -> AuthContext:
        if not is_allowed(operation, auth.role):
            raise ForbiddenError(f"Role {auth.role.value} may not perform {operation.value}")
        return auth

    return _check

