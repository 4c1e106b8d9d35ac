from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Directory role of a user. Fixed for the lifetime of the record."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class ExpenseStatus(enum.StrEnum):
    """State machine for expense claims."""

    PENDING = "PENDING"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    ADMIN_REVIEW = "ADMIN_REVIEW"
    ADMIN_APPROVED = "ADMIN_APPROVED"
    REJECTED = "REJECTED"


class DecisionAction(enum.StrEnum):
    """Action taken by a manager or admin on an expense."""

    APPROVE = "approve"
    REJECT = "reject"


# Statuses a manager may still act on. MANAGER_APPROVED only awaits the admin.
MANAGER_ACTIONABLE_STATUSES = frozenset({ExpenseStatus.PENDING, ExpenseStatus.ADMIN_REVIEW})
