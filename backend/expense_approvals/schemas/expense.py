# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from expense_approvals.models.enums import DecisionAction, ExpenseStatus
from expense_approvals.schemas.rule import RuleResponse

MAX_EXPENSE_AMOUNT = Decimal("100000000")


def normalize_category(value: str) -> str:
    """Uppercase a category label, rejecting one that is blank."""
    value = value.strip().upper()
    if not value:
        msg = "category must not be blank"
        raise ValueError(msg)
    return value


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitExpenseRequest(BaseModel):
    """Request body for submitting a new expense claim."""

    amount: Decimal = Field(gt=0, le=MAX_EXPENSE_AMOUNT, max_digits=12, decimal_places=2)
    category: str = Field(min_length=1, max_length=50)
    description: str | None = None

    @field_validator("category")
    @classmethod
    def _normalize_category(cls, value: str) -> str:
        return normalize_category(value)

    @field_validator("description")
    @classmethod
    def _blank_description_to_none(cls, value: str | None) -> str | None:
        return value or None


class DecisionRequest(BaseModel):
    """Request body for manager decisions and admin finalization."""

    action: DecisionAction
    comment: str | None = Field(default=None, max_length=255)

    @field_validator("comment")
    @classmethod
    def _blank_comment_to_none(cls, value: str | None) -> str | None:
        return value or None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ExpenseResponse(BaseModel):
    """Response schema for a single expense claim."""

    id: uuid.UUID
    employee_id: uuid.UUID
    manager_id: uuid.UUID
    amount: Decimal
    category: str
    description: str | None
    status: ExpenseStatus
    manager_comment: str | None
    manager_decision_at: datetime | None
    admin_comment: str | None
    admin_decision_at: datetime | None
    receipt_path: str | None
    created_at: datetime
    employee_name: str | None = None
    manager_name: str | None = None


class ExpenseListResponse(BaseModel):
    """Paginated list of expense claims."""

    items: list[ExpenseResponse]
    total: int


class ManagerDecisionResponse(BaseModel):
    """Result of a manager decision.

    ``rule`` is set when the claim was within a rule's ceiling; ``reason``
    explains an escalation to admin review.
    """

    id: uuid.UUID
    status: ExpenseStatus
    rule: RuleResponse | None = None
    reason: str | None = None


class FinalizeResponse(BaseModel):
    """Result of an admin finalization."""

    id: uuid.UUID
    status: ExpenseStatus
    receipt_path: str | None = None
