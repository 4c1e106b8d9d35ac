# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class UpsertRuleRequest(BaseModel):
    """Request body for creating or updating an approval rule.

    A rule is identified by its scope (manager, category, employee); posting
    the same scope again replaces its ceiling.
    """

    manager_id: uuid.UUID
    category: str | None = Field(default=None, max_length=50)
    employee_id: uuid.UUID | None = None
    max_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

    @field_validator("category")
    @classmethod
    def _normalize_category(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value.upper() if value else None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RuleResponse(BaseModel):
    """Response schema for an approval rule."""

    id: uuid.UUID
    manager_id: uuid.UUID
    category: str | None
    employee_id: uuid.UUID | None
    max_amount: Decimal
    created_at: datetime
    updated_at: datetime


class RuleListResponse(BaseModel):
    """Paginated list of approval rules."""

    items: list[RuleResponse]
    total: int


class RuleEvaluationResponse(BaseModel):
    """Outcome of resolving the applicable rule for a claim."""

    allowed: bool
    rule: RuleResponse | None
    reason: str
