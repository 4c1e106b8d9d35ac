# ruff: noqa: B008, TC001, TC002, TC003
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import AfterValidator

from expense_approvals.api.deps import Operation, require
from expense_approvals.db import SessionDep
from expense_approvals.schemas.auth import AuthContext
from expense_approvals.schemas.expense import normalize_category
from expense_approvals.schemas.rule import (
    RuleEvaluationResponse,
    RuleListResponse,
    RuleResponse,
    UpsertRuleRequest,
)
from expense_approvals.services import rules as rule_service

rules_router = APIRouter(prefix="/admin/rules", tags=["rules"])

RuleAdminDep = Annotated[AuthContext, Depends(require(Operation.MANAGE_RULES))]
CategoryQuery = Annotated[str, Query(min_length=1, max_length=50), AfterValidator(normalize_category)]


@rules_router.post(
    "",
    response_model=RuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_200_OK: {"model": RuleResponse, "description": "Existing rule updated"}},
)
async def upsert_rule(
    payload: UpsertRuleRequest,
    response: Response,
    session: SessionDep,
    auth: RuleAdminDep,
) -> RuleResponse:
    """Create a rule, or update the ceiling of the rule with the same scope."""
    rule, created = await rule_service.upsert_rule(session, payload)
    if not created:
        response.status_code = status.HTTP_200_OK
    return rule


@rules_router.get("", response_model=RuleListResponse)
async def list_rules(
    session: SessionDep,
    auth: RuleAdminDep,
    manager_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RuleListResponse:
    """List approval rules, optionally for a single manager."""
    return await rule_service.list_rules(session, manager_id, offset, limit)


@rules_router.get("/resolve", response_model=RuleEvaluationResponse)
async def resolve_rule(
    session: SessionDep,
    auth: RuleAdminDep,
    category: CategoryQuery,
    manager_id: uuid.UUID = Query(),
    employee_id: uuid.UUID = Query(),
    amount: Decimal = Query(gt=0),
) -> RuleEvaluationResponse:
    """Dry-run rule resolution for a hypothetical claim. Changes nothing."""
    evaluation = await rule_service.resolve_rule(session, manager_id, employee_id, category, amount)
    return rule_service.build_evaluation_response(evaluation)
