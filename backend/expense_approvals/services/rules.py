# ruff: noqa: TC003
"""Approval rule store and resolution engine.

Resolution picks the single most specific rule a manager has for a claim:

1. A rule bound to the claimant outranks one that is not.
2. Among those, a rule bound to the claim's category outranks one that is not.
3. Equally specific rules are broken by the lowest ``max_amount`` (the most
   restrictive ceiling wins), then the oldest rule, then the lowest id.

Resolution only reads; it never mutates rules or expenses.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select
from sqlmodel import col

from expense_approvals.exceptions import ValidationFailedError
from expense_approvals.models.enums import Role
from expense_approvals.models.rule import ApprovalRule
from expense_approvals.models.user import User
from expense_approvals.schemas.rule import (
    RuleEvaluationResponse,
    RuleListResponse,
    RuleResponse,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.schemas.rule import UpsertRuleRequest

logger = logging.getLogger(__name__)

NO_MATCH_REASON = "No matching rule; escalate to admin"
WITHIN_LIMITS_REASON = "Within limits"


@dataclass(frozen=True)
class RuleEvaluation:
    """Outcome of resolving a claim against a manager's rules."""

    allowed: bool
    rule: ApprovalRule | None
    reason: str


# ---------------------------------------------------------------------------
# Pure ranking
# ---------------------------------------------------------------------------


def rule_matches(rule: ApprovalRule, employee_id: uuid.UUID, category: str) -> bool:
    """Return True if the rule's scope covers the given claimant and category."""
    return (rule.employee_id is None or rule.employee_id == employee_id) and (
        rule.category is None or rule.category == category
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _rank_key(rule: ApprovalRule) -> tuple[int, int, Decimal, datetime, str]:
    return (
        0 if rule.employee_id is not None else 1,
        0 if rule.category is not None else 1,
        Decimal(rule.max_amount),
        _as_utc(rule.created_at),
        str(rule.id),
    )


def select_rule(
    rules: Iterable[ApprovalRule],
    employee_id: uuid.UUID,
    category: str,
) -> ApprovalRule | None:
    """Return the most specific rule covering the claim, or None."""
    candidates = [rule for rule in rules if rule_matches(rule, employee_id, category)]
    if not candidates:
        return None
    return min(candidates, key=_rank_key)


def evaluate_rule(rule: ApprovalRule | None, amount: Decimal) -> RuleEvaluation:
    """Judge an amount against a selected rule. The ceiling is inclusive."""
    if rule is None:
        return RuleEvaluation(allowed=False, rule=None, reason=NO_MATCH_REASON)
    max_amount = Decimal(rule.max_amount)
    if amount <= max_amount:
        return RuleEvaluation(allowed=True, rule=rule, reason=WITHIN_LIMITS_REASON)
    return RuleEvaluation(allowed=False, rule=rule, reason=f"Exceeds limit {max_amount:.2f} for rule")


# ---------------------------------------------------------------------------
# Resolution against storage
# ---------------------------------------------------------------------------


async def resolve_rule(
    session: AsyncSession,
    manager_id: uuid.UUID,
    employee_id: uuid.UUID,
    category: str,
    amount: Decimal,
) -> RuleEvaluation:
    """Pick the applicable rule for a claim and decide whether it complies."""
    result = await session.execute(
        select(ApprovalRule).where(
            col(ApprovalRule.manager_id) == manager_id,
            or_(col(ApprovalRule.employee_id) == employee_id, col(ApprovalRule.employee_id).is_(None)),
            or_(col(ApprovalRule.category) == category, col(ApprovalRule.category).is_(None)),
        )
    )
    candidates = list(result.scalars().all())
    evaluation = evaluate_rule(select_rule(candidates, employee_id, category), amount)
    logger.debug(
        "Resolved rule for manager=%s employee=%s category=%s: candidates=%d rule=%s allowed=%s",
        manager_id,
        employee_id,
        category,
        len(candidates),
        evaluation.rule.id if evaluation.rule else None,
        evaluation.allowed,
    )
    return evaluation


# ---------------------------------------------------------------------------
# Rule store
# ---------------------------------------------------------------------------


def build_rule_response(rule: ApprovalRule) -> RuleResponse:
    """Map a rule model to its response schema."""
    return RuleResponse(
        id=rule.id,
        manager_id=rule.manager_id,
        category=rule.category,
        employee_id=rule.employee_id,
        max_amount=rule.max_amount,
        created_at=rule.created_at,
        updated_at=rule.updated_at,
    )


def build_evaluation_response(evaluation: RuleEvaluation) -> RuleEvaluationResponse:
    """Map a rule evaluation to its response schema."""
    return RuleEvaluationResponse(
        allowed=evaluation.allowed,
        rule=build_rule_response(evaluation.rule) if evaluation.rule else None,
        reason=evaluation.reason,
    )


async def _verify_user_role(
    session: AsyncSession,
    user_id: uuid.UUID,
    role: Role,
    field: str,
) -> User:
    """Fetch a user and require a role. Raises 400 on mismatch."""
    user = await session.get(User, user_id)
    if user is None or user.role != role.value:
        raise ValidationFailedError(f"{field} must reference an existing {role.value} user")
    return user


async def upsert_rule(
    session: AsyncSession,
    payload: UpsertRuleRequest,
) -> tuple[RuleResponse, bool]:
    """Create a rule, or replace the ceiling of the rule with the same scope.

    Returns the rule and whether it was newly created.
    """
    await _verify_user_role(session, payload.manager_id, Role.MANAGER, "manager_id")
    if payload.employee_id is not None and await session.get(User, payload.employee_id) is None:
        raise ValidationFailedError("employee_id must reference an existing user")

    query = select(ApprovalRule).where(col(ApprovalRule.manager_id) == payload.manager_id)
    if payload.category is None:
        query = query.where(col(ApprovalRule.category).is_(None))
    else:
        query = query.where(col(ApprovalRule.category) == payload.category)
    if payload.employee_id is None:
        query = query.where(col(ApprovalRule.employee_id).is_(None))
    else:
        query = query.where(col(ApprovalRule.employee_id) == payload.employee_id)

    result = await session.execute(query.order_by(col(ApprovalRule.created_at)).limit(1))
    rule = result.scalar_one_or_none()

    created = rule is None
    if rule is None:
        rule = ApprovalRule(
            manager_id=payload.manager_id,
            category=payload.category,
            employee_id=payload.employee_id,
            max_amount=payload.max_amount,
        )
        session.add(rule)
    else:
        rule.max_amount = payload.max_amount
        rule.updated_at = datetime.now(UTC)

    await session.commit()
    await session.refresh(rule)
    logger.info("%s approval rule %s for manager %s", "Created" if created else "Updated", rule.id, rule.manager_id)
    return build_rule_response(rule), created


async def list_rules(
    session: AsyncSession,
    manager_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> RuleListResponse:
    """List rules, optionally for one manager, most specific first."""
    base_filters = []
    if manager_id is not None:
        base_filters.append(col(ApprovalRule.manager_id) == manager_id)

    count_result = await session.execute(select(func.count()).select_from(ApprovalRule).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(ApprovalRule)
        .where(*base_filters)
        .order_by(
            col(ApprovalRule.manager_id),
            col(ApprovalRule.employee_id).is_(None),
            col(ApprovalRule.category).is_(None),
            col(ApprovalRule.created_at),
        )
        .offset(offset)
        .limit(limit)
    )
    rules = list(result.scalars().all())

    return RuleListResponse(items=[build_rule_response(r) for r in rules], total=total)
