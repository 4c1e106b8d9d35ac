# ruff: noqa: TC003
"""Expense lifecycle: submission, manager decision, and admin finalization.

Every transition follows the same read-decide-write sequence scoped to one
expense id: the row is read under ``FOR UPDATE``, the precondition checked,
and the new state persisted with a compare-and-set on ``version``. A decision
that loses a race re-reads the winner's status and fails with
``InvalidStateError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fpdf.errors import FPDFException
from sqlalchemy import func, select, update
from sqlalchemy.orm import aliased
from sqlmodel import col

from expense_approvals.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
    ValidationFailedError,
)
from expense_approvals.models.enums import MANAGER_ACTIONABLE_STATUSES, DecisionAction, ExpenseStatus
from expense_approvals.models.expense import Expense
from expense_approvals.models.user import User
from expense_approvals.schemas.expense import (
    ExpenseListResponse,
    ExpenseResponse,
    FinalizeResponse,
    ManagerDecisionResponse,
)
from expense_approvals.services.directory import get_assigned_manager_id
from expense_approvals.services.receipt import issue_receipt
from expense_approvals.services.rules import build_rule_response, resolve_rule

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.schemas.expense import DecisionRequest, SubmitExpenseRequest
    from expense_approvals.services.storage import ReceiptStorage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_expense_response(
    expense: Expense,
    employee_name: str | None = None,
    manager_name: str | None = None,
) -> ExpenseResponse:
    """Map an expense model to its response schema."""
    return ExpenseResponse(
        id=expense.id,
        employee_id=expense.employee_id,
        manager_id=expense.manager_id,
        amount=expense.amount,
        category=expense.category,
        description=expense.description,
        status=ExpenseStatus(expense.status),
        manager_comment=expense.manager_comment,
        manager_decision_at=expense.manager_decision_at,
        admin_comment=expense.admin_comment,
        admin_decision_at=expense.admin_decision_at,
        receipt_path=expense.receipt_path,
        created_at=expense.created_at,
        employee_name=employee_name,
        manager_name=manager_name,
    )


async def _get_expense_or_404(
    session: AsyncSession,
    expense_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Expense:
    """Fetch an expense by ID, optionally locking the row. Raises 404 if not found."""
    query = select(Expense).where(col(Expense.id) == expense_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    expense = result.scalar_one_or_none()
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


async def _commit_transition(session: AsyncSession, expense: Expense, **changes: Any) -> Expense:
    """Persist a transition if nobody else has moved the expense since it was read.

    The UPDATE only matches the version the caller read. When it matches
    nothing, another decision already committed: the current status is
    re-read and reported as an InvalidStateError.
    """
    expense_id = expense.id
    read_version = expense.version
    result = await session.execute(
        update(Expense)
        .where(col(Expense.id) == expense_id, col(Expense.version) == read_version)
        .values(**changes, version=read_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:  # ty: ignore[unresolved-attribute]
        await session.rollback()
        current = await _get_expense_or_404(session, expense_id, for_update=True)
        logger.info("Lost decision race on expense %s (now %s)", expense_id, current.status)
        raise InvalidStateError(f"Expense was decided concurrently; current status is {current.status}")

    await session.commit()
    await session.refresh(expense)
    return expense


def _ensure_viewer(expense: Expense, actor_id: uuid.UUID, privileged: bool) -> None:
    if not privileged and actor_id not in (expense.employee_id, expense.manager_id):
        raise ForbiddenError("Not authorized to view this expense")


async def _list_expenses(
    session: AsyncSession,
    filters: list[Any],
    offset: int,
    limit: int,
) -> ExpenseListResponse:
    """List expenses newest first with employee and manager names joined in."""
    employee = aliased(User)
    manager = aliased(User)

    count_result = await session.execute(select(func.count()).select_from(Expense).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Expense, employee.name, manager.name)
        .join(employee, employee.id == col(Expense.employee_id))
        .join(manager, manager.id == col(Expense.manager_id))
        .where(*filters)
        .order_by(col(Expense.created_at).desc(), col(Expense.id))
        .offset(offset)
        .limit(limit)
    )

    return ExpenseListResponse(
        items=[
            _build_expense_response(expense, employee_name, manager_name)
            for expense, employee_name, manager_name in result.all()
        ],
        total=total,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_expense(
    session: AsyncSession,
    employee_id: uuid.UUID,
    payload: SubmitExpenseRequest,
) -> ExpenseResponse:
    """Create a PENDING expense under the claimant's current manager.

    The manager is copied onto the expense and stays the only one allowed to
    decide it, even if the claimant is later reassigned. No rule is checked
    at submission.
    """
    manager_id = await get_assigned_manager_id(session, employee_id)
    if manager_id is None:
        raise ValidationFailedError("No manager assigned to employee")

    expense = Expense(
        employee_id=employee_id,
        manager_id=manager_id,
        amount=payload.amount,
        category=payload.category,
        description=payload.description,
        status=ExpenseStatus.PENDING.value,
    )
    session.add(expense)
    await session.commit()
    await session.refresh(expense)

    logger.info("Expense %s submitted by %s for manager %s", expense.id, employee_id, manager_id)
    return _build_expense_response(expense)


async def get_expense(
    session: AsyncSession,
    expense_id: uuid.UUID,
    actor_id: uuid.UUID,
    privileged: bool = False,
) -> ExpenseResponse:
    """Get a single expense visible to its claimant, its manager, or a privileged actor."""
    expense = await _get_expense_or_404(session, expense_id)
    _ensure_viewer(expense, actor_id, privileged)
    return _build_expense_response(expense)


async def list_own_expenses(
    session: AsyncSession,
    employee_id: uuid.UUID,
    offset: int = 0,
    limit: int = 50,
) -> ExpenseListResponse:
    """List the claimant's own expenses, newest first."""
    return await _list_expenses(session, [col(Expense.employee_id) == employee_id], offset, limit)


async def list_assigned_expenses(
    session: AsyncSession,
    manager_id: uuid.UUID,
    offset: int = 0,
    limit: int = 50,
) -> ExpenseListResponse:
    """List expenses awaiting or decided by this manager, newest first."""
    return await _list_expenses(session, [col(Expense.manager_id) == manager_id], offset, limit)


async def list_all_expenses(
    session: AsyncSession,
    status_filter: ExpenseStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> ExpenseListResponse:
    """List every expense, optionally in one status, newest first."""
    filters = []
    if status_filter is not None:
        filters.append(col(Expense.status) == status_filter.value)
    return await _list_expenses(session, filters, offset, limit)


async def manager_decide(
    session: AsyncSession,
    expense_id: uuid.UUID,
    acting_manager_id: uuid.UUID,
    payload: DecisionRequest,
) -> ManagerDecisionResponse:
    """Apply the assigned manager's decision to a PENDING or ADMIN_REVIEW expense.

    Rejecting is final. Approving resolves the manager's applicable rule:
    within its ceiling the expense becomes MANAGER_APPROVED, otherwise it is
    escalated to ADMIN_REVIEW with the reason kept as the manager comment
    unless the manager supplied one.
    """
    expense = await _get_expense_or_404(session, expense_id, for_update=True)

    if expense.manager_id != acting_manager_id:
        raise ForbiddenError("Not your assigned expense")
    if expense.status not in MANAGER_ACTIONABLE_STATUSES:
        raise InvalidStateError(f"Cannot act on expense in status {expense.status}")

    now = datetime.now(UTC)

    if payload.action == DecisionAction.REJECT:
        await _commit_transition(
            session,
            expense,
            status=ExpenseStatus.REJECTED.value,
            manager_comment=payload.comment,
            manager_decision_at=now,
        )
        logger.info("Expense %s rejected by manager %s", expense_id, acting_manager_id)
        return ManagerDecisionResponse(id=expense.id, status=ExpenseStatus.REJECTED)

    evaluation = await resolve_rule(
        session,
        manager_id=expense.manager_id,
        employee_id=expense.employee_id,
        category=expense.category,
        amount=expense.amount,
    )

    if evaluation.allowed and evaluation.rule is not None:
        await _commit_transition(
            session,
            expense,
            status=ExpenseStatus.MANAGER_APPROVED.value,
            manager_comment=payload.comment,
            manager_decision_at=now,
        )
        logger.info("Expense %s approved by manager %s under rule %s", expense_id, acting_manager_id, evaluation.rule.id)
        return ManagerDecisionResponse(
            id=expense.id,
            status=ExpenseStatus.MANAGER_APPROVED,
            rule=build_rule_response(evaluation.rule),
        )

    await _commit_transition(
        session,
        expense,
        status=ExpenseStatus.ADMIN_REVIEW.value,
        manager_comment=payload.comment or evaluation.reason,
        manager_decision_at=now,
    )
    logger.info("Expense %s escalated to admin review: %s", expense_id, evaluation.reason)
    return ManagerDecisionResponse(
        id=expense.id,
        status=ExpenseStatus.ADMIN_REVIEW,
        rule=build_rule_response(evaluation.rule) if evaluation.rule else None,
        reason=evaluation.reason,
    )


async def _issue_or_unavailable(
    session: AsyncSession,
    storage: ReceiptStorage,
    expense_id: uuid.UUID,
) -> str:
    try:
        receipt = await issue_receipt(session, storage, expense_id)
    except (OSError, FPDFException) as exc:
        await session.rollback()
        logger.exception("Receipt issuance failed for expense %s", expense_id)
        raise UnavailableError("Receipt issuance failed; retry finalize") from exc
    return receipt.file_path


async def admin_finalize(
    session: AsyncSession,
    storage: ReceiptStorage,
    expense_id: uuid.UUID,
    payload: DecisionRequest,
) -> FinalizeResponse:
    """Record the admin's final decision on an expense in any status.

    Approval commits ADMIN_APPROVED first and then issues the receipt. If
    issuance fails the status stays committed; finalizing again re-issues
    and overwrites the receipt.
    """
    expense = await _get_expense_or_404(session, expense_id, for_update=True)
    now = datetime.now(UTC)

    if payload.action == DecisionAction.REJECT:
        await _commit_transition(
            session,
            expense,
            status=ExpenseStatus.REJECTED.value,
            admin_comment=payload.comment,
            admin_decision_at=now,
        )
        logger.info("Expense %s rejected by admin", expense_id)
        return FinalizeResponse(id=expense.id, status=ExpenseStatus.REJECTED)

    await _commit_transition(
        session,
        expense,
        status=ExpenseStatus.ADMIN_APPROVED.value,
        admin_comment=payload.comment,
        admin_decision_at=now,
    )
    logger.info("Expense %s approved by admin", expense_id)

    receipt_path = await _issue_or_unavailable(session, storage, expense_id)
    return FinalizeResponse(id=expense_id, status=ExpenseStatus.ADMIN_APPROVED, receipt_path=receipt_path)


async def reissue_receipt(
    session: AsyncSession,
    storage: ReceiptStorage,
    expense_id: uuid.UUID,
) -> FinalizeResponse:
    """Re-render the receipt of an ADMIN_APPROVED expense without changing its status."""
    expense = await _get_expense_or_404(session, expense_id)
    if expense.status != ExpenseStatus.ADMIN_APPROVED.value:
        raise InvalidStateError("Only admin-approved expenses have receipts")

    receipt_path = await _issue_or_unavailable(session, storage, expense_id)
    return FinalizeResponse(id=expense_id, status=ExpenseStatus.ADMIN_APPROVED, receipt_path=receipt_path)


async def get_receipt_file(
    session: AsyncSession,
    storage: ReceiptStorage,
    expense_id: uuid.UUID,
    actor_id: uuid.UUID,
    privileged: bool = False,
) -> Path:
    """Return the stored receipt of an approved expense for its claimant or a privileged actor."""
    expense = await _get_expense_or_404(session, expense_id)

    if not privileged and expense.employee_id != actor_id:
        raise ForbiddenError("Not authorized to fetch this receipt")
    if expense.status != ExpenseStatus.ADMIN_APPROVED.value or not expense.receipt_path:
        raise InvalidStateError("Receipt not available")
    if not storage.exists(expense.receipt_path):
        raise UnavailableError("Receipt file missing")

    return Path(expense.receipt_path)
