# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from expense_approvals.api.deps import Operation, require
from expense_approvals.db import SessionDep
from expense_approvals.models.enums import ExpenseStatus
from expense_approvals.schemas.auth import AuthContext
from expense_approvals.schemas.expense import DecisionRequest, ExpenseListResponse, FinalizeResponse
from expense_approvals.services import expense as expense_service
from expense_approvals.services.storage import ReceiptStorageDep

admin_expenses_router = APIRouter(prefix="/admin/expenses", tags=["admin"])


@admin_expenses_router.get("", response_model=ExpenseListResponse)
async def list_all_expenses(
    session: SessionDep,
    auth: Annotated[AuthContext, Depends(require(Operation.LIST_ALL_EXPENSES))],
    status_filter: ExpenseStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ExpenseListResponse:
    """List every expense claim with employee and manager names (admin only)."""
    return await expense_service.list_all_expenses(session, status_filter, offset, limit)


@admin_expenses_router.post("/{expense_id}/finalize", response_model=FinalizeResponse)
async def finalize_expense(
    expense_id: uuid.UUID,
    payload: DecisionRequest,
    session: SessionDep,
    storage: ReceiptStorageDep,
    auth: Annotated[AuthContext, Depends(require(Operation.ADMIN_FINALIZE))],
) -> FinalizeResponse:
    """Give the final approve/reject decision on an expense claim (admin only)."""
    return await expense_service.admin_finalize(session, storage, expense_id, payload)


@admin_expenses_router.post("/{expense_id}/receipt", response_model=FinalizeResponse)
async def reissue_receipt(
    expense_id: uuid.UUID,
    session: SessionDep,
    storage: ReceiptStorageDep,
    auth: Annotated[AuthContext, Depends(require(Operation.REISSUE_RECEIPT))],
) -> FinalizeResponse:
    """Regenerate the receipt of an admin-approved expense (admin only)."""
    return await expense_service.reissue_receipt(session, storage, expense_id)
