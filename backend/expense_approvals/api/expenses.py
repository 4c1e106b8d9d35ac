# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse

from expense_approvals.api.deps import Operation, require
from expense_approvals.db import SessionDep
from expense_approvals.models.enums import Role
from expense_approvals.schemas.auth import AuthContext
from expense_approvals.schemas.expense import (
    DecisionRequest,
    ExpenseListResponse,
    ExpenseResponse,
    ManagerDecisionResponse,
    SubmitExpenseRequest,
)
from expense_approvals.services import expense as expense_service
from expense_approvals.services.storage import ReceiptStorageDep

expenses_router = APIRouter(prefix="/expenses", tags=["expenses"])

SubmitterDep = Annotated[AuthContext, Depends(require(Operation.SUBMIT_EXPENSE))]
OwnListDep = Annotated[AuthContext, Depends(require(Operation.LIST_OWN_EXPENSES))]
AssignedListDep = Annotated[AuthContext, Depends(require(Operation.LIST_ASSIGNED_EXPENSES))]
ViewerDep = Annotated[AuthContext, Depends(require(Operation.VIEW_EXPENSE))]
ManagerDep = Annotated[AuthContext, Depends(require(Operation.MANAGER_DECIDE))]
ReceiptFetcherDep = Annotated[AuthContext, Depends(require(Operation.FETCH_RECEIPT))]


@expenses_router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def submit_expense(
    payload: SubmitExpenseRequest,
    session: SessionDep,
    auth: SubmitterDep,
) -> ExpenseResponse:
    """Submit a new expense claim to the caller's manager."""
    return await expense_service.submit_expense(session, auth.user_id, payload)


@expenses_router.get("/mine", response_model=ExpenseListResponse)
async def list_own_expenses(
    session: SessionDep,
    auth: OwnListDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ExpenseListResponse:
    """List the caller's own expense claims, newest first."""
    return await expense_service.list_own_expenses(session, auth.user_id, offset, limit)


@expenses_router.get("/assigned", response_model=ExpenseListResponse)
async def list_assigned_expenses(
    session: SessionDep,
    auth: AssignedListDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ExpenseListResponse:
    """List expense claims assigned to the calling manager, newest first."""
    return await expense_service.list_assigned_expenses(session, auth.user_id, offset, limit)


@expenses_router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: uuid.UUID,
    session: SessionDep,
    auth: ViewerDep,
) -> ExpenseResponse:
    """Get a single expense claim."""
    return await expense_service.get_expense(session, expense_id, auth.user_id, privileged=auth.role == Role.ADMIN)


@expenses_router.post("/{expense_id}/manager/decision", response_model=ManagerDecisionResponse)
async def manager_decision(
    expense_id: uuid.UUID,
    payload: DecisionRequest,
    session: SessionDep,
    auth: ManagerDep,
) -> ManagerDecisionResponse:
    """Approve or reject an expense claim as its assigned manager."""
    return await expense_service.manager_decide(session, expense_id, auth.user_id, payload)


@expenses_router.get("/{expense_id}/receipt", response_class=FileResponse)
async def fetch_receipt(
    expense_id: uuid.UUID,
    session: SessionDep,
    storage: ReceiptStorageDep,
    auth: ReceiptFetcherDep,
) -> FileResponse:
    """Download the receipt of an approved expense (claimant or admin)."""
    path = await expense_service.get_receipt_file(
        session, storage, expense_id, auth.user_id, privileged=auth.role == Role.ADMIN
    )
    return FileResponse(path, media_type="application/pdf", filename=path.name)
