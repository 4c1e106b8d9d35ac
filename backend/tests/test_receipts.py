"""Tests for receipt issuance, reissue, and download."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from conftest import ADMIN_HEADERS, Directory, headers_for
from sqlalchemy import func, select

from expense_approvals.models.receipt import Receipt
from expense_approvals.services.receipt import ReceiptDocument, receipt_lines, render_receipt_pdf

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.services.storage import ReceiptStorage


async def _approved_by_manager(client: AsyncClient, directory: Directory, amount: str = "150.25") -> str:
    resp = await client.post(
        "/expenses",
        json={"amount": amount, "category": "MEALS", "description": "Team lunch"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    expense_id = resp.json()["id"]
    decision = await client.post(
        f"/expenses/{expense_id}/manager/decision",
        json={"action": "approve"},
        headers=headers_for(directory.manager_id, "MANAGER"),
    )
    assert decision.json()["status"] == "MANAGER_APPROVED"
    return expense_id


async def _finalize(client: AsyncClient, expense_id: str) -> dict:
    resp = await client.post(
        f"/admin/expenses/{expense_id}/finalize", json={"action": "approve"}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _receipt_count(session: AsyncSession, expense_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(Receipt).where(Receipt.expense_id == uuid.UUID(expense_id))
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _document(**overrides: object) -> ReceiptDocument:
    fields: dict[str, object] = {
        "expense_id": uuid.uuid4(),
        "employee_id": uuid.uuid4(),
        "employee_name": "Alice Employee",
        "manager_id": uuid.uuid4(),
        "manager_name": "Morgan Manager",
        "category": "TRAVEL",
        "amount": Decimal("1234.5"),
        "description": "Flight to Berlin",
    }
    fields.update(overrides)
    return ReceiptDocument(**fields)


def test_receipt_lines_carry_claim_details() -> None:
    document = _document()
    lines = receipt_lines(document, datetime(2026, 3, 4, 5, 6, tzinfo=UTC))
    assert lines[0] == "Receipt Date: 2026-03-04 05:06"
    assert f"Expense ID: {document.expense_id}" in lines
    assert f"Employee: Alice Employee (ID: {document.employee_id})" in lines
    assert f"Manager: Morgan Manager (ID: {document.manager_id})" in lines
    assert "Category: TRAVEL" in lines
    assert "Amount: 1234.50" in lines
    assert "Description: Flight to Berlin" in lines


def test_receipt_lines_without_description() -> None:
    lines = receipt_lines(_document(description=None), datetime.now(UTC))
    assert lines[-1] == "Description: -"


def test_render_receipt_pdf_handles_non_latin_text() -> None:
    data = render_receipt_pdf(
        _document(employee_name="Zoë Łukasz", description="Taxi — airport “express”"),
        datetime.now(UTC),
    )
    assert data.startswith(b"%PDF")


# ---------------------------------------------------------------------------
# Issuance on finalize
# ---------------------------------------------------------------------------


async def test_finalize_approve_issues_one_receipt(
    async_client: AsyncClient,
    directory: Directory,
    db_session: AsyncSession,
    receipt_storage: ReceiptStorage,
) -> None:
    await async_client.post(
        "/admin/rules", json={"manager_id": str(directory.manager_id), "max_amount": "1000"}, headers=ADMIN_HEADERS
    )
    expense_id = await _approved_by_manager(async_client, directory)

    data = await _finalize(async_client, expense_id)
    assert data["status"] == "ADMIN_APPROVED"
    path = Path(data["receipt_path"])
    assert path == receipt_storage.path_for(uuid.UUID(expense_id))
    assert path.read_bytes().startswith(b"%PDF")
    assert await _receipt_count(db_session, expense_id) == 1

    stored = await async_client.get(f"/expenses/{expense_id}", headers=ADMIN_HEADERS)
    assert stored.json()["receipt_path"] == data["receipt_path"]


async def test_finalize_twice_keeps_single_receipt(
    async_client: AsyncClient, directory: Directory, db_session: AsyncSession
) -> None:
    await async_client.post(
        "/admin/rules", json={"manager_id": str(directory.manager_id), "max_amount": "1000"}, headers=ADMIN_HEADERS
    )
    expense_id = await _approved_by_manager(async_client, directory)

    first = await _finalize(async_client, expense_id)
    second = await _finalize(async_client, expense_id)
    assert first["receipt_path"] == second["receipt_path"]
    assert await _receipt_count(db_session, expense_id) == 1


async def test_finalize_from_pending_is_allowed(async_client: AsyncClient, directory: Directory) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "10", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    data = await _finalize(async_client, resp.json()["id"])
    assert data["status"] == "ADMIN_APPROVED"
    assert data["receipt_path"] is not None


async def test_issuance_failure_leaves_status_and_can_be_retried(
    async_client: AsyncClient,
    directory: Directory,
    receipt_storage: ReceiptStorage,
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "10", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    expense_id = resp.json()["id"]

    def _disk_full(expense_id: uuid.UUID, data: bytes) -> Path:
        raise OSError("No space left on device")

    with monkeypatch.context() as patch:
        patch.setattr(receipt_storage, "write", _disk_full)
        failed = await async_client.post(
            f"/admin/expenses/{expense_id}/finalize", json={"action": "approve"}, headers=ADMIN_HEADERS
        )
    assert failed.status_code == 503
    assert failed.json()["error"] == "UNAVAILABLE"

    stored = await async_client.get(f"/expenses/{expense_id}", headers=ADMIN_HEADERS)
    assert stored.json()["status"] == "ADMIN_APPROVED"
    assert stored.json()["receipt_path"] is None
    assert await _receipt_count(db_session, expense_id) == 0

    retried = await async_client.post(f"/admin/expenses/{expense_id}/receipt", headers=ADMIN_HEADERS)
    assert retried.status_code == 200
    assert retried.json()["receipt_path"] is not None
    assert await _receipt_count(db_session, expense_id) == 1


# ---------------------------------------------------------------------------
# Reissue
# ---------------------------------------------------------------------------


async def test_reissue_overwrites_receipt(
    async_client: AsyncClient, directory: Directory, db_session: AsyncSession
) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "10", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    expense_id = resp.json()["id"]
    finalized = await _finalize(async_client, expense_id)

    reissued = await async_client.post(f"/admin/expenses/{expense_id}/receipt", headers=ADMIN_HEADERS)
    assert reissued.status_code == 200
    assert reissued.json()["receipt_path"] == finalized["receipt_path"]
    assert await _receipt_count(db_session, expense_id) == 1


async def test_reissue_requires_admin_approved(async_client: AsyncClient, directory: Directory) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "10", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    reissued = await async_client.post(f"/admin/expenses/{resp.json()['id']}/receipt", headers=ADMIN_HEADERS)
    assert reissued.status_code == 409
    assert reissued.json()["error"] == "INVALID_STATE"


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------


@pytest.fixture
async def finalized_expense(async_client: AsyncClient, directory: Directory) -> dict:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "99.99", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    return await _finalize(async_client, resp.json()["id"])


async def test_owner_downloads_receipt(
    async_client: AsyncClient, directory: Directory, finalized_expense: dict
) -> None:
    resp = await async_client.get(
        f"/expenses/{finalized_expense['id']}/receipt", headers=headers_for(directory.employee_id, "EMPLOYEE")
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")


async def test_admin_downloads_receipt(async_client: AsyncClient, finalized_expense: dict) -> None:
    resp = await async_client.get(f"/expenses/{finalized_expense['id']}/receipt", headers=ADMIN_HEADERS)
    assert resp.status_code == 200


async def test_manager_and_others_cannot_download(
    async_client: AsyncClient, directory: Directory, finalized_expense: dict
) -> None:
    url = f"/expenses/{finalized_expense['id']}/receipt"
    manager = await async_client.get(url, headers=headers_for(directory.manager_id, "MANAGER"))
    assert manager.status_code == 403

    other = await async_client.get(url, headers=headers_for(directory.second_employee_id, "EMPLOYEE"))
    assert other.status_code == 403


async def test_receipt_unavailable_before_approval(async_client: AsyncClient, directory: Directory) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "10", "category": "MEALS"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    fetch = await async_client.get(
        f"/expenses/{resp.json()['id']}/receipt", headers=headers_for(directory.employee_id, "EMPLOYEE")
    )
    assert fetch.status_code == 409
    assert fetch.json()["detail"] == "Receipt not available"


async def test_missing_receipt_file_is_unavailable(async_client: AsyncClient, finalized_expense: dict) -> None:
    Path(finalized_expense["receipt_path"]).unlink()
    resp = await async_client.get(f"/expenses/{finalized_expense['id']}/receipt", headers=ADMIN_HEADERS)
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Receipt file missing"


async def test_receipt_of_unknown_expense_404(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"/expenses/{uuid.uuid4()}/receipt", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_admin_approves_escalated_expense(
    async_client: AsyncClient, directory: Directory, db_session: AsyncSession
) -> None:
    resp = await async_client.post(
        "/expenses",
        json={"amount": "40000", "category": "TRAVEL"},
        headers=headers_for(directory.employee_id, "EMPLOYEE"),
    )
    expense_id = resp.json()["id"]
    escalated = await async_client.post(
        f"/expenses/{expense_id}/manager/decision",
        json={"action": "approve"},
        headers=headers_for(directory.manager_id, "MANAGER"),
    )
    assert escalated.json()["status"] == "ADMIN_REVIEW"

    data = await _finalize(async_client, expense_id)
    assert data["status"] == "ADMIN_APPROVED"
    assert await _receipt_count(db_session, expense_id) == 1

    stored = await async_client.get(f"/expenses/{expense_id}", headers=ADMIN_HEADERS)
    assert stored.json()["receipt_path"] == data["receipt_path"]
