# ruff: noqa: TC003
"""Receipt issuance: render the approval document, store it, record where."""

from __future__ import annotations

import asyncio
import logging
import unicodedata
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from fpdf import FPDF
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased
from sqlmodel import col

from expense_approvals.exceptions import NotFoundError
from expense_approvals.models.expense import Expense
from expense_approvals.models.receipt import Receipt
from expense_approvals.models.user import User

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.services.storage import ReceiptStorage

logger = logging.getLogger(__name__)

_FONT = "Helvetica"
_REPLACEMENTS = {
    "\u2014": "-",
    "\u2013": "-",
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2026": "...",
    "\u00a0": " ",
}


class ReceiptDocument(BaseModel):
    """Fields printed on an expense receipt."""

    expense_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    manager_id: uuid.UUID
    manager_name: str
    category: str
    amount: Decimal
    description: str | None = None


def _latin1(text: str) -> str:
    """Fold text into Latin-1 for the core PDF fonts."""
    for old, new in _REPLACEMENTS.items():
        text = text.replace(old, new)
    nfkd = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in nfkd if not unicodedata.combining(c))
    return stripped.encode("latin-1", errors="replace").decode("latin-1")


def receipt_lines(document: ReceiptDocument, generated_at: datetime) -> list[str]:
    """Return the detail lines of a receipt in print order."""
    return [
        f"Receipt Date: {generated_at:%Y-%m-%d %H:%M}",
        f"Expense ID: {document.expense_id}",
        f"Employee: {document.employee_name} (ID: {document.employee_id})",
        f"Manager: {document.manager_name} (ID: {document.manager_id})",
        f"Category: {document.category}",
        f"Amount: {document.amount:.2f}",
        f"Description: {document.description or '-'}",
    ]


def render_receipt_pdf(document: ReceiptDocument, generated_at: datetime) -> bytes:
    """Render a receipt to PDF bytes."""
    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_margins(18, 18, 18)
    pdf.add_page()

    pdf.set_font(_FONT, "B", 20)
    pdf.cell(0, 12, "Expense Receipt", align="C", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    pdf.set_font(_FONT, "", 12)
    for line in receipt_lines(document, generated_at):
        pdf.multi_cell(0, 7, _latin1(line), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    pdf.set_font(_FONT, "U", 12)
    pdf.cell(0, 7, "Approvals:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font(_FONT, "", 12)
    pdf.cell(0, 7, "Manager: Approved", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 7, "Admin: Approved", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    pdf.set_font(_FONT, "I", 9)
    pdf.cell(0, 5, f"Generated at {generated_at:%Y-%m-%d %H:%M:%S} UTC", new_x="LMARGIN", new_y="NEXT")

    return bytes(pdf.output())


def _render_and_store(storage: ReceiptStorage, document: ReceiptDocument, generated_at: datetime) -> Path:
    return storage.write(document.expense_id, render_receipt_pdf(document, generated_at))


async def _load_document(session: AsyncSession, expense_id: uuid.UUID) -> tuple[Expense, ReceiptDocument]:
    employee = aliased(User)
    manager = aliased(User)
    result = await session.execute(
        select(Expense, employee.name, manager.name)
        .join(employee, employee.id == col(Expense.employee_id))
        .join(manager, manager.id == col(Expense.manager_id))
        .where(col(Expense.id) == expense_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Expense not found")
    expense, employee_name, manager_name = row
    document = ReceiptDocument(
        expense_id=expense.id,
        employee_id=expense.employee_id,
        employee_name=employee_name,
        manager_id=expense.manager_id,
        manager_name=manager_name,
        category=expense.category,
        amount=expense.amount,
        description=expense.description,
    )
    return expense, document


async def _record_location(session: AsyncSession, expense: Expense, file_path: str) -> Receipt:
    """Point the expense's single receipt row at file_path, creating it if absent."""
    result = await session.execute(select(Receipt).where(col(Receipt.expense_id) == expense.id))
    receipt = result.scalar_one_or_none()
    if receipt is None:
        receipt = Receipt(expense_id=expense.id, file_path=file_path)
        session.add(receipt)
    else:
        receipt.file_path = file_path
        receipt.updated_at = datetime.now(UTC)
    expense.receipt_path = file_path
    await session.flush()
    return receipt


async def issue_receipt(
    session: AsyncSession,
    storage: ReceiptStorage,
    expense_id: uuid.UUID,
) -> Receipt:
    """Render and store the receipt for an expense, upserting its Receipt row.

    Safe to call again for the same expense: the stored document and the
    recorded location are overwritten, never duplicated.
    """
    expense, document = await _load_document(session, expense_id)

    generated_at = datetime.now(UTC)
    path = await asyncio.to_thread(_render_and_store, storage, document, generated_at)
    file_path = str(path)

    try:
        receipt = await _record_location(session, expense, file_path)
    except IntegrityError:
        # A concurrent issuance inserted the row first; overwrite it instead.
        await session.rollback()
        expense, _ = await _load_document(session, expense_id)
        receipt = await _record_location(session, expense, file_path)

    await session.commit()
    await session.refresh(receipt)
    logger.info("Issued receipt for expense %s at %s", expense_id, file_path)
    return receipt
