from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from expense_approvals.db import Database
from expense_approvals.main import create_app
from expense_approvals.models import SQLModel
from expense_approvals.services.storage import ReceiptStorage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncSession

ADMIN_ID = uuid.uuid4()
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "ADMIN"}


def headers_for(user_id: uuid.UUID | str, role: str) -> dict[str, str]:
    """Build the identity headers for a caller."""
    return {"X-User-Id": str(user_id), "X-Role": role}


@pytest.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    """A throwaway SQLite database with every table created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'expenses.db'}")
    async with db.engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield db
    await db.dispose()


@pytest.fixture
def receipt_storage(tmp_path: Path) -> ReceiptStorage:
    return ReceiptStorage(tmp_path / "receipts")


@pytest.fixture
def app(database: Database, receipt_storage: ReceiptStorage) -> FastAPI:
    return create_app(database=database, receipt_storage=receipt_storage)


@pytest.fixture
async def db_session(database: Database) -> AsyncIterator[AsyncSession]:
    """A session on the same database the app under test uses."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@dataclass
class Directory:
    """Ids of the users provisioned for a test."""

    manager_id: uuid.UUID
    other_manager_id: uuid.UUID
    employee_id: uuid.UUID
    second_employee_id: uuid.UUID


async def create_user(
    client: AsyncClient,
    name: str,
    role: str,
    manager_id: uuid.UUID | None = None,
) -> uuid.UUID:
    """Provision a user through the admin API and return its id."""
    body: dict[str, str] = {
        "name": name,
        "email": f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:8]}@example.com",
        "role": role,
    }
    if manager_id is not None:
        body["manager_id"] = str(manager_id)
    resp = await client.post("/admin/users", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 201, resp.text
    return uuid.UUID(resp.json()["id"])


@pytest.fixture
async def directory(async_client: AsyncClient) -> Directory:
    """Two managers and two employees reporting to the first."""
    manager_id = await create_user(async_client, "Morgan Manager", "MANAGER")
    other_manager_id = await create_user(async_client, "Olive Other", "MANAGER")
    employee_id = await create_user(async_client, "Alice Employee", "EMPLOYEE", manager_id)
    second_employee_id = await create_user(async_client, "Bob Employee", "EMPLOYEE", manager_id)
    return Directory(
        manager_id=manager_id,
        other_manager_id=other_manager_id,
        employee_id=employee_id,
        second_employee_id=second_employee_id,
    )


async def upsert_rule(
    client: AsyncClient,
    manager_id: uuid.UUID,
    max_amount: str,
    category: str | None = None,
    employee_id: uuid.UUID | None = None,
) -> dict:
    body: dict[str, str] = {"manager_id": str(manager_id), "max_amount": max_amount}
    if category is not None:
        body["category"] = category
    if employee_id is not None:
        body["employee_id"] = str(employee_id)
    resp = await client.post("/admin/rules", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code in (200, 201), resp.text
    return resp.json()


@pytest.fixture
async def standard_rules(async_client: AsyncClient, directory: Directory) -> Directory:
    """Default 50000, TRAVEL 30000, and 20000 for the second employee."""
    await upsert_rule(async_client, directory.manager_id, "50000")
    await upsert_rule(async_client, directory.manager_id, "30000", category="TRAVEL")
    await upsert_rule(async_client, directory.manager_id, "20000", employee_id=directory.second_employee_id)
    return directory
