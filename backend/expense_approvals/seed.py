"""Seed script for development data.

Run with:  python -m expense_approvals.seed
Inside Docker:  docker compose exec api python -m expense_approvals.seed
"""

from __future__ import annotations

import asyncio
import sys

import httpx

BASE_URL = "http://localhost:8000"
SEED_ADMIN_ID = "00000000-0000-0000-0000-000000000001"

ADMIN_HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": SEED_ADMIN_ID,
    "X-Role": "ADMIN",
}

ADMIN = {"name": "Ada Admin", "email": "ada.admin@example.com", "role": "ADMIN"}
MANAGER = {"name": "Morgan Manager", "email": "morgan.manager@example.com", "role": "MANAGER"}
EMPLOYEES = [
    {"name": "Alice Johnson", "email": "alice.johnson@example.com", "role": "EMPLOYEE"},
    {"name": "Bob Smith", "email": "bob.smith@example.com", "role": "EMPLOYEE"},
]


async def _find_user_id(client: httpx.AsyncClient, email: str) -> str | None:
    """Look up an already-seeded user by email."""
    offset = 0
    while True:
        resp = await client.get(
            f"{BASE_URL}/admin/users",
            params={"offset": offset, "limit": 100},
            headers=ADMIN_HEADERS,
        )
        if resp.status_code != 200:
            return None
        data = resp.json()
        for item in data["items"]:
            if item["email"] == email:
                return item["id"]
        offset += len(data["items"])
        if not data["items"] or offset >= data["total"]:
            return None


async def _ensure_user(client: httpx.AsyncClient, body: dict) -> str | None:
    """Create a user, tolerating 409 conflicts for idempotency. Returns the user id."""
    resp = await client.post(f"{BASE_URL}/admin/users", json=body, headers=ADMIN_HEADERS)
    if resp.status_code == 201:
        print(f"  [OK] {body['name']} ({body['role']})")
        return resp.json()["id"]
    if resp.status_code == 409:
        print(f"  [SKIP] {body['name']} (already exists)")
        return await _find_user_id(client, body["email"])
    print(f"  [ERROR] {body['name']}: {resp.status_code} {resp.text[:200]}")
    return None


async def _upsert_rule(client: httpx.AsyncClient, body: dict, label: str) -> None:
    """POST a rule; the same scope updates in place, so reruns are harmless."""
    resp = await client.post(f"{BASE_URL}/admin/rules", json=body, headers=ADMIN_HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")


async def seed_users(client: httpx.AsyncClient) -> tuple[str | None, list[str]]:
    """Seed the admin, the manager and their reports. Returns manager and employee ids."""
    print("\n--- Seeding users ---")
    await _ensure_user(client, ADMIN)
    manager_id = await _ensure_user(client, MANAGER)
    if manager_id is None:
        return None, []

    employee_ids = []
    for employee in EMPLOYEES:
        employee_id = await _ensure_user(client, {**employee, "manager_id": manager_id})
        if employee_id is not None:
            employee_ids.append(employee_id)
    return manager_id, employee_ids


async def seed_rules(client: httpx.AsyncClient, manager_id: str, employee_ids: list[str]) -> None:
    """Seed the manager's approval rules."""
    print("\n--- Seeding rules ---")
    await _upsert_rule(client, {"manager_id": manager_id, "max_amount": "50000"}, "Default limit 50000")
    await _upsert_rule(
        client,
        {"manager_id": manager_id, "category": "TRAVEL", "max_amount": "30000"},
        "TRAVEL limit 30000",
    )
    if len(employee_ids) > 1:
        await _upsert_rule(
            client,
            {"manager_id": manager_id, "employee_id": employee_ids[1], "max_amount": "20000"},
            "Employee-specific limit 20000",
        )


async def main() -> None:
    print("=" * 60)
    print("  Expense Approvals - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running")
            sys.exit(1)

        manager_id, employee_ids = await seed_users(client)
        if manager_id is None:
            print("ERROR: manager could not be seeded")
            sys.exit(1)
        await seed_rules(client, manager_id, employee_ids)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
