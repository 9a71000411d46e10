from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def _role_ids(client: AsyncClient, tenant) -> dict[str, str]:
    response = await client.get(f"{BASE}/roles", headers=tenant.headers)
    return {role["name"]: role["id"] for role in response.json()}


async def test_assign_and_list(async_client: AsyncClient, tenant) -> None:
    roles = await _role_ids(async_client, tenant)
    user = uuid4()

    response = await async_client.put(
        f"{BASE}/users/{user}/roles/{roles['Waiter']}", headers=tenant.headers
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["user_id"] == str(user)
    assert [role["role_name"] for role in payload["roles"]] == ["Waiter"]
    assert payload["roles"][0]["assigned_by"] == str(tenant.owner_id)

    members = await async_client.get(
        f"{BASE}/roles/{roles['Waiter']}/users", headers=tenant.headers
    )
    assert [entry["user_id"] for entry in members.json()] == [str(user)]


async def test_cannot_change_own_roles(async_client: AsyncClient, tenant) -> None:
    roles = await _role_ids(async_client, tenant)

    response = await async_client.put(
        f"{BASE}/users/{tenant.owner_id}/roles/{roles['Cashier']}", headers=tenant.headers
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "You cannot change your own role assignments"


async def test_owner_role_is_not_assignable(async_client: AsyncClient, tenant) -> None:
    response = await async_client.put(
        f"{BASE}/users/{uuid4()}/roles/{tenant.owner_role_id}", headers=tenant.headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "The owner role cannot be assigned"


async def test_last_role_cannot_be_removed(async_client: AsyncClient, tenant) -> None:
    roles = await _role_ids(async_client, tenant)
    user = uuid4()
    await async_client.put(f"{BASE}/users/{user}/roles/{roles['Kitchen']}", headers=tenant.headers)
    await async_client.put(f"{BASE}/users/{user}/roles/{roles['Waiter']}", headers=tenant.headers)

    response = await async_client.delete(
        f"{BASE}/users/{user}/roles/{roles['Kitchen']}", headers=tenant.headers
    )
    assert response.status_code == 204, response.text

    response = await async_client.delete(
        f"{BASE}/users/{user}/roles/{roles['Waiter']}", headers=tenant.headers
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "A user must keep at least one role"


async def test_bulk_assign_replaces_role_set(async_client: AsyncClient, tenant) -> None:
    roles = await _role_ids(async_client, tenant)
    user = uuid4()
    await async_client.put(f"{BASE}/users/{user}/roles/{roles['Waiter']}", headers=tenant.headers)

    response = await async_client.put(
        f"{BASE}/users/{user}/roles",
        json={"role_ids": [roles["Cashier"], roles["Waiter"], roles["Kitchen"]]},
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text
    assert sorted(response.json()["added"]) == sorted([roles["Cashier"], roles["Kitchen"]])
    assert response.json()["removed"] == []

    response = await async_client.put(
        f"{BASE}/users/{user}/roles",
        json={"role_ids": [roles["Cashier"]]},
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["added"] == []
    assert sorted(response.json()["removed"]) == sorted([roles["Waiter"], roles["Kitchen"]])

    listed = await async_client.get(f"{BASE}/users/{user}/roles", headers=tenant.headers)
    assert [role["role_name"] for role in listed.json()["roles"]] == ["Cashier"]


async def test_bulk_assign_requires_a_role(async_client: AsyncClient, tenant) -> None:
    response = await async_client.put(
        f"{BASE}/users/{uuid4()}/roles", json={"role_ids": []}, headers=tenant.headers
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "At least one role is required"
