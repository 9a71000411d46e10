from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def test_bootstrap_creates_owner_and_system_roles(async_client: AsyncClient, tenant) -> None:
    response = await async_client.get(f"{BASE}/roles", headers=tenant.headers)

    assert response.status_code == 200, response.text
    roles = {role["name"]: role for role in response.json()}
    assert set(roles) == {
        "Owner", "Admin", "Manager", "Supervisor", "Cashier", "Waiter", "Kitchen",
    }
    assert roles["Owner"]["id"] == str(tenant.owner_role_id)
    assert roles["Owner"]["role_type"] == "owner"
    assert all(role["is_protected"] for role in roles.values())


async def test_create_and_rename_custom_role(
    async_client: AsyncClient, tenant, make_role
) -> None:
    role = await make_role("  Host  ", description="Seats guests")
    assert role["name"] == "Host"
    assert role["role_type"] == "custom"
    assert role["is_protected"] is False

    response = await async_client.patch(
        f"{BASE}/roles/{role['id']}", json={"name": "Head Host"}, headers=tenant.headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["name"] == "Head Host"

    response = await async_client.get(f"{BASE}/roles/{role['id']}", headers=tenant.headers)
    assert response.json()["description"] == "Seats guests"


async def test_duplicate_role_name_is_rejected(
    async_client: AsyncClient, tenant, make_role
) -> None:
    await make_role("Busser")

    response = await async_client.post(
        f"{BASE}/roles", json={"name": "Busser"}, headers=tenant.headers
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Role 'Busser' already exists"


async def test_owner_type_cannot_be_created(async_client: AsyncClient, tenant) -> None:
    response = await async_client.post(
        f"{BASE}/roles", json={"name": "Co-owner", "role_type": "owner"}, headers=tenant.headers
    )

    assert response.status_code == 400


async def test_protected_roles_only_change_description(
    async_client: AsyncClient, tenant
) -> None:
    owner_url = f"{BASE}/roles/{tenant.owner_role_id}"

    response = await async_client.patch(
        owner_url, json={"name": "Boss"}, headers=tenant.headers
    )
    assert response.status_code == 400

    response = await async_client.patch(
        owner_url, json={"description": "Runs the place"}, headers=tenant.headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["description"] == "Runs the place"

    response = await async_client.delete(owner_url, headers=tenant.headers)
    assert response.status_code == 400


async def test_delete_role_cascades(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    host = await make_role("Greeter")
    lead = await make_role("Greeter Lead")
    permission = await make_permission("waitlist", "manage")
    member = uuid4()

    await async_client.put(
        f"{BASE}/roles/{host['id']}/permissions/{permission['id']}", headers=tenant.headers
    )
    response = await async_client.post(
        f"{BASE}/inheritance",
        json={"parent_role_id": lead["id"], "child_role_id": host["id"]},
        headers=tenant.headers,
    )
    assert response.status_code == 201, response.text
    response = await async_client.put(
        f"{BASE}/users/{member}/roles/{host['id']}", headers=tenant.headers
    )
    assert response.status_code == 200, response.text

    response = await async_client.delete(f"{BASE}/roles/{host['id']}", headers=tenant.headers)

    assert response.status_code == 200, response.text
    assert response.json() == {
        "role_id": host["id"],
        "grants_removed": 1,
        "edges_removed": 1,
        "assignments_removed": 1,
    }
    response = await async_client.get(f"{BASE}/roles/{host['id']}", headers=tenant.headers)
    assert response.status_code == 404


async def test_roles_are_scoped_to_tenant(
    async_client: AsyncClient, tenant, make_role, make_headers
) -> None:
    role = await make_role("Valet")
    other = await async_client.get(
        f"{BASE}/roles", headers=make_headers(uuid4(), tenant.owner_id)
    )

    assert other.status_code == 403
    response = await async_client.get(f"{BASE}/roles/{role['id']}", headers=tenant.headers)
    assert response.status_code == 200
