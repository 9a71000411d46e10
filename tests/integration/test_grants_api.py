from __future__ import annotations

import pytest
from httpx import AsyncClient

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def test_grant_and_revoke(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Host")
    permission = await make_permission("waitlist", "edit")
    url = f"{BASE}/roles/{role['id']}/permissions/{permission['id']}"
    grants_url = f"{BASE}/roles/{role['id']}/permissions"

    first = await async_client.put(url, headers=tenant.headers)
    again = await async_client.put(url, headers=tenant.headers)

    assert first.status_code == 200, first.text
    assert again.json()["id"] == first.json()["id"]
    assert first.json()["permission_key"] == permission["key"]
    assert first.json()["condition"] is None

    listed = await async_client.get(grants_url, headers=tenant.headers)
    assert [grant["permission_id"] for grant in listed.json()] == [permission["id"]]

    assert (await async_client.delete(url, headers=tenant.headers)).status_code == 204
    assert (await async_client.delete(url, headers=tenant.headers)).status_code == 204
    listed = await async_client.get(grants_url, headers=tenant.headers)
    assert listed.json() == []


async def test_owner_role_takes_no_grants(
    async_client: AsyncClient, tenant, make_permission
) -> None:
    permission = await make_permission()

    response = await async_client.put(
        f"{BASE}/roles/{tenant.owner_role_id}/permissions/{permission['id']}",
        headers=tenant.headers,
    )

    assert response.status_code == 400


async def test_unknown_permission_is_not_found(
    async_client: AsyncClient, tenant, make_role
) -> None:
    role = await make_role("Host")

    response = await async_client.put(
        f"{BASE}/roles/{role['id']}/permissions/00000000-0000-0000-0000-000000000000",
        headers=tenant.headers,
    )

    assert response.status_code == 404


async def test_grant_conditions(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Section Waiter")
    permission = await make_permission("orders", "void")
    url = f"{BASE}/roles/{role['id']}/permissions/{permission['id']}"

    response = await async_client.put(
        url,
        json={"condition": {"field": "order.section", "operator": "in", "value": ["patio"]}},
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["condition"] == {
        "field": "order.section",
        "operator": "in",
        "value": ["patio"],
    }

    response = await async_client.put(
        f"{url}/condition",
        json={"field": "order.section", "operator": "=", "value": "bar"},
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["condition"]["operator"] == "="

    response = await async_client.put(
        f"{url}/condition",
        json={"field": "order.section", "operator": "in", "value": "bar"},
        headers=tenant.headers,
    )
    assert response.status_code == 422

    response = await async_client.delete(f"{url}/condition", headers=tenant.headers)
    assert response.status_code == 200, response.text
    assert response.json()["condition"] is None


async def test_condition_requires_existing_grant(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Host")
    permission = await make_permission()

    response = await async_client.put(
        f"{BASE}/roles/{role['id']}/permissions/{permission['id']}/condition",
        json={"field": "table", "operator": "=", "value": 4},
        headers=tenant.headers,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Permission is not granted to this role"
