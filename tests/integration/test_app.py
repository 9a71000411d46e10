from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import AsyncClient

from rbac_api.core.principal import TENANT_ID_HEADER, USER_ID_HEADER

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def test_health_reports_database(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/health", headers={"X-Request-ID": "req-health-1"})

    assert response.status_code == 200, response.text
    assert response.headers["X-Request-ID"] == "req-health-1"
    payload = response.json()
    assert payload["status"] == "ok"
    assert any(component["status"] == "available" for component in payload["components"])


async def test_request_id_is_generated(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/health")

    assert response.headers.get("X-Request-ID")


async def test_missing_identity_is_unauthorized(async_client: AsyncClient, tenant) -> None:
    response = await async_client.get(
        f"{BASE}/roles", headers={TENANT_ID_HEADER: str(tenant.tenant_id)}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == f"Missing {USER_ID_HEADER} header"


async def test_malformed_identity_is_unauthorized(async_client: AsyncClient, tenant) -> None:
    response = await async_client.get(
        f"{BASE}/roles",
        headers={TENANT_ID_HEADER: "not-a-uuid", USER_ID_HEADER: str(tenant.owner_id)},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == f"Malformed {TENANT_ID_HEADER} header"


async def test_members_read_but_only_owners_write(async_client: AsyncClient, tenant) -> None:
    roles = (await async_client.get(f"{BASE}/roles", headers=tenant.headers)).json()
    waiter_role = next(role for role in roles if role["name"] == "Waiter")
    waiter = uuid4()
    await async_client.put(
        f"{BASE}/users/{waiter}/roles/{waiter_role['id']}", headers=tenant.headers
    )
    headers = tenant.headers_for(waiter)

    response = await async_client.get(f"{BASE}/roles", headers=headers)
    assert response.status_code == 200, response.text

    response = await async_client.post(f"{BASE}/roles", json={"name": "Shadow"}, headers=headers)
    assert response.status_code == 403

    response = await async_client.delete(f"{BASE}/roles/{uuid4()}", headers=headers)
    assert response.status_code == 403

    stranger = tenant.headers_for(uuid4())
    response = await async_client.get(f"{BASE}/roles", headers=stranger)
    assert response.status_code == 403


async def test_user_routes_take_user_from_path(async_client: AsyncClient, tenant) -> None:
    other = uuid4()

    response = await async_client.get(f"{BASE}/users/{other}/roles", headers=tenant.headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"user_id": str(other), "roles": []}

    response = await async_client.get(
        f"{BASE}/users/{other}/roles", headers={TENANT_ID_HEADER: str(tenant.tenant_id)}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == f"Missing {USER_ID_HEADER} header"

    response = await async_client.get(
        f"{BASE}/users/{tenant.owner_id}/effective-permissions", headers=tenant.headers
    )
    assert response.status_code == 200, response.text
