from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def _grant(client: AsyncClient, tenant, role: dict, permission: dict, **body) -> None:
    response = await client.put(
        f"{BASE}/roles/{role['id']}/permissions/{permission['id']}",
        json=body or None,
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text


async def test_role_resolution_marks_inherited_permissions(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    seat = await make_permission("guests", "seat")
    comp = await make_permission("checks", "comp")
    await _grant(async_client, tenant, host, seat)
    await _grant(async_client, tenant, lead, comp)
    await async_client.post(
        f"{BASE}/inheritance",
        json={"parent_role_id": lead["id"], "child_role_id": host["id"]},
        headers=tenant.headers,
    )

    response = await async_client.get(
        f"{BASE}/roles/{lead['id']}/effective-permissions", headers=tenant.headers
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["subject_id"] == lead["id"]
    resolved = {entry["key"]: entry for entry in payload["permissions"]}
    assert set(resolved) == {seat["key"], comp["key"]}
    assert resolved[comp["key"]]["is_inherited"] is False
    assert resolved[seat["key"]]["is_inherited"] is True
    assert resolved[seat["key"]]["source_role_name"] == "Host"


async def test_owner_resolves_to_whole_catalog(async_client: AsyncClient, tenant) -> None:
    catalog = await async_client.get(f"{BASE}/permissions", headers=tenant.headers)

    response = await async_client.get(
        f"{BASE}/users/{tenant.owner_id}/effective-permissions", headers=tenant.headers
    )

    assert response.status_code == 200, response.text
    keys = [entry["key"] for entry in response.json()["permissions"]]
    assert keys == [entry["key"] for entry in catalog.json()]


async def test_user_without_roles_has_no_permissions(async_client: AsyncClient, tenant) -> None:
    response = await async_client.get(
        f"{BASE}/users/{uuid4()}/effective-permissions", headers=tenant.headers
    )

    assert response.status_code == 200, response.text
    assert response.json()["permissions"] == []


async def test_permission_check_honours_conditions(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Patio Server")
    void = await make_permission("orders", "void")
    await _grant(
        async_client,
        tenant,
        role,
        void,
        condition={"field": "order.section", "operator": "=", "value": "patio"},
    )
    user = uuid4()
    await async_client.put(f"{BASE}/users/{user}/roles/{role['id']}", headers=tenant.headers)
    url = f"{BASE}/users/{user}/permission-check"

    allowed = await async_client.post(
        url,
        json={"permission_key": void["key"], "context": {"order": {"section": "patio"}}},
        headers=tenant.headers,
    )
    denied = await async_client.post(
        url,
        json={"permission_key": void["key"], "context": {"order": {"section": "bar"}}},
        headers=tenant.headers,
    )
    missing = await async_client.post(
        url, json={"permission_key": void["key"]}, headers=tenant.headers
    )

    assert allowed.status_code == 200, allowed.text
    assert allowed.json() == {
        "user_id": str(user),
        "permission_key": void["key"],
        "allowed": True,
    }
    assert denied.json()["allowed"] is False
    assert missing.json()["allowed"] is False


async def test_changeset_commit(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Expo")
    kept = await make_permission("tickets", "view")
    dropped = await make_permission("tickets", "bump")
    added = await make_permission("tickets", "recall")
    await _grant(async_client, tenant, role, kept)
    await _grant(async_client, tenant, role, dropped)

    response = await async_client.post(
        f"{BASE}/roles/{role['id']}/permissions/batch",
        json={
            "changes": [
                {"permission_id": added["id"], "action": "add"},
                {"permission_id": dropped["id"], "action": "remove"},
                {"permission_id": kept["id"], "action": "add"},
            ]
        },
        headers=tenant.headers,
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["to_add"] == [added["id"]]
    assert payload["to_remove"] == [dropped["id"]]
    assert payload["applied"] == 2
    assert payload["errors"] == []

    listed = await async_client.get(
        f"{BASE}/roles/{role['id']}/permissions", headers=tenant.headers
    )
    assert {grant["permission_id"] for grant in listed.json()} == {kept["id"], added["id"]}


async def test_changeset_reports_failed_toggles(
    async_client: AsyncClient, tenant, make_role
) -> None:
    role = await make_role("Expo")
    ghost = str(uuid4())

    response = await async_client.post(
        f"{BASE}/roles/{role['id']}/permissions/batch",
        json={"changes": [{"permission_id": ghost, "action": "add"}]},
        headers=tenant.headers,
    )

    assert response.status_code == 207, response.text
    assert response.json()["applied"] == 0
    assert response.json()["errors"] == [f"{ghost}: Permission not found"]
