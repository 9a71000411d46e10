from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def test_catalog_lists_seeded_permissions(async_client: AsyncClient, tenant) -> None:
    response = await async_client.get(f"{BASE}/permissions", headers=tenant.headers)

    assert response.status_code == 200, response.text
    keys = [entry["key"] for entry in response.json()]
    assert "orders.view" in keys
    assert keys == sorted(keys)


async def test_create_update_delete_permission(
    async_client: AsyncClient, tenant, make_permission
) -> None:
    created = await make_permission("coupons", "redeem")

    response = await async_client.patch(
        f"{BASE}/permissions/{created['id']}",
        json={"description": "Redeem a coupon at checkout"},
        headers=tenant.headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["description"] == "Redeem a coupon at checkout"
    assert response.json()["key"] == created["key"]

    response = await async_client.delete(
        f"{BASE}/permissions/{created['id']}", headers=tenant.headers
    )
    assert response.status_code == 204, response.text

    response = await async_client.delete(
        f"{BASE}/permissions/{created['id']}", headers=tenant.headers
    )
    assert response.status_code == 404


async def test_duplicate_key_is_rejected(
    async_client: AsyncClient, tenant, make_permission
) -> None:
    created = await make_permission()

    response = await async_client.post(
        f"{BASE}/permissions",
        json={
            "key": created["key"],
            "name": "Another name",
            "resource": created["resource"],
            "action": created["action"],
        },
        headers=tenant.headers,
    )

    assert response.status_code == 422
    assert "already exists" in response.json()["detail"]


async def test_granted_permission_cannot_be_deleted(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Sommelier")
    permission = await make_permission("wine", "pour")
    response = await async_client.put(
        f"{BASE}/roles/{role['id']}/permissions/{permission['id']}", headers=tenant.headers
    )
    assert response.status_code == 200, response.text

    response = await async_client.delete(
        f"{BASE}/permissions/{permission['id']}", headers=tenant.headers
    )

    assert response.status_code == 409
    assert response.json()["detail"] == (
        f"Permission '{permission['key']}' is granted to 1 role(s) and cannot be deleted"
    )


async def test_batch_reports_items_that_failed(
    async_client: AsyncClient, tenant, make_role, make_permission
) -> None:
    role = await make_role("Barback")
    in_use = await make_permission("kegs", "swap")
    spare = await make_permission("glasses", "polish")
    await async_client.put(
        f"{BASE}/roles/{role['id']}/permissions/{in_use['id']}", headers=tenant.headers
    )
    new_key = f"ice-{uuid4().hex[:8]}.refill"

    response = await async_client.post(
        f"{BASE}/permissions/batch",
        json={
            "creates": [
                {"key": new_key, "name": "Refill ice", "resource": "ice", "action": "refill"}
            ],
            "updates": [{"id": spare["id"], "name": "Polish glassware"}],
            "deletes": [in_use["id"]],
        },
        headers=tenant.headers,
    )

    assert response.status_code == 207, response.text
    payload = response.json()
    assert payload["success"] is False
    assert payload["results"] == {"created": 1, "updated": 1, "deleted": 0}
    assert payload["errors"] == [f"{in_use['id']}: in use, cannot delete"]


async def test_batch_rejects_duplicate_keys(async_client: AsyncClient, tenant) -> None:
    key = f"napkins-{uuid4().hex[:8]}.fold"
    draft = {"key": key, "name": "Fold napkins", "resource": "napkins", "action": "fold"}

    response = await async_client.post(
        f"{BASE}/permissions/batch",
        json={"creates": [draft, {**draft, "name": "Fold napkins again"}]},
        headers=tenant.headers,
    )

    assert response.status_code == 207, response.text
    payload = response.json()
    assert payload["results"]["created"] == 0
    assert payload["errors"] == [f"{key}: duplicate key '{key}'"] * 2


async def test_clean_batch_returns_ok(async_client: AsyncClient, tenant, make_permission) -> None:
    stale = await make_permission("menus", "print")

    response = await async_client.post(
        f"{BASE}/permissions/batch",
        json={"deletes": [stale["id"]]},
        headers=tenant.headers,
    )

    assert response.status_code == 200, response.text
    assert response.json() == {
        "success": True,
        "results": {"created": 0, "updated": 0, "deleted": 1},
        "errors": [],
    }


async def test_batch_reuses_keys_freed_by_deletes(
    async_client: AsyncClient, tenant, make_permission
) -> None:
    retired = await make_permission("tabs", "close")
    renamed = await make_permission("tabs", "split")
    moved = await make_permission("tabs", "merge")

    response = await async_client.post(
        f"{BASE}/permissions/batch",
        json={
            "creates": [
                {
                    "key": retired["key"],
                    "name": "Close tab",
                    "resource": retired["resource"],
                    "action": "close",
                }
            ],
            "updates": [{"id": moved["id"], "key": renamed["key"]}],
            "deletes": [retired["id"], renamed["id"]],
        },
        headers=tenant.headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["results"] == {"created": 1, "updated": 1, "deleted": 2}

    catalog = (await async_client.get(f"{BASE}/permissions", headers=tenant.headers)).json()
    by_key = {item["key"]: item["id"] for item in catalog}
    assert by_key[renamed["key"]] == moved["id"]
    assert by_key[retired["key"]] != retired["id"]
