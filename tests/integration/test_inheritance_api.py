from __future__ import annotations

import asyncio
from uuid import UUID

import pytest
from httpx import AsyncClient

from rbac_api.core.errors import CycleError
from rbac_api.db import session_scope
from rbac_api.features.inheritance.service import InheritanceService

BASE = "/api/v1/rbac"

pytestmark = pytest.mark.asyncio


async def _inherit(client: AsyncClient, tenant, parent: dict, child: dict):
    return await client.post(
        f"{BASE}/inheritance",
        json={"parent_role_id": parent["id"], "child_role_id": child["id"]},
        headers=tenant.headers,
    )


async def test_edge_is_idempotent(async_client: AsyncClient, tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")

    first = await _inherit(async_client, tenant, lead, host)
    second = await _inherit(async_client, tenant, lead, host)

    assert first.status_code == 201, first.text
    assert second.status_code == 201, second.text
    assert first.json()["id"] == second.json()["id"]

    response = await async_client.get(f"{BASE}/inheritance", headers=tenant.headers)
    assert len(response.json()) == 1


async def test_cycle_is_rejected(async_client: AsyncClient, tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    runner = await make_role("Runner")
    assert (await _inherit(async_client, tenant, lead, host)).status_code == 201
    assert (await _inherit(async_client, tenant, host, runner)).status_code == 201

    response = await _inherit(async_client, tenant, runner, lead)

    assert response.status_code == 409
    assert response.json()["detail"] == (
        "'Runner' cannot inherit from 'Floor Lead': this would create a cycle"
    )

    response = await _inherit(async_client, tenant, host, host)
    assert response.status_code == 409


async def test_cycle_check_does_not_write(async_client: AsyncClient, tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    await _inherit(async_client, tenant, lead, host)

    response = await async_client.get(
        f"{BASE}/inheritance/cycle-check",
        params={"parent_role_id": host["id"], "child_role_id": lead["id"]},
        headers=tenant.headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["would_create_cycle"] is True
    edges = (await async_client.get(f"{BASE}/inheritance", headers=tenant.headers)).json()
    assert len(edges) == 1


async def test_owner_role_stays_out_of_inheritance(
    async_client: AsyncClient, tenant, make_role
) -> None:
    host = await make_role("Host")
    owner = {"id": str(tenant.owner_role_id)}

    response = await _inherit(async_client, tenant, host, owner)

    assert response.status_code == 400


async def test_tree_and_children(async_client: AsyncClient, tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    runner = await make_role("Runner")
    await _inherit(async_client, tenant, lead, runner)
    await _inherit(async_client, tenant, lead, host)

    response = await async_client.get(
        f"{BASE}/roles/{lead['id']}/children", headers=tenant.headers
    )
    assert response.status_code == 200, response.text
    assert [role["name"] for role in response.json()] == ["Host", "Runner"]

    response = await async_client.get(f"{BASE}/inheritance/tree", headers=tenant.headers)
    assert response.status_code == 200, response.text
    nodes = [
        (node["role"]["name"], node["depth"])
        for node in response.json()
        if node["role"]["name"] in {"Floor Lead", "Host", "Runner"}
    ]
    assert nodes == [("Floor Lead", 0), ("Host", 1), ("Runner", 1)]


async def test_remove_edge(async_client: AsyncClient, tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    await _inherit(async_client, tenant, lead, host)
    url = f"{BASE}/inheritance/{lead['id']}/{host['id']}"

    assert (await async_client.delete(url, headers=tenant.headers)).status_code == 204
    assert (await async_client.delete(url, headers=tenant.headers)).status_code == 204
    edges = (await async_client.get(f"{BASE}/inheritance", headers=tenant.headers)).json()
    assert edges == []


async def _add_in_own_session(tenant_id: UUID, parent: dict, child: dict) -> None:
    async with session_scope() as session:
        service = InheritanceService(session=session, tenant_id=tenant_id)
        await service.add_edge(parent_role_id=UUID(parent["id"]), child_role_id=UUID(child["id"]))


async def test_concurrent_edges_cannot_close_a_cycle(
    async_client: AsyncClient, tenant, make_role
) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    runner = await make_role("Runner")
    assert (await _inherit(async_client, tenant, lead, host)).status_code == 201

    outcomes = await asyncio.gather(
        _add_in_own_session(tenant.tenant_id, host, runner),
        _add_in_own_session(tenant.tenant_id, runner, lead),
        return_exceptions=True,
    )

    assert sum(outcome is None for outcome in outcomes) == 1, outcomes
    assert sum(isinstance(outcome, CycleError) for outcome in outcomes) == 1, outcomes

    response = await async_client.get(f"{BASE}/inheritance", headers=tenant.headers)
    assert len(response.json()) == 2


async def test_added_edge_is_visible_to_other_sessions_at_once(tenant, make_role) -> None:
    lead = await make_role("Floor Lead")
    host = await make_role("Host")
    lead_id, host_id = UUID(lead["id"]), UUID(host["id"])

    async with session_scope() as first, session_scope() as second:
        writer = InheritanceService(session=first, tenant_id=tenant.tenant_id)
        reader = InheritanceService(session=second, tenant_id=tenant.tenant_id)

        await writer.add_edge(parent_role_id=lead_id, child_role_id=host_id)

        assert await reader.would_create_cycle(parent_role_id=host_id, child_role_id=lead_id)
