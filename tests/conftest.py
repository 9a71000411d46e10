"""Shared pytest fixtures for the RBAC API tests."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from alembic import command
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from rbac_api.core.principal import TENANT_ID_HEADER, USER_ID_HEADER
from rbac_api.db import session_scope
from rbac_api.db.migrations import alembic_config
from rbac_api.features.tenants.service import TenantBootstrapService
from rbac_api.main import create_app
from rbac_api.settings import reload_settings

_ENV_VARS = ("RBAC_DATABASE_DSN", "RBAC_DATA_DIR", "RBAC_LOGGING_LEVEL")


@pytest.fixture(scope="session")
def _database_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a file-backed SQLite database URL for the test session."""

    db_path = tmp_path_factory.mktemp("rbac-db") / "rbac.sqlite"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture(scope="session", autouse=True)
def _configure_database(
    _database_url: str,
    tmp_path_factory: pytest.TempPathFactory,
) -> Iterator[None]:
    """Apply Alembic migrations against the ephemeral test database."""

    os.environ["RBAC_DATABASE_DSN"] = _database_url
    os.environ["RBAC_DATA_DIR"] = str(tmp_path_factory.mktemp("rbac-data"))
    os.environ["RBAC_LOGGING_LEVEL"] = "DEBUG"
    settings = reload_settings()

    config = alembic_config(settings)
    command.upgrade(config, "head")

    yield

    reload_settings()
    for env_var in _ENV_VARS:
        os.environ.pop(env_var, None)


@pytest.fixture(scope="session")
def app(_configure_database: None) -> FastAPI:
    """Return an application instance for integration-style tests."""

    return create_app()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI app."""

    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


def principal_headers(tenant_id: UUID, user_id: UUID) -> dict[str, str]:
    return {TENANT_ID_HEADER: str(tenant_id), USER_ID_HEADER: str(user_id)}


@dataclass(frozen=True)
class TenantFixture:
    tenant_id: UUID
    owner_id: UUID
    owner_role_id: UUID

    @property
    def headers(self) -> dict[str, str]:
        return principal_headers(self.tenant_id, self.owner_id)

    def headers_for(self, user_id: UUID) -> dict[str, str]:
        return principal_headers(self.tenant_id, user_id)


@pytest_asyncio.fixture()
async def tenant(async_client: AsyncClient) -> TenantFixture:
    """Bootstrap a fresh tenant whose owner is a new random user."""

    tenant_id = uuid4()
    owner_id = uuid4()
    async with session_scope() as session:
        service = TenantBootstrapService(session=session, tenant_id=tenant_id)
        result = await service.bootstrap(owner_user_id=owner_id)
    return TenantFixture(
        tenant_id=tenant_id,
        owner_id=owner_id,
        owner_role_id=result.owner_role_id,
    )


@pytest.fixture()
def make_headers():
    return principal_headers


@pytest.fixture()
def make_role(async_client: AsyncClient, tenant: TenantFixture):
    """Create a custom role in the tenant through the API and return its payload."""

    async def _make(name: str, **fields) -> dict:
        response = await async_client.post(
            "/api/v1/rbac/roles",
            json={"name": name, **fields},
            headers=tenant.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture()
def make_permission(async_client: AsyncClient, tenant: TenantFixture):
    """Create a catalog permission with a unique key and return its payload."""

    async def _make(resource: str = "widgets", action: str = "view") -> dict:
        suffix = uuid4().hex[:8]
        response = await async_client.post(
            "/api/v1/rbac/permissions",
            json={
                "key": f"{resource}-{suffix}.{action}",
                "name": f"{action.title()} {resource} {suffix}",
                "resource": f"{resource}-{suffix}",
                "action": action,
            },
            headers=tenant.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make
