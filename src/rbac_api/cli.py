"""`rbac-api` command line: migrations, seeding, tenant bootstrap and the server."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar
from uuid import UUID

import typer

from rbac_api.common.logging import setup_logging
from rbac_api.db import DatabaseConfig, db, session_scope
from rbac_api.db.migrations import run_migrations
from rbac_api.settings import get_settings

T = TypeVar("T")

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="RBAC API management commands.",
)


def _run(work: Callable[[], Awaitable[T]]) -> T:
    settings = get_settings()
    setup_logging(settings)

    async def _main() -> T:
        db.init(DatabaseConfig.from_settings(settings))
        try:
            return await work()
        finally:
            await db.dispose()

    return asyncio.run(_main())


@app.command(help="Apply database migrations.")
def migrate(
    revision: Annotated[str, typer.Option("--revision", help="Target revision.")] = "head",
) -> None:
    settings = get_settings()
    setup_logging(settings)
    run_migrations(settings, revision=revision)
    typer.echo(f"database upgraded to {revision}")


@app.command(name="seed-permissions", help="Install the default permission catalog.")
def seed_permissions() -> None:
    from rbac_api.features.permissions.service import PermissionsService

    async def work() -> int:
        async with session_scope() as session:
            return await PermissionsService(session=session).seed_defaults()

    added = _run(work)
    typer.echo(f"{added} permission(s) added")


@app.command(name="bootstrap-tenant", help="Create the owner and system roles for a tenant.")
def bootstrap_tenant(
    tenant_id: Annotated[UUID, typer.Argument(help="Tenant identifier.")],
    owner_user_id: Annotated[UUID, typer.Argument(help="User who becomes the tenant owner.")],
) -> None:
    from rbac_api.features.tenants.service import TenantBootstrapService

    async def work():
        async with session_scope() as session:
            service = TenantBootstrapService(session=session, tenant_id=tenant_id)
            return await service.bootstrap(owner_user_id=owner_user_id)

    result = _run(work)
    typer.echo(f"owner role: {result.owner_role_id}")
    typer.echo(f"roles created: {', '.join(result.roles_created) or 'none'}")
    typer.echo(f"owner assigned: {'yes' if result.owner_assigned else 'already'}")


@app.command(name="effective-permissions", help="Print a user's effective permissions.")
def effective_permissions(
    tenant_id: Annotated[UUID, typer.Argument(help="Tenant identifier.")],
    user_id: Annotated[UUID, typer.Argument(help="User identifier.")],
) -> None:
    from rbac_api.features.effective.service import EffectivePermissionsService

    async def work():
        async with session_scope() as session:
            service = EffectivePermissionsService(session=session, tenant_id=tenant_id)
            return await service.resolve_for_user(user_id=user_id)

    permissions = _run(work)
    if not permissions:
        typer.echo("no permissions")
        return
    for permission in permissions:
        origin = "inherited" if permission.is_inherited else "direct"
        line = f"{permission.key}\t{origin} via {permission.source_role_name}"
        if permission.condition is not None:
            cond = permission.condition
            line += f"\twhen {cond.field} {cond.operator.value} {cond.value!r}"
        typer.echo(line)


@app.command(help="Run the API with uvicorn.")
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port.")] = None,
    reload: Annotated[bool, typer.Option("--reload/--no-reload")] = False,
) -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "rbac_api.main:app",
        host=host or settings.server_host,
        port=port or settings.server_port,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    app()
