"""Programmatic Alembic runner used by the CLI and the test suite."""

from __future__ import annotations

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

from rbac_api.settings import Settings, get_settings

from .database import build_sync_url, ensure_sqlite_parent_dir

__all__ = ["alembic_config", "run_migrations"]


def alembic_config(settings: Settings | None = None) -> Config:
    resolved = settings or get_settings()
    alembic_ini = resolved.alembic_ini_path
    if not alembic_ini.exists():
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(resolved.alembic_migrations_dir))
    config.set_main_option("sqlalchemy.url", build_sync_url(resolved.database_dsn))
    # Logging is owned by setup_logging(); keep alembic.ini from replacing it.
    config.attributes["configure_logger"] = False
    return config


def run_migrations(settings: Settings | None = None, *, revision: str = "head") -> None:
    resolved = settings or get_settings()
    url = make_url(resolved.database_dsn)
    if url.get_backend_name() == "sqlite":
        ensure_sqlite_parent_dir(url)
    command.upgrade(alembic_config(resolved), revision)
