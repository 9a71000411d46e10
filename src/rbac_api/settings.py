"""RBAC service settings (Pydantic v2 + pydantic-settings)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

# ---- Defaults ---------------------------------------------------------------

MODULE_DIR = Path(__file__).resolve().parent


def _detect_project_root() -> Path:
    """Pick the directory that holds alembic.ini + migrations."""

    candidates = [
        MODULE_DIR.parent.parent,  # source layout: <root>/src/rbac_api
        Path.cwd(),
    ]
    for candidate in candidates:
        if (candidate / "alembic.ini").exists() and (candidate / "migrations").exists():
            return candidate
    return candidates[0]


DEFAULT_PROJECT_ROOT = _detect_project_root()
DEFAULT_DATA_DIR = Path("./data")
DEFAULT_DB_FILENAME = "rbac.sqlite"
DEFAULT_ALEMBIC_INI = DEFAULT_PROJECT_ROOT / "alembic.ini"
DEFAULT_ALEMBIC_MIGRATIONS = DEFAULT_PROJECT_ROOT / "migrations"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


# ---- Helpers ----------------------------------------------------------------

def _resolve_path(value: Path | str | None, *, default: Path) -> Path:
    """Expand, absolutize, and resolve a configurable path."""

    if value in (None, ""):
        candidate = default
    elif isinstance(value, Path):
        candidate = value
    else:
        candidate = Path(str(value).strip())
    return candidate.expanduser().resolve()


# ---- Settings ---------------------------------------------------------------

class Settings(BaseSettings):
    """FastAPI settings loaded from RBAC_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RBAC_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Core
    app_name: str = "RBAC API"
    app_version: str = "0.3.0"
    api_docs_enabled: bool = False
    docs_url: str = "/docs"
    openapi_url: str = "/openapi.json"
    logging_level: str = "INFO"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = Field(8000, ge=1, le=65535)

    # Paths
    data_dir: Path = Field(default=DEFAULT_DATA_DIR)
    alembic_ini_path: Path = Field(default=DEFAULT_ALEMBIC_INI)
    alembic_migrations_dir: Path = Field(default=DEFAULT_ALEMBIC_MIGRATIONS)

    # Database
    database_dsn: str | None = None
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)  # ignored by sqlite
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)

    # ---- Validators ----

    @field_validator("logging_level", mode="before")
    @classmethod
    def _v_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).upper()
        if s and s not in _LOG_LEVELS:
            raise ValueError(f"RBAC_LOGGING_LEVEL must be one of {sorted(_LOG_LEVELS)}")
        return s or "INFO"

    @field_validator("database_dsn", mode="before")
    @classmethod
    def _v_dsn(cls, v: Any) -> str | None:
        if v in (None, ""):
            return None
        return str(v).strip()

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.data_dir = _resolve_path(self.data_dir, default=DEFAULT_DATA_DIR)
        self.alembic_ini_path = _resolve_path(self.alembic_ini_path, default=DEFAULT_ALEMBIC_INI)
        self.alembic_migrations_dir = _resolve_path(
            self.alembic_migrations_dir, default=DEFAULT_ALEMBIC_MIGRATIONS
        )

        if not self.database_dsn:
            sqlite = self.data_dir / "db" / DEFAULT_DB_FILENAME
            self.database_dsn = f"sqlite+aiosqlite:///{sqlite.as_posix()}"

        url = make_url(self.database_dsn)
        if url.get_backend_name() == "sqlite" and url.drivername == "sqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        self.database_dsn = url.render_as_string(hide_password=False)
        return self


@lru_cache(maxsize=1)
def _build_settings() -> Settings:
    return Settings()


def get_settings() -> Settings:
    return _build_settings()


def reload_settings() -> Settings:
    _build_settings.cache_clear()
    return _build_settings()


__all__ = [
    "DEFAULT_DB_FILENAME",
    "Settings",
    "get_settings",
    "reload_settings",
]
