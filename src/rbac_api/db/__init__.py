from .base import NAMING_CONVENTION, Base, metadata
from .database import Database, DatabaseConfig, db, get_db_session, session_scope

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "Database",
    "DatabaseConfig",
    "db",
    "get_db_session",
    "metadata",
    "session_scope",
]
