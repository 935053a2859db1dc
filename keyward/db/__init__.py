"""Database layer."""

from keyward.db.session import (
    close_db,
    create_engine,
    create_session_factory,
    create_tables,
    get_async_session,
    get_session_dependency,
    get_session_factory,
    init_db,
)

__all__ = [
    "close_db",
    "create_engine",
    "create_session_factory",
    "create_tables",
    "get_async_session",
    "get_session_dependency",
    "get_session_factory",
    "init_db",
]
