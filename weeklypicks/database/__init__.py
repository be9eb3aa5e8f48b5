"""Database module: SQLAlchemy async engine, sessions and ORM models."""

from .connection import (
    bind_engine,
    close_database,
    create_all_tables,
    get_async_database_url,
    get_engine,
    get_session,
    init_database,
    init_sqlalchemy_engine,
)
from .orm import (
    Base,
    ImportAudit,
    PicksHistory,
    StockPick,
    WeeklyReport,
)


__all__ = [
    "Base",
    "ImportAudit",
    "PicksHistory",
    "StockPick",
    "WeeklyReport",
    "bind_engine",
    "close_database",
    "create_all_tables",
    "get_async_database_url",
    "get_engine",
    "get_session",
    "init_database",
    "init_sqlalchemy_engine",
]
