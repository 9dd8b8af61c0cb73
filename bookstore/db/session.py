"""Async Session Factory - provides async DB sessions for direct usage outside FastAPI.

Invariants:
    - Meant for scripts, migrations, and test fixtures
    - SQLite connections get foreign key enforcement switched on

Design Decisions:
    - Separate from infrastructure/database.py: this is a convenience for non-FastAPI contexts
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE unless PRAGMA foreign_keys is on per connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(
    database_url: str,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given database URL."""
    engine = create_async_engine(database_url, echo=False)
    enable_sqlite_foreign_keys(engine)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
