import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hackerchess.core.config import Settings
from hackerchess.db.base import Base

# registers every table on Base.metadata
from hackerchess.models import game, session, user  # noqa: F401

log = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # ON DELETE CASCADE is a no-op in SQLite unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    url = settings.database_url
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=False,
            connect_args={"timeout": 30},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        connect_args={"timeout": 10},
        pool_timeout=settings.db_pool_timeout,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables; safe to run on every startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Tables created (or already exist).")
