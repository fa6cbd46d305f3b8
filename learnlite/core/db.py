import logging

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from learnlite.core.config import DB_URL
from learnlite.models import Base

log = logging.getLogger(__name__)


def create_engine(db_url: str = DB_URL) -> AsyncEngine:
    """Creates the async engine. No connection is opened until first use."""
    return create_async_engine(db_url, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Claimed rows are read into plain snapshots, so nothing needs to survive a commit
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Connects to the database and creates any missing tables."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database at {engine.url!r}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise


async def close_db(engine: AsyncEngine) -> None:
    """Closes all database connections."""
    await engine.dispose()
    log.info("Database connections closed.")
