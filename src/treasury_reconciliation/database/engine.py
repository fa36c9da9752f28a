'''
Async engine for the treasury database.

The embedding application calls create_db_engine_and_session_factory() once at
startup and dispose_db_engine() at shutdown. Each ledger snapshot is read
through its own get_db_session() block.
'''
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker

from ..common.config import settings
from ..common.logger import log

engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

# Connection pool sizing for server databases. SQLite gets SQLAlchemy's defaults.
SERVER_POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_pre_ping": True,
}


def _pool_options(database_url: str) -> dict[str, Any]:
    if database_url.startswith("sqlite"):
        return {}
    return dict(SERVER_POOL_OPTIONS)


def create_db_engine_and_session_factory(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Builds the module-level engine and session factory.
    Without an explicit URL the configured one (prod or test) is used.

    Raises:
        RuntimeError: If no database URL is available at all.
    """
    global engine, AsyncSessionLocal

    database_url = database_url or settings.database_url
    if not database_url:
        log.critical("No database URL configured for the ledger provider.")
        raise RuntimeError("No database URL configured.")

    dialect = database_url.split("://", 1)[0]
    log.info(f"Creating treasury database engine ({dialect}).")
    try:
        engine = create_async_engine(database_url, echo=False, **_pool_options(database_url))
        AsyncSessionLocal = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except Exception as e:
        log.critical(f"Could not create the treasury database engine: {e}", exc_info=True)
        raise

    return engine


async def dispose_db_engine() -> None:
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        log.info("Treasury database engine disposed.")
    engine = None
    AsyncSessionLocal = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per unit of work: committed when the block exits cleanly,
    rolled back when it raises, closed either way.
    """
    if AsyncSessionLocal is None:
        log.error("get_db_session() called before create_db_engine_and_session_factory().")
        raise RuntimeError("Database session factory is not available.")

    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        log.error(f"Treasury database session rolled back: {e}")
        raise
    finally:
        await session.close()
