import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.errors import StoreUnavailable
from src.load_secrets import db_backend
from src.models.schemas import Base

if db_backend == "sqlite":
    from src.create_sqlite_engine import engine
else:
    from src.create_postgres_engine import engine

logger = logging.getLogger(__name__)

STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

# Session factory for the configured engine.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    expire_on_commit=False,
    bind=engine,
)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Build a session factory with the same options as ``Session`` for another engine."""
    return async_sessionmaker(
        autocommit=False,
        class_=AsyncSession,
        autoflush=True,
        expire_on_commit=False,
        bind=bind,
    )


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create table if not exists"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def transaction(session_factory: async_sessionmaker = Session) -> AsyncIterator[AsyncSession]:
    """Open one session and one transaction for the duration of the block.

    The transaction commits when the block exits normally and rolls back on any
    exception, including business-rule errors raised by the caller. The session
    is closed on every exit path. Connection-level failures are re-raised as
    ``StoreUnavailable``.

    Args:
        session_factory (async_sessionmaker): Factory bound to the target engine

    Yields:
        AsyncSession: Session with an open transaction
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except STORE_ERRORS as e:
        logger.error(f"Store unavailable: {e}")
        raise StoreUnavailable(str(e)) from e


@asynccontextmanager
async def read_session(session_factory: async_sessionmaker = Session) -> AsyncIterator[AsyncSession]:
    """Open a session for reads only; nothing is committed.

    Connection-level failures are re-raised as ``StoreUnavailable``, like in
    ``transaction()``.
    """
    try:
        async with session_factory() as session:
            yield session
    except STORE_ERRORS as e:
        logger.error(f"Store unavailable: {e}")
        raise StoreUnavailable(str(e)) from e
