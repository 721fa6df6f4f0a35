"""
Database configuration and session management
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
import logging
from contextlib import asynccontextmanager

from app.config import settings
from app.core.exceptions import BookingConflictError, InternalError

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine; SQLite engines open every transaction with
    BEGIN IMMEDIATE so concurrent writers queue on the database lock
    """
    if database_url.startswith("sqlite"):
        new_engine = create_async_engine(
            database_url,
            echo=settings.DB_ECHO,
            poolclass=NullPool,
            **kwargs
        )
        enable_sqlite_write_locking(new_engine)
        return new_engine

    return create_async_engine(
        database_url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        poolclass=AsyncAdaptedQueuePool,
        **kwargs
    )


def enable_sqlite_write_locking(target: AsyncEngine) -> None:
    sync_engine = target.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# Create async engine
engine: AsyncEngine = create_engine_for_url(settings.DATABASE_URL)

# Create async session factory
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base
Base = declarative_base()


async def init_db():
    """
    Initialize database connections
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db():
    """
    Close database connections
    """
    await engine.dispose()
    logger.info("Database connections closed")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session with explicit transaction management
    Each service call must use explicit transaction boundaries
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def is_unique_violation(error: IntegrityError) -> bool:
    # asyncpg reports SQLSTATE 23505, SQLite only says so in the message
    orig = getattr(error, "orig", None)
    if getattr(orig, "sqlstate", None) == "23505":
        return True
    text = str(orig).lower()
    return "unique constraint" in text or "duplicate key" in text


class DatabaseManager:
    """
    Transaction handling shared by the booking services
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def transaction(self, session: AsyncSession):
        """
        All-or-nothing transaction scope; commits on exit, rolls back on error
        """
        if session.in_transaction():
            # Reads before the write scope (autobegin) join the same transaction
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                self.logger.error(f"Transaction rolled back: {type(e).__name__}: {e}")
                raise
            return

        try:
            async with session.begin():
                yield session
        except Exception as e:
            self.logger.error(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise

    @asynccontextmanager
    async def unique_transaction(self, session: AsyncSession, message: str, error_class=BookingConflictError):
        """
        Transaction scope that reports uniqueness violations as a conflict,
        a booking conflict unless another ConflictError subclass is given.
        Other integrity failures (foreign keys, NOT NULL) surface as 500.
        """
        try:
            async with self.transaction(session) as tx_session:
                yield tx_session
        except IntegrityError as e:
            if not is_unique_violation(e):
                self.logger.error(f"Integrity failure, batch rolled back: {e.orig}")
                raise InternalError("The request could not be stored") from e
            self.logger.warning(f"Uniqueness violation, batch rolled back: {e.orig}")
            raise error_class(message) from e


# Create global database manager
db_manager = DatabaseManager()
