"""
Database connection factory.

Supports both SQLite (dev/tests) and PostgreSQL (production).

Every stake placement is one transaction that must see the effects of
any stake committed before it on the same bet. PostgreSQL gets that from
row locks taken by the repositories. SQLite has no row locks, so each
transaction is opened with BEGIN IMMEDIATE, which takes the database
write lock up front.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import DatabaseType, settings
from config.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseConnection:
    """Manages database connection and session factory."""

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._database_type: DatabaseType = settings.database_type

    def _get_connection_url(self, url: str) -> str:
        """Get the async connection URL for the configured backend."""
        if url.startswith("sqlite:///"):
            db_path = url.replace("sqlite:///", "")
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            return url.replace("sqlite:///", "sqlite+aiosqlite:///")
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://")
        return url

    def _connect_args(self) -> dict:
        """Backend-specific lock wait bounds."""
        if self._database_type == DatabaseType.SQLITE:
            return {"timeout": settings.lock_timeout_ms / 1000}
        return {"server_settings": {"lock_timeout": str(settings.lock_timeout_ms)}}

    async def initialize(self, database_url: Optional[str] = None) -> None:
        """
        Initialize the database connection and create tables.

        Args:
            database_url: Overrides settings.database_url (used by tests and scripts)
        """
        raw_url = database_url or settings.database_url
        if raw_url.startswith("sqlite"):
            self._database_type = DatabaseType.SQLITE
        elif raw_url.startswith("postgresql"):
            self._database_type = DatabaseType.POSTGRESQL

        url = self._get_connection_url(raw_url)
        logger.info("Initializing database", url=url.split("@")[-1])  # Don't log credentials

        self._engine = create_async_engine(
            url,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
            connect_args=self._connect_args(),
        )

        if self._database_type == DatabaseType.SQLITE:

            @event.listens_for(self._engine.sync_engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                # Let SQLAlchemy emit BEGIN itself, see do_begin below
                dbapi_connection.isolation_level = None
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            @event.listens_for(self._engine.sync_engine, "begin")
            def do_begin(conn):
                conn.exec_driver_sql("BEGIN IMMEDIATE")

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        await self._create_tables()
        logger.info("Database initialized successfully")

    async def _create_tables(self) -> None:
        """Create all tables if they don't exist."""
        from stakebook.database.schema import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @property
    def database_type(self) -> DatabaseType:
        return self._database_type

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session as a unit of work.

        Commits when the block exits normally, rolls back and re-raises
        on any exception.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close the database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection closed")


# Global database instance
db = DatabaseConnection()
