"""
Database engine, session factory and transaction boundaries

A single Database handle is created at startup and passed into every
component; nothing in the package reaches for a module-level pool.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import Settings, settings as default_settings
from .exceptions import DatabaseError

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()

# Failures the storage layer can raise mid-operation
STORAGE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class Database:
    """
    Async SQLAlchemy engine plus session factory

    transaction() is the only way components touch storage: one session,
    one transaction, committed on normal exit and rolled back on every
    exception path before the connection goes back to the pool.
    """

    def __init__(self, url: Optional[str] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.url = url or self.config.database_url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.config.debug}

        if self.url.startswith("sqlite"):
            # SQLite serializes writers itself; give waiting writers time
            options["connect_args"] = {"timeout": self.config.db_pool_timeout}
            return options

        options.update(
            pool_size=self.config.db_pool_size,
            max_overflow=self.config.db_pool_max_overflow,
            pool_timeout=self.config.db_pool_timeout,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        if "+asyncpg" in self.url:
            options["connect_args"] = {
                "command_timeout": self.config.db_command_timeout,
                "server_settings": {"application_name": "ecoduino"},
            }
        return options

    async def initialize(self):
        """Create engine and session factory"""
        if self.engine is not None:
            return

        logger.info("Creating database engine...")
        self.engine = create_async_engine(self.url, **self._engine_options())
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine ready: {self.get_stats()}")

    async def create_all(self):
        """Create tables that do not exist yet"""
        # Registers every table on Base.metadata
        from . import models  # noqa: F401

        try:
            async with self._require_engine().begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to create tables: {e}")
            raise DatabaseError(f"Cannot create tables: {e}") from e
        logger.info("Database tables created")

    async def close(self):
        """Dispose engine and all pooled connections"""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database engine disposed")

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise DatabaseError("Database not initialized")
        return self.engine

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Run a unit of work in one transaction

        Domain exceptions raised inside the block propagate unchanged after
        the rollback; storage failures are re-raised as DatabaseError.
        """
        self._require_engine()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except STORAGE_ERRORS as e:
            logger.error(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise DatabaseError(f"Storage failure: {type(e).__name__}") from e

    @asynccontextmanager
    async def scoped(self, session: Optional[AsyncSession] = None) -> AsyncGenerator[AsyncSession, None]:
        """Join the caller's transaction when given one, otherwise open a new one"""
        if session is not None:
            yield session
        else:
            async with self.transaction() as new_session:
                yield new_session

    async def ping(self) -> bool:
        """Round-trip a trivial query"""
        async with self.transaction() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    def get_stats(self) -> Dict[str, Any]:
        """Get pool statistics"""
        if self.engine is None:
            return {"status": "not_initialized"}

        pool = self.engine.pool
        return {
            "dialect": self.engine.dialect.name,
            "pool": pool.__class__.__name__,
            "status": pool.status(),
        }
