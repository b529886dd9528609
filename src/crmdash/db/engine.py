"""Async SQLAlchemy engine and session factory.

One ``Database`` is constructed at process start (in the app lifespan), kept on
``app.state.db`` and shared read-only by every request afterwards.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from crmdash.db.models import Base
from crmdash.errors import DuplicateRecord

logger = structlog.get_logger(__name__)


class Database:
    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self, create_tables: bool = False) -> None:
        url = make_url(self.url)
        kwargs: dict = {"echo": self._echo}
        if url.get_backend_name() == "sqlite":
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        else:
            kwargs["pool_size"] = 10
        self._engine = create_async_engine(self.url, **kwargs)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        if create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("db_connected", backend=url.get_backend_name(), create_tables=create_tables)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("db_closed")

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._session_factory


async def persist(session: AsyncSession, message: str, *, commit: bool = True) -> None:
    """Flush or commit pending writes, turning unique-constraint violations into ``DuplicateRecord``."""
    try:
        if commit:
            await session.commit()
        else:
            await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateRecord(message) from exc
