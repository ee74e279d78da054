"""
Async database manager.

All statements go through SQLAlchemy ``text()`` (or Core constructs) with
bound parameters; raw SQL strings are rejected. ``transaction()`` hands out
a ``TransactionScope`` whose reads and writes share one session and commit
or roll back together.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.sql.elements import ClauseElement, TextClause

from settleboard.config.core import DatabaseSettings
from settleboard.config.db_url import ensure_config_database_url


def _check_query(query: Any) -> None:
    if isinstance(query, str):
        raise TypeError("Raw SQL strings are disallowed. Use sqlalchemy.text().")
    if not isinstance(query, (TextClause, ClauseElement)):
        raise TypeError("Query must be a SQLAlchemy TextClause or ClauseElement.")


async def _read(session: AsyncSession, query: Any, params: Any, mappings: bool) -> list[Any]:
    result: Result = await session.execute(query, params or {})
    if mappings:
        return [dict(row) for row in result.mappings().all()]
    return list(result.all())


class TransactionScope:
    """Reads and writes bound to one open transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def read(self, query: Any, params: dict | None = None, mappings: bool = False) -> list[Any]:
        _check_query(query)
        return await _read(self.session, query, params, mappings)

    async def write(self, query: Any, params: dict | list[dict] | None = None) -> int:
        _check_query(query)
        if not params:
            raise ValueError("Parameterized writes are required. Provide a params mapping.")
        result: Result = await self.session.execute(query, params)
        return result.rowcount or 0


class DBM:
    def __init__(self, config: DatabaseSettings, *, engine: AsyncEngine | None = None):
        self.config = config
        if engine is None:
            ensure_config_database_url(config)
            if not config.url:
                raise ValueError("database url is not configured (set SETTLEBOARD_DATABASE__URL)")
            engine = create_async_engine(
                config.url,
                echo=config.echo,
                future=True,
                pool_pre_ping=True,
            )
        self.engine: AsyncEngine = engine

        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionScope]:
        """Commit on clean exit, roll back if the block raises."""
        async with self.session() as session:
            async with session.begin():
                yield TransactionScope(session)

    async def read(self, query: Any, params: dict | None = None, mappings: bool = False) -> list[Any]:
        """Execute a read-only statement and return all rows."""
        _check_query(query)
        async with self.session() as session:
            return await _read(session, query, params, mappings)

    async def write(self, query: Any, params: dict | list[dict] | None = None) -> int:
        """Execute a write statement inside a transaction and return row count."""
        async with self.transaction() as tx:
            return await tx.write(query, params)

    async def dispose(self) -> None:
        await self.engine.dispose()


__all__ = ["DBM", "TransactionScope"]
