"""SQLAlchemy asyncio adapter for the connection/transaction protocols.

SQLAlchemy Core (not ORM) is the driver layer: it owns pooling, dialects,
and the wire protocol. This module only adapts ``AsyncEngine`` /
``AsyncConnection`` to :class:`DbConnection` / :class:`DbTransaction` and
runs command descriptors as ``text()`` statements.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine

from sqlrelay.domain.errors import InvalidOperationError
from sqlrelay.domain.parameters import bind_parameters
from sqlrelay.domain.types import CommandKind, IsolationLevel
from sqlrelay.infrastructure.database.release import release_later

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

    from sqlrelay.domain.cancellation import CancellationToken
    from sqlrelay.domain.requests import CommandDescriptor

logger = logging.getLogger(__name__)


def create_db_engine(url: str, *, echo: bool = False, **kwargs: Any) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys enabled."""
    engine = create_async_engine(url, echo=echo, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def render_statement(descriptor: CommandDescriptor, parameter_names: list[str]) -> str:
    """Return the SQL text to send for *descriptor*.

    Stored procedures are invoked as ``CALL name(:p1, :p2, ...)`` with the
    bound parameter names in order.
    """
    if descriptor.kind is CommandKind.STORED_PROCEDURE:
        placeholders = ", ".join(f":{name}" for name in parameter_names)
        return f"CALL {descriptor.text.strip()}({placeholders})"
    return descriptor.text


_NO_LOOP_WARNING = "%s released without a running event loop; use adispose()"


class SqlAlchemyConnection:
    """:class:`DbConnection` over a SQLAlchemy ``AsyncConnection``.

    Created unopened; :meth:`open` checks a connection out of the engine pool.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._conn: AsyncConnection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None and not self._conn.closed

    @property
    def raw(self) -> AsyncConnection:
        """The underlying ``AsyncConnection`` (for open hooks and custom operations)."""
        if self._conn is None:
            raise InvalidOperationError("Connection has not been opened.")
        return self._conn

    async def open(self, cancellation: CancellationToken) -> None:
        cancellation.raise_if_cancelled()
        self._conn = await self._engine.connect()

    async def begin_transaction(
        self,
        isolation_level: IsolationLevel,
        cancellation: CancellationToken,
    ) -> SqlAlchemyTransaction:
        cancellation.raise_if_cancelled()
        conn = self.raw
        if isolation_level is not IsolationLevel.UNSPECIFIED:
            conn = await conn.execution_options(isolation_level=isolation_level.value)
        trans = await conn.begin()
        return SqlAlchemyTransaction(self, trans, isolation_level)

    async def execute(self, descriptor: CommandDescriptor) -> CursorResult[Any]:
        """Run *descriptor* on this connection and return the buffered result.

        The descriptor's timeout bounds the round-trip; ``None`` leaves it
        unbounded.
        """
        descriptor.cancellation.raise_if_cancelled()
        params = bind_parameters(descriptor.parameters)
        statement = text(render_statement(descriptor, list(params)))
        async with asyncio.timeout(descriptor.timeout):
            return await self.raw.execute(statement, params)

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None and not release_later(conn.close, "Connection"):
            logger.warning(_NO_LOOP_WARNING, "Connection")

    async def aclose(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    def __repr__(self) -> str:
        return f"SqlAlchemyConnection(url={self._engine.url!r}, open={self.is_open})"


class SqlAlchemyTransaction:
    """:class:`DbTransaction` over a SQLAlchemy ``AsyncTransaction``.

    ``connection`` becomes ``None`` after commit, rollback, or close, so a
    completed transaction fails pipeline validation instead of running
    statements in autocommit.
    """

    def __init__(
        self,
        connection: SqlAlchemyConnection,
        transaction: AsyncTransaction,
        isolation_level: IsolationLevel,
    ) -> None:
        self._connection: SqlAlchemyConnection | None = connection
        self._trans = transaction
        self._isolation_level = isolation_level

    @property
    def connection(self) -> SqlAlchemyConnection | None:
        return self._connection

    @property
    def isolation_level(self) -> IsolationLevel:
        return self._isolation_level

    @property
    def is_active(self) -> bool:
        return self._connection is not None and self._trans.is_active

    async def commit(self) -> None:
        await self._trans.commit()
        self._connection = None

    async def rollback(self) -> None:
        await self._trans.rollback()
        self._connection = None

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection = None
        if self._trans.is_active and not release_later(self._trans.close, "Transaction"):
            logger.warning(_NO_LOOP_WARNING, "Transaction")

    async def aclose(self) -> None:
        if self._connection is None:
            return
        self._connection = None
        if self._trans.is_active:
            await self._trans.close()


def make_connection_factory(engine: AsyncEngine) -> Callable[[], SqlAlchemyConnection]:
    """Return the zero-argument connection factory a :class:`DbContext` expects."""

    def _factory() -> SqlAlchemyConnection:
        return SqlAlchemyConnection(engine)

    return _factory
