"""DbContext — one connection and at most one transaction per unit of work.

State machine::

    UNOPENED ──connect──▶ OPEN ──begin_transaction──▶ TRANSACTION_ACTIVE
        │                  │                              │
        └──────────────────┴─────────dispose──────────────┴──▶ DISPOSED

``DISPOSED`` is terminal. A scope enters ``TRANSACTION_ACTIVE`` at most once;
committing or rolling back the transaction is the caller's job, the scope
only guarantees release.

A scope is not safe for concurrent use. It represents one logical unit of
work and must be used sequentially from a single call site.

Always use a scope through ``async with`` (or ``with``) so disposal runs on
every exit path::

    async with DbContext(factory, options) as ctx:
        tx = await ctx.begin_transaction(IsolationLevel.SERIALIZABLE)
        ...
        await tx.commit()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

from sqlrelay.config.models import DatabaseOptions
from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.errors import (
    InvalidOperationError,
    MissingArgumentError,
    ObjectDisposedError,
)
from sqlrelay.domain.types import SCOPE_TRANSITIONS, IsolationLevel, ScopeState
from sqlrelay.infrastructure.database.release import release_later

if TYPE_CHECKING:
    from types import TracebackType

    from sqlrelay.infrastructure.database.protocols import (
        ConnectionFactory,
        DbConnection,
        DbTransaction,
    )
    from sqlrelay.services.handlers import SqlCommandHandler, SqlQueryHandler

logger = logging.getLogger(__name__)


class DbContext:
    """Scoped owner of a lazily opened connection and its single transaction.

    Parameters:
        connection_factory: Zero-argument callable returning a new,
            unopened :class:`DbConnection`.
        options: Connection defaults (isolation level, open hook).
        queries: Query handler exposed to callers of this scope.
        commands: Command handler exposed to callers of this scope.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        options: DatabaseOptions | None = None,
        *,
        queries: SqlQueryHandler | None = None,
        commands: SqlCommandHandler | None = None,
    ) -> None:
        if connection_factory is None:
            raise MissingArgumentError("connection_factory")
        self._connection_factory = connection_factory
        self._options = options or DatabaseOptions()
        self._queries = queries
        self._commands = commands
        self._connection: DbConnection | None = None
        self._transaction: DbTransaction | None = None
        self._state = ScopeState.UNOPENED

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScopeState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._state is ScopeState.DISPOSED

    @property
    def connection(self) -> DbConnection | None:
        """The owned connection, or None if not yet created."""
        self._ensure_not_disposed()
        return self._connection

    @property
    def transaction(self) -> DbTransaction | None:
        """The scope's single transaction, or None if never begun."""
        self._ensure_not_disposed()
        return self._transaction

    @property
    def queries(self) -> SqlQueryHandler:
        self._ensure_not_disposed()
        if self._queries is None:
            raise InvalidOperationError("No query handler is configured for this scope.")
        return self._queries

    @property
    def commands(self) -> SqlCommandHandler:
        self._ensure_not_disposed()
        if self._commands is None:
            raise InvalidOperationError("No command handler is configured for this scope.")
        return self._commands

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, cancellation: CancellationToken | None = None) -> DbConnection:
        """Ensure the connection exists and is open, then return it.

        The open hook runs once per physical open. Calling again while the
        connection is open does nothing.
        """
        self._ensure_not_disposed()
        token = cancellation or CancellationToken.none()

        if self._connection is None:
            logger.debug("Creating new database connection")
            self._connection = self._connection_factory()

        if not self._connection.is_open:
            logger.debug("Opening database connection")
            await self._connection.open(token)

            hook = self._options.on_connection_open
            if hook is not None:
                await hook(self._connection, token)

            logger.info("Database connection opened")

        if self._state is ScopeState.UNOPENED:
            self._transition(ScopeState.OPEN)
        return self._connection

    async def begin_transaction(
        self,
        isolation_level: IsolationLevel = IsolationLevel.UNSPECIFIED,
        cancellation: CancellationToken | None = None,
    ) -> DbTransaction:
        """Begin the scope's one and only transaction.

        ``IsolationLevel.UNSPECIFIED`` resolves to the configured default.

        Raises:
            InvalidOperationError: A transaction was already begun on this scope.
            ObjectDisposedError: The scope has been disposed.
        """
        self._ensure_not_disposed()

        if self._transaction is not None:
            raise InvalidOperationError("A transaction is already in progress.")

        connection = await self.connect(cancellation)

        if isolation_level is IsolationLevel.UNSPECIFIED:
            isolation_level = self._options.default_isolation_level

        logger.debug("Starting new transaction with isolation level %s", isolation_level)

        self._transaction = await connection.begin_transaction(
            isolation_level, cancellation or CancellationToken.none()
        )
        self._transition(ScopeState.TRANSACTION_ACTIVE)
        return self._transaction

    def dispose(self) -> None:
        """Release the transaction, then the connection. Idempotent.

        Inside a running event loop the asynchronous release is scheduled as
        one task, so the connection is only released after the transaction.
        Await :func:`~sqlrelay.infrastructure.database.release.drain_releases`
        to wait for it. Without a running loop the resources are closed
        synchronously.
        """
        if self._state is ScopeState.DISPOSED:
            return

        transaction, connection = self._detach()
        if transaction is None and connection is None:
            logger.debug("Database scope disposed")
            return

        if release_later(lambda: self._release(transaction, connection), "Database scope"):
            logger.debug("Database scope release scheduled")
            return

        try:
            if transaction is not None:
                transaction.close()
        finally:
            if connection is not None:
                connection.close()
        logger.debug("Database scope disposed")

    async def adispose(self) -> None:
        """Asynchronously release the transaction, then the connection. Idempotent."""
        if self._state is ScopeState.DISPOSED:
            return

        transaction, connection = self._detach()
        await self._release(transaction, connection)
        logger.debug("Database scope disposed")

    # ------------------------------------------------------------------
    # Scoped acquisition
    # ------------------------------------------------------------------

    def __enter__(self) -> Self:
        self._ensure_not_disposed()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    async def __aenter__(self) -> Self:
        self._ensure_not_disposed()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.adispose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    async def _release(
        transaction: DbTransaction | None,
        connection: DbConnection | None,
    ) -> None:
        try:
            if transaction is not None:
                await transaction.aclose()
        finally:
            if connection is not None:
                await connection.aclose()

    def _detach(self) -> tuple[DbTransaction | None, DbConnection | None]:
        """Mark the scope disposed and hand back the resources to release."""
        transaction, connection = self._transaction, self._connection
        self._transaction = None
        self._connection = None
        self._transition(ScopeState.DISPOSED)
        return transaction, connection

    def _transition(self, target: ScopeState) -> None:
        if target.value not in SCOPE_TRANSITIONS[self._state.value]:
            msg = f"Invalid scope transition: {self._state} -> {target}"
            raise InvalidOperationError(msg)
        self._state = target

    def _ensure_not_disposed(self) -> None:
        if self._state is ScopeState.DISPOSED:
            raise ObjectDisposedError(type(self).__name__)

    def __repr__(self) -> str:
        return f"DbContext(state={self._state.value})"
