"""Driver-facing protocols for connections and transactions.

The scope and the pipeline only ever talk to these protocols. The
SQLAlchemy adapter in :mod:`sqlrelay.infrastructure.database.engine`
implements them; tests implement them with in-memory doubles.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlrelay.domain.cancellation import CancellationToken
    from sqlrelay.domain.requests import CommandDescriptor
    from sqlrelay.domain.types import IsolationLevel


@runtime_checkable
class DbConnection(Protocol):
    """A single physical connection, owned by exactly one scope."""

    @property
    def is_open(self) -> bool: ...

    async def open(self, cancellation: CancellationToken) -> None: ...

    async def begin_transaction(
        self,
        isolation_level: IsolationLevel,
        cancellation: CancellationToken,
    ) -> DbTransaction: ...

    def close(self) -> None: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class DbTransaction(Protocol):
    """A transaction on a :class:`DbConnection`.

    ``connection`` is ``None`` once the transaction has completed.
    """

    @property
    def connection(self) -> DbConnection | None: ...

    @property
    def isolation_level(self) -> IsolationLevel: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    def close(self) -> None: ...

    async def aclose(self) -> None: ...


class ExecutingConnection(DbConnection, Protocol):
    """A connection that can run a descriptor directly."""

    async def execute(self, descriptor: CommandDescriptor) -> Any: ...


# Zero-argument callable returning a new, unopened connection.
type ConnectionFactory = Callable[[], DbConnection]

# Awaited once with the freshly opened connection and the caller's token.
type ConnectionOpenHook = Callable[[DbConnection, CancellationToken], Awaitable[None]]
