"""Query and command handlers — read/write/scalar shortcuts over the orchestrator.

Each method runs the descriptor on the transaction's connection through
:meth:`ExecutingConnection.execute` and shapes the buffered result;
``query_multiple`` hands back a :class:`DbGridReader` over several result
sets. All logging, timing, and validation happen in the orchestrator.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy.exc import NoResultFound

from sqlrelay.domain.requests import SqlRequestOptions
from sqlrelay.services.grid import DbGridReader
from sqlrelay.services.orchestrator import SqlExecutionOrchestrator

if TYPE_CHECKING:
    from sqlrelay.domain.cancellation import CancellationToken
    from sqlrelay.domain.requests import CommandDescriptor
    from sqlrelay.infrastructure.database.protocols import DbTransaction, ExecutingConnection

type RowFactory[T] = Callable[[Mapping[str, Any]], T]

# Separator used to log a batch of statements as one command text.
STATEMENT_SEPARATOR = ";\n"


async def _execute(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
    connection = cast("ExecutingConnection", tx.connection)
    return await connection.execute(cmd)


def _shape(row: Mapping[str, Any] | None, row_factory: RowFactory[Any] | None) -> Any:
    if row is None:
        return None
    return row_factory(row) if row_factory else dict(row)


class SqlQueryHandler:
    """Row-returning queries. Rows are dicts unless a *row_factory* is given."""

    def __init__(self, orchestrator: SqlExecutionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def query(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
        *,
        row_factory: RowFactory[Any] | None = None,
    ) -> list[Any]:
        """All rows."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> list[Any]:
            result = await _execute(tx, cmd)
            return [_shape(row, row_factory) for row in result.mappings().all()]

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def query_single(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
        *,
        row_factory: RowFactory[Any] | None = None,
    ) -> Any:
        """Exactly one row; raises ``NoResultFound`` / ``MultipleResultsFound`` otherwise."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
            result = await _execute(tx, cmd)
            return _shape(result.mappings().one(), row_factory)

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def query_single_or_default(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
        *,
        row_factory: RowFactory[Any] | None = None,
    ) -> Any:
        """One row or None; raises ``MultipleResultsFound`` for more than one."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
            result = await _execute(tx, cmd)
            return _shape(result.mappings().one_or_none(), row_factory)

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def query_first(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
        *,
        row_factory: RowFactory[Any] | None = None,
    ) -> Any:
        """First row; raises ``NoResultFound`` when there are none."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
            result = await _execute(tx, cmd)
            row = result.mappings().first()
            if row is None:
                raise NoResultFound("No row was found when one was required")
            return _shape(row, row_factory)

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def query_first_or_default(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
        *,
        row_factory: RowFactory[Any] | None = None,
    ) -> Any:
        """First row or None."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
            result = await _execute(tx, cmd)
            return _shape(result.mappings().first(), row_factory)

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def query_multiple(
        self,
        statements: str | Sequence[str],
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
    ) -> DbGridReader:
        """Run several statements as one logged, timed operation.

        Each statement runs in order on the transaction's connection with the
        same parameters (statements ignore names they do not use). Each
        statement contributes one buffered result set to the returned
        :class:`DbGridReader`; statements that return no rows contribute an
        empty one.
        """
        batch = [statements] if isinstance(statements, str) else list(statements)
        sql = STATEMENT_SEPARATOR.join(batch)

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> DbGridReader:
            result_sets: list[list[Any]] = []
            for statement in batch:
                result = await _execute(tx, dataclasses.replace(cmd, text=statement))
                result_sets.append(result.mappings().all() if result.returns_rows else [])
            return DbGridReader(result_sets)

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)


class SqlCommandHandler:
    """Non-query commands: writes, scalars, and raw results."""

    def __init__(self, orchestrator: SqlExecutionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def execute(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
    ) -> int:
        """Run a write and return the affected row count."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> int:
            result = await _execute(tx, cmd)
            return result.rowcount

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def execute_scalar(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """First column of the first row, or None."""

        async def operation(tx: DbTransaction, cmd: CommandDescriptor) -> Any:
            result = await _execute(tx, cmd)
            return result.scalar()

        return await self._orchestrator.run(sql, transaction, options, operation, cancellation)

    async def execute_reader(
        self,
        sql: str,
        transaction: DbTransaction,
        options: SqlRequestOptions = SqlRequestOptions.EMPTY,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """The buffered driver result, for callers that shape rows themselves."""
        return await self._orchestrator.run(sql, transaction, options, _execute, cancellation)
