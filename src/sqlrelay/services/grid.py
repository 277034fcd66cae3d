"""DbGridReader — sequential access to several buffered result sets.

Returned by :meth:`SqlQueryHandler.query_multiple`. Every result set is
fully buffered while the query runs inside the pipeline, so reading never
touches the connection and the reader stays usable after the transaction
completes. Each ``read*`` call consumes the next result set.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Self

from sqlalchemy.exc import MultipleResultsFound, NoResultFound

from sqlrelay.domain.errors import InvalidOperationError, ObjectDisposedError

type RowFactory[T] = Callable[[Mapping[str, Any]], T]


class DbGridReader:
    """Reader over buffered result sets, consumed in order.

    Usage::

        async with registry.scope() as ctx:
            tx = await ctx.begin_transaction()
            with await ctx.queries.query_multiple(
                ["SELECT * FROM users", "SELECT COUNT(*) AS n FROM users"], tx
            ) as grid:
                users = grid.read()
                total = grid.read_single()["n"]
    """

    def __init__(self, result_sets: Sequence[Sequence[Mapping[str, Any]]]) -> None:
        self._result_sets: list[list[dict[str, Any]]] | None = [
            [dict(row) for row in rows] for rows in result_sets
        ]
        self._position = 0

    @property
    def is_consumed(self) -> bool:
        """True once every result set has been read."""
        self._ensure_not_disposed()
        return self._position >= len(self._result_sets or [])

    @property
    def is_disposed(self) -> bool:
        return self._result_sets is None

    def read(self, row_factory: RowFactory[Any] | None = None) -> list[Any]:
        """All rows of the next result set."""
        return [self._shape(row, row_factory) for row in self._next()]

    def read_first(self, row_factory: RowFactory[Any] | None = None) -> Any:
        """First row of the next result set; raises ``NoResultFound`` when empty."""
        rows = self._next()
        if not rows:
            raise NoResultFound("No row was found when one was required")
        return self._shape(rows[0], row_factory)

    def read_first_or_default(self, row_factory: RowFactory[Any] | None = None) -> Any:
        rows = self._next()
        return self._shape(rows[0], row_factory) if rows else None

    def read_single(self, row_factory: RowFactory[Any] | None = None) -> Any:
        """The only row of the next result set.

        Raises:
            NoResultFound: The result set is empty.
            MultipleResultsFound: The result set has more than one row.
        """
        rows = self._next()
        if not rows:
            raise NoResultFound("No row was found when one was required")
        if len(rows) > 1:
            raise MultipleResultsFound("Multiple rows were found when one was required")
        return self._shape(rows[0], row_factory)

    def read_single_or_default(self, row_factory: RowFactory[Any] | None = None) -> Any:
        """The only row of the next result set, or None when it is empty."""
        rows = self._next()
        if len(rows) > 1:
            raise MultipleResultsFound("Multiple rows were found when one or none was required")
        return self._shape(rows[0], row_factory) if rows else None

    def close(self) -> None:
        """Drop the buffered rows. Idempotent."""
        self._result_sets = None

    async def aclose(self) -> None:
        self.close()

    def __enter__(self) -> Self:
        self._ensure_not_disposed()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> Self:
        self._ensure_not_disposed()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _next(self) -> list[dict[str, Any]]:
        result_sets = self._result_sets
        if result_sets is None:
            raise ObjectDisposedError(type(self).__name__)
        if self._position >= len(result_sets):
            raise InvalidOperationError("No more result sets to read.")
        rows = result_sets[self._position]
        self._position += 1
        return rows

    @staticmethod
    def _shape(row: dict[str, Any], row_factory: RowFactory[Any] | None) -> Any:
        return row_factory(row) if row_factory else row

    def _ensure_not_disposed(self) -> None:
        if self._result_sets is None:
            raise ObjectDisposedError(type(self).__name__)

    def __repr__(self) -> str:
        if self._result_sets is None:
            return "DbGridReader(disposed)"
        return f"DbGridReader(result_sets={len(self._result_sets)}, position={self._position})"
