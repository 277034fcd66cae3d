"""SqlCommandExecutor — validated dispatch of one command.

Validates inputs, builds the descriptor, and hands it to a caller-supplied
execution strategy bound to the transaction. Never catches: whatever the
strategy raises propagates unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from sqlrelay.domain.errors import InvalidArgumentError, MissingArgumentError
from sqlrelay.services.descriptors import CommandDescriptorFactory

if TYPE_CHECKING:
    from sqlrelay.domain.cancellation import CancellationToken
    from sqlrelay.domain.requests import CommandDescriptor, SqlRequestOptions
    from sqlrelay.infrastructure.database.protocols import DbTransaction

type OperationBuilder[T] = Callable[[DbTransaction], Callable[[CommandDescriptor], Awaitable[T]]]


def validate_command(text: str | None, transaction: DbTransaction | None) -> None:
    """Reject blank command text and a missing transaction or connection.

    Raises:
        InvalidArgumentError: *text* is None, empty, or whitespace.
        MissingArgumentError: *transaction* or its connection is None.
    """
    if text is None or not text.strip():
        raise InvalidArgumentError("Sql command text must not be None or empty.")
    if transaction is None:
        raise MissingArgumentError("transaction")
    if transaction.connection is None:
        raise MissingArgumentError("transaction.connection")


class SqlCommandExecutor:
    """Dispatch stage between the orchestrator and the driver call."""

    def __init__(self, descriptor_factory: CommandDescriptorFactory | None = None) -> None:
        self._descriptor_factory = descriptor_factory or CommandDescriptorFactory()

    async def execute[T](
        self,
        text: str,
        transaction: DbTransaction,
        request: SqlRequestOptions,
        operation_builder: OperationBuilder[T],
        cancellation: CancellationToken | None = None,
    ) -> T:
        """Build the descriptor and run ``operation_builder(transaction)(descriptor)``."""
        validate_command(text, transaction)

        descriptor = self._descriptor_factory.build(text, transaction, request, cancellation)

        # Always run on the connection associated with the transaction.
        return await operation_builder(transaction)(descriptor)
