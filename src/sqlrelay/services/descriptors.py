"""CommandDescriptorFactory — bind request options to a transaction.

Pure value construction: no I/O and no logging. The configured default
timeout is resolved here, never later.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlrelay.config.models import DatabaseOptions
from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.errors import InvalidArgumentError, MissingArgumentError
from sqlrelay.domain.requests import CommandDescriptor, SqlRequestOptions
from sqlrelay.domain.types import CommandKind

if TYPE_CHECKING:
    from sqlrelay.infrastructure.database.protocols import DbTransaction


class CommandDescriptorFactory:
    """Build :class:`CommandDescriptor` values with configured defaults applied."""

    def __init__(self, options: DatabaseOptions | None = None) -> None:
        self._options = options or DatabaseOptions()

    def build(
        self,
        text: str,
        transaction: DbTransaction,
        request: SqlRequestOptions,
        cancellation: CancellationToken | None = None,
    ) -> CommandDescriptor:
        """Create the descriptor for one command.

        Raises:
            MissingArgumentError: *request* is None.
            InvalidArgumentError: ``request.parameters`` is None. Pass an
                empty container to run without parameters.
        """
        if request is None:
            raise MissingArgumentError("request")
        if request.parameters is None:
            msg = "request.parameters must not be None; pass an empty container for no parameters"
            raise InvalidArgumentError(msg)

        timeout = request.timeout if request.timeout is not None else self._options.default_timeout

        return CommandDescriptor(
            text=text,
            parameters=request.parameters,
            transaction=transaction,
            timeout=timeout,
            kind=request.kind or CommandKind.TEXT,
            cancellation=cancellation or CancellationToken.none(),
        )
