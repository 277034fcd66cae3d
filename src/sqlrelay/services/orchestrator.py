"""SqlExecutionOrchestrator — the observable pipeline around every SQL call.

Validation, parameter redaction, timing, and outcome logging live here.
Callers supply the operation that performs the actual driver call.

INVARIANT: Errors are never swallowed or wrapped. The orchestrator only
classifies the outcome for logging and re-raises.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.errors import MissingArgumentError, OperationCancelledError
from sqlrelay.domain.outcomes import Cancelled, ExecutionOutcome, Failed, Succeeded
from sqlrelay.services.executor import SqlCommandExecutor, validate_command
from sqlrelay.services.redaction import SqlParameterRedactor

if TYPE_CHECKING:
    from sqlrelay.domain.requests import CommandDescriptor, SqlRequestOptions
    from sqlrelay.infrastructure.database.protocols import DbTransaction

log = structlog.get_logger(__name__)

type Operation[T] = Callable[[DbTransaction, CommandDescriptor], Awaitable[T]]

# Both cooperative (token) and task cancellation count as "cancelled".
CANCELLATION_ERRORS: tuple[type[BaseException], ...] = (
    OperationCancelledError,
    asyncio.CancelledError,
)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class SqlExecutionOrchestrator:
    """Run SQL operations with redacted debug logging and timed outcome logging.

    Parameters:
        executor: Validated dispatch stage that builds the descriptor.
        redactor: Produces the log-safe copy of the request parameters.
    """

    def __init__(self, executor: SqlCommandExecutor, redactor: SqlParameterRedactor) -> None:
        if executor is None:
            raise MissingArgumentError("executor")
        if redactor is None:
            raise MissingArgumentError("redactor")
        self._executor = executor
        self._redactor = redactor

    async def run[T](
        self,
        text: str,
        transaction: DbTransaction,
        request: SqlRequestOptions,
        operation: Operation[T],
        cancellation: CancellationToken | None = None,
    ) -> T:
        """Execute *operation* for *text* on *transaction*.

        Returns the operation's result unchanged.

        Raises:
            InvalidArgumentError: *text* is blank.
            MissingArgumentError: *transaction*, its connection,
                *operation*, or *request* is None.
            OperationCancelledError: *cancellation* was already signaled;
                the operation is not invoked.
        """
        validate_command(text, transaction)
        if operation is None:
            raise MissingArgumentError("operation")
        if request is None:
            raise MissingArgumentError("request")

        token = cancellation or CancellationToken.none()
        token.raise_if_cancelled()

        safe_parameters = self._redactor.redact(
            request.parameters if request.parameters is not None else {}
        )
        log.debug("Executing SQL", sql=text, parameters=safe_parameters)

        started = time.perf_counter()
        try:
            result = await self._executor.execute(
                text,
                transaction,
                request,
                lambda tx: lambda cmd: operation(tx, cmd),
                token,
            )
        except CANCELLATION_ERRORS:
            self._log_outcome(Cancelled(_elapsed_ms(started)))
            raise
        except Exception as exc:
            self._log_outcome(Failed(exc, _elapsed_ms(started)))
            raise

        self._log_outcome(Succeeded(result, _elapsed_ms(started)))
        return result

    @staticmethod
    def _log_outcome(outcome: ExecutionOutcome) -> None:
        if isinstance(outcome, Succeeded):
            log.info("SQL executed successfully", elapsed_ms=outcome.elapsed_ms)
        elif isinstance(outcome, Cancelled):
            log.warning("SQL execution cancelled", elapsed_ms=outcome.elapsed_ms)
        else:
            log.error(
                "SQL execution failed",
                elapsed_ms=outcome.elapsed_ms,
                exc_info=outcome.error,
            )
