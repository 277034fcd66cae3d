"""sqlrelay — an observable async execution layer over SQLAlchemy.

Validated, timed, redacted-logging execution of SQL commands, plus scoped
connection/transaction lifecycles with deterministic release.
"""

from sqlrelay.config.models import DatabaseOptions, SqlLoggingOptions
from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.errors import (
    ConfigurationError,
    InvalidArgumentError,
    InvalidOperationError,
    MissingArgumentError,
    ObjectDisposedError,
    OperationCancelledError,
    SqlRelayError,
)
from sqlrelay.domain.parameters import DynamicParameters, sensitive_field
from sqlrelay.domain.requests import CommandDescriptor, SqlRequestOptions
from sqlrelay.domain.types import CommandKind, IsolationLevel, ScopeState
from sqlrelay.infrastructure.database.context import DbContext
from sqlrelay.registry import DatabaseRegistration, DatabaseRegistry
from sqlrelay.services.grid import DbGridReader
from sqlrelay.services.handlers import SqlCommandHandler, SqlQueryHandler
from sqlrelay.services.orchestrator import SqlExecutionOrchestrator
from sqlrelay.services.redaction import SqlParameterRedactor

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "CommandDescriptor",
    "CommandKind",
    "ConfigurationError",
    "DatabaseOptions",
    "DatabaseRegistration",
    "DatabaseRegistry",
    "DbContext",
    "DbGridReader",
    "DynamicParameters",
    "InvalidArgumentError",
    "InvalidOperationError",
    "IsolationLevel",
    "MissingArgumentError",
    "ObjectDisposedError",
    "OperationCancelledError",
    "ScopeState",
    "SqlCommandHandler",
    "SqlExecutionOrchestrator",
    "SqlLoggingOptions",
    "SqlParameterRedactor",
    "SqlQueryHandler",
    "SqlRelayError",
    "SqlRequestOptions",
    "__version__",
    "sensitive_field",
]
