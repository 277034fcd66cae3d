"""Command, isolation, and scope enums.

Isolation level values are the driver-level names SQLAlchemy accepts for
its ``isolation_level`` execution option, so they can be passed through
without a translation table.
"""

from __future__ import annotations

from enum import StrEnum


class CommandKind(StrEnum):
    """How the command text is interpreted by the driver."""

    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


class IsolationLevel(StrEnum):
    """Transaction isolation levels.

    ``UNSPECIFIED`` is a sentinel meaning "use the configured default";
    it is never sent to the driver.
    """

    UNSPECIFIED = "UNSPECIFIED"
    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"
    SNAPSHOT = "SNAPSHOT"


class ScopeState(StrEnum):
    """Lifecycle of a connection/transaction scope."""

    UNOPENED = "unopened"
    OPEN = "open"
    TRANSACTION_ACTIVE = "transaction_active"
    DISPOSED = "disposed"


class ParameterDirection(StrEnum):
    """Direction of a parameter held in a dynamic parameter bag."""

    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"
    RETURN_VALUE = "return_value"


# --- Transition map ---

SCOPE_TRANSITIONS: dict[str, list[str]] = {
    "unopened": ["open", "disposed"],
    "open": ["transaction_active", "disposed"],
    "transaction_active": ["disposed"],
    "disposed": [],
}
