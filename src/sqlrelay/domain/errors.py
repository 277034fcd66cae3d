"""Exception hierarchy for the execution pipeline and scope lifecycle.

Validation errors are raised before any I/O. Lifecycle violations are
raised as ``InvalidOperationError`` / ``ObjectDisposedError``. Driver and
connection-factory errors are never wrapped; they propagate as raised.
"""

from __future__ import annotations


class SqlRelayError(Exception):
    """Base class for errors raised by sqlrelay itself."""


class InvalidArgumentError(SqlRelayError, ValueError):
    """An argument was present but unusable (e.g. blank command text)."""


class MissingArgumentError(InvalidArgumentError, TypeError):
    """A required argument, or a required attribute of one, was ``None``."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} must not be None")
        self.name = name


class InvalidOperationError(SqlRelayError, RuntimeError):
    """The call is not valid in the object's current state."""


class ObjectDisposedError(InvalidOperationError):
    """The object has already been disposed."""

    def __init__(self, object_name: str) -> None:
        super().__init__(f"Cannot access a disposed object: {object_name}")
        self.object_name = object_name


class OperationCancelledError(SqlRelayError):
    """The caller's cancellation token was signaled."""

    def __init__(self, message: str = "The operation was cancelled.") -> None:
        super().__init__(message)


class ConfigurationError(SqlRelayError):
    """Configuration could not be loaded or validated."""
