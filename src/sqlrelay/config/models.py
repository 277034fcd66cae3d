"""Pydantic option models with code-baked defaults.

Both models are frozen: an options instance is shared read-only by every
scope in the process. Changing configuration means building a new instance.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqlrelay.domain.types import IsolationLevel


class DatabaseOptions(BaseModel):
    """[database] section — connection and command defaults.

    Attributes:
        default_timeout: Command timeout in seconds when a request omits one.
            ``None`` leaves the driver default in place.
        default_isolation_level: Used when a transaction is begun with
            ``IsolationLevel.UNSPECIFIED``.
        on_connection_open: Optional ``async hook(connection, cancellation)``
            awaited once, right after a physical connection opens. Not
            loadable from TOML or env vars.
    """

    model_config = ConfigDict(frozen=True)

    default_timeout: float | None = Field(default=None, gt=0)
    default_isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED
    on_connection_open: Callable[..., Awaitable[None]] | None = Field(
        default=None, exclude=True
    )

    @field_validator("default_isolation_level")
    @classmethod
    def _reject_unspecified(cls, value: IsolationLevel) -> IsolationLevel:
        if value is IsolationLevel.UNSPECIFIED:
            msg = "default_isolation_level must name a concrete isolation level"
            raise ValueError(msg)
        return value


class SqlLoggingOptions(BaseModel):
    """[sql_logging] section — redaction rules for logged parameters."""

    model_config = ConfigDict(frozen=True)

    redact_parameters: frozenset[str] = frozenset()
    redaction_placeholder: str = "***REDACTED***"
    enable_partial_redaction: bool = False
