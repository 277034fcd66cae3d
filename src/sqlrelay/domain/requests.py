"""Request options and the immutable command descriptor built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.types import CommandKind

if TYPE_CHECKING:
    from sqlrelay.infrastructure.database.protocols import DbTransaction


@dataclass(frozen=True, slots=True)
class SqlRequestOptions:
    """Per-request execution options.

    Attributes:
        parameters: Parameter container (mapping, record, or dynamic
            parameter bag). Pass an empty container for "no parameters";
            ``None`` is rejected when the descriptor is built.
        timeout: Command timeout in seconds. ``None`` falls back to the
            configured default.
        kind: How the text is interpreted. ``None`` means plain text.
    """

    NONE: ClassVar[SqlRequestOptions]
    EMPTY: ClassVar[SqlRequestOptions]

    parameters: Any = None
    timeout: float | None = None
    kind: CommandKind | None = None


SqlRequestOptions.NONE = SqlRequestOptions()
# Explicit "no parameters" request.
SqlRequestOptions.EMPTY = SqlRequestOptions(parameters=MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class CommandDescriptor:
    """A command bound to a transaction, ready for the driver.

    Built once by the descriptor factory and never mutated.
    """

    text: str
    parameters: Any
    transaction: DbTransaction
    timeout: float | None = None
    kind: CommandKind = CommandKind.TEXT
    cancellation: CancellationToken = field(default_factory=CancellationToken.none)
