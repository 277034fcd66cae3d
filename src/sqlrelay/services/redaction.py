"""SqlParameterRedactor — strip sensitive values from parameters before logging.

INVARIANT: The input container is never mutated; a new dict is returned.

A value is sensitive when its field is tagged sensitive at the type level
(see :func:`sqlrelay.domain.parameters.sensitive_field`), or when its name
contains any configured fragment, compared case-insensitively.
"""

from __future__ import annotations

from typing import Any

from sqlrelay.config.models import SqlLoggingOptions
from sqlrelay.domain.errors import MissingArgumentError
from sqlrelay.domain.parameters import iter_parameter_fields

# Characters kept visible in partial mode.
PARTIAL_PREFIX_LENGTH = 3


class SqlParameterRedactor:
    """Produce log-safe copies of parameter containers.

    Supports mappings, named-parameter providers such as
    :class:`~sqlrelay.domain.parameters.DynamicParameters`, and structured
    records (dataclasses, pydantic models, named tuples, plain objects).
    """

    def __init__(self, options: SqlLoggingOptions) -> None:
        if options is None:
            raise MissingArgumentError("options")
        self._options = options
        self._fragments = tuple(fragment.casefold() for fragment in options.redact_parameters)

    @property
    def options(self) -> SqlLoggingOptions:
        return self._options

    def redact(self, parameters: Any) -> dict[str, Any]:
        """Return a redacted copy of *parameters* safe for logging."""
        return {
            field.name: self._redact_value(field.name, field.value, tagged=field.sensitive)
            for field in iter_parameter_fields(parameters)
        }

    def is_sensitive(self, name: str) -> bool:
        """True when *name* contains any configured fragment (case-insensitive)."""
        folded = name.casefold()
        return any(fragment in folded for fragment in self._fragments)

    def apply_redaction(self, value: Any) -> str:
        """Replace *value* with the placeholder, or a 3-char prefix plus placeholder."""
        placeholder = self._options.redaction_placeholder
        if not self._options.enable_partial_redaction:
            return placeholder

        if isinstance(value, str) and len(value) > PARTIAL_PREFIX_LENGTH:
            return value[:PARTIAL_PREFIX_LENGTH] + placeholder

        return placeholder

    def _redact_value(self, name: str, value: Any, *, tagged: bool = False) -> Any:
        if tagged or self.is_sensitive(name):
            return self.apply_redaction(value)
        return value
