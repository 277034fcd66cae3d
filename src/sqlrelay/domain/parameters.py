"""Parameter containers and the capabilities used to enumerate them.

Three container shapes are supported everywhere parameters are read
(redaction for logging, binding for the driver):

- **Mappings** — plain ``dict``-like name/value containers.
- **Named-parameter providers** — containers that expose their names
  through :class:`NamedParameterProvider` (e.g. :class:`DynamicParameters`).
- **Records** — structured objects whose fields are enumerated by
  :func:`iter_record_fields`: an explicit :class:`RecordFieldProvider`,
  dataclasses, pydantic models, named tuples, or plain objects.

Fields can be tagged sensitive at the type level with
:func:`sensitive_field` (dataclasses) or
``Field(json_schema_extra={"sensitive": True})`` (pydantic).
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, NamedTuple, Protocol, runtime_checkable

from pydantic import BaseModel

from sqlrelay.domain.types import ParameterDirection

logger = logging.getLogger(__name__)

SENSITIVE_METADATA_KEY = "sensitive"

_NAME_PREFIXES = ("@", ":", "?")


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


@runtime_checkable
class NamedParameterProvider(Protocol):
    """A container that enumerates its parameters by name."""

    def parameter_names(self) -> Iterable[str]: ...

    def get_parameter(self, name: str) -> Any: ...


class RecordField(NamedTuple):
    """One (name, value) pair yielded by the record visitor."""

    name: str
    value: Any
    sensitive: bool = False


@runtime_checkable
class RecordFieldProvider(Protocol):
    """A structured record that yields its own fields."""

    def iter_fields(self) -> Iterable[RecordField]: ...


def sensitive_field(**kwargs: Any) -> Any:
    """A ``dataclasses.field`` tagged as sensitive for logging.

    Usage::

        @dataclass
        class Login:
            user: str
            secret: str = sensitive_field(default="")
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[SENSITIVE_METADATA_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


# ---------------------------------------------------------------------------
# DynamicParameters: the dynamic parameter bag
# ---------------------------------------------------------------------------


@dataclasses.dataclass(slots=True)
class _ParameterInfo:
    name: str
    value: Any
    direction: ParameterDirection = ParameterDirection.INPUT


class DynamicParameters:
    """A parameter bag assembled at runtime instead of declared as fields.

    Names are normalized by stripping a leading ``@``, ``:`` or ``?`` so
    ``add("@id", 1)`` and ``add("id", 1)`` address the same parameter.
    Adding an existing name replaces it.

    Directions are informational only. Every parameter, whatever its
    :class:`ParameterDirection`, is bound as an input with its current
    value; the SQLAlchemy ``text()`` path has no output or return-value
    parameters, so results come back through the result set instead.
    """

    def __init__(self, template: Any = None) -> None:
        self._parameters: dict[str, _ParameterInfo] = {}
        if template is not None:
            self.add_dynamic_params(template)

    @staticmethod
    def clean(name: str) -> str:
        if name and name[0] in _NAME_PREFIXES:
            return name[1:]
        return name

    def add(
        self,
        name: str,
        value: Any = None,
        *,
        direction: ParameterDirection = ParameterDirection.INPUT,
    ) -> None:
        """Add or replace *name*. *direction* is recorded but not used when binding."""
        cleaned = self.clean(name)
        self._parameters[cleaned] = _ParameterInfo(cleaned, value, direction)

    def add_dynamic_params(self, params: Any) -> None:
        """Merge every parameter from a mapping, provider, or record."""
        for name, value in iter_named_values(params):
            self.add(name, value)

    def parameter_names(self) -> list[str]:
        return list(self._parameters)

    def get_parameter(self, name: str) -> Any:
        """Return the value for *name*; raises ``KeyError`` if absent."""
        return self._parameters[self.clean(name)].value

    def direction_of(self, name: str) -> ParameterDirection:
        return self._parameters[self.clean(name)].direction

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.clean(name) in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)

    def __repr__(self) -> str:
        return f"DynamicParameters(names={self.parameter_names()!r})"


# ---------------------------------------------------------------------------
# Record visitor
# ---------------------------------------------------------------------------


def _read(record: Any, name: str) -> Any:
    """Read one attribute; an unreadable value is reported as ``None``."""
    try:
        return getattr(record, name)
    except Exception:
        logger.debug("Could not read field %r of %s", name, type(record).__name__)
        return None


def _pydantic_sensitive(field_info: Any) -> bool:
    extra = field_info.json_schema_extra
    return isinstance(extra, dict) and bool(extra.get(SENSITIVE_METADATA_KEY))


def iter_record_fields(record: Any) -> Iterator[RecordField]:
    """Yield the visible fields of a structured record.

    Resolution order: :class:`RecordFieldProvider`, dataclass instance,
    pydantic model, named tuple, then public instance attributes followed
    by public properties declared on the class.
    """
    if isinstance(record, RecordFieldProvider):
        yield from record.iter_fields()
        return

    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        for f in dataclasses.fields(record):
            yield RecordField(
                f.name,
                _read(record, f.name),
                bool(f.metadata.get(SENSITIVE_METADATA_KEY, False)),
            )
        return

    if isinstance(record, BaseModel):
        for name, info in type(record).model_fields.items():
            yield RecordField(name, _read(record, name), _pydantic_sensitive(info))
        return

    if isinstance(record, tuple) and hasattr(record, "_fields"):
        for name in record._fields:
            yield RecordField(name, _read(record, name))
        return

    seen: set[str] = set()
    for name in getattr(record, "__dict__", {}):
        if name.startswith("_"):
            continue
        seen.add(name)
        yield RecordField(name, _read(record, name))

    for klass in type(record).__mro__:
        for name, attr in vars(klass).items():
            if name.startswith("_") or name in seen or not isinstance(attr, property):
                continue
            seen.add(name)
            yield RecordField(name, _read(record, name))


def iter_parameter_fields(parameters: Any) -> Iterator[RecordField]:
    """Yield every parameter of any supported container as a :class:`RecordField`.

    This is the one traversal shared by binding and redaction. ``None``
    yields nothing, ``None`` keys in mappings are skipped (other keys are
    stringified), and a provider lookup that fails reports the value as
    ``None``. Only records carry a sensitivity tag.
    """
    if parameters is None:
        return

    if isinstance(parameters, Mapping):
        for key, value in parameters.items():
            if key is None:
                continue
            yield RecordField(str(key), value)
        return

    if isinstance(parameters, NamedParameterProvider):
        for name in parameters.parameter_names():
            try:
                value = parameters.get_parameter(name)
            except Exception:
                logger.debug("Could not read parameter %r", name)
                value = None
            yield RecordField(name, value)
        return

    yield from iter_record_fields(parameters)


def iter_named_values(parameters: Any) -> Iterator[tuple[str, Any]]:
    """Yield (name, value) pairs from any supported parameter container."""
    for name, value, _ in iter_parameter_fields(parameters):
        yield name, value


def bind_parameters(parameters: Any) -> dict[str, Any]:
    """Flatten a parameter container into the plain mapping a driver binds."""
    return dict(iter_named_values(parameters))
