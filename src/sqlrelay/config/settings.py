"""Unified settings — init kwargs, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — values passed by the embedding application
  2. Env vars     — ``SQLRELAY_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``sqlrelay.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the walk-up discovery from :mod:`sqlrelay.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from sqlrelay.config.discovery import find_config
from sqlrelay.config.models import DatabaseOptions, SqlLoggingOptions
from sqlrelay.domain.errors import ConfigurationError


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``sqlrelay.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise ConfigurationError(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class SqlRelaySettings(BaseSettings):
    """Process-wide settings for one sqlrelay deployment.

    Attributes:
        url: SQLAlchemy async database URL, e.g.
            ``postgresql+asyncpg://user@host/db``.
        config_path: The TOML file the settings were loaded from, if any.
        database: Connection and command defaults.
        sql_logging: Parameter redaction rules.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SQLRELAY_",
        "env_nested_delimiter": "__",
    }

    url: str | None = None
    config_path: Path | None = None

    # --- Logging flags ---
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    database: DatabaseOptions = Field(default_factory=DatabaseOptions)
    sql_logging: SqlLoggingOptions = Field(default_factory=SqlLoggingOptions)

    # Retained for type-checker visibility; not used at runtime.
    _toml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_file(
        cls,
        config_path: str | Path | None = None,
        *,
        start: Path | None = None,
        **overrides: Any,
    ) -> SqlRelaySettings:
        """Construct settings from an explicit or discovered TOML file.

        Without *config_path*, ``sqlrelay.toml`` is discovered by walking
        up from *start* (default: cwd). *overrides* win over every source.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None
