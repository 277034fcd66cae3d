"""DatabaseRegistry — named database configurations resolved by string key.

This is the composition root: the only module that wires services and
infrastructure together.

Each registration pairs a connection factory with its option objects and
wires the pipeline once (descriptor factory → executor → orchestrator →
handlers). Scopes created from a registration share that wiring; only the
connection and transaction are per scope.

Usage::

    registry = DatabaseRegistry()
    registry.register("reporting", make_connection_factory(engine), default=True)

    async with registry.scope("reporting") as ctx:
        tx = await ctx.begin_transaction()
        rows = await ctx.queries.query("SELECT 1 AS one", tx)
        await tx.commit()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlrelay.config.models import DatabaseOptions, SqlLoggingOptions
from sqlrelay.domain.errors import InvalidArgumentError, InvalidOperationError, MissingArgumentError
from sqlrelay.domain.types import IsolationLevel
from sqlrelay.infrastructure.database.context import DbContext
from sqlrelay.infrastructure.database.engine import create_db_engine, make_connection_factory
from sqlrelay.services.descriptors import CommandDescriptorFactory
from sqlrelay.services.executor import SqlCommandExecutor
from sqlrelay.services.handlers import SqlCommandHandler, SqlQueryHandler
from sqlrelay.services.orchestrator import SqlExecutionOrchestrator
from sqlrelay.services.redaction import SqlParameterRedactor

if TYPE_CHECKING:
    from sqlrelay.config.settings import SqlRelaySettings
    from sqlrelay.infrastructure.database.protocols import ConnectionFactory

logger = logging.getLogger(__name__)

DEFAULT_NAME = "default"


@dataclass(frozen=True)
class DatabaseRegistration:
    """One named database: its connection factory, options, and pipeline."""

    name: str
    connection_factory: ConnectionFactory
    options: DatabaseOptions
    sql_logging: SqlLoggingOptions
    orchestrator: SqlExecutionOrchestrator = field(repr=False)
    queries: SqlQueryHandler = field(repr=False)
    commands: SqlCommandHandler = field(repr=False)

    @classmethod
    def build(
        cls,
        name: str,
        connection_factory: ConnectionFactory,
        options: DatabaseOptions,
        sql_logging: SqlLoggingOptions,
    ) -> DatabaseRegistration:
        """Wire the pipeline for one database."""
        executor = SqlCommandExecutor(CommandDescriptorFactory(options))
        orchestrator = SqlExecutionOrchestrator(executor, SqlParameterRedactor(sql_logging))
        return cls(
            name=name,
            connection_factory=connection_factory,
            options=options,
            sql_logging=sql_logging,
            orchestrator=orchestrator,
            queries=SqlQueryHandler(orchestrator),
            commands=SqlCommandHandler(orchestrator),
        )

    def create_context(self) -> DbContext:
        """A new, unopened scope for this database."""
        return DbContext(
            self.connection_factory,
            self.options,
            queries=self.queries,
            commands=self.commands,
        )


class DatabaseRegistry:
    """String-keyed registry of database registrations.

    The first registration becomes the default unless a later one is
    registered with ``default=True``.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, DatabaseRegistration] = {}
        self._default_name: str | None = None

    @property
    def default_name(self) -> str | None:
        return self._default_name

    def names(self) -> list[str]:
        return list(self._registrations)

    def register(
        self,
        name: str,
        connection_factory: ConnectionFactory,
        options: DatabaseOptions | None = None,
        *,
        sql_logging: SqlLoggingOptions | None = None,
        default: bool = False,
    ) -> DatabaseRegistration:
        """Register *name*; raises ``InvalidOperationError`` if already registered."""
        if name is None or not name.strip():
            raise InvalidArgumentError("Database name must not be None or empty.")
        if connection_factory is None:
            raise MissingArgumentError("connection_factory")
        if name in self._registrations:
            msg = f"Database {name!r} is already registered"
            raise InvalidOperationError(msg)

        registration = DatabaseRegistration.build(
            name,
            connection_factory,
            options or DatabaseOptions(),
            sql_logging or SqlLoggingOptions(),
        )
        self._registrations[name] = registration
        if default or self._default_name is None:
            self._default_name = name
        logger.debug("Registered database %s (default=%s)", name, self._default_name == name)
        return registration

    def get(self, name: str | None = None) -> DatabaseRegistration:
        """Return the registration for *name*, or the default when None.

        Raises:
            KeyError: *name* is not registered (or no default exists).
        """
        key = name if name is not None else self._default_name
        if key is None or key not in self._registrations:
            msg = f"No database registered under {key!r}"
            raise KeyError(msg)
        return self._registrations[key]

    def create_context(self, name: str | None = None) -> DbContext:
        return self.get(name).create_context()

    @asynccontextmanager
    async def scope(self, name: str | None = None) -> AsyncIterator[DbContext]:
        """Yield a fresh scope and dispose it on every exit path."""
        async with self.create_context(name) as ctx:
            yield ctx

    @classmethod
    def from_settings(
        cls,
        settings: SqlRelaySettings,
        name: str = DEFAULT_NAME,
    ) -> DatabaseRegistry:
        """Build a registry with one database from *settings*.

        SQLite accepts only ``SERIALIZABLE`` and ``READ UNCOMMITTED``. For a
        SQLite URL whose options leave ``default_isolation_level`` unset, the
        default becomes ``SERIALIZABLE``; an explicitly configured level is
        kept as is.

        Raises:
            InvalidArgumentError: ``settings.url`` is not set.
        """
        if not settings.url:
            raise InvalidArgumentError("settings.url must be set to build a registry")

        registry = cls()
        engine = create_db_engine(settings.url)
        options = settings.database
        if (
            engine.dialect.name == "sqlite"
            and "default_isolation_level" not in options.model_fields_set
        ):
            options = options.model_copy(
                update={"default_isolation_level": IsolationLevel.SERIALIZABLE}
            )
            logger.debug("SQLite database %s defaults to SERIALIZABLE isolation", name)

        registry.register(
            name,
            make_connection_factory(engine),
            options,
            sql_logging=settings.sql_logging,
            default=True,
        )
        return registry
