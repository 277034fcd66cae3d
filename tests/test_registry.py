"""Tests for DatabaseRegistry."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from sqlrelay.config.models import DatabaseOptions, SqlLoggingOptions
from sqlrelay.config.settings import SqlRelaySettings
from sqlrelay.domain.errors import InvalidArgumentError, InvalidOperationError, MissingArgumentError
from sqlrelay.domain.types import IsolationLevel, ScopeState
from sqlrelay.infrastructure.database.context import DbContext
from sqlrelay.infrastructure.database.engine import SqlAlchemyConnection, make_connection_factory
from sqlrelay.registry import DEFAULT_NAME, DatabaseRegistry
from tests.fakes import SQLITE_OPTIONS, CountingFactory


class TestRegister:
    def test_first_registration_is_default(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        registry.register("reporting", CountingFactory())
        assert registry.default_name == "primary"
        assert registry.names() == ["primary", "reporting"]

    def test_explicit_default(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        registry.register("reporting", CountingFactory(), default=True)
        assert registry.default_name == "reporting"
        assert registry.get().name == "reporting"

    def test_duplicate_rejected(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        with pytest.raises(InvalidOperationError, match="already registered"):
            registry.register("primary", connection_factory)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_rejected(self, name: str, connection_factory: CountingFactory) -> None:
        with pytest.raises(InvalidArgumentError):
            DatabaseRegistry().register(name, connection_factory)

    def test_missing_factory_rejected(self) -> None:
        with pytest.raises(MissingArgumentError):
            DatabaseRegistry().register("primary", None)  # type: ignore[arg-type]

    def test_options_default_when_omitted(self, connection_factory: CountingFactory) -> None:
        registration = DatabaseRegistry().register("primary", connection_factory)
        assert registration.options == DatabaseOptions()
        assert registration.sql_logging == SqlLoggingOptions()

    def test_handlers_share_one_orchestrator(self, connection_factory: CountingFactory) -> None:
        registration = DatabaseRegistry().register("primary", connection_factory)
        assert registration.queries._orchestrator is registration.orchestrator
        assert registration.commands._orchestrator is registration.orchestrator


class TestLookup:
    def test_unknown_name(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        with pytest.raises(KeyError, match="missing"):
            registry.get("missing")

    def test_empty_registry_has_no_default(self) -> None:
        with pytest.raises(KeyError):
            DatabaseRegistry().get()

    def test_each_context_is_fresh(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registration = registry.register("primary", connection_factory)
        first = registry.create_context("primary")
        second = registry.create_context()
        assert isinstance(first, DbContext)
        assert first is not second
        assert first.queries is registration.queries
        assert first.commands is registration.commands


class TestScope:
    async def test_scope_disposes(
        self, connection_factory: CountingFactory, events: list[str]
    ) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        async with registry.scope("primary") as ctx:
            tx = await ctx.begin_transaction()
            assert tx.isolation_level is IsolationLevel.READ_COMMITTED
        assert ctx.state is ScopeState.DISPOSED
        assert events[-2:] == ["transaction.aclose", "connection.aclose"]

    async def test_scope_disposes_on_error(self, connection_factory: CountingFactory) -> None:
        registry = DatabaseRegistry()
        registry.register("primary", connection_factory)
        with pytest.raises(RuntimeError):
            async with registry.scope() as ctx:
                raise RuntimeError("boom")
        assert ctx.is_disposed

    async def test_real_database(self, sqlite_engine: AsyncEngine) -> None:
        registry = DatabaseRegistry()
        registry.register("app", make_connection_factory(sqlite_engine), SQLITE_OPTIONS)
        async with registry.scope("app") as ctx:
            tx = await ctx.begin_transaction()
            assert isinstance(ctx.connection, SqlAlchemyConnection)
            names = await ctx.queries.query("SELECT name FROM users ORDER BY id", tx)
            await tx.commit()
        assert names == [{"name": "ada"}, {"name": "grace"}]


class TestFromSettings:
    def test_requires_url(self) -> None:
        with pytest.raises(InvalidArgumentError, match="url"):
            DatabaseRegistry.from_settings(SqlRelaySettings())

    async def test_builds_default_registration(self, tmp_path) -> None:
        settings = SqlRelaySettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
            database=SQLITE_OPTIONS,
            sql_logging=SqlLoggingOptions(redact_parameters=frozenset({"secret"})),
        )
        registry = DatabaseRegistry.from_settings(settings)
        assert registry.default_name == DEFAULT_NAME
        registration = registry.get()
        assert registration.options == SQLITE_OPTIONS
        assert registration.sql_logging.redact_parameters == frozenset({"secret"})

        async with registry.scope() as ctx:
            tx = await ctx.begin_transaction()
            value = await ctx.commands.execute_scalar("SELECT 40 + 2", tx)
            connection = ctx.connection
        assert value == 42
        assert isinstance(connection, SqlAlchemyConnection)
        await connection._engine.dispose()

    async def test_sqlite_default_isolation_is_serializable(self, tmp_path) -> None:
        registry = DatabaseRegistry.from_settings(
            SqlRelaySettings(url=f"sqlite+aiosqlite:///{tmp_path / 'plain.db'}")
        )
        registration = registry.get()
        assert registration.options.default_isolation_level is IsolationLevel.SERIALIZABLE

        async with registry.scope() as ctx:
            tx = await ctx.begin_transaction()
            assert tx.isolation_level is IsolationLevel.SERIALIZABLE
            assert await ctx.commands.execute_scalar("SELECT 1", tx) == 1
            connection = ctx.connection
        await connection._engine.dispose()

    async def test_explicit_isolation_level_kept_for_sqlite(self, tmp_path) -> None:
        options = DatabaseOptions(default_isolation_level=IsolationLevel.READ_UNCOMMITTED)
        registry = DatabaseRegistry.from_settings(
            SqlRelaySettings(url=f"sqlite+aiosqlite:///{tmp_path / 'dirty.db'}", database=options)
        )
        registration = registry.get()
        assert registration.options.default_isolation_level is IsolationLevel.READ_UNCOMMITTED
        await registration.connection_factory()._engine.dispose()
