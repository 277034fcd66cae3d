"""Shared pytest fixtures for sqlrelay tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from sqlrelay.config.models import DatabaseOptions, SqlLoggingOptions
from sqlrelay.domain.types import IsolationLevel
from sqlrelay.infrastructure.database.engine import create_db_engine
from sqlrelay.services.descriptors import CommandDescriptorFactory
from sqlrelay.services.executor import SqlCommandExecutor
from sqlrelay.services.orchestrator import SqlExecutionOrchestrator
from sqlrelay.services.redaction import SqlParameterRedactor
from tests.fakes import CountingFactory, FakeConnection, FakeTransaction


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None]:
    """Leave structlog at its defaults after every test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def connection_factory(events: list[str]) -> CountingFactory:
    return CountingFactory(events)


@pytest.fixture
def fake_connection(events: list[str]) -> FakeConnection:
    return FakeConnection(events)


@pytest.fixture
def fake_transaction(fake_connection: FakeConnection, events: list[str]) -> FakeTransaction:
    """A live transaction on an open fake connection."""
    return FakeTransaction(fake_connection, IsolationLevel.READ_COMMITTED, events)


@pytest.fixture
def logging_options() -> SqlLoggingOptions:
    return SqlLoggingOptions(redact_parameters=frozenset({"password", "token"}))


@pytest.fixture
def orchestrator(logging_options: SqlLoggingOptions) -> SqlExecutionOrchestrator:
    """Fully wired pipeline with default database options."""
    executor = SqlCommandExecutor(CommandDescriptorFactory(DatabaseOptions()))
    return SqlExecutionOrchestrator(executor, SqlParameterRedactor(logging_options))


# ---------------------------------------------------------------------------
# SQLite integration fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """File-backed SQLite engine with a ``users`` table."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TABLE users ("
                "id INTEGER PRIMARY KEY, "
                "name TEXT NOT NULL, "
                "password TEXT NOT NULL)"
            )
        )
        await conn.execute(
            text("INSERT INTO users (id, name, password) VALUES (:id, :name, :password)"),
            [
                {"id": 1, "name": "ada", "password": "hunter2"},
                {"id": 2, "name": "grace", "password": "cobol"},
            ],
        )
    try:
        yield engine
    finally:
        await engine.dispose()
