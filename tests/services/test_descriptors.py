"""Tests for CommandDescriptorFactory."""

from __future__ import annotations

import dataclasses

import pytest

from sqlrelay.config.models import DatabaseOptions
from sqlrelay.domain.cancellation import CancellationToken
from sqlrelay.domain.errors import InvalidArgumentError
from sqlrelay.domain.requests import SqlRequestOptions
from sqlrelay.domain.types import CommandKind
from sqlrelay.services.descriptors import CommandDescriptorFactory
from tests.fakes import FakeTransaction


class TestBuild:
    def test_binds_everything(self, fake_transaction: FakeTransaction) -> None:
        token = CancellationToken()
        params = {"id": 1}
        descriptor = CommandDescriptorFactory(DatabaseOptions()).build(
            "SELECT 1",
            fake_transaction,
            SqlRequestOptions(parameters=params, timeout=3, kind=CommandKind.STORED_PROCEDURE),
            token,
        )
        assert descriptor.text == "SELECT 1"
        assert descriptor.parameters is params
        assert descriptor.transaction is fake_transaction
        assert descriptor.timeout == 3
        assert descriptor.kind is CommandKind.STORED_PROCEDURE
        assert descriptor.cancellation is token

    def test_missing_parameters_rejected(self, fake_transaction: FakeTransaction) -> None:
        with pytest.raises(InvalidArgumentError, match="parameters"):
            CommandDescriptorFactory().build("SELECT 1", fake_transaction, SqlRequestOptions.NONE)

    def test_empty_request_accepted(self, fake_transaction: FakeTransaction) -> None:
        descriptor = CommandDescriptorFactory().build(
            "SELECT 1", fake_transaction, SqlRequestOptions.EMPTY
        )
        assert dict(descriptor.parameters) == {}
        assert descriptor.kind is CommandKind.TEXT
        assert descriptor.cancellation.is_cancelled is False


class TestTimeoutResolution:
    def test_request_timeout_wins(self, fake_transaction: FakeTransaction) -> None:
        factory = CommandDescriptorFactory(DatabaseOptions(default_timeout=30))
        descriptor = factory.build(
            "SELECT 1", fake_transaction, SqlRequestOptions(parameters={}, timeout=5)
        )
        assert descriptor.timeout == 5

    def test_default_applies_when_omitted(self, fake_transaction: FakeTransaction) -> None:
        factory = CommandDescriptorFactory(DatabaseOptions(default_timeout=30))
        descriptor = factory.build("SELECT 1", fake_transaction, SqlRequestOptions(parameters={}))
        assert descriptor.timeout == 30

    def test_no_timeout_anywhere(self, fake_transaction: FakeTransaction) -> None:
        descriptor = CommandDescriptorFactory().build(
            "SELECT 1", fake_transaction, SqlRequestOptions(parameters={})
        )
        assert descriptor.timeout is None


class TestImmutability:
    def test_descriptor_is_frozen(self, fake_transaction: FakeTransaction) -> None:
        descriptor = CommandDescriptorFactory().build(
            "SELECT 1", fake_transaction, SqlRequestOptions.EMPTY
        )
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.text = "DROP TABLE users"  # type: ignore[misc]
