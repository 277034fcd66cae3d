"""Tests for domain enums and the scope transition map."""

from __future__ import annotations

import pytest

from sqlrelay.domain.errors import (
    InvalidArgumentError,
    InvalidOperationError,
    MissingArgumentError,
    ObjectDisposedError,
    SqlRelayError,
)
from sqlrelay.domain.types import SCOPE_TRANSITIONS, CommandKind, IsolationLevel, ScopeState


class TestEnums:
    def test_isolation_values_are_driver_names(self) -> None:
        assert IsolationLevel.SERIALIZABLE == "SERIALIZABLE"
        assert IsolationLevel.READ_COMMITTED == "READ COMMITTED"

    def test_command_kind_values(self) -> None:
        assert {k.value for k in CommandKind} == {"text", "stored_procedure"}


class TestScopeTransitions:
    def test_every_state_has_an_entry(self) -> None:
        assert set(SCOPE_TRANSITIONS) == {s.value for s in ScopeState}

    def test_disposed_is_terminal(self) -> None:
        assert SCOPE_TRANSITIONS["disposed"] == []

    @pytest.mark.parametrize("state", ["unopened", "open", "transaction_active"])
    def test_every_live_state_can_dispose(self, state: str) -> None:
        assert "disposed" in SCOPE_TRANSITIONS[state]


class TestErrorHierarchy:
    def test_missing_argument_is_value_and_type_error(self) -> None:
        err = MissingArgumentError("transaction")
        assert isinstance(err, InvalidArgumentError)
        assert isinstance(err, ValueError)
        assert isinstance(err, TypeError)
        assert "transaction" in str(err)

    def test_object_disposed_is_invalid_operation(self) -> None:
        err = ObjectDisposedError("DbContext")
        assert isinstance(err, InvalidOperationError)
        assert isinstance(err, RuntimeError)
        assert isinstance(err, SqlRelayError)
