"""Tests for SqlParameterRedactor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest
from pydantic import BaseModel, Field

from sqlrelay.config.models import SqlLoggingOptions
from sqlrelay.domain.parameters import DynamicParameters, RecordField, sensitive_field
from sqlrelay.services.redaction import SqlParameterRedactor

PLACEHOLDER = "***REDACTED***"


def make_redactor(*fragments: str, partial: bool = False, placeholder: str = PLACEHOLDER):
    return SqlParameterRedactor(
        SqlLoggingOptions(
            redact_parameters=frozenset(fragments),
            redaction_placeholder=placeholder,
            enable_partial_redaction=partial,
        )
    )


@dataclass
class Credentials:
    username: str
    password: str
    note: str = sensitive_field(default="")


class Profile(BaseModel):
    email: str
    ssn: str = Field(default="", json_schema_extra={"sensitive": True})


class TestIsSensitive:
    @pytest.mark.parametrize("name", ["password", "PASSWORD", "UserPassword", "old_password_hash"])
    def test_substring_case_insensitive(self, name: str) -> None:
        assert make_redactor("Password").is_sensitive(name) is True

    def test_any_fragment_matches(self) -> None:
        redactor = make_redactor("password", "token")
        assert redactor.is_sensitive("refresh_token") is True
        assert redactor.is_sensitive("username") is False

    def test_no_fragments_nothing_sensitive(self) -> None:
        assert make_redactor().is_sensitive("password") is False


class TestApplyRedaction:
    def test_full_mode_always_placeholder(self) -> None:
        redactor = make_redactor("x")
        assert redactor.apply_redaction("supersecret") == PLACEHOLDER
        assert redactor.apply_redaction(1234) == PLACEHOLDER
        assert redactor.apply_redaction(None) == PLACEHOLDER

    def test_partial_long_string_keeps_three_chars(self) -> None:
        assert make_redactor("x", partial=True).apply_redaction("abcde") == "abc" + PLACEHOLDER

    @pytest.mark.parametrize("value", ["ab", "abc", ""])
    def test_partial_short_string_placeholder_only(self, value: str) -> None:
        assert make_redactor("x", partial=True).apply_redaction(value) == PLACEHOLDER

    def test_partial_non_string_placeholder_only(self) -> None:
        assert make_redactor("x", partial=True).apply_redaction(123456) == PLACEHOLDER

    def test_custom_placeholder(self) -> None:
        redactor = make_redactor("x", partial=True, placeholder="[hidden]")
        assert redactor.apply_redaction("hunter2") == "hun[hidden]"


class TestRedactMapping:
    def test_none_returns_empty(self) -> None:
        assert make_redactor("password").redact(None) == {}

    def test_same_keys_sensitive_replaced(self) -> None:
        params = {"UserName": "ada", "Password": "hunter2", "api_token": "t-1", "age": 36}
        result = make_redactor("password", "token").redact(params)
        assert result == {
            "UserName": "ada",
            "Password": PLACEHOLDER,
            "api_token": PLACEHOLDER,
            "age": 36,
        }

    def test_input_not_mutated(self) -> None:
        params = {"password": "hunter2"}
        result = make_redactor("password").redact(params)
        assert params == {"password": "hunter2"}
        assert result is not params

    def test_none_keys_skipped(self) -> None:
        params: dict[Any, Any] = {None: "x", "a": 1}
        assert make_redactor("a").redact(params) == {"a": PLACEHOLDER}

    def test_partial_mode(self) -> None:
        result = make_redactor("password", partial=True).redact(
            {"password": "hunter2", "password2": "ab"}
        )
        assert result == {"password": "hun" + PLACEHOLDER, "password2": PLACEHOLDER}


class TestRedactDynamicParameters:
    def test_names_enumerated_and_redacted(self) -> None:
        params = DynamicParameters()
        params.add("@Id", 1)
        params.add("@Password", "hunter2")
        assert make_redactor("password").redact(params) == {"Id": 1, "Password": PLACEHOLDER}

    def test_lookup_failure_reports_none(self) -> None:
        class Flaky:
            def parameter_names(self) -> list[str]:
                return ["id", "token"]

            def get_parameter(self, name: str) -> Any:
                raise RuntimeError("gone")

        result = make_redactor("nothing").redact(Flaky())
        assert result == {"id": None, "token": None}


class TestRedactRecord:
    def test_dataclass_name_and_tag(self) -> None:
        result = make_redactor("password").redact(
            Credentials(username="ada", password="hunter2", note="private")
        )
        assert result == {"username": "ada", "password": PLACEHOLDER, "note": PLACEHOLDER}

    def test_pydantic_tag_without_name_match(self) -> None:
        result = make_redactor().redact(Profile(email="a@b.c", ssn="123-45-6789"))
        assert result == {"email": "a@b.c", "ssn": PLACEHOLDER}

    def test_plain_object(self) -> None:
        class Anonymous:
            def __init__(self) -> None:
                self.user = "ada"
                self.secret_key = "k"

        result = make_redactor("secret").redact(Anonymous())
        assert result == {"user": "ada", "secret_key": PLACEHOLDER}

    def test_unreadable_property_reported_as_none(self) -> None:
        class Broken:
            @property
            def value(self) -> str:
                raise ValueError("no")

        assert make_redactor().redact(Broken()) == {"value": None}

    def test_record_field_provider_tag(self) -> None:
        class Described:
            def iter_fields(self) -> list[RecordField]:
                return [RecordField("api_key", "k-1", True), RecordField("region", "eu")]

        assert make_redactor().redact(Described()) == {"api_key": PLACEHOLDER, "region": "eu"}
