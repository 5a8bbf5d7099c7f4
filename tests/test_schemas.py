"""Tests for request parameter models and default resolution."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from http_lifecycle.errors import ConfigurationRejected
from http_lifecycle.schemas import (
    DEFAULT_TIMEOUT_MS,
    HttpMethod,
    ReadyState,
    RequestConfig,
    resolve_attempts,
    resolve_timeout_ms,
    validate_params,
)


def _noop(_source: Any) -> None:
    return None


@pytest.fixture
def raw() -> dict[str, Any]:
    return {"method": "GET", "url": "https://api.example.com/v1", "success": _noop, "error": _noop}


class TestRequestConfig:
    """Field parsing and validation."""

    def test_minimal(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(raw)
        assert config.method is HttpMethod.GET
        assert config.attempts is None
        assert config.timeout_ms is None
        assert config.headers is None
        assert config.data is None
        assert config.use_credentials is False
        assert config.credentials is None

    def test_camel_case_aliases(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(
            {
                **raw,
                "timeoutMs": 1500,
                "autoEncodeUrl": False,
                "useCredentials": True,
                "credentials": {"username": "u", "password": "p"},
            }
        )
        assert config.timeout_ms == 1500
        assert config.auto_encode_url is False
        assert config.use_credentials is True

    @pytest.mark.parametrize("value", [2.5, "x", "3", True, [1], float("nan")])
    def test_unusable_counts_fall_back_to_unset(self, raw: dict[str, Any], value: Any) -> None:
        config = validate_params({**raw, "attempts": value, "timeoutMs": value})
        assert config.attempts is None
        assert config.timeout_ms is None
        assert resolve_attempts(config.attempts) == 1
        assert resolve_timeout_ms(config.timeout_ms) == DEFAULT_TIMEOUT_MS

    def test_integral_float_counts(self, raw: dict[str, Any]) -> None:
        config = validate_params({**raw, "attempts": 3.0, "timeout_ms": 1200.0})
        assert config.attempts == 3
        assert config.timeout_ms == 1200

    def test_with_credentials_alias(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(
            {**raw, "withCredentials": True, "credentials": {"username": "u", "password": "p"}}
        )
        assert config.use_credentials is True

    def test_password_hidden_in_repr(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(
            {**raw, "use_credentials": True, "credentials": {"username": "u", "password": "hunter2"}}
        )
        assert "hunter2" not in repr(config)
        assert config.credentials is not None
        assert config.credentials.password.get_secret_value() == "hunter2"

    def test_unknown_keys_ignored(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate({**raw, "retryDelay": 10})
        assert not hasattr(config, "retryDelay")

    def test_frozen(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(raw)
        with pytest.raises(ValidationError):
            config.url = "https://other.example.com"  # type: ignore[misc]

    @pytest.mark.parametrize("url", ["http://a", "https://a/b?c=d"])
    def test_accepts_http_schemes(self, raw: dict[str, Any], url: str) -> None:
        assert RequestConfig.model_validate({**raw, "url": url}).url == url

    def test_rejects_non_string_header_value(self, raw: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            RequestConfig.model_validate({**raw, "headers": {"X-Count": 3}})

    def test_auto_encode_url_presence(self, raw: dict[str, Any]) -> None:
        assert not RequestConfig.model_validate(raw).has_auto_encode_url
        assert RequestConfig.model_validate({**raw, "auto_encode_url": None}).has_auto_encode_url
        assert RequestConfig.model_validate({**raw, "auto_encode_url": False}).has_auto_encode_url

    @pytest.mark.parametrize(("data", "expected"), [(None, False), ("", True), ({}, True), (b"x", True)])
    def test_has_payload(self, raw: dict[str, Any], data: Any, expected: bool) -> None:
        assert RequestConfig.model_validate({**raw, "data": data}).has_payload is expected


class TestValidateParams:
    """The validation gate used by RequestLifecycle.configure."""

    def test_returns_config(self, raw: dict[str, Any]) -> None:
        assert validate_params(raw).url == raw["url"]

    def test_passes_config_through(self, raw: dict[str, Any]) -> None:
        config = RequestConfig.model_validate(raw)
        assert validate_params(config) is config

    def test_collects_every_reason(self, raw: dict[str, Any]) -> None:
        with pytest.raises(ConfigurationRejected) as excinfo:
            validate_params({**raw, "method": "PATCH", "url": "ftp://x"})
        fields = {reason.split(":", 1)[0] for reason in excinfo.value.reasons}
        assert fields == {"method", "url"}

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_params({})

    def test_rejects_non_mapping(self) -> None:
        with pytest.raises(ConfigurationRejected, match="expected a mapping"):
            validate_params(None)  # type: ignore[arg-type]

    def test_credentials_reason(self, raw: dict[str, Any]) -> None:
        with pytest.raises(ConfigurationRejected, match="credentials are required"):
            validate_params({**raw, "use_credentials": True})


class TestDefaultResolution:
    """Explicit replacements for truthiness-based defaults."""

    @pytest.mark.parametrize(("value", "expected"), [(None, 1), (0, 1), (-2, 1), (1, 1), (4, 4)])
    def test_resolve_attempts(self, value: int | None, expected: int) -> None:
        assert resolve_attempts(value) == expected

    def test_resolve_attempts_custom_default(self) -> None:
        assert resolve_attempts(None, default=3) == 3

    @pytest.mark.parametrize(("value", "expected"), [(None, 3000), (0, 3000), (-1, 3000), (250, 250)])
    def test_resolve_timeout_ms(self, value: int | None, expected: int) -> None:
        assert resolve_timeout_ms(value) == expected

    def test_default_timeout(self) -> None:
        assert DEFAULT_TIMEOUT_MS == 3000


class TestReadyState:
    """Readiness numbering."""

    def test_values(self) -> None:
        assert [s.value for s in ReadyState] == [0, 1, 2, 3, 4]

    def test_label(self) -> None:
        assert ReadyState.HEADERS_RECEIVED.label == "headers_received"
