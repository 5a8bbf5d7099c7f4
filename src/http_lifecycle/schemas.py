"""
Domain models for the request lifecycle.

Pydantic models validate caller-supplied request parameters. The enums name
the lifecycle states and the transport readiness states.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from enum import IntEnum, StrEnum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from http_lifecycle.errors import ConfigurationRejected

DEFAULT_ATTEMPTS = 1
DEFAULT_TIMEOUT_MS = 3000

_URL_SCHEME = re.compile(r"^https?://")


# =============================================================================
# Enums
# =============================================================================


class HttpMethod(StrEnum):
    """Methods a lifecycle will issue. Matching is case-sensitive."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class LifecycleState(StrEnum):
    """Where a RequestLifecycle is in its configure → send → outcome cycle."""

    IDLE = "idle"
    CONFIGURED = "configured"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ReadyState(IntEnum):
    """Transport readiness, numbered like XMLHttpRequest.readyState."""

    UNSENT = 0
    OPENED = 1
    HEADERS_RECEIVED = 2
    LOADING = 3
    DONE = 4

    @property
    def label(self) -> str:
        return self.name.lower()


# =============================================================================
# Request parameters
# =============================================================================


class Credentials(BaseModel):
    """Username/password pair for HTTP basic auth."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


class RequestConfig(BaseModel):
    """Validated, immutable parameters for one logical request.

    Accepts snake_case field names as well as the camelCase spelling
    (``timeoutMs``, ``autoEncodeUrl``...). ``withCredentials`` is accepted as
    another name for ``use_credentials``. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    method: HttpMethod
    url: str
    success: Callable[[Any], Any] = Field(..., repr=False)
    error: Callable[[Any], Any] = Field(..., repr=False)
    attempts: int | None = None
    timeout_ms: int | None = None
    headers: dict[str, str] | None = None
    data: Any = None
    use_credentials: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_credentials", "useCredentials", "withCredentials"),
    )
    credentials: Credentials | None = None
    auto_encode_url: bool | None = None

    @field_validator("attempts", "timeout_ms", mode="before")
    @classmethod
    def _whole_number_or_unset(cls, value: Any) -> Any:
        """Anything that is not a whole number counts as unset, so the default applies."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        if not _URL_SCHEME.match(value):
            msg = f"url must start with http:// or https://, got {value!r}"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_credentials(self) -> RequestConfig:
        if self.use_credentials and self.credentials is None:
            msg = "credentials are required when use_credentials is set"
            raise ValueError(msg)
        return self

    @property
    def has_auto_encode_url(self) -> bool:
        """True if the caller supplied ``auto_encode_url``, even as None or False."""
        return "auto_encode_url" in self.model_fields_set

    @property
    def has_payload(self) -> bool:
        return self.data is not None


def validate_params(params: Mapping[str, Any] | RequestConfig) -> RequestConfig:
    """Validate raw request parameters.

    Raises:
        ConfigurationRejected: With one reason per failing field.
    """
    if isinstance(params, RequestConfig):
        return params
    if not isinstance(params, Mapping):
        raise ConfigurationRejected([f"params: expected a mapping, got {type(params).__name__}"])
    try:
        return RequestConfig.model_validate(dict(params))
    except ValidationError as exc:
        reasons = [
            f"{'.'.join(str(part) for part in err['loc']) or 'params'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ConfigurationRejected(reasons) from exc


def resolve_attempts(value: int | None, default: int = DEFAULT_ATTEMPTS) -> int:
    """Effective attempt budget: ``value`` when positive, otherwise ``default``."""
    if value is not None and value > 0:
        return value
    return default


def resolve_timeout_ms(value: int | None, default: int = DEFAULT_TIMEOUT_MS) -> int:
    """Effective timeout: ``value`` when positive, otherwise ``default``.

    Zero counts as unset, so ``timeout_ms=0`` means the default rather than
    "no timeout".
    """
    if value is not None and value > 0:
        return value
    return default
