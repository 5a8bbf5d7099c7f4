"""
Single-request lifecycle with a bounded retry budget.

A ``RequestLifecycle`` is configured once, sends through one transport
handle, and finishes by calling exactly one of the caller's handlers::

    lifecycle = RequestLifecycle()
    lifecycle.configure(
        {
            "method": "GET",
            "url": "https://api.example.com/v1/items",
            "success": on_success,
            "error": on_error,
            "attempts": 3,
        }
    )
    lifecycle.send()

State flow::

    IDLE -> CONFIGURED -> IN_FLIGHT -> SUCCEEDED -> IDLE
                              |   ^
                              v   |
                            RETRYING      (attempts left)
                              |
                              +--------> FAILED -> IDLE   (budget spent)

Failures of any kind (timeout, status >= 400, connection error) cost one
attempt. Retries are issued back to back with no delay. Once the outcome is
terminal the request state is cleared and the instance can be configured
again.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from http_lifecycle.config import Settings, get_settings
from http_lifecycle.errors import ConfigurationRejected, InvalidTransition
from http_lifecycle.schemas import (
    LifecycleState,
    ReadyState,
    RequestConfig,
    resolve_attempts,
    resolve_timeout_ms,
    validate_params,
)
from http_lifecycle.transport import (
    RequestsTransport,
    TransportConfig,
    TransportEvent,
    TransportFactory,
    TransportHandle,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Any]

_S = LifecycleState

# Moving back to IDLE is always allowed (reset/teardown).
_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    _S.IDLE: frozenset({_S.IDLE, _S.CONFIGURED}),
    _S.CONFIGURED: frozenset({_S.IDLE, _S.IN_FLIGHT}),
    _S.IN_FLIGHT: frozenset({_S.IDLE, _S.IN_FLIGHT, _S.RETRYING, _S.SUCCEEDED, _S.FAILED}),
    _S.RETRYING: frozenset({_S.IDLE, _S.IN_FLIGHT}),
    _S.SUCCEEDED: frozenset({_S.IDLE}),
    _S.FAILED: frozenset({_S.IDLE}),
}


class RequestLifecycle:
    """Validates, sends and retries one logical request at a time."""

    def __init__(
        self,
        transport_factory: TransportFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._transport_factory: TransportFactory = transport_factory or RequestsTransport
        self._settings = settings or get_settings()
        self._state = LifecycleState.IDLE
        self._config: RequestConfig | None = None
        self._remaining_attempts: int | None = None
        self._transport: TransportHandle | None = None
        self._on_success: Handler | None = None
        self._on_error: Handler | None = None
        self._completed = False
        self._rejection_reason: str | None = None

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def remaining_attempts(self) -> int | None:
        return self._remaining_attempts

    @property
    def config(self) -> RequestConfig | None:
        return self._config

    @property
    def transport(self) -> TransportHandle | None:
        return self._transport

    @property
    def on_success(self) -> Handler | None:
        return self._on_success

    @property
    def on_error(self) -> Handler | None:
        return self._on_error

    @property
    def rejection_reason(self) -> str | None:
        """Why the most recent ``configure`` call returned False, if it did."""
        return self._rejection_reason

    # -------------------------------------------------------------------------
    # Caller operations
    # -------------------------------------------------------------------------

    def configure(self, params: Mapping[str, Any] | RequestConfig) -> bool:
        """
        Validate ``params`` and prepare a transport for them.

        Returns False, leaving the request state untouched, if the instance is
        already initialized or the parameters are invalid. The reason is kept
        in ``rejection_reason``.
        """
        if self.is_initialized:
            self._rejection_reason = "lifecycle is already initialized"
            logger.warning("configure_rejected", reason=self._rejection_reason, state=self._state.value)
            return False

        try:
            config = validate_params(params)
        except ConfigurationRejected as exc:
            self._rejection_reason = str(exc)
            logger.warning("configure_rejected", reasons=exc.reasons)
            return False

        transport = self._transport_factory(self._transport_config(config))

        self._rejection_reason = None
        self._remaining_attempts = resolve_attempts(config.attempts, self._settings.default_attempts)
        self._on_success = config.success
        self._on_error = config.error
        self._completed = False
        self._transport = transport
        self._config = config
        self._transition(LifecycleState.CONFIGURED)
        logger.debug(
            "configured",
            method=config.method.value,
            url=config.url,
            attempts=self._remaining_attempts,
        )
        return True

    def send(self) -> None:
        """Issue one attempt. Logs a warning and does nothing before ``configure``."""
        config = self._config
        transport = self._transport
        if config is None or transport is None or self._remaining_attempts is None:
            logger.warning("send_before_configure")
            return

        self._transition(LifecycleState.IN_FLIGHT)

        # a stray earlier operation must not complete into this attempt
        transport.abort()

        if self._settings.disable_cache:
            set_cache = getattr(transport, "set_cache", None)
            if callable(set_cache):
                set_cache(False)

        transport.open(config.method.value, config.url)
        for name, value in (config.headers or {}).items():
            transport.set_request_header(name, value)

        self._remaining_attempts = max(self._remaining_attempts - 1, 0)
        logger.debug(
            "attempt_sent",
            method=config.method.value,
            url=config.url,
            remaining_attempts=self._remaining_attempts,
        )

        if config.has_payload:
            transport.send(config.data)
        else:
            transport.send()

    def reset(self) -> None:
        """
        Clear the request state: config, attempt budget and transport.

        The handlers stay in place. ``teardown`` is the call that drops them.
        """
        self._remaining_attempts = None
        self._transport = None
        self._config = None
        self._transition(LifecycleState.IDLE)

    def teardown(self) -> None:
        """Detach and abort the transport, drop the handlers, then reset. Safe to repeat."""
        transport = self._transport
        if transport is not None:
            transport.onload = None
            transport.onerror = None
            transport.abort()
        self._on_success = None
        self._on_error = None
        self.reset()

    # -------------------------------------------------------------------------
    # Transport hooks
    # -------------------------------------------------------------------------

    def _handle_success(self, event: TransportEvent) -> None:
        if not self._accepts(event, "success"):
            return
        self._transition(LifecycleState.SUCCEEDED)
        self._completed = True
        logger.info("request_succeeded", **self._log_context())
        self.reset()
        if self._on_success is not None:
            self._on_success(event.source)

    def _handle_error(self, event: TransportEvent) -> None:
        if not self._accepts(event, "error"):
            return
        if (self._remaining_attempts or 0) <= 0:
            self._transition(LifecycleState.FAILED)
            self._completed = True
            logger.info("request_failed", **self._log_context())
            self.reset()
            if self._on_error is not None:
                self._on_error(event.source)
            return

        self._transition(LifecycleState.RETRYING)
        logger.info("retrying", **self._log_context(), remaining_attempts=self._remaining_attempts)
        self.send()

    def _observe_ready_state(self, event: TransportEvent) -> None:
        try:
            ready_state = ReadyState(getattr(event.source, "ready_state", None))
        except ValueError:
            return
        logger.debug("ready_state_change", ready_state=int(ready_state), label=ready_state.label)

    def _accepts(self, event: TransportEvent, kind: str) -> bool:
        """Only the live handle, mid-attempt and before completion, may finish a cycle."""
        if self._completed or self._state is not LifecycleState.IN_FLIGHT or event.source is not self._transport:
            logger.debug("stale_transport_event", kind=kind, state=self._state.value)
            return False
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _transport_config(self, config: RequestConfig) -> TransportConfig:
        transport_config = TransportConfig(
            on_load=self._handle_success,
            on_error=self._handle_error,
            on_ready_state_change=self._observe_ready_state,
            timeout_ms=resolve_timeout_ms(config.timeout_ms, self._settings.default_timeout_ms),
        )
        if config.use_credentials and config.credentials is not None:
            transport_config.use_credentials = True
            transport_config.username = config.credentials.username
            transport_config.password = config.credentials.password.get_secret_value()
        if config.has_auto_encode_url:
            transport_config.auto_encode_url = config.auto_encode_url
        return transport_config

    def _log_context(self) -> dict[str, Any]:
        if self._config is None:
            return {}
        return {"method": self._config.method.value, "url": self._config.url}

    def _transition(self, target: LifecycleState) -> None:
        if target not in _TRANSITIONS[self._state]:
            msg = f"cannot move from {self._state.value} to {target.value}"
            raise InvalidTransition(msg)
        self._state = target
