"""
Transport collaborator for RequestLifecycle.

A transport handle performs the network I/O for one request at a time and
reports the outcome by calling the hooks it was created with. The lifecycle
only talks to the ``TransportHandle`` protocol. ``RequestsTransport`` is the
default implementation, built on the shared requests session.

Hooks receive a ``TransportEvent`` whose ``source`` is the handle itself, so
the receiver can read ``status``/``response_text`` and can tell events of the
current handle apart from stale ones.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import requests
import structlog
from requests.auth import HTTPBasicAuth

from http_lifecycle.errors import TransportStateError
from http_lifecycle.schemas import DEFAULT_TIMEOUT_MS, ReadyState
from http_lifecycle.services.http import session as shared_session

logger = structlog.get_logger(__name__)

Hook = Callable[["TransportEvent"], Any]


@dataclass(frozen=True)
class TransportEvent:
    """Notification delivered to a transport hook."""

    source: TransportHandle


@dataclass
class TransportConfig:
    """Everything a transport needs at creation time."""

    on_load: Hook | None = None
    on_error: Hook | None = None
    on_ready_state_change: Hook | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    use_credentials: bool = False
    username: str | None = None
    password: str | None = None
    # None leaves URL encoding to the transport's default
    auto_encode_url: bool | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class TransportHandle(Protocol):
    """What RequestLifecycle needs from a transport.

    ``set_cache(enabled)`` is optional and looked up with ``getattr``.
    """

    ready_state: ReadyState
    onload: Hook | None
    onerror: Hook | None

    def open(self, method: str, url: str) -> None: ...

    def set_request_header(self, name: str, value: str) -> None: ...

    def send(self, payload: Any = None) -> None: ...

    def abort(self) -> None: ...


TransportFactory = Callable[[TransportConfig], TransportHandle]


class RequestsTransport:
    """TransportHandle backed by a ``requests.Session``.

    ``send`` blocks for the round trip and then calls ``onload`` for a 2xx/3xx
    response, or ``onerror`` for a status >= 400 or any
    ``requests.RequestException`` (timeouts and unpreparable URLs or headers
    included). A hook may re-open and re-send this handle. The nested ``send``
    only records its outcome, and the outermost ``send`` delivers it after the
    running hook returns, so back-to-back retries do not grow the stack.
    """

    def __init__(self, config: TransportConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.onload = config.on_load
        self.onerror = config.on_error
        self.onreadystatechange = config.on_ready_state_change
        self.session = session or shared_session
        self.ready_state = ReadyState.UNSENT
        self.response: requests.Response | None = None
        self.error: requests.RequestException | None = None
        self._method: str | None = None
        self._url: str | None = None
        self._headers: dict[str, str] = {}
        self._cache_enabled = True
        self._aborted = False
        self._pending: str | None = None
        self._dispatching = False

    @property
    def status(self) -> int | None:
        return self.response.status_code if self.response is not None else None

    @property
    def response_text(self) -> str | None:
        return self.response.text if self.response is not None else None

    def open(self, method: str, url: str) -> None:
        self._method = method
        self._url = url
        self._headers = {}
        self.response = None
        self.error = None
        self._aborted = False
        self._set_ready_state(ReadyState.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        self._require_opened("set_request_header")
        self._headers[name] = value

    def set_cache(self, enabled: bool) -> None:
        """Disabling the cache adds ``no-cache`` request headers."""
        self._cache_enabled = enabled

    def send(self, payload: Any = None) -> None:
        self._require_opened("send")
        outcome = self._perform(payload)
        if outcome is None:
            return
        self._set_ready_state(ReadyState.DONE)
        self._pending = outcome
        if self._dispatching:
            # a hook re-sent this handle; the outer send delivers the outcome
            return

        self._dispatching = True
        try:
            while self._pending is not None:
                name, self._pending = self._pending, None
                hook = getattr(self, name)
                if hook is not None:
                    hook(TransportEvent(source=self))
        finally:
            self._dispatching = False
            self._pending = None

    def abort(self) -> None:
        self._aborted = True
        self._pending = None
        if self.response is not None:
            self.response.close()
        self.ready_state = ReadyState.UNSENT

    def _perform(self, payload: Any) -> str | None:
        """Run one round trip. Returns the name of the hook to call, or None once aborted."""
        try:
            prepared = self._prepare(payload)
            response = self.session.send(
                prepared,
                timeout=self.config.timeout_seconds,
                stream=True,
            )
            if self._aborted:
                response.close()
                return None
            self.response = response
            self._set_ready_state(ReadyState.HEADERS_RECEIVED)
            if self._aborted:
                return None
            self._set_ready_state(ReadyState.LOADING)
            _ = response.content
        except requests.RequestException as exc:
            if self._aborted:
                return None
            self.error = exc
            logger.debug("transport_error", url=self._url, error=repr(exc))
            return "onerror"

        if self._aborted:
            return None
        return "onload" if response.ok else "onerror"

    def _prepare(self, payload: Any) -> requests.PreparedRequest:
        headers = dict(self._headers)
        if not self._cache_enabled:
            headers.setdefault("Cache-Control", "no-cache")
            headers.setdefault("Pragma", "no-cache")

        auth = None
        if self.config.use_credentials:
            auth = HTTPBasicAuth(self.config.username or "", self.config.password or "")

        request = requests.Request(
            method=self._method,
            url=self._url,
            headers=headers,
            data=payload,
            auth=auth,
        )
        prepared = self.session.prepare_request(request)
        if self.config.auto_encode_url is False:
            # requests always requotes; put the caller's URL back untouched
            prepared.url = self._url
        return prepared

    def _set_ready_state(self, state: ReadyState) -> None:
        self.ready_state = state
        if self.onreadystatechange is not None:
            self.onreadystatechange(TransportEvent(source=self))

    def _require_opened(self, operation: str) -> None:
        if self.ready_state is not ReadyState.OPENED:
            msg = f"{operation}() requires an opened transport (ready_state={self.ready_state.label})"
            raise TransportStateError(msg)
