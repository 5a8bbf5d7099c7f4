"""Shared fixtures: an in-memory transport and a lifecycle wired to it."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from http_lifecycle.config import Settings, reset_settings
from http_lifecycle.lifecycle import RequestLifecycle
from http_lifecycle.schemas import ReadyState
from http_lifecycle.transport import TransportConfig, TransportEvent


class FakeTransport:
    """TransportHandle that records calls; tests deliver outcomes by hand."""

    def __init__(self, config: TransportConfig) -> None:
        self.config = config
        self.onload = config.on_load
        self.onerror = config.on_error
        self.onreadystatechange = config.on_ready_state_change
        self.ready_state = ReadyState.UNSENT
        self.calls: list[tuple[Any, ...]] = []
        self.headers: dict[str, str] = {}
        self.payloads: list[tuple[Any, ...]] = []
        self.status: int | None = None
        self.response_text: str | None = None
        self.error: Exception | None = None

    @property
    def send_count(self) -> int:
        return len(self.payloads)

    @property
    def abort_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "abort")

    def open(self, method: str, url: str) -> None:
        self.calls.append(("open", method, url))
        self.headers = {}
        self._set_ready_state(ReadyState.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        self.calls.append(("header", name, value))
        self.headers[name] = value

    def set_cache(self, enabled: bool) -> None:
        self.calls.append(("set_cache", enabled))

    def send(self, *args: Any) -> None:
        self.calls.append(("send", *args))
        self.payloads.append(args)

    def abort(self) -> None:
        self.calls.append(("abort",))
        self.ready_state = ReadyState.UNSENT

    def succeed(self, status: int = 200, text: str = "ok") -> None:
        self.status = status
        self.response_text = text
        self._set_ready_state(ReadyState.DONE)
        if self.onload is not None:
            self.onload(TransportEvent(source=self))

    def fail(self, status: int | None = 503, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self._set_ready_state(ReadyState.DONE)
        if self.onerror is not None:
            self.onerror(TransportEvent(source=self))

    def _set_ready_state(self, state: ReadyState) -> None:
        self.ready_state = state
        if self.onreadystatechange is not None:
            self.onreadystatechange(TransportEvent(source=self))


class ScriptedTransport(FakeTransport):
    """Answers each send immediately from a script of "ok"/"fail" outcomes."""

    def __init__(self, config: TransportConfig, script: list[str]) -> None:
        super().__init__(config)
        self.script = script

    def send(self, *args: Any) -> None:
        super().send(*args)
        outcome = self.script[len(self.payloads) - 1]
        if outcome == "ok":
            self.succeed()
        else:
            self.fail()


class Recorder:
    """Callable that remembers every source it was called with."""

    def __init__(self) -> None:
        self.calls: list[Any] = []

    def __call__(self, source: Any) -> None:
        self.calls.append(source)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("DEFAULT_ATTEMPTS", "DEFAULT_TIMEOUT_MS", "DISABLE_CACHE", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(f"HTTP_LIFECYCLE_{name}", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def transports() -> list[FakeTransport]:
    """Every FakeTransport created by the ``factory`` fixture, in order."""
    return []


@pytest.fixture
def factory(transports: list[FakeTransport]) -> Callable[[TransportConfig], FakeTransport]:
    def make(config: TransportConfig) -> FakeTransport:
        transport = FakeTransport(config)
        transports.append(transport)
        return transport

    return make


@pytest.fixture
def lifecycle(factory: Callable[[TransportConfig], FakeTransport], settings: Settings) -> RequestLifecycle:
    return RequestLifecycle(transport_factory=factory, settings=settings)


@pytest.fixture
def success() -> Recorder:
    return Recorder()


@pytest.fixture
def error() -> Recorder:
    return Recorder()


@pytest.fixture
def params(success: Recorder, error: Recorder) -> dict[str, Any]:
    return {
        "method": "GET",
        "url": "http://x/y",
        "success": success,
        "error": error,
    }
