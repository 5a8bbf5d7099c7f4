"""Exception taxonomy for the request lifecycle.

Transport failures are never raised: they arrive as events and either trigger
a retry or reach the caller's ``error`` handler. The exceptions here cover
rejected configuration and programming errors.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class for http_lifecycle errors."""


class ConfigurationRejected(LifecycleError, ValueError):
    """Request parameters failed validation.

    Attributes:
        reasons: One entry per failing field, formatted ``"<field>: <message>"``.
    """

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = reasons
        super().__init__("; ".join(reasons) or "invalid request parameters")


class InvalidTransition(LifecycleError, RuntimeError):
    """The state machine was asked to make a move its transition table forbids."""


class TransportStateError(LifecycleError, RuntimeError):
    """A transport handle method was called in the wrong ready state."""
