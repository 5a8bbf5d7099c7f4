"""http-lifecycle - single-flight HTTP requests with a bounded retry budget.

Architecture::

    lifecycle.py   RequestLifecycle state machine (configure → send → retry → outcome)
    schemas.py     Pydantic request parameters, state enums, default resolution
    transport.py   TransportHandle protocol and the requests-backed transport
    services/      Shared requests session
    config.py      Settings from HTTP_LIFECYCLE_* environment variables
    log.py         structlog setup
    cli.py         Command-line entry point

Plugging in another transport: pass any callable that takes a
``TransportConfig`` and returns a ``TransportHandle`` as
``RequestLifecycle(transport_factory=...)``.
"""

__version__ = "0.1.0"

from http_lifecycle.config import Settings
from http_lifecycle.errors import ConfigurationRejected, InvalidTransition, TransportStateError
from http_lifecycle.lifecycle import RequestLifecycle
from http_lifecycle.schemas import HttpMethod, LifecycleState, ReadyState, RequestConfig, validate_params
from http_lifecycle.transport import RequestsTransport, TransportConfig, TransportEvent, TransportHandle

__all__ = [
    "ConfigurationRejected",
    "HttpMethod",
    "InvalidTransition",
    "LifecycleState",
    "ReadyState",
    "RequestConfig",
    "RequestLifecycle",
    "RequestsTransport",
    "Settings",
    "TransportConfig",
    "TransportEvent",
    "TransportHandle",
    "TransportStateError",
    "__version__",
    "validate_params",
]
