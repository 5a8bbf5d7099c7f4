"""
Shared HTTP session for the requests-backed transport.

Retries are owned by ``RequestLifecycle``, which re-sends the whole request
through the same handle. The adapter mounted here therefore performs no
retries of its own, so one lifecycle attempt is exactly one round trip.

Usage::

    from http_lifecycle.services.http import session

    resp = session.get("https://api.example.com/v1/data", timeout=3)
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from http_lifecycle.config import USER_AGENT

#: No adapter-level retries; status codes are left to the transport.
NO_RETRY = Retry(
    total=0,
    read=False,
    raise_on_status=False,
)


def create_session(
    retry: Retry | None = None,
    user_agent: str = USER_AGENT,
) -> requests.Session:
    """
    Build a ``requests.Session`` with the adapter mounted for http and https.

    Args:
        retry: Adapter retry strategy (defaults to ``NO_RETRY``).
        user_agent: Value for the ``User-Agent`` header.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or NO_RETRY)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = user_agent
    return s


#: Module-level session, shared by transports that are not given their own.
session: requests.Session = create_session()
