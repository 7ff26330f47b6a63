"""
Shared HTTP client for outbound notifications.

Centralizes httpx client creation with sensible defaults, connection pooling,
timeouts, and a consistent User-Agent.
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

DEFAULT_TIMEOUT = float(os.getenv("GOV_HTTP_TIMEOUT", "10"))
DEFAULT_CONNECT_TIMEOUT = float(os.getenv("GOV_HTTP_CONNECT_TIMEOUT", "5"))
USER_AGENT = os.getenv("GOV_HTTP_UA", "governance-sync/0.1")

_async_client: Optional[httpx.AsyncClient] = None


def _build_limits() -> httpx.Limits:
    return httpx.Limits(max_keepalive_connections=5, max_connections=10)


def _build_timeout() -> httpx.Timeout:
    return httpx.Timeout(DEFAULT_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT)


def _default_headers() -> dict:
    return {"User-Agent": USER_AGENT}


def get_async_client() -> httpx.AsyncClient:
    """Get the shared asynchronous httpx client."""
    global _async_client
    if _async_client is None:
        _async_client = httpx.AsyncClient(
            timeout=_build_timeout(),
            limits=_build_limits(),
            headers=_default_headers(),
        )
    return _async_client


async def aclose_async_client() -> None:
    global _async_client
    if _async_client is not None:
        await _async_client.aclose()
        _async_client = None
