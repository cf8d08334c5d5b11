"""
HTTP client factory for PocketBase calls.
"""
from __future__ import annotations
import httpx


def create_http_client(
    timeout: float = 20.0,
    user_agent: str = "timeclock/0.1",
    **kwargs
) -> httpx.AsyncClient:
    """
    Build the AsyncClient used for one store request.

    Connecting is capped at 10 seconds so an unreachable store is reported
    as a network failure quickly. Transport retries are off because
    PocketBaseClient decides per method which failures may be replayed.
    """
    headers = kwargs.pop("headers", {})
    headers.setdefault("User-Agent", user_agent)
    headers.setdefault("Accept", "application/json")

    timeout_config = httpx.Timeout(timeout, connect=min(timeout, 10.0))
    transport = httpx.AsyncHTTPTransport(retries=0)

    return httpx.AsyncClient(
        timeout=timeout_config,
        headers=headers,
        transport=transport,
        **kwargs
    )
