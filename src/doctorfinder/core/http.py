"""
HTTP helpers.

The only outbound HTTP in doctorfinder is the geocoder. This module keeps that surface small:
- GET JSON with a deterministic timeout and User-Agent
- raise on non-2xx so the caller decides how to surface the failure
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "doctorfinder/0.1.0 (+https://local)"


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
    transport: httpx.BaseTransport | None = None,
) -> Any:
    """GET `url` and return the decoded JSON response.

    `transport` lets tests plug in `httpx.MockTransport` instead of the network.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    with httpx.Client(timeout=timeout_seconds, transport=transport) as client:
        resp = client.get(url, params=params, headers=request_headers)
        resp.raise_for_status()
        return resp.json()
