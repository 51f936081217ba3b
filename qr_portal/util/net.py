from __future__ import annotations

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """Best-effort client IP.

    Proxy headers are checked first (X-Forwarded-For holds a chain; the first
    entry is the client), then the socket peer. Returns 'unknown' otherwise.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    for header in ("x-real-ip", "x-client-ip"):
        value = (request.headers.get(header) or "").strip()
        if value:
            return value

    if request.client is not None and request.client.host:
        return request.client.host

    return "unknown"
