"""
Client IP and device resolution for FastAPI requests.

Takes an explicit ``Request`` parameter so the functions are testable
without a running server.
"""

from __future__ import annotations

from fastapi import Request

UNKNOWN_DEVICE = "Unknown device"
UNKNOWN_IP = "Unknown IP"


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Checks proxy headers in priority order before falling back to the
    direct connection address:

    1. ``CF-Connecting-IP`` — Cloudflare
    2. ``True-Client-IP`` — Akamai and others
    3. ``X-Forwarded-For`` — standard proxy header (first IP in list)
    4. ``X-Real-IP`` — nginx / other reverse proxies

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    headers_to_check: list[str] = [
        "CF-Connecting-IP",
        "True-Client-IP",
        "X-Forwarded-For",
        "X-Real-IP",
    ]

    for header in headers_to_check:
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip: str = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else ""


def get_device(request: Request) -> str:
    """User agent of the caller, used as the session's device label."""
    return request.headers.get("User-Agent") or UNKNOWN_DEVICE
