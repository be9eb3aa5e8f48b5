"""Client identification for rate-limit keys."""

from __future__ import annotations

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    Extract client IP from request, respecting proxy headers.

    Priority: Cloudflare > X-Forwarded-For > X-Real-IP > Direct
    """
    if cf_ip := request.headers.get("CF-Connecting-IP"):
        return cf_ip.strip()

    # first entry is the original client
    if forwarded := request.headers.get("X-Forwarded-For"):
        return forwarded.split(",")[0].strip()

    if real_ip := request.headers.get("X-Real-IP"):
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"
