"""Client address and user agent lookup for audit entries."""

from typing import Optional
from fastapi import Request

UNKNOWN_IP = "unknown"


def get_client_ip(request: Request) -> str:
    """
    Best-effort client IP for the audit trail.

    The API normally sits behind a reverse proxy, so the first hop of
    X-Forwarded-For wins, then X-Real-IP, then the socket peer.
    These headers are client-controlled when no proxy strips them; the value
    is recorded for forensics only and never used for access decisions.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip[:45]

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()[:45]

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IP


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")
