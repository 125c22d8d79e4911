"""Client IP derivation for rate limiting.

Proxy headers are attacker-controlled, so a forwarded value is trusted only
when it parses as a public IP address. Anything else falls back to the peer
address of the connection, even when that address is private.
"""

from __future__ import annotations

import ipaddress

from fastapi import Request

# Checked in order; the first usable value wins.
FORWARDED_IP_HEADERS: tuple[str, ...] = (
    "X-Forwarded-For",
    "X-Real-IP",
    "Client-IP",
)

FALLBACK_PEER_ADDRESS = "0.0.0.0"


def is_public_ip(value: str) -> bool:
    """Return True for a syntactically valid, publicly routable IP address."""
    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        return False
    return not (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_reserved
        or addr.is_multicast
        or addr.is_unspecified
    )


def get_client_ip(request: Request) -> str:
    """Derive the rate limit client key for a request.

    Args:
        request: Incoming request.

    Returns:
        str: First public IP from the forwarded headers, else the peer address.
    """
    for header in FORWARDED_IP_HEADERS:
        raw = request.headers.get(header)
        if not raw:
            continue
        candidate = raw.split(",")[0].strip()
        if is_public_ip(candidate):
            return candidate

    if request.client and request.client.host:
        return request.client.host
    return FALLBACK_PEER_ADDRESS
