"""Client address resolution behind reverse proxies."""

import ipaddress

from fastapi import Request


# Forwarding headers, in priority order
FORWARDING_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
    "x-client-ip",
    "x-cluster-client-ip",
)


def is_valid_ip(value: str) -> bool:
    """Check that value is a literal IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _is_trusted_proxy(host: str, trusted_hosts: list[str]) -> bool:
    return host in trusted_hosts or host.startswith("127.") or host == "::1"


def resolve_client_address(request: Request, trusted_hosts: list[str]) -> str | None:
    """Extract the submitter's address with protection against spoofing.

    Forwarding headers are honoured only when the direct peer is a trusted
    proxy. The first syntactically valid address wins; for chained
    ``X-Forwarded-For`` values that is the left-most (originating) client.

    Args:
        request: FastAPI request
        trusted_hosts: Proxies allowed to set forwarding headers

    Returns:
        Client address, or None when the peer is unknown
    """
    direct = request.client.host if request.client else None

    if direct is None or _is_trusted_proxy(direct, trusted_hosts):
        for header in FORWARDING_HEADERS:
            value = request.headers.get(header)
            if not value:
                continue
            candidate = value.split(",")[0].strip()
            if is_valid_ip(candidate):
                return candidate

    return direct
