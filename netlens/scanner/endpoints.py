"""Split raw endpoint tokens such as ``1.2.3.4:80`` or ``[::1]:https`` into IP and port."""

from __future__ import annotations

import re

from netlens.intel.ports import port_for_service

WILDCARD_ENDPOINTS = {
    "*": "*",
    "*.*": "*",
    "0.0.0.0:*": "0.0.0.0",
    "[::]:*": "::",
}

_BRACKETED_IPV6 = re.compile(r"^\[(.+)\]:(\*|\d+|[A-Za-z0-9_-]+)$")


def _resolve_port(token: str) -> str | None:
    """Numeric ports pass through, ``*`` is no port, service names map via the catalogue.

    Unknown service names are returned unchanged.
    """
    if not token or token == "*":
        return None
    if token.isdigit():
        return token
    return port_for_service(token) or token


def _split_dotted(address: str) -> tuple[str | None, str | None] | None:
    """``host.port`` / ``host.service`` form used by BSD-style tables."""
    host, dot, suffix = address.rpartition(".")
    if not dot or not host or not suffix:
        return None
    if suffix.isdigit():
        return host, suffix
    if suffix == "*":
        return host, None
    known = port_for_service(suffix)
    if known:
        return host, known
    return address, None


def extract_ip_port(endpoint: str | None) -> tuple[str | None, str | None]:
    """Return ``(ip, port)`` for a raw endpoint token; either may be ``None``."""
    if not endpoint:
        return None, None
    address = endpoint.strip()
    if not address:
        return None, None

    if address in WILDCARD_ENDPOINTS:
        return WILDCARD_ENDPOINTS[address], None

    bracketed = _BRACKETED_IPV6.match(address)
    if bracketed:
        return bracketed.group(1), _resolve_port(bracketed.group(2))

    if ":" in address:
        host, _, suffix = address.rpartition(":")
        # fe80::1%lo0.123 carries its port after a dot, not the last colon
        if not (suffix.isdigit() or suffix == "*") and "." in suffix:
            dotted = _split_dotted(address)
            if dotted is not None:
                return dotted
        return host or address, _resolve_port(suffix)

    dotted = _split_dotted(address)
    if dotted is not None:
        return dotted

    if address.isdigit():
        return "*", address
    return "*", port_for_service(address) or address


def format_endpoint(ip: str | None, port: str | None) -> str:
    """Canonical ``ip:port`` display form, ``*`` standing in for missing parts."""
    return f"{ip or '*'}:{port or '*'}"


def canonicalize_endpoint(endpoint: str | None) -> str:
    return format_endpoint(*extract_ip_port(endpoint))
