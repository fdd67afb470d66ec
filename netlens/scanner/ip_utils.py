"""IP helpers for endpoint classification."""

from __future__ import annotations

import ipaddress

WILDCARD_IPS = frozenset({"*", "0.0.0.0", "::"})

_NON_PUBLIC_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)


def to_ip_address(value: str | None) -> ipaddress._BaseAddress | None:
    """Convert a host value to an ``ipaddress`` object when possible."""
    if not value:
        return None

    host = value.strip().lower()
    if host == "localhost":
        return ipaddress.ip_address("127.0.0.1")

    try:
        return ipaddress.ip_address(host)
    except ValueError:
        return None


def is_wildcard(value: str | None) -> bool:
    """Return ``True`` for the all-interfaces forms ``*``, ``0.0.0.0`` and ``::``."""
    return bool(value) and value in WILDCARD_IPS


def is_loopback_or_localhost(value: str | None) -> bool:
    """Return ``True`` when ``value`` points to loopback localhost space."""
    ip_obj = to_ip_address(value)
    return bool(ip_obj and ip_obj.is_loopback)


def is_link_local(value: str | None) -> bool:
    ip_obj = to_ip_address(value)
    return bool(ip_obj and ip_obj.is_link_local)


def is_public_ip(value: str | None) -> bool:
    """Return ``True`` unless ``value`` is wildcard, RFC1918, loopback, link-local or ULA.

    Unparseable host names other than ``localhost`` count as public.
    """
    if not value or is_wildcard(value):
        return False
    if value.strip().lower() == "localhost":
        return False
    ip_obj = to_ip_address(value)
    if ip_obj is None:
        return True
    return not any(ip_obj in network for network in _NON_PUBLIC_NETWORKS if network.version == ip_obj.version)
