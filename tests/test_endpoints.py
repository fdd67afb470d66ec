from __future__ import annotations

import pytest

from netlens.scanner.endpoints import canonicalize_endpoint, extract_ip_port, format_endpoint
from netlens.scanner.ip_utils import is_link_local, is_loopback_or_localhost, is_public_ip, is_wildcard


@pytest.mark.parametrize(
    ("endpoint", "expected"),
    [
        ("*", ("*", None)),
        ("*.*", ("*", None)),
        ("0.0.0.0:*", ("0.0.0.0", None)),
        ("[::]:*", ("::", None)),
        ("1.2.3.4:80", ("1.2.3.4", "80")),
        ("[::1]:443", ("::1", "443")),
        ("[fe80::1]:https", ("fe80::1", "443")),
        ("10.0.0.1:ssh", ("10.0.0.1", "22")),
        (":::80", ("::", "80")),
        ("192.168.1.20.52144", ("192.168.1.20", "52144")),
        ("*.3306", ("*", "3306")),
        ("127.0.0.1.*", ("127.0.0.1", None)),
        ("fe80::1%lo0.123", ("fe80::1%lo0", "123")),
        ("8080", ("*", "8080")),
        ("ssh", ("*", "22")),
        ("10.0.0.1:mystery", ("10.0.0.1", "mystery")),
        ("", (None, None)),
        (None, (None, None)),
    ],
)
def test_extract_ip_port(endpoint, expected):
    assert extract_ip_port(endpoint) == expected


def test_unknown_bare_service_is_passed_through():
    assert extract_ip_port("frobnicator") == ("*", "frobnicator")


def test_format_endpoint_uses_star_for_missing_parts():
    assert format_endpoint(None, None) == "*:*"
    assert format_endpoint("::", None) == ":::*"
    assert format_endpoint("10.0.0.1", "22") == "10.0.0.1:22"
    assert canonicalize_endpoint("192.168.1.20.52144") == "192.168.1.20:52144"


def test_public_ip_classification():
    assert is_public_ip("8.8.8.8")
    assert is_public_ip("2001:4860:4860::8888")
    assert not is_public_ip("10.1.2.3")
    assert not is_public_ip("172.20.0.1")
    assert not is_public_ip("192.168.0.5")
    assert not is_public_ip("127.0.0.1")
    assert not is_public_ip("169.254.1.1")
    assert not is_public_ip("localhost")
    assert not is_public_ip("::1")
    assert not is_public_ip("fe80::1")
    assert not is_public_ip("0.0.0.0")
    assert not is_public_ip(None)


def test_address_helpers():
    assert is_wildcard("*") and is_wildcard("::") and is_wildcard("0.0.0.0")
    assert not is_wildcard("127.0.0.1")
    assert is_loopback_or_localhost("localhost")
    assert is_loopback_or_localhost("127.0.0.53")
    assert is_loopback_or_localhost("::1")
    assert not is_loopback_or_localhost("*")
    assert is_link_local("169.254.10.1")
    assert not is_link_local("10.0.0.1")
