from __future__ import annotations

import socket
from types import SimpleNamespace

import psutil
import pytest

from netlens.errors import SnapshotCollectionError
from netlens.scanner import snapshot
from netlens.scanner.parser import parse_connection_table


def _conn(family, kind, laddr, raddr=(), status="NONE", pid=None):
    return SimpleNamespace(family=family, type=kind, laddr=laddr, raddr=raddr, status=status, pid=pid)


@pytest.fixture
def fake_sockets(monkeypatch):
    sockets = [
        _conn(socket.AF_INET, socket.SOCK_STREAM, ("0.0.0.0", 22), status="LISTEN", pid=640),
        _conn(socket.AF_INET, socket.SOCK_STREAM, ("10.0.0.4", 22), ("203.0.113.9", 51514), "ESTABLISHED"),
        _conn(socket.AF_INET6, socket.SOCK_STREAM, ("::", 80), status="LISTEN"),
        _conn(socket.AF_INET, socket.SOCK_DGRAM, ("0.0.0.0", 68)),
    ]
    monkeypatch.setattr(snapshot.psutil, "net_connections", lambda kind="inet": sockets)
    monkeypatch.setattr(snapshot.psutil, "Process", lambda pid: SimpleNamespace(name=lambda: "sshd"))
    return sockets


def test_snapshot_renders_linux_netstat_text(fake_sockets):
    text = snapshot.collect_local_connection_table()

    lines = text.splitlines()
    assert lines[0] == snapshot.SNAPSHOT_BANNER
    assert lines[1] == snapshot.SNAPSHOT_HEADER
    assert lines[2].split()[-1] == "640/sshd"
    assert lines[3].split()[-1] == "-"

    connections, fmt = parse_connection_table(text)
    assert fmt == "linux"
    assert [conn.state for conn in connections] == ["LISTEN", "ESTABLISHED", "LISTEN", "UNKNOWN"]
    assert connections[0].pid == "640/sshd"
    assert connections[1].pid is None
    assert connections[1].foreign_address == "203.0.113.9:51514"
    assert connections[2].local_address == ":::80"
    assert connections[3].protocol == "UDP"


def test_missing_remote_address_is_a_wildcard():
    row = snapshot.format_socket_row(_conn(socket.AF_INET6, socket.SOCK_DGRAM, ("::1", 53)))

    assert row.split()[:5] == ["udp6", "0", "0", "::1:53", ":::*"]


def test_access_denied_is_reported(monkeypatch):
    def deny(kind="inet"):
        raise psutil.AccessDenied()

    monkeypatch.setattr(snapshot.psutil, "net_connections", deny)

    with pytest.raises(SnapshotCollectionError):
        snapshot.collect_local_connection_table()
