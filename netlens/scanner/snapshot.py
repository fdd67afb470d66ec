"""Render the host's current socket table as Linux netstat-style text."""

from __future__ import annotations

import socket

import psutil

from netlens.errors import SnapshotCollectionError

SNAPSHOT_BANNER = "Active Internet connections (servers and established)"
SNAPSHOT_HEADER = "Proto Recv-Q Send-Q Local Address           Foreign Address         State       PID/Program name"


def _normalize_host_port(address: object | None) -> tuple[str | None, int | None]:
    if not address:
        return None, None

    if isinstance(address, tuple):
        if len(address) >= 2:
            return str(address[0]), int(address[1])
        return None, None

    return getattr(address, "ip", None), getattr(address, "port", None)


def _format_address(address: object | None, *, ipv6: bool) -> str:
    host, port = _normalize_host_port(address)
    if host is None:
        return ":::*" if ipv6 else "0.0.0.0:*"
    return f"{host}:{port if port is not None else '*'}"


def _safe_program_label(pid: int | None) -> str:
    if not pid:
        return "-"
    try:
        return f"{pid}/{psutil.Process(pid).name()}"
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return str(pid)


def format_socket_row(conn: object) -> str:
    """One ``psutil`` connection tuple as a netstat row."""
    is_ipv6 = getattr(conn, "family", None) == socket.AF_INET6
    is_tcp = getattr(conn, "type", None) == socket.SOCK_STREAM
    protocol = ("tcp" if is_tcp else "udp") + ("6" if is_ipv6 else "")
    status = str(getattr(conn, "status", "") or "")
    state = status if is_tcp and status and status != psutil.CONN_NONE else ""
    columns = [
        f"{protocol:<5}",
        "0",
        "0",
        f"{_format_address(getattr(conn, 'laddr', None), ipv6=is_ipv6):<23}",
        f"{_format_address(getattr(conn, 'raddr', None), ipv6=is_ipv6):<23}",
    ]
    if state:
        columns.append(f"{state:<11}")
    columns.append(_safe_program_label(getattr(conn, "pid", None)))
    return " ".join(columns)


def collect_local_connection_table() -> str:
    """Read ``psutil.net_connections`` and return text accepted by the parser."""
    try:
        sockets = psutil.net_connections(kind="inet")
    except psutil.AccessDenied as exc:
        raise SnapshotCollectionError(
            "Reading the socket table requires elevated privileges on this platform."
        ) from exc

    rows = [SNAPSHOT_BANNER, SNAPSHOT_HEADER]
    rows.extend(format_socket_row(conn) for conn in sockets)
    return "\n".join(rows) + "\n"
