"""Connection-table format detection and tolerant line parsing.

Three columnar families are recognised (Windows ``netstat -ano``, Linux
``netstat``/``ss`` and BSD/macOS ``netstat -an``) plus a generic four-column
fallback. The first line matching a format rule fixes the layout for the whole
input; every other line is parsed with that layout's strategy and silently
dropped when it does not fit.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from netlens.models import Connection

logger = logging.getLogger(__name__)

WINDOWS = "windows"
LINUX = "linux"
MACOS = "macos"
GENERIC = "generic"

# Windows tables have no Recv-Q/Send-Q columns, so the token after the
# protocol must already look like an address.
FORMAT_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\s*(?:TCP|UDP)\s+(?:[\[*]|\S*[:.])", re.IGNORECASE), WINDOWS),
    (re.compile(r"^\s*(?:tcp6|udp6|tcp|udp)\s+", re.IGNORECASE), LINUX),
    (re.compile(r"^\s*(?:tcp46|udp46|tcp4|udp4|tcp6|udp6|tcp|udp)\s+", re.IGNORECASE), MACOS),
)
_RULE_BY_FORMAT = {fmt: pattern for pattern, fmt in FORMAT_RULES}

_BANNER_PHRASES = (
    "active connections",
    "active internet connections",
    "active unix domain sockets",
    "listening ports",
    "executing netstat",
)
_SEPARATOR = re.compile(r"^----")
_STATE_TOKEN = re.compile(r"^[A-Z][A-Z0-9_]*$")
_SUPPORTED_PROTOCOLS = frozenset({"TCP", "UDP"})

# ss(8) state names mapped onto the netstat vocabulary
_SS_STATES = {
    "ESTAB": "ESTABLISHED",
    "LISTEN": "LISTEN",
    "UNCONN": "UNCONN",
    "SYN-SENT": "SYN_SENT",
    "SYN-RECV": "SYN_RECV",
    "FIN-WAIT-1": "FIN_WAIT1",
    "FIN-WAIT-2": "FIN_WAIT2",
    "TIME-WAIT": "TIME_WAIT",
    "CLOSE-WAIT": "CLOSE_WAIT",
    "LAST-ACK": "LAST_ACK",
    "CLOSING": "CLOSING",
    "CLOSED": "CLOSED",
}

RowParser = Callable[[list[str], str], Connection | None]


def detect_format(lines: Iterable[str]) -> str:
    """Return the format tag of the first line matching a rule, else ``generic``."""
    for line in lines:
        stripped = line.strip()
        for pattern, fmt in FORMAT_RULES:
            if pattern.match(stripped):
                return fmt
    return GENERIC


def is_noise_line(line: str) -> bool:
    """Blank lines, column headers, banners and ``----`` rules."""
    stripped = line.strip()
    if not stripped:
        return True
    lowered = stripped.lower()
    if ("proto" in lowered or "netid" in lowered) and ("address" in lowered or "state" in lowered):
        return True
    if any(phrase in lowered for phrase in _BANNER_PHRASES):
        return True
    if lowered.startswith("client ip address:"):
        return True
    return bool(_SEPARATOR.match(stripped))


def _looks_like_address(token: str | None) -> bool:
    return bool(token) and (":" in token or "." in token)


def _parse_windows_row(parts: list[str], line: str) -> Connection | None:
    if len(parts) < 3:
        return None
    protocol = parts[0].upper()
    state = parts[3] if len(parts) > 3 else ("" if protocol == "UDP" else "UNKNOWN")
    pid = parts[4] if len(parts) > 4 else None
    if protocol == "UDP" and len(parts) == 4 and parts[3].isdigit():
        # UDP rows have no state column; the fourth token is the PID
        state, pid = "", parts[3]
    return Connection(
        protocol=protocol,
        local_address=parts[1],
        foreign_address=parts[2],
        state=state,
        pid=pid,
        raw_line=line,
        source_format=WINDOWS,
    )


def _parse_linux_row(parts: list[str], line: str) -> Connection | None:
    protocol = parts[0].lower()
    if protocol == "tcp6":
        protocol = "tcp"
    elif protocol == "udp6":
        protocol = "udp"

    second = parts[1].upper() if len(parts) > 1 else ""
    if second in _SS_STATES:
        # ss layout: Netid State Recv-Q Send-Q Local Peer [Process]
        if len(parts) < 6:
            return None
        local, foreign = parts[4], parts[5]
        state = _SS_STATES[second]
        rest = parts[6:]
    else:
        # netstat layout: Proto Recv-Q Send-Q Local Foreign [State] [PID/Program]
        if len(parts) < 5:
            return None
        local, foreign = parts[3], parts[4]
        rest = parts[5:]
        if rest and _STATE_TOKEN.match(rest[0]):
            state, rest = rest[0], rest[1:]
        else:
            state = "UNKNOWN"

    program = re.sub(r"-$", "", " ".join(rest)).strip()
    return Connection(
        protocol=protocol.upper(),
        local_address=local,
        foreign_address=foreign,
        state=state,
        pid=program or None,
        raw_line=line,
        source_format=LINUX,
    )


def _parse_macos_row(parts: list[str], line: str) -> Connection | None:
    if len(parts) < 3:
        return None
    protocol = parts[0].upper()
    if protocol.startswith(("TCP", "UDP")):
        protocol = protocol[:3]

    if _looks_like_address(parts[1]):
        local_index = 1
    elif _looks_like_address(parts[2]):
        local_index = 2
    else:
        local_index = 3
    state_index = local_index + 2
    if len(parts) <= local_index + 1:
        return None

    default_state = "" if protocol == "UDP" else "UNKNOWN"
    state = parts[state_index] if len(parts) > state_index else default_state
    if state.isdigit():
        # -v output puts buffer sizes and the PID where a UDP row has no state
        state = default_state

    pid = parts[-1] if parts[-1].isdigit() and len(parts) - 1 > local_index + 1 else None
    return Connection(
        protocol=protocol,
        local_address=parts[local_index],
        foreign_address=parts[local_index + 1],
        state=state,
        pid=pid,
        raw_line=line,
        source_format=MACOS,
    )


def _parse_generic_row(parts: list[str], line: str) -> Connection | None:
    if len(parts) < 4:
        return None
    return Connection(
        protocol=parts[0].upper(),
        local_address=parts[1],
        foreign_address=parts[2],
        state=parts[3] or "UNKNOWN",
        pid=parts[4] if len(parts) > 4 else None,
        raw_line=line,
        source_format=GENERIC,
    )


ROW_PARSERS: dict[str, RowParser] = {
    WINDOWS: _parse_windows_row,
    LINUX: _parse_linux_row,
    MACOS: _parse_macos_row,
    GENERIC: _parse_generic_row,
}


def parse_connection_table(raw_text: str) -> tuple[list[Connection], str]:
    """Parse a connection-table dump into ``(connections, format)``.

    Only TCP and UDP rows survive; anything else is discarded without error.
    """
    lines = (raw_text or "").splitlines()
    fmt = detect_format(lines)
    row_rule = _RULE_BY_FORMAT.get(fmt)
    row_parser = ROW_PARSERS[fmt]

    connections: list[Connection] = []
    skipped = 0
    for line in lines:
        if is_noise_line(line):
            continue
        stripped = line.strip()
        if row_rule is not None and not row_rule.match(stripped):
            skipped += 1
            continue

        connection = row_parser(stripped.split(), line)
        if connection is None or connection.protocol not in _SUPPORTED_PROTOCOLS:
            skipped += 1
            continue
        connections.append(connection)

    logger.debug("Parsed %d connection(s) as %s, skipped %d line(s)", len(connections), fmt, skipped)
    return connections, fmt
