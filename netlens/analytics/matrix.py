"""Pairwise interaction matrix over active flows and listeners."""

from __future__ import annotations

from typing import Iterable

from netlens.intel.risk import RiskLevel, escalate, risk_sort_key
from netlens.models import Connection, ListeningPort, RiskMatrixCell
from netlens.scanner.endpoints import extract_ip_port

LISTEN_STATE = "LISTEN"


def _dedupe_by_raw_line(*groups: Iterable[Connection]) -> list[Connection]:
    seen: set[str] = set()
    unique: list[Connection] = []
    for group in groups:
        for conn in group:
            if conn.raw_line in seen:
                continue
            seen.add(conn.raw_line)
            unique.append(conn)
    return unique


def _merge_flow(cells: dict[str, RiskMatrixCell], conn: Connection) -> None:
    cell_id = f"{conn.local_address}-{conn.foreign_address}-{conn.protocol}"
    cell = cells.get(cell_id)
    if cell is None:
        local_ip, local_port = extract_ip_port(conn.local_address)
        foreign_ip, foreign_port = extract_ip_port(conn.foreign_address)
        cells[cell_id] = RiskMatrixCell(
            id=cell_id,
            local_address=conn.local_address,
            local_ip=local_ip,
            local_port=local_port,
            foreign_address=conn.foreign_address,
            foreign_ip=foreign_ip,
            foreign_port=foreign_port,
            protocol=conn.protocol,
            risk=conn.risk,
            states={conn.state},
            issues=list(conn.issues),
            pids={conn.pid} if conn.pid else set(),
        )
        return

    cell.connection_count += 1
    cell.states.add(conn.state)
    for issue in conn.issues:
        if issue not in cell.issues:
            cell.issues.append(issue)
    if conn.pid:
        cell.pids.add(conn.pid)
    cell.risk = escalate(cell.risk, conn.risk)


def _listener_foreign_key(listener: ListeningPort, local_ip: str | None) -> tuple[str, str]:
    # UDP listeners whose table address carries a colon are shown against the IPv6 wildcard
    address = listener.raw_address or listener.address
    if listener.protocol == "UDP" and (":" in address or ":" in (local_ip or "")):
        return "[::]:*", "::"
    return "*:*", "*"


def _merge_listener(cells: dict[str, RiskMatrixCell], listener: ListeningPort) -> None:
    local_ip, local_port = extract_ip_port(listener.address)
    foreign_address, foreign_ip = _listener_foreign_key(listener, local_ip)
    cell_id = f"{listener.address}-{foreign_address}-{listener.protocol}-{LISTEN_STATE}"
    cell = cells.get(cell_id)
    if cell is None:
        cells[cell_id] = RiskMatrixCell(
            id=cell_id,
            local_address=listener.address,
            local_ip=local_ip,
            local_port=local_port,
            foreign_address=foreign_address,
            foreign_ip=foreign_ip,
            foreign_port=None,
            protocol=listener.protocol,
            risk=listener.risk,
            states={LISTEN_STATE},
            is_listener_interaction=True,
        )
        return

    cell.connection_count += 1
    cell.risk = escalate(cell.risk, listener.risk)
    cell.is_listener_interaction = True


def matrix_sort_key(cell: RiskMatrixCell) -> tuple[int, int, int, str, str]:
    return (
        risk_sort_key(cell.risk),
        0 if cell.is_listener_interaction else 1,
        -cell.connection_count,
        cell.local_address,
        cell.foreign_address,
    )


def build_risk_matrix(
    established: Iterable[Connection],
    suspicious: Iterable[Connection],
    listening_ports: Iterable[ListeningPort],
) -> list[RiskMatrixCell]:
    """Merge flows sharing a local/foreign/protocol key, then add one cell per listener.

    A connection present in both ``established`` and ``suspicious`` is
    counted once, keyed by its raw line.
    """
    cells: dict[str, RiskMatrixCell] = {}
    for conn in _dedupe_by_raw_line(established, suspicious):
        _merge_flow(cells, conn)
    for listener in listening_ports:
        _merge_listener(cells, listener)
    return sorted(cells.values(), key=matrix_sort_key)


def summarize_matrix(cells: list[RiskMatrixCell]) -> dict[str, int]:
    return {
        "totalPairs": len(cells),
        "criticalPairs": sum(1 for cell in cells if cell.risk is RiskLevel.CRITICAL),
        "suspiciousPairs": sum(1 for cell in cells if cell.risk is RiskLevel.SUSPICIOUS),
        "listenerInteractions": sum(1 for cell in cells if cell.is_listener_interaction),
    }


def _cell_matches(cell: RiskMatrixCell, needle: str) -> bool:
    haystacks = [cell.local_address, cell.foreign_address, cell.protocol]
    haystacks.extend(cell.pids)
    haystacks.extend(cell.states)
    haystacks.extend(cell.issues)
    return any(needle in text.lower() for text in haystacks)


def filter_matrix(
    cells: list[RiskMatrixCell],
    risk: RiskLevel | None = None,
    search: str = "",
) -> list[RiskMatrixCell]:
    """Keep cells at exactly ``risk`` whose addresses, PIDs, states or issues contain ``search``."""
    needle = search.strip().lower()
    filtered = cells
    if risk is not None:
        filtered = [cell for cell in filtered if cell.risk is risk]
    if needle:
        filtered = [cell for cell in filtered if _cell_matches(cell, needle)]
    return filtered
