"""Follow one IP address across a series of analysed snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from netlens.intel.risk import RiskLevel, escalate
from netlens.intel.threat import ThreatIntelMatcher
from netlens.models import AnalysisResult, Connection
from netlens.scanner.endpoints import extract_ip_port
from netlens.timestamps import parse_timestamp

LOOPBACK_IP = "127.0.0.1"
LISTEN_LOOPBACK_STATE = "LISTEN_LOOPBACK"


@dataclass(slots=True)
class AnalysisSnapshot:
    """A named, timestamped analysis kept for later comparison."""

    id: str
    name: str
    timestamp: datetime
    result: AnalysisResult

    @classmethod
    def create(cls, id: str, name: str, timestamp: Any, result: AnalysisResult) -> AnalysisSnapshot:
        stamp = parse_timestamp(timestamp) or datetime.now(timezone.utc)
        return cls(id=id, name=name, timestamp=stamp, result=result)


@dataclass(slots=True)
class TimelineSummary:
    local_ports: list[str] = field(default_factory=list)
    foreign_ports_on_ip: list[str] = field(default_factory=list)
    all_ports: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)
    risk: RiskLevel = RiskLevel.SAFE
    connection_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "localPortsInvolved": list(self.local_ports),
            "foreignPortsOnSelectedIp": list(self.foreign_ports_on_ip),
            "allPortsInvolvedWithIp": list(self.all_ports),
            "connectionStates": list(self.states),
            "risk": self.risk.value,
            "connectionCount": self.connection_count,
        }


@dataclass(slots=True)
class TimelineEntry:
    snapshot_id: str
    snapshot_name: str
    snapshot_timestamp: datetime
    ip_found: bool
    connections_to_ip: list[Connection] = field(default_factory=list)
    connections_from_ip: list[Connection] = field(default_factory=list)
    summary: TimelineSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshotId": self.snapshot_id,
            "snapshotName": self.snapshot_name,
            "snapshotTimestamp": self.snapshot_timestamp.isoformat(),
            "ipFound": self.ip_found,
            "connectionsToIp": [conn.to_dict() for conn in self.connections_to_ip],
            "connectionsFromIp": [conn.to_dict() for conn in self.connections_from_ip],
            "summary": self.summary.to_dict() if self.summary else None,
        }


def _listener_rows(result: AnalysisResult) -> list[Connection]:
    return [
        Connection(
            protocol=listener.protocol,
            local_address=listener.address,
            foreign_address="*:*",
            state="LISTEN",
            raw_line=f"Listening: {listener.protocol} {listener.address} (Port: {listener.port or 'N/A'})",
            source_format=result.format,
            risk=listener.risk,
        )
        for listener in result.listening_ports
    ]


def _loopback_rows(result: AnalysisResult) -> list[Connection]:
    return [
        Connection(
            protocol=service.protocol,
            local_address=f"{LOOPBACK_IP}:{service.port}",
            foreign_address="*:*",
            state=LISTEN_LOOPBACK_STATE,
            pid=", ".join(service.associated_pids) or None,
            raw_line=f"Local Service: {service.protocol} {LOOPBACK_IP}:{service.port} ({service.service_name})",
            source_format=result.format,
            risk=service.risk,
        )
        for service in result.local_services_on_loopback
    ]


def _rows_involving(result: AnalysisResult, target_ip: str) -> list[Connection]:
    rows = result.established_connections + result.suspicious_connections + _listener_rows(result)
    if target_ip == LOOPBACK_IP:
        rows += _loopback_rows(result)

    seen: set[tuple[str, str, str, str]] = set()
    involved: list[Connection] = []
    for conn in rows:
        key = (conn.raw_line, conn.local_address, conn.foreign_address, conn.state)
        if key in seen:
            continue
        seen.add(key)
        local_ip, _ = extract_ip_port(conn.local_address)
        foreign_ip, _ = extract_ip_port(conn.foreign_address)
        if target_ip in (local_ip, foreign_ip):
            involved.append(conn)
    return involved


def _add_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _summarize(rows: list[Connection], target_ip: str, matcher: ThreatIntelMatcher) -> TimelineSummary:
    summary = TimelineSummary(connection_count=len(rows))
    threat_risk = matcher.risk_for(target_ip)
    for conn in rows:
        local_ip, local_port = extract_ip_port(conn.local_address)
        foreign_ip, foreign_port = extract_ip_port(conn.foreign_address)
        if local_port:
            if local_ip != target_ip:
                _add_unique(summary.local_ports, local_port)
            _add_unique(summary.all_ports, local_port)
        if foreign_ip == target_ip and foreign_port:
            _add_unique(summary.foreign_ports_on_ip, foreign_port)
            _add_unique(summary.all_ports, foreign_port)
        _add_unique(summary.states, conn.state)
        summary.risk = escalate(summary.risk, threat_risk or conn.risk)
    return summary


def build_ip_timeline(
    snapshots: Iterable[AnalysisSnapshot],
    target_ip: str,
    matcher: ThreatIntelMatcher | None = None,
) -> list[TimelineEntry]:
    """One entry per usable snapshot, newest first, saying whether and how ``target_ip`` appeared."""
    target_ip = target_ip.strip()
    if not target_ip:
        return []
    matcher = matcher or ThreatIntelMatcher()

    entries: list[TimelineEntry] = []
    for snapshot in snapshots:
        if not snapshot.result.ok:
            continue
        entry = TimelineEntry(
            snapshot_id=snapshot.id,
            snapshot_name=snapshot.name,
            snapshot_timestamp=snapshot.timestamp,
            ip_found=False,
        )
        rows = _rows_involving(snapshot.result, target_ip)
        if rows:
            entry.ip_found = True
            entry.connections_to_ip = [
                conn
                for conn in rows
                if extract_ip_port(conn.foreign_address)[0] == target_ip and not conn.state.startswith("LISTEN")
            ]
            entry.connections_from_ip = [
                conn
                for conn in rows
                if extract_ip_port(conn.local_address)[0] == target_ip and conn.state.startswith("LISTEN")
            ]
            entry.summary = _summarize(rows, target_ip, matcher)
        entries.append(entry)

    entries.sort(key=lambda item: item.snapshot_timestamp, reverse=True)
    return entries


def timeline_rows(entries: Iterable[TimelineEntry]) -> list[dict[str, Any]]:
    """Flatten timeline entries into one row per snapshot for tabular export."""
    rows: list[dict[str, Any]] = []
    for entry in entries:
        summary = entry.summary
        rows.append(
            {
                "snapshot_id": entry.snapshot_id,
                "snapshot_name": entry.snapshot_name,
                "timestamp_iso": entry.snapshot_timestamp.isoformat(),
                "ip_found": entry.ip_found,
                "risk": summary.risk.value if summary else "",
                "connection_count": summary.connection_count if summary else 0,
                "states": ",".join(summary.states) if summary else "",
                "ports": ",".join(summary.all_ports) if summary else "",
            }
        )
    return rows
