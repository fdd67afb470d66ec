"""Single-pass aggregation of classified connections into the derived views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from netlens.intel.classifier import ClassifiedConnection
from netlens.intel.ports import baseline_risk, lookup_port, port_description, service_name
from netlens.intel.risk import RiskLevel, escalate, risk_sort_key
from netlens.models import (
    AnalysisSummary,
    Connection,
    DetailedPortUsageStats,
    IPAnalysisDetail,
    ListeningPort,
    LocalServiceDetail,
)
from netlens.scanner.endpoints import extract_ip_port
from netlens.scanner.ip_utils import is_link_local, is_loopback_or_localhost, is_public_ip, is_wildcard

MAX_EXAMPLE_LINES = 3
LOOPBACK_DESCRIPTION = "Local service on loopback interface."


@dataclass(slots=True)
class AggregateViews:
    listening_ports: list[ListeningPort] = field(default_factory=list)
    local_services: list[LocalServiceDetail] = field(default_factory=list)
    local_port_activity: list[DetailedPortUsageStats] = field(default_factory=list)
    foreign_port_activity: list[DetailedPortUsageStats] = field(default_factory=list)
    ip_analysis: dict[str, IPAnalysisDetail] = field(default_factory=dict)
    established_connections: list[Connection] = field(default_factory=list)
    suspicious_connections: list[Connection] = field(default_factory=list)
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)
    unknown_count: int = 0


def _numeric_port(port: str | None) -> int:
    return int(port) if port and port.isdigit() else 0


def _loopback_target(item: ClassifiedConnection) -> str | None:
    """Port a loopback-only service is keyed by, or ``None`` when not loopback activity."""
    if not is_loopback_or_localhost(item.local_ip):
        return None
    if item.is_listener and item.local_port:
        return item.local_port
    if is_loopback_or_localhost(item.foreign_ip) and item.foreign_port:
        return item.foreign_port
    return None


def _record_loopback_service(services: dict[tuple[str, str], LocalServiceDetail], item: ClassifiedConnection) -> None:
    port = _loopback_target(item)
    if port is None:
        return
    conn = item.connection
    key = (port, conn.protocol)
    detail = services.get(key)
    if detail is None:
        info = lookup_port(port)
        detail = LocalServiceDetail(
            port=port,
            protocol=conn.protocol,
            service_name=info.name if info else "Unknown",
            description=info.description if info else LOOPBACK_DESCRIPTION,
            risk=info.risk if info else RiskLevel.UNKNOWN,
        )
        services[key] = detail

    detail.connection_count += 1
    pid = (conn.pid or "").strip()
    if pid and pid not in detail.associated_pids:
        detail.associated_pids.append(pid)
    if len(detail.raw_example_lines) < MAX_EXAMPLE_LINES:
        detail.raw_example_lines.append(conn.raw_line.strip())
    detail.risk = escalate(detail.risk, conn.risk)


def _record_port_usage(
    histogram: dict[tuple[str, str], DetailedPortUsageStats], port: str | None, protocol: str
) -> None:
    if not port:
        return
    key = (port, protocol)
    stats = histogram.get(key)
    if stats is None:
        stats = DetailedPortUsageStats(
            port=port,
            protocol=protocol,
            service=service_name(port),
            description=port_description(port),
            risk=baseline_risk(port),
        )
        histogram[key] = stats
    stats.count += 1
    stats.risk = escalate(stats.risk, baseline_risk(port))


def _record_ip(
    analysis: dict[str, IPAnalysisDetail],
    ip: str,
    port: str | None,
    *,
    initial: RiskLevel,
    update: RiskLevel,
) -> None:
    detail = analysis.get(ip)
    if detail is None:
        detail = IPAnalysisDetail(ip=ip, is_public=is_public_ip(ip), risk=initial)
        analysis[ip] = detail
    detail.connections += 1
    if port:
        detail.ports.add(port)
    detail.risk = escalate(detail.risk, update)


def _record_ip_activity(analysis: dict[str, IPAnalysisDetail], item: ClassifiedConnection) -> None:
    risk = item.risk
    foreign_ip = item.foreign_ip
    if foreign_ip and not is_wildcard(foreign_ip):
        threat_risk = item.foreign_threat.risk if item.foreign_threat else None
        fallback = RiskLevel.WARNING if is_public_ip(foreign_ip) and risk is RiskLevel.SAFE else risk
        _record_ip(
            analysis,
            foreign_ip,
            item.foreign_port,
            initial=threat_risk or fallback,
            update=threat_risk or risk,
        )

    local_ip = item.local_ip
    if (
        local_ip
        and not item.is_listener
        and not is_wildcard(local_ip)
        and not is_loopback_or_localhost(local_ip)
        and not is_link_local(local_ip)
    ):
        threat_risk = item.local_threat.risk if item.local_threat else None
        _record_ip(analysis, local_ip, item.local_port, initial=threat_risk or risk, update=threat_risk or risk)


def listener_sort_key(listener: ListeningPort) -> tuple[int, int]:
    return risk_sort_key(listener.risk), _numeric_port(listener.port)


def connection_sort_key(conn: Connection) -> tuple[int, int]:
    _, port = extract_ip_port(conn.local_address)
    return risk_sort_key(conn.risk), _numeric_port(port)


def _usage_sort_key(stats: DetailedPortUsageStats) -> tuple[int, int]:
    return risk_sort_key(stats.risk), -stats.count


def aggregate_connections(classified: Iterable[ClassifiedConnection]) -> AggregateViews:
    """Build every derived view from one pass over the classified connections."""
    views = AggregateViews()
    loopback: dict[tuple[str, str], LocalServiceDetail] = {}
    local_usage: dict[tuple[str, str], DetailedPortUsageStats] = {}
    foreign_usage: dict[tuple[str, str], DetailedPortUsageStats] = {}

    for item in classified:
        conn = item.connection
        if item.listener is not None:
            views.listening_ports.append(item.listener)
        elif conn.state.upper() == "ESTABLISHED":
            views.established_connections.append(conn)

        _record_loopback_service(loopback, item)
        _record_port_usage(local_usage, item.local_port, conn.protocol)
        _record_port_usage(foreign_usage, item.foreign_port, conn.protocol)
        _record_ip_activity(views.ip_analysis, item)

        if not views.summary.count(conn.risk):
            views.unknown_count += 1
        if conn.risk is not RiskLevel.SAFE:
            views.suspicious_connections.append(conn)

    views.listening_ports.sort(key=listener_sort_key)
    views.suspicious_connections.sort(key=connection_sort_key)
    views.local_services = sorted(
        loopback.values(), key=lambda detail: (risk_sort_key(detail.risk), _numeric_port(detail.port))
    )
    views.local_port_activity = sorted(local_usage.values(), key=_usage_sort_key)
    views.foreign_port_activity = sorted(foreign_usage.values(), key=_usage_sort_key)
    return views


def summarize_port_usage(stats: list[DetailedPortUsageStats], *, top: int = 3) -> dict[str, object]:
    """Headline numbers for a port-usage histogram."""
    return {
        "totalUnique": len(stats),
        "riskyCount": sum(1 for item in stats if item.risk in (RiskLevel.CRITICAL, RiskLevel.SUSPICIOUS)),
        "topActive": [f"{item.port}/{item.protocol} ({item.count})" for item in stats[:top]],
    }
