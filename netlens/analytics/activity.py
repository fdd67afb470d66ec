"""Inbound activity per listening port."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from netlens.intel.ports import lookup_port
from netlens.intel.risk import RiskLevel, escalate, risk_sort_key
from netlens.intel.threat import ThreatIntelMatcher
from netlens.models import AnalysisResult, Connection, ListeningPort
from netlens.scanner.endpoints import extract_ip_port
from netlens.scanner.ip_utils import is_public_ip, is_wildcard


@dataclass(slots=True)
class ConnectedIpDetail:
    ip: str
    is_public: bool
    connection_count: int = 0
    risk: RiskLevel = RiskLevel.SAFE
    states: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "connectionCountToPort": self.connection_count,
            "risk": self.risk.value,
            "isPublic": self.is_public,
            "states": list(self.states),
        }


@dataclass(slots=True)
class PortActivity:
    port: str
    protocol: str
    listener_address: str
    service: str
    description: str
    risk: RiskLevel
    inbound_count: int = 0
    connected_ips: list[ConnectedIpDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "protocol": self.protocol,
            "listenerAddress": self.listener_address,
            "service": self.service,
            "description": self.description,
            "risk": self.risk.value,
            "activeInboundConnectionsCount": self.inbound_count,
            "connectedIpDetails": [detail.to_dict() for detail in self.connected_ips],
        }


def listener_covers(listener: ListeningPort, conn: Connection) -> bool:
    """Whether ``conn`` arrived on the socket ``listener`` is bound to."""
    if listener.address == conn.local_address:
        return True
    listener_ip, _ = extract_ip_port(listener.address)
    local_ip, _ = extract_ip_port(conn.local_address)
    is_ipv6 = ":" in (local_ip or "")
    if listener_ip == "0.0.0.0":
        return not is_ipv6
    if listener_ip == "::":
        return is_ipv6
    return listener_ip == "*" or listener_ip == local_ip


def _inbound_risk(conn: Connection, foreign_ip: str, matcher: ThreatIntelMatcher) -> RiskLevel:
    threat_risk = matcher.risk_for(foreign_ip)
    if threat_risk is not None:
        return threat_risk
    _, local_port = extract_ip_port(conn.local_address)
    info = lookup_port(local_port)
    risk = escalate(conn.risk, info.risk if info else None)
    if risk is RiskLevel.SAFE and is_public_ip(foreign_ip):
        return RiskLevel.WARNING
    return risk


def _activity_for(
    listener: ListeningPort, candidates: list[Connection], matcher: ThreatIntelMatcher
) -> PortActivity:
    info = lookup_port(listener.port)
    activity = PortActivity(
        port=listener.port or "N/A",
        protocol=listener.protocol,
        listener_address=listener.address,
        service=listener.service or (info.name if info else "Unknown"),
        description=info.description if info else "No specific description for this port.",
        risk=listener.risk,
    )
    by_ip: dict[str, ConnectedIpDetail] = {}
    for conn in candidates:
        _, local_port = extract_ip_port(conn.local_address)
        foreign_ip, _ = extract_ip_port(conn.foreign_address)
        if local_port != listener.port or conn.protocol != listener.protocol:
            continue
        if not listener_covers(listener, conn) or not foreign_ip or is_wildcard(foreign_ip):
            continue

        activity.inbound_count += 1
        detail = by_ip.get(foreign_ip)
        if detail is None:
            detail = ConnectedIpDetail(ip=foreign_ip, is_public=is_public_ip(foreign_ip))
            by_ip[foreign_ip] = detail
        detail.connection_count += 1
        if conn.state not in detail.states:
            detail.states.append(conn.state)
        detail.risk = escalate(detail.risk, _inbound_risk(conn, foreign_ip, matcher))

    activity.connected_ips = sorted(
        by_ip.values(), key=lambda detail: (risk_sort_key(detail.risk), -detail.connection_count)
    )
    return activity


def build_port_activity(result: AnalysisResult, matcher: ThreatIntelMatcher | None = None) -> list[PortActivity]:
    """Per listener, which remote IPs are connected to it and how risky they look."""
    if not result.ok:
        return []
    matcher = matcher or ThreatIntelMatcher()
    seen = {conn.raw_line for conn in result.established_connections}
    candidates = list(result.established_connections)
    candidates.extend(conn for conn in result.suspicious_connections if conn.raw_line not in seen)

    overview = [_activity_for(listener, candidates, matcher) for listener in result.listening_ports]
    overview.sort(key=lambda item: (risk_sort_key(item.risk), -item.inbound_count))
    return overview
