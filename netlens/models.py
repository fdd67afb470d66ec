"""Records produced by parsing and analysing a connection-table snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from netlens.intel.risk import RiskLevel

if TYPE_CHECKING:
    from netlens.analytics.scoring import OverallRiskContext


@dataclass(frozen=True, slots=True)
class Connection:
    """One socket row from a connection table.

    Parsing yields ``risk=safe`` with no issues; classification returns a new
    instance with canonical ``ip:port`` addresses, final risk and findings.
    """

    protocol: str
    local_address: str
    foreign_address: str
    state: str
    raw_line: str
    source_format: str
    pid: str | None = None
    risk: RiskLevel = RiskLevel.SAFE
    issues: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol,
            "localAddress": self.local_address,
            "foreignAddress": self.foreign_address,
            "state": self.state,
            "pid": self.pid,
            "rawLine": self.raw_line,
            "sourceFormat": self.source_format,
            "risk": self.risk.value,
            "issues": list(self.issues),
        }


@dataclass(slots=True)
class ListeningPort:
    port: str | None
    service: str
    risk: RiskLevel
    address: str
    protocol: str
    # address as printed in the table, before canonicalisation
    raw_address: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "service": self.service,
            "risk": self.risk.value,
            "address": self.address,
            "protocol": self.protocol,
        }


@dataclass(slots=True)
class LocalServiceDetail:
    """Service reachable only through the loopback interface."""

    port: str | None
    protocol: str
    service_name: str
    description: str
    risk: RiskLevel
    associated_pids: list[str] = field(default_factory=list)
    connection_count: int = 0
    raw_example_lines: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "protocol": self.protocol,
            "serviceName": self.service_name,
            "description": self.description,
            "risk": self.risk.value,
            "associatedPids": list(self.associated_pids),
            "connectionCount": self.connection_count,
            "rawExampleLines": list(self.raw_example_lines),
        }


@dataclass(slots=True)
class DetailedPortUsageStats:
    port: str
    protocol: str
    service: str
    description: str
    count: int = 0
    risk: RiskLevel = RiskLevel.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "protocol": self.protocol,
            "service": self.service,
            "description": self.description,
            "count": self.count,
            "risk": self.risk.value,
        }


@dataclass(slots=True)
class IPAnalysisDetail:
    ip: str
    is_public: bool
    risk: RiskLevel
    connections: int = 0
    ports: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "connections": self.connections,
            "ports": sorted(self.ports),
            "isPublic": self.is_public,
            "risk": self.risk.value,
        }


@dataclass(slots=True)
class RiskMatrixCell:
    """Merged view of every connection sharing one local/foreign/protocol key."""

    id: str
    local_address: str
    local_ip: str | None
    local_port: str | None
    foreign_address: str
    foreign_ip: str | None
    foreign_port: str | None
    protocol: str
    risk: RiskLevel
    connection_count: int = 1
    states: set[str] = field(default_factory=set)
    issues: list[str] = field(default_factory=list)
    pids: set[str] = field(default_factory=set)
    is_listener_interaction: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "localAddress": self.local_address,
            "localIP": self.local_ip,
            "localPort": self.local_port,
            "foreignAddress": self.foreign_address,
            "foreignIP": self.foreign_ip,
            "foreignPort": self.foreign_port,
            "protocol": self.protocol,
            "risk": self.risk.value,
            "connectionCount": self.connection_count,
            "states": sorted(self.states),
            "issues": list(self.issues),
            "aggregatedPIDs": sorted(self.pids),
            "isListenerInteraction": self.is_listener_interaction,
        }


@dataclass(frozen=True, slots=True)
class Recommendation:
    type: str
    title: str
    description: str
    services: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "title": self.title, "description": self.description}
        if self.services is not None:
            payload["services"] = self.services
        return payload


@dataclass(slots=True)
class AnalysisSummary:
    safe: int = 0
    warning: int = 0
    suspicious: int = 0
    critical: int = 0

    def count(self, risk: RiskLevel) -> bool:
        """Increment the bucket for ``risk``; returns ``False`` for ``unknown``."""
        if risk is RiskLevel.UNKNOWN:
            return False
        setattr(self, risk.value, getattr(self, risk.value) + 1)
        return True

    @property
    def total(self) -> int:
        return self.safe + self.warning + self.suspicious + self.critical

    def to_dict(self) -> dict[str, int]:
        return {
            "safe": self.safe,
            "warning": self.warning,
            "suspicious": self.suspicious,
            "critical": self.critical,
        }


@dataclass(slots=True)
class AnalysisResult:
    """Root aggregate of one analysis pass.

    When ``error`` is set no connections survived parsing and every
    collection is empty.
    """

    total_connections: int
    format: str
    connections: list[Connection] = field(default_factory=list)
    established_connections: list[Connection] = field(default_factory=list)
    suspicious_connections: list[Connection] = field(default_factory=list)
    listening_ports: list[ListeningPort] = field(default_factory=list)
    local_services_on_loopback: list[LocalServiceDetail] = field(default_factory=list)
    local_port_activity: list[DetailedPortUsageStats] = field(default_factory=list)
    foreign_port_activity: list[DetailedPortUsageStats] = field(default_factory=list)
    ip_analysis: dict[str, IPAnalysisDetail] = field(default_factory=dict)
    risk_matrix: list[RiskMatrixCell] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)
    unknown_count: int = 0
    overall_risk: OverallRiskContext | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalConnections": self.total_connections,
            "format": self.format,
            "summary": self.summary.to_dict(),
            "unknownCount": self.unknown_count,
            "overallRisk": self.overall_risk.to_dict() if self.overall_risk is not None else None,
            "connections": [conn.to_dict() for conn in self.connections],
            "establishedConnections": [conn.to_dict() for conn in self.established_connections],
            "suspiciousConnections": [conn.to_dict() for conn in self.suspicious_connections],
            "listeningPorts": [port.to_dict() for port in self.listening_ports],
            "localServicesOnLoopback": [service.to_dict() for service in self.local_services_on_loopback],
            "allLocalPortsActivity": [stats.to_dict() for stats in self.local_port_activity],
            "allForeignPortsActivity": [stats.to_dict() for stats in self.foreign_port_activity],
            "ipAnalysis": {ip: detail.to_dict() for ip, detail in self.ip_analysis.items()},
            "riskMatrix": [cell.to_dict() for cell in self.risk_matrix],
            "recommendations": [item.to_dict() for item in self.recommendations],
            "error": self.error,
        }
