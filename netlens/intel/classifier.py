"""Per-connection risk classification.

Each rule receives the same :class:`ConnectionAssessment` builder and may only
raise its risk or append findings. The builder is frozen into a
:class:`ClassifiedConnection` once every rule has run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable

from netlens.models import Connection, ListeningPort
from netlens.scanner.endpoints import extract_ip_port, format_endpoint
from netlens.scanner.ip_utils import is_public_ip, is_wildcard

from .ports import WellKnownPortDetail, lookup_port
from .risk import HIGH_RISKS, RiskLevel, escalate
from .threat import ThreatIndicator, ThreatIntelMatcher

TCP_LISTEN_STATES = frozenset({"LISTEN", "LISTENING"})
UDP_LISTEN_STATES = frozenset({"", "UNKNOWN", "UNCONN"})
HANDSHAKE_STATES = frozenset({"SYN_SENT", "SYN_RECV", "SYN_RCVD"})
ALL_INTERFACES_MARKER = "all interfaces"
THREAT_INTEL_MARKER = "Threat Intel Match"


@dataclass(frozen=True, slots=True)
class ClassifiedConnection:
    """Final connection plus the facts the aggregation passes reuse."""

    connection: Connection
    local_ip: str | None
    local_port: str | None
    foreign_ip: str | None
    foreign_port: str | None
    port_info: WellKnownPortDetail | None = None
    local_threat: ThreatIndicator | None = None
    foreign_threat: ThreatIndicator | None = None
    listener: ListeningPort | None = None

    @property
    def is_listener(self) -> bool:
        return self.listener is not None

    @property
    def risk(self) -> RiskLevel:
        return self.connection.risk


@dataclass(slots=True)
class ConnectionAssessment:
    """Mutable working state threaded through the rule pipeline."""

    source: Connection
    local_ip: str | None
    local_port: str | None
    foreign_ip: str | None
    foreign_port: str | None
    local_address: str
    foreign_address: str
    state: str
    port_info: WellKnownPortDetail | None = None
    local_threat: ThreatIndicator | None = None
    foreign_threat: ThreatIndicator | None = None
    risk: RiskLevel = RiskLevel.SAFE
    issues: list[str] = field(default_factory=list)
    listener: ListeningPort | None = None

    @property
    def protocol(self) -> str:
        return self.source.protocol.upper()

    def raise_to(self, level: RiskLevel | None) -> None:
        self.risk = escalate(self.risk, level)

    def add_issue(self, issue: str, *, unique: bool = False) -> None:
        if unique and issue in self.issues:
            return
        self.issues.append(issue)

    def freeze(self) -> ClassifiedConnection:
        connection = replace(
            self.source,
            local_address=self.local_address,
            foreign_address=self.foreign_address,
            risk=self.risk,
            issues=tuple(self.issues),
        )
        return ClassifiedConnection(
            connection=connection,
            local_ip=self.local_ip,
            local_port=self.local_port,
            foreign_ip=self.foreign_ip,
            foreign_port=self.foreign_port,
            port_info=self.port_info,
            local_threat=self.local_threat,
            foreign_threat=self.foreign_threat,
            listener=self.listener,
        )


Rule = Callable[[ConnectionAssessment, ThreatIntelMatcher], None]


def _threat_issue(side: str, ip: str | None, indicator: ThreatIndicator) -> str:
    return (
        f"{THREAT_INTEL_MARKER} ({side}): {ip} - {indicator.description or 'Known threat'} "
        f"({indicator.severity.value} severity, Source: {indicator.source})"
    )


def apply_threat_intel(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    assessment.local_threat = matcher.match(assessment.local_ip)
    assessment.foreign_threat = matcher.match(assessment.foreign_ip)
    if assessment.local_threat:
        assessment.raise_to(assessment.local_threat.risk)
        assessment.add_issue(_threat_issue("Local", assessment.local_ip, assessment.local_threat), unique=True)
    if assessment.foreign_threat:
        assessment.raise_to(assessment.foreign_threat.risk)
        assessment.add_issue(_threat_issue("Foreign", assessment.foreign_ip, assessment.foreign_threat), unique=True)


def apply_local_port_baseline(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    info = lookup_port(assessment.local_port)
    if info is None:
        return
    assessment.port_info = info
    assessment.raise_to(info.risk)
    if info.risk not in (RiskLevel.SAFE, RiskLevel.UNKNOWN):
        assessment.add_issue(
            f"{info.risk.label} risk service on local port {assessment.local_port}: "
            f"{info.name} ({info.description})."
        )


def is_listener(assessment: ConnectionAssessment) -> bool:
    if assessment.protocol == "TCP":
        return assessment.state in TCP_LISTEN_STATES
    if assessment.protocol == "UDP" and assessment.local_port:
        return assessment.foreign_port is None or assessment.state in UDP_LISTEN_STATES
    return False


def _listener_service(port: str | None, info: WellKnownPortDetail | None) -> str:
    if info:
        return info.name
    if port and not port.isdigit():
        return port
    return "Unknown"


def apply_listener_rules(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    if not is_listener(assessment):
        return

    listener_risk = assessment.risk
    if is_wildcard(assessment.local_ip):
        listener_risk = escalate(listener_risk, RiskLevel.WARNING)
        if not any(ALL_INTERFACES_MARKER in issue for issue in assessment.issues):
            assessment.add_issue(
                f"Service on port {assessment.local_port or 'unknown'} is listening on "
                f"{ALL_INTERFACES_MARKER} ({assessment.local_ip}). "
                "Ensure this is intentional and firewalled appropriately."
            )
    assessment.raise_to(listener_risk)

    local_threat_risk = assessment.local_threat.risk if assessment.local_threat else None
    assessment.listener = ListeningPort(
        port=assessment.local_port,
        service=_listener_service(assessment.local_port, assessment.port_info),
        risk=escalate(assessment.risk, local_threat_risk),
        address=assessment.local_address,
        protocol=assessment.protocol,
        raw_address=assessment.source.local_address.strip(),
    )


def apply_established_rules(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    if assessment.listener is not None or assessment.state != "ESTABLISHED":
        return
    if assessment.foreign_threat:
        return

    if assessment.foreign_ip and is_public_ip(assessment.foreign_ip):
        remote_endpoint = format_endpoint(assessment.foreign_ip, assessment.foreign_port)
        assessment.raise_to(RiskLevel.WARNING)
        assessment.add_issue(f"Established connection to public IP: {remote_endpoint}. Verify legitimacy.")

    remote = lookup_port(assessment.foreign_port)
    if remote and remote.risk in HIGH_RISKS:
        assessment.raise_to(remote.risk)
        assessment.add_issue(
            f"Connected to a {remote.risk.value} risk service on remote port {assessment.foreign_port}: "
            f"{remote.name}. This could be an outbound connection to a compromised or risky service."
        )


def apply_handshake_rules(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    if assessment.listener is not None or assessment.state not in HANDSHAKE_STATES:
        return
    if assessment.risk in (RiskLevel.SAFE, RiskLevel.WARNING):
        assessment.raise_to(RiskLevel.SUSPICIOUS)
    assessment.add_issue(
        f"Connection in potentially unstable state: {assessment.state}. "
        "Could indicate scanning, connection attempts, or network issues."
    )


def apply_findings_floor(assessment: ConnectionAssessment, matcher: ThreatIntelMatcher) -> None:
    if assessment.issues and assessment.risk is RiskLevel.SAFE:
        assessment.risk = RiskLevel.WARNING


RULES: tuple[Rule, ...] = (
    apply_threat_intel,
    apply_local_port_baseline,
    apply_listener_rules,
    apply_established_rules,
    apply_handshake_rules,
    apply_findings_floor,
)


def start_assessment(connection: Connection) -> ConnectionAssessment:
    local_ip, local_port = extract_ip_port(connection.local_address)
    foreign_ip, foreign_port = extract_ip_port(connection.foreign_address)
    return ConnectionAssessment(
        source=connection,
        local_ip=local_ip,
        local_port=local_port,
        foreign_ip=foreign_ip,
        foreign_port=foreign_port,
        local_address=format_endpoint(local_ip, local_port),
        foreign_address=format_endpoint(foreign_ip, foreign_port),
        state=(connection.state or "").upper(),
    )


def classify_connection(
    connection: Connection,
    matcher: ThreatIntelMatcher,
    rules: tuple[Rule, ...] = RULES,
) -> ClassifiedConnection:
    """Run the rule pipeline over one parsed connection."""
    assessment = start_assessment(connection)
    for rule in rules:
        rule(assessment, matcher)
    return assessment.freeze()
