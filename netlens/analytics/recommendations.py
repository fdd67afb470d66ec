"""Prioritised remediation advice derived from the finished aggregates."""

from __future__ import annotations

from typing import Iterable, Mapping

from netlens.intel.classifier import THREAT_INTEL_MARKER
from netlens.intel.ports import lookup_port
from netlens.intel.risk import HIGH_RISKS
from netlens.intel.threat import ThreatIntelMatcher
from netlens.models import AnalysisSummary, Connection, IPAnalysisDetail, ListeningPort, Recommendation
from netlens.scanner.endpoints import extract_ip_port
from netlens.scanner.ip_utils import is_wildcard

CRITICAL = "critical"
WARNING = "warning"

# Plaintext protocols worth flagging when they accept connections
UNENCRYPTED_SERVICES = frozenset({"FTP", "FTP Control", "FTP Data", "Telnet", "HTTP"})
EXTERNAL_IP_THRESHOLD = 10


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def _describe_listener(listener: ListeningPort) -> str:
    return f"{listener.service} (Port {listener.port or 'N/A'}) on {listener.address}"


def _listener_ip(listener: ListeningPort) -> str | None:
    ip, _ = extract_ip_port(listener.address)
    return ip


def _threat_recommendation(
    suspicious: list[Connection], matcher: ThreatIntelMatcher
) -> Recommendation | None:
    flagged = [conn for conn in suspicious if any(THREAT_INTEL_MARKER in issue for issue in conn.issues)]
    if not flagged:
        return None

    threat_ips: list[str] = []
    services: list[str] = []
    for conn in flagged:
        local_ip, local_port = extract_ip_port(conn.local_address)
        foreign_ip, _ = extract_ip_port(conn.foreign_address)
        threat_ips.append((local_ip if local_ip in matcher else foreign_ip) or "")
        info = lookup_port(local_port)
        services.append(info.name if info else conn.protocol)

    return Recommendation(
        type=CRITICAL,
        title="Block Connections to Known Malicious IPs",
        description=(
            f"Detected {len(flagged)} connection(s) involving IPs on threat intelligence lists. "
            "These connections pose an immediate and severe risk. Block these IPs at your firewall "
            "immediately. Investigate systems involved for signs of compromise. "
            f"IPs: {', '.join(_unique(threat_ips))}"
        ),
        services=", ".join(_unique(services)),
    )


def _exposed_service_recommendation(
    listeners: list[ListeningPort], matcher: ThreatIntelMatcher
) -> Recommendation | None:
    risky = [
        listener
        for listener in listeners
        if listener.risk in HIGH_RISKS and _listener_ip(listener) not in matcher
    ]
    if not risky:
        return None
    return Recommendation(
        type=CRITICAL,
        title="Secure or Disable High-Risk Listening Services (External Exposure)",
        description=(
            f"Found {len(risky)} high-risk services potentially exposed externally: "
            f"{', '.join(_describe_listener(listener) for listener in risky)}. Review their necessity. "
            "If essential, ensure they are firewalled, patched, and configured securely."
        ),
        services=", ".join(listener.service for listener in risky),
    )


def _unencrypted_recommendation(listeners: list[ListeningPort]) -> Recommendation | None:
    """Flag plaintext listeners by their port-table service name.

    The port table names ports 20 and 21 "FTP Data" and "FTP Control", so both
    count as FTP here and an FTP listener is reported alongside Telnet and HTTP.
    """
    plaintext = []
    for listener in listeners:
        info = lookup_port(listener.port)
        if info is not None and info.name in UNENCRYPTED_SERVICES:
            plaintext.append(listener)
    if not plaintext:
        return None
    return Recommendation(
        type=WARNING,
        title="Unencrypted Listening Services Detected",
        description=(
            f"Unencrypted services like {', '.join(_describe_listener(listener) for listener in plaintext)} "
            "transmit data in plaintext. Upgrade to secure alternatives if exposed."
        ),
        services=", ".join(listener.service for listener in plaintext),
    )


def _external_volume_recommendation(
    ip_analysis: Mapping[str, IPAnalysisDetail], matcher: ThreatIntelMatcher
) -> Recommendation | None:
    external = sum(1 for detail in ip_analysis.values() if detail.is_public and detail.ip not in matcher)
    if external <= EXTERNAL_IP_THRESHOLD:
        return None
    return Recommendation(
        type=WARNING,
        title="Monitor Numerous External Connections",
        description=(
            f"Detected {external} unique external IP addresses (excluding known threats). "
            "While not inherently malicious, a high number of external connections warrants monitoring. "
            "Ensure all are legitimate and expected. Investigate any unfamiliar IPs."
        ),
    )


def _all_interfaces_recommendation(
    listeners: list[ListeningPort], matcher: ThreatIntelMatcher
) -> Recommendation | None:
    exposed = []
    for listener in listeners:
        ip = _listener_ip(listener)
        if is_wildcard(ip) and ip not in matcher:
            exposed.append(listener)
    if not exposed:
        return None
    return Recommendation(
        type=WARNING,
        title="Services Listening on All Interfaces",
        description=(
            f"{len(exposed)} service(s) are listening on all network interfaces. This can increase exposure. "
            f"Ensure this is intentional for services like {', '.join(listener.service for listener in exposed[:3])} "
            "and that appropriate firewall rules are in place."
        ),
        services=", ".join(listener.service for listener in exposed),
    )


def _headline_recommendation(summary: AnalysisSummary, threat_driven: bool) -> Recommendation | None:
    if summary.critical > 0 and not threat_driven:
        return Recommendation(
            type=CRITICAL,
            title=f"Address {summary.critical} Critical Risk Item(s) Immediately",
            description=(
                f"There are {summary.critical} item(s) identified as critical risk. These require immediate "
                "attention. Review the 'Risky Connections' and 'Listening Ports' or 'Local Services' tabs for details."
            ),
        )
    if summary.suspicious > 0:
        return Recommendation(
            type=WARNING,
            title=f"Investigate {summary.suspicious} Suspicious Item(s)",
            description=(
                f"There are {summary.suspicious} item(s) identified as suspicious. "
                "Review these in the relevant tabs."
            ),
        )
    return None


def generate_recommendations(
    *,
    suspicious_connections: list[Connection],
    listening_ports: list[ListeningPort],
    ip_analysis: Mapping[str, IPAnalysisDetail],
    summary: AnalysisSummary,
    matcher: ThreatIntelMatcher,
) -> list[Recommendation]:
    """Evaluate each advice rule once, headline item first when one applies."""
    threat = _threat_recommendation(suspicious_connections, matcher)
    candidates = [
        threat,
        _exposed_service_recommendation(listening_ports, matcher),
        _unencrypted_recommendation(listening_ports),
        _external_volume_recommendation(ip_analysis, matcher),
        _all_interfaces_recommendation(listening_ports, matcher),
    ]
    recommendations = [item for item in candidates if item is not None]

    headline = _headline_recommendation(summary, threat_driven=threat is not None)
    if headline is not None:
        recommendations.insert(0, headline)
    return recommendations
