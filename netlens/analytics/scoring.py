"""Headline risk band for a whole snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from netlens.intel.risk import HIGH_RISKS, RiskLevel
from netlens.models import AnalysisSummary, ListeningPort
from netlens.scanner.endpoints import extract_ip_port
from netlens.scanner.ip_utils import is_wildcard


class OverallRisk(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"


@dataclass(frozen=True, slots=True)
class OverallRiskContext:
    level: OverallRisk
    description: str
    detailed_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "description": self.description,
            "detailedMessage": self.detailed_message,
        }


def _on_all_interfaces(listener: ListeningPort) -> bool:
    ip, _ = extract_ip_port(listener.address)
    return is_wildcard(ip)


def assess_overall_risk(summary: AnalysisSummary, listening_ports: Iterable[ListeningPort]) -> OverallRiskContext:
    """Reduce the summary and listeners to one band; the first matching band wins."""
    listeners = list(listening_ports)
    critical_listeners = sum(1 for item in listeners if item.risk is RiskLevel.CRITICAL)
    exposed_high_risk = sum(1 for item in listeners if item.risk in HIGH_RISKS and _on_all_interfaces(item))
    suspicious_listeners = sum(1 for item in listeners if item.risk is RiskLevel.SUSPICIOUS)

    if summary.critical > 0 or critical_listeners > 0:
        return OverallRiskContext(
            OverallRisk.CRITICAL,
            "CRITICAL RISK",
            f"Immediate attention required. {summary.critical} critical connections/issues and "
            f"{critical_listeners} critical listening ports (exposed externally or on all interfaces) "
            "identified. These pose a severe threat.",
        )
    if summary.suspicious > 3 or exposed_high_risk > 0 or suspicious_listeners > 2:
        if exposed_high_risk > 0:
            detail = f"{exposed_high_risk} high-risk listeners on all interfaces"
        else:
            detail = f"{suspicious_listeners} suspicious listening ports"
        return OverallRiskContext(
            OverallRisk.HIGH,
            "HIGH RISK",
            f"High risk profile. {summary.suspicious} suspicious items or {detail}. Prioritize investigation.",
        )
    if summary.suspicious > 0 or summary.warning > 5:
        return OverallRiskContext(
            OverallRisk.MEDIUM,
            "MEDIUM RISK",
            f"Medium risk. {summary.suspicious} suspicious items and {summary.warning} warnings detected. "
            "Review these findings.",
        )
    if summary.warning > 0:
        return OverallRiskContext(
            OverallRisk.LOW,
            "LOW RISK",
            f"Low risk. {summary.warning} warnings identified. Review for optimal security hygiene.",
        )
    return OverallRiskContext(
        OverallRisk.MINIMAL,
        "MINIMAL RISK",
        "Minimal risk detected based on the provided netstat data. Continue good security practices.",
    )
