"""Intel package: port catalogue, risk levels and threat-intel matching."""

from .ports import WELL_KNOWN_PORTS, WellKnownPortDetail, lookup_port, port_for_service
from .risk import RiskLevel, escalate, most_severe, risk_sort_key
from .threat import ThreatIndicator, ThreatIntelMatcher, ThreatList, ThreatSeverity, ip_in_cidr

__all__ = [
    "RiskLevel",
    "ThreatIndicator",
    "ThreatIntelMatcher",
    "ThreatList",
    "ThreatSeverity",
    "WELL_KNOWN_PORTS",
    "WellKnownPortDetail",
    "escalate",
    "ip_in_cidr",
    "lookup_port",
    "most_severe",
    "port_for_service",
    "risk_sort_key",
]
