"""Library entry points: ``parse`` a connection table and ``analyze`` the result."""

from __future__ import annotations

import logging
from typing import Iterable

from netlens.intel.classifier import classify_connection
from netlens.intel.threat import ThreatIntelMatcher, ThreatList
from netlens.models import AnalysisResult, Connection
from netlens.scanner.parser import parse_connection_table

from .aggregation import aggregate_connections
from .matrix import build_risk_matrix
from .recommendations import generate_recommendations
from .scoring import assess_overall_risk

logger = logging.getLogger(__name__)

NO_CONNECTIONS_ERROR = (
    "No valid network connections found. Please check the file format and content. "
    "Ensure it is the output of a netstat command (e.g., netstat -ano, netstat -tulnp, netstat -anv)."
)


def parse(raw_text: str) -> tuple[list[Connection], str]:
    """Detect the table layout and parse every usable row."""
    return parse_connection_table(raw_text)


def analyze(
    connections: Iterable[Connection],
    fmt: str,
    active_threat_lists: Iterable[ThreatList] = (),
) -> AnalysisResult:
    """Classify every connection and build all derived views from that one pass.

    Threat lists are read, never modified; inactive lists are ignored. An
    empty input yields a result carrying :data:`NO_CONNECTIONS_ERROR` and no
    aggregates.
    """
    parsed = list(connections)
    if not parsed:
        logger.info("No connections to analyse (format=%s)", fmt)
        return AnalysisResult(total_connections=0, format=fmt, error=NO_CONNECTIONS_ERROR)

    matcher = ThreatIntelMatcher(active_threat_lists)
    classified = [classify_connection(conn, matcher) for conn in parsed]
    views = aggregate_connections(classified)

    risk_matrix = build_risk_matrix(
        views.established_connections,
        views.suspicious_connections,
        views.listening_ports,
    )
    recommendations = generate_recommendations(
        suspicious_connections=views.suspicious_connections,
        listening_ports=views.listening_ports,
        ip_analysis=views.ip_analysis,
        summary=views.summary,
        matcher=matcher,
    )
    overall = assess_overall_risk(views.summary, views.listening_ports)

    logger.info(
        "Analysed %d connection(s) as %s: %s, overall %s",
        len(classified),
        fmt,
        views.summary.to_dict(),
        overall.level.value,
    )
    return AnalysisResult(
        total_connections=len(classified),
        format=fmt,
        connections=[item.connection for item in classified],
        established_connections=views.established_connections,
        suspicious_connections=views.suspicious_connections,
        listening_ports=views.listening_ports,
        local_services_on_loopback=views.local_services,
        local_port_activity=views.local_port_activity,
        foreign_port_activity=views.foreign_port_activity,
        ip_analysis=views.ip_analysis,
        risk_matrix=risk_matrix,
        recommendations=recommendations,
        summary=views.summary,
        unknown_count=views.unknown_count,
        overall_risk=overall,
    )


def analyze_text(raw_text: str, active_threat_lists: Iterable[ThreatList] = ()) -> AnalysisResult:
    """``analyze(*parse(raw_text))`` in one call."""
    connections, fmt = parse(raw_text)
    return analyze(connections, fmt, active_threat_lists)
