"""Analytics: aggregation, interaction matrix, recommendations, scoring and timelines."""

from .activity import build_port_activity
from .aggregation import aggregate_connections, summarize_port_usage
from .engine import NO_CONNECTIONS_ERROR, analyze, analyze_text, parse
from .matrix import build_risk_matrix, filter_matrix, summarize_matrix
from .recommendations import generate_recommendations
from .scoring import OverallRisk, OverallRiskContext, assess_overall_risk
from .timeline import AnalysisSnapshot, build_ip_timeline, timeline_rows

__all__ = [
    "AnalysisSnapshot",
    "NO_CONNECTIONS_ERROR",
    "OverallRisk",
    "OverallRiskContext",
    "aggregate_connections",
    "analyze",
    "analyze_text",
    "assess_overall_risk",
    "build_ip_timeline",
    "build_port_activity",
    "build_risk_matrix",
    "filter_matrix",
    "generate_recommendations",
    "parse",
    "summarize_matrix",
    "summarize_port_usage",
    "timeline_rows",
]
