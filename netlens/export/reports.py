"""Spreadsheet exports of an analysis using pandas."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from netlens.analytics.matrix import summarize_matrix
from netlens.models import AnalysisResult, Connection


def _connection_row(conn: Connection) -> dict[str, Any]:
    return {
        "protocol": conn.protocol,
        "local_address": conn.local_address,
        "foreign_address": conn.foreign_address,
        "state": conn.state,
        "pid": conn.pid or "",
        "risk": conn.risk.value,
        "issues": "; ".join(conn.issues),
        "raw_line": conn.raw_line.strip(),
    }


def _frame(rows: Iterable[dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(list(rows))


def analysis_frames(result: AnalysisResult) -> dict[str, pd.DataFrame]:
    """One DataFrame per aggregate, keyed by sheet name."""
    overall = result.overall_risk
    summary_rows = [
        {"metric": "format", "value": result.format},
        {"metric": "total_connections", "value": result.total_connections},
        {"metric": "overall_risk", "value": overall.level.value if overall is not None else ""},
        {"metric": "unknown", "value": result.unknown_count},
    ]
    summary_rows.extend({"metric": key, "value": value} for key, value in result.summary.to_dict().items())
    summary_rows.extend(
        {"metric": key, "value": value} for key, value in summarize_matrix(result.risk_matrix).items()
    )

    return {
        "summary": _frame(summary_rows),
        "connections": _frame(_connection_row(conn) for conn in result.connections),
        "listening_ports": _frame(port.to_dict() for port in result.listening_ports),
        "loopback_services": _frame(
            {
                **service.to_dict(),
                "associatedPids": ", ".join(service.associated_pids),
                "rawExampleLines": " | ".join(service.raw_example_lines),
            }
            for service in result.local_services_on_loopback
        ),
        "local_ports": _frame(stats.to_dict() for stats in result.local_port_activity),
        "foreign_ports": _frame(stats.to_dict() for stats in result.foreign_port_activity),
        "ip_analysis": _frame(
            {**detail.to_dict(), "ports": ", ".join(sorted(detail.ports))} for detail in result.ip_analysis.values()
        ),
        "risk_matrix": _frame(
            {
                "local_address": cell.local_address,
                "foreign_address": cell.foreign_address,
                "protocol": cell.protocol,
                "risk": cell.risk.value,
                "connection_count": cell.connection_count,
                "states": ", ".join(sorted(cell.states)),
                "pids": ", ".join(sorted(cell.pids)),
                "listener": cell.is_listener_interaction,
                "issues": "; ".join(cell.issues),
            }
            for cell in result.risk_matrix
        ),
        "recommendations": _frame(item.to_dict() for item in result.recommendations),
    }


def export_analysis_to_xlsx(result: AnalysisResult, output_path: str | Path) -> Path:
    """Export every aggregate to its own sheet using pandas DataFrame.to_excel."""
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(target) as writer:
        for sheet_name, dataframe in analysis_frames(result).items():
            if dataframe.empty and sheet_name != "summary":
                continue
            dataframe.to_excel(writer, sheet_name=sheet_name, index=False)
    return target


def export_connections_to_csv(connections: Iterable[Connection], output_path: str | Path) -> Path:
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    _frame(_connection_row(conn) for conn in connections).to_csv(target, index=False)
    return target
