from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd

from netlens.analytics.engine import analyze_text
from netlens.analytics.timeline import AnalysisSnapshot, build_ip_timeline, timeline_rows
from netlens.export.timeline import export_timeline_to_csv, export_timeline_to_xlsx
from netlens.intel.risk import RiskLevel
from netlens.intel.threat import ThreatIntelMatcher

MORNING = """
tcp 0 0 10.0.0.4:50000 203.0.113.9:443 ESTABLISHED 10/curl
tcp 0 0 127.0.0.1:6379 0.0.0.0:* LISTEN 700/redis
"""

EVENING = """
tcp 0 0 10.0.0.4:50001 198.51.100.3:443 ESTABLISHED 11/curl
"""


def _snapshots():
    return [
        AnalysisSnapshot.create("1", "morning", "2026-03-01T08:00:00Z", analyze_text(MORNING)),
        AnalysisSnapshot.create("2", "evening", datetime(2026, 3, 1, 20, 0), analyze_text(EVENING)),
        AnalysisSnapshot.create("3", "broken", "2026-03-02T08:00:00Z", analyze_text("")),
    ]


def test_timeline_reports_presence_per_snapshot_newest_first():
    entries = build_ip_timeline(_snapshots(), "203.0.113.9", ThreatIntelMatcher())

    assert [entry.snapshot_name for entry in entries] == ["evening", "morning"]
    evening, morning = entries
    assert not evening.ip_found
    assert evening.summary is None
    assert morning.ip_found
    assert morning.summary.connection_count == 1
    assert morning.summary.risk is RiskLevel.WARNING
    assert morning.summary.foreign_ports_on_ip == ["443"]
    assert morning.summary.local_ports == ["50000"]
    assert morning.summary.all_ports == ["50000", "443"]
    assert len(morning.connections_to_ip) == 1
    assert morning.connections_from_ip == []
    assert evening.snapshot_timestamp.tzinfo is timezone.utc


def test_loopback_target_includes_local_services():
    entries = build_ip_timeline(_snapshots(), "127.0.0.1")

    morning = [entry for entry in entries if entry.snapshot_name == "morning"][0]
    assert morning.ip_found
    states = morning.summary.states
    assert "LISTEN" in states
    assert "LISTEN_LOOPBACK" in states
    assert morning.summary.risk is RiskLevel.WARNING
    # the parsed listener row, its synthetic listener row and the loopback service row
    assert len(morning.connections_from_ip) == 3


def test_blank_ip_yields_nothing():
    assert build_ip_timeline(_snapshots(), "   ") == []


def test_timeline_csv_export(tmp_path):
    entries = build_ip_timeline(_snapshots(), "203.0.113.9")

    target = export_timeline_to_csv(entries, tmp_path / "out" / "timeline.csv")

    frame = pd.read_csv(target)
    assert list(frame["snapshot_name"]) == ["evening", "morning"]
    assert list(frame["ip_found"]) == [False, True]
    assert timeline_rows(entries)[1]["risk"] == "warning"


def test_timeline_xlsx_export(tmp_path):
    entries = build_ip_timeline(_snapshots(), "203.0.113.9")

    target = export_timeline_to_xlsx(entries, tmp_path / "timeline.xlsx")

    frame = pd.read_excel(target, sheet_name="timeline")
    assert list(frame["snapshot_name"]) == ["evening", "morning"]
    assert list(frame["connection_count"]) == [0, 1]
