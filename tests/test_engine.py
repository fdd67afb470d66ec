from __future__ import annotations

import json

from netlens.analytics.engine import NO_CONNECTIONS_ERROR, analyze, analyze_text, parse
from netlens.analytics.scoring import OverallRisk, OverallRiskContext
from netlens.intel.risk import RiskLevel


def test_windows_telnet_scenario():
    connections, fmt = parse("TCP    0.0.0.0:23     0.0.0.0:0      LISTENING")

    result = analyze(connections, fmt)

    assert result.format == "windows"
    listener = result.listening_ports[0]
    assert (listener.port, listener.service, listener.risk) == ("23", "Telnet", RiskLevel.CRITICAL)
    assert any("all interfaces" in issue for issue in result.connections[0].issues)


def test_linux_postgres_loopback_scenario():
    result = analyze_text("tcp  0  0  127.0.0.1:5432  0.0.0.0:*  LISTEN")

    assert result.format == "linux"
    service = result.local_services_on_loopback[0]
    assert (service.port, service.protocol, service.service_name) == ("5432", "TCP", "PostgreSQL")
    assert service.risk.rank >= RiskLevel.WARNING.rank


def test_builtin_threat_scenario():
    result = analyze_text("TCP    192.168.1.10:50123     81.19.208.112:443      ESTABLISHED     4321")

    conn = result.connections[0]
    assert conn.risk is RiskLevel.CRITICAL
    assert "Threat Intel Match (Foreign)" in conn.issues[0]
    assert "Built-in Threat Intel" in conn.issues[0]
    assert isinstance(result.overall_risk, OverallRiskContext)
    assert result.overall_risk.level is OverallRisk.CRITICAL


def test_user_threat_lists_are_applied(office_blocklist):
    result = analyze_text("TCP    192.168.1.10:50200     10.0.0.5:80    ESTABLISHED   1", [office_blocklist])

    conn = result.connections[0]
    assert conn.risk is RiskLevel.SUSPICIOUS
    assert "Compromised lab subnet" in conn.issues[0]
    assert "Source: SOC" in conn.issues[0]
    assert result.ip_analysis["10.0.0.5"].risk is RiskLevel.SUSPICIOUS


def test_threat_lists_are_not_modified(office_blocklist):
    before = office_blocklist.to_dict()

    analyze_text("TCP    192.168.1.10:50200     10.0.0.5:80    ESTABLISHED   1", [office_blocklist])

    assert office_blocklist.to_dict() == before


def test_no_connections_sets_error():
    result = analyze_text("this is not a netstat dump\n")

    assert result.error == NO_CONNECTIONS_ERROR
    assert not result.ok
    assert result.total_connections == 0
    assert result.connections == []
    assert result.listening_ports == []
    assert result.risk_matrix == []
    assert result.recommendations == []
    assert result.overall_risk is None


def test_conservation(windows_table, linux_table, macos_table, ss_table):
    for text in (windows_table, linux_table, macos_table, ss_table):
        result = analyze_text(text)
        assert result.summary.total + result.unknown_count == result.total_connections
        assert len(result.connections) == result.total_connections


def test_analysis_is_deterministic(windows_table, office_blocklist):
    first = analyze_text(windows_table, [office_blocklist]).to_dict()
    second = analyze_text(windows_table, [office_blocklist]).to_dict()

    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_macos_snapshot(macos_table):
    result = analyze_text(macos_table)

    assert result.format == "macos"
    assert [conn.local_address for conn in result.connections] == [
        "192.168.1.20:52144",
        "*:3306",
        "*:5353",
    ]
    mysql = [item for item in result.listening_ports if item.port == "3306"][0]
    assert mysql.service == "MySQL"
    assert mysql.risk is RiskLevel.WARNING
    assert result.connections[0].risk is RiskLevel.WARNING


def test_result_serialises_to_camel_case(windows_table):
    payload = analyze_text(windows_table).to_dict()

    assert payload["totalConnections"] == 8
    assert payload["overallRisk"]["level"] == "critical"
    assert payload["listeningPorts"][0]["service"] == "Telnet"
    assert payload["ipAnalysis"]["192.168.1.10"]["ports"] == ["50123", "50124", "50200"]
    json.dumps(payload)
