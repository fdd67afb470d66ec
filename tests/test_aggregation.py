from __future__ import annotations

from netlens.analytics.aggregation import aggregate_connections, summarize_port_usage
from netlens.intel.classifier import classify_connection
from netlens.intel.risk import RiskLevel
from netlens.intel.threat import ThreatIntelMatcher
from netlens.scanner.parser import parse_connection_table


def _views(text, matcher=None):
    connections, _ = parse_connection_table(text)
    matcher = matcher or ThreatIntelMatcher()
    return aggregate_connections(classify_connection(conn, matcher) for conn in connections)


def test_summary_counts_every_connection(windows_table):
    views = _views(windows_table)

    assert views.summary.to_dict() == {"safe": 1, "warning": 2, "suspicious": 3, "critical": 2}
    assert views.summary.total == 8
    assert views.unknown_count == 0


def test_listening_ports_sorted_by_risk_then_port(windows_table):
    views = _views(windows_table)

    assert [(item.port, item.risk) for item in views.listening_ports] == [
        ("23", RiskLevel.CRITICAL),
        ("135", RiskLevel.SUSPICIOUS),
        ("445", RiskLevel.SUSPICIOUS),
        ("5353", RiskLevel.WARNING),
        ("5432", RiskLevel.WARNING),
    ]
    assert views.listening_ports[2].address == ":::445"


def test_established_and_flagged_subsets(windows_table):
    views = _views(windows_table)

    assert len(views.established_connections) == 2
    assert all(conn.state == "ESTABLISHED" for conn in views.established_connections)
    assert len(views.suspicious_connections) == 7
    assert all(conn.risk is not RiskLevel.SAFE for conn in views.suspicious_connections)
    assert [conn.risk for conn in views.suspicious_connections[:2]] == [RiskLevel.CRITICAL, RiskLevel.CRITICAL]
    assert views.suspicious_connections[0].local_address == "0.0.0.0:23"


def test_loopback_service_bucket(linux_table):
    views = _views(linux_table)

    assert len(views.local_services) == 1
    service = views.local_services[0]
    assert (service.port, service.protocol) == ("5432", "TCP")
    assert service.service_name == "PostgreSQL"
    assert service.risk.rank >= RiskLevel.WARNING.rank
    assert service.associated_pids == ["812/postgres"]
    assert service.connection_count == 1
    assert len(service.raw_example_lines) == 1


def test_loopback_to_loopback_traffic_is_keyed_by_foreign_port():
    text = (
        "tcp 0 0 127.0.0.1:5432 0.0.0.0:* LISTEN 1/pg\n"
        "tcp 0 0 127.0.0.1:40001 127.0.0.1:5432 ESTABLISHED 2/app\n"
        "tcp 0 0 127.0.0.1:40002 127.0.0.1:5432 ESTABLISHED 2/app\n"
        "tcp 0 0 127.0.0.1:40003 127.0.0.1:5432 ESTABLISHED 3/app\n"
        "tcp 0 0 127.0.0.1:40004 127.0.0.1:5432 ESTABLISHED 4/app\n"
    )

    views = _views(text)

    service = views.local_services[0]
    assert service.connection_count == 5
    assert service.associated_pids == ["1/pg", "2/app", "3/app", "4/app"]
    assert len(service.raw_example_lines) == 3


def test_port_usage_histograms(windows_table):
    views = _views(windows_table)

    local = {(stats.port, stats.protocol): stats for stats in views.local_port_activity}
    assert local[("23", "TCP")].risk is RiskLevel.CRITICAL
    assert local[("23", "TCP")].service == "Telnet"
    assert local[("50123", "TCP")].risk is RiskLevel.UNKNOWN
    assert local[("50123", "TCP")].service == "Unknown"
    assert views.local_port_activity[0].port == "23"

    foreign = {(stats.port, stats.protocol): stats for stats in views.foreign_port_activity}
    assert foreign[("443", "TCP")].count == 2
    assert foreign[("0", "TCP")].count == 4


def test_ip_analysis_filters_and_seeds(windows_table):
    views = _views(windows_table)

    assert set(views.ip_analysis) == {"81.19.208.112", "192.168.1.1", "10.0.0.5", "192.168.1.10"}
    threat = views.ip_analysis["81.19.208.112"]
    assert threat.is_public
    assert threat.risk is RiskLevel.CRITICAL
    assert threat.ports == {"443"}
    local = views.ip_analysis["192.168.1.10"]
    assert local.connections == 3
    assert not local.is_public
    assert local.ports == {"50123", "50124", "50200"}
    assert local.risk is RiskLevel.CRITICAL
    assert views.ip_analysis["192.168.1.1"].risk is RiskLevel.SAFE


def test_port_usage_summary(windows_table):
    views = _views(windows_table)

    summary = summarize_port_usage(views.local_port_activity)

    assert summary["totalUnique"] == 8
    assert summary["riskyCount"] == 3
    assert summary["topActive"][0] == "23/TCP (1)"


def test_port_usage_orders_equal_risk_by_count():
    text = (
        "tcp4       0      0  10.0.0.4.50001         10.0.0.9.7000          ESTABLISHED\n"
        "tcp4       0      0  10.0.0.4.50002         10.0.0.9.7001          ESTABLISHED\n"
        "tcp4       0      0  10.0.0.4.50003         10.0.0.9.7001          ESTABLISHED\n"
        "tcp4       0      0  10.0.0.4.50004         10.0.0.9.7002          SYN_RCVD\n"
    )

    views = _views(text)

    assert [(stats.port, stats.count) for stats in views.foreign_port_activity] == [
        ("7001", 2),
        ("7000", 1),
        ("7002", 1),
    ]
    assert {stats.risk for stats in views.foreign_port_activity} == {RiskLevel.UNKNOWN}
    assert [stats.port for stats in views.local_port_activity] == ["50001", "50002", "50003", "50004"]


def test_loopback_services_sorted_by_risk_then_port():
    text = (
        "tcp 0 0 127.0.0.1:6379 0.0.0.0:* LISTEN 1/redis\n"
        "tcp 0 0 127.0.0.1:9999 0.0.0.0:* LISTEN 4/custom\n"
        "tcp 0 0 127.0.0.1:5900 0.0.0.0:* LISTEN 2/vnc\n"
        "tcp 0 0 127.0.0.1:5432 0.0.0.0:* LISTEN 3/postgres\n"
    )

    views = _views(text)

    assert [service.port for service in views.local_services] == ["5900", "5432", "6379", "9999"]
    assert [service.risk for service in views.local_services[:3]] == [
        RiskLevel.SUSPICIOUS,
        RiskLevel.WARNING,
        RiskLevel.WARNING,
    ]
    assert [service.service_name for service in views.local_services] == ["VNC", "PostgreSQL", "Redis", "Unknown"]
