from __future__ import annotations

from netlens.analytics.engine import analyze_text
from netlens.analytics.recommendations import generate_recommendations
from netlens.intel.risk import RiskLevel
from netlens.intel.threat import ThreatIntelMatcher
from netlens.models import AnalysisSummary, ListeningPort


def test_windows_snapshot_recommendations(windows_table):
    result = analyze_text(windows_table)

    assert [item.title for item in result.recommendations] == [
        "Investigate 3 Suspicious Item(s)",
        "Block Connections to Known Malicious IPs",
        "Secure or Disable High-Risk Listening Services (External Exposure)",
        "Unencrypted Listening Services Detected",
        "Services Listening on All Interfaces",
    ]
    block = result.recommendations[1]
    assert block.type == "critical"
    assert block.description.endswith("IPs: 81.19.208.112")
    assert block.services == "TCP"
    exposed = result.recommendations[2]
    assert exposed.services == "Telnet, MS RPC EPMAP, Microsoft-DS (SMB)"
    assert result.recommendations[3].services == "Telnet"
    assert result.recommendations[4].description.startswith("4 service(s) are listening on all network interfaces.")


def test_critical_headline_without_threat_match():
    text = "TCP    0.0.0.0:23     0.0.0.0:0      LISTENING\n"

    result = analyze_text(text)

    assert result.recommendations[0].title == "Address 1 Critical Risk Item(s) Immediately"
    assert result.recommendations[0].type == "critical"


def test_monitor_external_connections():
    lines = [
        f"TCP    192.168.1.10:{50000 + index}   203.0.113.{index + 1}:443   ESTABLISHED   100"
        for index in range(15)
    ]

    result = analyze_text("\n".join(lines))

    monitor = [item for item in result.recommendations if item.title == "Monitor Numerous External Connections"]
    assert len(monitor) == 1
    assert monitor[0].type == "warning"
    assert "Detected 15 unique external IP addresses" in monitor[0].description


def test_ten_external_ips_is_not_enough():
    lines = [
        f"TCP    192.168.1.10:{50000 + index}   203.0.113.{index + 1}:443   ESTABLISHED   100"
        for index in range(10)
    ]

    result = analyze_text("\n".join(lines))

    assert all(item.title != "Monitor Numerous External Connections" for item in result.recommendations)


def test_nothing_to_recommend():
    recommendations = generate_recommendations(
        suspicious_connections=[],
        listening_ports=[
            ListeningPort(port="22", service="SSH", risk=RiskLevel.SAFE, address="10.0.0.4:22", protocol="TCP")
        ],
        ip_analysis={},
        summary=AnalysisSummary(safe=1),
        matcher=ThreatIntelMatcher(),
    )

    assert recommendations == []


def test_ftp_listener_counts_as_unencrypted():
    recommendations = generate_recommendations(
        suspicious_connections=[],
        listening_ports=[
            ListeningPort(port="21", service="FTP Control", risk=RiskLevel.SAFE, address="10.0.0.4:21", protocol="TCP"),
            ListeningPort(port="22", service="SSH", risk=RiskLevel.SAFE, address="10.0.0.4:22", protocol="TCP"),
        ],
        ip_analysis={},
        summary=AnalysisSummary(safe=2),
        matcher=ThreatIntelMatcher(),
    )

    assert [item.title for item in recommendations] == ["Unencrypted Listening Services Detected"]
    assert recommendations[0].services == "FTP Control"
    assert "FTP Control (Port 21) on 10.0.0.4:21" in recommendations[0].description
