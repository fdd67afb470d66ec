from __future__ import annotations

import itertools

from netlens.analytics.engine import parse
from netlens.intel.classifier import (
    RULES,
    apply_established_rules,
    apply_findings_floor,
    apply_handshake_rules,
    apply_listener_rules,
    apply_local_port_baseline,
    apply_threat_intel,
    classify_connection,
    start_assessment,
)
from netlens.intel.risk import RiskLevel
from netlens.intel.threat import ThreatIndicator, ThreatIntelMatcher, ThreatList, ThreatSeverity
from netlens.models import Connection


def _conn(protocol, local, foreign, state, pid=None):
    return Connection(
        protocol=protocol,
        local_address=local,
        foreign_address=foreign,
        state=state,
        pid=pid,
        raw_line=f"{protocol} {local} {foreign} {state}",
        source_format="windows",
    )


def test_telnet_listener_on_all_interfaces():
    item = classify_connection(_conn("TCP", "0.0.0.0:23", "0.0.0.0:0", "LISTENING"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.CRITICAL
    assert item.listener is not None
    assert item.listener.port == "23"
    assert item.listener.service == "Telnet"
    assert item.listener.risk is RiskLevel.CRITICAL
    assert any("all interfaces" in issue for issue in item.connection.issues)
    assert any(issue.startswith("Critical risk service on local port 23: Telnet") for issue in item.connection.issues)


def test_addresses_are_rewritten_to_canonical_form():
    item = classify_connection(_conn("TCP", "192.168.1.20.52144", "*.*", "LISTEN"), ThreatIntelMatcher())

    assert item.connection.local_address == "192.168.1.20:52144"
    assert item.connection.foreign_address == "*:*"


def test_unlisted_listener_on_wildcard_is_warning():
    item = classify_connection(_conn("TCP", "0.0.0.0:49152", "0.0.0.0:0", "LISTENING"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.WARNING
    assert item.listener.service == "Unknown"
    assert len([issue for issue in item.connection.issues if "all interfaces" in issue]) == 1


def test_udp_without_foreign_port_is_a_listener():
    item = classify_connection(_conn("UDP", "127.0.0.1:5353", "*:*", ""), ThreatIntelMatcher())

    assert item.is_listener
    assert item.risk is RiskLevel.SAFE
    assert item.connection.issues == ()


def test_foreign_threat_match():
    item = classify_connection(
        _conn("TCP", "192.168.1.10:50123", "81.19.208.112:443", "ESTABLISHED"), ThreatIntelMatcher()
    )

    assert item.risk is RiskLevel.CRITICAL
    assert item.foreign_threat is not None
    issues = item.connection.issues
    assert len(issues) == 1
    assert "Threat Intel Match (Foreign)" in issues[0]
    assert "Built-in Threat Intel" in issues[0]


def test_local_threat_escalates_listener():
    entry = ThreatIndicator(id="e", ip="192.168.5.5", severity=ThreatSeverity.MEDIUM, source="SOC")
    matcher = ThreatIntelMatcher([ThreatList(id="l", name="l", entries=[entry])])

    item = classify_connection(_conn("TCP", "192.168.5.5:8443", "0.0.0.0:0", "LISTENING"), matcher)

    assert item.risk is RiskLevel.SUSPICIOUS
    assert item.listener.risk is RiskLevel.SUSPICIOUS
    assert "Threat Intel Match (Local): 192.168.5.5" in item.connection.issues[0]


def test_established_to_public_ip_is_warning():
    item = classify_connection(_conn("TCP", "10.0.0.4:50000", "8.8.8.8:443", "ESTABLISHED"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.WARNING
    assert item.connection.issues == ("Established connection to public IP: 8.8.8.8:443. Verify legitimacy.",)


def test_established_to_public_ip_without_port():
    item = classify_connection(_conn("TCP", "10.0.0.4:50000", "8.8.8.8:*", "ESTABLISHED"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.WARNING
    assert item.connection.issues == ("Established connection to public IP: 8.8.8.8:*. Verify legitimacy.",)


def test_established_to_private_https_is_safe():
    item = classify_connection(_conn("TCP", "10.0.0.4:50000", "10.0.0.9:443", "ESTABLISHED"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.SAFE
    assert item.connection.issues == ()


def test_established_to_risky_remote_service():
    item = classify_connection(_conn("TCP", "10.0.0.4:50000", "10.0.0.9:23", "ESTABLISHED"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.CRITICAL
    assert "Connected to a critical risk service on remote port 23: Telnet" in item.connection.issues[0]


def test_handshake_state_is_suspicious():
    item = classify_connection(_conn("TCP", "10.0.0.4:50200", "10.0.0.5:80", "SYN_SENT"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.SUSPICIOUS
    assert "potentially unstable state: SYN_SENT" in item.connection.issues[0]


def test_handshake_does_not_lower_critical():
    item = classify_connection(_conn("TCP", "10.0.0.4:23", "10.0.0.5:50000", "SYN_RECV"), ThreatIntelMatcher())

    assert item.risk is RiskLevel.CRITICAL
    assert any("SYN_RECV" in issue for issue in item.connection.issues)


def test_bsd_syn_rcvd_row_is_suspicious():
    connections, fmt = parse("tcp4       0      0  10.0.0.4.50004         10.0.0.9.7002          SYN_RCVD")

    item = classify_connection(connections[0], ThreatIntelMatcher())

    assert fmt == "macos"
    assert item.connection.state == "SYN_RCVD"
    assert item.risk is RiskLevel.SUSPICIOUS
    assert any(
        issue.startswith("Connection in potentially unstable state: SYN_RCVD.") for issue in item.connection.issues
    )


def test_listener_keeps_the_table_address():
    connections, _ = parse("udp4       0      0  *.5353                 *.*")

    item = classify_connection(connections[0], ThreatIntelMatcher())

    assert item.listener.address == "*:5353"
    assert item.listener.raw_address == "*.5353"


def test_findings_floor():
    assessment = start_assessment(_conn("TCP", "10.0.0.4:1", "10.0.0.5:2", "TIME_WAIT"))
    assessment.add_issue("something odd")

    apply_findings_floor(assessment, ThreatIntelMatcher())

    assert assessment.risk is RiskLevel.WARNING


def test_final_risk_is_never_below_any_single_rule():
    matcher = ThreatIntelMatcher()
    conn = _conn("TCP", "0.0.0.0:135", "203.0.113.9:50000", "LISTENING")
    final = classify_connection(conn, matcher).risk

    for rule in RULES:
        assessment = start_assessment(conn)
        rule(assessment, matcher)
        assert final.rank >= assessment.risk.rank


def test_independent_rule_orderings_agree():
    matcher = ThreatIntelMatcher()
    conn = _conn("TCP", "10.0.0.4:445", "81.19.208.112:50000", "SYN_SENT")
    dependent = (apply_threat_intel, apply_local_port_baseline, apply_listener_rules)
    independent = (apply_established_rules, apply_handshake_rules)
    expected = classify_connection(conn, matcher).risk

    for tail in itertools.permutations(independent):
        result = classify_connection(conn, matcher, rules=dependent + tail + (apply_findings_floor,))
        assert result.risk is expected


def test_classification_returns_new_connection():
    original = _conn("TCP", "0.0.0.0:23", "0.0.0.0:0", "LISTENING")

    item = classify_connection(original, ThreatIntelMatcher())

    assert original.risk is RiskLevel.SAFE
    assert original.issues == ()
    assert item.connection is not original
