from __future__ import annotations

import pytest

from netlens.intel.threat import ThreatIndicator, ThreatList, ThreatSeverity

WINDOWS_TABLE = """
Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       1000
  TCP    0.0.0.0:23             0.0.0.0:0              LISTENING       1200
  TCP    127.0.0.1:5432         0.0.0.0:0              LISTENING       2200
  TCP    192.168.1.10:50123     81.19.208.112:443      ESTABLISHED     4321
  TCP    192.168.1.10:50124     192.168.1.1:443        ESTABLISHED     4322
  TCP    192.168.1.10:50200     10.0.0.5:80            SYN_SENT        4400
  UDP    0.0.0.0:5353           *:*                                    999
  TCP    [::]:445               [::]:0                 LISTENING       4
"""

LINUX_TABLE = """Active Internet connections (servers and established)
Proto Recv-Q Send-Q Local Address           Foreign Address         State       PID/Program name
tcp        0      0 127.0.0.1:5432          0.0.0.0:*               LISTEN      812/postgres
tcp        0      0 0.0.0.0:22              0.0.0.0:*               LISTEN      640/sshd
tcp        0      0 10.0.0.4:22             203.0.113.9:51514       ESTABLISHED 1201/sshd: admin
tcp6       0      0 :::80                   :::*                    LISTEN      900/nginx
udp        0      0 0.0.0.0:68              0.0.0.0:*                           512/dhclient
"""

SS_TABLE = """Netid State  Recv-Q Send-Q Local Address:Port Peer Address:Port Process
udp   UNCONN 0      0      0.0.0.0:5353       0.0.0.0:*          users:(("avahi",pid=1,fd=12))
tcp   ESTAB  0      0      10.0.0.4:22        10.0.0.9:50000
tcp   SYN-SENT 0    1      10.0.0.4:41000     10.0.0.7:8080
"""

MACOS_TABLE = """Active Internet connections (including servers)
Proto Recv-Q Send-Q  Local Address          Foreign Address        (state)
tcp4       0      0  192.168.1.20.52144     17.253.144.10.443      ESTABLISHED
tcp46      0      0  *.3306                 *.*                    LISTEN
udp4       0      0  *.5353                 *.*
"""


@pytest.fixture
def windows_table() -> str:
    return WINDOWS_TABLE


@pytest.fixture
def linux_table() -> str:
    return LINUX_TABLE


@pytest.fixture
def ss_table() -> str:
    return SS_TABLE


@pytest.fixture
def macos_table() -> str:
    return MACOS_TABLE


@pytest.fixture
def office_blocklist() -> ThreatList:
    return ThreatList(
        id="list-office",
        name="Office blocklist",
        entries=[
            ThreatIndicator(
                id="entry-1",
                ip="10.0.0.0/24",
                description="Compromised lab subnet",
                severity=ThreatSeverity.MEDIUM,
                source="SOC",
            ),
            ThreatIndicator(id="entry-2", ip="not-a-cidr/xx", severity=ThreatSeverity.HIGH, source="typo"),
            ThreatIndicator(id="entry-3", ip="198.51.100.7", severity=ThreatSeverity.LOW, source="SOC"),
        ],
    )


@pytest.fixture
def netlens_home(tmp_path, monkeypatch):
    home = tmp_path / "netlens-home"
    monkeypatch.setenv("NETLENS_HOME", str(home))
    monkeypatch.setenv("NETLENS_AUDIT_LOG", str(home / "audit.jsonl"))
    return home
