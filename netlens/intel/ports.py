"""Well-known port catalogue with baseline risk per service."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .risk import RiskLevel


@dataclass(frozen=True, slots=True)
class WellKnownPortDetail:
    """Service name, baseline risk and analyst-facing description for a port."""

    name: str
    risk: RiskLevel
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "risk": self.risk.value, "description": self.description}


_PORTS: dict[str, WellKnownPortDetail] = {
    "1": WellKnownPortDetail(
        "TCPMUX",
        RiskLevel.CRITICAL,
        "TCP Port Service Multiplexer (TCPMUX). Historic IANA assignment (TCP: Yes, UDP: Assigned). Rarely used legitimately; exposure can indicate misconfiguration or be an exploit vector.",
    ),
    "7": WellKnownPortDetail(
        "Echo",
        RiskLevel.UNKNOWN,
        "Echo Protocol (TCP/UDP: Yes). Used for testing network connectivity. Can be abused for DDoS amplification (UDP).",
    ),
    "9": WellKnownPortDetail(
        "Discard",
        RiskLevel.UNKNOWN,
        "Discard Protocol (TCP/UDP: Yes). Discards any data received. Can be abused for DDoS amplification (UDP CHARGEN/Discard). Some systems use UDP 9 for Wake-on-LAN (Unofficial).",
    ),
    "13": WellKnownPortDetail(
        "Daytime",
        RiskLevel.UNKNOWN,
        "Daytime Protocol (TCP/UDP: Yes). Returns current date and time. Minor information disclosure risk.",
    ),
    "19": WellKnownPortDetail(
        "CHARGEN",
        RiskLevel.WARNING,
        "Character Generator Protocol (TCP/UDP: Yes). Generates a stream of characters. Can be abused for DDoS amplification (UDP CHARGEN/Discard).",
    ),
    "20": WellKnownPortDetail(
        "FTP Data",
        RiskLevel.SUSPICIOUS,
        "File Transfer Protocol (FTP) Data Transfer (TCP: Yes, UDP: Assigned). Unencrypted data channel for FTP.",
    ),
    "21": WellKnownPortDetail(
        "FTP Control",
        RiskLevel.SUSPICIOUS,
        "File Transfer Protocol (FTP) Control/Command (TCP: Yes, UDP: Assigned). Unencrypted, transmits credentials in plaintext.",
    ),
    "22": WellKnownPortDetail(
        "SSH",
        RiskLevel.SAFE,
        "Secure Shell (SSH) (TCP: Yes, UDP: Assigned). Encrypted remote login, file transfer (scp, sftp), and port forwarding.",
    ),
    "23": WellKnownPortDetail(
        "Telnet",
        RiskLevel.CRITICAL,
        "Telnet (TCP: Yes, UDP: Assigned). Unencrypted text communications, including credentials. Highly insecure.",
    ),
    "25": WellKnownPortDetail(
        "SMTP",
        RiskLevel.WARNING,
        "Simple Mail Transfer Protocol (SMTP) (TCP: Yes, UDP: Assigned). Used for email routing. Often unencrypted by default, can be abused for spam if open relay.",
    ),
    "53": WellKnownPortDetail(
        "DNS",
        RiskLevel.SAFE,
        "Domain Name System (DNS) (TCP/UDP: Yes). Essential for resolving hostnames to IP addresses.",
    ),
    "67": WellKnownPortDetail(
        "BOOTP Server / DHCP",
        RiskLevel.SAFE,
        "Bootstrap Protocol (BOOTP) Server / Dynamic Host Configuration Protocol (DHCP) (UDP: Yes). Used for assigning IP addresses and network configuration. Typically internal.",
    ),
    "68": WellKnownPortDetail(
        "BOOTP Client / DHCP",
        RiskLevel.SAFE,
        "Bootstrap Protocol (BOOTP) Client / Dynamic Host Configuration Protocol (DHCP) (UDP: Yes). Used by clients to obtain IP addresses. Typically internal.",
    ),
    "69": WellKnownPortDetail(
        "TFTP",
        RiskLevel.WARNING,
        "Trivial File Transfer Protocol (TFTP) (UDP: Yes). Simplified file transfer, no authentication. Often used for network booting or device configuration. Can be a security risk if exposed.",
    ),
    "79": WellKnownPortDetail(
        "Finger",
        RiskLevel.WARNING,
        "Finger Protocol (TCP/UDP: Yes). Provides information about users on a system. Can disclose sensitive user information.",
    ),
    "80": WellKnownPortDetail(
        "HTTP",
        RiskLevel.WARNING,
        "Hypertext Transfer Protocol (HTTP) (TCP: Yes, UDP: Yes for QUIC/HTTP3). Unencrypted web traffic. Vulnerable to eavesdropping and modification.",
    ),
    "109": WellKnownPortDetail(
        "POP2",
        RiskLevel.WARNING,
        "Post Office Protocol version 2 (POP2) (TCP: Yes, UDP: Assigned). Older email retrieval protocol, often unencrypted.",
    ),
    "110": WellKnownPortDetail(
        "POP3",
        RiskLevel.WARNING,
        "Post Office Protocol version 3 (POP3) (TCP: Yes, UDP: Assigned). Email retrieval, transmits credentials and messages in plaintext if not secured (use POP3S on 995).",
    ),
    "111": WellKnownPortDetail(
        "RPC Portmapper",
        RiskLevel.WARNING,
        "ONC RPC (Portmapper/sunrpc) (TCP/UDP: Yes). Maps RPC services to ports. Can be queried to enumerate RPC services, potentially exposing vulnerabilities if services are insecure.",
    ),
    "113": WellKnownPortDetail(
        "Ident/Auth",
        RiskLevel.UNKNOWN,
        "Identification Protocol (Ident) / Authentication Service (Auth) (TCP: Yes). Used by some services (e.g., IRC) to identify user of a connection. Can be spoofed or blocked.",
    ),
    "123": WellKnownPortDetail(
        "NTP",
        RiskLevel.SAFE,
        "Network Time Protocol (NTP) (UDP: Yes). Used for time synchronization. Essential for logging and security systems. Can be abused for DDoS amplification if server is misconfigured.",
    ),
    "135": WellKnownPortDetail(
        "MS RPC EPMAP",
        RiskLevel.SUSPICIOUS,
        "Microsoft RPC Endpoint Mapper (EPMAP / DCE/RPC Locator) (TCP/UDP: Yes). Used by Windows services (DHCP, DNS, WINS, DCOM). Historically vulnerable and targeted if exposed externally.",
    ),
    "137": WellKnownPortDetail(
        "NetBIOS-NS",
        RiskLevel.SUSPICIOUS,
        "NetBIOS Name Service (TCP/UDP: Yes). Used for name registration and resolution in NetBIOS networks. Can leak system information and be targeted.",
    ),
    "138": WellKnownPortDetail(
        "NetBIOS-DGM",
        RiskLevel.SUSPICIOUS,
        "NetBIOS Datagram Service (UDP: Yes). Connectionless NetBIOS communication. Part of legacy Windows networking, often targeted.",
    ),
    "139": WellKnownPortDetail(
        "NetBIOS-SSN",
        RiskLevel.SUSPICIOUS,
        "NetBIOS Session Service (TCP: Yes). Used for connection-oriented NetBIOS services like file/printer sharing over SMB. Often targeted with SMB vulnerabilities.",
    ),
    "143": WellKnownPortDetail(
        "IMAP",
        RiskLevel.WARNING,
        "Internet Message Access Protocol (IMAP) (TCP: Yes, UDP: Assigned). Email management on server. Transmits credentials/messages in plaintext if not secured (use IMAPS on 993).",
    ),
    "161": WellKnownPortDetail(
        "SNMP",
        RiskLevel.WARNING,
        "Simple Network Management Protocol (SNMP) (UDP: Yes). Used for network device management. Default community strings (public/private) are a major risk if exposed.",
    ),
    "162": WellKnownPortDetail(
        "SNMPTRAP",
        RiskLevel.WARNING,
        "Simple Network Management Protocol Trap (SNMPTRAP) (TCP/UDP: Yes). Used for devices to send unsolicited alerts to an SNMP manager. Ensure traps do not contain sensitive data if exposed.",
    ),
    "389": WellKnownPortDetail(
        "LDAP",
        RiskLevel.WARNING,
        "Lightweight Directory Access Protocol (LDAP) (TCP/UDP: Yes). Used for accessing directory services. Can transmit data unencrypted; use LDAPS on 636.",
    ),
    "443": WellKnownPortDetail(
        "HTTPS",
        RiskLevel.SAFE,
        "Hypertext Transfer Protocol Secure (HTTPS) (TCP: Yes, UDP: Yes for QUIC/HTTP3). Encrypted web communication using TLS/SSL.",
    ),
    "445": WellKnownPortDetail(
        "Microsoft-DS (SMB)",
        RiskLevel.SUSPICIOUS,
        "Microsoft Directory Services / Server Message Block (SMB) (TCP: Yes, UDP: Assigned). Used for file/printer sharing, Active Directory. Historically vulnerable (e.g., WannaCry, NotPetya) if exposed, especially to the internet.",
    ),
    "465": WellKnownPortDetail(
        "SMTPS (Implicit TLS)",
        RiskLevel.SAFE,
        "Authenticated SMTP over TLS/SSL (URL Rendezvous Directory for Cisco SSM / Message Submission over TLS) (TCP: Yes). Secure email submission. Preferred over STARTTLS on port 587 by some clients.",
    ),
    "500": WellKnownPortDetail(
        "ISAKMP/IKE",
        RiskLevel.WARNING,
        "Internet Security Association and Key Management Protocol (ISAKMP) / Internet Key Exchange (IKE) (UDP: Yes). Used for VPN key exchange (IPsec). Ensure strong ciphers and keys.",
    ),
    "512": WellKnownPortDetail(
        "rexec / comsat",
        RiskLevel.CRITICAL,
        "Remote Process Execution (rexec) (TCP: Yes) / comsat biff client (UDP: Yes). Rexec is highly insecure. Comsat notifies users of new mail.",
    ),
    "513": WellKnownPortDetail(
        "rlogin / Who",
        RiskLevel.CRITICAL,
        "Remote Login (rlogin) (TCP: Yes) / Who service (UDP: Yes). Rlogin is highly insecure. Who provides list of logged-in users.",
    ),
    "514": WellKnownPortDetail(
        "rsh / Syslog",
        RiskLevel.CRITICAL,
        "Remote Shell (rsh/remsh) (TCP: Unofficial) / Syslog (UDP: Yes). Rsh is highly insecure. Syslog is used for system logging; UDP syslog can be spoofed.",
    ),
    "515": WellKnownPortDetail(
        "LPD",
        RiskLevel.WARNING,
        "Line Printer Daemon (LPD) (TCP: Yes, UDP: Assigned). Network print service. Can be exploited if misconfigured.",
    ),
    "548": WellKnownPortDetail(
        "AFP",
        RiskLevel.WARNING,
        "Apple Filing Protocol (AFP) (TCP: Yes, UDP: Assigned). File sharing for macOS. Ensure strong authentication and limit exposure.",
    ),
    "587": WellKnownPortDetail(
        "SMTP Submission (STARTTLS)",
        RiskLevel.SAFE,
        "Email Message Submission (SMTP with STARTTLS) (TCP: Yes, UDP: Assigned). Standard port for email clients to submit mail to a server, typically secured with STARTTLS.",
    ),
    "631": WellKnownPortDetail(
        "IPP / CUPS",
        RiskLevel.WARNING,
        "Internet Printing Protocol (IPP) (TCP/UDP: Yes). Used for network printing (e.g., CUPS). Ensure administrative interfaces are secured.",
    ),
    "636": WellKnownPortDetail(
        "LDAPS",
        RiskLevel.SAFE,
        "Lightweight Directory Access Protocol over TLS/SSL (LDAPS) (TCP: Yes, UDP: Assigned). Secure directory access.",
    ),
    "990": WellKnownPortDetail(
        "FTPS Control",
        RiskLevel.SAFE,
        "FTP over TLS/SSL (FTPS) Control (TCP: Yes). Secure (encrypted) FTP control channel.",
    ),
    "992": WellKnownPortDetail(
        "TelnetS",
        RiskLevel.WARNING,
        "Telnet over TLS/SSL (TCP: Yes). Encrypted Telnet. While better than Telnet, SSH is generally preferred.",
    ),
    "993": WellKnownPortDetail(
        "IMAPS",
        RiskLevel.SAFE,
        "Internet Message Access Protocol over TLS/SSL (IMAPS) (TCP: Yes, UDP: Assigned). Secure email management.",
    ),
    "995": WellKnownPortDetail(
        "POP3S",
        RiskLevel.SAFE,
        "Post Office Protocol 3 over TLS/SSL (POP3S) (TCP: Yes). Secure email retrieval.",
    ),
    "1080": WellKnownPortDetail(
        "SOCKS Proxy",
        RiskLevel.WARNING,
        "SOCKS Proxy (TCP: Yes). Network proxy protocol. Can be misused if open or misconfigured.",
    ),
    "1433": WellKnownPortDetail(
        "MSSQL Server",
        RiskLevel.SUSPICIOUS,
        "Microsoft SQL Server (MSSQL) Server (TCP/UDP: Yes). Database service. Critical target if exposed; ensure strong authentication, patching, and network restrictions.",
    ),
    "1434": WellKnownPortDetail(
        "MSSQL Monitor",
        RiskLevel.WARNING,
        "Microsoft SQL Server (MSSQL) Monitor (UDP: Yes). Used to discover SQL Server instances. Can reveal information about database servers.",
    ),
    "1723": WellKnownPortDetail(
        "PPTP",
        RiskLevel.SUSPICIOUS,
        "Point-to-Point Tunneling Protocol (PPTP) (TCP/UDP: Yes). VPN protocol with known security weaknesses. Avoid if possible; use stronger VPN protocols like IPsec or OpenVPN.",
    ),
    "3306": WellKnownPortDetail(
        "MySQL",
        RiskLevel.WARNING,
        "MySQL Database System (TCP/UDP: Yes). Database service. Ensure strong passwords, network restrictions, and regular patching.",
    ),
    "3389": WellKnownPortDetail(
        "RDP / WBT",
        RiskLevel.SUSPICIOUS,
        "Remote Desktop Protocol (RDP) / Windows Based Terminal (WBT) (TCP/UDP: Yes). Often targeted for unauthorized access if exposed, especially to the internet. Secure with VPN, strong passwords, MFA, and Network Level Authentication.",
    ),
    "5060": WellKnownPortDetail(
        "SIP",
        RiskLevel.WARNING,
        "Session Initiation Protocol (SIP) (TCP/UDP: Yes). Used for VoIP signaling. Can be targeted for toll fraud or denial of service if unsecured.",
    ),
    "5061": WellKnownPortDetail(
        "SIPS",
        RiskLevel.SAFE,
        "Session Initiation Protocol over TLS (SIPS) (TCP: Yes). Secure VoIP signaling.",
    ),
    "5353": WellKnownPortDetail(
        "mDNS",
        RiskLevel.UNKNOWN,
        "Multicast DNS (mDNS) (UDP: Yes). Used for zero-configuration service discovery on local networks (e.g., Bonjour, Avahi). Generally safe on trusted networks but can leak host information.",
    ),
    "5432": WellKnownPortDetail(
        "PostgreSQL",
        RiskLevel.WARNING,
        "PostgreSQL Database (TCP/UDP: Yes). Database service. Ensure strong passwords, network restrictions, and regular patching.",
    ),
    "5900": WellKnownPortDetail(
        "VNC",
        RiskLevel.SUSPICIOUS,
        "Virtual Network Computing (VNC) / Remote Frame Buffer (RFB) (TCP: Yes). Remote desktop, often unencrypted or weakly secured by default. Ensure strong passwords or use VNC over SSH.",
    ),
    "5938": WellKnownPortDetail(
        "TeamViewer",
        RiskLevel.WARNING,
        "TeamViewer Remote Desktop (UDP: Unofficial). Remote desktop software. Ensure legitimate use, strong passwords, and 2FA. Manage unattended access carefully.",
    ),
    "6379": WellKnownPortDetail(
        "Redis",
        RiskLevel.WARNING,
        "Redis Key-Value Store (TCP: Yes). In-memory data store. Ensure proper authentication (Redis 6+) and network configuration; can be exploited if exposed unauthenticated.",
    ),
    "8080": WellKnownPortDetail(
        "HTTP Alternate",
        RiskLevel.WARNING,
        "HTTP Alternate (often used for web proxies or secondary web servers) (TCP: Yes). Similar risks to HTTP (Port 80) if unencrypted. Common for application servers like Tomcat.",
    ),
    "27017": WellKnownPortDetail(
        "MongoDB",
        RiskLevel.WARNING,
        "MongoDB Database (TCP: Unofficial). NoSQL database. Ensure proper authentication, network configuration, and authorization; historically found exposed.",
    ),
    "61000": WellKnownPortDetail(
        "Expected Operational Port",
        RiskLevel.SAFE,
        "Often used by specific applications for operational purposes. Verify its use aligns with expected software behavior on your system.",
    ),
}

WELL_KNOWN_PORTS: Mapping[str, WellKnownPortDetail] = MappingProxyType(_PORTS)

_SERVICE_INDEX: Mapping[str, str] = MappingProxyType(
    {detail.name.lower(): port for port, detail in _PORTS.items()}
)


def lookup_port(port: str | int | None) -> WellKnownPortDetail | None:
    """Return the catalogue entry for ``port`` or ``None``."""
    if port is None:
        return None
    return WELL_KNOWN_PORTS.get(str(port).strip())


def port_for_service(name: str | None) -> str | None:
    """Resolve a service name (case-insensitive) to its canonical port string."""
    if not name:
        return None
    return _SERVICE_INDEX.get(name.strip().lower())


def service_name(port: str | None, default: str = "Unknown") -> str:
    detail = lookup_port(port)
    return detail.name if detail else default


def port_description(port: str | None, default: str = "No specific description for this port.") -> str:
    detail = lookup_port(port)
    return detail.description if detail else default


def baseline_risk(port: str | None) -> RiskLevel:
    """Baseline risk for ``port``; unlisted ports are ``unknown``."""
    detail = lookup_port(port)
    return detail.risk if detail else RiskLevel.UNKNOWN
