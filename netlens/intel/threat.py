"""Threat-intelligence indicators, user lists and the IP matcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from ipaddress import IPv4Address, IPv4Network, ip_address, ip_network
from typing import Any, Iterable

from netlens.timestamps import format_timestamp, parse_timestamp

from .indicators import BUILTIN_THREAT_IPS
from .risk import RiskLevel

BUILTIN_SOURCE = "Built-in Threat Intel"
BUILTIN_DESCRIPTION = "Known malicious IP from built-in threat intelligence"
BUILTIN_TAGS = ("malicious", "built-in")


class ThreatSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def to_risk(self) -> RiskLevel:
        """Map indicator severity onto the connection risk scale."""
        if self is ThreatSeverity.LOW:
            return RiskLevel.WARNING
        if self is ThreatSeverity.MEDIUM:
            return RiskLevel.SUSPICIOUS
        return RiskLevel.CRITICAL

    @classmethod
    def parse(cls, value: Any, default: ThreatSeverity | None = None) -> ThreatSeverity:
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return default or cls.MEDIUM


_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


@dataclass(slots=True)
class ThreatIndicator:
    """A single IP or CIDR entry flagged as known-bad."""

    id: str
    ip: str
    description: str = ""
    severity: ThreatSeverity = ThreatSeverity.MEDIUM
    source: str = ""
    date_added: datetime | None = None
    tags: list[str] = field(default_factory=list)

    @property
    def risk(self) -> RiskLevel:
        return self.severity.to_risk()

    @property
    def is_cidr(self) -> bool:
        return "/" in self.ip

    def matches(self, ip: str) -> bool:
        return self.ip == ip or (self.is_cidr and ip_in_cidr(ip, self.ip))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ip": self.ip,
            "description": self.description,
            "severity": self.severity.value,
            "source": self.source,
            "dateAdded": format_timestamp(self.date_added),
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ThreatIndicator:
        return cls(
            id=str(payload.get("id") or ""),
            ip=str(payload.get("ip") or payload.get("ipOrCIDR") or "").strip(),
            description=str(payload.get("description") or ""),
            severity=ThreatSeverity.parse(payload.get("severity")),
            source=str(payload.get("source") or ""),
            date_added=parse_timestamp(payload.get("dateAdded") or payload.get("date_added")),
            tags=[str(tag) for tag in payload.get("tags") or [] if str(tag)],
        )


@dataclass(slots=True)
class ThreatList:
    """User-defined collection of indicators that can be switched on or off."""

    id: str
    name: str
    description: str = ""
    entries: list[ThreatIndicator] = field(default_factory=list)
    is_active: bool = True
    date_created: datetime | None = None
    date_modified: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "entries": [entry.to_dict() for entry in self.entries],
            "isActive": self.is_active,
            "dateCreated": format_timestamp(self.date_created),
            "dateModified": format_timestamp(self.date_modified),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ThreatList:
        active = payload.get("isActive", payload.get("is_active", True))
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            description=str(payload.get("description") or ""),
            entries=[
                ThreatIndicator.from_dict(entry)
                for entry in payload.get("entries") or []
                if isinstance(entry, dict)
            ],
            is_active=_as_flag(active),
            date_created=parse_timestamp(payload.get("dateCreated") or payload.get("date_created")),
            date_modified=parse_timestamp(payload.get("dateModified") or payload.get("date_modified")),
        )


def ip_in_cidr(ip: str, cidr: str) -> bool:
    """Return ``True`` when ``ip`` falls inside ``cidr``.

    Malformed networks or addresses are a no-match, never an error.
    """
    if "/" not in cidr:
        return ip == cidr
    try:
        network = ip_network(cidr.strip(), strict=False)
        return ip_address(ip.strip()) in network
    except ValueError:
        return False


def is_valid_indicator_value(value: str) -> bool:
    """Accept a dotted IPv4 address, optionally with a ``/0``-``/32`` prefix."""
    text = (value or "").strip()
    if not text:
        return False
    try:
        if "/" in text:
            address, _, prefix = text.partition("/")
            IPv4Address(address)
            if not prefix.isdigit():
                return False
            IPv4Network(text, strict=False)
        else:
            IPv4Address(text)
    except ValueError:
        return False
    return True


def builtin_indicator(ip: str) -> ThreatIndicator:
    return ThreatIndicator(
        id=f"builtin-{ip}",
        ip=ip,
        description=BUILTIN_DESCRIPTION,
        severity=ThreatSeverity.CRITICAL,
        source=BUILTIN_SOURCE,
        tags=list(BUILTIN_TAGS),
    )


class ThreatIntelMatcher:
    """Look up IPs against the built-in set and the active user lists.

    The built-in set short-circuits everything. User lists are scanned in the
    order given, entries in insertion order, and the first match wins.
    """

    def __init__(
        self,
        threat_lists: Iterable[ThreatList] = (),
        *,
        builtin_ips: Iterable[str] = BUILTIN_THREAT_IPS,
    ) -> None:
        self._builtin = frozenset(builtin_ips)
        self._lists = tuple(threat_list for threat_list in threat_lists if threat_list.is_active)

    @property
    def active_lists(self) -> tuple[ThreatList, ...]:
        return self._lists

    def match(self, ip: str | None) -> ThreatIndicator | None:
        if not ip:
            return None
        if ip in self._builtin:
            return builtin_indicator(ip)
        for threat_list in self._lists:
            for entry in threat_list.entries:
                if entry.matches(ip):
                    return entry
        return None

    def risk_for(self, ip: str | None) -> RiskLevel | None:
        """Mapped risk of the matching indicator, or ``None`` without a match."""
        indicator = self.match(ip)
        return indicator.risk if indicator else None

    def __contains__(self, ip: object) -> bool:
        return isinstance(ip, str) and self.match(ip) is not None
