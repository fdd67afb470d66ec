"""Risk levels and the severity merge used by every rule source."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class RiskLevel(str, Enum):
    """Connection risk, totally ordered by severity."""

    CRITICAL = "critical"
    SUSPICIOUS = "suspicious"
    WARNING = "warning"
    SAFE = "safe"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        """Numeric severity; higher is more severe."""
        return _RISK_RANKS[self]

    def is_worse_than(self, other: RiskLevel) -> bool:
        return self.rank > other.rank

    @property
    def label(self) -> str:
        return self.value.capitalize()


_RISK_RANKS = {
    RiskLevel.CRITICAL: 4,
    RiskLevel.SUSPICIOUS: 3,
    RiskLevel.WARNING: 2,
    RiskLevel.SAFE: 1,
    RiskLevel.UNKNOWN: 0,
}

HIGH_RISKS = frozenset({RiskLevel.CRITICAL, RiskLevel.SUSPICIOUS})


def escalate(current: RiskLevel, proposed: RiskLevel | None) -> RiskLevel:
    """Return the more severe of ``current`` and ``proposed``.

    ``None`` means "no opinion" and leaves ``current`` untouched, so a rule
    can never lower a risk that another rule already raised.
    """
    if proposed is None:
        return current
    return proposed if proposed.is_worse_than(current) else current


def most_severe(levels: Iterable[RiskLevel | None], default: RiskLevel = RiskLevel.UNKNOWN) -> RiskLevel:
    """Fold :func:`escalate` over ``levels``."""
    result = default
    for level in levels:
        result = escalate(result, level)
    return result


def risk_sort_key(level: RiskLevel) -> int:
    """Sort key placing the most severe level first."""
    return -level.rank
