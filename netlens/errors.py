"""Exception types raised by netlens outside the lossy parse/classify path."""

from __future__ import annotations


class NetLensError(Exception):
    """Base class for user-facing netlens failures."""


class InvalidIndicatorError(NetLensError):
    """Raised when a threat-list entry is not an IPv4 address or CIDR block."""


class ThreatListImportError(NetLensError):
    """Raised when an imported threat-list payload has the wrong shape."""


class SnapshotCollectionError(NetLensError):
    """Raised when the local socket table cannot be read."""
