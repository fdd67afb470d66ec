"""Persistence helpers for preferences, threat lists and stored snapshots."""

from .preferences import (
    data_dir,
    get_preference,
    list_snapshots,
    record_snapshot,
    set_preference,
)
from .threat_lists import ThreatListStore, parse_threat_list_payload

__all__ = [
    "ThreatListStore",
    "data_dir",
    "get_preference",
    "set_preference",
    "record_snapshot",
    "list_snapshots",
    "parse_threat_list_payload",
]
