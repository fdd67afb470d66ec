"""User-managed threat lists: editing, persistence and JSON exchange."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, Iterable
import uuid

from netlens.errors import InvalidIndicatorError, NetLensError, ThreatListImportError
from netlens.intel.threat import ThreatIndicator, ThreatList, ThreatSeverity, is_valid_indicator_value

from .preferences import load_threat_list_payloads, save_threat_list_payloads

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_SOURCE = "User Added"
IMPORT_SHAPE_ERROR = "Invalid file format. Expected an array of threat intelligence lists."
IMPORT_PARSE_ERROR = "Error importing file. Please check the file format."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _with_defaults(threat_list: ThreatList, stamp: datetime) -> ThreatList:
    threat_list.id = threat_list.id or _new_id("imported")
    threat_list.date_created = threat_list.date_created or stamp
    threat_list.date_modified = threat_list.date_modified or stamp
    for entry in threat_list.entries:
        entry.id = entry.id or _new_id("entry")
        entry.date_added = entry.date_added or stamp
    return threat_list


def parse_threat_list_payload(data: Any) -> list[ThreatList]:
    """Turn an imported JSON document into lists, synthesising missing ids and dates.

    Anything but a JSON array is rejected as a whole.
    """
    if not isinstance(data, list):
        raise ThreatListImportError(IMPORT_SHAPE_ERROR)
    stamp = _now()
    return [_with_defaults(ThreatList.from_dict(item), stamp) for item in data if isinstance(item, dict)]


class ThreatListStore:
    """In-memory collection of threat lists backed by the netlens database."""

    def __init__(self, lists: Iterable[ThreatList] = ()) -> None:
        self.lists: list[ThreatList] = list(lists)

    @classmethod
    def load(cls) -> ThreatListStore:
        return cls(ThreatList.from_dict(payload) for payload in load_threat_list_payloads())

    def save(self) -> None:
        save_threat_list_payloads([threat_list.to_dict() for threat_list in self.lists])

    def get(self, list_id: str) -> ThreatList:
        for threat_list in self.lists:
            if threat_list.id == list_id:
                return threat_list
        raise NetLensError(f"Unknown threat list: {list_id}")

    def active_lists(self) -> list[ThreatList]:
        return [threat_list for threat_list in self.lists if threat_list.is_active]

    def create_list(self, name: str, description: str = "") -> ThreatList:
        name = name.strip()
        if not name:
            raise NetLensError("Threat list name must not be empty.")
        stamp = _now()
        threat_list = ThreatList(
            id=_new_id("list"),
            name=name,
            description=description.strip(),
            date_created=stamp,
            date_modified=stamp,
        )
        self.lists.append(threat_list)
        return threat_list

    def delete_list(self, list_id: str) -> bool:
        before = len(self.lists)
        self.lists = [threat_list for threat_list in self.lists if threat_list.id != list_id]
        return len(self.lists) != before

    def toggle_list(self, list_id: str) -> bool:
        """Flip a list between active and inactive; returns the new state."""
        threat_list = self.get(list_id)
        threat_list.is_active = not threat_list.is_active
        threat_list.date_modified = _now()
        return threat_list.is_active

    def add_entry(
        self,
        list_id: str,
        ip: str,
        *,
        description: str = "",
        severity: ThreatSeverity | str = ThreatSeverity.MEDIUM,
        source: str = "",
        tags: Iterable[str] = (),
    ) -> ThreatIndicator:
        value = (ip or "").strip()
        if not is_valid_indicator_value(value):
            raise InvalidIndicatorError(f"Invalid IP address or CIDR format: {value or '<empty>'}")
        threat_list = self.get(list_id)
        stamp = _now()
        entry = ThreatIndicator(
            id=_new_id("entry"),
            ip=value,
            description=description.strip(),
            severity=ThreatSeverity.parse(severity),
            source=source.strip() or DEFAULT_ENTRY_SOURCE,
            date_added=stamp,
            tags=[tag for tag in tags if tag],
        )
        threat_list.entries.append(entry)
        threat_list.date_modified = stamp
        return entry

    def delete_entry(self, list_id: str, entry_id: str) -> bool:
        threat_list = self.get(list_id)
        before = len(threat_list.entries)
        threat_list.entries = [entry for entry in threat_list.entries if entry.id != entry_id]
        if len(threat_list.entries) == before:
            return False
        threat_list.date_modified = _now()
        return True

    def export_json(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = [threat_list.to_dict() for threat_list in self.lists]
        target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        return target

    def merge(self, imported: Iterable[ThreatList]) -> int:
        """Append lists whose id is not present yet; returns how many were added."""
        existing = {threat_list.id for threat_list in self.lists}
        added = 0
        for threat_list in imported:
            if threat_list.id in existing:
                continue
            existing.add(threat_list.id)
            self.lists.append(threat_list)
            added += 1
        return added

    def import_json(self, path: str | Path) -> int:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ThreatListImportError(IMPORT_PARSE_ERROR) from exc
        added = self.merge(parse_threat_list_payload(data))
        logger.info("Imported %d threat list(s) from %s", added, path)
        return added
