"""Persistent JSON-lines audit trail of completed analyses."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import json
import os
from pathlib import Path
import threading
from typing import Any, Iterator

from netlens.models import AnalysisResult
from netlens.storage.preferences import data_dir

AUDIT_LOG_ENV = "NETLENS_AUDIT_LOG"
AUDIT_LOG_NAME = "analysis_log.jsonl"

_APPEND_LOCK = threading.Lock()


def default_audit_log_path() -> Path:
    override = os.environ.get(AUDIT_LOG_ENV, "").strip()
    return Path(override).expanduser() if override else data_dir() / AUDIT_LOG_NAME


@contextmanager
def _advisory_file_lock(path: Path) -> Iterator[None]:
    """Apply a best-effort cross-platform advisory lock for a file path."""
    lock_path = path.with_suffix(path.suffix + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    with lock_path.open("a+", encoding="utf-8") as lock_file:
        try:
            import fcntl  # type: ignore
        except ModuleNotFoundError:
            fcntl = None
        if fcntl is not None:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
            return

        try:
            import msvcrt  # type: ignore
        except ModuleNotFoundError:
            msvcrt = None
        if msvcrt is not None:
            msvcrt.locking(lock_file.fileno(), msvcrt.LK_LOCK, 1)
            try:
                yield
            finally:
                msvcrt.locking(lock_file.fileno(), msvcrt.LK_UNLCK, 1)
            return

        # Fallback: process-level lock only.
        yield


def _with_timestamp(record: dict[str, Any]) -> dict[str, Any]:
    payload = dict(record)
    payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return payload


def append_audit_record(record: dict[str, Any], path: str | Path | None = None) -> Path:
    """Append one JSON object per line to the audit log."""
    target = Path(path) if path is not None else default_audit_log_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = _with_timestamp(record)

    with _APPEND_LOCK, _advisory_file_lock(target):
        with target.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    return target


def audit_record_for(result: AnalysisResult, source: str) -> dict[str, Any]:
    overall = result.overall_risk
    return {
        "kind": "analysis",
        "source": source,
        "format": result.format,
        "total_connections": result.total_connections,
        "summary": result.summary.to_dict(),
        "unknown_count": result.unknown_count,
        "overall_risk": overall.level.value if overall is not None else None,
        "listening_ports": len(result.listening_ports),
        "recommendations": [item.title for item in result.recommendations],
        "error": result.error,
    }


def append_analysis_result(result: AnalysisResult, source: str, path: str | Path | None = None) -> Path:
    return append_audit_record(audit_record_for(result, source), path)


def read_audit_log(path: str | Path | None = None) -> list[dict[str, Any]]:
    target = Path(path) if path is not None else default_audit_log_path()
    if not target.exists():
        return []
    records: list[dict[str, Any]] = []
    with target.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                decoded = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(decoded, dict):
                records.append(decoded)
    return records
