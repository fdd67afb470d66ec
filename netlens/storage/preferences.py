"""SQLite-backed preference, threat-list and snapshot storage for netlens."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import sqlite3
from typing import Any

HOME_ENV = "NETLENS_HOME"
DB_NAME = "netlens.db"


def data_dir() -> Path:
    """Directory holding the database and audit log; ``$NETLENS_HOME`` or ``~/.netlens``."""
    override = os.environ.get(HOME_ENV, "").strip()
    return Path(override).expanduser() if override else Path.home() / ".netlens"


def db_path() -> Path:
    return data_dir() / DB_NAME


def _connect() -> sqlite3.Connection:
    target = db_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS preferences (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS threat_lists (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS snapshots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            format TEXT NOT NULL,
            raw_text TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
    return conn


def _stamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def set_preference(key: str, value: Any) -> None:
    payload = json.dumps(value, ensure_ascii=False)
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO preferences(key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (key, payload, _stamp()),
        )


def get_preference(key: str, default: Any = None) -> Any:
    with _connect() as conn:
        row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
    if not row:
        return default
    try:
        return json.loads(str(row[0]))
    except json.JSONDecodeError:
        return default


def save_threat_list_payloads(payloads: list[dict[str, Any]]) -> None:
    """Replace every stored threat list, keeping the given order."""
    stamp = _stamp()
    with _connect() as conn:
        conn.execute("DELETE FROM threat_lists")
        conn.executemany(
            "INSERT INTO threat_lists(id, position, payload, updated_at) VALUES (?, ?, ?, ?)",
            [
                (str(payload.get("id") or ""), position, json.dumps(payload, ensure_ascii=False), stamp)
                for position, payload in enumerate(payloads)
            ],
        )


def load_threat_list_payloads() -> list[dict[str, Any]]:
    with _connect() as conn:
        rows = conn.execute("SELECT payload FROM threat_lists ORDER BY position ASC").fetchall()
    payloads: list[dict[str, Any]] = []
    for (payload,) in rows:
        try:
            decoded = json.loads(str(payload))
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            payloads.append(decoded)
    return payloads


def record_snapshot(name: str, fmt: str, raw_text: str) -> int:
    """Store the raw table text of an analysis; returns the new snapshot id."""
    with _connect() as conn:
        cursor = conn.execute(
            "INSERT INTO snapshots(name, format, raw_text, created_at) VALUES (?, ?, ?, ?)",
            (name, fmt, raw_text, _stamp()),
        )
        return int(cursor.lastrowid)


def list_snapshots(limit: int = 25) -> list[dict[str, Any]]:
    with _connect() as conn:
        rows = conn.execute(
            "SELECT id, name, format, raw_text, created_at FROM snapshots ORDER BY id DESC LIMIT ?",
            (max(1, int(limit)),),
        ).fetchall()
    return [
        {"id": row_id, "name": name, "format": fmt, "raw_text": raw_text, "created_at": created_at}
        for row_id, name, fmt, raw_text, created_at in rows
    ]
