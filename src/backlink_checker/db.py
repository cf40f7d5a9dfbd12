"""SQLite persistence for backlink records and their latest check."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from .models import BacklinkRecord, CheckStatus, InvalidRecordError

DB_PATH = Path("data/backlinks.db")

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}


def get_connection(db_path: Path = DB_PATH) -> sqlite3.Connection:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS backlinks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            live_link TEXT NOT NULL,
            target_url TEXT NOT NULL,
            target_anchor TEXT NOT NULL,
            status TEXT DEFAULT 'pending',
            link_found BOOLEAN DEFAULT 0,
            link_context TEXT,
            http_status INTEGER,
            last_checked DATETIME,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            retry_count INTEGER DEFAULT 0,
            last_error TEXT,
            anchor_match_type TEXT
        );
        """
    )
    conn.commit()


def coerce_bool(value: Any) -> bool:
    """Normalize the assorted truthy spellings a storage layer may hand back."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _row_to_record(row: sqlite3.Row) -> BacklinkRecord:
    return BacklinkRecord(
        id=row["id"],
        live_link=row["live_link"],
        target_url=row["target_url"],
        target_anchor=row["target_anchor"],
        status=row["status"] or CheckStatus.PENDING,
        link_found=coerce_bool(row["link_found"]),
        link_context=row["link_context"],
        http_status=row["http_status"],
        last_checked=_parse_timestamp(row["last_checked"]),
        retry_count=row["retry_count"] or 0,
        last_error=row["last_error"],
        match_type=row["anchor_match_type"],
    )


def add_backlink(conn: sqlite3.Connection, live_link: str, target_url: str, target_anchor: str) -> int:
    record = BacklinkRecord(
        live_link=(live_link or "").strip(),
        target_url=(target_url or "").strip(),
        target_anchor=(target_anchor or "").strip(),
    ).validate()
    cursor = conn.execute(
        "INSERT INTO backlinks (live_link, target_url, target_anchor) VALUES (?, ?, ?)",
        (record.live_link, record.target_url, record.target_anchor),
    )
    conn.commit()
    return int(cursor.lastrowid)


def get_backlink(conn: sqlite3.Connection, backlink_id: int) -> Optional[BacklinkRecord]:
    row = conn.execute("SELECT * FROM backlinks WHERE id = ?", (backlink_id,)).fetchone()
    return _row_to_record(row) if row else None


def list_backlinks(conn: sqlite3.Connection) -> List[BacklinkRecord]:
    rows = conn.execute("SELECT * FROM backlinks ORDER BY created_at DESC, id DESC").fetchall()
    return [_row_to_record(row) for row in rows]


def save_check(conn: sqlite3.Connection, record: BacklinkRecord) -> None:
    """Persist the check state carried by ``record`` against its id."""
    if record.id is None:
        raise InvalidRecordError("Cannot save a check for a record without an id")
    conn.execute(
        "UPDATE backlinks SET status = ?, link_found = ?, link_context = ?, http_status = ?,"
        " last_checked = ?, retry_count = ?, last_error = ?, anchor_match_type = ?"
        " WHERE id = ?",
        (
            record.status,
            1 if record.link_found else 0,
            record.link_context or "",
            record.http_status,
            record.last_checked.isoformat(sep=" ", timespec="seconds") if record.last_checked else None,
            record.retry_count,
            record.last_error,
            record.match_type,
            record.id,
        ),
    )
    conn.commit()
