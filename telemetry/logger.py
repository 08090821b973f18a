# telemetry/logger.py
from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DB_PATH = os.getenv("TELEMETRY_DB", "telemetry.sqlite3")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Keys that must never be written to the event sink.
_REDACTED_KEYS = {"password", "password_hash", "refresh_token", "refreshToken", "access_token", "accessToken", "token_hash"}


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    else:
        root.setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


logger = get_logger(__name__)


def _conn(db_path: str) -> sqlite3.Connection:
    c = sqlite3.connect(db_path)
    c.execute(
        """
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT NOT NULL,
            user_id TEXT,
            event TEXT NOT NULL,
            payload TEXT NOT NULL
        )
        """
    )
    c.commit()
    return c


def _scrub(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in (payload or {}).items() if k not in _REDACTED_KEYS}


def log_event(
    event: str,
    payload: Optional[Dict[str, Any]] = None,
    user_id: Optional[Any] = None,
    db_path: Optional[str] = None,
) -> None:
    """
    Append an audit event (e.g. "auth.login") to the telemetry table.

    Telemetry must NEVER break the request: sink failures are logged and dropped.
    Secrets are stripped from the payload before it is written.
    """
    path = db_path or DB_PATH
    try:
        ts = datetime.now(timezone.utc).isoformat()
        conn = _conn(path)
        try:
            conn.execute(
                "INSERT INTO events (ts, user_id, event, payload) VALUES (?, ?, ?, ?)",
                (
                    ts,
                    None if user_id is None else str(user_id),
                    event,
                    json.dumps(_scrub(payload or {}), ensure_ascii=False),
                ),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("telemetry write failed for %s: %s", event, e)


def read_events(db_path: Optional[str] = None, event: Optional[str] = None) -> list[Dict[str, Any]]:
    """
    Return stored events oldest first, optionally filtered by name.

    Operator and test helper for inspecting the audit trail; the app itself only writes.
    """
    conn = _conn(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        if event:
            rows = conn.execute(
                "SELECT ts, user_id, event, payload FROM events WHERE event = ? ORDER BY id",
                (event,),
            ).fetchall()
        else:
            rows = conn.execute("SELECT ts, user_id, event, payload FROM events ORDER BY id").fetchall()
    finally:
        conn.close()
    return [
        {"ts": r["ts"], "user_id": r["user_id"], "event": r["event"], "payload": json.loads(r["payload"])}
        for r in rows
    ]
