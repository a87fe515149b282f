from __future__ import annotations

import os
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock

from .log import Logger


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path(path: str) -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory; in that case the database file goes inside it.
    """
    p = os.path.abspath(path)
    if os.path.isdir(p):
        p = os.path.join(p, "disconsulate.db")
    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


@dataclass(frozen=True)
class EventRow:
    id: int
    ts: str
    level: str
    service: str | None
    message: str


class EventLog(Logger):
    """Logger that records every message in a sqlite ``events`` table."""

    def __init__(self, path: str) -> None:
        self.path = _resolve_db_path(path)
        self._lock = Lock()
        self.init_db()

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        with self._lock, closing(self.connect()) as conn, conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS events (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  ts TEXT NOT NULL,
                  level TEXT NOT NULL, -- DEBUG|INFO|ERROR|FATAL
                  service TEXT,
                  message TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
                """
            )

    def log(self, level: str, message: str, service: str | None = None) -> None:
        with self._lock, closing(self.connect()) as conn, conn:
            conn.execute(
                "INSERT INTO events (ts, level, service, message) VALUES (?, ?, ?, ?)",
                (utc_now(), level.upper(), service, message),
            )

    def latest(self, limit: int = 100, level: str | None = None) -> list[EventRow]:
        sql = "SELECT id, ts, level, service, message FROM events"
        args: list[object] = []
        if level:
            sql += " WHERE level = ?"
            args.append(level.upper())
        sql += " ORDER BY id DESC LIMIT ?"
        args.append(max(1, int(limit)))
        with self._lock, closing(self.connect()) as conn, conn:
            rows = conn.execute(sql, args).fetchall()
        return [EventRow(**dict(r)) for r in rows]
