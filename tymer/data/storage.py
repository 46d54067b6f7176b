from __future__ import annotations

"""SQLite storage for the session snapshot, settings and the sound event log."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from tymer.notifications.event_log import SoundEvent


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
STATE_KEY = "timer_state"


class Storage:
    """Wraps the SQLite connection and its transactional operations."""
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Creates the tables on first run."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sound_events(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp_ms INTEGER NOT NULL,
                    event_type TEXT NOT NULL,
                    sound TEXT NOT NULL,
                    context TEXT NOT NULL DEFAULT '{}'
                )
                """
            )

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        raw = row["value"]
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return raw

    def set_setting(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, payload),
            )

    def save_state(self, snapshot: dict[str, Any]) -> None:
        self.set_setting(STATE_KEY, snapshot)

    def load_state(self, expected_keys: Iterable[str]) -> dict[str, Any] | None:
        """Returns the stored snapshot, or None unless it has every expected key."""
        loaded = self.get_setting(STATE_KEY)
        if loaded is None:
            return None
        if not isinstance(loaded, dict):
            logger.warning("Stored timer state is not a mapping, ignoring it")
            return None
        missing = [key for key in expected_keys if key not in loaded]
        if missing:
            logger.warning("Stored timer state is missing %s, ignoring it", ", ".join(missing))
            return None
        return loaded

    def clear_state(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (STATE_KEY,))

    def append_sound_event(self, event: SoundEvent, keep: int | None = None) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO sound_events(timestamp_ms, event_type, sound, context) VALUES (?, ?, ?, ?)",
                (event.timestamp_ms, event.event_type, event.sound, json.dumps(event.context)),
            )
            if keep is not None:
                self._trim(conn, keep)

    def list_sound_events(self, limit: int = 1000) -> list[SoundEvent]:
        """Returns the newest ``limit`` events in chronological order."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT timestamp_ms, event_type, sound, context FROM (
                    SELECT id, timestamp_ms, event_type, sound, context
                    FROM sound_events ORDER BY id DESC LIMIT ?
                ) ORDER BY id ASC
                """,
                (limit,),
            ).fetchall()
        events = []
        for row in rows:
            try:
                context = json.loads(row["context"])
            except (TypeError, json.JSONDecodeError):
                context = {}
            events.append(
                SoundEvent(
                    timestamp_ms=row["timestamp_ms"],
                    event_type=row["event_type"],
                    sound=row["sound"],
                    context=context if isinstance(context, dict) else {},
                )
            )
        return events

    def trim_sound_events(self, keep: int) -> None:
        with self._transaction() as conn:
            self._trim(conn, keep)

    def clear_sound_events(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM sound_events")

    @staticmethod
    def _trim(conn: sqlite3.Connection, keep: int) -> None:
        conn.execute(
            "DELETE FROM sound_events WHERE id NOT IN (SELECT id FROM sound_events ORDER BY id DESC LIMIT ?)",
            (keep,),
        )
