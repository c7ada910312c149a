"""SQLite-backed event log and embedding store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from enum import Enum

from vibebot.events import Event, Filter, Kind, Source
from vibebot.protocols import EmbeddingRow
from vibebot.vector_codec import blob_to_vec, vec_to_blob

__all__ = ["SQLiteStore", "SQLiteVectorStore", "open_sqlite"]

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    ts_ns     INTEGER NOT NULL,
    source    TEXT    NOT NULL,
    scene_id  TEXT    NOT NULL,
    actor     TEXT    NOT NULL,
    kind      TEXT    NOT NULL,
    payload   BLOB    NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts_ns);
CREATE INDEX IF NOT EXISTS idx_events_scene ON events(scene_id);

CREATE TABLE IF NOT EXISTS character_memory (
    character_id TEXT    NOT NULL,
    event_id     INTEGER NOT NULL,
    model_id     TEXT    NOT NULL,
    dim          INTEGER NOT NULL,
    embedding    BLOB    NOT NULL,
    recorded_ns  INTEGER NOT NULL,
    PRIMARY KEY (character_id, event_id, model_id)
);
CREATE INDEX IF NOT EXISTS idx_character_memory_owner_model_ts
    ON character_memory(character_id, model_id, recorded_ns DESC, event_id DESC);
"""

_EVENT_COLUMNS = "id, ts_ns, source, scene_id, actor, kind, payload"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_ns(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000


def _from_ns(ns: int) -> datetime:
    return _EPOCH + timedelta(microseconds=ns // 1000)


def _text(value: object) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _parse_enum(enum_type, value: str):
    try:
        return enum_type(value)
    except ValueError:
        return value


def _row_to_event(row: tuple) -> Event:
    event_id, ts_ns, source, scene_id, actor, kind, payload = row
    return Event(
        id=event_id,
        timestamp=_from_ns(ts_ns),
        source=_parse_enum(Source, source),
        scene_id=scene_id,
        actor=actor,
        kind=_parse_enum(Kind, kind),
        payload=bytes(payload),
    )


class SQLiteStore:
    """Event store on a single SQLite connection, safe across threads."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._lock = threading.RLock()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def append(self, event: Event) -> Event:
        """Persist the event, stamping its timestamp if unset and assigning its id."""
        if event.timestamp is None:
            event.timestamp = datetime.now(timezone.utc)
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO events (ts_ns, source, scene_id, actor, kind, payload)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (
                    _to_ns(event.timestamp),
                    _text(event.source),
                    event.scene_id,
                    event.actor,
                    _text(event.kind),
                    bytes(event.payload),
                ),
            )
        event.id = cursor.lastrowid
        return event

    def query(self, filter: Filter | None = None) -> list[Event]:
        """Return matching events in ascending timestamp order."""
        f = filter or Filter()
        sql = f"SELECT {_EVENT_COLUMNS} FROM events WHERE 1=1"
        args: list[object] = []
        if f.since is not None:
            sql += " AND ts_ns >= ?"
            args.append(_to_ns(f.since))
        if f.scene_id:
            sql += " AND scene_id = ?"
            args.append(f.scene_id)
        if f.actor:
            sql += " AND actor = ?"
            args.append(f.actor)
        if f.kind:
            sql += " AND kind = ?"
            args.append(_text(f.kind))
        sql += " ORDER BY ts_ns ASC, id ASC"
        if f.limit > 0:
            sql += " LIMIT ?"
            args.append(f.limit)
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        return [_row_to_event(row) for row in rows]

    def lookup_by_ids(self, ids: Sequence[int]) -> list[Event]:
        """Return the listed events in ascending id order; missing ids are omitted."""
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        sql = (
            f"SELECT {_EVENT_COLUMNS} FROM events"
            f" WHERE id IN ({placeholders}) ORDER BY id ASC"
        )
        with self._lock:
            rows = self._conn.execute(sql, [int(i) for i in ids]).fetchall()
        return [_row_to_event(row) for row in rows]

    def close(self) -> None:
        """Release the underlying connection."""
        with self._lock:
            self._conn.close()


def open_sqlite(path: str) -> SQLiteStore:
    """Open or create an event store at ``path``; ":memory:" gives a private in-memory one.

    A path starting with ``file:`` is treated as an SQLite URI; anything else is
    a literal file name.
    """
    if path == ":memory:":
        conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
    else:
        conn = sqlite3.connect(
            path,
            uri=path.startswith("file:"),
            check_same_thread=False,
            isolation_level=None,
            timeout=5.0,
        )
    try:
        if path != ":memory:":
            # WAL lets readers run alongside a writer; busy_timeout makes
            # writers wait for the lock instead of failing immediately.
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
        conn.executescript(_SCHEMA)
    except sqlite3.Error:
        conn.close()
        raise
    return SQLiteStore(conn)


class SQLiteVectorStore:
    """Embedding rows stored in the same database as an :class:`SQLiteStore`."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def save(self, row: EmbeddingRow) -> None:
        """Insert one row; saving the same (owner, event, model) twice raises IntegrityError."""
        with self._store._lock:
            self._store._conn.execute(
                "INSERT INTO character_memory"
                " (character_id, event_id, model_id, dim, embedding, recorded_ns)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (
                    row.owner,
                    int(row.event_id),
                    row.model_id,
                    len(row.embedding),
                    vec_to_blob(row.embedding),
                    _to_ns(row.recorded),
                ),
            )

    def load(self, owner: str, model_id: str, limit: int = 0) -> list[EmbeddingRow]:
        """Rows for (owner, model), newest first; ``limit`` <= 0 means unbounded.

        Rows whose blob does not decode are skipped with a warning.
        """
        sql = (
            "SELECT event_id, dim, embedding, recorded_ns FROM character_memory"
            " WHERE character_id = ? AND model_id = ?"
            " ORDER BY recorded_ns DESC, event_id DESC"
        )
        args: list[object] = [owner, model_id]
        if limit > 0:
            sql += " LIMIT ?"
            args.append(limit)
        with self._store._lock:
            rows = self._store._conn.execute(sql, args).fetchall()

        out: list[EmbeddingRow] = []
        for event_id, dim, blob, recorded_ns in rows:
            try:
                vector = blob_to_vec(blob, dim)
            except ValueError as exc:
                logger.warning(
                    "vector blob decode failed; row skipped: character=%s event_id=%s err=%s",
                    owner,
                    event_id,
                    exc,
                )
                continue
            out.append(
                EmbeddingRow(
                    owner=owner,
                    model_id=model_id,
                    event_id=event_id,
                    embedding=vector,
                    recorded=_from_ns(recorded_ns),
                )
            )
        return out