# sitescout/services/history_service.py
import logging
import sqlite3
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from pydantic import TypeAdapter, ValidationError

from sitescout.models import HistoryEntry, SiteAnalysis

logger = logging.getLogger(__name__)

HISTORY_KEY = "sitescout_history"
DEFAULT_HISTORY_LIMIT = 15

_entries_adapter = TypeAdapter(List[HistoryEntry])


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SqliteKeyValueStore:
    """String values in a single sqlite table, one short-lived connection per call."""

    def __init__(self, path: str):
        self.path = path
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path, timeout=30)

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return str(row[0]) if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store(key, value, updated_at) VALUES(?, ?, ?)",
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()


def new_entry_id() -> str:
    return uuid.uuid4().hex[:9]

def now_ms() -> int:
    return int(time.time() * 1000)


class HistoryStore:
    """
    Most-recent-first cache of finished reports, at most one per URL and at most
    ``limit`` in total. The whole collection is persisted under one key.
    """

    def __init__(self, store: KeyValueStore, limit: int = DEFAULT_HISTORY_LIMIT):
        self._store = store
        self.limit = limit
        self._entries: List[HistoryEntry] = self._load()

    def _load(self) -> List[HistoryEntry]:
        saved = self._store.get(HISTORY_KEY)
        if not saved:
            return []
        try:
            return list(_entries_adapter.validate_json(saved))[: self.limit]
        except ValidationError as e:
            logger.error("Failed to load history, starting empty: %s", e)
            return []

    def _persist(self) -> None:
        self._store.set(HISTORY_KEY, _entries_adapter.dump_json(self._entries, by_alias=True).decode())

    def put(self, entry: HistoryEntry) -> HistoryEntry:
        """Inserts ``entry`` at the front, replacing any entry for the same URL."""
        kept = [e for e in self._entries if e.url != entry.url]
        self._entries = [entry, *kept][: self.limit]
        self._persist()
        return entry

    def record(self, analysis: SiteAnalysis) -> HistoryEntry:
        entry = HistoryEntry(id=new_entry_id(), url=analysis.url, timestamp=now_ms(), data=analysis)
        return self.put(entry)

    def remove(self, entry_id: str) -> None:
        kept = [e for e in self._entries if e.id != entry_id]
        if len(kept) != len(self._entries):
            self._entries = kept
            self._persist()

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def load_all(self) -> List[HistoryEntry]:
        return list(self._entries)

    def recent(self, count: int = 4) -> List[HistoryEntry]:
        return self._entries[:count]
