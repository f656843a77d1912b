# =============================================================================
# babycare_core/offline/local_store.py
# Durable Local Storage for the Four Record Collections
# =============================================================================
"""
LocalRecordStore - SQLite-backed key/value storage standing in for browser
local storage.

Features:
- One row per key, value stored as JSON text
- Whole-list replace per collection (atomic per key)
- Corrupt content falls back to an empty collection, with a warning
- Thread-local connections, serialized writes
- pandas export for history tables and charts
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import pandas as pd

from babycare_core.data.records import (
    Collection,
    CollectionSnapshot,
    Record,
    parse_records,
)
from babycare_core.errors import StorageError

logger = logging.getLogger(__name__)


# Persisted keys; these strings are shared with earlier releases
COLLECTION_KEYS = {
    Collection.FEEDINGS: "babyCareFeedings",
    Collection.DIAPERS: "babyCareDiapers",
    Collection.CRY_ANALYSES: "babyCareCryAnalyses",
    Collection.PUMPING_SESSIONS: "motherPumpingSessions",
}
CONFIG_KEY = "babynumtime-config"
LAST_SYNC_KEY = "babynumtime-last-sync"
PENDING_SYNC_KEY = "babynumtime-pending-sync"


class LocalRecordStore:
    """
    Local durable storage for collections and small settings values.

    Usage:
        store = LocalRecordStore(Path("local_data/babycare.db"))
        feedings = store.load(Collection.FEEDINGS)
        store.save(Collection.FEEDINGS, feedings + [new_feeding])
    """

    DEFAULT_DB_PATH = Path("local_data") / "babycare.db"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._initialized = False
        self.initialize()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=10,
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for a serialized write transaction."""
        with self._write_lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def initialize(self) -> None:
        """Create the key/value table if needed."""
        if self._initialized:
            return

        with self.transaction() as conn:
            conn.execute(self.SCHEMA)

        self._initialized = True
        logger.info(f"Local record store initialized at: {self.db_path}")

    # =========================================================================
    # RAW KEY/VALUE ACCESS
    # =========================================================================

    def _read_raw(self, key: str) -> Optional[str]:
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return row["value"] if row else None

    def _write_raw(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, value, datetime.now().isoformat()],
            )

    def get_value(self, key: str, default: Any = None) -> Any:
        """Get a JSON value; corrupt content returns the default."""
        raw = self._read_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Stored value for {key} is not valid JSON, using default")
            return default

    def set_value(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot serialize value: {e}", key=key)
        self._write_raw(key, encoded)

    def remove_value(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    def has_value(self, key: str) -> bool:
        return self._read_raw(key) is not None

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    def load(self, collection: Collection) -> List[Record]:
        """
        Load one collection.

        Returns ``[]`` when the key is absent or its content is corrupt;
        never raises for content problems.
        """
        collection = Collection(collection)
        key = COLLECTION_KEYS[collection]
        raw = self._read_raw(key)
        if raw is None:
            return []

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt local data under {key} ({e}), falling back to empty list")
            return []

        return parse_records(collection, items, source=f"local:{key}")

    def save(self, collection: Collection, records: List[Record]) -> None:
        """Replace the whole stored list for a collection."""
        collection = Collection(collection)
        key = COLLECTION_KEYS[collection]
        try:
            encoded = json.dumps([record.to_dict() for record in records])
        except (AttributeError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot serialize {collection.value}: {e}", key=key)
        self._write_raw(key, encoded)

    def load_snapshot(self) -> CollectionSnapshot:
        """Read all four collections."""
        return CollectionSnapshot(**{c.attribute: self.load(c) for c in Collection})

    def save_snapshot(self, snapshot: CollectionSnapshot) -> None:
        """Overwrite all four collections."""
        for collection in Collection:
            self.save(collection, snapshot.get(collection))

    def clear_collections(self) -> None:
        with self.transaction() as conn:
            for key in COLLECTION_KEYS.values():
                conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    # =========================================================================
    # PANDAS INTEGRATION
    # =========================================================================

    def to_dataframe(self, collection: Collection) -> pd.DataFrame:
        """
        Load a collection into a DataFrame (wire-keyed columns).

        ``time`` is converted to a timezone-aware datetime column and rows are
        ordered most-recent-first.
        """
        rows = [record.to_dict() for record in self.load(collection)]
        df = pd.DataFrame(rows)
        if df.empty:
            return df
        df["time"] = pd.to_datetime(df["time"], utc=True)
        return df.sort_values("time", ascending=False).reset_index(drop=True)

    def close(self) -> None:
        """Close this thread's database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None
