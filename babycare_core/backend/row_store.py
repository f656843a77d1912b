# =============================================================================
# babycare_core/backend/row_store.py
# Row Storage for the Record-Keeping Backend
# =============================================================================
"""
Row-level storage behind the action RPC.

The layout mirrors the spreadsheet the service started on: one sheet of
profiles plus one sheet per collection, every row tagged with the owner
identifier in its ``babyId`` column. Nested values are kept as JSON text
cells.
"""

from __future__ import annotations
import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from babycare_core.data.records import Collection

logger = logging.getLogger(__name__)

OWNER_COLUMN = "babyId"

BABIES_SHEET = "Babies"
FEEDINGS_SHEET = "Feedings"
DIAPERS_SHEET = "Diapers"
CRY_ANALYSES_SHEET = "CryAnalyses"
PUMPING_SHEET = "Pumping"

SHEET_HEADERS: Dict[str, List[str]] = {
    BABIES_SHEET: ["babyId", "birthDate", "babyName", "createdAt"],
    FEEDINGS_SHEET: ["babyId", "id", "time", "type", "quantity"],
    DIAPERS_SHEET: ["babyId", "id", "time", "type", "poopType", "notes", "image", "aiAnalysis"],
    CRY_ANALYSES_SHEET: ["babyId", "id", "time", "result", "detectedSound"],
    PUMPING_SHEET: ["babyId", "id", "time", "volume", "duration", "side", "notes"],
}

COLLECTION_SHEETS = {
    Collection.FEEDINGS: FEEDINGS_SHEET,
    Collection.DIAPERS: DIAPERS_SHEET,
    Collection.CRY_ANALYSES: CRY_ANALYSES_SHEET,
    Collection.PUMPING_SESSIONS: PUMPING_SHEET,
}

Row = Dict[str, Any]


class RowStore(ABC):
    """Abstract base class for backend row storage"""

    @property
    def is_connected(self) -> bool:
        return True

    @abstractmethod
    def ensure_sheets(self) -> None:
        """Create any missing sheet/table with its header"""
        pass

    @abstractmethod
    def read_rows(self, sheet: str) -> List[Row]:
        """Return every row of a sheet"""
        pass

    def read_owner_rows(self, sheet: str, owner_id: str) -> List[Row]:
        """Return the rows of a sheet belonging to one owner"""
        return [row for row in self.read_rows(sheet) if row.get(OWNER_COLUMN) == owner_id]

    @abstractmethod
    def append_rows(self, sheet: str, rows: List[Row]) -> None:
        pass

    @abstractmethod
    def replace_owner_rows(self, sheet: str, owner_id: str, rows: List[Row]) -> None:
        """Delete an owner's rows in a sheet and insert ``rows`` instead"""
        pass

    @abstractmethod
    def delete_owner_rows(self, sheet: str, owner_id: str) -> None:
        pass


class InMemoryRowStore(RowStore):
    """
    Process-local row store.

    Used by tests and local development; behaves like the spreadsheet,
    including keeping other owners' rows in place on replace.
    """

    def __init__(self):
        self._sheets: Dict[str, List[Row]] = {}
        self._lock = threading.Lock()

    def ensure_sheets(self) -> None:
        with self._lock:
            for sheet in SHEET_HEADERS:
                self._sheets.setdefault(sheet, [])

    def read_rows(self, sheet: str) -> List[Row]:
        with self._lock:
            return copy.deepcopy(self._sheets.get(sheet, []))

    def append_rows(self, sheet: str, rows: List[Row]) -> None:
        with self._lock:
            self._sheets.setdefault(sheet, []).extend(copy.deepcopy(rows))

    def replace_owner_rows(self, sheet: str, owner_id: str, rows: List[Row]) -> None:
        with self._lock:
            kept = [r for r in self._sheets.get(sheet, []) if r.get(OWNER_COLUMN) != owner_id]
            self._sheets[sheet] = kept + copy.deepcopy(rows)

    def delete_owner_rows(self, sheet: str, owner_id: str) -> None:
        with self._lock:
            self._sheets[sheet] = [
                r for r in self._sheets.get(sheet, []) if r.get(OWNER_COLUMN) != owner_id
            ]


class SupabaseRowStore(RowStore):
    """
    Row store on Supabase tables, one table per sheet.

    Tables are expected to exist with the sheet header names as columns.
    """

    TABLE_MAPPING = {
        BABIES_SHEET: "babies",
        FEEDINGS_SHEET: "feedings",
        DIAPERS_SHEET: "diapers",
        CRY_ANALYSES_SHEET: "cry_analyses",
        PUMPING_SHEET: "pumping_sessions",
    }

    BATCH_SIZE = 1000  # Supabase row limit per request

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_credentials(cls, url: str, key: str) -> SupabaseRowStore:
        from supabase import create_client

        return cls(create_client(url, key))

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    def _table(self, sheet: str):
        return self.client.table(self.TABLE_MAPPING.get(sheet, sheet))

    def ensure_sheets(self) -> None:
        # Tables are provisioned by migration; only verify they answer
        for sheet in SHEET_HEADERS:
            self._table(sheet).select(OWNER_COLUMN).limit(1).execute()

    def _fetch_all(self, sheet: str, owner_id: Optional[str] = None) -> List[Row]:
        """Fetch rows in batches to get past the per-request row limit."""
        all_data: List[Row] = []
        offset = 0

        while True:
            query = self._table(sheet).select("*")
            if owner_id is not None:
                query = query.eq(OWNER_COLUMN, owner_id)
            response = query.range(offset, offset + self.BATCH_SIZE - 1).execute()

            if not response.data:
                break
            all_data.extend(response.data)
            if len(response.data) < self.BATCH_SIZE:
                break
            offset += self.BATCH_SIZE

        headers = SHEET_HEADERS.get(sheet)
        if headers:
            all_data = [{k: v for k, v in row.items() if k in headers} for row in all_data]
        return all_data

    def read_rows(self, sheet: str) -> List[Row]:
        return self._fetch_all(sheet)

    def read_owner_rows(self, sheet: str, owner_id: str) -> List[Row]:
        return self._fetch_all(sheet, owner_id=owner_id)

    def append_rows(self, sheet: str, rows: List[Row]) -> None:
        if rows:
            self._table(sheet).insert(rows).execute()

    def replace_owner_rows(self, sheet: str, owner_id: str, rows: List[Row]) -> None:
        self._table(sheet).delete().eq(OWNER_COLUMN, owner_id).execute()
        if rows:
            self._table(sheet).insert(rows).execute()
        logger.debug(f"Replaced {len(rows)} rows in {sheet} for {owner_id}")

    def delete_owner_rows(self, sheet: str, owner_id: str) -> None:
        self._table(sheet).delete().eq(OWNER_COLUMN, owner_id).execute()
