# =============================================================================
# babycare_core/backend/sheets_service.py
# Action-Based RPC over the Backend Row Store
# =============================================================================
"""
SheetsBackendService - the server side of the five-action protocol.

Actions (JSON body, ``action`` field selects one):
    createBaby     {birthDate, babyName?}        -> {success, baby}
    getBaby        {babyId}                      -> {success, baby} | 404
    getData        {babyId}                      -> {success, data}
    syncData       {babyId, data}                -> {success}
    deleteAllData  {babyId}                      -> {success}

Every response carries ``success`` and, on failure, ``error``.
"""

from __future__ import annotations
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from babycare_core.backend.identifiers import generate_unique_owner_id
from babycare_core.backend.row_store import (
    BABIES_SHEET,
    COLLECTION_SHEETS,
    OWNER_COLUMN,
    SHEET_HEADERS,
    Row,
    RowStore,
)
from babycare_core.data.records import Collection, format_timestamp
from babycare_core.errors import BackendError

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def _parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Leading-integer parse of a cell, like a spreadsheet client would."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return default


def _parse_json_cell(value: Any, column: str, record_id: Any) -> Optional[Any]:
    if value in (None, ""):
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable {column} cell for record {record_id}")
        return None


def _cell(value: Any) -> Any:
    return "" if value is None else value


# =============================================================================
# ROW <-> WIRE CONVERSION
# =============================================================================

def _feeding_to_row(owner_id: str, item: Dict[str, Any]) -> Row:
    return {
        "babyId": owner_id,
        "id": item.get("id"),
        "time": item.get("time"),
        "type": item.get("type"),
        "quantity": _cell(item.get("quantity")),
    }


def _feeding_from_row(row: Row) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "time": row.get("time"),
        "type": row.get("type"),
        "quantity": _parse_int(row.get("quantity"), 0),
    }


def _diaper_to_row(owner_id: str, item: Dict[str, Any]) -> Row:
    analysis = item.get("aiAnalysis")
    return {
        "babyId": owner_id,
        "id": item.get("id"),
        "time": item.get("time"),
        "type": item.get("type"),
        "poopType": _cell(item.get("poopType")),
        "notes": _cell(item.get("notes")),
        "image": _cell(item.get("image")),
        "aiAnalysis": json.dumps(analysis) if analysis else "",
    }


def _diaper_from_row(row: Row) -> Dict[str, Any]:
    diaper = {
        "id": row.get("id"),
        "time": row.get("time"),
        "type": row.get("type"),
    }
    for key in ("poopType", "notes", "image"):
        if row.get(key):
            diaper[key] = row[key]
    analysis = _parse_json_cell(row.get("aiAnalysis"), "aiAnalysis", row.get("id"))
    if analysis is not None:
        diaper["aiAnalysis"] = analysis
    return diaper


def _cry_to_row(owner_id: str, item: Dict[str, Any]) -> Row:
    result = item.get("result")
    return {
        "babyId": owner_id,
        "id": item.get("id"),
        "time": item.get("time"),
        "result": json.dumps(result) if result else "",
        "detectedSound": _cell(item.get("detectedSound")),
    }


def _cry_from_row(row: Row) -> Dict[str, Any]:
    analysis = {
        "id": row.get("id"),
        "time": row.get("time"),
    }
    result = _parse_json_cell(row.get("result"), "result", row.get("id"))
    if result is not None:
        analysis["result"] = result
    if row.get("detectedSound"):
        analysis["detectedSound"] = row["detectedSound"]
    return analysis


def _pumping_to_row(owner_id: str, item: Dict[str, Any]) -> Row:
    return {
        "babyId": owner_id,
        "id": item.get("id"),
        "time": item.get("time"),
        "volume": item.get("volume") or 0,
        "duration": _cell(item.get("duration")),
        "side": _cell(item.get("side")),
        "notes": _cell(item.get("notes")),
    }


def _pumping_from_row(row: Row) -> Dict[str, Any]:
    session = {
        "id": row.get("id"),
        "time": row.get("time"),
        "volume": _parse_int(row.get("volume"), 0),
    }
    duration = _parse_int(row.get("duration"))
    if duration is not None:
        session["duration"] = duration
    for key in ("side", "notes"):
        if row.get(key):
            session[key] = row[key]
    return session


_CONVERTERS = {
    Collection.FEEDINGS: (_feeding_to_row, _feeding_from_row),
    Collection.DIAPERS: (_diaper_to_row, _diaper_from_row),
    Collection.CRY_ANALYSES: (_cry_to_row, _cry_from_row),
    Collection.PUMPING_SESSIONS: (_pumping_to_row, _pumping_from_row),
}


# =============================================================================
# SERVICE
# =============================================================================

class SheetsBackendService:
    """
    Server-side implementation of the record-keeping actions.

    Usage:
        service = SheetsBackendService(InMemoryRowStore())
        status, payload = service.handle({"action": "createBaby", "birthDate": "2024-05-01"})
    """

    NOT_CONFIGURED_MESSAGE = "Server is not configured correctly. Contact the administrator."

    def __init__(self, row_store: Optional[RowStore] = None):
        self.row_store = row_store

    @property
    def is_configured(self) -> bool:
        return self.row_store is not None and self.row_store.is_connected

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def create_baby(self, birth_date: str, baby_name: Optional[str] = None) -> Dict[str, Any]:
        """Allocate a fresh identifier and store the profile row."""
        self.row_store.ensure_sheets()

        taken = {row.get(OWNER_COLUMN) for row in self.row_store.read_rows(BABIES_SHEET)}
        baby_id = generate_unique_owner_id(lambda candidate: candidate in taken)
        created_at = format_timestamp(datetime.now(timezone.utc))

        self.row_store.append_rows(BABIES_SHEET, [{
            "babyId": baby_id,
            "birthDate": birth_date,
            "babyName": baby_name or "",
            "createdAt": created_at,
        }])
        logger.info(f"Created owner {baby_id}")

        baby = {"babyId": baby_id, "birthDate": birth_date}
        if baby_name:
            baby["babyName"] = baby_name
        return baby

    def get_baby(self, baby_id: str) -> Optional[Dict[str, Any]]:
        for row in self.row_store.read_owner_rows(BABIES_SHEET, baby_id):
            baby = {"babyId": row.get("babyId"), "birthDate": row.get("birthDate")}
            if row.get("babyName"):
                baby["babyName"] = row["babyName"]
            return baby
        return None

    def get_data(self, baby_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """Return the owner's rows of all four collections in wire form."""
        data = {}
        for collection, sheet in COLLECTION_SHEETS.items():
            _, from_row = _CONVERTERS[collection]
            data[collection.value] = [
                from_row(row) for row in self.row_store.read_owner_rows(sheet, baby_id)
            ]
        return data

    def sync_data(self, baby_id: str, data: Dict[str, Any]) -> None:
        """
        Full replace of the owner's rows in each collection sheet.

        Other owners' rows are left in place. There is no transaction across
        sheets: a failure part-way leaves earlier sheets already replaced.
        """
        self.row_store.ensure_sheets()

        for collection, sheet in COLLECTION_SHEETS.items():
            to_row, _ = _CONVERTERS[collection]
            items = data.get(collection.value) or []
            if not isinstance(items, list):
                raise BackendError(f"{collection.value} must be a list", action="syncData")
            rows = [to_row(baby_id, item) for item in items if isinstance(item, dict)]
            self.row_store.replace_owner_rows(sheet, baby_id, rows)

        logger.info(f"Synced data for {baby_id}")

    def delete_all_data(self, baby_id: str) -> None:
        """Remove the profile row and every collection row of one owner."""
        for sheet in SHEET_HEADERS:
            self.row_store.delete_owner_rows(sheet, baby_id)
        logger.info(f"Deleted all data for {baby_id}")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, body: Any) -> Tuple[int, Dict[str, Any]]:
        """
        Dispatch one request body.

        Returns:
            (HTTP status code, JSON payload)
        """
        if not self.is_configured:
            return 500, {"success": False, "error": self.NOT_CONFIGURED_MESSAGE}
        if not isinstance(body, dict):
            return 400, {"success": False, "error": "Request body must be a JSON object"}

        action = body.get("action")
        baby_id = body.get("babyId")

        try:
            if action == "createBaby":
                birth_date = body.get("birthDate")
                if not birth_date:
                    return 400, {"success": False, "error": "birthDate is required"}
                baby = self.create_baby(birth_date, body.get("babyName") or None)
                return 200, {"success": True, "baby": baby}

            if action == "getBaby":
                if not baby_id:
                    return 400, {"success": False, "error": "babyId is required"}
                baby = self.get_baby(baby_id)
                if baby is None:
                    return 404, {"success": False, "error": "Baby not found"}
                return 200, {"success": True, "baby": baby}

            if action == "getData":
                if not baby_id:
                    return 400, {"success": False, "error": "babyId is required"}
                return 200, {"success": True, "data": self.get_data(baby_id)}

            if action == "syncData":
                data = body.get("data")
                if not baby_id or not isinstance(data, dict):
                    return 400, {"success": False, "error": "babyId and data are required"}
                self.sync_data(baby_id, data)
                return 200, {"success": True}

            if action == "deleteAllData":
                if not baby_id:
                    return 400, {"success": False, "error": "babyId is required"}
                self.delete_all_data(baby_id)
                return 200, {"success": True}

            return 400, {"success": False, "error": "Invalid action"}

        except BackendError as e:
            logger.error(f"Backend action {action} failed: {e}")
            return 500, {"success": False, "error": e.message}
        except Exception as e:
            logger.error(f"Backend action {action} crashed: {e}", exc_info=True)
            return 500, {"success": False, "error": "Internal server error"}
