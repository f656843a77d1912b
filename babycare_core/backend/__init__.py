# =============================================================================
# babycare_core/backend/__init__.py
# Record-Keeping Backend (row store + action RPC)
# =============================================================================
"""
Server side of the cloud mode: owner identifiers, row storage and the
``/api/sheets`` action endpoint.

The Flask app lives in ``babycare_core.backend.routes`` and is imported
from there directly.
"""

from babycare_core.backend.identifiers import (
    OWNER_ID_ALPHABET,
    OWNER_ID_LENGTH,
    generate_owner_id,
    generate_unique_owner_id,
    is_valid_owner_id,
    normalize_owner_id,
)
from babycare_core.backend.row_store import (
    SHEET_HEADERS,
    InMemoryRowStore,
    RowStore,
    SupabaseRowStore,
)
from babycare_core.backend.sheets_service import SheetsBackendService

__all__ = [
    "OWNER_ID_ALPHABET",
    "OWNER_ID_LENGTH",
    "generate_owner_id",
    "generate_unique_owner_id",
    "is_valid_owner_id",
    "normalize_owner_id",
    "SHEET_HEADERS",
    "InMemoryRowStore",
    "RowStore",
    "SupabaseRowStore",
    "SheetsBackendService",
]
