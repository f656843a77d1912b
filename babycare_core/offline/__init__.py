# =============================================================================
# babycare_core/offline/__init__.py
# Local Persistence and Cloud Reconciliation
# =============================================================================
"""
Offline-first storage: the local record store, the storage-mode record and
the sync coordinator that reconciles them with the backend in cloud mode.
"""

from babycare_core.offline.local_store import (
    COLLECTION_KEYS,
    CONFIG_KEY,
    LAST_SYNC_KEY,
    PENDING_SYNC_KEY,
    LocalRecordStore,
)
from babycare_core.offline.storage_mode import (
    StorageConfig,
    StorageMode,
    StorageModeConfig,
)
from babycare_core.offline.sync_coordinator import (
    SyncCoordinator,
    SyncState,
)

__all__ = [
    "COLLECTION_KEYS",
    "CONFIG_KEY",
    "LAST_SYNC_KEY",
    "PENDING_SYNC_KEY",
    "LocalRecordStore",
    "StorageConfig",
    "StorageMode",
    "StorageModeConfig",
    "SyncCoordinator",
    "SyncState",
]
