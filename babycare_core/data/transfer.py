# =============================================================================
# babycare_core/data/transfer.py
# Full Local Export / Import
# =============================================================================
"""
A backup document holds a version tag, the storage-mode record and all four
collections:

    {"version": 1, "exportedAt": "...", "config": {...},
     "feedings": [...], "diapers": [...], "cryAnalyses": [...],
     "pumpingSessions": [...]}

Imports are validated completely before anything is written and always land
in offline mode: a cloud owner identifier is never imported.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union
import logging

from babycare_core.data.records import Collection, CollectionSnapshot, format_timestamp, utc_now
from babycare_core.errors import DataValidationError
from babycare_core.offline.local_store import PENDING_SYNC_KEY, LocalRecordStore
from babycare_core.offline.storage_mode import StorageConfig, StorageMode, StorageModeConfig

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1
SUPPORTED_VERSIONS = (1,)


@dataclass
class ImportDocument:
    """A validated backup, ready to apply."""
    version: int
    config: StorageConfig
    snapshot: CollectionSnapshot


def build_export(store: LocalRecordStore, mode_config: StorageModeConfig) -> Dict[str, Any]:
    """Collect the storage config and all four collections into one document."""
    config = mode_config.get()
    document = {
        "version": EXPORT_VERSION,
        "exportedAt": format_timestamp(utc_now()),
        "config": config.to_dict() if config else None,
    }
    document.update(store.load_snapshot().to_wire())
    return document


def export_to_file(
    path: Union[str, Path],
    store: LocalRecordStore,
    mode_config: StorageModeConfig,
) -> Path:
    path = Path(path)
    document = build_export(store, mode_config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    logger.info(f"Exported local data to {path}")
    return path


def parse_import(document: Union[Dict[str, Any], str, bytes]) -> ImportDocument:
    """
    Validate a backup document.

    Raises:
        DataValidationError: not an object, missing/unsupported version, or
            missing/invalid config
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise DataValidationError(f"Backup is not valid JSON: {e}", field="document")

    if not isinstance(document, dict):
        raise DataValidationError("Backup must be a JSON object", field="document")

    version = document.get("version")
    if version is None:
        raise DataValidationError("Backup has no version tag", field="version")
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise DataValidationError(
            "Unsupported backup version",
            field="version",
            expected=", ".join(str(v) for v in SUPPORTED_VERSIONS),
            actual=repr(version),
        )

    raw_config = document.get("config")
    if not isinstance(raw_config, dict):
        raise DataValidationError("Backup has no storage configuration", field="config")

    # Cloud identity is dropped before validation: imports always land offline
    config = StorageConfig(
        mode=StorageMode.OFFLINE,
        birth_date=raw_config.get("birthDate"),
        owner_id=None,
        display_name=raw_config.get("babyName"),
    )

    snapshot = CollectionSnapshot.from_wire(
        {c.value: document.get(c.value) for c in Collection}, source="import"
    )
    return ImportDocument(version=version, config=config, snapshot=snapshot)


def apply_import(
    store: LocalRecordStore,
    mode_config: StorageModeConfig,
    document: Union[Dict[str, Any], str, bytes, ImportDocument],
) -> ImportDocument:
    """Overwrite local collections and config with a backup (offline mode)."""
    parsed = document if isinstance(document, ImportDocument) else parse_import(document)

    store.save_snapshot(parsed.snapshot)
    mode_config.set(parsed.config)
    store.remove_value(PENDING_SYNC_KEY)

    logger.info(f"Imported backup: {parsed.snapshot.counts()}")
    return parsed


def import_from_file(
    path: Union[str, Path],
    store: LocalRecordStore,
    mode_config: StorageModeConfig,
) -> ImportDocument:
    path = Path(path)
    return apply_import(store, mode_config, path.read_bytes())
