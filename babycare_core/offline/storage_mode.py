# =============================================================================
# babycare_core/offline/storage_mode.py
# Storage-Mode Configuration (offline vs. cloud)
# =============================================================================
"""
The single persisted record deciding whether the app runs offline or against
a shared cloud owner, plus the baby's birth date and name.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import logging

from babycare_core.errors import DataValidationError
from babycare_core.offline.local_store import CONFIG_KEY, LocalRecordStore

logger = logging.getLogger(__name__)


class StorageMode(str, Enum):
    OFFLINE = "offline"
    CLOUD = "cloud"


@dataclass
class StorageConfig:
    """
    Profile and storage mode.

    ``owner_id`` is set if and only if ``mode`` is cloud.
    """
    mode: StorageMode
    birth_date: str
    owner_id: Optional[str] = None
    display_name: Optional[str] = None

    def __post_init__(self):
        try:
            self.mode = StorageMode(self.mode)
        except ValueError:
            raise DataValidationError(
                "Invalid storage mode", field="storageMode", expected="offline, cloud", actual=repr(self.mode)
            )
        if not isinstance(self.birth_date, str) or not self.birth_date:
            raise DataValidationError("Birth date is required", field="birthDate")
        self.owner_id = self.owner_id or None
        self.display_name = self.display_name or None

        if self.mode == StorageMode.CLOUD and self.owner_id is None:
            raise DataValidationError("Cloud mode requires an owner identifier", field="babyId")
        if self.mode == StorageMode.OFFLINE and self.owner_id is not None:
            raise DataValidationError("Offline mode cannot carry an owner identifier", field="babyId")

    @property
    def is_cloud(self) -> bool:
        return self.mode == StorageMode.CLOUD

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "storageMode": self.mode.value,
            "birthDate": self.birth_date,
        }
        if self.owner_id:
            payload["babyId"] = self.owner_id
        if self.display_name:
            payload["babyName"] = self.display_name
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StorageConfig:
        if not isinstance(data, dict):
            raise DataValidationError("Expected an object", field="config")
        return cls(
            mode=data.get("storageMode"),
            birth_date=data.get("birthDate"),
            owner_id=data.get("babyId"),
            display_name=data.get("babyName"),
        )


class StorageModeConfig:
    """Get/set/clear access to the persisted StorageConfig."""

    def __init__(self, store: LocalRecordStore):
        self._store = store

    def get(self) -> Optional[StorageConfig]:
        data = self._store.get_value(CONFIG_KEY)
        if data is None:
            return None
        try:
            return StorageConfig.from_dict(data)
        except DataValidationError as e:
            logger.warning(f"Stored storage config is invalid, ignoring it: {e}")
            return None

    def set(self, config: StorageConfig) -> None:
        self._store.set_value(CONFIG_KEY, config.to_dict())
        logger.info(f"Storage mode set to {config.mode.value}")

    def clear(self) -> None:
        self._store.remove_value(CONFIG_KEY)
        logger.info("Storage config cleared")

    def is_onboarding_complete(self) -> bool:
        return self.get() is not None

    def active_owner_id(self) -> Optional[str]:
        """Owner identifier when running in cloud mode, otherwise None."""
        config = self.get()
        if config is None or not config.is_cloud:
            return None
        return config.owner_id
