# =============================================================================
# tests/unit/test_local_store.py
# Unit Tests for LocalRecordStore and StorageModeConfig
# =============================================================================

import pytest

from babycare_core.data.records import Collection, CollectionSnapshot, FeedingRecord
from babycare_core.errors import DataValidationError, StorageError
from babycare_core.offline.local_store import COLLECTION_KEYS, CONFIG_KEY, LocalRecordStore
from babycare_core.offline.storage_mode import StorageConfig, StorageMode


class TestLocalRecordStore:
    """Test collection persistence"""

    def test_absent_collection_is_empty(self, store):
        assert store.load(Collection.FEEDINGS) == []

    def test_save_and_load(self, store, sample_snapshot):
        store.save(Collection.FEEDINGS, sample_snapshot.feedings)
        assert store.load(Collection.FEEDINGS) == sample_snapshot.feedings

    def test_save_replaces_whole_list(self, store, sample_snapshot):
        store.save(Collection.FEEDINGS, sample_snapshot.feedings)
        store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
        assert len(store.load(Collection.FEEDINGS)) == 1

    def test_corrupt_json_falls_back_to_empty(self, store):
        store._write_raw(COLLECTION_KEYS[Collection.DIAPERS], "{not json")
        assert store.load(Collection.DIAPERS) == []

    def test_non_list_content_falls_back_to_empty(self, store):
        store.set_value(COLLECTION_KEYS[Collection.FEEDINGS], {"id": "f1"})
        assert store.load(Collection.FEEDINGS) == []

    def test_persists_across_instances(self, tmp_path, sample_snapshot):
        path = tmp_path / "shared.db"
        first = LocalRecordStore(path)
        first.save_snapshot(sample_snapshot)
        first.close()

        second = LocalRecordStore(path)
        assert second.load_snapshot() == sample_snapshot
        second.close()

    def test_legacy_storage_keys(self, store, sample_snapshot):
        store.save_snapshot(sample_snapshot)
        assert store.has_value("babyCareFeedings")
        assert store.has_value("babyCareDiapers")
        assert store.has_value("babyCareCryAnalyses")
        assert store.has_value("motherPumpingSessions")

    def test_clear_collections_keeps_other_keys(self, store, sample_snapshot):
        store.save_snapshot(sample_snapshot)
        store.set_value(CONFIG_KEY, {"storageMode": "offline", "birthDate": "2024-05-01"})

        store.clear_collections()

        assert store.load_snapshot().is_empty
        assert store.has_value(CONFIG_KEY)

    def test_unserializable_value_raises(self, store):
        with pytest.raises(StorageError):
            store.set_value("bad", object())

    def test_to_dataframe_most_recent_first(self, store, sample_snapshot):
        store.save(Collection.FEEDINGS, sample_snapshot.feedings)
        df = store.to_dataframe(Collection.FEEDINGS)

        assert list(df["id"]) == ["f1", "f0"]
        assert str(df["time"].dt.tz) == "UTC"

    def test_to_dataframe_empty(self, store):
        assert store.to_dataframe(Collection.PUMPING_SESSIONS).empty


class TestStorageConfig:
    """Test the mode/owner invariant"""

    def test_cloud_requires_owner(self):
        with pytest.raises(DataValidationError):
            StorageConfig(StorageMode.CLOUD, "2024-05-01")

    def test_offline_rejects_owner(self):
        with pytest.raises(DataValidationError):
            StorageConfig(StorageMode.OFFLINE, "2024-05-01", owner_id="ABC234")

    def test_wire_keys(self):
        config = StorageConfig("cloud", "2024-05-01", "ABC234", "Ayu")
        assert config.to_dict() == {
            "storageMode": "cloud",
            "birthDate": "2024-05-01",
            "babyId": "ABC234",
            "babyName": "Ayu",
        }


class TestStorageModeConfig:
    """Test persisted config access"""

    def test_not_onboarded_initially(self, mode_config):
        assert mode_config.get() is None
        assert not mode_config.is_onboarding_complete()

    def test_set_get_clear(self, mode_config):
        mode_config.set(StorageConfig(StorageMode.CLOUD, "2024-05-01", "ABC234"))

        assert mode_config.active_owner_id() == "ABC234"
        assert mode_config.is_onboarding_complete()

        mode_config.clear()
        assert mode_config.get() is None

    def test_offline_has_no_active_owner(self, mode_config):
        mode_config.set(StorageConfig(StorageMode.OFFLINE, "2024-05-01"))
        assert mode_config.active_owner_id() is None

    def test_invalid_stored_config_reads_as_none(self, store, mode_config):
        store.set_value(CONFIG_KEY, {"storageMode": "cloud", "birthDate": "2024-05-01"})
        assert mode_config.get() is None
