# =============================================================================
# babycare_core/services/baby_data_service.py
# Baby Data Service - Single API for Offline and Cloud Operation
# =============================================================================
"""
BabyDataService - the primary API for all record operations.

Reads always come from the local store. Mutations are written locally first;
in cloud mode each mutation is followed by an immediate push, and a failed
push never undoes the local write (the pending flag makes the next cycle
retry).

Usage:
------
from babycare_core.services.baby_data_service import build_baby_data_service

service = build_baby_data_service()
service.start()

service.add_feeding(120, FeedingType.FORMULA)
feedings = service.get_feedings()

print(service.get_status())
"""

from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from babycare_core.analysis.cry_analysis import CryClassifier, StoolAnalyzer, normalize_distribution
from babycare_core.api.gateway import CONFIG, NOT_FOUND, RemoteCollectionGateway
from babycare_core.backend.identifiers import is_valid_owner_id, normalize_owner_id
from babycare_core.data import transfer
from babycare_core.data.records import (
    Collection,
    CollectionSnapshot,
    CryAnalysisRecord,
    DiaperRecord,
    DiaperType,
    FeedingRecord,
    FeedingType,
    PoopAssessment,
    PoopConsistency,
    PumpingRecord,
    PumpingSide,
    Record,
    new_record_id,
    sort_most_recent_first,
    utc_now,
)
from babycare_core.errors import DataValidationError
from babycare_core.errors.handlers import Notifier
from babycare_core.offline.local_store import LocalRecordStore
from babycare_core.offline.storage_mode import StorageConfig, StorageMode, StorageModeConfig
from babycare_core.offline.sync_coordinator import SyncCoordinator
from babycare_core.services.base_service import BaseService, ServiceResult


class BabyDataService(BaseService):
    """
    Single entry point for the UI: records, onboarding, sync and backups.

    Collaborators are passed in; ``build_baby_data_service`` wires them from
    settings.
    """

    def __init__(
        self,
        store: LocalRecordStore,
        mode_config: StorageModeConfig,
        gateway: RemoteCollectionGateway,
        coordinator: SyncCoordinator,
        notify: Optional[Notifier] = None,
    ):
        super().__init__(notify)
        self.store = store
        self.mode_config = mode_config
        self.gateway = gateway
        self.coordinator = coordinator
        self._on_push_result: Optional[Callable[[bool], None]] = None
        self._on_pull_result: Optional[Callable[[CollectionSnapshot], None]] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> Optional[StorageConfig]:
        return self.mode_config.get()

    @property
    def is_cloud(self) -> bool:
        config = self.config
        return config is not None and config.is_cloud

    @property
    def is_onboarded(self) -> bool:
        return self.mode_config.is_onboarding_complete()

    # =========================================================================
    # READS
    # =========================================================================

    def get_records(self, collection: Collection) -> List[Record]:
        """One collection, most recent first."""
        return sort_most_recent_first(self.store.load(collection))

    def get_feedings(self) -> List[FeedingRecord]:
        return self.get_records(Collection.FEEDINGS)

    def get_diapers(self) -> List[DiaperRecord]:
        return self.get_records(Collection.DIAPERS)

    def get_cry_analyses(self) -> List[CryAnalysisRecord]:
        return self.get_records(Collection.CRY_ANALYSES)

    def get_pumping_sessions(self) -> List[PumpingRecord]:
        return self.get_records(Collection.PUMPING_SESSIONS)

    def snapshot(self) -> CollectionSnapshot:
        """All four collections as stored (the sync data provider)."""
        return self.store.load_snapshot()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _after_mutation(self) -> Optional[bool]:
        """Immediate push in cloud mode; None when there is nothing to push to."""
        if not self.is_cloud:
            return None
        result = self.coordinator.push_now()
        if result.retryable:
            self.logger.warning(f"Immediate push failed, will retry on next sync: {result.error}")
        elif not result:
            self.logger.error(f"Immediate push rejected ({result.error_code}): {result.error}")
        return result.success

    def _append(self, collection: Collection, record: Record) -> Record:
        records = self.store.load(collection)
        if any(existing.id == record.id for existing in records):
            raise DataValidationError(
                f"Duplicate record id in {collection.value}", field="id", actual=record.id
            )
        records.append(record)
        self.store.save(collection, records)
        return record

    def add_record(self, collection: Collection, record: Record) -> ServiceResult:
        """
        Append a record to a collection.

        Returns:
            ServiceResult with the record; metadata["synced"] tells whether the
            immediate push succeeded (None outside cloud mode)
        """
        collection = Collection(collection)
        if not isinstance(record, collection.record_type):
            return ServiceResult.fail(
                f"Expected {collection.record_type.__name__} for {collection.value}",
                error_code="DATA_001",
            )

        with self.coordinator.local_write(mark_pending=self.is_cloud):
            result = self.safe_execute(f"Adding {collection.value} record", self._append, collection, record)
        if result:
            result.with_metadata(synced=self._after_mutation())
        return result

    def delete_record(self, collection: Collection, record_id: str) -> ServiceResult:
        collection = Collection(collection)
        with self.coordinator.local_write(mark_pending=self.is_cloud):
            records = self.store.load(collection)
            kept = [r for r in records if r.id != record_id]
            if len(kept) == len(records):
                return ServiceResult.fail(f"No {collection.value} record with id {record_id}", error_code=NOT_FOUND)
            result = self.safe_execute(f"Deleting {collection.value} record", self.store.save, collection, kept)
        if result:
            result.with_metadata(synced=self._after_mutation())
        return result

    def add_feeding(
        self,
        quantity_ml: int,
        feeding_type: Union[FeedingType, str] = FeedingType.BREASTMILK,
        timestamp: Optional[datetime] = None,
    ) -> ServiceResult:
        try:
            record = FeedingRecord(new_record_id(), timestamp or utc_now(), feeding_type, quantity_ml)
        except DataValidationError as e:
            return ServiceResult.from_exception(e)
        return self.add_record(Collection.FEEDINGS, record)

    def add_diaper(
        self,
        diaper_type: Union[DiaperType, str],
        poop_consistency: Optional[Union[PoopConsistency, str]] = None,
        notes: Optional[str] = None,
        photo: Optional[str] = None,
        ai_assessment: Optional[PoopAssessment] = None,
        timestamp: Optional[datetime] = None,
    ) -> ServiceResult:
        try:
            record = DiaperRecord(
                id=new_record_id(),
                timestamp=timestamp or utc_now(),
                type=diaper_type,
                poop_consistency=poop_consistency,
                notes=notes,
                photo=photo,
                ai_assessment=ai_assessment,
            )
        except DataValidationError as e:
            return ServiceResult.from_exception(e)
        return self.add_record(Collection.DIAPERS, record)

    def add_cry_analysis(
        self,
        raw_scores: Dict[str, Any],
        detected_label: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ServiceResult:
        """Normalize classifier scores and store the analysis."""
        try:
            distribution = normalize_distribution(raw_scores)
            if not any(distribution.values()):
                # Inconclusive analysis: stored without a distribution
                distribution = {}
            record = CryAnalysisRecord(new_record_id(), timestamp or utc_now(), distribution, detected_label)
        except DataValidationError as e:
            return ServiceResult.from_exception(e)
        return self.add_record(Collection.CRY_ANALYSES, record)

    def analyze_cry(
        self,
        classifier: CryClassifier,
        audio: bytes,
        mime_type: str = "audio/webm",
        detected_label: Optional[str] = None,
    ) -> ServiceResult:
        """Classify a recording and store the normalized result."""
        try:
            scores = classifier.classify(audio, mime_type)
        except Exception as e:
            self.logger.error(f"Cry classification failed: {e}", exc_info=True)
            return ServiceResult.fail(f"Cry classification failed: {e}", error_code="ANALYSIS")
        return self.add_cry_analysis(scores, detected_label)

    def assess_stool(self, analyzer: StoolAnalyzer, image: bytes, mime_type: str = "image/jpeg") -> ServiceResult:
        """Run the stool analyzer; the caller attaches the assessment to a diaper."""
        try:
            return ServiceResult.ok(analyzer.analyze(image, mime_type))
        except Exception as e:
            self.logger.error(f"Stool analysis failed: {e}", exc_info=True)
            return ServiceResult.fail(f"Stool analysis failed: {e}", error_code="ANALYSIS")

    def add_pumping_session(
        self,
        volume_ml: int,
        side: Union[PumpingSide, str] = PumpingSide.BOTH,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ServiceResult:
        try:
            record = PumpingRecord(
                id=new_record_id(),
                timestamp=timestamp or utc_now(),
                volume_ml=volume_ml,
                side=side,
                duration_minutes=duration_minutes,
                notes=notes,
            )
        except DataValidationError as e:
            return ServiceResult.from_exception(e)
        return self.add_record(Collection.PUMPING_SESSIONS, record)

    def update_profile(
        self,
        birth_date: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> ServiceResult:
        """
        Change birth date / name on this device.

        The backend keeps the profile it was created with; syncs only carry
        the four record collections, so edits are not marked pending.
        """
        config = self.config
        if config is None:
            return ServiceResult.fail("Onboarding is not complete", error_code=CONFIG)

        try:
            updated = StorageConfig(
                mode=config.mode,
                birth_date=birth_date or config.birth_date,
                owner_id=config.owner_id,
                display_name=display_name if display_name is not None else config.display_name,
            )
        except DataValidationError as e:
            return ServiceResult.from_exception(e)

        self.mode_config.set(updated)
        return ServiceResult.ok(updated)

    # =========================================================================
    # ONBOARDING
    # =========================================================================

    def start_offline(self, birth_date: str, display_name: Optional[str] = None) -> ServiceResult:
        """Finish onboarding in offline mode (no backend involved)."""
        try:
            config = StorageConfig(StorageMode.OFFLINE, birth_date, display_name=display_name)
        except DataValidationError as e:
            return ServiceResult.from_exception(e)

        self.coordinator.stop_periodic_sync()
        self.mode_config.set(config)
        return ServiceResult.ok(config)

    def create_cloud_owner(
        self,
        birth_date: str,
        display_name: Optional[str] = None,
        start_sync: bool = True,
    ) -> ServiceResult:
        """Allocate a new owner identifier and switch to cloud mode."""
        with self.log_operation("Creating cloud owner"):
            result = self.gateway.create_owner(birth_date, display_name)
            if not result:
                return result

            profile = result.data
            config = StorageConfig(StorageMode.CLOUD, profile.birth_date, profile.owner_id, profile.display_name)
            self.mode_config.set(config)
            self.coordinator.clear_sync_state()
            if not self.store.load_snapshot().is_empty:
                # Existing local records go up before anything is pulled
                self.coordinator.mark_pending_sync()

        if start_sync:
            self.start()
        return ServiceResult.ok(config)

    def join_cloud_owner(self, raw_owner_id: str, start_sync: bool = True) -> ServiceResult:
        """
        Join an existing owner: look it up, pull its data, switch to cloud.

        Local collections are only overwritten once the pull succeeded.
        """
        owner_id = normalize_owner_id(raw_owner_id)
        if not is_valid_owner_id(owner_id):
            return ServiceResult.fail(
                f"'{raw_owner_id}' is not a valid identifier", error_code="INVALID_ID"
            )

        with self.log_operation(f"Joining cloud owner {owner_id}"):
            owner = self.gateway.get_owner(owner_id)
            if not owner:
                if owner.error_code == NOT_FOUND:
                    return ServiceResult.fail(f"Identifier {owner_id} not found", error_code=NOT_FOUND)
                return owner

            data = self.gateway.get_all_data(owner_id)
            if not data:
                return data

            profile = owner.data
            self.store.save_snapshot(data.data)
            config = StorageConfig(StorageMode.CLOUD, profile.birth_date, owner_id, profile.display_name)
            self.mode_config.set(config)
            self.coordinator.clear_sync_state()

        if start_sync:
            self.start()
        return ServiceResult.ok(config, metadata={"counts": data.data.counts()})

    def upgrade_to_cloud(self, start_sync: bool = True) -> ServiceResult:
        """
        Move an offline setup to cloud mode, keeping its local records.

        If the initial upload fails the switch still happens and the records
        stay pending for the next sync.
        """
        config = self.config
        if config is None:
            return ServiceResult.fail("Onboarding is not complete", error_code=CONFIG)
        if config.is_cloud:
            return ServiceResult.fail("Already in cloud mode", error_code=CONFIG)

        with self.log_operation("Upgrading to cloud mode"):
            created = self.gateway.create_owner(config.birth_date, config.display_name)
            if not created:
                return created
            owner_id = created.data.owner_id

            cloud = StorageConfig(StorageMode.CLOUD, config.birth_date, owner_id, config.display_name)
            self.mode_config.set(cloud)
            self.coordinator.clear_sync_state()
            self.coordinator.mark_pending_sync()
            pushed = self.coordinator.push_now()

        if start_sync:
            self.start()
        return ServiceResult.ok(cloud, metadata={"pushed": pushed.success})

    # =========================================================================
    # SYNC
    # =========================================================================

    def start(
        self,
        on_push_result: Optional[Callable[[bool], None]] = None,
        on_pull_result: Optional[Callable[[CollectionSnapshot], None]] = None,
    ) -> bool:
        """Start periodic sync when configured for cloud mode."""
        if on_push_result is not None:
            self._on_push_result = on_push_result
        if on_pull_result is not None:
            self._on_pull_result = on_pull_result

        if not self.is_cloud:
            self.logger.info("Offline mode, periodic sync not started")
            return False
        return self.coordinator.start_periodic_sync(
            self.snapshot, self._on_push_result, self._on_pull_result
        )

    def stop(self) -> None:
        self.coordinator.stop_periodic_sync()

    def sync_now(self) -> ServiceResult:
        """Manual full sync: push, then pull and overwrite."""
        if not self.is_cloud:
            return ServiceResult.fail("Sync is only available in cloud mode", error_code=CONFIG)
        return self.coordinator.full_sync(self.snapshot, self._on_pull_result)

    # =========================================================================
    # DELETION / RESET
    # =========================================================================

    def delete_all_data(self) -> ServiceResult:
        """
        Privacy wipe. In cloud mode the remote owner is deleted first; if
        that fails nothing local is touched.
        """
        config = self.config
        if config is not None and config.is_cloud:
            result = self.gateway.delete_owner(config.owner_id)
            if not result:
                return result

        self.stop()
        self.store.clear_collections()
        self.coordinator.clear_sync_state()
        self.mode_config.clear()
        self.logger.info("All data deleted")
        return ServiceResult.ok()

    def reset(self, clear_local: bool = True) -> ServiceResult:
        """Forget the storage config (and local data); remote data stays."""
        self.stop()
        self.mode_config.clear()
        self.coordinator.clear_sync_state()
        if clear_local:
            self.store.clear_collections()
        return ServiceResult.ok()

    # =========================================================================
    # BACKUP
    # =========================================================================

    def export_data(self) -> Dict[str, Any]:
        return transfer.build_export(self.store, self.mode_config)

    def export_to_file(self, path: Union[str, Path]) -> ServiceResult:
        return self.safe_execute(
            "Exporting backup", transfer.export_to_file, path, self.store, self.mode_config
        )

    def import_data(self, document: Union[Dict[str, Any], str, bytes]) -> ServiceResult:
        """Validate then apply a backup; always ends in offline mode."""
        try:
            parsed = transfer.parse_import(document)
        except DataValidationError as e:
            self.logger.warning(f"Backup rejected: {e}")
            return ServiceResult.from_exception(e)

        self.stop()
        result = self.safe_execute(
            "Importing backup", transfer.apply_import, self.store, self.mode_config, parsed
        )
        if result:
            result.with_metadata(counts=parsed.snapshot.counts())
        return result

    def import_from_file(self, path: Union[str, Path]) -> ServiceResult:
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            return ServiceResult.fail(f"Cannot read {path}: {e}", error_code="IO")
        return self.import_data(content)

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Get full service status."""
        config = self.config
        return {
            "onboarded": config is not None,
            "mode": config.mode.value if config else None,
            "owner_id": config.owner_id if config else None,
            "birth_date": config.birth_date if config else None,
            "display_name": config.display_name if config else None,
            "backend_configured": self.gateway.is_configured,
            "counts": self.store.load_snapshot().counts(),
            "sync": self.coordinator.get_status_display(),
        }


def build_baby_data_service(settings=None) -> BabyDataService:
    """Wire a BabyDataService from settings (loaded from file/env if omitted)."""
    from babycare_core.config.settings import build_gateway, load_settings

    settings = settings or load_settings()
    store = LocalRecordStore(settings.db_path)
    mode_config = StorageModeConfig(store)
    gateway = build_gateway(settings)
    coordinator = SyncCoordinator(store, gateway, mode_config, settings.sync_interval_seconds)
    return BabyDataService(store, mode_config, gateway, coordinator)
