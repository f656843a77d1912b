# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from babycare_core.api.gateway import RemoteCollectionGateway
from babycare_core.api.transport import LocalTransport
from babycare_core.backend.row_store import InMemoryRowStore
from babycare_core.backend.sheets_service import SheetsBackendService
from babycare_core.data.records import (
    CollectionSnapshot,
    CryAnalysisRecord,
    DiaperRecord,
    FeedingRecord,
    PumpingRecord,
)
from babycare_core.offline.local_store import LocalRecordStore
from babycare_core.offline.storage_mode import StorageConfig, StorageMode, StorageModeConfig
from babycare_core.offline.sync_coordinator import SyncCoordinator
from babycare_core.services.base_service import ServiceResult


BASE_TIME = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

def make_feeding(index=0, quantity=120, feeding_type="formula"):
    return FeedingRecord(f"f{index}", BASE_TIME + timedelta(hours=3 * index), feeding_type, quantity)


def make_diaper(index=0, diaper_type="wet", **kwargs):
    return DiaperRecord(f"d{index}", BASE_TIME + timedelta(hours=2 * index), diaper_type, **kwargs)


@pytest.fixture
def sample_snapshot():
    """One record in every collection"""
    return CollectionSnapshot(
        feedings=[make_feeding(0), make_feeding(1, quantity=90, feeding_type="breastmilk")],
        diapers=[make_diaper(0), make_diaper(1, "dirty", poop_consistency="normal", notes="yellow")],
        cry_analyses=[
            CryAnalysisRecord(
                "c0",
                BASE_TIME,
                {"lapar": 70, "mengantuk": 15, "sendawa": 10, "perutKembung": 3, "tidakNyaman": 2},
                "Neh",
            )
        ],
        pumping_sessions=[PumpingRecord("p0", BASE_TIME, 80, "left", 15)],
    )


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Local record store on a temporary SQLite file"""
    local_store = LocalRecordStore(tmp_path / "babycare.db")
    yield local_store
    local_store.close()


@pytest.fixture
def mode_config(store):
    return StorageModeConfig(store)


@pytest.fixture
def row_store():
    rows = InMemoryRowStore()
    rows.ensure_sheets()
    return rows


@pytest.fixture
def backend(row_store):
    return SheetsBackendService(row_store)


@pytest.fixture
def gateway(backend):
    """Gateway talking to an in-process backend"""
    return RemoteCollectionGateway(LocalTransport(backend))


@pytest.fixture
def owner_id(gateway):
    """Identifier of an owner already created on the backend"""
    return gateway.create_owner("2024-05-01", "Ayu").data.owner_id


@pytest.fixture
def cloud_mode(mode_config, owner_id):
    """Storage config switched to cloud mode for ``owner_id``"""
    config = StorageConfig(StorageMode.CLOUD, "2024-05-01", owner_id, "Ayu")
    mode_config.set(config)
    return config


@pytest.fixture
def coordinator(store, gateway, mode_config):
    return SyncCoordinator(store, gateway, mode_config, interval_seconds=3600)


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_gateway():
    """Configured gateway whose calls all succeed with empty data"""
    mock = MagicMock(spec=RemoteCollectionGateway)
    mock.is_configured = True
    mock.NOT_CONFIGURED_MESSAGE = RemoteCollectionGateway.NOT_CONFIGURED_MESSAGE
    mock.replace_all_data.return_value = ServiceResult.ok()
    mock.get_all_data.return_value = ServiceResult.ok(CollectionSnapshot())
    mock.delete_owner.return_value = ServiceResult.ok()
    return mock


@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.range.return_value.execute.return_value.data = []
    return mock_client
