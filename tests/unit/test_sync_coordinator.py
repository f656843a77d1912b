# =============================================================================
# tests/unit/test_sync_coordinator.py
# Unit Tests for SyncCoordinator
# =============================================================================

import threading

import pytest
from unittest.mock import MagicMock

from babycare_core.data.records import Collection, CollectionSnapshot
from babycare_core.offline.storage_mode import StorageConfig, StorageMode
from babycare_core.offline.sync_coordinator import SyncCoordinator
from babycare_core.services.base_service import ServiceResult


@pytest.fixture
def cloud_owner(mode_config):
    mode_config.set(StorageConfig(StorageMode.CLOUD, "2024-05-01", "ABC234"))
    return "ABC234"


@pytest.fixture
def mocked(store, mock_gateway, mode_config):
    return SyncCoordinator(store, mock_gateway, mode_config, interval_seconds=3600)


class TestPendingFlag:
    """Test persisted pending state"""

    def test_mark_and_persist(self, store, mocked, mode_config, mock_gateway):
        mocked.mark_pending_sync()

        reopened = SyncCoordinator(store, mock_gateway, mode_config)
        assert reopened.pending_changes is True

    def test_push_fail_then_success_clears_pending(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mock_gateway.replace_all_data.return_value = ServiceResult.fail("offline", error_code="NETWORK")
        store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
        assert not mocked.push_now().success
        assert mocked.pending_changes is True

        store.save(Collection.FEEDINGS, sample_snapshot.feedings)
        mock_gateway.replace_all_data.return_value = ServiceResult.ok()
        assert mocked.push_now().success

        assert mocked.pending_changes is False
        assert mocked.last_sync_timestamp is not None

    def test_push_reads_store(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        store.save_snapshot(sample_snapshot)
        mocked.push_now()

        owner, snapshot = mock_gateway.replace_all_data.call_args.args
        assert owner == "ABC234"
        assert snapshot == sample_snapshot

    def test_push_without_owner_fails(self, mocked, mock_gateway):
        result = mocked.push_now()

        assert result.error_code == "CONFIG"
        mock_gateway.replace_all_data.assert_not_called()


class TestRunCycle:
    """Test one periodic cycle"""

    def test_failed_push_skips_pull(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
        mocked.mark_pending_sync()
        mock_gateway.replace_all_data.return_value = ServiceResult.fail("offline", error_code="NETWORK")
        pushes = []

        outcome = mocked.run_cycle(on_push_result=pushes.append)

        assert outcome == {"pushed": False, "pulled": None, "stopped": False}
        assert mocked.pending_changes is True
        assert pushes == [False]
        mock_gateway.get_all_data.assert_not_called()

    def test_successful_push_then_pull(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mocked.mark_pending_sync()
        mock_gateway.get_all_data.return_value = ServiceResult.ok(sample_snapshot)
        pulls = []

        outcome = mocked.run_cycle(on_pull_result=pulls.append)

        assert outcome == {"pushed": True, "pulled": True, "stopped": False}
        assert pulls == [sample_snapshot]
        assert store.load_snapshot() == sample_snapshot

    def test_nothing_pending_only_pulls(self, mocked, mock_gateway, cloud_owner):
        outcome = mocked.run_cycle()

        assert outcome["pushed"] is None
        assert outcome["pulled"] is True
        mock_gateway.replace_all_data.assert_not_called()

    def test_uses_data_provider(self, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mocked.mark_pending_sync()
        mocked.run_cycle(data_provider=lambda: sample_snapshot)

        assert mock_gateway.replace_all_data.call_args.args[1] == sample_snapshot

    def test_failed_pull_leaves_local_data(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        store.save_snapshot(sample_snapshot)
        mock_gateway.get_all_data.return_value = ServiceResult.fail("down", error_code="NETWORK")

        outcome = mocked.run_cycle()

        assert outcome["pulled"] is False
        assert store.load_snapshot() == sample_snapshot

    def test_stops_when_owner_cleared(self, mocked, mock_gateway, mode_config):
        outcome = mocked.run_cycle()

        assert outcome["stopped"] is True
        mock_gateway.get_all_data.assert_not_called()

    def test_callback_errors_are_logged_not_raised(self, mocked, mock_gateway, cloud_owner):
        def broken(_):
            raise RuntimeError("ui gone")

        mocked.mark_pending_sync()
        outcome = mocked.run_cycle(on_push_result=broken, on_pull_result=broken)

        assert outcome["pushed"] is True
        assert outcome["pulled"] is True

    def test_provider_failure_keeps_pending(self, mocked, mock_gateway, cloud_owner):
        def provider():
            raise RuntimeError("storage unavailable")

        mocked.mark_pending_sync()
        outcome = mocked.run_cycle(data_provider=provider)

        assert outcome["pushed"] is False
        assert mocked.pending_changes is True
        mock_gateway.replace_all_data.assert_not_called()

    def test_write_during_pull_is_not_overwritten(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mock_gateway.replace_all_data.return_value = ServiceResult.fail("offline", error_code="NETWORK")

        def fetch_while_user_logs(owner_id):
            # A feeding logged while the request is in flight, its push fails
            store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
            mocked.push_now()
            return ServiceResult.ok(CollectionSnapshot())

        mock_gateway.get_all_data.side_effect = fetch_while_user_logs
        outcome = mocked.run_cycle()

        assert outcome["pulled"] is False
        assert [f.id for f in store.load(Collection.FEEDINGS)] == ["f0"]
        assert mocked.pending_changes is True
        assert mocked.state.last_pull_ok is False

    def test_write_during_push_stays_pending(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        def upload_while_user_logs(owner_id, snapshot):
            with mocked.local_write():
                store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
            return ServiceResult.ok()

        mock_gateway.replace_all_data.side_effect = upload_while_user_logs
        mocked.mark_pending_sync()
        outcome = mocked.run_cycle()

        assert outcome["pushed"] is True
        assert outcome["pulled"] is None
        assert mocked.pending_changes is True
        assert [f.id for f in store.load(Collection.FEEDINGS)] == ["f0"]


class TestPullAndFullSync:
    """Test manual sync paths"""

    def test_pull_now_ignores_pending(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mocked.mark_pending_sync()
        mock_gateway.get_all_data.return_value = ServiceResult.ok(sample_snapshot)

        assert mocked.pull_now().success
        assert store.load_snapshot() == sample_snapshot
        assert mocked.pending_changes is False

    def test_pull_now_overwrites_write_made_during_request(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        def fetch_while_user_logs(owner_id):
            with mocked.local_write():
                store.save(Collection.FEEDINGS, sample_snapshot.feedings[:1])
            return ServiceResult.ok(CollectionSnapshot())

        mock_gateway.get_all_data.side_effect = fetch_while_user_logs

        assert mocked.pull_now().success
        assert store.load(Collection.FEEDINGS) == []

    def test_full_sync_pulls_even_when_push_fails(self, store, mocked, mock_gateway, cloud_owner, sample_snapshot):
        mocked.mark_pending_sync()
        mock_gateway.replace_all_data.return_value = ServiceResult.fail("quota", error_code="BACKEND")
        mock_gateway.get_all_data.return_value = ServiceResult.ok(sample_snapshot)

        result = mocked.full_sync()

        assert not result.success
        assert "Push failed: quota" in result.error
        assert result.metadata == {"push": False, "pull": True}
        assert store.load_snapshot() == sample_snapshot

    def test_full_sync_success(self, mocked, mock_gateway, cloud_owner):
        pulls = []
        result = mocked.full_sync(on_pull_result=pulls.append)

        assert result.success
        assert len(pulls) == 1
        mock_gateway.replace_all_data.assert_called_once()

    def test_full_sync_unconfigured(self, store, mode_config, cloud_owner):
        gateway = MagicMock()
        gateway.is_configured = False
        coordinator = SyncCoordinator(store, gateway, mode_config)

        result = coordinator.full_sync()

        assert result.error_code == "CONFIG"
        gateway.replace_all_data.assert_not_called()


class TestPeriodicTimer:
    """Test start/stop of the background timer"""

    def test_refuses_without_owner(self, mocked):
        assert mocked.start_periodic_sync() is False
        assert not mocked.is_active

    def test_refuses_when_unconfigured(self, store, mode_config, cloud_owner):
        gateway = MagicMock()
        gateway.is_configured = False
        coordinator = SyncCoordinator(store, gateway, mode_config)

        assert coordinator.start_periodic_sync() is False

    def test_runs_cycle_immediately(self, mocked, mock_gateway, cloud_owner):
        pulled = threading.Event()

        assert mocked.start_periodic_sync(on_pull_result=lambda snapshot: pulled.set()) is True
        try:
            assert pulled.wait(timeout=5)
            assert mocked.is_active
        finally:
            mocked.stop_periodic_sync()

        assert not mocked.is_active

    def test_stop_keeps_persisted_state(self, mocked, cloud_owner):
        mocked.mark_pending_sync()
        mocked.stop_periodic_sync()

        assert mocked.pending_changes is True

    def test_restart_replaces_timer(self, mocked, cloud_owner):
        mocked.start_periodic_sync()
        first = mocked._timer_thread
        mocked.start_periodic_sync()
        try:
            assert mocked._timer_thread is not first
        finally:
            mocked.stop_periodic_sync()

    def test_status_display(self, mocked, cloud_owner):
        mocked.mark_pending_sync()
        status = mocked.get_status_display()

        assert status["pending_changes"] is True
        assert status["last_sync"] is None
        assert status["interval_seconds"] == 3600
