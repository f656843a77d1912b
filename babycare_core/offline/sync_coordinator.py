# =============================================================================
# babycare_core/offline/sync_coordinator.py
# Periodic Push/Pull Reconciliation for the Active Cloud Owner
# =============================================================================
"""
SyncCoordinator - keeps the local collections and the backend eventually
consistent for exactly one active owner identifier.

Features:
- Background timer thread (one cycle on start, then one per interval)
- Persisted pending-changes flag and last-sync timestamp
- Immediate push after local mutations
- Manual full sync (push, then pull-and-overwrite)
- Never raises; failures come back as ServiceResults or are logged

Whole-collection replace is the only primitive: the last full sync wins.
"""

from __future__ import annotations
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from babycare_core.api.gateway import CONFIG, RemoteCollectionGateway
from babycare_core.data.records import CollectionSnapshot, format_timestamp, parse_timestamp, utc_now
from babycare_core.errors import BabyCareError
from babycare_core.offline.local_store import LAST_SYNC_KEY, PENDING_SYNC_KEY, LocalRecordStore
from babycare_core.offline.storage_mode import StorageModeConfig
from babycare_core.services.base_service import ServiceResult

logger = logging.getLogger(__name__)

DataProvider = Callable[[], CollectionSnapshot]
PushCallback = Callable[[bool], None]
PullCallback = Callable[[CollectionSnapshot], None]

PENDING = "PENDING"     # Periodic pull skipped over unpushed local changes


@dataclass
class SyncState:
    """In-memory sync state (not persisted)."""
    is_syncing: bool = False
    last_cycle: Optional[datetime] = None
    last_push_ok: Optional[bool] = None
    last_pull_ok: Optional[bool] = None
    last_error: Optional[str] = None
    cycles_run: int = 0


class SyncCoordinator:
    """
    Owns the periodic sync timer for one local store.

    Usage:
        coordinator = SyncCoordinator(store, gateway, mode_config)
        coordinator.start_periodic_sync(store.load_snapshot)
        ...
        coordinator.push_now()       # after each local mutation
        coordinator.full_sync()      # user pressed "sync"
        coordinator.stop_periodic_sync()
    """

    DEFAULT_INTERVAL = 30 * 60      # Seconds between periodic cycles

    def __init__(
        self,
        store: LocalRecordStore,
        gateway: RemoteCollectionGateway,
        mode_config: StorageModeConfig,
        interval_seconds: float = DEFAULT_INTERVAL,
    ):
        self.store = store
        self.gateway = gateway
        self.mode_config = mode_config
        self.interval_seconds = interval_seconds

        self._state = SyncState()
        self._state_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        # Serializes local writes, pending-flag changes and pull overwrites
        self._local_lock = threading.RLock()
        self._local_writes = 0
        self._timer_thread: Optional[threading.Thread] = None
        self._stop_timer: Optional[threading.Event] = None

    # =========================================================================
    # PERSISTED STATE
    # =========================================================================

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def pending_changes(self) -> bool:
        return self.store.get_value(PENDING_SYNC_KEY) is True

    def mark_pending_sync(self) -> None:
        """Flag local changes for the next cycle to push."""
        with self._local_lock:
            self._local_writes += 1
            self.store.set_value(PENDING_SYNC_KEY, True)

    def _clear_pending(self) -> None:
        with self._local_lock:
            self.store.remove_value(PENDING_SYNC_KEY)

    @contextmanager
    def local_write(self, mark_pending: bool = True):
        """
        Guard a local mutation against a concurrent periodic pull.

        The pending flag is set before the write, so a pull that lands while
        the mutation is in progress (or before its push succeeded) is not
        applied over it.
        """
        with self._local_lock:
            self._local_writes += 1
            if mark_pending:
                self.store.set_value(PENDING_SYNC_KEY, True)
            yield

    @property
    def last_sync_timestamp(self) -> Optional[datetime]:
        raw = self.store.get_value(LAST_SYNC_KEY)
        if raw is None:
            return None
        try:
            return parse_timestamp(raw, LAST_SYNC_KEY)
        except BabyCareError as e:
            logger.warning(f"Ignoring invalid last-sync timestamp: {e}")
            return None

    def _stamp_sync(self) -> None:
        self.store.set_value(LAST_SYNC_KEY, format_timestamp(utc_now()))

    def clear_sync_state(self) -> None:
        """Forget the pending flag and last-sync timestamp."""
        self._clear_pending()
        self.store.remove_value(LAST_SYNC_KEY)

    # =========================================================================
    # TIMER
    # =========================================================================

    @property
    def is_active(self) -> bool:
        with self._timer_lock:
            thread, stop_event = self._timer_thread, self._stop_timer
        return thread is not None and thread.is_alive() and not stop_event.is_set()

    def start_periodic_sync(
        self,
        data_provider: Optional[DataProvider] = None,
        on_push_result: Optional[PushCallback] = None,
        on_pull_result: Optional[PullCallback] = None,
    ) -> bool:
        """
        Start (or restart) the periodic timer.

        Runs one cycle immediately on the timer thread, then one per interval.

        Returns:
            False when the backend is not configured or no cloud owner is
            active; any running timer is stopped in that case.
        """
        if not self.gateway.is_configured:
            logger.warning("Not starting periodic sync: backend is not configured")
            self.stop_periodic_sync()
            return False

        owner_id = self.mode_config.active_owner_id()
        if owner_id is None:
            logger.warning("Not starting periodic sync: no active cloud owner")
            self.stop_periodic_sync()
            return False

        with self._timer_lock:
            self._signal_stop()
            stop_event = threading.Event()
            self._stop_timer = stop_event
            self._timer_thread = threading.Thread(
                target=self._timer_loop,
                args=(stop_event, data_provider, on_push_result, on_pull_result),
                daemon=True,
                name="SyncCoordinator",
            )
            self._timer_thread.start()

        logger.info(f"Periodic sync started for {owner_id} (every {self.interval_seconds}s)")
        return True

    def stop_periodic_sync(self) -> None:
        """
        Cancel the timer. Persisted state is untouched and an in-flight
        request still completes. Safe to call from the timer thread.
        """
        with self._timer_lock:
            was_active = self._signal_stop()
            self._timer_thread = None
            self._stop_timer = None
        if was_active:
            logger.info("Periodic sync stopped")

    def _signal_stop(self) -> bool:
        if self._stop_timer is None or self._stop_timer.is_set():
            return False
        self._stop_timer.set()
        return True

    def _timer_loop(
        self,
        stop_event: threading.Event,
        data_provider: Optional[DataProvider],
        on_push_result: Optional[PushCallback],
        on_pull_result: Optional[PullCallback],
    ) -> None:
        """Background loop: one cycle now, then one per interval until stopped."""
        while not stop_event.is_set():
            try:
                self.run_cycle(data_provider, on_push_result, on_pull_result)
            except Exception as e:
                logger.error(f"Sync cycle crashed: {e}", exc_info=True)

            if stop_event.wait(timeout=self.interval_seconds):
                break

    # =========================================================================
    # SYNC CYCLE
    # =========================================================================

    def run_cycle(
        self,
        data_provider: Optional[DataProvider] = None,
        on_push_result: Optional[PushCallback] = None,
        on_pull_result: Optional[PullCallback] = None,
    ) -> Dict[str, Any]:
        """
        Run one sync cycle: push if pending, then pull only if nothing is
        pending any more.

        Returns:
            Dict with ``pushed`` / ``pulled`` (True, False or None when the
            step was skipped) and ``stopped``.
        """
        outcome = {"pushed": None, "pulled": None, "stopped": False}

        owner_id = self.mode_config.active_owner_id()
        if owner_id is None:
            logger.info("Active owner cleared, stopping periodic sync")
            self.stop_periodic_sync()
            outcome["stopped"] = True
            return outcome

        with self._state_lock:
            self._state.is_syncing = True
            self._state.last_cycle = datetime.now()
            self._state.cycles_run += 1

        try:
            if self.pending_changes:
                result = self._push_snapshot(owner_id, data_provider)
                outcome["pushed"] = result.success
                self._notify(on_push_result, result.success)

            if self.pending_changes:
                return outcome

            if self.mode_config.active_owner_id() != owner_id:
                logger.info("Active owner changed mid-cycle, stopping periodic sync")
                self.stop_periodic_sync()
                outcome["stopped"] = True
                return outcome

            result = self._pull_and_overwrite(owner_id, keep_pending=True)
            outcome["pulled"] = result.success
            if result.success:
                self._notify(on_pull_result, result.data)
            return outcome

        finally:
            with self._state_lock:
                self._state.is_syncing = False

    # =========================================================================
    # PUSH / PULL
    # =========================================================================

    def _push_snapshot(
        self,
        owner_id: str,
        data_provider: Optional[DataProvider] = None,
    ) -> ServiceResult:
        """Replace remote collections; success clears pending, failure sets it."""
        try:
            with self._local_lock:
                writes_seen = self._local_writes
                snapshot = data_provider() if data_provider else self.store.load_snapshot()
        except Exception as e:
            logger.error(f"Could not read local collections for push: {e}", exc_info=True)
            self.mark_pending_sync()
            self._record_push(False, str(e))
            return ServiceResult.fail(str(e), error_code="LOCAL")

        result = self.gateway.replace_all_data(owner_id, snapshot)
        if result.success:
            with self._local_lock:
                # A write made during the request is not in this snapshot
                if self._local_writes == writes_seen:
                    self._clear_pending()
            self._stamp_sync()
            logger.info(f"Pushed local collections for {owner_id}: {snapshot.counts()}")
        else:
            self.mark_pending_sync()
            logger.warning(f"Push for {owner_id} failed ({result.error_code}): {result.error}")
        self._record_push(result.success, result.error)
        return result

    def _pull_and_overwrite(self, owner_id: str, keep_pending: bool = False) -> ServiceResult:
        """
        Fetch remote collections and overwrite all four local ones.

        With ``keep_pending`` the overwrite is skipped when local changes were
        flagged while the request was in flight.
        """
        result = self.gateway.get_all_data(owner_id)
        if not result.success:
            logger.warning(f"Pull for {owner_id} failed ({result.error_code}): {result.error}")
            self._record_pull(False, result.error)
            return result

        snapshot: CollectionSnapshot = result.data
        with self._local_lock:
            if self.mode_config.active_owner_id() != owner_id:
                logger.info(f"Discarding pull for {owner_id}: active owner changed")
                self._record_pull(False, "Active owner changed")
                return ServiceResult.fail("Active owner changed during pull", error_code=CONFIG)

            if keep_pending and self.pending_changes:
                logger.info(f"Local changes pending, not applying pull for {owner_id}")
                self._record_pull(False, "Local changes pending")
                return ServiceResult.fail("Local changes pending", error_code=PENDING)

            try:
                self.store.save_snapshot(snapshot)
            except BabyCareError as e:
                logger.error(f"Could not overwrite local collections: {e}")
                self._record_pull(False, e.message)
                return ServiceResult.from_exception(e)

        logger.info(f"Pulled remote collections for {owner_id}: {snapshot.counts()}")
        self._record_pull(True, None)
        return ServiceResult.ok(snapshot, metadata=result.metadata)

    def push_now(self) -> ServiceResult:
        """
        Push the stored collections right away (after a local mutation).

        Failure sets the pending flag for the next cycle and is only logged.
        """
        owner_id = self.mode_config.active_owner_id()
        if owner_id is None:
            return ServiceResult.fail("No active cloud owner", error_code=CONFIG)
        if not self.gateway.is_configured:
            self.mark_pending_sync()
            return ServiceResult.fail(self.gateway.NOT_CONFIGURED_MESSAGE, error_code=CONFIG)
        return self._push_snapshot(owner_id)

    def pull_now(self) -> ServiceResult:
        """Pull and overwrite local collections regardless of the pending flag."""
        owner_id = self.mode_config.active_owner_id()
        if owner_id is None:
            return ServiceResult.fail("No active cloud owner", error_code=CONFIG)
        result = self._pull_and_overwrite(owner_id)
        if result.success:
            # Local collections now mirror the remote ones
            self._clear_pending()
        return result

    def full_sync(
        self,
        data_provider: Optional[DataProvider] = None,
        on_pull_result: Optional[PullCallback] = None,
    ) -> ServiceResult:
        """
        Manual sync: push, then pull-and-overwrite whatever the push outcome.

        Succeeds only if both steps succeeded; errors are combined.
        """
        owner_id = self.mode_config.active_owner_id()
        if owner_id is None:
            return ServiceResult.fail("No active cloud owner", error_code=CONFIG)
        if not self.gateway.is_configured:
            return ServiceResult.fail(self.gateway.NOT_CONFIGURED_MESSAGE, error_code=CONFIG)

        push = self._push_snapshot(owner_id, data_provider)
        pull = self.pull_now()
        if pull.success:
            self._notify(on_pull_result, pull.data)

        if push.success and pull.success:
            return ServiceResult.ok(pull.data, metadata={"push": True, "pull": True})

        errors = []
        if not push.success:
            errors.append(f"Push failed: {push.error}")
        if not pull.success:
            errors.append(f"Pull failed: {pull.error}")
        failed = push if not push.success else pull
        return ServiceResult.fail(
            "; ".join(errors),
            error_code=failed.error_code,
            metadata={"push": push.success, "pull": pull.success},
        )

    # =========================================================================
    # STATUS
    # =========================================================================

    def _record_push(self, ok: bool, error: Optional[str]) -> None:
        with self._state_lock:
            self._state.last_push_ok = ok
            if not ok:
                self._state.last_error = error

    def _record_pull(self, ok: bool, error: Optional[str]) -> None:
        with self._state_lock:
            self._state.last_pull_ok = ok
            if not ok:
                self._state.last_error = error

    def _notify(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in sync callback: {e}", exc_info=True)

    def get_status_display(self) -> Dict[str, Any]:
        """Get sync status for a "last synced at" indicator."""
        last_sync = self.last_sync_timestamp
        return {
            "is_active": self.is_active,
            "is_syncing": self._state.is_syncing,
            "pending_changes": self.pending_changes,
            "last_sync": format_timestamp(last_sync) if last_sync else None,
            "last_cycle": self._state.last_cycle.isoformat() if self._state.last_cycle else None,
            "last_error": self._state.last_error,
            "cycles_run": self._state.cycles_run,
            "interval_seconds": self.interval_seconds,
        }
