# =============================================================================
# tests/unit/test_errors.py
# Unit Tests for Error Handling
# =============================================================================

import pytest

from babycare_core.errors import (
    DataValidationError,
    ErrorContext,
    StorageError,
    TransportError,
    handle_error,
)
from babycare_core.services.base_service import BaseService, ServiceResult


class TestExceptions:
    """Test error codes and details"""

    def test_validation_details(self):
        error = DataValidationError("Bad quantity", field="quantity", expected="> 0", actual=0)

        assert error.code == "DATA_001"
        assert error.details == {"field": "quantity", "expected": "> 0", "actual": 0}
        assert "[DATA_001] Bad quantity" in str(error)

    def test_storage_error_not_recoverable(self):
        assert StorageError("disk full", key="feedings").to_dict()["recoverable"] is False


class TestHandlers:
    """Test notification and suppression"""

    def test_handle_error_notifies(self):
        messages = []
        handle_error(TransportError("timed out"), notify=messages.append)

        assert messages == ["Error: timed out"]

    def test_critical_prefix(self):
        messages = []
        handle_error(StorageError("disk full"), notify=messages.append)

        assert messages == ["Critical Error: disk full"]

    def test_context_suppresses_recoverable(self):
        messages = []
        with ErrorContext("Exporting backup", notify=messages.append) as ctx:
            raise ValueError("boom")

        assert ctx.failed
        assert messages == ["Error: Error during: Exporting backup"]

    def test_context_reraises_unrecoverable(self):
        with pytest.raises(ValueError):
            with ErrorContext("Importing backup", recoverable=False):
                raise ValueError("boom")


class TestServiceResult:
    """Test result helpers on the service base"""

    def test_from_exception(self):
        result = ServiceResult.from_exception(TransportError("down"))

        assert not result
        assert result.error_code == "SYNC_001"

    def test_retryable_flag(self):
        assert ServiceResult.fail("down", metadata={"retryable": True}).retryable
        assert not ServiceResult.fail("bad id", metadata={"retryable": False}).retryable
        assert not ServiceResult.ok(metadata={"retryable": True}).retryable

    def test_with_metadata_merges(self):
        result = ServiceResult.ok(metadata={"status_code": 200}).with_metadata(synced=True)

        assert result.metadata == {"status_code": 200, "synced": True}

    def test_safe_execute_wraps_exceptions(self):
        def explode():
            raise RuntimeError("nope")

        messages = []
        result = BaseService(notify=messages.append).safe_execute("Exploding", explode)

        assert not result.success
        assert result.error == "nope"
        assert messages == ["Error during: Exploding"]

    def test_safe_execute_notifies_known_errors(self):
        def reject():
            raise DataValidationError("Bad backup")

        messages = []
        result = BaseService(notify=messages.append).safe_execute("Importing", reject)

        assert result.error_code == "DATA_001"
        assert messages == ["Error: Bad backup"]
