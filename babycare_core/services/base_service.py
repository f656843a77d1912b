# =============================================================================
# babycare_core/services/base_service.py
# Service Result Container and Base Service
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass

from babycare_core.logging import get_logger, LogContext
from babycare_core.errors import handle_error, BabyCareError
from babycare_core.errors.handlers import Notifier


@dataclass
class ServiceResult:
    """
    Outcome of a gateway, coordinator or service call.

    These calls never raise across their boundary; callers branch on
    ``success`` (or truthiness) and read ``error`` / ``error_code``.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def retryable(self) -> bool:
        """True when the failure is transient (network, bad response, backend)."""
        return not self.success and bool((self.metadata or {}).get("retryable"))

    def with_metadata(self, **extra: Any) -> ServiceResult:
        """Merge extra keys into metadata; returns self."""
        merged = dict(self.metadata or {})
        merged.update(extra)
        self.metadata = merged
        return self

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Dict[str, Any] = None
    ) -> ServiceResult:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            metadata=metadata,
        )

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Failed result carrying the error's code and details."""
        if isinstance(e, BabyCareError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                metadata=e.details,
            )
        return cls(
            success=False,
            error=str(e),
            error_code="EXCEPTION",
        )


class BaseService(ABC):
    """
    Base for services that sit between a UI and the record layer.

    Gives subclasses a class-named logger, timed operation logging, and
    ``safe_execute`` which turns exceptions into failed results and forwards
    a message to the optional user notifier (a toast in the UI).

    Usage:
        class ExportService(BaseService):
            def export(self, path) -> ServiceResult:
                return self.safe_execute("Exporting backup", write_backup, path)
    """

    def __init__(self, notify: Optional[Notifier] = None):
        self.logger = get_logger(self.__class__.__name__)
        self.notify = notify

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Importing backup"):
                apply_import(...)
        """
        return LogContext(self.logger, operation)

    def safe_execute(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Run ``func`` inside a logged operation.

        Returns:
            ServiceResult wrapping the return value, or the failure
        """
        try:
            with self.log_operation(operation):
                result = func(*args, **kwargs)
            return ServiceResult.ok(result)
        except BabyCareError as e:
            handle_error(e, notify=self.notify)
            return ServiceResult.from_exception(e)
        except Exception as e:
            self.logger.error(f"{operation} failed: {e}", exc_info=True)
            if self.notify is not None:
                self.notify(f"Error during: {operation}")
            return ServiceResult.fail(str(e))
