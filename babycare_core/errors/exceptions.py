# =============================================================================
# babycare_core/errors/exceptions.py
# Custom Exception Hierarchy for the baby-care core
# =============================================================================

from typing import Optional, Dict, Any


class BabyCareError(Exception):
    """
    Base exception for all baby-care core errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "DATA_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "BC_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# DATA LAYER EXCEPTIONS
# =============================================================================

class DataValidationError(BabyCareError):
    """Raised when a record, collection or document fails validation"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if expected:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual

        super().__init__(
            message=message,
            code="DATA_001",
            details=details,
            **kwargs,
        )


class StorageError(BabyCareError):
    """Raised when the local record store cannot persist data"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="STORE_001",
            details=details,
            recoverable=False,
            **kwargs,
        )


# =============================================================================
# SYNC / TRANSPORT EXCEPTIONS
# =============================================================================

class TransportError(BabyCareError):
    """Raised when the backend cannot be reached (retryable)"""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if endpoint:
            details["endpoint"] = endpoint

        super().__init__(
            message=message,
            code="SYNC_001",
            details=details,
            **kwargs,
        )


class InvalidResponseError(BabyCareError):
    """Raised when the backend answers with something that is not a JSON object"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code is not None:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            code="SYNC_002",
            details=details,
            **kwargs,
        )


class BackendError(BabyCareError):
    """Raised by the record-keeping backend for server-side failures"""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if action:
            details["action"] = action

        super().__init__(
            message=message,
            code="BACKEND_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(BabyCareError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
