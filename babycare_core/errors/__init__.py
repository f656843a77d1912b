# =============================================================================
# babycare_core/errors/__init__.py
# Centralized Error Handling for the baby-care core
# =============================================================================

from .exceptions import (
    BabyCareError,
    DataValidationError,
    StorageError,
    TransportError,
    InvalidResponseError,
    BackendError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "BabyCareError",
    "DataValidationError",
    "StorageError",
    "TransportError",
    "InvalidResponseError",
    "BackendError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "ErrorContext",
]
