# =============================================================================
# babycare_core/errors/handlers.py
# Error Handling Utilities for the baby-care core
# =============================================================================

from __future__ import annotations
import traceback
from typing import Callable, Optional

from babycare_core.logging import get_logger
from .exceptions import BabyCareError

logger = get_logger(__name__)

# Receives a user-facing message (e.g. a UI toast)
Notifier = Callable[[str], None]


def handle_error(
    error: Exception,
    notify: Optional[Notifier] = None,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        notify: Optional callable that shows a message to the user
        log_error: Whether to log the error
        user_message: Custom message to show user (uses error message if None)
    """
    if isinstance(error, BabyCareError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or str(error)
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {message}",
            extra={"details": details},
            exc_info=not isinstance(error, BabyCareError),
        )

    if notify is not None:
        if recoverable:
            notify(f"Error: {message}")
        else:
            notify(f"Critical Error: {message}")


class ErrorContext:
    """
    Context manager for error handling with automatic logging and user feedback.

    Usage:
        with ErrorContext("Importing backup", notify=print):
            service.import_data(document)

        # On error, logs and notifies: "Error: Error during: Importing backup"
    """

    def __init__(
        self,
        operation: str,
        notify: Optional[Notifier] = None,
        recoverable: bool = True,
    ):
        self.operation = operation
        self.notify = notify
        self.recoverable = recoverable
        self.failed = False

    def __enter__(self) -> ErrorContext:
        logger.info(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.info(f"Completed: {self.operation}")
            return False

        self.failed = True
        if isinstance(exc_val, BabyCareError):
            handle_error(exc_val, notify=self.notify)
        else:
            handle_error(
                exc_val,
                notify=self.notify,
                user_message=f"Error during: {self.operation}",
            )

        # Suppress exception if recoverable
        return self.recoverable
