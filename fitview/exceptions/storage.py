"""
Storage Exception Classes
Handles errors raised by the persistent key-value settings backend.
"""

from typing import Any, Optional

from .base import FitViewerError


class StorageError(FitViewerError):
    """Base class for key-value storage errors."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ):
        """
        Initialize storage error.

        Args:
            message: Error message
            key: Storage key involved in the failure
            operation: Storage operation that failed (read, write, remove, scan)
            **kwargs: Additional arguments for base class
        """
        context = kwargs.pop("context", {})
        if key:
            context["key"] = key
        if operation:
            context["operation"] = operation

        super().__init__(message, context=context, **kwargs)
        self.key = key
        self.operation = operation

    def _get_default_user_message(self) -> str:
        if self.operation:
            return f"Failed to {self.operation} settings. Your changes may not be saved."
        return "Settings storage is unavailable."


class StorageUnavailableError(StorageError):
    """Raised when the settings backend cannot be opened or accessed."""

    def _get_default_user_message(self) -> str:
        return "Settings storage is unavailable. Defaults will be used."


class StorageWriteError(StorageError):
    """Raised when a record could not be written or removed."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("operation", "write")
        super().__init__(message, key=key, **kwargs)
