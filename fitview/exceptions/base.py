"""
Base Exception Classes
Root of the FIT viewer exception hierarchy. Every error logs itself once on
construction and can describe itself as an error record for the state tree.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class FitViewerError(Exception):
    """
    Base exception for state, storage and configuration failures.

    Carries an error code, debugging context and a message fit for the
    viewer's notification area.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        user_message: str | None = None,
        log_level: int = logging.ERROR,
    ):
        """
        Args:
            message: Technical error message for logging
            error_code: Code for programmatic handling, defaults to the class name
            context: Paths, keys or values involved in the failure
            user_message: Message shown to the user
            log_level: Level the error is logged at
        """
        super().__init__(message)
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.user_message = user_message or self._get_default_user_message()
        self.log_level = log_level

        self._log_error()

    def _get_default_user_message(self) -> str:
        return "The viewer state could not be updated."

    def _log_error(self) -> None:
        log_message = f"[{self.error_code}] {self}"
        if self.context:
            log_message += f" | Context: {self.context}"
        logger.log(self.log_level, log_message)

    def to_dict(self) -> dict[str, Any]:
        """Fields merged into the error records kept under ``errors.*``."""
        return {
            "code": self.error_code,
            "user_message": self.user_message,
            "details": dict(self.context),
        }


class ValidationError(FitViewerError):
    """Raised when a setting or state value fails validation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        """
        Args:
            message: Error message
            field: Setting category (``chart.theme``) or state path that failed
            value: Rejected value
            **kwargs: Additional arguments for FitViewerError
        """
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)

        super().__init__(message, context=context, **kwargs)
        self.field = field
        self.value = value

    def _get_default_user_message(self) -> str:
        if self.field:
            return f"Invalid value provided for setting '{self.field}'"
        return "Invalid input provided"


class ConfigurationError(FitViewerError):
    """Raised when an FFV_* environment setting cannot be used."""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key

    def _get_default_user_message(self) -> str:
        if self.config_key:
            return f"Check the {self.config_key} setting."
        return "Application configuration error."
