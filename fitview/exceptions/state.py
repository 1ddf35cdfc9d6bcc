"""
State Exception Classes
Errors raised inside the path store and the legacy global bridge.
"""

from typing import Any, Optional

from .base import FitViewerError


class StateError(FitViewerError):
    """Raised when a state path cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path

        super().__init__(message, context=context, **kwargs)
        self.path = path

    def _get_default_user_message(self) -> str:
        return "Application state could not be updated."


class BridgeError(StateError):
    """Raised when a legacy global accessor cannot be installed or reflected."""

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        scope: Optional[str] = None,
        **kwargs: Any,
    ):
        context = kwargs.pop("context", {})
        if name:
            context["name"] = name
        if scope:
            context["scope"] = scope

        super().__init__(message, context=context, **kwargs)
        self.name = name
        self.scope = scope
