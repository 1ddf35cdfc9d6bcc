"""
Exception Hierarchy for the FIT viewer state core
Provides standardized error handling with consistent exception types.
"""

from .base import (
    ConfigurationError,
    FitViewerError,
    ValidationError,
)
from .state import BridgeError, StateError
from .storage import (
    StorageError,
    StorageUnavailableError,
    StorageWriteError,
)

__all__ = [
    # Base exceptions
    "FitViewerError",
    "ValidationError",
    "ConfigurationError",
    # State exceptions
    "StateError",
    "BridgeError",
    # Storage exceptions
    "StorageError",
    "StorageUnavailableError",
    "StorageWriteError",
]
