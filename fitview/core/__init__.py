"""
Core Module
State store, middleware, computed values, legacy global bridge and settings
storage for the FIT viewer.
"""

from .computed_state import ComputedStateManager, initialize_common_computed_values
from .events import StateEvents
from .legacy_bridge import LegacyGlobalBridge, LegacyScope, legacy_globals
from .middleware import MiddlewareManager, PersistenceMiddleware, install_default_middleware
from .state_manager import StateChangeType, StateManager
from .storage import QSettingsStorage

__all__ = [
    "StateEvents",
    "StateManager",
    "StateChangeType",
    "MiddlewareManager",
    "PersistenceMiddleware",
    "install_default_middleware",
    "ComputedStateManager",
    "initialize_common_computed_values",
    "LegacyGlobalBridge",
    "LegacyScope",
    "legacy_globals",
    "QSettingsStorage",
]
