"""
Global Data State

Convenience access to the loaded FIT payload at ``data.globalData``, bridged
to the legacy ``globalData`` global.
"""

import logging
from typing import Any, Optional

from fitview.core.legacy_bridge import LegacyGlobalBridge
from fitview.core.state_manager import StateManager
from fitview.domain.bridged_path import BridgedPath

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "GlobalDataState"


class GlobalDataState:
    """Owner of the ``globalData`` legacy global."""

    LEGACY_NAME = "globalData"
    PATH = "data.globalData"

    def __init__(self, state_manager: StateManager, bridge: Optional[LegacyGlobalBridge] = None):
        self._data = BridgedPath(
            state_manager,
            self.LEGACY_NAME,
            self.PATH,
            owner=DEFAULT_SOURCE,
            bridge=bridge,
        )
        self._data.install()

    def get_global_data(self) -> Any:
        """Return the current FIT payload, or None when nothing is loaded."""
        return self._data.get()

    def set_global_data(self, data: Any, source: str = f"{DEFAULT_SOURCE}.set_global_data") -> bool:
        return self._data.commit(data, source)

    def clear_global_data(self, source: str = f"{DEFAULT_SOURCE}.clear_global_data") -> bool:
        return self._data.commit(None, source)

    def dispose(self) -> None:
        self._data.dispose()
