"""
Bridged state path: one store path mirrored to one legacy global name.
"""

import logging
from collections.abc import Callable
from typing import Any, Optional

from fitview.core.events import changed_event
from fitview.core.legacy_bridge import LegacyGlobalBridge
from fitview.core.state_manager import StateManager

logger = logging.getLogger(__name__)


class BridgedPath:
    """
    Typed access to a state path that legacy code also reads as a global.

    Reads prefer the store, then adopt a plain legacy value if one appeared,
    then fall back to the last known value.
    """

    def __init__(
        self,
        state_manager: StateManager,
        name: str,
        path: str,
        owner: str,
        bridge: Optional[LegacyGlobalBridge] = None,
        normalize: Optional[Callable[[Any], Any]] = None,
        is_present: Callable[[Any], bool] = lambda value: value is not None,
        initial: Any = None,
    ):
        self._state = state_manager
        self._bridge = bridge
        self._normalize = normalize
        self._is_present = is_present
        self.name = name
        self.path = path
        self.owner = owner
        self.snapshot = initial
        # Writes made directly through the store also refresh the snapshot
        self._untrack = state_manager.on(changed_event(path), self._track)

    def install(self) -> bool:
        if self._bridge is None:
            return False
        return self._bridge.install(self.name, self.get, self._legacy_set)

    def uninstall(self) -> None:
        if self._bridge is not None:
            self._bridge.uninstall(self.name)

    def dispose(self) -> None:
        self._untrack()
        self.uninstall()

    def get(self) -> Any:
        value = self._state.get_state(self.path)
        if self._is_present(value):
            self.snapshot = value
            return value

        if self._bridge is not None:
            self._bridge.hydrate(
                self.name, lambda raw: self.commit(raw, f"{self.owner}.hydrate", reflect=False)
            )

        return self.snapshot if self._is_present(self.snapshot) else value

    def commit(self, value: Any, source: str, reflect: bool = True) -> bool:
        """
        Write the value to the store and optionally reflect it onto legacy globals.

        Returns:
            True when the store accepted the value
        """
        if self._normalize is not None:
            value = self._normalize(value)
        accepted = self._state.set_state(self.path, value, source=source)
        if accepted:
            self.snapshot = value
        if reflect and self._bridge is not None:
            self._bridge.reflect(self.name, value)
        return accepted

    def _track(self, event: dict[str, Any]) -> None:
        self.snapshot = event.get("new_value")

    def _legacy_set(self, value: Any) -> None:
        self.commit(value, f"{self.owner}.legacy_setter.{self.name}", reflect=False)
