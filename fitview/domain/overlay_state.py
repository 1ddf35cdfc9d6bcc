"""
Overlay State

Additional FIT files drawn on top of the main activity map, the number of
map markers, and the overlay currently highlighted. Each value is bridged to
the legacy global the map code historically used.
"""

import logging
import math
from typing import Any, Optional

from fitview import config
from fitview.core.legacy_bridge import LegacyGlobalBridge
from fitview.core.state_manager import StateManager
from fitview.domain.bridged_path import BridgedPath

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "OverlayState"


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _normalize_files(files: Any) -> list[Any]:
    return list(files) if isinstance(files, (list, tuple)) else []


def _normalize_index(index: Any) -> int | float | None:
    return index if _is_finite_number(index) else None


class OverlayState:
    """
    {
        "name": "OverlayState",
        "version": "1.0.0",
        "description": "Overlay files, marker count and highlight index with legacy global bridging.",
        "dependencies": ["StateManager", "LegacyGlobalBridge"],
        "interface": {
            "inputs": ["files: list", "count: int | str", "index: int | None"],
            "outputs": "overlays.* state paths"
        }
    }
    """

    def __init__(self, state_manager: StateManager, bridge: Optional[LegacyGlobalBridge] = None):
        self._state = state_manager
        self._files = BridgedPath(
            state_manager,
            "loadedFitFiles",
            "overlays.loadedFitFiles",
            owner=DEFAULT_SOURCE,
            bridge=bridge,
            normalize=_normalize_files,
            is_present=lambda value: isinstance(value, list) and len(value) > 0,
            initial=[],
        )
        self._marker_count = BridgedPath(
            state_manager,
            "mapMarkerCount",
            "overlays.mapMarkerCount",
            owner=DEFAULT_SOURCE,
            bridge=bridge,
            normalize=self._coerce_marker_count,
            is_present=_is_finite_number,
            initial=config.DEFAULT_MAP_MARKER_COUNT,
        )
        self._highlighted = BridgedPath(
            state_manager,
            "_highlightedOverlayIdx",
            "overlays.highlightedOverlayIndex",
            owner=DEFAULT_SOURCE,
            bridge=bridge,
            normalize=_normalize_index,
            is_present=_is_finite_number,
        )
        for bridged in (self._files, self._marker_count, self._highlighted):
            bridged.install()

    # --- Overlay files ---

    def get_overlay_files(self) -> list[Any]:
        files = self._files.get()
        return files if isinstance(files, list) else []

    def set_overlay_files(self, files: list[Any], source: str = f"{DEFAULT_SOURCE}.set_overlay_files") -> bool:
        return self._files.commit(files, source)

    # --- Marker count ---

    def get_overlay_marker_count(self) -> int | float:
        return self._marker_count.get()

    def set_overlay_marker_count(
        self,
        count: Any,
        source: str = f"{DEFAULT_SOURCE}.set_overlay_marker_count",
        explicit: bool = True,
    ) -> bool:
        """
        Set the map marker count. Non-numeric input keeps the current count.

        Args:
            count: Number or numeric string
            explicit: Whether the user chose this count (as opposed to a default)
        """
        accepted = self._marker_count.commit(count, source)
        self._state.set_state("overlays.mapMarkerCountExplicit", bool(explicit), source=source)
        return accepted

    def is_marker_count_explicit(self) -> bool:
        return bool(self._state.get_state("overlays.mapMarkerCountExplicit", False))

    # --- Highlight ---

    def get_highlighted_overlay_index(self) -> int | float | None:
        return self._highlighted.get()

    def set_highlighted_overlay_index(
        self, index: int | float | None, source: str = f"{DEFAULT_SOURCE}.set_highlighted_overlay_index"
    ) -> bool:
        return self._highlighted.commit(index, source)

    # --- Lifecycle ---

    def clear_overlay_state(self, source: str = f"{DEFAULT_SOURCE}.clear_overlay_state") -> None:
        """Drop every overlay and restore the default marker count."""
        self._files.commit([], f"{source}.loadedFitFiles")
        self._marker_count.commit(config.DEFAULT_MAP_MARKER_COUNT, f"{source}.mapMarkerCount")
        self._state.set_state("overlays.mapMarkerCountExplicit", False, source=source)
        self._highlighted.commit(None, f"{source}.highlightedOverlayIndex")

    def dispose(self) -> None:
        for bridged in (self._files, self._marker_count, self._highlighted):
            bridged.dispose()

    def _coerce_marker_count(self, count: Any) -> int | float:
        if _is_finite_number(count):
            return count
        try:
            return int(str(count).strip(), 10)
        except (TypeError, ValueError):
            pass

        existing = self._state.get_state("overlays.mapMarkerCount")
        if _is_finite_number(existing):
            return existing
        if _is_finite_number(self._marker_count.snapshot):
            return self._marker_count.snapshot
        return config.DEFAULT_MAP_MARKER_COUNT
