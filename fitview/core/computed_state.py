"""
Computed State
Derived values over the state tree that are invalidated when one of their
dependency paths changes and recomputed lazily on the next read.
"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from fitview.core.state_manager import StateManager

logger = logging.getLogger(__name__)

ComputeFn = Callable[[dict[str, Any]], Any]

SLOW_COMPUTE_MS = 10.0


class ComputedStateManager:
    """
    {
        "name": "ComputedStateManager",
        "version": "1.0.0",
        "description": "Lazily recomputed values derived from state paths.",
        "dependencies": ["StateManager"],
        "interface": {
            "inputs": ["key: str", "compute_fn: Callable[[dict], Any]", "dependencies: list[str]"],
            "outputs": "Cached derived values, invalidated by dependency change events"
        }
    }
    """

    def __init__(self, state_manager: StateManager):
        self._state = state_manager
        self._computed: dict[str, dict[str, Any]] = {}
        self._subscriptions: dict[str, list[Callable[[], None]]] = {}
        self._computing: set[str] = set()

    def add_computed(self, key: str, compute_fn: ComputeFn, dependencies: Iterable[str] = ()) -> Callable[[], None]:
        """
        Register a computed value and compute it once.

        Args:
            key: Unique name of the computed value
            compute_fn: Called with the whole state tree
            dependencies: State paths whose change invalidates the value

        Returns:
            Disposer that removes the computed value
        """
        if key in self._computed:
            logger.warning(f"Computed value '{key}' already exists, replacing")
            self.remove_computed(key)

        dependencies = list(dependencies)
        self._computed[key] = {
            "compute_fn": compute_fn,
            "dependencies": dependencies,
            "value": None,
            "is_valid": False,
            "error": None,
            "last_computed": None,
        }
        self._subscriptions[key] = [
            self._state.subscribe(path, lambda _event, key=key: self.invalidate_computed(key))
            for path in dependencies
        ]
        self._compute_value(key)
        logger.debug(f"Registered computed value '{key}' with dependencies {dependencies}")

        def dispose() -> None:
            self.remove_computed(key)

        return dispose

    def get_computed(self, key: str, default: Any = None) -> Any:
        """Current value, recomputed first when invalid or last computed with an error."""
        entry = self._computed.get(key)
        if entry is None:
            logger.warning(f"Computed value '{key}' does not exist")
            return default
        if not entry["is_valid"] or entry["error"] is not None:
            self._compute_value(key)
        return entry["value"]

    def invalidate_computed(self, key: str) -> None:
        entry = self._computed.get(key)
        if entry is None:
            return
        entry["is_valid"] = False
        entry["error"] = None
        logger.debug(f"Invalidated computed value '{key}'")

    def recompute_all(self) -> None:
        for key in list(self._computed):
            self.invalidate_computed(key)
            self._compute_value(key)

    def remove_computed(self, key: str) -> bool:
        if key not in self._computed:
            logger.warning(f"Computed value '{key}' does not exist")
            return False
        for dispose in self._subscriptions.pop(key, []):
            dispose()
        del self._computed[key]
        self._computing.discard(key)
        logger.debug(f"Removed computed value '{key}'")
        return True

    def has_computed(self, key: str) -> bool:
        return key in self._computed

    def get_all_computed(self) -> dict[str, dict[str, Any]]:
        return {
            key: {
                "value": entry["value"],
                "dependencies": list(entry["dependencies"]),
                "is_valid": entry["is_valid"],
                "error": entry["error"],
                "last_computed": entry["last_computed"],
            }
            for key, entry in self._computed.items()
        }

    def get_dependency_graph(self) -> dict[str, list[str]]:
        return {key: list(entry["dependencies"]) for key, entry in self._computed.items()}

    def cleanup(self) -> None:
        for key in list(self._computed):
            self.remove_computed(key)
        self._computing.clear()

    def _compute_value(self, key: str) -> None:
        entry = self._computed.get(key)
        if entry is None:
            return
        # A compute function reading its own key would recurse forever
        if key in self._computing:
            logger.error(f"Circular dependency detected for computed value '{key}'")
            return

        self._computing.add(key)
        started = time.perf_counter()
        try:
            entry["value"] = entry["compute_fn"](self._state.get_state())
            entry["is_valid"] = True
            entry["error"] = None
            entry["last_computed"] = time.time()
        except Exception as e:
            logger.error(f"Error computing value for '{key}': {e}")
            entry["error"] = e
            entry["is_valid"] = False
        finally:
            self._computing.discard(key)

        duration_ms = (time.perf_counter() - started) * 1000
        if duration_ms > SLOW_COMPUTE_MS:
            logger.warning(f"Slow computation for '{key}': {duration_ms:.2f}ms")


# ----------------------------------------------------------------------
# Common computed values
# ----------------------------------------------------------------------


def _records(state: dict[str, Any]) -> list[Any]:
    data = (state.get("data") or {}).get("globalData")
    if not isinstance(data, dict):
        return []
    return data.get("recordMesgs") or []


def _is_file_loaded(state: dict[str, Any]) -> bool:
    data = (state.get("data") or {}).get("globalData")
    return bool(data)


def _is_app_ready(state: dict[str, Any]) -> bool:
    ui = state.get("ui") or {}
    file = state.get("file") or {}
    return bool(ui.get("isInitialized")) and not file.get("isOpening")


def _has_chart_data(state: dict[str, Any]) -> bool:
    return len(_records(state)) > 0


def _has_map_data(state: dict[str, Any]) -> bool:
    return any(
        isinstance(record, dict)
        and record.get("position_lat") is not None
        and record.get("position_long") is not None
        for record in _records(state)
    )


def _summary_data(state: dict[str, Any]) -> dict[str, Any] | None:
    data = (state.get("data") or {}).get("globalData")
    sessions = data.get("sessionMesgs") if isinstance(data, dict) else None
    if not sessions or not isinstance(sessions[0], dict):
        return None
    session = sessions[0]
    return {
        "avgHeartRate": session.get("avg_heart_rate"),
        "maxHeartRate": session.get("max_heart_rate"),
        "avgPower": session.get("avg_power"),
        "maxPower": session.get("max_power"),
        "avgSpeed": session.get("avg_speed"),
        "maxSpeed": session.get("max_speed"),
        "totalAscent": session.get("total_ascent"),
        "totalDescent": session.get("total_descent"),
        "totalDistance": session.get("total_distance"),
        "totalTime": session.get("total_elapsed_time"),
    }


def _ui_state_summary(state: dict[str, Any]) -> dict[str, Any]:
    ui = state.get("ui") or {}
    charts = state.get("charts") or {}
    return {
        "activeTab": ui.get("activeTab") or "summary",
        "theme": ui.get("theme") or "auto",
        "sidebarCollapsed": bool(ui.get("sidebarCollapsed")),
        "measurementMode": bool(ui.get("measurementMode")),
        "controlsVisible": bool(charts.get("controlsVisible")),
    }


COMMON_COMPUTED_VALUES: dict[str, tuple[ComputeFn, list[str]]] = {
    "isFileLoaded": (_is_file_loaded, ["data.globalData"]),
    "isAppReady": (_is_app_ready, ["ui.isInitialized", "file.isOpening"]),
    "hasChartData": (_has_chart_data, ["data.globalData"]),
    "hasMapData": (_has_map_data, ["data.globalData"]),
    "summaryData": (_summary_data, ["data.globalData"]),
    "uiStateSummary": (
        _ui_state_summary,
        ["ui.activeTab", "ui.theme", "ui.sidebarCollapsed", "ui.measurementMode", "charts.controlsVisible"],
    ),
}


def initialize_common_computed_values(computed: ComputedStateManager) -> None:
    """Register the viewer's standard derived values. Skips keys already present."""
    for key, (compute_fn, dependencies) in COMMON_COMPUTED_VALUES.items():
        if computed.has_computed(key):
            continue
        computed.add_computed(key, compute_fn, dependencies)
