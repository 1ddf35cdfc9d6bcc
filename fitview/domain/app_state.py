"""
Application State

High-level verbs over the data, file, ui, charts and errors branches of the
state tree, plus persistence of a small allow-list of UI paths so the viewer
reopens on the same tab and theme.
"""

import json
import logging
import os
import time
import traceback
from collections.abc import Callable
from typing import Any, Optional

from fitview import config
from fitview.core.events import StateEvents
from fitview.core.middleware import PersistenceMiddleware
from fitview.core.state_manager import StateManager
from fitview.core.storage import QSettingsStorage
from fitview.exceptions import FitViewerError, StorageError

logger = logging.getLogger(__name__)

VALID_TABS = ("summary", "chart", "map", "table", "data", "altfit", "zwift")
THEME_MODES = ("light", "dark", "auto")

# Top-level sections owned by this module; reset() leaves the others alone.
APP_STATE_SECTIONS = ("data", "file", "ui", "charts", "map", "tables", "performance", "errors")
PERSISTENCE_MIDDLEWARE = "app-state-persistence"
PERSISTENCE_PRIORITY = 40


class ApplicationState:
    """
    {
        "name": "ApplicationState",
        "version": "1.0.0",
        "description": "Application-wide state verbs with allow-listed persistence.",
        "dependencies": ["StateManager", "QSettingsStorage"],
        "interface": {
            "inputs": ["data: dict", "tab: str", "theme: str", "error: Exception | str"],
            "outputs": "State tree updates and domain events"
        }
    }
    """

    def __init__(self, state_manager: StateManager, storage: Optional[QSettingsStorage] = None):
        """
        Initialize application state and restore persisted UI paths.

        Args:
            state_manager: Global state management
            storage: Optional persistent storage for the allow-listed paths
        """
        self._state = state_manager
        self._storage = storage
        self._disposers: list[Callable[[], None]] = []

        self.load_persisted_state()
        self._setup_auto_persistence()
        logger.info("ApplicationState initialized")

    # --- Data ---

    def set_global_data(self, data: Any) -> bool:
        """Store a parsed FIT payload and its derived bookkeeping."""
        record_count = 0
        if isinstance(data, dict):
            record_count = len(data.get("recordMesgs") or [])
        return self._state.update(
            {
                "data.globalData": data,
                "data.isLoaded": bool(data),
                "data.lastModified": time.time(),
                "data.recordCount": record_count,
            },
            source="ApplicationState.set_global_data",
        )

    def clear_global_data(self) -> bool:
        return self._state.update(
            {
                "data.globalData": None,
                "data.isLoaded": False,
                "data.lastModified": None,
                "data.recordCount": 0,
            },
            source="ApplicationState.clear_global_data",
        )

    # --- File ---

    def set_file_opening_state(self, is_opening: bool, file_path: str | None = None) -> bool:
        """
        Track whether a file is being opened.

        Args:
            is_opening: True while the open dialog/parse is in progress
            file_path: Path of the file being opened
        """
        updates = {
            "file.isOpening": is_opening,
            "file.path": file_path,
            "file.lastOpened": None if is_opening else time.time(),
        }
        if file_path:
            updates["file.name"] = os.path.basename(file_path)
        success = self._state.update(updates, source="ApplicationState.set_file_opening_state")
        if success and not is_opening and file_path:
            self._state.emit(StateEvents.FILE_OPENED, {"path": file_path})
        return success

    # --- UI ---

    def set_active_tab(self, tab_id: str) -> bool:
        return self._state.set_state("ui.activeTab", tab_id, source="ApplicationState.set_active_tab")

    def set_chart_controls_visible(self, visible: bool) -> bool:
        return self._state.set_state(
            "charts.controlsVisible", bool(visible), source="ApplicationState.set_chart_controls_visible"
        )

    def set_theme(self, theme: str) -> bool:
        return self._state.set_state("ui.theme", theme, source="ApplicationState.set_theme")

    # --- Errors ---

    def add_error(self, error: BaseException | str, context: str = "") -> dict[str, Any]:
        """
        Record an error in the current list and the bounded history.

        Returns:
            The stored error record
        """
        if isinstance(error, BaseException):
            message = str(error)
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        else:
            message = str(error)
            stack = None

        record = {
            "message": message,
            "stack": stack,
            "context": context,
            "timestamp": time.time(),
        }
        if isinstance(error, FitViewerError):
            record.update(error.to_dict())
        current = list(self._state.get_state("errors.current") or [])
        history = list(self._state.get_state("errors.history") or [])
        current.append(record)
        history.append(record)

        self._state.update(
            {
                "errors.current": current,
                "errors.history": history[-config.MAX_ERROR_HISTORY:],
                "errors.lastError": record,
            },
            source="ApplicationState.add_error",
        )
        self._state.emit(StateEvents.ERROR_OCCURRED, record)
        return record

    def clear_errors(self) -> bool:
        return self._state.set_state("errors.current", [], source="ApplicationState.clear_errors")

    # --- Lifecycle ---

    def reset(self) -> None:
        """Forget persisted UI paths and restore the defaults of this module's sections."""
        for section in APP_STATE_SECTIONS:
            self._state.reset_state(section)
        for path in config.PERSISTENT_STATE_KEYS:
            self._remove_persisted(path)

    def get_debug_info(self) -> dict[str, Any]:
        summary = self._state.get_state_summary()
        return {
            "state": self._state.get_snapshot(),
            "listeners": summary["events"],
            "middleware": [info["name"] for info in self._state.middleware.get_middleware_info()],
            "validators": summary["validators"],
            "persistent_keys": list(config.PERSISTENT_STATE_KEYS),
            "volatile_keys": list(config.VOLATILE_STATE_KEYS),
        }

    def dispose(self) -> None:
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()

    # --- Persistence ---

    def load_persisted_state(self) -> None:
        """Restore allow-listed paths from storage."""
        if self._storage is None:
            return
        for path in config.PERSISTENT_STATE_KEYS:
            key = config.STATE_STORAGE_PREFIX + path
            try:
                stored = self._storage.get_item(key)
            except StorageError:
                continue
            if stored is None:
                continue
            try:
                value = json.loads(stored)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to parse persisted state for {path}: {e}")
                continue
            self._state.set_state(path, value, source="ApplicationState.load_persisted_state")
            logger.debug(f"Loaded persisted state for {path}: {value!r}")

    def persist_state(self, path: str) -> None:
        """Save one path to storage unless it is volatile."""
        if self._storage is None or path in config.VOLATILE_STATE_KEYS:
            return
        value = self._state.get_state(path)
        if value is None:
            return
        try:
            self._storage.set_item(config.STATE_STORAGE_PREFIX + path, json.dumps(value))
        except StorageError:
            logger.warning(f"State path {path} was not persisted")
        except (TypeError, ValueError) as e:
            logger.error(f"State path {path} is not JSON serializable: {e}")

    def _remove_persisted(self, path: str) -> None:
        if self._storage is None:
            return
        try:
            self._storage.remove_item(config.STATE_STORAGE_PREFIX + path)
        except StorageError:
            logger.warning(f"Persisted state for {path} could not be removed")

    def _setup_auto_persistence(self) -> None:
        middleware = self._state.middleware
        middleware.register(
            PERSISTENCE_MIDDLEWARE,
            PersistenceMiddleware(self.persist_state, config.PERSISTENT_STATE_KEYS),
            PERSISTENCE_PRIORITY,
        )
        self._disposers.append(lambda: middleware.unregister(PERSISTENCE_MIDDLEWARE))


class AppActions:
    """
    User-level actions that touch several branches of the state tree at once.
    """

    def __init__(self, state_manager: StateManager, app_state: ApplicationState):
        self._state = state_manager
        self._app = app_state

    def load_file(self, file_data: Any, file_path: str) -> bool:
        """
        Load a parsed FIT file and reset the render flags of every view.

        Returns:
            True when the data was stored
        """
        source = "AppActions.load_file"
        self._app.set_file_opening_state(True, file_path)
        try:
            stored = self._app.set_global_data(file_data)
            self._state.update(
                {
                    "charts.isRendered": False,
                    "map.isRendered": False,
                    "tables.isRendered": False,
                    "performance.lastLoadTime": time.time(),
                },
                source=source,
            )
            logger.info(f"File loaded: {file_path}")
            return stored
        finally:
            self._app.set_file_opening_state(False, file_path)

    def clear_data(self) -> None:
        source = "AppActions.clear_data"
        self._app.clear_global_data()
        self._state.update(
            {
                "file.path": None,
                "file.name": None,
                "charts.isRendered": False,
                "map.isRendered": False,
                "tables.isRendered": False,
            },
            source=source,
        )
        self._state.emit(StateEvents.FILE_CLOSED, {})
        logger.info("Data cleared")

    def switch_tab(self, tab_name: str) -> bool:
        if tab_name not in VALID_TABS:
            logger.warning(f"Invalid tab name: {tab_name}")
            return False
        return self._app.set_active_tab(tab_name)

    def switch_theme(self, theme: str) -> bool:
        normalized = "auto" if theme == "system" else theme
        if normalized not in THEME_MODES:
            logger.warning(f"Invalid theme: {theme}")
            return False
        return self._app.set_theme(normalized)

    def toggle_chart_controls(self) -> bool:
        visible = bool(self._state.get_state("charts.controlsVisible"))
        return self._app.set_chart_controls_visible(not visible)

    def toggle_measurement_mode(self) -> bool:
        enabled = bool(self._state.get_state("ui.measurementMode"))
        return self._state.set_state(
            "ui.measurementMode", not enabled, source="AppActions.toggle_measurement_mode"
        )

    def select_lap(self, lap_number: int | None) -> bool:
        return self._state.set_state("map.selectedLap", lap_number, source="AppActions.select_lap")

    def set_initialized(self, initialized: bool) -> bool:
        return self._state.set_state("ui.isInitialized", bool(initialized), source="AppActions.set_initialized")

    def render_map(self, center: list[float], zoom: int = 13) -> bool:
        return self._state.update(
            {"map.center": center, "map.zoom": zoom, "map.isRendered": True},
            source="AppActions.render_map",
        )

    def render_table(self) -> bool:
        return self._state.set_state("tables.isRendered", True, source="AppActions.render_table")

    def render_chart(self, visible_fields: list[str] | None = None) -> bool:
        started = time.perf_counter()
        updates: dict[str, Any] = {"charts.isRendered": True, "charts.lastRenderTime": time.time()}
        if visible_fields is not None:
            updates["charts.visibleFields"] = list(visible_fields)
        success = self._state.update(updates, source="AppActions.render_chart")
        self._state.update_state(
            "performance.renderTimes",
            {"chart": (time.perf_counter() - started) * 1000},
            source="AppActions.render_chart",
        )
        return success
