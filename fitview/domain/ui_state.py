"""
UI State

Verbs over the ``ui`` branch of the state tree: theme, active tab, panel
toggles, the last notification shown and the host window geometry.
"""

import logging
import time
from typing import Any, Optional

from fitview.core.state_manager import StateManager
from fitview.domain.app_state import THEME_MODES, AppActions

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("info", "success", "warning", "error")
DEFAULT_NOTIFICATION_DURATION_MS = 3000


def normalize_theme(theme: Any) -> str:
    """Map legacy and unknown theme names onto a supported mode."""
    if theme == "system":
        return "auto"
    if isinstance(theme, str) and theme in THEME_MODES:
        return theme
    return "auto"


class UIState:
    """
    {
        "name": "UIState",
        "version": "1.0.0",
        "description": "UI verbs that write the ui.* and charts.controlsVisible paths.",
        "dependencies": ["StateManager", "AppActions"],
        "interface": {
            "inputs": ["theme: str", "tab: str", "notification: str | dict", "window_state: dict"],
            "outputs": "ui.* state paths"
        }
    }
    """

    def __init__(self, state_manager: StateManager, app_actions: Optional[AppActions] = None):
        self._state = state_manager
        self._actions = app_actions
        logger.info("UIState initialized")

    def set_theme(self, theme: str) -> bool:
        normalized = normalize_theme(theme)
        if normalized != theme:
            logger.debug(f"Theme {theme!r} normalized to {normalized!r}")
        if self._actions is not None:
            return self._actions.switch_theme(normalized)
        return self._state.set_state("ui.theme", normalized, source="UIState.set_theme")

    def show_tab(self, tab_name: str) -> bool:
        if self._actions is not None:
            return self._actions.switch_tab(tab_name)
        return self._state.set_state("ui.activeTab", tab_name, source="UIState.show_tab")

    def toggle_chart_controls(self) -> bool:
        if self._actions is not None:
            return self._actions.toggle_chart_controls()
        visible = bool(self._state.get_state("charts.controlsVisible"))
        return self._state.set_state("charts.controlsVisible", not visible, source="UIState.toggle_chart_controls")

    def toggle_measurement_mode(self) -> bool:
        if self._actions is not None:
            return self._actions.toggle_measurement_mode()
        enabled = bool(self._state.get_state("ui.measurementMode"))
        return self._state.set_state("ui.measurementMode", not enabled, source="UIState.toggle_measurement_mode")

    def toggle_sidebar(self, collapsed: Optional[bool] = None) -> bool:
        """
        Collapse or expand the sidebar.

        Args:
            collapsed: Explicit target state; None flips the current one
        """
        current = bool(self._state.get_state("ui.sidebarCollapsed"))
        target = (not current) if collapsed is None else bool(collapsed)
        return self._state.set_state("ui.sidebarCollapsed", target, source="UIState.toggle_sidebar")

    def show_notification(self, notification: str | dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Record a notification for whatever surface displays toasts.

        Args:
            notification: A message string, or a dict with ``message``,
                          ``type`` and ``duration`` keys

        Returns:
            The recorded notification, or None for an unusable argument
        """
        if isinstance(notification, str):
            message, level, duration = notification, "info", DEFAULT_NOTIFICATION_DURATION_MS
        elif isinstance(notification, dict):
            message = notification.get("message") or "No message provided"
            level = notification.get("type") or "info"
            duration = notification.get("duration") or DEFAULT_NOTIFICATION_DURATION_MS
        else:
            logger.warning(f"Invalid notification parameter: {notification!r}")
            return None

        if level not in NOTIFICATION_TYPES:
            logger.debug(f"Unknown notification type {level!r}, using info")
            level = "info"

        record = {
            "message": message,
            "type": level,
            "duration": duration,
            "timestamp": time.time(),
        }
        log = logger.warning if level in ("warning", "error") else logger.info
        log(f"[Notification {level.upper()}] {message}")
        self._state.set_state("ui.lastNotification", record, source="UIState.show_notification")
        return record

    def update_window_state(self, window_state: dict[str, Any]) -> bool:
        """Merge host window geometry (width, height, x, y, maximized) into ui.windowState."""
        if not isinstance(window_state, dict):
            logger.warning(f"Ignoring window state of type {type(window_state).__name__}")
            return False
        updates: dict[str, Any] = {}
        if "width" in window_state or "height" in window_state:
            current_size = self._state.get_state("ui.windowSize") or {}
            updates["ui.windowSize"] = {
                "width": window_state.get("width", current_size.get("width", 0)),
                "height": window_state.get("height", current_size.get("height", 0)),
            }
        success = self._state.update_state(
            "ui.windowState", dict(window_state), source="UIState.update_window_state"
        )
        if success and updates:
            success = self._state.update(updates, source="UIState.update_window_state")
        return success

    # --- Selectors ---

    def get_theme(self) -> str:
        return self._state.get_state("ui.theme", "auto")

    def get_active_tab(self) -> str:
        return self._state.get_state("ui.activeTab", "summary")

    def is_sidebar_collapsed(self) -> bool:
        return bool(self._state.get_state("ui.sidebarCollapsed"))

    def is_measurement_mode(self) -> bool:
        return bool(self._state.get_state("ui.measurementMode"))

    def get_last_notification(self) -> Optional[dict[str, Any]]:
        return self._state.get_state("ui.lastNotification")
