"""
State Event Names

Domain-level events emitted by the StateManager in addition to the generic
"<path>-changed" notifications, and the rules that derive them from writes.
"""

import time
from collections.abc import Callable
from typing import Any


class StateEvents:
    """Event name constants shared by the store and its subscribers."""

    # Data events
    DATA_LOADED = "data-loaded"
    DATA_CLEARED = "data-cleared"
    DATA_CHANGED = "data-changed"

    # UI events
    TAB_CHANGED = "tab-changed"
    CHART_RENDERED = "chart-rendered"
    CHART_CONTROLS_TOGGLED = "chart-controls-toggled"
    THEME_CHANGED = "theme-changed"

    # File events
    FILE_OPENING = "file-opening"
    FILE_OPENED = "file-opened"
    FILE_CLOSED = "file-closed"

    # Store events
    BATCH_UPDATED = "state-batch-updated"
    STATE_RESET = "state-reset"

    # Error events
    ERROR_OCCURRED = "error-occurred"
    WARNING_OCCURRED = "warning-occurred"

    @classmethod
    def all(cls) -> set[str]:
        return {
            value
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        }


CHANGED_SUFFIX = "-changed"


def changed_event(path: str) -> str:
    """Name of the generic change event for a state path."""
    return f"{path}{CHANGED_SUFFIX}"


def _global_data_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    if new_value is not None and old_value is None:
        return [(StateEvents.DATA_LOADED, {"data": new_value})]
    if new_value is None and old_value is not None:
        return [(StateEvents.DATA_CLEARED, {"previous_data": old_value})]
    if new_value is not old_value:
        return [(StateEvents.DATA_CHANGED, {"data": new_value, "previous_data": old_value})]
    return []


def _tab_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    return [(StateEvents.TAB_CHANGED, {"tab": new_value, "previous_tab": old_value})]


def _theme_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    return [
        (
            StateEvents.THEME_CHANGED,
            {
                "theme": new_value,
                "previous_theme": old_value,
                "new_value": new_value,
                "old_value": old_value,
            },
        )
    ]


def _chart_controls_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    return [(StateEvents.CHART_CONTROLS_TOGGLED, {"visible": new_value})]


def _chart_rendered_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    if new_value and not old_value:
        return [(StateEvents.CHART_RENDERED, {"render_time": time.time()})]
    return []


def _file_opening_events(new_value: Any, old_value: Any) -> list[tuple[str, dict[str, Any]]]:
    if new_value:
        return [(StateEvents.FILE_OPENING, {})]
    return []


DerivedEventRule = Callable[[Any, Any], list[tuple[str, dict[str, Any]]]]

# path -> rule producing (event, payload) pairs from (new_value, old_value)
DERIVED_EVENT_RULES: dict[str, DerivedEventRule] = {
    "data.globalData": _global_data_events,
    "ui.activeTab": _tab_events,
    "ui.theme": _theme_events,
    "charts.controlsVisible": _chart_controls_events,
    "charts.isRendered": _chart_rendered_events,
    "file.isOpening": _file_opening_events,
}
