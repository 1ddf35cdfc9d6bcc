"""
Global State Manager
This module provides centralized application state management using observers.
It implements SSOT for all viewer state with change notifications.
Key Features:
- Centralized state storage with nested dot-path support
- Event multimap for "<path>-changed" and domain event notifications
- Per-path validators that can reject writes
- Batched updates with before/after snapshots
"""

import copy
import fnmatch
import logging
import math
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from fitview import config
from fitview.core.events import (
    CHANGED_SUFFIX,
    DERIVED_EVENT_RULES,
    StateEvents,
    changed_event,
)
from fitview.core.middleware import AFTER_SET, BEFORE_SET, MiddlewareManager
from fitview.core.state_defaults import create_initial_state

logger = logging.getLogger(__name__)

_MISSING = object()

Listener = Callable[[Any], None]
Validator = Callable[[Any, Any], bool]


class StateChangeType(Enum):
    """Types of state changes for granular observation."""

    SET = "set"
    DELETE = "delete"
    RESET = "reset"


def _same_value(old_value: Any, new_value: Any) -> bool:
    """Identity for containers, equality for scalars of the same type."""
    if old_value is new_value:
        return True
    if type(old_value) is not type(new_value):
        return False
    if isinstance(new_value, float) and math.isnan(new_value):
        return math.isnan(old_value)
    if isinstance(new_value, (str, int, float, bool)):
        return old_value == new_value
    return False


class StateManager:
    """
    {
        "name": "StateManager",
        "version": "1.0.0",
        "description": "Path-addressed state store with event notifications.",
        "dependencies": ["fitview.core.events", "fitview.core.state_defaults"],
        "interface": {
            "inputs": ["path: str", "value: Any", "notify: bool", "source: str"],
            "outputs": "Centralized state with change notifications"
        }
    }
    Singleton state manager that provides unified access to all viewer state.
    UI and domain modules communicate through named paths and events instead
    of holding references to each other.
    """

    MAX_HISTORY_SIZE = config.MAX_HISTORY_SIZE

    _instance: Optional["StateManager"] = None

    def __new__(cls) -> "StateManager":
        """Ensure singleton pattern for global state access."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize state manager with the default state tree."""
        if hasattr(self, "_initialized"):
            return
        self._state: dict[str, Any] = create_initial_state()
        # Event registry: event name (or wildcard pattern) -> callbacks
        self._listeners: dict[str, list[Listener]] = {}
        self._validators: dict[str, Validator] = {}
        # before_set / after_set hooks around every write
        self.middleware = MiddlewareManager()
        # State change history for debugging
        self._change_history: list[dict[str, Any]] = []
        self._initialized = True
        logger.info("StateManager initialized with default application state")

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton so the next construction starts from defaults."""
        cls._instance = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self, path: str | None = None, default: Any = None) -> Any:
        """
        Get state value using dot-separated path notation.
        Args:
            path: Dot-separated state path (e.g., 'data.globalData').
                  If None, returns entire state tree.
            default: Value returned when any path segment is missing
        Returns:
            State value at the specified path, or default if path doesn't exist
        Examples:
            get_state('ui.activeTab') -> 'summary'
            get_state('settings.chart', {}) -> chart settings with default
            get_state() -> Entire state dictionary
        """
        if not path:
            return self._state
        try:
            value = self._get_nested_value(self._state, path)
        except Exception as e:
            logger.warning(f"Failed to get state at path '{path}': {e}")
            return default
        return default if value is _MISSING else value

    def get_snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole tree. Expensive; debugging and export only."""
        return copy.deepcopy(self._state)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_state(
        self,
        path: str,
        value: Any,
        notify: bool = True,
        source: str = "unknown",
    ) -> bool:
        """
        Set state value at the specified path with optional change notification.
        Args:
            path: Dot-separated state path to set
            value: Value to set at the path
            notify: Whether to emit change events
            source: Tag describing who made the change
        Returns:
            True if the write was applied (or was a no-op), False if it was
            rejected by middleware or a validator, or failed
        Examples:
            set_state('ui.activeTab', 'map') -> Switch tabs
            set_state('fitFile.isLoading', False) -> Clear loading flag
        """
        if not isinstance(path, str) or not path:
            logger.warning("set_state requires a non-empty path")
            return False
        try:
            current = self._get_nested_value(self._state, path)
            old_value = None if current is _MISSING else current

            context = self.middleware.execute(
                BEFORE_SET,
                {"path": path, "value": value, "old_value": old_value, "source": source},
            )
            if context is None:
                logger.warning(f"Write to '{path}' halted by middleware")
                return False
            value = context["value"]

            validator = self._validators.get(path)
            if validator is not None and not validator(value, old_value):
                logger.warning(f"Validation failed for '{path}', keeping previous value: {value!r}")
                return False

            if current is not _MISSING and _same_value(old_value, value):
                logger.debug(f"State unchanged: {path} ({source})")
                return True

            self._set_nested_value(self._state, path, value)
            self._record_change(path, value, old_value, source, StateChangeType.SET)
            logger.debug(f"State set: {path} by {source}")

            if notify:
                self._notify_path_change(path, value, old_value, source)
            self.middleware.execute(
                AFTER_SET,
                {"path": path, "value": value, "old_value": old_value, "source": source},
            )
            return True
        except Exception as e:
            logger.error(f"Failed to set state at path '{path}': {e}")
            return False

    def update_state(
        self,
        path: str,
        value: Any,
        notify: bool = True,
        source: str = "unknown",
    ) -> bool:
        """
        Merge-style update of the value at a path.
        Args:
            path: Dot-separated state path to update
            value: A dict to shallow-merge into the current dict, a function
                   receiving the current value and returning the new one, or
                   a plain replacement value
            notify: Whether to emit change events
            source: Tag describing who made the change
        Returns:
            True if state was successfully updated, False otherwise
        Examples:
            update_state('fitFile.metrics', {'recordCount': 10}) -> Merge
            update_state('data.recordCount', lambda x: x + 1) -> Increment
        """
        try:
            current = self.get_state(path)
            if callable(value):
                new_value = value(current)
            elif isinstance(value, dict) and isinstance(current, dict):
                new_value = {**current, **value}
            else:
                new_value = value
            return self.set_state(path, new_value, notify, source)
        except Exception as e:
            logger.error(f"Failed to update state at path '{path}': {e}")
            return False

    def update(self, updates: Mapping[str, Any], source: str = "batch") -> bool:
        """
        Apply several path writes, then emit one batch event.

        Writes are applied in the mapping's order and are not atomic: the
        first failed write stops the batch, earlier writes stay applied and
        no batch event is emitted.

        Args:
            updates: Mapping of path -> value
            source: Tag describing who made the change

        Returns:
            True if every write was applied
        """
        old_state = self.get_snapshot()
        for path, value in updates.items():
            if not self.set_state(path, value, source=source):
                logger.error(
                    f"Batch update stopped at '{path}'; earlier writes remain applied"
                )
                return False

        self.emit(
            StateEvents.BATCH_UPDATED,
            {
                "updates": dict(updates),
                "old_state": old_state,
                "new_state": self.get_snapshot(),
                "source": source,
            },
        )
        return True

    def delete_state(self, path: str, notify: bool = True, source: str = "unknown") -> bool:
        """
        Delete state value at the specified path.
        Args:
            path: Dot-separated state path to delete
            notify: Whether to notify observers of the deletion
            source: Tag describing who made the change
        Returns:
            True if state was successfully deleted, False otherwise
        """
        try:
            current = self._get_nested_value(self._state, path)
            if current is _MISSING:
                return True
            self._delete_nested_value(self._state, path)
            self._record_change(path, None, current, source, StateChangeType.DELETE)
            logger.debug(f"State deleted: {path}")
            if notify:
                self._notify_path_change(path, None, current, source)
            return True
        except Exception as e:
            logger.error(f"Failed to delete state at path '{path}': {e}")
            return False

    def reset_state(self, section: str | None = None) -> None:
        """
        Reset state to defaults.
        Subscribers of every path whose value changed are notified, and the
        derived domain events of those paths are emitted.
        Args:
            section: Optional top-level section to reset (e.g., 'fitFile').
                     If None, resets the whole tree.
        """
        defaults = create_initial_state()
        previous = dict(self._state)
        if section:
            if section not in defaults:
                logger.warning(f"Unknown state section: {section}")
                return
            old_value = self._state.get(section)
            self._state[section] = defaults[section]
            self._record_change(
                section, defaults[section], old_value, "StateManager.reset_state", StateChangeType.RESET
            )
            self._notify_reset(previous, section)
            logger.info(f"Reset state section: {section}")
            return

        self._state = defaults
        self._change_history.clear()
        self._notify_reset(previous, None)
        self.emit(StateEvents.STATE_RESET, {})
        logger.info("Reset all application state")

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    def add_validator(self, path: str, validator: Validator) -> None:
        """Register a validator called as validator(new_value, old_value)."""
        self._validators[path] = validator

    def remove_validator(self, path: str) -> None:
        self._validators.pop(path, None)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, event_or_path: str, callback: Listener) -> Callable[[], None]:
        """
        Subscribe to a domain event, a "<path>-changed" event or a state path.
        Args:
            event_or_path: Event name, path, or wildcard pattern ('settings.*')
            callback: Called with the event payload
        Returns:
            Disposer that removes the subscription
        """
        return self.on(self._normalize_event(event_or_path), callback)

    def unsubscribe(self, event_or_path: str, callback: Listener) -> None:
        self.off(self._normalize_event(event_or_path), callback)

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Register a callback for an exact event name or wildcard pattern."""
        self._listeners.setdefault(event, []).append(callback)
        logger.debug(f"Added listener for '{event}': {getattr(callback, '__name__', callback)}")

        def dispose() -> None:
            self.off(event, callback)

        return dispose

    def off(self, event: str, callback: Listener) -> None:
        listeners = self._listeners.get(event)
        if not listeners or callback not in listeners:
            return
        listeners.remove(callback)
        if not listeners:
            del self._listeners[event]
        logger.debug(f"Removed listener for '{event}'")

    def emit(self, event: str, data: Any = None) -> None:
        """
        Invoke every listener of an event in registration order.

        A raising listener is logged and skipped so the others still run.
        """
        for listener in list(self._listeners.get(event, ())):
            self._safe_call(listener, event, data)

        for pattern, listeners in list(self._listeners.items()):
            if pattern == event or not self._is_pattern(pattern):
                continue
            if fnmatch.fnmatchcase(event, pattern):
                for listener in list(listeners):
                    self._safe_call(listener, event, data)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    # ------------------------------------------------------------------
    # Debugging
    # ------------------------------------------------------------------

    def get_change_history(self, limit: int = 10) -> list[dict[str, Any]]:
        """Get recent state change history for debugging."""
        return self._change_history[-limit:] if limit > 0 else list(self._change_history)

    def clear_history(self) -> None:
        self._change_history.clear()

    def get_state_summary(self) -> dict[str, Any]:
        """Get summary of current state for debugging."""
        return {
            "total_listeners": sum(len(obs) for obs in self._listeners.values()),
            "events": sorted(self._listeners.keys()),
            "validators": sorted(self._validators.keys()),
            "change_history_size": len(self._change_history),
            "state_sections": list(self._state.keys()),
            "last_changes": self.get_change_history(5),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _is_pattern(event: str) -> bool:
        return "*" in event or "?" in event

    @staticmethod
    def _normalize_event(event_or_path: str) -> str:
        if event_or_path in StateEvents.all() or event_or_path.endswith(CHANGED_SUFFIX):
            return event_or_path
        return changed_event(event_or_path)

    @staticmethod
    def _safe_call(listener: Listener, event: str, data: Any) -> None:
        try:
            listener(data)
        except Exception as e:
            logger.error(
                f"Error in listener {getattr(listener, '__name__', listener)} for '{event}': {e}"
            )

    def _record_change(
        self,
        path: str,
        new_value: Any,
        old_value: Any,
        source: str,
        change_type: StateChangeType,
    ) -> None:
        self._change_history.append(
            {
                "timestamp": datetime.now(),
                "path": path,
                "old_value": old_value,
                "new_value": new_value,
                "source": source,
                "change_type": change_type,
            }
        )
        # Keep history limited to last MAX_HISTORY_SIZE changes
        if len(self._change_history) > self.MAX_HISTORY_SIZE:
            self._change_history.pop(0)

    def _notify_path_change(self, path: str, new_value: Any, old_value: Any, source: str) -> None:
        timestamp = time.time()
        self.emit(
            changed_event(path),
            {
                "path": path,
                "new_value": new_value,
                "old_value": old_value,
                "timestamp": timestamp,
                "source": source,
            },
        )

        # Parents see their (mutated in place) value; old and new are the same object.
        segments = path.split(".")
        for index in range(len(segments) - 1, 0, -1):
            parent_path = ".".join(segments[:index])
            if not self.listener_count(changed_event(parent_path)):
                continue
            parent_value = self.get_state(parent_path)
            self.emit(
                changed_event(parent_path),
                {
                    "path": parent_path,
                    "changed_path": path,
                    "new_value": parent_value,
                    "old_value": parent_value,
                    "timestamp": timestamp,
                    "source": source,
                },
            )

        rule = DERIVED_EVENT_RULES.get(path)
        if rule is not None:
            for event, payload in rule(new_value, old_value):
                self.emit(event, payload)

    def _reset_values(self, previous: dict[str, Any], path: str) -> tuple[Any, Any] | None:
        """(new_value, old_value) of a path across a reset, or None if unchanged."""
        old_value = self._get_nested_value(previous, path)
        new_value = self._get_nested_value(self._state, path)
        old_value = None if old_value is _MISSING else old_value
        new_value = None if new_value is _MISSING else new_value
        if _same_value(old_value, new_value):
            return None
        return new_value, old_value

    def _notify_reset(self, previous: dict[str, Any], section: str | None) -> None:
        def in_scope(path: str) -> bool:
            return section is None or path == section or path.startswith(f"{section}.")

        source = "StateManager.reset_state"
        for event in list(self._listeners.keys()):
            if not event.endswith(CHANGED_SUFFIX) or self._is_pattern(event):
                continue
            path = event[: -len(CHANGED_SUFFIX)]
            if not in_scope(path):
                continue
            values = self._reset_values(previous, path)
            if values is None:
                continue
            new_value, old_value = values
            self.emit(
                event,
                {
                    "path": path,
                    "new_value": new_value,
                    "old_value": old_value,
                    "timestamp": time.time(),
                    "source": source,
                },
            )

        for path, rule in DERIVED_EVENT_RULES.items():
            if not in_scope(path):
                continue
            values = self._reset_values(previous, path)
            if values is None:
                continue
            for event, payload in rule(*values):
                self.emit(event, payload)

    def _get_nested_value(self, state_dict: dict[str, Any], path: str) -> Any:
        """Get value from nested dictionary using dot notation."""
        current: Any = state_dict
        for key in path.split("."):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return _MISSING
        return current

    def _set_nested_value(self, state_dict: dict[str, Any], path: str, value: Any) -> None:
        """Set value in nested dictionary, creating missing parents."""
        keys = path.split(".")
        current = state_dict
        # Navigate to the parent of the target key
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        # Set the final value
        current[keys[-1]] = value

    def _delete_nested_value(self, state_dict: dict[str, Any], path: str) -> None:
        """Delete value from nested dictionary using dot notation."""
        keys = path.split(".")
        current = state_dict
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                return  # Path doesn't exist
            current = current[key]
        current.pop(keys[-1], None)
