"""
Settings State

Persists user settings to QSettings according to SETTINGS_SCHEMA and mirrors
them into the ``settings`` branch of the state tree.

Single-key reads and writes of object categories touch exactly one storage
record. Chart code calls them for every field during bulk operations, so
they must never enumerate storage keys.
"""

import json
import logging
import math
import time
from collections.abc import Callable
from typing import Any

from fitview import config
from fitview.core.state_manager import StateManager
from fitview.core.storage import QSettingsStorage
from fitview.domain.settings_schema import (
    KIND_BOOLEAN,
    KIND_NUMBER,
    SETTINGS_SCHEMA,
    SettingSchemaEntry,
    get_schema_entry,
    matches_known_prefix,
)
from fitview.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

CHART_FIELD_VISIBILITY_KEY = "fieldVisibility"
LEGACY_CHART_FIELD_VISIBILITY_PREFIX = "chartjs_field_"
VISIBILITY_VALUES = ("visible", "hidden")


def _decode(raw: str) -> Any:
    """JSON-decode a stored record, falling back to the raw string."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def _encode_field(value: Any) -> str:
    # Strings stay unquoted so older records keep comparing equal
    return value if isinstance(value, str) else json.dumps(value)


def _encode_scalar(entry: SettingSchemaEntry, value: Any) -> str:
    if entry.kind == KIND_BOOLEAN:
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return json.dumps(value)


def normalize_chart_settings(settings: Any) -> dict[str, Any]:
    """Copy of chart settings that always carries a fieldVisibility map."""
    safe = settings if isinstance(settings, dict) else {}
    visibility = safe.get(CHART_FIELD_VISIBILITY_KEY)
    return {
        **safe,
        CHART_FIELD_VISIBILITY_KEY: dict(visibility) if isinstance(visibility, dict) else {},
    }


class SettingsStateManager:
    """
    {
        "name": "SettingsStateManager",
        "version": "1.0.0",
        "description": "Schema-validated settings persistence mirrored into the state tree.",
        "dependencies": ["StateManager", "QSettingsStorage", "SETTINGS_SCHEMA"],
        "interface": {
            "inputs": ["category: str", "value: Any", "key: str | None"],
            "outputs": "settings.* state paths and persisted storage records"
        }
    }
    """

    def __init__(
        self,
        state_manager: StateManager,
        storage: QSettingsStorage,
        migration_version: str = config.SETTINGS_MIGRATION_VERSION,
    ):
        self._state = state_manager
        self._storage = storage
        self.migration_version = migration_version
        self._initialized = False
        self._sync_connected = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Migrate stored settings, hydrate ``settings.*`` and start listening
        for external storage changes. Calling it again is a no-op.
        """
        if self._initialized:
            return True

        logger.info("Initializing settings state manager...")
        self.migrate_settings()

        settings = {category: self.get_setting(category) for category in SETTINGS_SCHEMA}
        settings.update(
            {
                "isLoading": False,
                "lastModified": time.time(),
                "migrationVersion": self.migration_version,
            }
        )
        self._state.set_state("settings", settings, source="SettingsStateManager.initialize")

        self._setup_storage_sync()
        self._initialized = True
        logger.info("Settings state manager initialized successfully")
        return True

    def cleanup(self) -> None:
        if self._sync_connected:
            self._storage.storage_changed.disconnect(self._on_storage_changed)
            self._sync_connected = False
        self._initialized = False
        logger.info("Settings state manager cleaned up")

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def get_setting(self, category: str, key: str | None = None) -> Any:
        """
        Read a setting from storage.

        Args:
            category: Schema category ('theme', 'chart', ...)
            key: Sub-key of an object category; reads exactly one record

        Returns:
            The stored value, coerced by kind, or the schema default.
            None for an unknown category.
        """
        entry = get_schema_entry(category)
        if entry is None:
            logger.warning(f"Unknown setting category: {category}")
            return None

        try:
            if entry.is_object:
                if key is not None:
                    raw = self._storage.get_item(entry.storage_key(key))
                    return entry.default_for(key) if raw is None else _decode(raw)
                return self._read_category(entry)

            raw = self._storage.get_item(entry.key)
            if raw is None:
                return entry.default_for()
            return self._coerce(entry, raw)
        except StorageError:
            return entry.default_for(key if entry.is_object else None)

    def set_setting(self, category: str, value: Any, key: str | None = None) -> bool:
        """
        Validate and persist a setting, then mirror it into ``settings.<category>``.

        Returns:
            True on success; False for unknown categories, invalid values or
            storage failures
        """
        entry = get_schema_entry(category)
        if entry is None:
            logger.warning(f"Unknown setting category: {category}")
            return False

        try:
            self._validate(category, entry, value, key)
        except ValidationError:
            return False

        source = "SettingsStateManager.set_setting"
        path = f"settings.{category}"
        try:
            if entry.is_object and key is not None:
                self._storage.set_item(entry.storage_key(key), _encode_field(value))
                current = self._state.get_state(path)
                # Copy so the store sees a new object and emits a change
                updated = dict(current) if isinstance(current, dict) else {}
                updated[key] = value
                self._state.set_state(path, updated, source=source)
            elif entry.is_object:
                for sub_key, item in value.items():
                    self._storage.set_item(entry.storage_key(sub_key), _encode_field(item))
                self._state.set_state(path, {**entry.default_for(), **value}, source=source)
            else:
                self._storage.set_item(entry.key, _encode_scalar(entry, value))
                self._state.set_state(path, value, source=source)
        except StorageError:
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Setting {category} is not serializable: {e}")
            return False

        self._touch(source)
        return True

    def reset_settings(self, category: str | None = None, silent: bool = False) -> bool:
        """
        Remove stored records and restore schema defaults.

        Args:
            category: Category to reset; None resets every category
            silent: Skip the user notification
        """
        if category is not None:
            if get_schema_entry(category) is None:
                logger.warning(f"Unknown setting category: {category}")
                return False
            success = self._reset_category(category)
        else:
            results = [self._reset_category(name) for name in SETTINGS_SCHEMA]
            success = all(results)

        self._touch("SettingsStateManager.reset_settings")
        if not silent:
            if success:
                message = f"{category} settings reset to defaults" if category else "All settings reset to defaults"
                self._notify(message, "success")
            else:
                self._notify("Failed to reset settings", "error")
        return success

    def export_settings(self) -> dict[str, Any] | None:
        """Every category in one versioned envelope."""
        try:
            return {
                "settings": {category: self.get_setting(category) for category in SETTINGS_SCHEMA},
                "version": self.migration_version,
                "timestamp": time.time(),
            }
        except Exception as e:
            logger.error(f"Error exporting settings: {e}")
            return None

    def import_settings(self, payload: Any) -> bool:
        """
        Apply an exported envelope. Unknown categories are ignored.

        Returns:
            True only if every recognized category validated and was written
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("settings"), dict):
            logger.warning("Ignoring settings import without a settings mapping")
            return False

        all_ok = True
        for category, value in payload["settings"].items():
            if category not in SETTINGS_SCHEMA:
                logger.debug(f"Skipping unknown settings category on import: {category}")
                continue
            if not self.set_setting(category, value):
                all_ok = False

        if all_ok:
            self._notify("Settings imported successfully", "success")
        return all_ok

    def migrate_settings(self) -> bool:
        """
        Bring stored settings up to the current migration version.

        Returns:
            True when a migration ran, False when already current or failed
        """
        try:
            current = self._storage.get_item(config.SETTINGS_MIGRATION_KEY)
            if current == self.migration_version:
                logger.debug("Settings already at current version")
                return False

            logger.info(f"Migrating settings to version {self.migration_version}")
            if current is None:
                self._migrate_from_legacy()
            self._storage.set_item(config.SETTINGS_MIGRATION_KEY, self.migration_version)
        except StorageError:
            logger.error("Settings migration aborted")
            return False

        self._state.set_state(
            "settings.migrationVersion", self.migration_version, source="SettingsStateManager.migrate_settings"
        )
        logger.info("Settings migration completed")
        return True

    def sync_from_storage(self) -> None:
        """Re-read every category; the last writer wins per category."""
        source = "SettingsStateManager.sync_from_storage"
        for category in SETTINGS_SCHEMA:
            self._state.set_state(f"settings.{category}", self.get_setting(category), source=source)
        self._touch(source)

    # ------------------------------------------------------------------
    # Chart helpers
    # ------------------------------------------------------------------

    def get_chart_setting(self, key: str) -> Any:
        return self.get_setting("chart", key)

    def set_chart_setting(self, key: str, value: Any) -> bool:
        return self.set_setting("chart", value, key)

    def remove_chart_setting(self, key: str) -> bool:
        """Delete one chart record and drop it from ``settings.chart``."""
        if not isinstance(key, str) or not key.strip():
            logger.warning(f"remove_chart_setting called with invalid key: {key!r}")
            return False

        source = "SettingsStateManager.remove_chart_setting"
        try:
            self._storage.remove_item(SETTINGS_SCHEMA["chart"].storage_key(key))
        except StorageError:
            return False

        current = self._state.get_state("settings.chart")
        if isinstance(current, dict) and key in current:
            updated = dict(current)
            del updated[key]
            self._state.set_state("settings.chart", updated, source=source)
        self._touch(source)
        return True

    def get_chart_settings(self) -> dict[str, Any]:
        """All chart settings. Enumerates storage; keep off hot paths."""
        return normalize_chart_settings(self.get_setting("chart"))

    def update_chart_settings(self, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Write several chart settings, merging any fieldVisibility map into
        the stored one.

        Returns:
            The merged chart settings
        """
        current = self.get_chart_settings()
        updates = updates or {}
        visibility = current[CHART_FIELD_VISIBILITY_KEY]
        if isinstance(updates.get(CHART_FIELD_VISIBILITY_KEY), dict):
            visibility = {**visibility, **updates[CHART_FIELD_VISIBILITY_KEY]}

        for key, value in updates.items():
            if key == CHART_FIELD_VISIBILITY_KEY and isinstance(value, dict):
                self.set_chart_setting(CHART_FIELD_VISIBILITY_KEY, visibility)
                continue
            self.set_chart_setting(key, value)

        return {**current, **updates, CHART_FIELD_VISIBILITY_KEY: visibility}

    def get_chart_field_visibility(self, field_key: str, default: str = "visible") -> str:
        """
        Visibility of one chart field.

        Older versions stored ``chartjs_field_<name>`` records; one found
        here is moved into the fieldVisibility map.
        """
        visibility = self._field_visibility_map()
        current = visibility.get(field_key)
        if current in VISIBILITY_VALUES:
            return current

        legacy_key = f"{LEGACY_CHART_FIELD_VISIBILITY_PREFIX}{field_key}"
        try:
            legacy_value = self._storage.get_item(legacy_key)
        except StorageError:
            return default
        if legacy_value in VISIBILITY_VALUES:
            self.set_chart_setting(CHART_FIELD_VISIBILITY_KEY, {**visibility, field_key: legacy_value})
            self._remove_quietly(legacy_key)
            return legacy_value

        return default

    def set_chart_field_visibility(self, field_key: str, visibility: str) -> dict[str, str]:
        updated = {**self._field_visibility_map(), field_key: visibility}
        self.set_chart_setting(CHART_FIELD_VISIBILITY_KEY, updated)
        self._remove_quietly(f"{LEGACY_CHART_FIELD_VISIBILITY_PREFIX}{field_key}")
        return updated

    def reset_chart_settings(self, silent: bool = False) -> bool:
        return self.reset_settings("chart", silent=silent)

    def subscribe_to_chart_settings(
        self, callback: Callable[[dict[str, Any], dict[str, Any]], None]
    ) -> Callable[[], None]:
        """Call back with (new, previous) normalized chart settings on change."""

        def on_chart_change(event: dict[str, Any]) -> None:
            callback(
                normalize_chart_settings(event.get("new_value")),
                normalize_chart_settings(event.get("old_value")),
            )

        return self._state.subscribe("settings.chart", on_chart_change)

    # ------------------------------------------------------------------
    # Scalar helpers
    # ------------------------------------------------------------------

    def get_theme_setting(self) -> str:
        return self.get_setting("theme")

    def set_theme_setting(self, theme: str) -> bool:
        return self.set_setting("theme", theme)

    def get_map_theme_setting(self) -> bool:
        return self.get_setting("mapTheme")

    def set_map_theme_setting(self, inverted: bool) -> bool:
        return self.set_setting("mapTheme", inverted)

    def get_power_estimation_setting(self, key: str | None = None) -> Any:
        return self.get_setting("powerEstimation", key)

    def set_power_estimation_setting(self, key: str, value: Any) -> bool:
        return self.set_setting("powerEstimation", value, key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate(self, category: str, entry: SettingSchemaEntry, value: Any, key: str | None) -> None:
        if entry.is_valid(value, key):
            return
        field = f"{category}.{key}" if key is not None else category
        raise ValidationError(
            f"Invalid value for setting {field}: {value!r}",
            field=field,
            value=value,
        )

    def _read_category(self, entry: SettingSchemaEntry) -> dict[str, Any]:
        settings = {}
        for storage_key in self._storage.keys():
            if not storage_key.startswith(entry.key):
                continue
            raw = self._storage.get_item(storage_key)
            settings[storage_key[len(entry.key):]] = None if raw is None else _decode(raw)
        return {**entry.default_for(), **settings}

    @staticmethod
    def _coerce(entry: SettingSchemaEntry, raw: str) -> Any:
        if entry.kind == KIND_BOOLEAN:
            return raw == "true"
        if entry.kind == KIND_NUMBER:
            try:
                number = float(raw)
            except ValueError:
                return entry.default_for()
            return number if math.isfinite(number) else entry.default_for()
        return raw

    def _reset_category(self, category: str) -> bool:
        entry = SETTINGS_SCHEMA[category]
        try:
            if entry.is_object:
                for storage_key in self._storage.keys():
                    if storage_key.startswith(entry.key):
                        self._storage.remove_item(storage_key)
            else:
                self._storage.remove_item(entry.key)
        except StorageError:
            return False

        self._state.set_state(
            f"settings.{category}", entry.default_for(), source="SettingsStateManager.reset_settings"
        )
        return True

    def _migrate_from_legacy(self) -> None:
        logger.info("Performing legacy settings migration...")
        old_theme = self._storage.get_item("theme")
        if old_theme and self._storage.get_item(SETTINGS_SCHEMA["theme"].key) is None:
            self._storage.set_item(SETTINGS_SCHEMA["theme"].key, old_theme)
            self._storage.remove_item("theme")

    def _field_visibility_map(self) -> dict[str, str]:
        stored = self.get_chart_setting(CHART_FIELD_VISIBILITY_KEY)
        return dict(stored) if isinstance(stored, dict) else {}

    def _remove_quietly(self, storage_key: str) -> None:
        try:
            self._storage.remove_item(storage_key)
        except StorageError:
            logger.warning(f"Could not remove legacy record {storage_key}")

    def _touch(self, source: str) -> None:
        self._state.set_state("settings.lastModified", time.time(), source=source)

    def _notify(self, message: str, level: str) -> None:
        self._state.set_state(
            "ui.lastNotification",
            {"message": message, "type": level, "timestamp": time.time()},
            source="SettingsStateManager",
        )

    def _setup_storage_sync(self) -> None:
        if not self._sync_connected:
            self._storage.storage_changed.connect(self._on_storage_changed)
            self._sync_connected = True

    def _on_storage_changed(self, key: str) -> None:
        if key and matches_known_prefix(key):
            logger.info(f"External settings change detected: {key}")
            self.sync_from_storage()
