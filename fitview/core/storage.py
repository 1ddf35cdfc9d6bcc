"""
Settings Storage

String-keyed, string-valued persistent storage on top of QSettings.

Other viewer windows may write the same settings file; when a file watch is
enabled, external edits are detected by diffing against the last known
snapshot and reported through ``storage_changed``.
"""

import logging
import os
from typing import Any, Optional

from PyQt6.QtCore import QFileSystemWatcher, QObject, QSettings, pyqtSignal

from fitview import config
from fitview.exceptions import StorageUnavailableError, StorageWriteError

logger = logging.getLogger(__name__)


def create_settings() -> QSettings:
    """Open the application's QSettings store."""
    if config.SETTINGS_FILE:
        return QSettings(config.SETTINGS_FILE, QSettings.Format.IniFormat)
    return QSettings(config.APP_ORGANIZATION, config.APP_NAME)


class QSettingsStorage(QObject):
    """
    {
        "name": "QSettingsStorage",
        "version": "1.0.0",
        "description": "Key-value settings storage with external change notification.",
        "dependencies": ["PyQt6.QtCore"],
        "interface": {
            "inputs": ["key: str", "value: str"],
            "outputs": "storage_changed(str) signal for externally modified keys"
        }
    }
    """

    storage_changed = pyqtSignal(str)

    def __init__(self, settings: Optional[Any] = None, watch: bool = False, parent: QObject | None = None):
        """
        Args:
            settings: QSettings instance (or compatible double); defaults to
                      the application store
            watch: Watch the backing file for writes from other processes
            parent: Optional Qt parent
        """
        super().__init__(parent)
        self._settings = settings if settings is not None else create_settings()
        self._snapshot: dict[str, str] = {}
        self._watcher: QFileSystemWatcher | None = None
        if watch:
            self.enable_watch()

    @property
    def settings(self) -> Any:
        return self._settings

    def get_item(self, key: str) -> str | None:
        """Return the stored string for a key, or None when absent."""
        try:
            value = self._settings.value(key, None)
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to read '{key}': {e}", key=key, operation="read"
            ) from e
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def set_item(self, key: str, value: str) -> None:
        """Write one record and flush it to the backend."""
        try:
            self._settings.setValue(key, value)
            self._settings.sync()
        except Exception as e:
            raise StorageWriteError(f"Failed to write '{key}': {e}", key=key) from e
        self._check_status(key, "write")
        self._snapshot[key] = value

    def remove_item(self, key: str) -> None:
        try:
            self._settings.remove(key)
            self._settings.sync()
        except Exception as e:
            raise StorageWriteError(
                f"Failed to remove '{key}': {e}", key=key, operation="remove"
            ) from e
        self._check_status(key, "remove")
        self._snapshot.pop(key, None)

    def keys(self) -> list[str]:
        """Enumerate every stored key. O(n); keep off hot paths."""
        try:
            return list(self._settings.allKeys())
        except Exception as e:
            raise StorageUnavailableError(
                f"Failed to enumerate settings keys: {e}", operation="scan"
            ) from e

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)

    # ------------------------------------------------------------------
    # External change detection
    # ------------------------------------------------------------------

    def enable_watch(self) -> bool:
        """Watch the backing settings file. Returns False when there is none."""
        file_name = getattr(self._settings, "fileName", lambda: "")()
        if not file_name or not os.path.exists(file_name):
            logger.info("Settings backend has no watchable file; external sync disabled")
            return False

        self._snapshot = self._read_all()
        self._watcher = QFileSystemWatcher([file_name], self)
        self._watcher.fileChanged.connect(self._on_file_changed)
        logger.info(f"Watching settings file for external changes: {file_name}")
        return True

    def disable_watch(self) -> None:
        if self._watcher is not None:
            self._watcher.fileChanged.disconnect(self._on_file_changed)
            self._watcher.deleteLater()
            self._watcher = None

    def notify_external_change(self, key: str) -> None:
        """Report a key as changed by another window."""
        self.storage_changed.emit(key)

    def _on_file_changed(self, path: str) -> None:
        try:
            self._settings.sync()
            current = self._read_all()
        except Exception as e:
            logger.warning(f"Failed to re-read settings after external change: {e}")
            return

        changed = {
            key
            for key in set(current) | set(self._snapshot)
            if current.get(key) != self._snapshot.get(key)
        }
        self._snapshot = current

        # Some editors replace the file, which drops it from the watch list
        if self._watcher is not None and path not in self._watcher.files() and os.path.exists(path):
            self._watcher.addPath(path)

        for key in sorted(changed):
            logger.debug(f"External settings change: {key}")
            self.storage_changed.emit(key)

    def _read_all(self) -> dict[str, str]:
        snapshot = {}
        for key in self.keys():
            value = self.get_item(key)
            if value is not None:
                snapshot[key] = value
        return snapshot

    def _check_status(self, key: str, operation: str) -> None:
        status = getattr(self._settings, "status", None)
        if status is None:
            return
        if status() != QSettings.Status.NoError:
            raise StorageWriteError(
                f"Settings backend reported {status()} after {operation} of '{key}'",
                key=key,
                operation=operation,
            )
