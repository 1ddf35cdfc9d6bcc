"""Shared fixtures for the FIT viewer state core test suite."""

import os

# Qt must not try to reach a display on CI machines
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from fitview.core.legacy_bridge import LegacyGlobalBridge, LegacyScope, reset_legacy_globals
from fitview.core.state_manager import StateManager
from fitview.core.storage import QSettingsStorage


class DummySettings:
    """In-memory stand-in for QSettings that counts key enumerations."""

    def __init__(self, initial=None):
        self.store = dict(initial or {})
        self.sync_count = 0
        self.all_keys_calls = 0
        self.fail_reads = False
        self.fail_writes = False

    def value(self, key, default=None):
        if self.fail_reads:
            raise OSError("settings backend unavailable")
        return self.store.get(key, default)

    def setValue(self, key, value):
        if self.fail_writes:
            raise OSError("disk full")
        self.store[key] = value

    def remove(self, key):
        self.store.pop(key, None)

    def contains(self, key):
        return key in self.store

    def sync(self):
        self.sync_count += 1

    def allKeys(self):
        self.all_keys_calls += 1
        return list(self.store.keys())

    def fileName(self):
        return ""

    def organizationName(self):
        return "FitFileViewerTests"

    def applicationName(self):
        return "FitFileViewer"


@pytest.fixture(autouse=True)
def qt_application(qapp):
    # QObject-based storage needs a running Qt application
    return qapp


@pytest.fixture(autouse=True)
def fresh_state():
    """Every test starts from a new store and an empty legacy scope."""
    StateManager.reset_instance()
    reset_legacy_globals()
    yield
    StateManager.reset_instance()
    reset_legacy_globals()


@pytest.fixture
def state_manager():
    return StateManager()


@pytest.fixture
def dummy_settings():
    return DummySettings()


@pytest.fixture
def storage(dummy_settings):
    return QSettingsStorage(dummy_settings)


@pytest.fixture
def scope():
    return LegacyScope("test-host")


@pytest.fixture
def bridge(scope):
    return LegacyGlobalBridge(scope)


@pytest.fixture
def sample_fit_data():
    """Ten records, four with GPS and none with heart rate."""
    records = []
    for index in range(10):
        record = {"timestamp": 1000 + index, "speed": 5.0}
        if index < 4:
            record["position_lat"] = 512345678 + index
            record["position_long"] = -1234567 - index
        records.append(record)
    return {
        "recordMesgs": records,
        "sessionMesgs": [{"sport": "cycling", "sub_sport": "road", "total_distance": 42000.0}],
        "fileIdMesgs": [{"manufacturer": "garmin"}],
        "device_infos": [{"manufacturer": "garmin", "product": "edge_530", "serial_number": 1234}],
        "activities": [{"timestamp": 1009, "num_sessions": 1}],
    }
