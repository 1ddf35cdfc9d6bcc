"""
Application Configuration

This file contains the configuration settings for the FIT File Viewer state core.
It follows a modular approach to keep settings organized and easy to manage.
Values that operators may need to change are read from the environment
(optionally via a .env file).
"""

import os

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

# --- Application Metadata ---
# QSettings uses the organization/application pair to locate the settings store.
APP_NAME = "FitFileViewer"
APP_ORGANIZATION = os.getenv("FFV_ORGANIZATION", "FitFileViewer")
APP_VERSION = "0.1.0"

# --- Settings Storage ---
# When FFV_SETTINGS_FILE is set the settings live in that INI file instead of
# the platform default location (registry / plist / ~/.config).
SETTINGS_FILE = os.getenv("FFV_SETTINGS_FILE") or None
SETTINGS_MIGRATION_VERSION = "1.0.0"
SETTINGS_MIGRATION_KEY = "settings_migration_version"

# --- Logging ---
LOG_LEVEL = os.getenv("FFV_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("FFV_LOG_FILE") or None
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# --- State Store ---
MAX_HISTORY_SIZE = 50

# Paths mirrored to storage under STATE_STORAGE_PREFIX + path.
STATE_STORAGE_PREFIX = "ffv_state_"
PERSISTENT_STATE_KEYS = [
    "ui.theme",
    "ui.activeTab",
    "charts.controlsVisible",
    "performance.enableMonitoring",
]
# Paths that must never reach storage.
VOLATILE_STATE_KEYS = [
    "data.globalData",
    "file.isOpening",
    "performance.metrics",
    "errors.current",
]
MAX_ERROR_HISTORY = 100

# --- Overlays ---
DEFAULT_MAP_MARKER_COUNT = 50

# --- Zones ---
# Fallback palette when no custom zone color has been saved.
DEFAULT_HR_ZONE_COLORS = [
    "#808080",
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
]
DEFAULT_POWER_ZONE_COLORS = [
    "#808080",
    "#3b82f6",
    "#10b981",
    "#facc15",
    "#f59e0b",
    "#ef4444",
    "#a855f7",
]

# --- Power Estimation ---
POWER_ESTIMATION_DEFAULTS = {
    "enabled": False,
    "riderWeightKg": 75,
    "bikeWeightKg": 10,
    "crr": 0.004,
    "cda": 0.32,
    "drivetrainEfficiency": 0.97,
    "windSpeedMps": 0,
    "gradeWindowMeters": 35,
    "maxPowerW": 2000,
}
