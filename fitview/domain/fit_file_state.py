"""
FIT File State

File loading state machine (idle -> loading -> loaded | error) and the
derived information computed from a parsed FIT payload.

The analysis functions are pure and operate on the loosely typed dict the
FIT parser produces; every message list and field may be missing.
"""

import logging
import math
import time
from collections.abc import Callable
from typing import Any, Optional

from fitview.core.state_manager import StateManager
from fitview.domain.app_state import AppActions
from fitview.domain.ui_state import UIState

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_LOADED = "loaded"
STATUS_ERROR = "error"


def _first_message(data: Any, key: str) -> dict[str, Any] | None:
    if not isinstance(data, dict):
        return None
    messages = data.get(key)
    if not isinstance(messages, list) or not messages:
        return None
    first = messages[0]
    return first if isinstance(first, dict) else None


def _records(data: Any) -> list[Any] | None:
    if not isinstance(data, dict):
        return None
    records = data.get("recordMesgs")
    return records if isinstance(records, list) else None


def _percent(count: int, total: int) -> int:
    # Halves round up: 12.5 -> 13
    return math.floor(count * 100 / total + 0.5)


def extract_session_info(data: Any) -> dict[str, Any] | None:
    session = _first_message(data, "sessionMesgs")
    if session is None:
        return None
    return {
        "sport": session.get("sport"),
        "subSport": session.get("sub_sport"),
        "startTime": session.get("start_time"),
        "totalCalories": session.get("total_calories"),
        "totalDistance": session.get("total_distance"),
        "totalElapsedTime": session.get("total_elapsed_time"),
    }


def extract_device_info(data: Any) -> dict[str, Any] | None:
    device = _first_message(data, "device_infos")
    if device is None:
        return None
    return {
        "manufacturer": device.get("manufacturer"),
        "product": device.get("product"),
        "serialNumber": device.get("serial_number"),
        "hardwareVersion": device.get("hardware_version"),
        "softwareVersion": device.get("software_version"),
    }


def extract_activity_info(data: Any) -> dict[str, Any] | None:
    activity = _first_message(data, "activities")
    if activity is None:
        return None
    return {
        "timestamp": activity.get("timestamp"),
        "localTimestamp": activity.get("local_timestamp"),
        "numSessions": activity.get("num_sessions"),
        "totalTimerTime": activity.get("total_timer_time"),
    }


def get_record_count(data: Any) -> int:
    records = _records(data)
    return len(records) if records is not None else 0


def assess_data_quality(data: Any) -> dict[str, Any]:
    """
    Estimate how complete the record stream is.

    Completeness is the share of records carrying either GPS or heart rate,
    whichever is more common, as a whole percentage with halves rounded up.
    """
    quality: dict[str, Any] = {
        "completeness": 0,
        "hasGPS": False,
        "hasHeartRate": False,
        "hasPower": False,
        "hasCadence": False,
        "hasAltitude": False,
        "issues": [],
    }

    records = _records(data)
    if records is None:
        quality["issues"].append("No record data found")
        return quality

    total = len(records)
    if total == 0:
        quality["issues"].append("No records in file")
        return quality

    gps = heart_rate = power = cadence = altitude = 0
    for record in records:
        if not isinstance(record, dict):
            continue
        if record.get("position_lat") and record.get("position_long"):
            gps += 1
        if record.get("heart_rate"):
            heart_rate += 1
        if record.get("power"):
            power += 1
        if record.get("cadence"):
            cadence += 1
        if record.get("altitude"):
            altitude += 1

    quality.update(
        {
            "hasGPS": gps > 0,
            "hasHeartRate": heart_rate > 0,
            "hasPower": power > 0,
            "hasCadence": cadence > 0,
            "hasAltitude": altitude > 0,
            "completeness": _percent(max(gps, heart_rate, 1), total),
            "coverage": {
                "gps": _percent(gps, total),
                "heartRate": _percent(heart_rate, total),
                "power": _percent(power, total),
                "cadence": _percent(cadence, total),
                "altitude": _percent(altitude, total),
            },
        }
    )

    if quality["completeness"] < 50:
        quality["issues"].append("Low data completeness")
    if not quality["hasGPS"]:
        quality["issues"].append("No GPS data")
    if total < 10:
        quality["issues"].append("Very short activity")

    return quality


def validate_file_data(data: Any) -> dict[str, Any]:
    """Structural checks on a parsed FIT payload."""
    validation: dict[str, Any] = {"isValid": True, "errors": [], "warnings": []}

    if not data:
        validation["isValid"] = False
        validation["errors"].append("No data provided")
        return validation

    records = data.get("recordMesgs") if isinstance(data, dict) else None
    if records is None:
        validation["errors"].append("No records found in file")
        validation["isValid"] = False
    elif isinstance(records, list) and not records:
        validation["errors"].append("File contains no activity records")
        validation["isValid"] = False

    if not isinstance(data, dict) or data.get("sessionMesgs") is None:
        validation["warnings"].append("No session data found")
    if not isinstance(data, dict) or data.get("fileIdMesgs") is None:
        validation["warnings"].append("No file ID information")

    return validation


def process_file_data(data: Any) -> dict[str, Any]:
    return {
        "activityInfo": extract_activity_info(data),
        "dataQuality": assess_data_quality(data),
        "deviceInfo": extract_device_info(data),
        "recordCount": get_record_count(data),
        "sessionInfo": extract_session_info(data),
    }


class FitFileState:
    """
    {
        "name": "FitFileState",
        "version": "1.0.0",
        "description": "FIT file loading state machine with derived data processing.",
        "dependencies": ["StateManager", "AppActions", "UIState"],
        "interface": {
            "inputs": ["file_path: str", "progress: float", "file_data: dict", "error: Exception | str"],
            "outputs": "fitFile.* state paths"
        }
    }
    """

    def __init__(
        self,
        state_manager: StateManager,
        app_actions: Optional[AppActions] = None,
        ui_state: Optional[UIState] = None,
    ):
        self._state = state_manager
        self._actions = app_actions
        self._ui = ui_state
        self._disposers: list[Callable[[], None]] = [
            state_manager.subscribe("data.globalData", self._on_global_data_changed),
            state_manager.subscribe("fitFile.processedData", self._on_processed_data_changed),
        ]
        logger.info("FitFileState initialized")

    # --- State machine ---

    def start_file_loading(self, file_path: str) -> None:
        """Enter ``loading``. A load already in flight is superseded."""
        source = "FitFileState.start_file_loading"
        self._state.update(
            {
                "fitFile.status": STATUS_LOADING,
                "fitFile.isLoading": True,
                "fitFile.currentFile": file_path,
                "fitFile.loadingProgress": 0,
                "fitFile.loadingError": None,
            },
            source=source,
        )
        logger.info(f"Started loading: {file_path}")

    def update_loading_progress(self, progress: float) -> None:
        try:
            value = max(0, min(100, float(progress)))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid loading progress: {progress!r}")
            return
        self._state.set_state("fitFile.loadingProgress", value, source="FitFileState.update_loading_progress")
        logger.debug(f"Loading progress: {value}%")

    def handle_file_loaded(self, file_data: Any) -> None:
        """Enter ``loaded`` and publish the payload as the current activity."""
        source = "FitFileState.handle_file_loaded"
        self._state.update(
            {
                "fitFile.status": STATUS_LOADED,
                "fitFile.isLoading": False,
                "fitFile.loadingProgress": 100,
                "fitFile.rawData": file_data,
            },
            source=source,
        )

        current_file = self._state.get_state("fitFile.currentFile")
        if self._actions is not None:
            self._actions.load_file(file_data, current_file)
        else:
            self._state.set_state("data.globalData", file_data, source=source)

        self._notify("FIT file loaded successfully", "success")
        logger.info("File loaded successfully")

    def handle_file_loading_error(self, error: BaseException | str | None) -> None:
        """Enter ``error`` and keep the message for display."""
        message = str(error) if error else "Unknown error"
        self._state.update(
            {
                "fitFile.status": STATUS_ERROR,
                "fitFile.isLoading": False,
                "fitFile.loadingError": message,
            },
            source="FitFileState.handle_file_loading_error",
        )
        self._notify(f"Failed to load FIT file: {message}", "error")
        logger.error(f"File loading failed: {message}")

    def clear_file_state(self) -> None:
        """Return to ``idle`` from any state."""
        self._state.update(
            {
                "fitFile.status": STATUS_IDLE,
                "fitFile.isLoading": False,
                "fitFile.currentFile": None,
                "fitFile.loadingProgress": 0,
                "fitFile.rawData": None,
                "fitFile.processedData": None,
                "fitFile.validation": None,
                "fitFile.metrics": None,
                "fitFile.loadingError": None,
                "fitFile.processingError": None,
            },
            source="FitFileState.clear_file_state",
        )
        logger.info("File state cleared")

    # --- Derived data ---

    def process_file_data(self, data: Any) -> dict[str, Any] | None:
        try:
            processed = process_file_data(data)
        except Exception as e:
            logger.error(f"Error processing data: {e}")
            self._state.set_state(
                "fitFile.processingError", str(e) or "Unknown error", source="FitFileState.process_file_data"
            )
            return None
        self._state.set_state("fitFile.processedData", processed, source="FitFileState.process_file_data")
        return processed

    def validate_file_data(self, data: Any) -> dict[str, Any]:
        validation = validate_file_data(data)
        self._state.set_state("fitFile.validation", validation, source="FitFileState.validate_file_data")

        if not validation["isValid"]:
            self._notify(f"File validation failed: {', '.join(validation['errors'])}", "error")
        elif validation["warnings"]:
            self._notify(f"File loaded with warnings: {', '.join(validation['warnings'])}", "warning")
        return validation

    def update_file_metrics(self, processed: dict[str, Any] | None) -> None:
        if not processed:
            return
        quality = processed.get("dataQuality") or {}
        self._state.update_state(
            "fitFile.metrics",
            {
                "dataQualityScore": quality.get("completeness", 0),
                "hasDevice": bool(processed.get("deviceInfo")),
                "hasSession": bool(processed.get("sessionInfo")),
                "recordCount": processed.get("recordCount", 0),
                "lastUpdated": time.time(),
            },
            source="FitFileState.update_file_metrics",
        )

    # --- Selectors ---

    def get_status(self) -> str:
        return self._state.get_state("fitFile.status", STATUS_IDLE)

    def get_current_file(self) -> str | None:
        return self._state.get_state("fitFile.currentFile")

    def is_loading(self) -> bool:
        return bool(self._state.get_state("fitFile.isLoading"))

    def get_loading_progress(self) -> float:
        return self._state.get_state("fitFile.loadingProgress") or 0

    def get_loading_error(self) -> str | None:
        return self._state.get_state("fitFile.loadingError")

    def get_processing_error(self) -> str | None:
        return self._state.get_state("fitFile.processingError")

    def get_processed_data(self) -> dict[str, Any] | None:
        return self._state.get_state("fitFile.processedData")

    def get_validation(self) -> dict[str, Any] | None:
        return self._state.get_state("fitFile.validation")

    def get_metrics(self) -> dict[str, Any] | None:
        return self._state.get_state("fitFile.metrics")

    def get_data_quality(self) -> dict[str, Any] | None:
        processed = self.get_processed_data()
        return processed.get("dataQuality") if processed else None

    def has_gps(self) -> bool:
        return self._quality_flag("hasGPS")

    def has_heart_rate(self) -> bool:
        return self._quality_flag("hasHeartRate")

    def has_power(self) -> bool:
        return self._quality_flag("hasPower")

    def is_file_valid(self) -> bool:
        validation = self.get_validation()
        return bool(validation and validation.get("isValid"))

    def dispose(self) -> None:
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()

    # --- Internals ---

    def _quality_flag(self, flag: str) -> bool:
        quality = self.get_data_quality()
        return bool(quality and quality.get(flag))

    def _notify(self, message: str, level: str) -> None:
        if self._ui is not None:
            self._ui.show_notification({"message": message, "type": level})

    def _on_global_data_changed(self, event: dict[str, Any]) -> None:
        data = event.get("new_value")
        if data:
            self.process_file_data(data)
            self.validate_file_data(data)

    def _on_processed_data_changed(self, event: dict[str, Any]) -> None:
        self.update_file_metrics(event.get("new_value"))
