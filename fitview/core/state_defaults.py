"""
Default State Tree

Fixed default shape of every domain slice. A fresh copy is produced for each
store so that callers never share mutable defaults.
"""

from typing import Any

from fitview import config


def data_defaults() -> dict[str, Any]:
    return {
        "globalData": None,
        "isLoaded": False,
        "lastModified": None,
        "recordCount": 0,
    }


def file_defaults() -> dict[str, Any]:
    return {
        "path": None,
        "name": None,
        "isOpening": False,
        "lastOpened": None,
        "size": 0,
    }


def ui_defaults() -> dict[str, Any]:
    return {
        "activeTab": "summary",
        "theme": "auto",
        "isInitialized": False,
        "windowSize": {"width": 0, "height": 0},
        "sidebarCollapsed": False,
        "measurementMode": False,
        "lastNotification": None,
        "windowState": None,
    }


def fit_file_defaults() -> dict[str, Any]:
    return {
        "status": "idle",
        "isLoading": False,
        "currentFile": None,
        "loadingProgress": 0,
        "loadingError": None,
        "rawData": None,
        "processedData": None,
        "validation": None,
        "metrics": None,
        "processingError": None,
    }


def overlay_defaults() -> dict[str, Any]:
    return {
        "loadedFitFiles": [],
        "mapMarkerCount": config.DEFAULT_MAP_MARKER_COUNT,
        "mapMarkerCountExplicit": False,
        "highlightedOverlayIndex": None,
    }


def create_initial_state() -> dict[str, Any]:
    """Build the complete default state tree."""
    return {
        "data": data_defaults(),
        "file": file_defaults(),
        "ui": ui_defaults(),
        "charts": {
            "controlsVisible": False,
            "isRendered": False,
            "lastRenderTime": None,
            "visibleFields": [],
        },
        "map": {
            "isRendered": False,
            "selectedLap": None,
            "center": None,
            "zoom": 13,
        },
        "tables": {"isRendered": False},
        "performance": {
            "enableMonitoring": True,
            "lastLoadTime": None,
            "renderTimes": {},
        },
        "errors": {"current": [], "history": [], "lastError": None},
        "fitFile": fit_file_defaults(),
        "overlays": overlay_defaults(),
        "zones": {"heartRate": [], "power": []},
        "settings": {},
    }
