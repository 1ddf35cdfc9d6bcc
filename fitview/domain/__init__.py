"""
Domain State Modules
Typed facades over the slices of the state tree.
"""

from .app_state import AppActions, ApplicationState
from .fit_file_state import FitFileState
from .global_data_state import GlobalDataState
from .overlay_state import OverlayState
from .settings_schema import SETTINGS_SCHEMA, SettingSchemaEntry
from .settings_state import SettingsStateManager
from .ui_state import UIState
from .zone_state import ZoneState

__all__ = [
    "ApplicationState",
    "AppActions",
    "FitFileState",
    "GlobalDataState",
    "OverlayState",
    "SETTINGS_SCHEMA",
    "SettingSchemaEntry",
    "SettingsStateManager",
    "UIState",
    "ZoneState",
]
