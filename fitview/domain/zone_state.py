"""
Zone State

Heart-rate and power zone data computed from the loaded activity, bridged to
the ``heartRateZones`` and ``powerZones`` legacy globals, plus the colors
users assign to each zone.

Zone colors are chart settings named ``<type>_zone_<n>_color`` (n is
1-based) and are read and written one key at a time.
"""

import logging
from typing import Any, Optional

from fitview import config
from fitview.core.legacy_bridge import LegacyGlobalBridge
from fitview.core.state_manager import StateManager
from fitview.domain.bridged_path import BridgedPath
from fitview.domain.settings_state import SettingsStateManager

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "ZoneState"
FALLBACK_ZONE_COLOR = "#808080"
ZONE_TYPES = ("hr", "power")


def _normalize_zones(zones: Any) -> list[Any]:
    return list(zones) if isinstance(zones, (list, tuple)) else []


def _has_zones(zones: Any) -> bool:
    return isinstance(zones, list) and len(zones) > 0


def default_zone_colors(zone_type: str) -> list[str]:
    if zone_type == "power":
        return list(config.DEFAULT_POWER_ZONE_COLORS)
    return list(config.DEFAULT_HR_ZONE_COLORS)


def default_zone_color(zone_type: str, zone_index: int) -> str:
    colors = default_zone_colors(zone_type)
    if not colors:
        return FALLBACK_ZONE_COLOR
    return colors[zone_index % len(colors)]


def zone_color_key(zone_type: str, zone_index: int) -> str:
    """Chart setting key for a 0-based zone index."""
    return f"{zone_type}_zone_{zone_index + 1}_color"


def get_zone_type_from_field(field: str) -> str | None:
    if "hr_zone" in field or "heart-rate" in field:
        return "hr"
    if "power_zone" in field or "power-zone" in field:
        return "power"
    return None


class ZoneState:
    """
    {
        "name": "ZoneState",
        "version": "1.0.0",
        "description": "Zone data with legacy global bridging and per-zone color settings.",
        "dependencies": ["StateManager", "LegacyGlobalBridge", "SettingsStateManager"],
        "interface": {
            "inputs": ["zones: list", "zone_type: str", "zone_index: int", "color: str"],
            "outputs": "zones.* state paths and chartjs_*_zone_*_color settings"
        }
    }
    """

    def __init__(
        self,
        state_manager: StateManager,
        bridge: Optional[LegacyGlobalBridge] = None,
        settings: Optional[SettingsStateManager] = None,
    ):
        self._settings = settings
        self._heart_rate = BridgedPath(
            state_manager,
            "heartRateZones",
            "zones.heartRate",
            owner=DEFAULT_SOURCE,
            bridge=bridge,
            normalize=_normalize_zones,
            is_present=_has_zones,
            initial=[],
        )
        self._power = BridgedPath(
            state_manager,
            "powerZones",
            "zones.power",
            owner=DEFAULT_SOURCE,
            bridge=bridge,
            normalize=_normalize_zones,
            is_present=_has_zones,
            initial=[],
        )
        self._heart_rate.install()
        self._power.install()

    # --- Zone data ---

    def get_heart_rate_zones(self) -> list[Any]:
        return self._heart_rate.get() or []

    def set_heart_rate_zones(self, zones: list[Any], source: str = f"{DEFAULT_SOURCE}.set_heart_rate_zones") -> bool:
        return self._heart_rate.commit(zones, source)

    def get_power_zones(self) -> list[Any]:
        return self._power.get() or []

    def set_power_zones(self, zones: list[Any], source: str = f"{DEFAULT_SOURCE}.set_power_zones") -> bool:
        return self._power.commit(zones, source)

    def clear_zone_data(self, source: str = f"{DEFAULT_SOURCE}.clear_zone_data") -> None:
        self._heart_rate.commit([], f"{source}.heartRate")
        self._power.commit([], f"{source}.power")

    # --- Zone colors ---

    def get_zone_color(self, zone_type: str, zone_index: int) -> str:
        """Saved color for a 0-based zone index, or the palette default."""
        if self._settings is not None:
            saved = self._settings.get_chart_setting(zone_color_key(zone_type, zone_index))
            if isinstance(saved, str) and saved:
                return saved
        return default_zone_color(zone_type, zone_index)

    def set_zone_color(self, zone_type: str, zone_index: int, color: str) -> bool:
        if self._settings is None:
            logger.warning("Zone colors cannot be saved without a settings manager")
            return False
        return self._settings.set_chart_setting(zone_color_key(zone_type, zone_index), color)

    def get_zone_colors(self, zone_type: str, zone_count: int) -> list[str]:
        return [self.get_zone_color(zone_type, index) for index in range(zone_count)]

    def reset_zone_colors(self, zone_type: str, zone_count: int) -> bool:
        """Store the palette default for each of the first zone_count zones."""
        results = [
            self.set_zone_color(zone_type, index, default_zone_color(zone_type, index))
            for index in range(zone_count)
        ]
        return all(results)

    def apply_zone_colors(self, zone_data: Any, zone_type: str) -> Any:
        """Copy zone dicts with a ``color`` matching their 1-based ``zone`` number."""
        if not isinstance(zone_data, list):
            return zone_data

        colored = []
        for index, zone in enumerate(zone_data):
            zone_number = zone.get("zone") if isinstance(zone, dict) else None
            zone_index = zone_number - 1 if isinstance(zone_number, int) and zone_number > 0 else index
            colored.append({**(zone if isinstance(zone, dict) else {}), "color": self.get_zone_color(zone_type, zone_index)})
        return colored

    def dispose(self) -> None:
        self._heart_rate.dispose()
        self._power.dispose()
