"""
Settings Schema

Declarative description of every persisted setting category: where it lives
in storage, its default, how it is validated and what kind of value it is.

Object categories are stored one record per sub-key under ``key + sub_key``
so that single-key reads never enumerate storage. Scalar categories are
stored as one record under ``key``.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fitview import config

Validator = Callable[[Any], bool]

KIND_STRING = "string"
KIND_BOOLEAN = "boolean"
KIND_NUMBER = "number"
KIND_OBJECT = "object"


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _non_negative(value: Any) -> bool:
    return _is_number(value) and value >= 0


def _one_of(*choices: str) -> Validator:
    return lambda value: value in choices


@dataclass(frozen=True)
class SettingSchemaEntry:
    """One setting category."""

    key: str
    default: Any
    validator: Validator
    kind: str
    field_validators: dict[str, Validator] = field(default_factory=dict)

    @property
    def is_object(self) -> bool:
        return self.kind == KIND_OBJECT

    def default_for(self, sub_key: str | None = None) -> Any:
        """Fresh copy of the default, or of one sub-key's default."""
        if sub_key is None:
            return dict(self.default) if isinstance(self.default, dict) else self.default
        if isinstance(self.default, dict):
            return self.default.get(sub_key)
        return None

    def storage_key(self, sub_key: str | None = None) -> str:
        return f"{self.key}{sub_key}" if sub_key is not None else self.key

    def is_valid(self, value: Any, sub_key: str | None = None) -> bool:
        """
        Validate a whole-category value, or one sub-key of an object category.

        Sub-keys without a dedicated validator accept any value.
        """
        if self.is_object and sub_key is not None:
            validator = self.field_validators.get(sub_key)
            return validator(value) if validator is not None else True

        if not self.validator(value):
            return False
        if self.is_object:
            return all(
                self.field_validators[name](item)
                for name, item in value.items()
                if name in self.field_validators
            )
        return True


SETTINGS_SCHEMA: dict[str, SettingSchemaEntry] = {
    "theme": SettingSchemaEntry(
        key="ffv-theme",
        default="dark",
        validator=_one_of("light", "dark", "auto"),
        kind=KIND_STRING,
    ),
    "mapTheme": SettingSchemaEntry(
        key="ffv-map-theme-inverted",
        default=True,
        validator=_is_bool,
        kind=KIND_BOOLEAN,
    ),
    "chart": SettingSchemaEntry(
        key="chartjs_",
        default={},
        validator=lambda value: isinstance(value, dict),
        kind=KIND_OBJECT,
        field_validators={
            "fieldVisibility": lambda value: isinstance(value, dict)
            and all(item in ("visible", "hidden") for item in value.values()),
        },
    ),
    "ui": SettingSchemaEntry(
        key="ui_",
        default={
            "showAdvancedControls": False,
            "compactMode": False,
            "animationsEnabled": True,
        },
        validator=lambda value: isinstance(value, dict),
        kind=KIND_OBJECT,
        field_validators={
            "showAdvancedControls": _is_bool,
            "compactMode": _is_bool,
            "animationsEnabled": _is_bool,
        },
    ),
    "export": SettingSchemaEntry(
        key="export_",
        default={
            "format": "png",
            "quality": 0.9,
            "theme": "auto",
            "includeWatermark": False,
        },
        validator=lambda value: isinstance(value, dict),
        kind=KIND_OBJECT,
        field_validators={
            "format": _one_of("png", "jpeg", "webp", "svg"),
            "quality": lambda value: _is_number(value) and 0 < value <= 1,
            "theme": _one_of("light", "dark", "auto"),
            "includeWatermark": _is_bool,
        },
    ),
    "units": SettingSchemaEntry(
        key="units_",
        default={
            "distance": "metric",
            "temperature": "celsius",
            "time": "24h",
        },
        validator=lambda value: isinstance(value, dict),
        kind=KIND_OBJECT,
        field_validators={
            "distance": _one_of("metric", "imperial"),
            "temperature": _one_of("celsius", "fahrenheit"),
            "time": _one_of("12h", "24h"),
        },
    ),
    "powerEstimation": SettingSchemaEntry(
        key="powerEst_",
        default=dict(config.POWER_ESTIMATION_DEFAULTS),
        validator=lambda value: isinstance(value, dict),
        kind=KIND_OBJECT,
        field_validators={
            "enabled": _is_bool,
            "riderWeightKg": _non_negative,
            "bikeWeightKg": _non_negative,
            "crr": _non_negative,
            "cda": _non_negative,
            "drivetrainEfficiency": lambda value: _is_number(value) and 0 < value <= 1,
            "windSpeedMps": _is_number,
            "gradeWindowMeters": _non_negative,
            "maxPowerW": _non_negative,
        },
    ),
}


def get_schema_entry(category: str) -> SettingSchemaEntry | None:
    return SETTINGS_SCHEMA.get(category)


def matches_known_prefix(storage_key: str) -> bool:
    """True when a storage key belongs to any setting category."""
    return any(storage_key.startswith(entry.key) for entry in SETTINGS_SCHEMA.values())
