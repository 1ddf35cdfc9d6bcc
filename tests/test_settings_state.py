"""
Unit tests for SettingsStateManager in fitview/domain/settings_state.py.
Covers schema defaults, scalar and keyed writes, the single-record fast path,
validation, reset, import/export, migration and external sync.
"""

import json

import pytest

from fitview import config
from fitview.domain.settings_schema import SETTINGS_SCHEMA, matches_known_prefix
from fitview.domain.settings_state import SettingsStateManager, normalize_chart_settings


@pytest.fixture
def settings_manager(state_manager, storage):
    return SettingsStateManager(state_manager, storage)


def test_defaults_without_stored_values(settings_manager):
    assert settings_manager.get_setting("theme") == "dark"
    assert settings_manager.get_setting("mapTheme") is True
    assert settings_manager.get_setting("units") == {
        "distance": "metric",
        "temperature": "celsius",
        "time": "24h",
    }
    assert settings_manager.get_setting("units", "distance") == "metric"


def test_unknown_category(settings_manager):
    assert settings_manager.get_setting("colour") is None
    assert settings_manager.set_setting("colour", "red") is False


def test_scalar_write_persists_and_mirrors(settings_manager, state_manager, dummy_settings):
    assert settings_manager.set_setting("theme", "light") is True
    assert dummy_settings.store["ffv-theme"] == "light"
    assert state_manager.get_state("settings.theme") == "light"
    assert settings_manager.get_setting("theme") == "light"


def test_boolean_scalar_round_trip(settings_manager, dummy_settings):
    settings_manager.set_map_theme_setting(False)
    assert dummy_settings.store["ffv-map-theme-inverted"] == "false"
    assert settings_manager.get_map_theme_setting() is False


def test_invalid_scalar_is_rejected(settings_manager, dummy_settings, state_manager):
    assert settings_manager.set_setting("theme", "neon") is False
    assert "ffv-theme" not in dummy_settings.store
    assert state_manager.get_state("settings.theme") is None


def test_keyed_write_uses_one_record(settings_manager, dummy_settings, state_manager):
    assert settings_manager.set_setting("export", 0.5, "quality") is True
    assert dummy_settings.store["export_quality"] == "0.5"
    assert state_manager.get_state("settings.export") == {"quality": 0.5}


def test_keyed_write_validates_field(settings_manager, dummy_settings):
    assert settings_manager.set_setting("export", 2, "quality") is False
    assert settings_manager.set_setting("units", "parsecs", "distance") is False
    assert dummy_settings.store == {}


def test_keyed_read_never_enumerates_storage(settings_manager, dummy_settings):
    settings_manager.set_chart_setting("theme", "dark")
    settings_manager.set_chart_setting("animation", "smooth")
    dummy_settings.all_keys_calls = 0

    for _ in range(25):
        settings_manager.get_chart_setting("theme")
        settings_manager.get_chart_setting("missing")
        settings_manager.get_chart_field_visibility("heart_rate")

    assert dummy_settings.all_keys_calls == 0


def test_string_fields_stored_raw_and_others_as_json(settings_manager, dummy_settings):
    settings_manager.set_chart_setting("theme", "dark")
    settings_manager.set_chart_setting("maxpoints", 1000)
    settings_manager.set_chart_setting("fieldVisibility", {"speed": "hidden"})

    assert dummy_settings.store["chartjs_theme"] == "dark"
    assert dummy_settings.store["chartjs_maxpoints"] == "1000"
    assert json.loads(dummy_settings.store["chartjs_fieldVisibility"]) == {"speed": "hidden"}
    assert settings_manager.get_chart_setting("maxpoints") == 1000


def test_whole_category_read_merges_defaults(settings_manager, dummy_settings):
    dummy_settings.store["units_distance"] = "imperial"
    dummy_settings.store["ffv-theme"] = "light"

    assert settings_manager.get_setting("units") == {
        "distance": "imperial",
        "temperature": "celsius",
        "time": "24h",
    }


def test_whole_category_write_validates_fields(settings_manager):
    assert settings_manager.set_setting("units", {"distance": "imperial"}) is True
    assert settings_manager.set_setting("units", {"distance": "furlongs"}) is False
    assert settings_manager.set_setting("units", "imperial") is False


def test_field_visibility_set_and_get(settings_manager):
    updated = settings_manager.set_chart_field_visibility("speed", "hidden")
    assert updated == {"speed": "hidden"}
    assert settings_manager.get_chart_field_visibility("speed") == "hidden"
    assert settings_manager.get_chart_field_visibility("power") == "visible"


def test_legacy_field_visibility_is_migrated(settings_manager, dummy_settings):
    dummy_settings.store["chartjs_field_cadence"] = "hidden"

    assert settings_manager.get_chart_field_visibility("cadence") == "hidden"

    assert "chartjs_field_cadence" not in dummy_settings.store
    assert settings_manager.get_chart_setting("fieldVisibility") == {"cadence": "hidden"}


def test_update_chart_settings_merges_visibility(settings_manager):
    settings_manager.set_chart_field_visibility("speed", "hidden")

    merged = settings_manager.update_chart_settings(
        {"fieldVisibility": {"power": "visible"}, "theme": "light"}
    )

    assert merged["fieldVisibility"] == {"speed": "hidden", "power": "visible"}
    assert merged["theme"] == "light"
    assert settings_manager.get_chart_settings()["fieldVisibility"] == {"speed": "hidden", "power": "visible"}


def test_remove_chart_setting(settings_manager, dummy_settings, state_manager):
    settings_manager.set_chart_setting("theme", "dark")
    assert settings_manager.remove_chart_setting("theme") is True
    assert "chartjs_theme" not in dummy_settings.store
    assert "theme" not in state_manager.get_state("settings.chart")
    assert settings_manager.remove_chart_setting("  ") is False


def test_subscribe_to_chart_settings(settings_manager):
    calls = []
    dispose = settings_manager.subscribe_to_chart_settings(lambda new, old: calls.append((new, old)))

    settings_manager.set_chart_setting("theme", "dark")
    dispose()
    settings_manager.set_chart_setting("theme", "light")

    assert len(calls) == 1
    new, old = calls[0]
    assert new == {"theme": "dark", "fieldVisibility": {}}
    assert old == {"fieldVisibility": {}}


def test_normalize_chart_settings_handles_garbage():
    assert normalize_chart_settings(None) == {"fieldVisibility": {}}
    assert normalize_chart_settings({"fieldVisibility": "bad"}) == {"fieldVisibility": {}}


def test_reset_single_category(settings_manager, dummy_settings, state_manager):
    settings_manager.set_setting("units", "imperial", "distance")
    settings_manager.set_setting("theme", "light")

    assert settings_manager.reset_settings("units") is True

    assert "units_distance" not in dummy_settings.store
    assert dummy_settings.store["ffv-theme"] == "light"
    assert state_manager.get_state("settings.units") == SETTINGS_SCHEMA["units"].default
    notification = state_manager.get_state("ui.lastNotification")
    assert notification["type"] == "success"


def test_reset_all_silent(settings_manager, dummy_settings, state_manager):
    settings_manager.set_setting("theme", "light")
    settings_manager.set_chart_setting("theme", "dark")

    assert settings_manager.reset_settings(silent=True) is True

    assert dummy_settings.store == {}
    assert state_manager.get_state("settings.theme") == "dark"
    assert state_manager.get_state("ui.lastNotification") is None


def test_export_import_round_trip(state_manager, storage, dummy_settings):
    source = SettingsStateManager(state_manager, storage)
    source.set_setting("theme", "light")
    source.set_setting("units", "imperial", "distance")
    exported = source.export_settings()

    assert exported["version"] == config.SETTINGS_MIGRATION_VERSION
    dummy_settings.store.clear()

    assert source.import_settings(exported) is True
    assert source.get_setting("theme") == "light"
    assert source.get_setting("units", "distance") == "imperial"


def test_import_ignores_unknown_and_reports_invalid(settings_manager):
    assert settings_manager.import_settings({"settings": {"bogus": 1}}) is True
    assert settings_manager.import_settings({"settings": {"theme": "neon"}}) is False
    assert settings_manager.import_settings({"nothing": True}) is False


def test_migration_runs_once(settings_manager, dummy_settings, state_manager):
    dummy_settings.store["theme"] = "light"

    assert settings_manager.migrate_settings() is True
    assert dummy_settings.store["ffv-theme"] == "light"
    assert "theme" not in dummy_settings.store
    assert dummy_settings.store[config.SETTINGS_MIGRATION_KEY] == config.SETTINGS_MIGRATION_VERSION
    assert state_manager.get_state("settings.migrationVersion") == config.SETTINGS_MIGRATION_VERSION

    assert settings_manager.migrate_settings() is False


def test_initialize_migrates_before_hydrating(settings_manager, dummy_settings, state_manager):
    dummy_settings.store["theme"] = "light"

    assert settings_manager.initialize() is True

    settings = state_manager.get_state("settings")
    assert settings["theme"] == "light"
    assert settings["migrationVersion"] == config.SETTINGS_MIGRATION_VERSION
    assert settings["isLoading"] is False
    assert settings_manager.is_initialized
    # Second call is a no-op
    assert settings_manager.initialize() is True
    settings_manager.cleanup()
    assert not settings_manager.is_initialized


def test_storage_failure_falls_back_to_defaults(settings_manager, dummy_settings):
    dummy_settings.fail_reads = True
    assert settings_manager.get_setting("theme") == "dark"
    assert settings_manager.get_setting("units", "time") == "24h"


def test_storage_write_failure_returns_false(settings_manager, dummy_settings, state_manager):
    dummy_settings.fail_writes = True
    assert settings_manager.set_setting("theme", "light") is False
    assert state_manager.get_state("settings.theme") is None


def test_external_change_triggers_sync(settings_manager, storage, dummy_settings, state_manager):
    settings_manager.initialize()
    dummy_settings.store["ffv-theme"] = "light"

    storage.notify_external_change("ffv-theme")

    assert state_manager.get_state("settings.theme") == "light"


def test_unrelated_external_change_is_ignored(settings_manager, storage, dummy_settings, state_manager):
    settings_manager.initialize()
    dummy_settings.store["ffv-theme"] = "light"

    storage.notify_external_change("some-other-app-key")

    assert state_manager.get_state("settings.theme") == "dark"


def test_known_prefix_matching():
    assert matches_known_prefix("chartjs_theme")
    assert matches_known_prefix("powerEst_cda")
    assert not matches_known_prefix("recent_files")


def test_power_estimation_helpers(settings_manager):
    assert settings_manager.get_power_estimation_setting("cda") == 0.32
    assert settings_manager.set_power_estimation_setting("cda", 0.28) is True
    assert settings_manager.get_power_estimation_setting("cda") == 0.28
    assert settings_manager.set_power_estimation_setting("drivetrainEfficiency", 1.5) is False
