"""
Unit tests for ApplicationController in fitview/controllers/application_controller.py.
Covers initialization signals, settings hydration, file close coordination
and shutdown cleanup.
"""

from unittest.mock import patch

import pytest

from fitview import config
from fitview.controllers.application_controller import ApplicationController


@pytest.fixture
def controller_settings(dummy_settings):
    # Pre-migration record from an older release
    dummy_settings.store["theme"] = "light"
    return dummy_settings


@pytest.fixture
def controller(controller_settings, scope):
    controller = ApplicationController(controller_settings, scope)
    yield controller
    if controller.is_initialized():
        controller.shutdown()


def test_initialize_emits_ready(qtbot, controller):
    with qtbot.waitSignal(controller.application_ready, timeout=1000):
        assert controller.initialize_application() is True

    state = controller.get_state_manager()
    assert controller.is_initialized()
    assert state.get_state("ui.isInitialized") is True


def test_initialize_migrates_and_hydrates_settings(controller, controller_settings):
    controller.initialize_application()

    state = controller.get_state_manager()
    assert state.get_state("settings.theme") == "light"
    assert controller_settings.store[config.SETTINGS_MIGRATION_KEY] == config.SETTINGS_MIGRATION_VERSION


def test_initialize_is_idempotent(controller):
    controller.initialize_application()
    settings_state = controller.get_settings_state()
    assert controller.initialize_application() is True
    assert controller.get_settings_state() is settings_state


def test_initialize_failure_emits_error(qtbot, controller):
    with patch(
        "fitview.controllers.application_controller.SettingsStateManager.initialize",
        side_effect=RuntimeError("settings exploded"),
    ):
        with qtbot.waitSignal(controller.application_error, timeout=1000) as blocker:
            assert controller.initialize_application() is False

    assert "settings exploded" in blocker.args[0]
    assert not controller.is_initialized()


def test_legacy_globals_are_bridged(controller, scope, sample_fit_data):
    controller.initialize_application()

    scope.globalData = sample_fit_data

    assert controller.get_global_data_state().get_global_data() is sample_fit_data
    assert controller.get_fit_file_state().get_processed_data()["recordCount"] == 10


def test_closing_file_clears_per_file_state(controller, sample_fit_data):
    controller.initialize_application()
    fit_file = controller.get_fit_file_state()
    overlays = controller.get_overlay_state()
    zones = controller.get_zone_state()

    fit_file.start_file_loading("/rides/club.fit")
    fit_file.handle_file_loaded(sample_fit_data)
    overlays.set_overlay_files(["/rides/friend.fit"])
    zones.set_heart_rate_zones([{"zone": 1, "time": 30}])

    controller.get_app_actions().clear_data()

    assert fit_file.get_status() == "idle"
    assert overlays.get_overlay_files() == []
    assert zones.get_heart_rate_zones() == []


def test_shutdown_removes_accessors(controller, scope):
    controller.initialize_application()
    assert scope.has_accessor("globalData")

    controller.shutdown()

    assert not controller.is_initialized()
    for name in ("globalData", "loadedFitFiles", "mapMarkerCount", "heartRateZones", "powerZones"):
        assert not scope.has_accessor(name)


def test_ui_state_is_wired_to_actions(controller):
    controller.initialize_application()
    ui_state = controller.get_ui_state()

    assert ui_state.show_tab("map") is True
    assert ui_state.show_tab("nowhere") is False
    assert controller.get_app_state() is not None


def test_computed_values_and_middleware_are_wired(controller, sample_fit_data):
    controller.initialize_application()
    state = controller.get_state_manager()
    computed = controller.get_computed_state()

    assert computed.get_computed("isAppReady") is True
    assert [info["name"] for info in state.middleware.get_middleware_info()] == [
        "validation",
        "logging",
        "app-state-persistence",
    ]
    assert state.set_state("ui.isInitialized", "yes") is False

    controller.get_app_actions().load_file(sample_fit_data, "/rides/club.fit")
    assert computed.get_computed("hasMapData") is True


def test_shutdown_clears_computed_values_and_middleware(controller):
    controller.initialize_application()
    state = controller.get_state_manager()
    computed = controller.get_computed_state()

    controller.shutdown()

    assert computed.get_dependency_graph() == {}
    assert state.middleware.get_middleware_info() == []
