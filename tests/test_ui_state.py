"""
Unit tests for UIState in fitview/domain/ui_state.py.
"""

import pytest

from fitview.domain.app_state import AppActions, ApplicationState
from fitview.domain.ui_state import UIState, normalize_theme


@pytest.fixture
def ui_state(state_manager):
    return UIState(state_manager)


@pytest.fixture
def ui_with_actions(state_manager):
    app_state = ApplicationState(state_manager)
    return UIState(state_manager, AppActions(state_manager, app_state))


@pytest.mark.parametrize(
    "theme, expected",
    [("system", "auto"), ("dark", "dark"), ("light", "light"), ("sepia", "auto"), (None, "auto")],
)
def test_normalize_theme(theme, expected):
    assert normalize_theme(theme) == expected


def test_set_theme_without_actions(ui_state, state_manager):
    ui_state.set_theme("dark")
    assert state_manager.get_state("ui.theme") == "dark"
    ui_state.set_theme("system")
    assert ui_state.get_theme() == "auto"


def test_set_theme_through_actions(ui_with_actions, state_manager):
    assert ui_with_actions.set_theme("light") is True
    assert state_manager.get_state("ui.theme") == "light"


def test_show_tab(ui_with_actions, ui_state):
    assert ui_with_actions.show_tab("map") is True
    assert ui_with_actions.get_active_tab() == "map"
    assert ui_with_actions.show_tab("nowhere") is False
    assert ui_state.show_tab("chart") is True
    assert ui_state.get_active_tab() == "chart"


def test_toggle_sidebar(ui_state):
    ui_state.toggle_sidebar()
    assert ui_state.is_sidebar_collapsed() is True
    ui_state.toggle_sidebar()
    assert ui_state.is_sidebar_collapsed() is False
    ui_state.toggle_sidebar(True)
    ui_state.toggle_sidebar(True)
    assert ui_state.is_sidebar_collapsed() is True


def test_toggle_chart_controls_and_measurement(ui_state, state_manager):
    ui_state.toggle_chart_controls()
    ui_state.toggle_measurement_mode()
    assert state_manager.get_state("charts.controlsVisible") is True
    assert ui_state.is_measurement_mode() is True


def test_show_notification_from_string(ui_state):
    record = ui_state.show_notification("Saved")
    assert record["message"] == "Saved"
    assert record["type"] == "info"
    assert ui_state.get_last_notification() is record


def test_show_notification_from_dict(ui_state):
    record = ui_state.show_notification({"message": "Disk full", "type": "error", "duration": 5000})
    assert record["type"] == "error"
    assert record["duration"] == 5000


def test_show_notification_defaults(ui_state):
    record = ui_state.show_notification({"type": "bogus"})
    assert record["message"] == "No message provided"
    assert record["type"] == "info"


def test_show_notification_rejects_other_types(ui_state):
    assert ui_state.show_notification(42) is None
    assert ui_state.get_last_notification() is None


def test_update_window_state(ui_state, state_manager):
    assert ui_state.update_window_state({"width": 1280, "height": 800, "maximized": False}) is True
    ui_state.update_window_state({"x": 10})

    assert state_manager.get_state("ui.windowState") == {
        "width": 1280,
        "height": 800,
        "maximized": False,
        "x": 10,
    }
    assert state_manager.get_state("ui.windowSize") == {"width": 1280, "height": 800}
    assert ui_state.update_window_state("big") is False
