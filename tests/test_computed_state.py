"""
Unit tests for ComputedStateManager in fitview/core/computed_state.py.
Covers lazy recomputation on dependency changes, error handling, disposal
and the viewer's common computed values.
"""

import logging

import pytest

from fitview.core.computed_state import ComputedStateManager, initialize_common_computed_values
from fitview.core.events import changed_event


@pytest.fixture
def computed(state_manager):
    manager = ComputedStateManager(state_manager)
    yield manager
    manager.cleanup()


def counting(fn):
    """Wrap a compute function so tests can see how often it ran."""
    def wrapper(state):
        wrapper.runs += 1
        return fn(state)

    wrapper.runs = 0
    return wrapper


def test_initial_value_is_computed_on_registration(computed, state_manager):
    state_manager.set_state("data.recordCount", 3)
    compute = counting(lambda state: state["data"]["recordCount"] * 2)

    computed.add_computed("doubled", compute, ["data.recordCount"])

    assert compute.runs == 1
    assert computed.get_computed("doubled") == 6
    assert compute.runs == 1


def test_dependency_change_invalidates_and_next_read_recomputes(computed, state_manager):
    compute = counting(lambda state: state["ui"]["activeTab"].upper())
    computed.add_computed("tab", compute, ["ui.activeTab"])

    state_manager.set_state("ui.activeTab", "map")
    assert computed.get_all_computed()["tab"]["is_valid"] is False
    assert compute.runs == 1

    assert computed.get_computed("tab") == "MAP"
    assert compute.runs == 2


def test_unrelated_change_keeps_cached_value(computed, state_manager):
    compute = counting(lambda state: state["ui"]["activeTab"])
    computed.add_computed("tab", compute, ["ui.activeTab"])

    state_manager.set_state("ui.theme", "dark")
    computed.get_computed("tab")

    assert compute.runs == 1


def test_child_write_invalidates_parent_dependency(computed, state_manager):
    state_manager.set_state("data.globalData", {"recordMesgs": []})
    computed.add_computed(
        "records",
        lambda state: len(state["data"]["globalData"]["recordMesgs"]),
        ["data.globalData"],
    )

    state_manager.set_state("data.globalData.recordMesgs", [{}, {}])

    assert computed.get_computed("records") == 2


def test_compute_error_is_recorded_and_retried(computed, state_manager):
    computed.add_computed("fragile", lambda state: 1 / state["data"]["recordCount"], ["data.recordCount"])

    entry = computed.get_all_computed()["fragile"]
    assert entry["is_valid"] is False
    assert isinstance(entry["error"], ZeroDivisionError)
    assert computed.get_computed("fragile") is None

    state_manager.set_state("data.recordCount", 4)
    assert computed.get_computed("fragile") == 0.25


def test_dispose_unsubscribes(computed, state_manager):
    dispose = computed.add_computed("tab", lambda state: state["ui"]["activeTab"], ["ui.activeTab"])
    assert state_manager.listener_count(changed_event("ui.activeTab")) == 1

    dispose()

    assert state_manager.listener_count(changed_event("ui.activeTab")) == 0
    assert computed.has_computed("tab") is False
    assert computed.get_computed("tab", "gone") == "gone"
    assert computed.remove_computed("tab") is False


def test_replacing_a_key_drops_old_subscriptions(computed, state_manager):
    computed.add_computed("value", lambda state: 1, ["ui.activeTab"])
    computed.add_computed("value", lambda state: 2, ["ui.theme"])

    assert computed.get_computed("value") == 2
    assert computed.get_dependency_graph() == {"value": ["ui.theme"]}
    assert state_manager.listener_count(changed_event("ui.activeTab")) == 0


def test_recompute_all(computed, state_manager):
    compute = counting(lambda state: state["ui"]["theme"])
    computed.add_computed("theme", compute, [])
    state_manager.set_state("ui.theme", "light")

    assert computed.get_computed("theme") == "auto"
    computed.recompute_all()

    assert computed.get_computed("theme") == "light"
    assert compute.runs == 2


def test_self_reference_is_reported(computed, caplog):
    def compute(state):
        return computed.get_computed("loop")

    computed.add_computed("loop", compute, [])

    errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert any("Circular dependency detected for computed value 'loop'" in record.getMessage() for record in errors)


def test_common_values_follow_loaded_file(computed, state_manager, sample_fit_data):
    initialize_common_computed_values(computed)
    assert computed.get_computed("isFileLoaded") is False
    assert computed.get_computed("summaryData") is None

    state_manager.set_state("data.globalData", sample_fit_data)

    assert computed.get_computed("isFileLoaded") is True
    assert computed.get_computed("hasChartData") is True
    assert computed.get_computed("hasMapData") is True
    assert computed.get_computed("summaryData")["totalDistance"] == 42000.0


def test_common_values_track_readiness_and_ui(computed, state_manager):
    initialize_common_computed_values(computed)
    assert computed.get_computed("isAppReady") is False

    state_manager.set_state("ui.isInitialized", True)
    state_manager.set_state("charts.controlsVisible", True)

    assert computed.get_computed("isAppReady") is True
    assert computed.get_computed("uiStateSummary")["controlsVisible"] is True

    state_manager.set_state("file.isOpening", True)
    assert computed.get_computed("isAppReady") is False


def test_initializing_common_values_twice_keeps_entries(computed):
    initialize_common_computed_values(computed)
    graph = computed.get_dependency_graph()
    initialize_common_computed_values(computed)
    assert computed.get_dependency_graph() == graph
