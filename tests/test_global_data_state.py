"""
Unit tests for GlobalDataState in fitview/domain/global_data_state.py.
"""

from fitview.core.events import StateEvents
from fitview.domain.global_data_state import GlobalDataState


def test_set_and_get(state_manager, bridge, scope, sample_fit_data):
    data_state = GlobalDataState(state_manager, bridge)
    loaded = []
    state_manager.on(StateEvents.DATA_LOADED, loaded.append)

    assert data_state.set_global_data(sample_fit_data) is True

    assert data_state.get_global_data() is sample_fit_data
    assert scope.globalData is sample_fit_data
    assert loaded[0]["data"] is sample_fit_data


def test_legacy_global_assignment(state_manager, bridge, scope):
    GlobalDataState(state_manager, bridge)
    scope.globalData = {"recordMesgs": [{}]}
    assert state_manager.get_state("data.globalData") == {"recordMesgs": [{}]}


def test_clear(state_manager, bridge, sample_fit_data):
    data_state = GlobalDataState(state_manager, bridge)
    data_state.set_global_data(sample_fit_data)
    data_state.clear_global_data()
    assert data_state.get_global_data() is None
    assert state_manager.get_state("data.globalData") is None


def test_store_write_visible_through_global(state_manager, bridge, scope):
    GlobalDataState(state_manager, bridge)
    state_manager.set_state("data.globalData", {"recordMesgs": []})
    assert scope.globalData == {"recordMesgs": []}


def test_without_bridge(state_manager):
    data_state = GlobalDataState(state_manager)
    data_state.set_global_data({"a": 1})
    assert data_state.get_global_data() == {"a": 1}


def test_each_write_direction_stores_once(state_manager, bridge, scope):
    GlobalDataState(state_manager, bridge)

    def store_writes():
        return sum(1 for change in state_manager.get_change_history(0) if change["path"] == "data.globalData")

    scope.globalData = {"recordMesgs": [{"speed": 1.0}]}
    assert store_writes() == 1

    replacement = {"recordMesgs": []}
    state_manager.set_state("data.globalData", replacement)
    assert store_writes() == 2
    assert scope.globalData is replacement
