"""
Unit tests for LegacyScope and LegacyGlobalBridge in fitview/core/legacy_bridge.py.
Covers accessor installation and idempotence, hydration of pre-existing plain
values, reflection onto plain targets, window aliasing and frozen scopes.
"""

from fitview.core.legacy_bridge import (
    LegacyGlobalBridge,
    LegacyScope,
    legacy_globals,
    reset_legacy_globals,
)


class Box:
    """Minimal store for one value, standing in for a state path."""

    def __init__(self, value=None):
        self.value = value
        self.writes = []

    def get(self):
        return self.value

    def set(self, value):
        self.value = value
        self.writes.append(value)


def test_scope_plain_attributes(scope):
    scope.globalData = {"a": 1}
    assert scope.globalData == {"a": 1}
    assert scope.describe("globalData") == "data"
    assert scope.describe("missing") is None


def test_accessor_proxies_reads_and_writes(scope):
    box = Box(3)
    scope.define_accessor("mapMarkerCount", box.get, box.set)

    assert scope.mapMarkerCount == 3
    scope.mapMarkerCount = 7
    assert box.value == 7
    assert scope.describe("mapMarkerCount") == "accessor"


def test_install_adopts_existing_plain_value(scope, bridge):
    scope.heartRateZones = [1, 2, 3]
    box = Box([])

    assert bridge.install("heartRateZones", box.get, box.set) is True

    assert box.value == [1, 2, 3]
    assert scope.has_accessor("heartRateZones")
    assert not scope.has_plain("heartRateZones")


def test_install_is_idempotent(scope, bridge):
    box = Box(1)
    bridge.install("powerZones", box.get, box.set)
    bridge.install("powerZones", box.get, box.set)

    assert bridge.is_installed("powerZones")
    assert box.writes == []
    assert scope.powerZones == 1


def test_window_alias_is_created_and_shared(scope, bridge):
    targets = bridge.targets()
    assert targets == [scope]
    assert scope.window is scope


def test_separate_window_scope_gets_accessor_too(scope):
    window = LegacyScope("window")
    scope.window = window
    bridge = LegacyGlobalBridge(scope)
    box = Box("x")

    bridge.install("globalData", box.get, box.set)

    assert window.has_accessor("globalData")
    assert window.globalData == "x"


def test_non_scope_window_alias_is_ignored(scope):
    scope.window = "not a scope"
    bridge = LegacyGlobalBridge(scope)
    assert bridge.targets() == [scope]


def test_hydrate_adopts_first_non_null_plain_value(scope, bridge):
    box = Box()
    bridge.install("globalData", box.get, box.set)
    # Legacy code replaced the accessor with a plain value
    scope.remove_accessor("globalData")
    scope.set_plain("globalData", {"recordMesgs": []})

    adopted = bridge.hydrate("globalData", box.set)

    assert adopted == {"recordMesgs": []}
    assert box.value == {"recordMesgs": []}
    assert scope.has_accessor("globalData")


def test_hydrate_skips_none_values(scope, bridge):
    box = Box()
    scope.set_plain("globalData", None)
    assert bridge.hydrate("globalData", box.set) is None
    assert box.writes == []


def test_reflect_writes_only_plain_targets(scope):
    window = LegacyScope("window")
    scope.window = window
    bridge = LegacyGlobalBridge(scope)
    box = Box()
    scope.define_accessor("loadedFitFiles", box.get, box.set)

    bridge.reflect("loadedFitFiles", ["a.fit"])

    assert window.get_plain("loadedFitFiles") == ["a.fit"]
    assert box.writes == []
    assert not bridge.is_guarded("loadedFitFiles")


def test_frozen_scope_install_fails_softly(scope):
    scope.freeze()
    bridge = LegacyGlobalBridge(scope)
    box = Box(1)

    assert bridge.install("globalData", box.get, box.set) is False
    assert not scope.has_accessor("globalData")
    # Reflection onto a frozen scope is swallowed after logging
    bridge.reflect("globalData", 2)
    assert not scope.has_plain("globalData")


def test_uninstall_all_removes_accessors(scope, bridge):
    box = Box()
    bridge.install("heartRateZones", box.get, box.set)
    bridge.install("powerZones", box.get, box.set)

    bridge.uninstall_all()

    assert not scope.has_accessor("heartRateZones")
    assert not scope.has_accessor("powerZones")
    assert not bridge.is_installed("powerZones")


def test_reset_legacy_globals_clears_in_place():
    box = Box()
    legacy_globals.define_accessor("globalData", box.get, box.set)
    legacy_globals.set_plain("other", 1)
    legacy_globals.freeze()

    scope = reset_legacy_globals()

    assert scope is legacy_globals
    assert scope.describe("globalData") is None
    assert scope.describe("other") is None
    assert scope.frozen is False
