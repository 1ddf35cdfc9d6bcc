"""
Legacy Global Bridge

Older viewer modules read and write bare module-level globals such as
``globalData`` or ``heartRateZones``. ``LegacyScope`` is the attribute
namespace those modules share, and ``LegacyGlobalBridge`` installs accessors
on it that proxy every read and write to the StateManager.

The store is always authoritative. If an accessor cannot be installed, or a
value cannot be reflected, the failure is logged and the legacy copy simply
goes stale.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fitview.exceptions import BridgeError

logger = logging.getLogger(__name__)

_MISSING = object()

Getter = Callable[[], Any]
Setter = Callable[[Any], None]


@dataclass
class LegacyAccessor:
    """Accessor pair installed on a scope for one legacy name."""

    name: str
    getter: Getter
    setter: Setter


class LegacyScope:
    """
    Namespace of legacy globals.

    Plain values live in the instance ``__dict__`` like any attribute.
    Installed accessors take over attribute reads and writes for their name.
    """

    # Bookkeeping stays out of __dict__, which holds only legacy values
    __slots__ = ("_label", "_accessors", "_frozen", "__dict__")

    def __init__(self, label: str = "host"):
        object.__setattr__(self, "_label", label)
        object.__setattr__(self, "_accessors", {})
        object.__setattr__(self, "_frozen", False)

    def __getattr__(self, name: str) -> Any:
        # Only reached when no plain attribute exists
        accessors = object.__getattribute__(self, "_accessors")
        accessor = accessors.get(name)
        if accessor is None:
            raise AttributeError(name)
        return accessor.getter()

    def __setattr__(self, name: str, value: Any) -> None:
        accessor = self._accessors.get(name)
        if accessor is not None:
            accessor.setter(value)
            return
        self.set_plain(name, value)

    def __delattr__(self, name: str) -> None:
        if name in self._accessors:
            self.remove_accessor(name)
            return
        object.__delattr__(self, name)

    def __repr__(self) -> str:
        return f"LegacyScope({self._label!r})"

    @property
    def label(self) -> str:
        return self._label

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self, frozen: bool = True) -> None:
        """Reject any further attribute definitions (sealed host objects)."""
        object.__setattr__(self, "_frozen", frozen)

    def define_accessor(self, name: str, getter: Getter, setter: Setter) -> None:
        if self._frozen:
            raise BridgeError(
                f"Cannot define accessor '{name}' on frozen scope",
                name=name,
                scope=self._label,
            )
        self.__dict__.pop(name, None)
        self._accessors[name] = LegacyAccessor(name, getter, setter)

    def remove_accessor(self, name: str) -> None:
        self._accessors.pop(name, None)

    def has_accessor(self, name: str) -> bool:
        return name in self._accessors

    def has_plain(self, name: str) -> bool:
        return name in self.__dict__

    def get_plain(self, name: str, default: Any = None) -> Any:
        return self.__dict__.get(name, default)

    def set_plain(self, name: str, value: Any) -> None:
        if self._frozen:
            raise BridgeError(
                f"Cannot assign '{name}' on frozen scope",
                name=name,
                scope=self._label,
            )
        self.__dict__[name] = value

    def describe(self, name: str) -> str | None:
        """Return 'accessor', 'data' or None for an attribute name."""
        if name in self._accessors:
            return "accessor"
        if name in self.__dict__:
            return "data"
        return None


# Process-wide legacy scope shared by every bridge.
legacy_globals = LegacyScope("host")


def reset_legacy_globals() -> LegacyScope:
    """Drop every value and accessor from the process-wide scope (tests, teardown)."""
    legacy_globals.__dict__.clear()
    legacy_globals._accessors.clear()
    legacy_globals.freeze(False)
    return legacy_globals


class LegacyGlobalBridge:
    """
    Keeps legacy globals and the state store in sync.

    Domain modules call ``install`` once per legacy name with their typed
    getter and a setter that commits to the store without reflecting back.
    After store-driven writes they call ``reflect`` so plain targets still
    see the current value.
    """

    def __init__(self, scope: LegacyScope | None = None):
        self.scope = scope if scope is not None else legacy_globals
        # Reentrancy guard keyed "<name>:<scope label>"
        self._guards: set[str] = set()
        self._installed: dict[str, LegacyAccessor] = {}

    def targets(self) -> list[LegacyScope]:
        """The scope and its window alias, creating the alias when absent."""
        window = self.scope.get_plain("window", _MISSING)
        if window is _MISSING or window is None:
            if self.scope.frozen:
                return [self.scope]
            self.scope.set_plain("window", self.scope)
            window = self.scope

        if not isinstance(window, LegacyScope):
            logger.warning(f"Ignoring non-scope window alias of type {type(window).__name__}")
            return [self.scope]
        if window is self.scope:
            return [self.scope]
        return [self.scope, window]

    def install(self, name: str, getter: Getter, setter: Setter) -> bool:
        """
        Install accessors for a legacy name on the scope and its window alias.

        A plain value already present on a target is adopted into the store
        through the setter.

        Returns:
            True when every target now carries the accessor
        """
        accessor = LegacyAccessor(name, getter, setter)
        installed = True
        for target in self.targets():
            if target.has_accessor(name):
                continue
            try:
                existing = target.get_plain(name, _MISSING)
                target.define_accessor(name, getter, setter)
                if existing is not _MISSING:
                    setter(existing)
            except BridgeError:
                installed = False
            except Exception as e:
                logger.error(f"Failed to install legacy accessor '{name}' on {target.label}: {e}")
                installed = False

        self._installed[name] = accessor
        logger.debug(f"Legacy accessor installed: {name}")
        return installed

    def uninstall(self, name: str) -> None:
        """Remove accessors for a name from every target."""
        for target in self.targets():
            target.remove_accessor(name)
        self._installed.pop(name, None)

    def uninstall_all(self) -> None:
        for name in list(self._installed):
            self.uninstall(name)

    def is_installed(self, name: str) -> bool:
        return name in self._installed

    def hydrate(self, name: str, commit: Setter) -> Any:
        """
        Adopt a plain value found on any target into the store.

        The first non-None plain value wins; the target is then converted to
        an accessor so later reads go through the store.

        Returns:
            The adopted value, or None when there was nothing to adopt
        """
        for target in self.targets():
            if target.has_accessor(name) or not target.has_plain(name):
                continue
            value = target.get_plain(name)
            if value is None:
                continue
            commit(value)
            accessor = self._installed.get(name)
            if accessor is not None:
                try:
                    target.define_accessor(name, accessor.getter, accessor.setter)
                except BridgeError:
                    # Already logged by BridgeError
                    pass
            logger.debug(f"Hydrated legacy global '{name}' from {target.label}")
            return value
        return None

    def reflect(self, name: str, value: Any) -> None:
        """Write a value onto every target that has no accessor for the name."""
        for target in self.targets():
            guard_key = f"{name}:{target.label}"
            if guard_key in self._guards:
                continue
            self._guards.add(guard_key)
            try:
                if not target.has_accessor(name):
                    target.set_plain(name, value)
            except BridgeError:
                # Already logged by BridgeError
                pass
            except Exception as e:
                logger.warning(f"Failed to reflect '{name}' onto {target.label}: {e}")
            finally:
                self._guards.discard(guard_key)

    def is_guarded(self, name: str) -> bool:
        return any(key.startswith(f"{name}:") for key in self._guards)
