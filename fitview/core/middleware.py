"""
State Middleware
Pluggable hooks around StateManager writes.

Each middleware is an object exposing any of the phase methods below. Phase
handlers receive a context dict (path, value, old_value, source) and may:
- return a dict, which replaces the context for later middleware
- return False, which halts the chain (a halted before_set rejects the write)
- return None, which continues with the (possibly mutated) context
An exception in a handler is logged and passed to every on_error handler;
the chain then continues.
"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any, Optional

logger = logging.getLogger(__name__)

BEFORE_SET = "before_set"
AFTER_SET = "after_set"
ON_ERROR = "on_error"
MIDDLEWARE_PHASES = (BEFORE_SET, AFTER_SET, ON_ERROR)

DEFAULT_PRIORITY = 100
SLOW_HANDLER_MS = 5.0

MiddlewareContext = dict[str, Any]


class MiddlewareManager:
    """
    {
        "name": "MiddlewareManager",
        "version": "1.0.0",
        "description": "Priority-ordered middleware chain for state writes.",
        "dependencies": [],
        "interface": {
            "inputs": ["name: str", "middleware: object", "priority: int"],
            "outputs": "Context dict after every enabled handler ran, or None when halted"
        }
    }
    """

    def __init__(self):
        self._middleware: dict[str, dict[str, Any]] = {}
        self._execution_order: list[str] = []
        self.enabled = True

    def register(self, name: str, middleware: Any, priority: int = DEFAULT_PRIORITY) -> None:
        """
        Register (or replace) a middleware.

        Args:
            name: Unique middleware name
            middleware: Object with any of before_set, after_set, on_error
            priority: Lower runs earlier
        """
        if name in self._middleware:
            logger.warning(f"Middleware '{name}' already registered, replacing")

        handlers = {}
        for phase in MIDDLEWARE_PHASES:
            handler = getattr(middleware, phase, None)
            if callable(handler):
                handlers[phase] = handler
        self._middleware[name] = {
            "name": name,
            "priority": priority,
            "enabled": True,
            "handlers": handlers,
            "metadata": dict(getattr(middleware, "metadata", {}) or {}),
        }
        self._update_execution_order()
        logger.debug(f"Registered middleware '{name}' with priority {priority}")

    def unregister(self, name: str) -> bool:
        if self._middleware.pop(name, None) is None:
            logger.warning(f"Middleware '{name}' not found")
            return False
        self._update_execution_order()
        logger.debug(f"Unregistered middleware '{name}'")
        return True

    def set_enabled(self, name: str, enabled: bool) -> bool:
        entry = self._middleware.get(name)
        if entry is None:
            logger.warning(f"Middleware '{name}' not found")
            return False
        entry["enabled"] = bool(enabled)
        logger.debug(f"Middleware '{name}' {'enabled' if enabled else 'disabled'}")
        return True

    def set_global_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)
        logger.info(f"Middleware system {'enabled' if enabled else 'disabled'}")

    def execute(self, phase: str, context: MiddlewareContext) -> Optional[MiddlewareContext]:
        """
        Run one phase over every enabled middleware in priority order.

        Returns:
            The final context, or None if a handler returned False
        """
        if not self.enabled or not self._middleware:
            return context

        current = dict(context)
        for name in self._execution_order:
            entry = self._middleware[name]
            handler = entry["handlers"].get(phase)
            if not entry["enabled"] or handler is None:
                continue

            started = time.perf_counter()
            try:
                result = handler(current)
            except Exception as e:
                logger.error(f"Error in middleware '{name}' phase '{phase}': {e}")
                self._execute_error_handlers(e, {"middleware": name, "phase": phase, "context": current})
                continue

            duration_ms = (time.perf_counter() - started) * 1000
            if duration_ms > SLOW_HANDLER_MS:
                logger.warning(f"Slow middleware '{name}.{phase}': {duration_ms:.2f}ms")

            if result is False:
                logger.debug(f"Execution of '{phase}' stopped by middleware '{name}'")
                return None
            if isinstance(result, dict):
                current = result
        return current

    def get_middleware_info(self) -> list[dict[str, Any]]:
        return [
            {
                "name": name,
                "priority": self._middleware[name]["priority"],
                "enabled": self._middleware[name]["enabled"],
                "phases": list(self._middleware[name]["handlers"]),
                "metadata": self._middleware[name]["metadata"],
            }
            for name in self._execution_order
        ]

    def clear(self) -> None:
        self._middleware.clear()
        self._execution_order = []
        logger.debug("All middleware cleared")

    def _execute_error_handlers(self, error: Exception, error_context: dict[str, Any]) -> None:
        for name in self._execution_order:
            entry = self._middleware[name]
            handler = entry["handlers"].get(ON_ERROR)
            if not entry["enabled"] or handler is None:
                continue
            try:
                handler(error, error_context)
            except Exception as e:
                logger.error(f"Error handler of middleware '{name}' failed: {e}")

    def _update_execution_order(self) -> None:
        # sorted() is stable, so equal priorities keep registration order
        self._execution_order = sorted(self._middleware, key=lambda name: self._middleware[name]["priority"])


# ----------------------------------------------------------------------
# Built-in middleware
# ----------------------------------------------------------------------


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ValidationMiddleware:
    """Rejects writes that break a per-path type rule."""

    metadata = {"description": "Rejects ill-typed writes to known paths", "version": "1.0.0"}

    RULES: dict[str, tuple[Callable[[Any], bool], str]] = {
        "ui.isInitialized": (lambda value: isinstance(value, bool), "must be a boolean"),
        "performance.lastLoadTime": (
            lambda value: value is None or _is_positive_number(value),
            "must be a positive number or None",
        ),
        "performance.enableMonitoring": (lambda value: isinstance(value, bool), "must be a boolean"),
    }

    def before_set(self, context: MiddlewareContext) -> Any:
        rule = self.RULES.get(context["path"])
        if rule is None:
            return context
        check, message = rule
        if not check(context["value"]):
            logger.error(f"{context['path']} {message}, got {context['value']!r}")
            return False
        return context

    def on_error(self, error: Exception, error_context: dict[str, Any]) -> None:
        logger.error(
            f"State validation error in '{error_context['middleware']}.{error_context['phase']}': {error}"
        )


class LoggingMiddleware:
    """Logs every write not tagged as internal."""

    metadata = {"description": "Logs state writes for debugging", "version": "1.0.0"}

    def before_set(self, context: MiddlewareContext) -> MiddlewareContext:
        if context.get("source") != "internal" and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Setting '{context['path']}' to {context['value']!r} ({context.get('source')})")
        return context

    def after_set(self, context: MiddlewareContext) -> MiddlewareContext:
        if context.get("source") != "internal":
            logger.debug(f"Set '{context['path']}' completed")
        return context

    def on_error(self, error: Exception, error_context: dict[str, Any]) -> None:
        logger.error(f"State middleware error: {error}")


class PersistenceMiddleware:
    """
    Calls persist(key) after any write touching an allow-listed path.

    A write touches a key when it targets the key itself, a child of it, or
    a parent that contains it.
    """

    metadata = {"description": "Persists allow-listed state paths", "version": "1.0.0"}

    def __init__(self, persist: Callable[[str], None], keys: Iterable[str]):
        self._persist = persist
        self._keys = list(keys)

    def affected_keys(self, path: str) -> list[str]:
        return [
            key
            for key in self._keys
            if path == key or path.startswith(f"{key}.") or key.startswith(f"{path}.")
        ]

    def after_set(self, context: MiddlewareContext) -> MiddlewareContext:
        for key in self.affected_keys(context["path"]):
            self._persist(key)
        return context


def install_default_middleware(manager: MiddlewareManager) -> None:
    """Register validation and logging, the middleware every store runs with."""
    manager.register("validation", ValidationMiddleware(), 10)
    manager.register("logging", LoggingMiddleware(), 20)
