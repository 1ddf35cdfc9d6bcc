"""
Application Controller - Composition Root for the FIT Viewer State Core

Builds the path store with its default middleware, the computed values,
settings storage, the legacy global bridge and every domain state module,
wires the cross-module coordination, and tears it all down again on
shutdown.
"""

import logging
from typing import Any, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from fitview.core.computed_state import ComputedStateManager, initialize_common_computed_values
from fitview.core.events import StateEvents
from fitview.core.legacy_bridge import LegacyGlobalBridge, LegacyScope, legacy_globals
from fitview.core.middleware import install_default_middleware
from fitview.core.state_manager import StateManager
from fitview.core.storage import QSettingsStorage
from fitview.domain.app_state import AppActions, ApplicationState
from fitview.domain.fit_file_state import FitFileState
from fitview.domain.global_data_state import GlobalDataState
from fitview.domain.overlay_state import OverlayState
from fitview.domain.settings_state import SettingsStateManager
from fitview.domain.ui_state import UIState
from fitview.domain.zone_state import ZoneState

logger = logging.getLogger(__name__)


class ApplicationController(QObject):
    """
    {
        "name": "ApplicationController",
        "version": "1.0.0",
        "description": "Composition root that wires the store, bridge, storage and domain modules.",
        "dependencies": ["StateManager", "LegacyGlobalBridge", "QSettingsStorage", "All Domain Modules"],
        "interface": {
            "inputs": ["settings: QSettings", "scope: LegacyScope"],
            "outputs": "application_ready / application_error signals"
        }
    }

    Owns the lifecycle of every state module:
    - Creates them in dependency order
    - Migrates and hydrates settings before announcing readiness
    - Clears per-file state when the loaded file is closed
    - Disposes subscriptions and bridge accessors on shutdown
    """

    application_ready = pyqtSignal()
    application_error = pyqtSignal(str)  # error_message

    def __init__(self, settings: Optional[Any] = None, scope: Optional[LegacyScope] = None, watch_storage: bool = False):
        """
        Args:
            settings: QSettings instance (or compatible double); defaults to
                      the application store
            scope: Legacy global scope to bridge; defaults to the shared one
            watch_storage: Watch the settings file for writes by other windows
        """
        super().__init__()

        self._settings = settings
        self._scope = scope if scope is not None else legacy_globals
        self._watch_storage = watch_storage

        # Infrastructure
        self._state_manager: Optional[StateManager] = None
        self._storage: Optional[QSettingsStorage] = None
        self._bridge: Optional[LegacyGlobalBridge] = None
        self._computed: Optional[ComputedStateManager] = None

        # Domain modules
        self._app_state: Optional[ApplicationState] = None
        self._app_actions: Optional[AppActions] = None
        self._ui_state: Optional[UIState] = None
        self._global_data: Optional[GlobalDataState] = None
        self._fit_file: Optional[FitFileState] = None
        self._overlays: Optional[OverlayState] = None
        self._settings_state: Optional[SettingsStateManager] = None
        self._zones: Optional[ZoneState] = None

        self._disposers: list = []
        self._initialized = False

        logger.info("ApplicationController created")

    def initialize_application(self) -> bool:
        """
        Initialize the entire state stack.

        Returns:
            True if initialization successful, False otherwise
        """
        if self._initialized:
            return True
        try:
            logger.info("Starting application initialization")

            self._initialize_infrastructure()
            self._initialize_domain_modules()

            # Settings migrate before they hydrate the settings.* branch
            self._settings_state.initialize()

            self._setup_coordination()
            self._computed = ComputedStateManager(self._state_manager)
            initialize_common_computed_values(self._computed)
            self._app_actions.set_initialized(True)

            self._initialized = True
            self.application_ready.emit()
            logger.info("Application initialization completed successfully")
            return True

        except Exception as e:
            logger.error(f"Application initialization failed: {e}")
            self.application_error.emit(f"Initialization failed: {e}")
            return False

    def _initialize_infrastructure(self) -> None:
        logger.info("Initializing state infrastructure")
        self._state_manager = StateManager()
        install_default_middleware(self._state_manager.middleware)
        self._storage = QSettingsStorage(self._settings, watch=self._watch_storage)
        self._bridge = LegacyGlobalBridge(self._scope)

    def _initialize_domain_modules(self) -> None:
        logger.info("Initializing domain state modules")
        state = self._state_manager

        self._app_state = ApplicationState(state, self._storage)
        self._app_actions = AppActions(state, self._app_state)
        self._ui_state = UIState(state, self._app_actions)
        self._global_data = GlobalDataState(state, self._bridge)
        self._fit_file = FitFileState(state, self._app_actions, self._ui_state)
        self._overlays = OverlayState(state, self._bridge)
        self._settings_state = SettingsStateManager(state, self._storage)
        self._zones = ZoneState(state, self._bridge, self._settings_state)

    def _setup_coordination(self) -> None:
        """Per-file state goes away with the file."""
        self._disposers.append(self._state_manager.on(StateEvents.FILE_CLOSED, self._on_file_closed))

    def _on_file_closed(self, _event: Any) -> None:
        logger.info("File closed, clearing per-file state")
        self._fit_file.clear_file_state()
        self._overlays.clear_overlay_state(source="ApplicationController.file_closed")
        self._zones.clear_zone_data(source="ApplicationController.file_closed")

    # Public API

    def get_state_manager(self) -> Optional[StateManager]:
        return self._state_manager

    def get_storage(self) -> Optional[QSettingsStorage]:
        return self._storage

    def get_bridge(self) -> Optional[LegacyGlobalBridge]:
        return self._bridge

    def get_computed_state(self) -> Optional[ComputedStateManager]:
        return self._computed

    def get_app_state(self) -> Optional[ApplicationState]:
        return self._app_state

    def get_app_actions(self) -> Optional[AppActions]:
        return self._app_actions

    def get_ui_state(self) -> Optional[UIState]:
        return self._ui_state

    def get_global_data_state(self) -> Optional[GlobalDataState]:
        return self._global_data

    def get_fit_file_state(self) -> Optional[FitFileState]:
        return self._fit_file

    def get_overlay_state(self) -> Optional[OverlayState]:
        return self._overlays

    def get_settings_state(self) -> Optional[SettingsStateManager]:
        return self._settings_state

    def get_zone_state(self) -> Optional[ZoneState]:
        return self._zones

    def is_initialized(self) -> bool:
        return self._initialized

    # Lifecycle

    def shutdown(self) -> None:
        """Dispose every subscription and remove the bridged globals."""
        logger.info("Starting application shutdown")

        for dispose in self._disposers:
            dispose()
        self._disposers.clear()

        if self._computed is not None:
            self._computed.cleanup()

        for module in (self._zones, self._overlays, self._fit_file, self._global_data, self._app_state):
            if module is not None:
                module.dispose()

        if self._settings_state is not None:
            self._settings_state.cleanup()
        if self._storage is not None:
            self._storage.disable_watch()
        if self._bridge is not None:
            self._bridge.uninstall_all()
        if self._state_manager is not None:
            self._state_manager.middleware.clear()

        self._initialized = False
        logger.info("Application shutdown completed")
