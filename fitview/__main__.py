"""
Headless entry point.

Boots the state core against the configured settings store, logs a summary
of the resulting state and exits. Useful for checking settings migration
and persisted UI state without the viewer window.
"""

import json
import logging
import sys

from PyQt6.QtCore import QCoreApplication

from fitview import config
from fitview.controllers import ApplicationController
from fitview.exceptions import ConfigurationError
from fitview.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    try:
        configure_logging()
    except ConfigurationError as e:
        sys.stderr.write(f"{e.user_message}\n")
        return 2

    app = QCoreApplication.instance() or QCoreApplication(argv if argv is not None else sys.argv)
    app.setOrganizationName(config.APP_ORGANIZATION)
    app.setApplicationName(config.APP_NAME)

    controller = ApplicationController()
    controller.application_error.connect(lambda message: logger.error(message))
    if not controller.initialize_application():
        return 1

    try:
        state = controller.get_state_manager()
        summary = state.get_state_summary()
        logger.info(f"State sections: {', '.join(summary['state_sections'])}")
        logger.info(f"Settings: {json.dumps(state.get_state('settings'), default=str)}")
        computed = controller.get_computed_state()
        logger.info(f"App ready: {computed.get_computed('isAppReady')}")
    finally:
        controller.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
