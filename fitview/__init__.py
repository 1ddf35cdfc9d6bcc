"""
FIT File Viewer state core.

Reactive path store, legacy global bridge, domain state modules and settings
persistence for the FIT file viewer.
"""

from fitview.config import APP_VERSION

__version__ = APP_VERSION
