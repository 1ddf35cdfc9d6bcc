"""
Controllers Module
Composition and lifecycle of the state core.
"""

from .application_controller import ApplicationController

__all__ = ["ApplicationController"]
