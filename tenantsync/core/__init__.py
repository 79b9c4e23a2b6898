# tenantsync/core/__init__.py
"""
Application wiring: state, lifespan, routes and exception handlers
"""

from tenantsync import __version__, __description__, __author__

from tenantsync.core.app_state import AppState, get_start_time

__all__ = [
    "__version__",
    "__description__",
    "__author__",
    "AppState",
    "get_start_time"
]
