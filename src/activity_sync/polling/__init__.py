"""
Polling system for the activity sync service.

This package contains the incremental synchronization engine: repository
validation, cursors, per-category fetchers and classifiers, dispatch, and the
orchestrator that drives them on a timer.
"""

from .cursors import CursorStore
from .dispatcher import EventDispatcher
from .orchestrator import ActivitySyncEngine
from .validator import RepositoryValidator

__all__ = [
    "ActivitySyncEngine",
    "CursorStore",
    "EventDispatcher",
    "RepositoryValidator",
]
