"""
Care Facility Notification Engine.

Evaluates facility data against domain rules, persists deduplicated alerts
and manages their read / family-notified / resolved lifecycle.
"""

from .database import DatabaseManager
from .engine import NotificationEngine, PassResult, RefreshResult
from .errors import (
    AIAnalysisError,
    AlertNotFoundError,
    AlertStoreError,
    NotificationError,
    SnapshotFetchError,
)
from .providers import ChangeNotifier, InMemorySnapshotSource, SQLiteSnapshotSource
from .session import NotificationSession
from .store import AlertStore
from .summary import summarize

__all__ = [
    "DatabaseManager",
    "NotificationEngine",
    "PassResult",
    "RefreshResult",
    "AIAnalysisError",
    "AlertNotFoundError",
    "AlertStoreError",
    "NotificationError",
    "SnapshotFetchError",
    "ChangeNotifier",
    "InMemorySnapshotSource",
    "SQLiteSnapshotSource",
    "NotificationSession",
    "AlertStore",
    "summarize",
]
