"""Exceptions raised by the notification engine."""
from typing import Optional


class NotificationError(Exception):
    """Base class for notification engine errors."""


class SnapshotFetchError(NotificationError):
    """A domain data provider could not supply its snapshot.

    The evaluation pass that hit this error is aborted and persists nothing.
    """

    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


class AlertNotFoundError(NotificationError):
    """No alert with the given id exists in the caller's scope."""

    def __init__(self, alert_id: str):
        super().__init__(f"Notification {alert_id} not found")
        self.alert_id = alert_id


class AlertStoreError(NotificationError):
    """The alert store rejected or failed an operation."""


class AIAnalysisError(NotificationError):
    """The external AI analysis service failed or returned garbage."""
