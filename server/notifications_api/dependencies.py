"""Request dependencies: the engine and the caller's identity."""
from typing import Optional

from fastapi import Header, Request

from care_notifications import ChangeNotifier, NotificationEngine
from care_notifications.models import TenantContext

from .services.alert_queue import NotificationEventQueue


def get_engine(request: Request) -> NotificationEngine:
    return request.app.state.engine


def get_notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier


def get_event_queue(request: Request) -> NotificationEventQueue:
    return request.app.state.event_queue


def get_tenant_context(
    x_user_id: str = Header(..., description="Caller's user id"),
    x_tenant_id: Optional[str] = Header(default=None, description="Caller's organization"),
    x_user_role: str = Header(default="staff", description="Caller's role"),
) -> TenantContext:
    """Identity forwarded by the dashboard gateway after authentication."""
    return TenantContext(user_id=x_user_id, tenant_id=x_tenant_id, role=x_user_role)
