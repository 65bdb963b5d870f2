"""Notification API routes.

Listing, summary and lifecycle operations for the caller's tenant, plus a
real-time stream of notification changes via SSE.
"""
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from care_notifications import ChangeNotifier, NotificationEngine
from care_notifications.models import (
    Alert,
    AlertCategory,
    AlertFilter,
    AlertKind,
    AlertSummary,
    TenantContext,
)
from care_notifications.models.alerts import SortDirection, SortField, StatusFilter
from care_notifications.models.snapshot import SNAPSHOT_COLLECTIONS
from care_notifications.presentation import (
    CATEGORY_PRESENTATION,
    KIND_PRESENTATION,
    PRIORITY_PRESENTATION,
)

from ..dependencies import get_engine, get_event_queue, get_notifier, get_tenant_context
from ..services.alert_queue import NotificationEventQueue

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class RefreshResponse(BaseModel):
    """Result of an explicit refresh."""

    model_config = ConfigDict(populate_by_name=True)

    created: int
    notifications: list[Alert]


class CountResponse(BaseModel):
    count: int


class DataChangedRequest(BaseModel):
    collection: str


class AIAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resident_id: Optional[str] = Field(default=None, alias="residentId")


@router.get("", response_model=list[Alert], response_model_by_alias=True)
async def list_notifications(
    category: Optional[AlertCategory] = Query(default=None, description="Filter by category"),
    kind: Optional[AlertKind] = Query(default=None, description="Filter by kind"),
    status_filter: StatusFilter = Query(default="all", alias="status"),
    search: Optional[str] = Query(default=None, description="Search title, message and resident"),
    sort_by: SortField = Query(default="date", alias="sortBy"),
    sort_direction: SortDirection = Query(default="desc", alias="sortDirection"),
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    """Get the caller's notifications."""
    alert_filter = AlertFilter(
        category=category,
        kind=kind,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    return await engine.list_alerts(context, alert_filter)


@router.get("/summary", response_model=AlertSummary, response_model_by_alias=True)
async def get_summary(
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    """Get total, unread, critical and per-category counts."""
    return await engine.get_summary(context)


@router.post("/refresh", response_model=RefreshResponse, response_model_by_alias=True)
async def refresh_notifications(
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    """Run an evaluation pass now and return the reloaded notifications."""
    result = await engine.refresh(context)
    return RefreshResponse(created=len(result.created), notifications=result.alerts)


@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    count = await engine.lifecycle.mark_all_read(context)
    return CountResponse(count=count)


@router.post("/{alert_id}/read", response_model=Alert, response_model_by_alias=True)
async def mark_read(
    alert_id: str,
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    return await engine.lifecycle.mark_read(context, alert_id)


@router.post("/{alert_id}/family-notified", response_model=Alert, response_model_by_alias=True)
async def mark_family_notified(
    alert_id: str,
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    return await engine.lifecycle.mark_family_notified(context, alert_id)


@router.post("/{alert_id}/resolved", response_model=Alert, response_model_by_alias=True)
async def mark_resolved(
    alert_id: str,
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    return await engine.lifecycle.mark_resolved(context, alert_id)


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    alert_id: str,
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    await engine.lifecycle.delete(context, alert_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", response_model=CountResponse)
async def delete_all_notifications(
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    count = await engine.lifecycle.delete_all(context)
    return CountResponse(count=count)


@router.post("/data-changed", status_code=status.HTTP_202_ACCEPTED)
async def report_data_changed(
    body: DataChangedRequest,
    context: TenantContext = Depends(get_tenant_context),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """
    Report that a facility collection changed for the caller's tenant.
    Watched callers of the tenant are re-evaluated in the background.
    """
    if body.collection not in SNAPSHOT_COLLECTIONS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown collection: {body.collection}",
        )
    notifier.notify(context.scope, body.collection)
    return {"status": "accepted", "collection": body.collection}


@router.post("/ai-analysis", response_model=RefreshResponse, response_model_by_alias=True)
async def run_ai_analysis(
    body: AIAnalysisRequest,
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
):
    """Request an AI health analysis and turn its insights into notifications."""
    result = await engine.analyze(context, body.resident_id)
    notifications = await engine.list_alerts(context)
    return RefreshResponse(created=len(result.created), notifications=notifications)


@router.get("/presentation")
async def get_presentation():
    """Labels, icons and colours for every kind, category and priority."""
    def table(mapping):
        return {
            key.value: {"label": p.label, "icon": p.icon, "color": p.color}
            for key, p in mapping.items()
        }

    return {
        "kinds": table(KIND_PRESENTATION),
        "categories": table(CATEGORY_PRESENTATION),
        "priorities": table(PRIORITY_PRESENTATION),
    }


# ============================================================================
# Real-Time Notification Events (SSE)
# ============================================================================


async def sse_events(
    engine: NotificationEngine,
    event_queue: NotificationEventQueue,
    context: TenantContext,
    include_history: bool = True,
    history_count: int = 10,
):
    """Format the caller's events as SSE frames, watching the caller while open."""
    engine.watch(context)
    try:
        async for event in event_queue.subscribe(
            context,
            include_history=include_history,
            history_count=history_count,
        ):
            data = json.dumps(event.to_dict())
            yield f"event: notification\ndata: {data}\n\n"
    finally:
        engine.unwatch(context)


@router.get("/stream")
async def stream_notification_events(
    include_history: bool = Query(True, description="Include recent events on connect"),
    history_count: int = Query(10, ge=0, le=50, description="Number of historical events"),
    context: TenantContext = Depends(get_tenant_context),
    engine: NotificationEngine = Depends(get_engine),
    event_queue: NotificationEventQueue = Depends(get_event_queue),
):
    """
    Stream the caller's notification changes via Server-Sent Events.

    While the stream is open the caller is re-evaluated whenever its tenant's
    data changes.

    Every event carries an action (created, updated, deleted) and the affected
    notifications or ids. The stream never closes - clients should handle
    reconnection.

    Usage with JavaScript:
        const eventSource = new EventSource('/api/notifications/stream');
        eventSource.addEventListener('notification', (event) => {
            const change = JSON.parse(event.data);
        });
    """
    return StreamingResponse(
        sse_events(engine, event_queue, context, include_history, history_count),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/stream/history")
async def get_event_history(
    count: int = Query(50, ge=1, le=100, description="Number of events to return"),
    context: TenantContext = Depends(get_tenant_context),
    event_queue: NotificationEventQueue = Depends(get_event_queue),
):
    """Recent notification events of the caller, newest first."""
    return [event.to_dict() for event in event_queue.get_history(context, count)]


@router.get("/stream/stats")
async def get_stream_stats(
    event_queue: NotificationEventQueue = Depends(get_event_queue),
):
    """Statistics about the notification event stream."""
    return event_queue.get_stats()
