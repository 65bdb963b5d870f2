"""Display-side read replica of one caller's notifications.

The session mirrors the store for a single tenant/user. It is refreshed from
engine events and after its own mutations, and only ever changes after the
store confirmed the change.
"""
from typing import Callable, Optional

from .engine import NotificationEngine
from .models.alerts import Alert, AlertEvent, AlertFilter, TenantContext
from .models.summary import AlertSummary
from .summary import summarize


class NotificationSession:
    """Loaded alert set plus lifecycle commands for one caller."""

    def __init__(self, engine: NotificationEngine, context: TenantContext):
        self.engine = engine
        self.context = context
        self.alerts: list[Alert] = []
        self._remove_listener: Optional[Callable[[], None]] = engine.add_listener(self._on_event)

    async def start(self) -> None:
        """Initial load: watch the tenant, run a pass and load the alerts.

        Errors from the initial pass propagate to the caller.
        """
        self.engine.watch(self.context)
        await self.refresh()

    def stop(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self.engine.unwatch(self.context)

    async def reload(self) -> None:
        self.alerts = await self.engine.list_alerts(self.context)

    async def refresh(self) -> list[Alert]:
        """Explicit refresh; returns the alerts created by the pass."""
        result = await self.engine.refresh(self.context)
        self.alerts = result.alerts
        return result.created

    @property
    def summary(self) -> AlertSummary:
        return summarize(self.alerts)

    def filtered(self, alert_filter: AlertFilter) -> list[Alert]:
        return alert_filter.apply(self.alerts)

    def _replace(self, updated: Alert) -> None:
        self.alerts = [updated if a.id == updated.id else a for a in self.alerts]

    def _on_event(self, event: AlertEvent) -> None:
        if not event.belongs_to(self.context):
            return
        if event.action == "created":
            known = {a.id for a in self.alerts}
            fresh = [a for a in event.alerts if a.id not in known]
            self.alerts = sorted(self.alerts + fresh, key=lambda a: a.timestamp, reverse=True)
        elif event.action == "updated":
            if event.alerts:
                for alert in event.alerts:
                    self._replace(alert)
            else:
                # Bulk read: only ids travel with the event
                ids = set(event.alert_ids)
                self.alerts = [
                    a.model_copy(update={"read": True}) if a.id in ids else a for a in self.alerts
                ]
        elif event.action == "deleted":
            ids = set(event.alert_ids)
            self.alerts = [a for a in self.alerts if a.id not in ids]

    # Lifecycle commands. Failures propagate; the replica is untouched then.

    async def mark_read(self, alert_id: str) -> None:
        await self.engine.lifecycle.mark_read(self.context, alert_id)

    async def mark_all_read(self) -> int:
        return await self.engine.lifecycle.mark_all_read(self.context)

    async def mark_family_notified(self, alert_id: str) -> None:
        await self.engine.lifecycle.mark_family_notified(self.context, alert_id)

    async def mark_resolved(self, alert_id: str) -> None:
        await self.engine.lifecycle.mark_resolved(self.context, alert_id)

    async def delete(self, alert_id: str) -> None:
        await self.engine.lifecycle.delete(self.context, alert_id)

    async def delete_all(self) -> int:
        return await self.engine.lifecycle.delete_all(self.context)
