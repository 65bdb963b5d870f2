"""Lifecycle transitions for persisted alerts.

All operations are scoped to the caller's tenant and user. An id belonging to
another tenant or another user is indistinguishable from an unknown id: both
raise AlertNotFoundError.
"""
import asyncio
import logging
from typing import Callable, Optional

from .models.alerts import Alert, AlertEvent, TenantContext
from .store import AlertStore

logger = logging.getLogger(__name__)

EventEmitter = Callable[[AlertEvent], None]


class LifecycleManager:
    """Applies read / family-notified / resolved / delete transitions."""

    def __init__(self, store: AlertStore, emit: Optional[EventEmitter] = None):
        self.store = store
        self._emit = emit or (lambda event: None)

    def _event(self, context: TenantContext, action: str, **changes) -> AlertEvent:
        return AlertEvent(action=action, scope=context.scope, user_id=context.user_id, **changes)

    async def _set_flag(self, context: TenantContext, alert_id: str, column: str) -> Alert:
        alert = await asyncio.to_thread(self.store.set_flag, context, alert_id, column)
        logger.info(f"[LIFECYCLE] {context.scope}/{context.user_id}: {alert_id} {column}=true")
        self._emit(self._event(context, "updated", alerts=[alert], alert_ids=[alert.id]))
        return alert

    async def mark_read(self, context: TenantContext, alert_id: str) -> Alert:
        """Mark an alert read. Marking an already read alert is not an error."""
        return await self._set_flag(context, alert_id, "read")

    async def mark_all_read(self, context: TenantContext) -> int:
        """Mark every unread alert of the caller read; return how many changed."""
        changed = await asyncio.to_thread(self.store.mark_all_read, context)
        logger.info(f"[LIFECYCLE] {context.scope}/{context.user_id}: marked {len(changed)} alerts read")
        if changed:
            self._emit(self._event(context, "updated", alert_ids=changed))
        return len(changed)

    async def mark_family_notified(self, context: TenantContext, alert_id: str) -> Alert:
        """Record that the resident's family was told.

        Accepted for alerts without a subject too; it just means less there.
        """
        return await self._set_flag(context, alert_id, "family_notified")

    async def mark_resolved(self, context: TenantContext, alert_id: str) -> Alert:
        """Mark an alert resolved. Its read state is left as it is."""
        return await self._set_flag(context, alert_id, "resolved")

    async def delete(self, context: TenantContext, alert_id: str) -> None:
        await asyncio.to_thread(self.store.delete, context, alert_id)
        logger.info(f"[LIFECYCLE] {context.scope}/{context.user_id}: deleted {alert_id}")
        self._emit(self._event(context, "deleted", alert_ids=[alert_id]))

    async def delete_all(self, context: TenantContext) -> int:
        deleted = await asyncio.to_thread(self.store.delete_all, context)
        logger.info(f"[LIFECYCLE] {context.scope}/{context.user_id}: deleted {len(deleted)} alerts")
        if deleted:
            self._emit(self._event(context, "deleted", alert_ids=deleted))
        return len(deleted)
