"""
Notification Engine.

Runs evaluation passes (snapshot -> rule evaluators -> dedup gate -> store),
re-evaluates watched tenants when their data changes, and exposes the
listing, summary and lifecycle operations to display collaborators.

Passes for the same tenant never interleave. Lifecycle mutations go straight
to the store and may run alongside a pass.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from .ai_client import AIAnalysisClient
from .config import EngineSettings, get_settings
from .dedup import DeduplicationGate
from .errors import AIAnalysisError, NotificationError, SnapshotFetchError
from .lifecycle import LifecycleManager
from .models.alerts import Alert, AlertEvent, AlertFilter, TenantContext
from .models.domain import AIAnalysisResult
from .models.summary import AlertSummary
from .providers import ChangeNotifier, SnapshotSource
from .rules import RuleEvaluator, default_evaluators, run_evaluators
from .store import AlertStore
from .summary import summarize

logger = logging.getLogger(__name__)

EventListener = Callable[[AlertEvent], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PassResult:
    """Outcome of one evaluation pass."""

    scope: str
    candidates: int
    created: list[Alert] = field(default_factory=list)
    evaluated_at: datetime = field(default_factory=utc_now)


@dataclass
class RefreshResult:
    """Outcome of an explicit refresh: the pass plus the reloaded alert set."""

    created: list[Alert]
    alerts: list[Alert]


class NotificationEngine:
    """
    Generates, deduplicates and serves notifications per tenant.

    Configuration:
        source: provider of evaluation snapshots
        store: persisted alert collection
        evaluators: rule set keyed by name (defaults to the standard rules)
        notifier: change notifications that trigger re-evaluation
        ai_client: external AI analysis service
        clock: returns the current time (UTC)
    """

    def __init__(
        self,
        source: SnapshotSource,
        store: AlertStore,
        evaluators: Optional[Mapping[str, RuleEvaluator]] = None,
        notifier: Optional[ChangeNotifier] = None,
        ai_client: Optional[AIAnalysisClient] = None,
        clock: Callable[[], datetime] = utc_now,
        settings: Optional[EngineSettings] = None,
    ):
        settings = settings or get_settings()
        self.source = source
        self.store = store
        self.evaluators = dict(evaluators) if evaluators is not None else default_evaluators(
            settings.ai_min_confidence
        )
        self.ai_client = ai_client
        self.clock = clock
        self.gate = DeduplicationGate(store)
        self.lifecycle = LifecycleManager(store, emit=self._emit)

        self._listeners: list[EventListener] = []
        self._locks: dict[str, asyncio.Lock] = {}
        self._ai_results: dict[tuple[str, str], AIAnalysisResult] = {}
        self._watched: dict[str, dict[str, TenantContext]] = {}
        self._watch_counts: dict[tuple[str, str], int] = {}
        self._pending: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._unsubscribe = notifier.subscribe(self._on_data_changed) if notifier else None

        logger.info(f"[ENGINE] Initialized with evaluators: {', '.join(self.evaluators)}")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Receive an AlertEvent after every successful pass or mutation."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self, event: AlertEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"[ENGINE] Event listener failed on {event.action} event")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _lock_for(self, scope: str) -> asyncio.Lock:
        lock = self._locks.get(scope)
        if lock is None:
            lock = self._locks[scope] = asyncio.Lock()
        return lock

    async def _run_pass(self, context: TenantContext) -> PassResult:
        # Caller holds the tenant lock
        scope = context.scope
        try:
            snapshot = await self.source.load_snapshot(context)
        except SnapshotFetchError:
            raise
        except Exception as e:
            raise SnapshotFetchError(f"Snapshot fetch failed: {e}") from e

        analysis = self._ai_results.get((scope, context.user_id))
        if analysis is not None:
            snapshot = snapshot.model_copy(update={"ai_analysis": analysis})

        now = self.clock()
        candidates = run_evaluators(snapshot, now, self.evaluators)
        created = await asyncio.to_thread(self.gate.persist, context, candidates)

        if created:
            self._emit(AlertEvent(
                action="created",
                scope=scope,
                user_id=context.user_id,
                alerts=created,
                alert_ids=[a.id for a in created],
            ))
        logger.info(
            f"[ENGINE] Pass for {scope}/{context.user_id}: {len(candidates)} candidates, "
            f"{len(created)} new alerts"
        )
        return PassResult(scope=scope, candidates=len(candidates), created=created, evaluated_at=now)

    async def evaluate(self, context: TenantContext) -> PassResult:
        """Run one evaluation pass for the caller's tenant.

        Raises SnapshotFetchError if the data could not be fetched; nothing is
        persisted in that case.
        """
        async with self._lock_for(context.scope):
            return await self._run_pass(context)

    async def refresh(self, context: TenantContext) -> RefreshResult:
        """Force a pass, then reload the caller's alerts from the store."""
        result = await self.evaluate(context)
        alerts = await self.list_alerts(context)
        return RefreshResult(created=result.created, alerts=alerts)

    # ------------------------------------------------------------------
    # Change-driven re-evaluation
    # ------------------------------------------------------------------

    def watch(self, context: TenantContext) -> None:
        """Re-evaluate for this caller whenever the tenant's data changes.

        Must be called from the event loop that should run the passes. Each
        call must be paired with an ``unwatch``; the caller stays watched
        until every one of its watchers has gone.
        """
        self._loop = asyncio.get_running_loop()
        key = (context.scope, context.user_id)
        self._watch_counts[key] = self._watch_counts.get(key, 0) + 1
        self._watched.setdefault(context.scope, {})[context.user_id] = context
        logger.debug(f"[ENGINE] Watching {context.scope} for {context.user_id}")

    def unwatch(self, context: TenantContext) -> None:
        key = (context.scope, context.user_id)
        remaining = self._watch_counts.get(key, 0) - 1
        if remaining > 0:
            self._watch_counts[key] = remaining
            return
        self._watch_counts.pop(key, None)
        contexts = self._watched.get(context.scope, {})
        contexts.pop(context.user_id, None)
        if not contexts:
            self._watched.pop(context.scope, None)
        logger.debug(f"[ENGINE] Stopped watching {context.scope} for {context.user_id}")

    def is_watched(self, context: TenantContext) -> bool:
        return context.user_id in self._watched.get(context.scope, {})

    def _on_data_changed(self, scope: str, collection: str) -> None:
        if scope not in self._watched or self._loop is None or self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._schedule_pass(scope)
        else:
            self._loop.call_soon_threadsafe(self._schedule_pass, scope)

    def _schedule_pass(self, scope: str) -> None:
        # At most one queued pass per tenant
        if scope in self._pending:
            return
        self._pending.add(scope)
        task = self._loop.create_task(self._background_pass(scope))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _background_pass(self, scope: str) -> None:
        async with self._lock_for(scope):
            self._pending.discard(scope)
            for context in list(self._watched.get(scope, {}).values()):
                try:
                    await self._run_pass(context)
                except NotificationError as e:
                    # Passive refreshes never interrupt the user
                    logger.error(f"[ENGINE] Background pass for {scope} failed: {e}")

    async def wait_idle(self) -> None:
        """Wait until every scheduled background pass has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._watched.clear()
        self._watch_counts.clear()

    # ------------------------------------------------------------------
    # AI analysis
    # ------------------------------------------------------------------

    async def ingest_ai_analysis(self, context: TenantContext, result: AIAnalysisResult) -> PassResult:
        """Adopt a finished AI analysis for the caller and evaluate it."""
        self._ai_results[(context.scope, context.user_id)] = result
        return await self.evaluate(context)

    async def analyze(self, context: TenantContext, resident_id: Optional[str] = None) -> PassResult:
        """Ask the AI service for an analysis and turn its insights into alerts."""
        if self.ai_client is None:
            raise AIAnalysisError("No AI analysis client configured")
        result = await self.ai_client.analyze(context, resident_id)
        return await self.ingest_ai_analysis(context, result)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_alerts(
        self,
        context: TenantContext,
        alert_filter: Optional[AlertFilter] = None,
    ) -> list[Alert]:
        alerts = await asyncio.to_thread(self.store.list_alerts, context)
        if alert_filter is not None:
            alerts = alert_filter.apply(alerts)
        return alerts

    async def get_summary(self, context: TenantContext) -> AlertSummary:
        return summarize(await self.list_alerts(context))
