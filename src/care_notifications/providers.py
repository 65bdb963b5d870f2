"""Domain data providers and their change notifications.

A provider assembles an EvaluationSnapshot for one tenant. Whoever writes
facility data reports the change through a ChangeNotifier, and the engine
re-evaluates the affected tenant.
"""
import asyncio
import logging
import sqlite3
import threading
from typing import Callable, Iterable, Optional, Protocol

from pydantic import ValidationError

from .database import DatabaseManager
from .errors import SnapshotFetchError
from .models.alerts import TenantContext
from .models.domain import (
    BillingItem,
    Caregiver,
    DomainRecord,
    EliminationRecord,
    FamilyMessage,
    Incident,
    Medication,
    Resident,
    VitalSign,
)
from .models.snapshot import SNAPSHOT_COLLECTIONS, EvaluationSnapshot

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, str], None]

COLLECTION_MODELS: dict[str, type[DomainRecord]] = {
    "residents": Resident,
    "medications": Medication,
    "incidents": Incident,
    "vital_signs": VitalSign,
    "elimination_records": EliminationRecord,
    "family_messages": FamilyMessage,
    "monthly_fees": BillingItem,
    "accounts_payable": BillingItem,
    "accounts_receivable": BillingItem,
    "caregivers": Caregiver,
}


class SnapshotSource(Protocol):
    """Anything able to produce the current snapshot for a tenant."""

    async def load_snapshot(self, context: TenantContext) -> EvaluationSnapshot:
        ...


class ChangeNotifier:
    """Observer registry for "collection X of tenant Y changed" notifications."""

    def __init__(self):
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, scope: str, collection: str) -> None:
        """Tell every listener that a tenant's collection changed."""
        with self._lock:
            listeners = list(self._listeners)
        logger.debug(f"[PROVIDER] {scope}: '{collection}' changed, {len(listeners)} listeners")
        for listener in listeners:
            try:
                listener(scope, collection)
            except Exception:
                logger.exception(f"[PROVIDER] Change listener failed for {scope}/{collection}")


def _validate(collection: str, records: Iterable) -> tuple:
    model = COLLECTION_MODELS[collection]
    try:
        return tuple(
            r if isinstance(r, model) else model.model_validate(r) for r in records
        )
    except ValidationError as e:
        raise SnapshotFetchError(f"Malformed {collection} record: {e}", collection) from e


class InMemorySnapshotSource:
    """Provider fed directly by the application, e.g. from an upstream API cache.

    Every update publishes a change notification for the tenant.
    """

    def __init__(self, notifier: Optional[ChangeNotifier] = None):
        self.notifier = notifier
        self._data: dict[str, dict[str, tuple]] = {}
        self._lock = threading.Lock()

    def set_collection(self, scope: str, collection: str, records: Iterable) -> None:
        """Replace one collection of a tenant and announce the change."""
        if collection not in COLLECTION_MODELS:
            raise ValueError(f"Unknown collection: {collection}")
        validated = _validate(collection, records)
        with self._lock:
            self._data.setdefault(scope, {})[collection] = validated
        if self.notifier is not None:
            self.notifier.notify(scope, collection)

    async def load_snapshot(self, context: TenantContext) -> EvaluationSnapshot:
        with self._lock:
            data = dict(self._data.get(context.scope, {}))
        return EvaluationSnapshot(context=context, **data)


class SQLiteSnapshotSource:
    """Reads the facility database, scoped by organization."""

    TABLES = {
        "residents": ("residents", "name"),
        "medications": ("medications", "end_date"),
        "incidents": ("intercurrences", "occurred_at DESC"),
        "vital_signs": ("vital_signs", "recorded_at DESC"),
        "elimination_records": ("elimination_records", "recorded_at DESC"),
        "family_messages": ("family_messages", "date DESC"),
        "monthly_fees": ("monthly_fees", "due_date"),
        "accounts_payable": ("accounts_payable", "due_date"),
        "accounts_receivable": ("accounts_receivable", "due_date"),
        "caregivers": ("caregivers", "name"),
    }

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def load_snapshot(self, context: TenantContext) -> EvaluationSnapshot:
        return await asyncio.to_thread(self._read_snapshot, context)

    def _read_snapshot(self, context: TenantContext) -> EvaluationSnapshot:
        data = {}
        collection = None
        try:
            with self.db.get_facility_conn() as conn:
                cursor = conn.cursor()
                for collection in SNAPSHOT_COLLECTIONS:
                    table, order = self.TABLES[collection]
                    cursor.execute(
                        f"SELECT * FROM {table} WHERE organization_id = ? ORDER BY {order}",
                        (context.scope,),
                    )
                    data[collection] = _validate(collection, [dict(row) for row in cursor.fetchall()])
        except sqlite3.Error as e:
            logger.error(f"[PROVIDER] Failed reading {collection} for {context.scope}: {e}")
            raise SnapshotFetchError(f"Could not read {collection}: {e}", collection) from e

        logger.debug(
            f"[PROVIDER] {context.scope}: "
            + ", ".join(f"{name}={len(records)}" for name, records in data.items())
        )
        return EvaluationSnapshot(context=context, **data)
