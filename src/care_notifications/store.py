"""SQLite-backed alert store.

The store is the single source of truth for alerts. Every query is scoped to
a tenant and the user the alerts were generated for; the unique signature
index makes the store, not the caller, the final judge of whether an alert
already exists.
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Iterable

from .database import DatabaseManager
from .errors import AlertNotFoundError, AlertStoreError
from .models.alerts import Alert, AlertCategory, CandidateAlert, TenantContext

logger = logging.getLogger(__name__)

ALERT_SCHEMA = """
CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    category TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    message_prefix TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0,
    action_target TEXT,
    resident_id TEXT,
    resident_name TEXT,
    priority TEXT NOT NULL,
    family_notified INTEGER NOT NULL DEFAULT 0,
    resolved INTEGER NOT NULL DEFAULT 0,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS notifications_owner_signature
    ON notifications (tenant_id, user_id, title, message_prefix, category);
CREATE INDEX IF NOT EXISTS notifications_owner_timestamp
    ON notifications (tenant_id, user_id, timestamp);
"""

LIFECYCLE_COLUMNS = ("read", "family_notified", "resolved")

Signature = tuple[str, str, str]


def _iso(value: datetime) -> str:
    # Fixed-width UTC text so lexical order matches chronological order
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _owner(context: TenantContext) -> tuple[str, str]:
    return context.scope, context.user_id


def _row_to_alert(row) -> Alert:
    """Convert SQLite row to Alert model."""
    return Alert(
        id=row["id"],
        tenant_id=row["tenant_id"],
        user_id=row["user_id"],
        kind=row["type"],
        category=row["category"],
        title=row["title"],
        message=row["message"],
        timestamp=row["timestamp"],
        read=bool(row["read"]),
        action_target=row["action_target"],
        subject_id=row["resident_id"],
        subject_name=row["resident_name"],
        priority=row["priority"],
        family_notified=bool(row["family_notified"]),
        resolved=bool(row["resolved"]),
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=row["created_at"],
    )


class AlertStore:
    """CRUD over the ``notifications`` table, scoped per tenant and user."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            with self.db.get_alert_conn() as conn:
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error(f"[STORE] Database error: {e}")
            raise AlertStoreError(str(e)) from e

    def initialize(self) -> None:
        """Create the notifications table and its indexes."""
        with self._transaction() as conn:
            conn.executescript(ALERT_SCHEMA)
        logger.info(f"[STORE] Notification store ready at {self.db.alert_db_path}")

    def list_alerts(self, context: TenantContext) -> list[Alert]:
        """All alerts of the caller, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM notifications
                WHERE tenant_id = ? AND user_id = ?
                ORDER BY timestamp DESC
                """,
                _owner(context),
            ).fetchall()
        return [_row_to_alert(row) for row in rows]

    def get(self, context: TenantContext, alert_id: str) -> Alert:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM notifications WHERE tenant_id = ? AND user_id = ? AND id = ?",
                (*_owner(context), alert_id),
            ).fetchone()
        if row is None:
            raise AlertNotFoundError(alert_id)
        return _row_to_alert(row)

    def signatures(self, context: TenantContext, categories: Iterable[AlertCategory]) -> set[Signature]:
        """Signatures of every stored alert of the caller in the given categories.

        Resolved alerts are included.
        """
        values = sorted({c.value for c in categories})
        if not values:
            return set()
        placeholders = ", ".join("?" * len(values))
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT title, message_prefix, category FROM notifications
                WHERE tenant_id = ? AND user_id = ? AND category IN ({placeholders})
                """,
                (*_owner(context), *values),
            ).fetchall()
        return {(row["title"], row["message_prefix"], row["category"]) for row in rows}

    def insert_new(
        self,
        context: TenantContext,
        items: list[tuple[CandidateAlert, str]],
    ) -> list[Alert]:
        """Insert candidates with their message prefixes, skipping existing signatures.

        Returns the alerts actually inserted. A signature conflict means the
        alert already exists and is not an error.
        """
        created = []
        created_at = datetime.now(timezone.utc)
        scope, user_id = _owner(context)
        with self._transaction() as conn:
            for candidate, prefix in items:
                alert = Alert(
                    **candidate.model_dump(),
                    id=str(uuid.uuid4()),
                    tenant_id=scope,
                    user_id=user_id,
                    created_at=created_at,
                )
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO notifications (
                        id, tenant_id, user_id, type, category, title, message,
                        message_prefix, timestamp, read, action_target, resident_id,
                        resident_name, priority, family_notified, resolved, metadata,
                        created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, 0, 0, ?, ?)
                    """,
                    (
                        alert.id,
                        scope,
                        user_id,
                        alert.kind.value,
                        alert.category.value,
                        alert.title,
                        alert.message,
                        prefix,
                        _iso(alert.timestamp),
                        alert.action_target,
                        alert.subject_id,
                        alert.subject_name,
                        alert.priority.value,
                        json.dumps(alert.metadata, default=str),
                        _iso(created_at),
                    ),
                )
                if cursor.rowcount == 1:
                    created.append(alert)
                else:
                    logger.debug(f"[STORE] Signature already stored, skipped: {alert.title}")
        return created

    def set_flag(self, context: TenantContext, alert_id: str, column: str) -> Alert:
        """Set one lifecycle flag to true and return the updated alert."""
        if column not in LIFECYCLE_COLUMNS:
            raise ValueError(f"Not a lifecycle column: {column}")
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                UPDATE notifications SET {column} = 1
                WHERE tenant_id = ? AND user_id = ? AND id = ?
                RETURNING *
                """,
                (*_owner(context), alert_id),
            ).fetchall()
        if not rows:
            raise AlertNotFoundError(alert_id)
        return _row_to_alert(rows[0])

    def mark_all_read(self, context: TenantContext) -> list[str]:
        """Mark every unread alert of the caller read; return the ids that changed.

        The ids come from the UPDATE itself, so a row inserted concurrently is
        either both changed and reported or neither.
        """
        with self._transaction() as conn:
            rows = conn.execute(
                """
                UPDATE notifications SET read = 1
                WHERE tenant_id = ? AND user_id = ? AND read = 0
                RETURNING id
                """,
                _owner(context),
            ).fetchall()
        return [row["id"] for row in rows]

    def delete(self, context: TenantContext, alert_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM notifications WHERE tenant_id = ? AND user_id = ? AND id = ?",
                (*_owner(context), alert_id),
            )
            if cursor.rowcount == 0:
                raise AlertNotFoundError(alert_id)

    def delete_all(self, context: TenantContext) -> list[str]:
        """Delete every alert of the caller; return the deleted ids."""
        with self._transaction() as conn:
            rows = conn.execute(
                "DELETE FROM notifications WHERE tenant_id = ? AND user_id = ? RETURNING id",
                _owner(context),
            ).fetchall()
        return [row["id"] for row in rows]
