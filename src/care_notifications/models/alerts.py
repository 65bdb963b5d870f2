"""Alert models: the persisted notification and its evaluator-side candidate."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field

from .domain import Timestamp, to_camel


class AlertKind(str, Enum):
    """Severity / visual class of an alert."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class AlertCategory(str, Enum):
    """Domain an alert originates from."""

    HEALTH = "health"
    FINANCIAL = "financial"
    FAMILY = "family"
    MEDICATION = "medication"
    SCHEDULE = "schedule"
    SYSTEM = "system"
    AI = "ai"


class AlertPriority(str, Enum):
    """Handling priority, independent of kind."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TenantContext(BaseModel):
    """Identity of the caller every read and write is scoped to."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    tenant_id: Optional[str] = None
    role: str = "staff"

    @property
    def scope(self) -> str:
        """Tenant key alerts are stored under, alongside the user id.

        Callers without an organization fall back to a per-user scope.
        """
        if self.tenant_id:
            return self.tenant_id
        return f"user:{self.user_id}"


class CandidateAlert(BaseModel):
    """Alert produced by a rule evaluator, not yet deduplicated or persisted."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    kind: AlertKind
    category: AlertCategory
    title: str
    message: str
    timestamp: Timestamp
    priority: AlertPriority
    action_target: Optional[str] = None
    subject_id: Optional[str] = None
    subject_name: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Alert(CandidateAlert):
    """Persisted alert.

    Descriptive fields never change once stored. Lifecycle fields are changed
    through the store, which hands back fresh copies.
    """

    id: str
    tenant_id: str
    user_id: str
    read: bool = False
    family_notified: bool = False
    resolved: bool = False
    created_at: Timestamp = Field(default_factory=lambda: datetime.now(timezone.utc))


StatusFilter = Literal["all", "unread", "family_notified", "resolved", "pending"]
SortField = Literal["date", "priority"]
SortDirection = Literal["asc", "desc"]

_PRIORITY_ORDER = {
    AlertPriority.HIGH: 3,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 1,
}


class AlertFilter(BaseModel):
    """Filter and ordering applied to a loaded alert set."""

    category: Optional[AlertCategory] = None
    kind: Optional[AlertKind] = None
    status: StatusFilter = "all"
    search: Optional[str] = None
    sort_by: SortField = "date"
    sort_direction: SortDirection = "desc"

    def matches(self, alert: Alert) -> bool:
        if self.category is not None and alert.category != self.category:
            return False
        if self.kind is not None and alert.kind != self.kind:
            return False

        if self.status == "unread" and alert.read:
            return False
        if self.status == "family_notified" and not alert.family_notified:
            return False
        if self.status == "resolved" and not alert.resolved:
            return False
        if self.status == "pending" and alert.resolved:
            return False

        if self.search:
            term = self.search.lower()
            haystack = [alert.title, alert.message, alert.subject_name or ""]
            if not any(term in text.lower() for text in haystack):
                return False
        return True

    def apply(self, alerts: list[Alert]) -> list[Alert]:
        """Return the matching alerts in the requested order."""
        selected = [a for a in alerts if self.matches(a)]
        reverse = self.sort_direction == "desc"
        if self.sort_by == "priority":
            # Ties fall back to newest first
            selected.sort(key=lambda a: a.timestamp, reverse=True)
            selected.sort(key=lambda a: _PRIORITY_ORDER[a.priority], reverse=reverse)
        else:
            selected.sort(key=lambda a: a.timestamp, reverse=reverse)
        return selected


EventAction = Literal["created", "updated", "deleted"]


class AlertEvent(BaseModel):
    """Change to one caller's alert set, emitted after the store confirms it."""

    action: EventAction
    scope: str
    user_id: str
    alerts: list[Alert] = Field(default_factory=list)
    alert_ids: list[str] = Field(default_factory=list)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def belongs_to(self, context: TenantContext) -> bool:
        return self.scope == context.scope and self.user_id == context.user_id

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "action": self.action,
            "scope": self.scope,
            "userId": self.user_id,
            "alerts": [a.model_dump(mode="json", by_alias=True) for a in self.alerts],
            "alertIds": self.alert_ids,
            "occurredAt": self.occurred_at.isoformat(),
        }
