"""Staffing rule, shown to administrators only."""
from datetime import datetime

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.snapshot import EvaluationSnapshot

MIN_ACTIVE_CAREGIVERS = 3
PRIVILEGED_ROLES = frozenset({"admin"})


def evaluate_staffing(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
    if snapshot.context.role not in PRIVILEGED_ROLES:
        return []

    active = sum(1 for c in snapshot.caregivers if c.status == "active")
    if active >= MIN_ACTIVE_CAREGIVERS:
        return []

    return [
        CandidateAlert(
            kind=AlertKind.WARNING,
            category=AlertCategory.SYSTEM,
            title="Few Active Caregivers",
            message=f"Only {active} active caregivers in the system",
            timestamp=now,
            priority=AlertPriority.MEDIUM,
            action_target="/settings",
            metadata={"activeCaregivers": active},
        )
    ]
