"""Pydantic models for alerts, provider records and summaries."""
from .alerts import (
    Alert,
    AlertCategory,
    AlertEvent,
    AlertFilter,
    AlertKind,
    AlertPriority,
    CandidateAlert,
    TenantContext,
)
from .domain import (
    AIAnalysisResult,
    AIInsight,
    BillingItem,
    Caregiver,
    EliminationRecord,
    FamilyMessage,
    Incident,
    Medication,
    Resident,
    VitalSign,
)
from .snapshot import EvaluationSnapshot, SNAPSHOT_COLLECTIONS
from .summary import AlertSummary

__all__ = [
    "Alert",
    "AlertCategory",
    "AlertEvent",
    "AlertFilter",
    "AlertKind",
    "AlertPriority",
    "CandidateAlert",
    "TenantContext",
    "AIAnalysisResult",
    "AIInsight",
    "BillingItem",
    "Caregiver",
    "EliminationRecord",
    "FamilyMessage",
    "Incident",
    "Medication",
    "Resident",
    "VitalSign",
    "EvaluationSnapshot",
    "SNAPSHOT_COLLECTIONS",
    "AlertSummary",
]
