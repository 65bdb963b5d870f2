"""Medication rules."""
from datetime import datetime, timedelta

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.snapshot import EvaluationSnapshot

ENDING_SOON_WINDOW = timedelta(days=7)


def evaluate_medications(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
    """Warn about active prescriptions that end within the next seven days."""
    horizon = now + ENDING_SOON_WINDOW
    candidates = []

    for medication in snapshot.medications:
        if medication.status != "active" or medication.end_date is None:
            continue
        if not now < medication.end_date < horizon:
            continue

        name = snapshot.resident_name(medication.resident_id)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.WARNING,
                category=AlertCategory.MEDICATION,
                title="Medication Ending Soon",
                message=(
                    f"{name or medication.resident_id}: {medication.name} "
                    f"ends on {medication.end_date:%Y-%m-%d}"
                ),
                timestamp=now,
                priority=AlertPriority.MEDIUM,
                action_target="/medications",
                subject_id=medication.resident_id,
                subject_name=name,
            )
        )

    return candidates
