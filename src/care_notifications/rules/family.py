"""Family messaging rules."""
from datetime import datetime

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.snapshot import EvaluationSnapshot

PREVIEW_LENGTH = 50


def evaluate_family_messages(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
    """One critical alert per unread emergency, one digest for everything else unread."""
    unread = [m for m in snapshot.family_messages if not m.read]
    emergencies = [m for m in unread if m.type == "emergency"]
    regular = [m for m in unread if m.type != "emergency"]
    candidates = []

    for message in emergencies:
        name = snapshot.resident_name(message.resident_id)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.CRITICAL,
                category=AlertCategory.FAMILY,
                title="Emergency Message",
                message=f"{message.sender}: {message.message[:PREVIEW_LENGTH]}...",
                timestamp=message.date,
                priority=AlertPriority.HIGH,
                action_target="/family",
                subject_id=message.resident_id,
                subject_name=name,
            )
        )

    if regular:
        count = len(regular)
        noun = "message" if count == 1 else "messages"
        candidates.append(
            CandidateAlert(
                kind=AlertKind.INFO,
                category=AlertCategory.FAMILY,
                title="Unread Family Messages",
                message=f"{count} unread {noun} from family members",
                timestamp=min(m.date for m in regular),
                priority=AlertPriority.MEDIUM,
                action_target="/family",
                metadata={"count": count},
            )
        )

    return candidates
