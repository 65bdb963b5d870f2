"""Health rules: critical incidents, critical residents and abnormal vitals."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.domain import VitalSign
from ..models.snapshot import EvaluationSnapshot

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=24)

# Inclusive normal ranges; values outside raise an alert
SYSTOLIC_RANGE = (90, 180)  # mmHg
OXYGEN_SATURATION_MIN = 90  # %
TEMPERATURE_RANGE = (35.5, 38.5)  # °C
HEART_RATE_RANGE = (50, 120)  # bpm


def _is_recorded(value: Optional[float]) -> bool:
    # Zero means the field was left blank on the form
    return value is not None and value != 0


def _format_value(value: float) -> str:
    return f"{value:g}"


def abnormal_vitals(reading: VitalSign) -> list[str]:
    """List every metric of a reading that falls outside its normal range."""
    findings = []

    systolic = reading.systolic_pressure
    if _is_recorded(systolic) and not SYSTOLIC_RANGE[0] <= systolic <= SYSTOLIC_RANGE[1]:
        findings.append(f"Systolic pressure: {_format_value(systolic)}mmHg")

    saturation = reading.oxygen_saturation
    if _is_recorded(saturation) and saturation < OXYGEN_SATURATION_MIN:
        findings.append(f"Oxygen saturation: {_format_value(saturation)}%")

    temperature = reading.temperature
    if _is_recorded(temperature) and not TEMPERATURE_RANGE[0] <= temperature <= TEMPERATURE_RANGE[1]:
        findings.append(f"Temperature: {_format_value(temperature)}°C")

    heart_rate = reading.heart_rate
    if _is_recorded(heart_rate) and not HEART_RATE_RANGE[0] <= heart_rate <= HEART_RATE_RANGE[1]:
        findings.append(f"Heart rate: {_format_value(heart_rate)}bpm")

    return findings


def evaluate_health(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
    """Raise health alerts for the last 24 hours of incidents and vitals."""
    candidates = []
    cutoff = now - RECENT_WINDOW

    for incident in snapshot.incidents:
        if incident.severity != "critical" or incident.occurred_at <= cutoff:
            continue
        name = snapshot.resident_name(incident.resident_id)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.CRITICAL,
                category=AlertCategory.HEALTH,
                title="Critical Incident",
                message=f"{name or incident.resident_id}: {incident.description}",
                timestamp=incident.occurred_at,
                priority=AlertPriority.HIGH,
                action_target="/health-records",
                subject_id=incident.resident_id,
                subject_name=name,
            )
        )

    # Standing condition: re-derived every pass while the resident stays critical
    for resident in snapshot.residents:
        if resident.health_status != "critical":
            continue
        candidates.append(
            CandidateAlert(
                kind=AlertKind.CRITICAL,
                category=AlertCategory.HEALTH,
                title="Resident in Critical Condition",
                message=f"{resident.name} requires continuous monitoring",
                timestamp=now,
                priority=AlertPriority.HIGH,
                action_target="/residents",
                subject_id=resident.id,
                subject_name=resident.name,
            )
        )

    for reading in snapshot.vital_signs:
        if reading.recorded_at <= cutoff:
            continue
        findings = abnormal_vitals(reading)
        if not findings:
            continue
        name = snapshot.resident_name(reading.resident_id)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.WARNING,
                category=AlertCategory.HEALTH,
                title="Abnormal Vital Signs",
                message=f"{name or reading.resident_id}: {', '.join(findings)}",
                timestamp=reading.recorded_at,
                priority=AlertPriority.HIGH,
                action_target="/health-records",
                subject_id=reading.resident_id,
                subject_name=name,
            )
        )

    logger.debug(f"[RULES] health produced {len(candidates)} candidates")
    return candidates
