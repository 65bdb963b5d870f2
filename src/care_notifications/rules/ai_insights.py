"""Passthrough of AI analysis insights into alerts."""
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.domain import AIInsight
from ..models.snapshot import EvaluationSnapshot

logger = logging.getLogger(__name__)

SEVERITY_TO_KIND = {
    "critical": AlertKind.CRITICAL,
    "high": AlertKind.WARNING,
    "medium": AlertKind.WARNING,
    "low": AlertKind.INFO,
}

SEVERITY_TO_PRIORITY = {
    "critical": AlertPriority.HIGH,
    "high": AlertPriority.HIGH,
    "medium": AlertPriority.MEDIUM,
    "low": AlertPriority.MEDIUM,
}


def insight_qualifies(insight: AIInsight, min_confidence: float = 0.0) -> bool:
    return bool(insight.title.strip()) and insight.confidence >= min_confidence


def _text(value: Any) -> Optional[str]:
    # The analysis service is free-form: ids may arrive as numbers
    return None if value is None else str(value)


def make_ai_evaluator(min_confidence: float = 0.0):
    """Build the AI passthrough evaluator for a confidence floor."""

    def evaluate_ai_insights(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
        analysis = snapshot.ai_analysis
        if analysis is None:
            return []

        candidates = []
        for insight in analysis.insights:
            if not insight_qualifies(insight, min_confidence):
                continue
            subject_id = _text(insight.metadata.get("residentId"))
            subject_name = _text(insight.metadata.get("residentName")) or snapshot.resident_name(subject_id)
            metadata = {
                **insight.metadata,
                "confidence": insight.confidence,
                "dataPoints": insight.data_points,
                "recommendations": list(insight.recommendations),
                "urgency": insight.effective_urgency,
                "analysisSummary": analysis.summary,
                "riskScore": analysis.risk_score,
            }
            try:
                candidate = CandidateAlert(
                    kind=SEVERITY_TO_KIND[insight.severity],
                    category=AlertCategory.AI,
                    title=insight.title,
                    message=insight.message,
                    timestamp=now,
                    priority=SEVERITY_TO_PRIORITY[insight.severity],
                    subject_id=subject_id,
                    subject_name=subject_name,
                    metadata=metadata,
                )
            except ValidationError as e:
                logger.warning(f"[RULES] Skipping AI insight '{insight.title}': {e}")
                continue
            candidates.append(candidate)
        return candidates

    return evaluate_ai_insights


evaluate_ai_insights = make_ai_evaluator()
