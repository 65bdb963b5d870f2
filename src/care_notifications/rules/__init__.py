"""Rule evaluators.

Each evaluator is a pure function ``(snapshot, now) -> list[CandidateAlert]``.
They run independently; one failing evaluator never stops the others.
"""
import logging
from datetime import datetime
from typing import Callable, Mapping, Optional

from ..models.alerts import CandidateAlert
from ..models.snapshot import EvaluationSnapshot
from .ai_insights import evaluate_ai_insights, make_ai_evaluator
from .family import evaluate_family_messages
from .financial import evaluate_financial
from .health import abnormal_vitals, evaluate_health
from .medication import evaluate_medications
from .staffing import evaluate_staffing

logger = logging.getLogger(__name__)

RuleEvaluator = Callable[[EvaluationSnapshot, datetime], list[CandidateAlert]]


def default_evaluators(ai_min_confidence: float = 0.0) -> dict[str, RuleEvaluator]:
    """Return the standard rule set keyed by name."""
    return {
        "health": evaluate_health,
        "medication": evaluate_medications,
        "family": evaluate_family_messages,
        "financial": evaluate_financial,
        "staffing": evaluate_staffing,
        "ai": make_ai_evaluator(ai_min_confidence),
    }


def run_evaluators(
    snapshot: EvaluationSnapshot,
    now: datetime,
    evaluators: Optional[Mapping[str, RuleEvaluator]] = None,
) -> list[CandidateAlert]:
    """Run every evaluator and concatenate their candidates.

    An evaluator that raises contributes nothing to this pass.
    """
    if evaluators is None:
        evaluators = default_evaluators()

    candidates: list[CandidateAlert] = []
    for name, evaluator in evaluators.items():
        try:
            produced = evaluator(snapshot, now)
        except Exception:
            logger.exception(f"[RULES] Evaluator '{name}' failed, skipping it for this pass")
            continue
        candidates.extend(produced)

    logger.debug(f"[RULES] {len(candidates)} candidates from {len(evaluators)} evaluators")
    return candidates


__all__ = [
    "RuleEvaluator",
    "abnormal_vitals",
    "default_evaluators",
    "evaluate_ai_insights",
    "evaluate_family_messages",
    "evaluate_financial",
    "evaluate_health",
    "evaluate_medications",
    "evaluate_staffing",
    "make_ai_evaluator",
    "run_evaluators",
]
