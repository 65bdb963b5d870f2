"""Deduplication and persistence gate.

Several rules re-derive standing conditions on every pass, so candidates are
matched against everything already stored for the caller before insertion.
The identity signature is ``(title, first 50 characters of message,
category)``. It is deliberately coarse: two different events sharing a title,
category and message prefix are treated as the same alert.
"""
import logging

from .models.alerts import Alert, CandidateAlert, TenantContext
from .store import AlertStore, Signature

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX_LENGTH = 50


def message_prefix(message: str) -> str:
    return message[:SIGNATURE_PREFIX_LENGTH]


def signature(candidate: CandidateAlert) -> Signature:
    """Identity signature used to decide whether an alert was already seen."""
    return (candidate.title, message_prefix(candidate.message), candidate.category.value)


def select_novel(
    candidates: list[CandidateAlert],
    existing: set[Signature],
) -> list[CandidateAlert]:
    """Drop candidates whose signature exists or already appeared earlier in the batch."""
    seen = set(existing)
    novel = []
    for candidate in candidates:
        key = signature(candidate)
        if key in seen:
            continue
        seen.add(key)
        novel.append(candidate)
    return novel


class DeduplicationGate:
    """Persists only the candidates the caller has never seen.

    Callers must serialize ``persist`` per tenant; the store's unique index
    backs that up if two writers still race.
    """

    def __init__(self, store: AlertStore):
        self.store = store

    def persist(self, context: TenantContext, candidates: list[CandidateAlert]) -> list[Alert]:
        if not candidates:
            return []

        owner = f"{context.scope}/{context.user_id}"
        categories = {c.category for c in candidates}
        existing = self.store.signatures(context, categories)
        novel = select_novel(candidates, existing)
        if not novel:
            logger.debug(f"[DEDUP] {owner}: all {len(candidates)} candidates already stored")
            return []

        created = self.store.insert_new(context, [(c, message_prefix(c.message)) for c in novel])
        logger.info(
            f"[DEDUP] {owner}: {len(candidates)} candidates, {len(novel)} novel, "
            f"{len(created)} persisted"
        )
        return created
