"""Notification summary aggregate model."""
from pydantic import BaseModel, ConfigDict, Field

from .alerts import AlertCategory


def _empty_counts() -> dict[AlertCategory, int]:
    return {category: 0 for category in AlertCategory}


class AlertSummary(BaseModel):
    """Counts over the currently loaded alert set. Never stored."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    unread: int = 0
    critical: int = 0
    by_category: dict[AlertCategory, int] = Field(
        default_factory=_empty_counts, serialization_alias="byCategory"
    )
