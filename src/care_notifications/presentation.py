"""Display attributes for each alert kind, category and priority.

Every enum member must have an entry; a missing one fails at import time
instead of silently rendering with a fallback.
"""
from dataclasses import dataclass
from enum import Enum

from .models.alerts import AlertCategory, AlertKind, AlertPriority


@dataclass(frozen=True)
class Presentation:
    label: str
    icon: str
    color: str


KIND_PRESENTATION: dict[AlertKind, Presentation] = {
    AlertKind.CRITICAL: Presentation("Critical", "alert-triangle", "red"),
    AlertKind.WARNING: Presentation("Warning", "alert-circle", "orange"),
    AlertKind.INFO: Presentation("Information", "info", "blue"),
    AlertKind.SUCCESS: Presentation("Success", "check", "green"),
}

CATEGORY_PRESENTATION: dict[AlertCategory, Presentation] = {
    AlertCategory.HEALTH: Presentation("Health", "heart", "red"),
    AlertCategory.FINANCIAL: Presentation("Financial", "dollar-sign", "green"),
    AlertCategory.FAMILY: Presentation("Family", "message-circle", "blue"),
    AlertCategory.MEDICATION: Presentation("Medications", "pill", "purple"),
    AlertCategory.SCHEDULE: Presentation("Schedules", "calendar", "indigo"),
    AlertCategory.SYSTEM: Presentation("System", "settings", "gray"),
    AlertCategory.AI: Presentation("AI", "brain", "violet"),
}

PRIORITY_PRESENTATION: dict[AlertPriority, Presentation] = {
    AlertPriority.HIGH: Presentation("High", "chevrons-up", "red"),
    AlertPriority.MEDIUM: Presentation("Medium", "chevron-up", "orange"),
    AlertPriority.LOW: Presentation("Low", "minus", "gray"),
}


def _check_exhaustive(table: dict, enum_type: type[Enum]) -> None:
    missing = set(enum_type) - set(table)
    if missing:
        names = ", ".join(sorted(m.value for m in missing))
        raise RuntimeError(f"No presentation for {enum_type.__name__}: {names}")


_check_exhaustive(KIND_PRESENTATION, AlertKind)
_check_exhaustive(CATEGORY_PRESENTATION, AlertCategory)
_check_exhaustive(PRIORITY_PRESENTATION, AlertPriority)


def describe(value: AlertKind | AlertCategory | AlertPriority) -> Presentation:
    """Return the display attributes for an enum member."""
    if isinstance(value, AlertKind):
        return KIND_PRESENTATION[value]
    if isinstance(value, AlertCategory):
        return CATEGORY_PRESENTATION[value]
    if isinstance(value, AlertPriority):
        return PRIORITY_PRESENTATION[value]
    raise TypeError(f"Unsupported presentation key: {value!r}")
