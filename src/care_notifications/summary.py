"""Summary aggregation over a loaded alert set."""
from typing import Iterable

from .models.alerts import Alert, AlertCategory, AlertKind
from .models.summary import AlertSummary


def summarize(alerts: Iterable[Alert]) -> AlertSummary:
    """Count alerts from scratch. An empty set gives an all-zero summary."""
    by_category = {category: 0 for category in AlertCategory}
    total = unread = critical = 0

    for alert in alerts:
        total += 1
        if not alert.read:
            unread += 1
        if alert.kind == AlertKind.CRITICAL:
            critical += 1
        by_category[alert.category] += 1

    return AlertSummary(total=total, unread=unread, critical=critical, by_category=by_category)
