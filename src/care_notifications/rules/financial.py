"""Financial rules: overdue fees and accounts payable."""
from datetime import datetime, timedelta

from ..models.alerts import AlertCategory, AlertKind, AlertPriority, CandidateAlert
from ..models.snapshot import EvaluationSnapshot

DUE_SOON_WINDOW = timedelta(days=7)


def format_amount(amount: float) -> str:
    return f"{amount:,.2f}"


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def evaluate_financial(snapshot: EvaluationSnapshot, now: datetime) -> list[CandidateAlert]:
    """Aggregate overdue and upcoming billing into at most three alerts."""
    candidates = []

    overdue_fees = [f for f in snapshot.monthly_fees if f.status == "overdue"]
    if overdue_fees:
        total = sum(f.amount + f.late_fee for f in overdue_fees)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.WARNING,
                category=AlertCategory.FINANCIAL,
                title="Overdue Monthly Fees",
                message=(
                    f"{_plural(len(overdue_fees), 'monthly fee', 'monthly fees')} overdue"
                    f" - Total: {format_amount(total)}"
                ),
                timestamp=now,
                priority=AlertPriority.MEDIUM,
                action_target="/financial",
                metadata={"count": len(overdue_fees), "total": total},
            )
        )

    horizon = now + DUE_SOON_WINDOW
    due_soon = [
        p for p in snapshot.accounts_payable
        if p.status == "pending" and p.due_date is not None and now < p.due_date < horizon
    ]
    if due_soon:
        total = sum(p.amount for p in due_soon)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.INFO,
                category=AlertCategory.FINANCIAL,
                title="Bills Due Soon",
                message=(
                    f"{_plural(len(due_soon), 'bill', 'bills')} due in the next 7 days"
                    f" - Total: {format_amount(total)}"
                ),
                timestamp=now,
                priority=AlertPriority.MEDIUM,
                action_target="/financial",
                metadata={"count": len(due_soon), "total": total},
            )
        )

    overdue_payables = [p for p in snapshot.accounts_payable if p.status == "overdue"]
    if overdue_payables:
        total = sum(p.amount for p in overdue_payables)
        candidates.append(
            CandidateAlert(
                kind=AlertKind.WARNING,
                category=AlertCategory.FINANCIAL,
                title="Overdue Bills",
                message=(
                    f"{_plural(len(overdue_payables), 'bill', 'bills')} overdue"
                    f" - Total: {format_amount(total)}"
                ),
                timestamp=now,
                priority=AlertPriority.HIGH,
                action_target="/financial",
                metadata={"count": len(overdue_payables), "total": total},
            )
        )

    return candidates
