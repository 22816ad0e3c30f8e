"""Pure rollups over ledger entries.

Nothing here touches the store; the service gathers entries and courses and
these functions derive every number at read time.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from src.enrollments.models import LedgerEntry

from .schemas import ProgressSummary


def average(values: list[int]) -> float:
    """Mean rounded to two decimals (0.0 for no values)."""
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def summarize_progress(entries: Iterable[LedgerEntry]) -> ProgressSummary:
    """Bucket enrollments by progress.

    Example:
        >>> summarize_progress([]).total
        0
    """
    values = [e.enrollment.progress_percentage for e in entries]
    completed = sum(1 for v in values if v >= 100)
    not_started = sum(1 for v in values if v == 0)
    return ProgressSummary(
        total=len(values),
        completed=completed,
        in_progress=len(values) - completed - not_started,
        not_started=not_started,
        average_progress=average(values),
    )


def revenue(entries: Iterable[LedgerEntry]) -> Decimal:
    """Sum of payments attached to the entries."""
    return sum(
        (e.payment.amount for e in entries if e.payment is not None), Decimal(0)
    )


def group_by_course(entries: Iterable[LedgerEntry]) -> dict[str, list[LedgerEntry]]:
    """Entries keyed by course code."""
    grouped: dict[str, list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.enrollment.course_code].append(entry)
    return grouped
