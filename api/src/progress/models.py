"""Progress state machine.

Progress is a saturating counter stored on the enrollment row:

    new = min(100, current + increment)
    completed = new == 100
    completion_date = existing or (now if completed)

Once progress reaches 100 it never changes again, and ``completion_date`` is
written exactly once, on the transition that first reaches 100.
"""

from datetime import datetime
from typing import NamedTuple


MAX_PROGRESS = 100
MIN_INCREMENT = 1
MAX_INCREMENT = 100


class ProgressState(NamedTuple):
    """Progress of one enrollment."""

    progress: int
    completed: bool
    completion_date: datetime | None


def next_progress(
    current: int,
    increment: int,
    completion_date: datetime | None,
    now: datetime,
) -> ProgressState:
    """Apply one increment.

    Examples:
        >>> from datetime import datetime, UTC
        >>> now = datetime(2024, 1, 1, tzinfo=UTC)
        >>> next_progress(0, 10, None, now)
        ProgressState(progress=10, completed=False, completion_date=None)
        >>> next_progress(95, 10, None, now).progress
        100
        >>> next_progress(95, 10, None, now).completion_date == now
        True
    """
    progress = min(MAX_PROGRESS, max(0, current) + increment)
    completed = progress >= MAX_PROGRESS
    if completion_date is None and completed:
        completion_date = now
    return ProgressState(progress, completed, completion_date)
