"""Student progress tracking module.

Provides:
- The saturating progress state machine
- Atomic progress advancement on enrollments
"""

from .models import MAX_PROGRESS, ProgressState, next_progress


__all__ = [
    "MAX_PROGRESS",
    "ProgressState",
    "next_progress",
]
