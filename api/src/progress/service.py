# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Student progress tracking service layer.

Business logic for:
- Advancing course progress atomically (compare-and-set on the enrollment)
- Replay protection through an optional client idempotency key
- Reading the current progress of an enrollment
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

from src.config.settings import get_settings
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.logging import get_logger
from src.core.store import execute, was_applied
from src.courses.models import normalize_course_code
from src.courses.service import CourseNotFoundError
from src.enrollments.models import Enrollment, EnrollmentStatus

from .models import MAX_INCREMENT, MAX_PROGRESS, MIN_INCREMENT, ProgressState, next_progress


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.courses.service import CourseService
    from src.enrollments.service import EnrollmentService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentNotFoundError(NotFoundError):
    """Student is not enrolled in the course."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class InvalidIncrementError(ValidationError):
    """Increment outside 1..100."""

    def __init__(self, message: str = "Increment must be between 1 and 100"):
        super().__init__(message, "invalid_input")


class ProgressContentionError(ConflictError):
    """Too many concurrent updates on the same enrollment; safe to retry."""

    retryable = True

    def __init__(self, message: str = "Progress is being updated concurrently, retry"):
        super().__init__(message, "progress_contention")


class ProgressResult(NamedTuple):
    """Outcome of an advance call."""

    state: ProgressState
    applied: bool  # False for no-ops (already complete, replayed key)


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for course progress tracking."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        enrollment_service: "EnrollmentService",
        course_service: "CourseService",
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.enrollment_service = enrollment_service
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._advance = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET progress_percentage = ?, is_completed = ?, completion_date = ?,
                last_progress_key = ?, updated_at = ?
            WHERE student_id = ? AND course_code = ?
            IF status = ? AND progress_percentage = ?
        """)

    async def get_progress(self, student_id: UUID, course_code: str) -> ProgressState:
        """Current progress of an enrollment.

        Raises:
            EnrollmentNotFoundError
        """
        enrollment = await self.enrollment_service.get_enrollment(
            student_id, normalize_course_code(course_code)
        )
        if enrollment is None:
            raise EnrollmentNotFoundError
        return _state_of(enrollment)

    async def advance_progress(
        self,
        student_id: UUID,
        course_code: str,
        increment: int | None = None,
        idempotency_key: str | None = None,
    ) -> ProgressResult:
        """Advance progress by ``increment`` (default from settings, usually 10).

        Checks, in order: enrollment exists (EnrollmentNotFoundError), course
        exists (CourseNotFoundError).

        The write is conditional on the progress value just read, so two
        concurrent advances both land (one retries) instead of one being lost.
        Already-complete enrollments are returned unchanged without a write.
        A repeated ``idempotency_key`` (same as the last applied update)
        returns the current state without incrementing again.

        Raises:
            InvalidIncrementError
            EnrollmentNotFoundError
            CourseNotFoundError
            ProgressContentionError: CAS retries exhausted
        """
        settings = get_settings()
        step = settings.progress_default_increment if increment is None else increment
        if not MIN_INCREMENT <= step <= MAX_INCREMENT:
            raise InvalidIncrementError

        code = normalize_course_code(course_code)
        course_checked = False

        for attempt in range(1, settings.progress_max_cas_attempts + 1):
            enrollment = await self.enrollment_service.get_enrollment(student_id, code)
            if enrollment is None:
                raise EnrollmentNotFoundError

            if not course_checked:
                if await self.course_service.get(code) is None:
                    raise CourseNotFoundError
                course_checked = True

            if idempotency_key and enrollment.last_progress_key == idempotency_key:
                logger.info(
                    "progress_replay_ignored",
                    student_id=str(student_id),
                    course_code=code,
                )
                return ProgressResult(_state_of(enrollment), applied=False)

            if enrollment.progress_percentage >= MAX_PROGRESS:
                return ProgressResult(_state_of(enrollment), applied=False)

            now = datetime.now(UTC)
            state = next_progress(
                enrollment.progress_percentage, step, enrollment.completion_date, now
            )

            result = await execute(
                self.session,
                self._advance,
                [
                    state.progress,
                    state.completed,
                    state.completion_date,
                    idempotency_key,
                    now,
                    student_id,
                    code,
                    EnrollmentStatus.ACTIVE.value,
                    enrollment.progress_percentage,
                ],
            )
            if was_applied(result):
                logger.info(
                    "progress_advanced",
                    student_id=str(student_id),
                    course_code=code,
                    progress=state.progress,
                    increment=step,
                )
                if state.completed:
                    logger.info(
                        "course_completed", student_id=str(student_id), course_code=code
                    )
                return ProgressResult(state, applied=True)

            logger.debug(
                "progress_cas_retry",
                student_id=str(student_id),
                course_code=code,
                attempt=attempt,
            )

        logger.warning(
            "progress_contention",
            student_id=str(student_id),
            course_code=code,
            attempts=settings.progress_max_cas_attempts,
        )
        raise ProgressContentionError


def _state_of(enrollment: Enrollment) -> ProgressState:
    return ProgressState(
        progress=enrollment.progress_percentage,
        completed=enrollment.is_completed,
        completion_date=enrollment.completion_date,
    )
