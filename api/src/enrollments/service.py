# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment ledger service layer.

Business logic for:
- Enrolling a student in a course together with its payment, atomically
- Ledger reads for one student or for the whole system (reporting)

See ``models`` for the claim/commit protocol that replaces a multi-table
transaction.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from src.config.settings import get_settings
from src.core.exceptions import ConflictError, StoreUnavailableError
from src.core.logging import get_logger
from src.core.store import execute, was_applied

from .models import (
    Enrollment,
    EnrollmentStatus,
    LedgerEntry,
    Payment,
    PaymentMethod,
    PaymentStatus,
    join_ledger,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.courses.service import CourseService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AlreadyEnrolledError(ConflictError):
    """The student already holds this course."""

    def __init__(
        self,
        message: str = "Already enrolled in this course",
        code: str = "already_enrolled",
    ):
        super().__init__(message, code)


class EnrollmentInProgressError(AlreadyEnrolledError):
    """The pair is held by an uncommitted claim of another enroll call.

    Nothing is visible yet: the claim either commits (a retry then gets
    AlreadyEnrolledError) or expires (a retry then succeeds).
    """

    retryable = True

    def __init__(
        self, message: str = "An enrollment for this course is in progress, retry"
    ):
        super().__init__(message, "enrollment_in_progress")


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Authoritative store of enrollment and payment facts."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
    ):
        """Initialize with Cassandra session and the catalog."""
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Reads
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE student_id = ? AND course_code = ?
        """)
        self._list_student_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE student_id = ?"
        )
        self._list_student_payments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.payments WHERE student_id = ?"
        )
        self._get_payment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.payments
            WHERE student_id = ? AND course_code = ?
        """)
        self._scan_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments"
        )
        self._scan_payments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.payments"
        )

        # Claim / commit / rollback
        self._claim_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (student_id, course_code, enrollment_id, status, enrolled_at,
             amount_paid, progress_percentage, is_completed, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
            USING TTL ?
        """)
        self._insert_payment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments
            (student_id, course_code, payment_id, enrollment_id, amount, method,
             status, paid_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        # Rewrites every regular column with TTL 0 so the row outlives the claim
        self._commit_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments USING TTL 0
            SET status = ?, enrollment_id = ?, enrolled_at = ?, amount_paid = ?,
                progress_percentage = ?, is_completed = ?, updated_at = ?
            WHERE student_id = ? AND course_code = ?
            IF status = ? AND enrollment_id = ?
        """)
        self._release_claim = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE student_id = ? AND course_code = ?
            IF status = ? AND enrollment_id = ?
        """)
        self._delete_payment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.payments
            WHERE student_id = ? AND course_code = ?
            IF enrollment_id = ?
        """)

    # ==========================================================================
    # Enroll
    # ==========================================================================

    async def enroll(
        self,
        student_id: UUID,
        course_code: str,
        payment_method: PaymentMethod,
    ) -> Enrollment:
        """Enroll a student and record the payment as one atomic unit.

        Checks, in order:
        1. course exists and is active, else CourseNotFoundError
        2. no enrollment for the pair, else AlreadyEnrolledError (or the
           retryable EnrollmentInProgressError while an uncommitted claim
           is still alive)

        ``amount_paid`` is the course price read from the store right now;
        later price changes never touch it.

        Raises:
            CourseNotFoundError
            AlreadyEnrolledError
            EnrollmentInProgressError
            StoreUnavailableError: The store failed; nothing is visible and the
                call can be retried.
        """
        course = await self.course_service.get_active_or_raise(course_code)

        existing = (
            await execute(self.session, self._get_enrollment, [student_id, course.code])
        ).one()
        if existing is not None:
            raise _conflict_for(existing)

        now = datetime.now(UTC)
        enrollment = Enrollment(
            student_id=student_id,
            course_code=course.code,
            enrollment_id=uuid4(),
            status=EnrollmentStatus.PENDING.value,
            enrolled_at=now,
            amount_paid=course.price,
            progress_percentage=0,
            is_completed=False,
            updated_at=now,
        )
        payment = Payment(
            student_id=student_id,
            course_code=course.code,
            enrollment_id=enrollment.enrollment_id,
            amount=course.price,
            method=PaymentMethod(payment_method).value,
            status=PaymentStatus.COMPLETED.value,
            paid_at=now,
        )

        # The conditional insert is the uniqueness arbiter; the read above is
        # only an early exit.
        claim = await execute(
            self.session,
            self._claim_enrollment,
            [
                enrollment.student_id,
                enrollment.course_code,
                enrollment.enrollment_id,
                EnrollmentStatus.PENDING.value,
                enrollment.enrolled_at,
                enrollment.amount_paid,
                0,
                False,
                enrollment.updated_at,
                get_settings().enrollment_pending_ttl_seconds,
            ],
        )
        if not was_applied(claim):
            logger.info(
                "enrollment_claim_lost",
                student_id=str(student_id),
                course_code=course.code,
            )
            raise _conflict_for(claim.one())

        try:
            await self._write_payment(payment)
            commit = await execute(
                self.session,
                self._commit_enrollment,
                [
                    EnrollmentStatus.ACTIVE.value,
                    enrollment.enrollment_id,
                    enrollment.enrolled_at,
                    enrollment.amount_paid,
                    0,
                    False,
                    enrollment.updated_at,
                    enrollment.student_id,
                    enrollment.course_code,
                    EnrollmentStatus.PENDING.value,
                    enrollment.enrollment_id,
                ],
            )
            if not was_applied(commit):
                # Our claim expired before the commit
                raise _conflict_for(commit.one())
        except Exception:
            if await self._rollback(enrollment):
                return self._committed(enrollment)
            raise

        logger.info(
            "enrollment_committed",
            student_id=str(student_id),
            course_code=course.code,
            enrollment_id=str(enrollment.enrollment_id),
            amount_paid=str(enrollment.amount_paid),
            payment_method=payment.method,
        )
        return self._committed(enrollment)

    async def _write_payment(self, payment: Payment) -> None:
        await execute(
            self.session,
            self._insert_payment,
            [
                payment.student_id,
                payment.course_code,
                payment.payment_id,
                payment.enrollment_id,
                payment.amount,
                payment.method,
                payment.status,
                payment.paid_at,
            ],
        )

    async def _rollback(self, enrollment: Enrollment) -> bool:
        """Undo a failed enroll.

        Returns True when the commit turns out to have been applied after all
        (e.g. the commit call timed out after the store accepted it); the
        enrollment then stands and nothing is removed.
        """
        released = await execute(
            self.session,
            self._release_claim,
            [
                enrollment.student_id,
                enrollment.course_code,
                EnrollmentStatus.PENDING.value,
                enrollment.enrollment_id,
            ],
        )
        if not was_applied(released):
            current = released.one()
            if (
                current is not None
                and getattr(current, "status", None) == EnrollmentStatus.ACTIVE.value
                and getattr(current, "enrollment_id", None) == enrollment.enrollment_id
            ):
                logger.warning(
                    "enrollment_commit_confirmed",
                    enrollment_id=str(enrollment.enrollment_id),
                )
                return True

        await execute(
            self.session,
            self._delete_payment,
            [enrollment.student_id, enrollment.course_code, enrollment.enrollment_id],
        )
        logger.warning(
            "enrollment_rolled_back",
            student_id=str(enrollment.student_id),
            course_code=enrollment.course_code,
            enrollment_id=str(enrollment.enrollment_id),
        )
        return False

    @staticmethod
    def _committed(enrollment: Enrollment) -> Enrollment:
        enrollment.status = EnrollmentStatus.ACTIVE.value
        return enrollment

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_enrollment(
        self, student_id: UUID, course_code: str
    ) -> Enrollment | None:
        """Committed enrollment for the pair, or None (pending claims are hidden)."""
        row = (
            await execute(self.session, self._get_enrollment, [student_id, course_code])
        ).one()
        if row is None:
            return None
        enrollment = Enrollment.from_row(row)
        return enrollment if enrollment.is_active else None

    async def get_payment(self, enrollment: Enrollment) -> Payment | None:
        """Payment written for this enrollment."""
        row = (
            await execute(
                self.session,
                self._get_payment,
                [enrollment.student_id, enrollment.course_code],
            )
        ).one()
        if row is None or row.enrollment_id != enrollment.enrollment_id:
            return None
        return Payment.from_row(row)

    async def student_ledger(self, student_id: UUID) -> list[LedgerEntry]:
        """Committed enrollments of one student, newest first."""
        enrollments = await execute(
            self.session, self._list_student_enrollments, [student_id]
        )
        payments = await execute(self.session, self._list_student_payments, [student_id])
        entries = join_ledger(
            [Enrollment.from_row(r) for r in enrollments],
            [Payment.from_row(r) for r in payments],
        )
        return sorted(entries, key=lambda e: e.enrollment.enrolled_at, reverse=True)

    async def full_ledger(self) -> list[LedgerEntry]:
        """Every committed enrollment in the system (reporting scan)."""
        enrollments = await execute(self.session, self._scan_enrollments)
        payments = await execute(self.session, self._scan_payments)
        return join_ledger(
            [Enrollment.from_row(r) for r in enrollments],
            [Payment.from_row(r) for r in payments],
        )


def _conflict_for(row) -> ConflictError | StoreUnavailableError:
    """Error for a write that found the pair held by another row (or by none).

    Only a committed row means "already enrolled"; a live claim or a vanished
    row leaves nothing visible, so the caller is told to retry.
    """
    status = getattr(row, "status", None) if row is not None else None
    if status == EnrollmentStatus.ACTIVE.value:
        return AlreadyEnrolledError()
    if status == EnrollmentStatus.PENDING.value:
        return EnrollmentInProgressError()
    return StoreUnavailableError("Enrollment claim expired before commit, please retry")
