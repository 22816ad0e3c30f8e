"""Tests for the enrollment ledger.

Enroll is claim (conditional insert with TTL), payment insert, then commit
(conditional update). These tests drive the full protocol against the
in-memory store, including injected failures at each step.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from cassandra import OperationTimedOut
from fakes import seed_course, seed_enrollment

from src.config.settings import get_settings
from src.core.exceptions import StoreUnavailableError
from src.courses.schemas import UpdateCourseRequest
from src.courses.service import CourseNotFoundError
from src.enrollments.models import EnrollmentStatus, PaymentMethod
from src.enrollments.service import AlreadyEnrolledError, EnrollmentInProgressError


@pytest.fixture
def priced_course(session, instructor_id) -> str:
    return seed_course(
        session,
        "CS101",
        title="Intro to Programming",
        price="30000",
        instructor_id=instructor_id,
        instructor_name="Ada Lovelace",
    )


class TestEnroll:
    @pytest.mark.asyncio
    async def test_enroll_creates_enrollment_and_payment(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        enrollment = await enrollment_service.enroll(
            student_id, "CS101", PaymentMethod("credit-card")
        )

        assert enrollment.amount_paid == Decimal("30000")
        assert enrollment.progress_percentage == 0
        assert enrollment.is_completed is False
        assert enrollment.is_active

        [row] = session.rows("enrollments")
        assert row["status"] == EnrollmentStatus.ACTIVE.value
        assert row["enrollment_id"] == enrollment.enrollment_id

        [payment] = session.rows("payments")
        assert payment["amount"] == Decimal("30000")
        assert payment["method"] == "credit_card"
        assert payment["status"] == "completed"
        assert payment["enrollment_id"] == enrollment.enrollment_id

    @pytest.mark.asyncio
    async def test_repeat_enroll_rejected(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CREDIT_CARD)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.enroll(student_id, "cs101", PaymentMethod.CASH)

        assert len(session.rows("enrollments")) == 1
        assert len(session.rows("payments")) == 1

    @pytest.mark.asyncio
    async def test_unknown_course(self, enrollment_service, session, student_id) -> None:
        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(student_id, "NOPE", PaymentMethod.CREDIT_CARD)

        assert session.rows("enrollments") == []
        assert session.rows("payments") == []

    @pytest.mark.asyncio
    async def test_inactive_course(self, enrollment_service, session, student_id) -> None:
        seed_course(session, "OLD9", is_active=False)

        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(student_id, "OLD9", PaymentMethod.CASH)

    @pytest.mark.asyncio
    async def test_course_check_comes_before_duplicate_check(
        self, enrollment_service, course_service, student_id, priced_course
    ) -> None:
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)
        await course_service.deactivate("CS101")

        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

    @pytest.mark.asyncio
    async def test_price_is_snapshotted(
        self, enrollment_service, course_service, student_id, priced_course
    ) -> None:
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)
        await course_service.update("CS101", UpdateCourseRequest(price=Decimal("1")))

        [entry] = await enrollment_service.student_ledger(student_id)

        assert entry.enrollment.amount_paid == Decimal("30000")
        assert entry.payment.amount == Decimal("30000")


class TestConcurrentEnroll:
    @pytest.mark.asyncio
    async def test_only_one_of_two_concurrent_enrolls_wins(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        results = await asyncio.gather(
            enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH),
            enrollment_service.enroll(student_id, "CS101", PaymentMethod.CREDIT_CARD),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyEnrolledError)
        assert len(session.rows("enrollments")) == 1
        assert len(session.rows("payments")) == 1

    @pytest.mark.asyncio
    async def test_loser_seeing_live_claim_is_told_to_retry(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        results = await asyncio.gather(
            enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH),
            enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH),
            return_exceptions=True,
        )

        [error] = [r for r in results if isinstance(r, Exception)]
        assert isinstance(error, EnrollmentInProgressError)
        assert error.code == "enrollment_in_progress"
        assert error.retryable is True

        # Once the winner committed, the retry gets a final answer
        with pytest.raises(AlreadyEnrolledError) as exc_info:
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)
        assert exc_info.value.code == "already_enrolled"
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_different_courses_are_independent(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        seed_course(session, "CS102", price="10")

        await asyncio.gather(
            enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH),
            enrollment_service.enroll(student_id, "CS102", PaymentMethod.CASH),
        )

        assert len(session.rows("enrollments")) == 2


class TestEnrollFailures:
    @pytest.mark.asyncio
    async def test_payment_failure_rolls_back_enrollment(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        session.fail_on("INSERT INTO lms_test.payments", OperationTimedOut())

        with pytest.raises(StoreUnavailableError):
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        assert session.rows("enrollments") == []
        assert session.rows("payments") == []

        # Nothing was left behind, so an immediate retry succeeds
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)
        assert len(session.rows("payments")) == 1

    @pytest.mark.asyncio
    async def test_commit_failure_removes_payment(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        session.fail_on(
            "UPDATE lms_test.enrollments USING TTL 0",
            OperationTimedOut(),
        )

        with pytest.raises(StoreUnavailableError):
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        assert session.rows("enrollments") == []
        assert session.rows("payments") == []

    @pytest.mark.asyncio
    async def test_lost_commit_acknowledgement_is_confirmed(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        """The store applied the commit but the reply timed out."""
        session.fail_on(
            "UPDATE lms_test.enrollments USING TTL 0",
            OperationTimedOut(),
            after_apply=True,
        )

        enrollment = await enrollment_service.enroll(
            student_id, "CS101", PaymentMethod.CASH
        )

        assert enrollment.is_active
        assert len(session.rows("enrollments")) == 1
        assert len(session.rows("payments")) == 1
        assert await enrollment_service.get_enrollment(student_id, "CS101") is not None

    @pytest.mark.asyncio
    async def test_abandoned_claim_expires(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        """A claim whose cleanup also failed blocks the pair only until its TTL."""
        session.fail_on("INSERT INTO lms_test.payments", OperationTimedOut())
        session.fail_on("DELETE FROM lms_test.enrollments", OperationTimedOut())

        with pytest.raises(StoreUnavailableError):
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        # The pending claim is invisible to readers
        assert await enrollment_service.get_enrollment(student_id, "CS101") is None
        assert await enrollment_service.student_ledger(student_id) == []

        session.advance(get_settings().enrollment_pending_ttl_seconds + 1)
        enrollment = await enrollment_service.enroll(
            student_id, "CS101", PaymentMethod.CASH
        )
        assert enrollment.is_active

    @pytest.mark.asyncio
    async def test_retry_while_abandoned_claim_lives_is_retryable(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        session.fail_on("INSERT INTO lms_test.payments", OperationTimedOut())
        session.fail_on("DELETE FROM lms_test.enrollments", OperationTimedOut())

        with pytest.raises(StoreUnavailableError):
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        with pytest.raises(EnrollmentInProgressError) as exc_info:
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        assert exc_info.value.retryable is True
        assert exc_info.value.code != "already_enrolled"
        assert await enrollment_service.get_enrollment(student_id, "CS101") is None
        assert session.rows("payments") == []

    @pytest.mark.asyncio
    async def test_claim_expiring_before_commit_is_not_reported_as_enrolled(
        self, enrollment_service, session, student_id, priced_course, monkeypatch
    ) -> None:
        write_payment = enrollment_service._write_payment

        async def slow_payment(payment):
            await write_payment(payment)
            session.advance(get_settings().enrollment_pending_ttl_seconds + 1)

        monkeypatch.setattr(enrollment_service, "_write_payment", slow_payment)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        assert not isinstance(exc_info.value, AlreadyEnrolledError)
        assert session.rows("enrollments") == []
        assert session.rows("payments") == []

        monkeypatch.undo()
        enrollment = await enrollment_service.enroll(
            student_id, "CS101", PaymentMethod.CASH
        )
        assert enrollment.is_active

    @pytest.mark.asyncio
    async def test_claim_taken_over_after_expiry(
        self, enrollment_service, session, student_id, priced_course, monkeypatch
    ) -> None:
        write_payment = enrollment_service._write_payment

        async def slow_payment(payment):
            await write_payment(payment)
            session.advance(get_settings().enrollment_pending_ttl_seconds + 1)
            seed_enrollment(session, student_id, "CS101", amount="30000", method=None)

        monkeypatch.setattr(enrollment_service, "_write_payment", slow_payment)

        with pytest.raises(AlreadyEnrolledError) as exc_info:
            await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        assert exc_info.value.code == "already_enrolled"
        # Our payment never attaches to the other enrollment
        assert session.rows("payments") == []

    @pytest.mark.asyncio
    async def test_committed_enrollment_outlives_claim_ttl(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)

        session.advance(get_settings().enrollment_pending_ttl_seconds * 10)

        assert await enrollment_service.get_enrollment(student_id, "CS101") is not None


class TestLedgerReads:
    @pytest.mark.asyncio
    async def test_student_ledger_newest_first(
        self, enrollment_service, session, student_id
    ) -> None:
        now = datetime.now(UTC)
        for code, age in (("OLD1", 3), ("NEW1", 1), ("MID1", 2)):
            eid = uuid4()
            session.put(
                "enrollments",
                student_id=student_id,
                course_code=code,
                enrollment_id=eid,
                status="active",
                enrolled_at=now - timedelta(days=age),
                amount_paid=Decimal("1"),
                progress_percentage=0,
                is_completed=False,
            )

        entries = await enrollment_service.student_ledger(student_id)

        assert [e.enrollment.course_code for e in entries] == ["NEW1", "MID1", "OLD1"]
        assert all(e.payment is None for e in entries)

    @pytest.mark.asyncio
    async def test_full_ledger_skips_pending_rows(
        self, enrollment_service, session, student_id, priced_course
    ) -> None:
        await enrollment_service.enroll(student_id, "CS101", PaymentMethod.CASH)
        session.put(
            "enrollments",
            student_id=uuid4(),
            course_code="CS101",
            enrollment_id=uuid4(),
            status="pending",
            progress_percentage=0,
        )

        ledger = await enrollment_service.full_ledger()

        assert len(ledger) == 1
        assert ledger[0].payment is not None
