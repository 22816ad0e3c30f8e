"""Enrollment ledger models and Cassandra schema.

An enrollment and its payment are written by a claim/commit protocol:
1. claim: ``enrollments`` row inserted ``IF NOT EXISTS`` with status PENDING
   and a TTL, so an abandoned claim disappears on its own
2. payment row inserted
3. commit: the claim is flipped to ACTIVE (and made permanent) with a
   conditional update on our own ``enrollment_id``

Readers only ever see ACTIVE enrollments, and a payment only counts when its
``enrollment_id`` matches an ACTIVE enrollment. Partial writes are therefore
never observable.

Every write to ``enrollments`` is a lightweight transaction (claim, commit,
rollback and progress compare-and-set), so they are serialized per row.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple
from uuid import UUID, uuid4

from src.auth.models import ensure_utc_aware


class EnrollmentStatus(str, Enum):
    """Ledger state of an enrollment row."""

    PENDING = "pending"  # Claimed, payment not yet committed (invisible)
    ACTIVE = "active"  # Committed together with its payment


class PaymentMethod(str, Enum):
    """How the student paid. Payments are recorded, never processed."""

    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "PaymentMethod | None":
        # Accept "credit-card" / "Credit Card" spellings from older clients
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class PaymentStatus(str, Enum):
    """Recorded payment outcome."""

    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# One row per (student, course), forever. Partition per student so the
# student dashboard is a single-partition read.
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    student_id UUID,
    course_code TEXT,
    enrollment_id UUID,
    status TEXT,
    enrolled_at TIMESTAMP,
    amount_paid DECIMAL,
    progress_percentage INT,
    is_completed BOOLEAN,
    completion_date TIMESTAMP,
    last_progress_key TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((student_id), course_code)
) WITH CLUSTERING ORDER BY (course_code ASC)
"""

PAYMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments (
    student_id UUID,
    course_code TEXT,
    payment_id UUID,
    enrollment_id UUID,
    amount DECIMAL,
    method TEXT,
    status TEXT,
    paid_at TIMESTAMP,
    PRIMARY KEY ((student_id), course_code)
) WITH CLUSTERING ORDER BY (course_code ASC)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    PAYMENTS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


class Enrollment:
    """A student's enrollment in a course, including progress state."""

    def __init__(
        self,
        student_id: UUID,
        course_code: str,
        enrollment_id: UUID | None = None,
        status: str = EnrollmentStatus.ACTIVE.value,
        enrolled_at: datetime | None = None,
        amount_paid: Decimal = Decimal(0),
        progress_percentage: int = 0,
        is_completed: bool = False,
        completion_date: datetime | None = None,
        last_progress_key: str | None = None,
        updated_at: datetime | None = None,
    ):
        self.student_id = student_id
        self.course_code = course_code
        self.enrollment_id = enrollment_id or uuid4()
        self.status = status
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.amount_paid = Decimal(amount_paid)
        self.progress_percentage = progress_percentage
        self.is_completed = is_completed
        self.completion_date = ensure_utc_aware(completion_date)
        self.last_progress_key = last_progress_key
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE.value

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_code=row.course_code,
            enrollment_id=row.enrollment_id,
            status=row.status or EnrollmentStatus.PENDING.value,
            enrolled_at=row.enrolled_at,
            amount_paid=row.amount_paid if row.amount_paid is not None else Decimal(0),
            progress_percentage=row.progress_percentage or 0,
            is_completed=bool(row.is_completed),
            completion_date=row.completion_date,
            last_progress_key=row.last_progress_key,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.student_id}/{self.course_code} "
            f"{self.status} {self.progress_percentage}%>"
        )


class Payment:
    """Payment recorded alongside an enrollment. Immutable once committed."""

    def __init__(
        self,
        student_id: UUID,
        course_code: str,
        enrollment_id: UUID,
        amount: Decimal,
        method: str,
        payment_id: UUID | None = None,
        status: str = PaymentStatus.COMPLETED.value,
        paid_at: datetime | None = None,
    ):
        self.student_id = student_id
        self.course_code = course_code
        self.enrollment_id = enrollment_id
        self.amount = Decimal(amount)
        self.method = method
        self.payment_id = payment_id or uuid4()
        self.status = status
        self.paid_at = ensure_utc_aware(paid_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Payment":
        """Create Payment from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_code=row.course_code,
            enrollment_id=row.enrollment_id,
            amount=row.amount if row.amount is not None else Decimal(0),
            method=row.method,
            payment_id=row.payment_id,
            status=row.status,
            paid_at=row.paid_at,
        )

    def __repr__(self) -> str:
        return f"<Payment {self.payment_id} {self.amount} ({self.method})>"


class LedgerEntry(NamedTuple):
    """A committed enrollment with its matching payment."""

    enrollment: Enrollment
    payment: Payment | None


def join_ledger(
    enrollments: list[Enrollment], payments: list[Payment]
) -> list[LedgerEntry]:
    """Pair active enrollments with the payment written for them.

    Pending claims are dropped, and a payment only matches the enrollment it
    was written for (same ``enrollment_id``), so leftovers of a rolled-back
    attempt never attach to a later enrollment.
    """
    by_key = {(p.student_id, p.course_code): p for p in payments}
    entries = []
    for enrollment in enrollments:
        if not enrollment.is_active:
            continue
        payment = by_key.get((enrollment.student_id, enrollment.course_code))
        if payment is not None and payment.enrollment_id != enrollment.enrollment_id:
            payment = None
        entries.append(LedgerEntry(enrollment, payment))
    return entries
