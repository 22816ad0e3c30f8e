"""Enrollment ledger: enrollments and their payments, committed together."""

from .models import (
    ENROLLMENTS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
    LedgerEntry,
    Payment,
    PaymentMethod,
    PaymentStatus,
)


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
    "LedgerEntry",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
]
