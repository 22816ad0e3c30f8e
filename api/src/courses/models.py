"""Database models for the course catalog.

Cassandra table definitions for:
- courses: keyed by the immutable course code

The catalog is small (tens to hundreds of rows) so listings read the whole
table and filter/sort in the service.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.auth.models import ensure_utc_aware


COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    code TEXT PRIMARY KEY,
    title TEXT,
    description TEXT,
    price DECIMAL,
    duration_weeks INT,
    instructor_id UUID,
    instructor_name TEXT,
    category TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
]


def normalize_course_code(code: str) -> str:
    """Course codes are compared upper-cased and trimmed ("cs101 " == "CS101")."""
    return code.strip().upper()


class Course:
    """Catalog entry.

    Attributes:
        code: Unique, immutable course code (e.g. CS101)
        title / description / category: Display fields
        price: Current price; enrollments snapshot it, never re-read it
        duration_weeks: Positive course length
        instructor_id: Teaching instructor
        instructor_name: Denormalized at write time for listings
        is_active: Inactive courses are hidden and cannot be enrolled in
    """

    def __init__(
        self,
        code: str,
        title: str = "",
        description: str | None = None,
        price: Decimal = Decimal(0),
        duration_weeks: int = 1,
        instructor_id: UUID | None = None,
        instructor_name: str | None = None,
        category: str | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.code = normalize_course_code(code)
        self.title = title
        self.description = description
        self.price = Decimal(price)
        self.duration_weeks = duration_weeks
        self.instructor_id = instructor_id
        self.instructor_name = instructor_name
        self.category = category
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            code=row.code,
            title=row.title or "",
            description=row.description,
            price=row.price if row.price is not None else Decimal(0),
            duration_weeks=row.duration_weeks or 0,
            instructor_id=row.instructor_id,
            instructor_name=row.instructor_name,
            category=row.category,
            is_active=bool(row.is_active),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dictionary (used for the catalog cache)."""
        return {
            "code": self.code,
            "title": self.title,
            "description": self.description,
            "price": str(self.price),
            "duration_weeks": self.duration_weeks,
            "instructor_id": str(self.instructor_id) if self.instructor_id else None,
            "instructor_name": self.instructor_name,
            "category": self.category,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Course":
        """Inverse of ``to_dict``."""
        return cls(
            code=data["code"],
            title=data.get("title") or "",
            description=data.get("description"),
            price=Decimal(data.get("price") or "0"),
            duration_weeks=data.get("duration_weeks") or 0,
            instructor_id=UUID(data["instructor_id"]) if data.get("instructor_id") else None,
            instructor_name=data.get("instructor_name"),
            category=data.get("category"),
            is_active=bool(data.get("is_active")),
            created_at=datetime.fromisoformat(data["created_at"])
            if data.get("created_at")
            else None,
            updated_at=datetime.fromisoformat(data["updated_at"])
            if data.get("updated_at")
            else None,
        )

    def __repr__(self) -> str:
        return f"<Course {self.code} ({'active' if self.is_active else 'inactive'})>"
