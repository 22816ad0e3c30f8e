"""Database models for principals.

Cassandra table definitions for:
- principals: one row per principal, keyed by id
- principals_by_kind: per-kind directory keyed by email; the conditional
  insert into this table is what keeps emails unique within a kind

Note: Uses cassandra-driver directly (not ORM) for flexibility.
Tables are created via CQL statements in the database module.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import PrincipalKind


PRINCIPALS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.principals (
    id UUID PRIMARY KEY,
    kind TEXT,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    phone TEXT,
    department TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    last_login_at TIMESTAMP
)
"""

PRINCIPALS_BY_KIND_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.principals_by_kind (
    kind TEXT,
    email TEXT,
    principal_id UUID,
    name TEXT,
    department TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY ((kind), email)
) WITH CLUSTERING ORDER BY (email ASC)
"""

AUTH_TABLES_CQL = [
    PRINCIPALS_TABLE_CQL,
    PRINCIPALS_BY_KIND_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Principal:
    """An authenticated actor: student, instructor or admin.

    Attributes:
        id: Unique identifier (UUID)
        kind: Principal kind
        email: Email, unique within the kind (stored lower-cased)
        name: Display name
        password_hash: Argon2id hash (empty when loaded from the directory)
        phone: Optional phone number
        department: Instructor department (optional)
        is_active: Soft-deactivation flag
        created_at / updated_at / last_login_at: Audit timestamps
    """

    def __init__(
        self,
        id: UUID | None = None,
        kind: str = PrincipalKind.STUDENT.value,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        phone: str | None = None,
        department: str | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        last_login_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.kind = PrincipalKind(kind).value
        self.email = email.lower().strip()
        self.name = name
        self.password_hash = password_hash
        self.phone = phone
        self.department = department
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)
        self.last_login_at = ensure_utc_aware(last_login_at)

    @classmethod
    def from_row(cls, row: Any) -> "Principal":
        """Create Principal from a ``principals`` row."""
        return cls(
            id=row.id,
            kind=row.kind,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash or "",
            phone=row.phone,
            department=row.department,
            is_active=bool(row.is_active),
            created_at=row.created_at,
            updated_at=row.updated_at,
            last_login_at=row.last_login_at,
        )

    @classmethod
    def from_directory_row(cls, row: Any) -> "Principal":
        """Create Principal from a ``principals_by_kind`` row (no credentials)."""
        return cls(
            id=row.principal_id,
            kind=row.kind,
            email=row.email,
            name=row.name,
            department=row.department,
            is_active=bool(row.is_active),
            created_at=row.created_at,
        )

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary (excludes password_hash by default)."""
        data = {
            "id": self.id,
            "kind": self.kind,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "department": self.department,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "last_login_at": self.last_login_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<Principal {self.email} ({self.kind})>"
