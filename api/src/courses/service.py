# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course catalog service layer.

Business logic for:
- Active catalog listing (cached in Redis when available)
- Course lookup for enrollment and progress
- Admin create/update/deactivate with instructor validation
"""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING
from uuid import UUID

import orjson
from redis.exceptions import RedisError

from src.auth.permissions import PrincipalKind
from src.config.settings import get_settings
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.logging import get_logger
from src.core.redis import catalog_cache_key
from src.core.store import execute, was_applied

from .models import Course, normalize_course_code
from .schemas import CreateCourseRequest, UpdateCourseRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from src.auth.service import AuthService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    """Course code unknown (or inactive, where the operation needs it active)."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class DuplicateCourseError(ConflictError):
    """Course code already in the catalog."""

    def __init__(self, message: str = "Course code already exists"):
        super().__init__(message, "duplicate_course")


class InvalidCourseError(ValidationError):
    """Course fields break a catalog rule."""

    def __init__(self, message: str = "Invalid course data"):
        super().__init__(message, "invalid_input")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for the course catalog."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        auth_service: "AuthService",
        redis: "Redis | None" = None,
    ):
        """Initialize with Cassandra session, auth service and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.auth_service = auth_service
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE code = ?"
        )
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (code, title, description, price, duration_weeks, instructor_id,
             instructor_name, category, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._update_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, price = ?, duration_weeks = ?,
                instructor_id = ?, instructor_name = ?, category = ?,
                is_active = ?, updated_at = ?
            WHERE code = ?
            IF EXISTS
        """)
        self._set_course_active = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET is_active = ?, updated_at = ?
            WHERE code = ?
            IF EXISTS
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get(self, code: str) -> Course | None:
        """Find a course by code (active or not). Always reads the store."""
        result = await execute(
            self.session, self._get_course, [normalize_course_code(code)]
        )
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_or_raise(self, code: str) -> Course:
        """Find a course by code or raise CourseNotFoundError."""
        course = await self.get(code)
        if course is None:
            raise CourseNotFoundError
        return course

    async def get_active_or_raise(self, code: str) -> Course:
        """Find an active course; inactive courses count as not found."""
        course = await self.get(code)
        if course is None or not course.is_active:
            raise CourseNotFoundError
        return course

    async def list_all(self) -> list[Course]:
        """Every course, active or not, ordered by code."""
        result = await execute(self.session, self._list_courses)
        return sorted((Course.from_row(row) for row in result), key=lambda c: c.code)

    async def list_active(self) -> list[Course]:
        """Active courses ordered by code.

        Served from Redis when a fresh copy is cached; any Redis failure or
        unreadable payload falls back to the store.

        A read racing an admin write may re-cache the list it loaded before
        the write invalidated the cache. That copy is stale for at most
        ``catalog_cache_ttl_seconds``; enrollment reads prices from the store,
        never from this cache.
        """
        cached = await self._read_cache()
        if cached is not None:
            return cached

        courses = [c for c in await self.list_all() if c.is_active]
        await self._write_cache(courses)
        return courses

    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        """Courses taught by an instructor (active or not), ordered by code."""
        return [c for c in await self.list_all() if c.instructor_id == instructor_id]

    # ==========================================================================
    # Admin Operations
    # ==========================================================================

    async def create(self, data: CreateCourseRequest) -> Course:
        """Add a course.

        Raises:
            InvalidCourseError: Bad price/duration or instructor not usable
            DuplicateCourseError: Code already exists
        """
        _check_price_and_duration(data.price, data.duration_weeks)
        instructor_name = await self._resolve_instructor(data.instructor_id)

        now = datetime.now(UTC)
        course = Course(
            code=data.code,
            title=data.title,
            description=data.description,
            price=data.price,
            duration_weeks=data.duration_weeks,
            instructor_id=data.instructor_id,
            instructor_name=instructor_name,
            category=data.category,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        result = await execute(
            self.session,
            self._insert_course,
            [
                course.code,
                course.title,
                course.description,
                course.price,
                course.duration_weeks,
                course.instructor_id,
                course.instructor_name,
                course.category,
                course.is_active,
                course.created_at,
                course.updated_at,
            ],
        )
        if not was_applied(result):
            raise DuplicateCourseError

        await self.invalidate_cache()
        logger.info("course_created", course_code=course.code, price=str(course.price))
        return course

    async def update(self, code: str, data: UpdateCourseRequest) -> Course:
        """Apply a partial update. Existing enrollments keep their price snapshot.

        Raises:
            CourseNotFoundError: Unknown code
            InvalidCourseError: Bad price/duration or instructor not usable
        """
        course = await self.get_or_raise(code)
        changes = data.model_dump(exclude_unset=True)

        if "instructor_id" in changes and changes["instructor_id"] is not None:
            course.instructor_name = await self._resolve_instructor(
                changes["instructor_id"]
            )
            course.instructor_id = changes["instructor_id"]

        for field in ("title", "description", "category", "is_active"):
            if field in changes and changes[field] is not None:
                setattr(course, field, changes[field])
        if changes.get("price") is not None:
            course.price = Decimal(changes["price"])
        if changes.get("duration_weeks") is not None:
            course.duration_weeks = changes["duration_weeks"]

        _check_price_and_duration(course.price, course.duration_weeks)
        course.updated_at = datetime.now(UTC)

        result = await execute(
            self.session,
            self._update_course,
            [
                course.title,
                course.description,
                course.price,
                course.duration_weeks,
                course.instructor_id,
                course.instructor_name,
                course.category,
                course.is_active,
                course.updated_at,
                course.code,
            ],
        )
        if not was_applied(result):
            raise CourseNotFoundError

        await self.invalidate_cache()
        logger.info("course_updated", course_code=course.code, fields=sorted(changes))
        return course

    async def deactivate(self, code: str) -> Course:
        """Hide a course from the catalog. Existing enrollments are untouched.

        Raises:
            CourseNotFoundError: Unknown code
        """
        course = await self.get_or_raise(code)
        course.is_active = False
        course.updated_at = datetime.now(UTC)

        result = await execute(
            self.session,
            self._set_course_active,
            [False, course.updated_at, course.code],
        )
        if not was_applied(result):
            raise CourseNotFoundError

        await self.invalidate_cache()
        logger.info("course_deactivated", course_code=course.code)
        return course

    async def _resolve_instructor(self, instructor_id: UUID) -> str:
        """Return the instructor's name, or raise if they cannot teach."""
        instructor = await self.auth_service.get_principal(instructor_id)
        if instructor is None or instructor.kind != PrincipalKind.INSTRUCTOR.value:
            raise InvalidCourseError("Instructor does not exist")
        if not instructor.is_active:
            raise InvalidCourseError("Instructor is inactive")
        return instructor.name

    # ==========================================================================
    # Cache
    # ==========================================================================

    async def _read_cache(self) -> list[Course] | None:
        if not self.redis:
            return None
        try:
            raw = await self.redis.get(catalog_cache_key())
        except RedisError as e:
            logger.warning("catalog_cache_read_failed", error=str(e))
            return None
        if raw is None:
            return None
        try:
            return [Course.from_dict(item) for item in orjson.loads(raw)]
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            # orjson.JSONDecodeError is a ValueError
            logger.warning("catalog_cache_corrupt", error=str(e))
            return None

    async def _write_cache(self, courses: list[Course]) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(
                catalog_cache_key(),
                get_settings().catalog_cache_ttl_seconds,
                orjson.dumps([c.to_dict() for c in courses]),
            )
        except RedisError as e:
            logger.warning("catalog_cache_write_failed", error=str(e))

    async def invalidate_cache(self) -> None:
        """Drop the cached catalog after any admin write."""
        if not self.redis:
            return
        try:
            await self.redis.delete(catalog_cache_key())
        except RedisError as e:
            logger.warning("catalog_cache_invalidate_failed", error=str(e))


def _check_price_and_duration(price: Decimal, duration_weeks: int) -> None:
    if price < 0:
        raise InvalidCourseError("Price must not be negative")
    if duration_weeks <= 0:
        raise InvalidCourseError("Duration must be at least one week")
