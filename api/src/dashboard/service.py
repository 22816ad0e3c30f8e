"""Read-only rollups for students, instructors and admins.

Every number is derived from the ledger at request time. Nothing here is
stored, so there is no cache to invalidate when progress or enrollments change.
"""

from uuid import UUID

from src.auth.permissions import PrincipalKind
from src.auth.service import AuthService, PrincipalNotFoundError
from src.core.logging import get_logger
from src.courses.models import Course
from src.courses.service import CourseService
from src.enrollments.models import LedgerEntry
from src.enrollments.service import EnrollmentService

from .aggregations import average, group_by_course, revenue, summarize_progress
from .schemas import (
    AdminCourse,
    AdminCoursesResponse,
    AdminStatsResponse,
    DashboardEnrollment,
    InstructorCourse,
    InstructorCoursesResponse,
    InstructorStatsResponse,
    StudentDashboardResponse,
)


logger = get_logger(__name__)


class DashboardService:
    """Aggregates ledger, catalog and directory data into reports."""

    def __init__(
        self,
        enrollment_service: EnrollmentService,
        course_service: CourseService,
        auth_service: AuthService,
    ):
        self.enrollment_service = enrollment_service
        self.course_service = course_service
        self.auth_service = auth_service

    async def _courses_by_code(self) -> dict[str, Course]:
        return {c.code: c for c in await self.course_service.list_all()}

    # ==========================================================================
    # Student
    # ==========================================================================

    async def student_dashboard(self, student_id: UUID) -> StudentDashboardResponse:
        """Active enrollments of a student (newest first) plus a progress summary."""
        entries = await self.enrollment_service.student_ledger(student_id)
        courses = await self._courses_by_code()

        items = [self._dashboard_item(entry, courses) for entry in entries]
        logger.debug(
            "student_dashboard_built",
            student_id=str(student_id),
            enrollments=len(items),
        )
        return StudentDashboardResponse(
            student_id=student_id,
            enrollments=items,
            summary=summarize_progress(entries),
        )

    @staticmethod
    def _dashboard_item(
        entry: LedgerEntry, courses: dict[str, Course]
    ) -> DashboardEnrollment:
        enrollment, payment = entry
        course = courses.get(enrollment.course_code)
        return DashboardEnrollment(
            enrollment_id=enrollment.enrollment_id,
            course_code=enrollment.course_code,
            title=course.title if course else enrollment.course_code,
            instructor_name=course.instructor_name if course else None,
            enrolled_at=enrollment.enrolled_at,
            progress=enrollment.progress_percentage,
            is_completed=enrollment.is_completed,
            completion_date=enrollment.completion_date,
            amount_paid=enrollment.amount_paid,
            payment_method=payment.method if payment else None,
            paid_at=payment.paid_at if payment else None,
        )

    # ==========================================================================
    # Instructor
    # ==========================================================================

    async def _instructor_entries(
        self, instructor_id: UUID
    ) -> tuple[list[Course], dict[str, list[LedgerEntry]]]:
        principal = await self.auth_service.get_principal(instructor_id)
        if principal is None or principal.kind != PrincipalKind.INSTRUCTOR.value:
            raise PrincipalNotFoundError("Instructor not found")

        courses = await self.course_service.list_by_instructor(instructor_id)
        codes = {c.code for c in courses}
        ledger = await self.enrollment_service.full_ledger()
        grouped = group_by_course(e for e in ledger if e.enrollment.course_code in codes)
        return courses, grouped

    async def instructor_stats(self, instructor_id: UUID) -> InstructorStatsResponse:
        """Totals across every course the instructor teaches."""
        courses, grouped = await self._instructor_entries(instructor_id)
        entries = [e for group in grouped.values() for e in group]
        summary = summarize_progress(entries)

        return InstructorStatsResponse(
            instructor_id=instructor_id,
            total_courses=len(courses),
            total_students=len({e.enrollment.student_id for e in entries}),
            total_enrollments=summary.total,
            not_started=summary.not_started,
            in_progress=summary.in_progress,
            completed=summary.completed,
            average_progress=summary.average_progress,
            total_revenue=revenue(entries),
        )

    async def instructor_courses(
        self, instructor_id: UUID
    ) -> InstructorCoursesResponse:
        """Per-course enrollment counts and average progress."""
        courses, grouped = await self._instructor_entries(instructor_id)

        items = []
        for course in courses:
            entries = grouped.get(course.code, [])
            items.append(
                InstructorCourse(
                    code=course.code,
                    title=course.title,
                    description=course.description,
                    duration_weeks=course.duration_weeks,
                    price=course.price,
                    is_active=course.is_active,
                    enrolled_students=len(entries),
                    average_progress=average(
                        [e.enrollment.progress_percentage for e in entries]
                    ),
                )
            )
        return InstructorCoursesResponse(instructor_id=instructor_id, courses=items)

    # ==========================================================================
    # Admin
    # ==========================================================================

    async def admin_stats(self) -> AdminStatsResponse:
        """System-wide counts and revenue."""
        courses = await self.course_service.list_all()
        ledger = await self.enrollment_service.full_ledger()

        return AdminStatsResponse(
            total_courses=sum(1 for c in courses if c.is_active),
            total_students=await self.auth_service.count_principals(
                PrincipalKind.STUDENT
            ),
            total_instructors=await self.auth_service.count_principals(
                PrincipalKind.INSTRUCTOR
            ),
            total_enrollments=len(ledger),
            total_revenue=revenue(ledger),
        )

    async def admin_courses(self) -> AdminCoursesResponse:
        """Every course with its enrollment count and revenue."""
        courses = await self.course_service.list_all()
        grouped = group_by_course(await self.enrollment_service.full_ledger())

        return AdminCoursesResponse(
            courses=[
                AdminCourse(
                    code=course.code,
                    title=course.title,
                    instructor_id=course.instructor_id,
                    instructor_name=course.instructor_name,
                    price=course.price,
                    duration_weeks=course.duration_weeks,
                    category=course.category,
                    is_active=course.is_active,
                    total_enrollments=len(grouped.get(course.code, [])),
                    revenue=revenue(grouped.get(course.code, [])),
                )
                for course in courses
            ]
        )
