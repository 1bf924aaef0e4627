import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from bson import ObjectId

from crud.course import CourseCRUD
from crud.enrollment import EnrollmentCRUD, ALREADY_ENROLLED_MESSAGE
from crud.user import UserCRUD
from models.course import Course, Enrollment
from utils.errors import BadRequest, Conflict, Forbidden, NotFound
from utils.tokens import TokenClaims

logger = logging.getLogger(__name__)


def compute_progress_percentage(progress: Dict[str, bool], lesson_ids: Sequence[str]) -> int:
    """Share of the course's current lessons marked complete, as a whole percent.

    Rounds half up, but never reports 100 until every lesson is complete.
    Entries for lessons no longer in the course are ignored.
    """
    total = len(lesson_ids)
    if total == 0:
        return 0
    completed = sum(1 for lesson_id in lesson_ids if progress.get(lesson_id) is True)
    percentage = (200 * completed + total) // (2 * total)
    if completed < total:
        percentage = min(percentage, 99)
    return percentage


def resolve_completed_at(
    percentage: int, completed_at: Optional[datetime], now: datetime
) -> Optional[datetime]:
    """Stamp completion on reaching 100%, clear it when progress drops below."""
    if percentage == 100:
        return completed_at or now
    return None


class EnrollmentService:
    def __init__(self, enrollment_crud: EnrollmentCRUD, course_crud: CourseCRUD, user_crud: UserCRUD):
        self.enrollment_crud = enrollment_crud
        self.course_crud = course_crud
        self.user_crud = user_crud

    async def enroll(self, user_id: str, course_id: Optional[str]) -> Enrollment:
        if not course_id:
            raise BadRequest("Please provide courseId")
        if not ObjectId.is_valid(course_id):
            raise BadRequest("Invalid ID format")

        course = await self.course_crud.get_course(course_id)
        if course is None:
            raise NotFound("Course not found")

        if await self.enrollment_crud.get_user_course_enrollment(user_id, course_id):
            raise Conflict(ALREADY_ENROLLED_MESSAGE, status_code=409)

        enrollment = await self.enrollment_crud.create_enrollment(user_id, course_id)
        logger.info("🎓 User %s enrolled in course %s", user_id, course_id)
        return enrollment

    async def update_progress(
        self,
        enrollment_id: str,
        lesson_id: Optional[str],
        completed: Optional[bool],
        caller: TokenClaims,
    ) -> Enrollment:
        if not lesson_id or completed is None:
            raise BadRequest("Please provide lessonId and completed status")

        enrollment = await self.enrollment_crud.get_enrollment_by_id(enrollment_id)
        if enrollment is None:
            raise NotFound("Enrollment not found")

        # Progress belongs to the enrolled user alone, admins included
        if enrollment.user_id != caller.id:
            raise Forbidden("Not authorized to update this enrollment")

        course = await self.course_crud.get_course(enrollment.course_id)
        if course is None:
            raise NotFound("Course not found")

        lesson_ids = course.lesson_ids
        if lesson_id not in lesson_ids:
            raise NotFound("Lesson not found in this course")

        progress = dict(enrollment.progress)
        progress[lesson_id] = completed
        percentage = compute_progress_percentage(progress, lesson_ids)
        completed_at = resolve_completed_at(
            percentage, enrollment.completed_at, datetime.now(timezone.utc)
        )

        updated = await self.enrollment_crud.save_progress(
            enrollment.id, progress, percentage, completed_at
        )
        if updated is None:
            raise NotFound("Enrollment not found")

        if completed_at and not enrollment.completed_at:
            logger.info("🏁 Enrollment %s completed", enrollment.id)
        return updated

    async def _courses_by_id(self, enrollments: List[Enrollment]) -> Dict[str, Course]:
        course_ids = {enrollment.course_id for enrollment in enrollments}
        courses = await self.course_crud.get_courses_by_ids(list(course_ids))
        return {course.id: course for course in courses}

    async def list_for_user(self, user_id: str) -> List[dict]:
        enrollments = await self.enrollment_crud.find_enrollments(user_id=user_id)
        courses = await self._courses_by_id(enrollments)
        results = []
        for enrollment in enrollments:
            data = enrollment.to_response()
            course = courses.get(enrollment.course_id)
            data["course"] = course.summary() if course else None
            results.append(data)
        return results

    async def list_all(self, course_id: Optional[str] = None, user_id: Optional[str] = None) -> List[dict]:
        for value in (course_id, user_id):
            if value and not ObjectId.is_valid(value):
                raise BadRequest("Invalid ID format")

        enrollments = await self.enrollment_crud.find_enrollments(user_id=user_id, course_id=course_id)
        courses = await self._courses_by_id(enrollments)
        users = await self.user_crud.get_users_by_ids(list({e.user_id for e in enrollments}))
        users_by_id = {user.id: user for user in users}

        results = []
        for enrollment in enrollments:
            data = enrollment.to_response()
            course = courses.get(enrollment.course_id)
            user = users_by_id.get(enrollment.user_id)
            data["course"] = {"id": course.id, "title": course.title} if course else None
            data["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
            results.append(data)
        return results

    async def list_for_course(self, course_id: str) -> List[dict]:
        course = await self.course_crud.get_course(course_id)
        if course is None:
            raise NotFound("Course not found")

        enrollments = await self.enrollment_crud.find_enrollments(course_id=course_id)
        users = await self.user_crud.get_users_by_ids(list({e.user_id for e in enrollments}))
        users_by_id = {user.id: user for user in users}

        results = []
        for enrollment in enrollments:
            data = enrollment.to_response()
            user = users_by_id.get(enrollment.user_id)
            data["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
            results.append(data)
        return results
