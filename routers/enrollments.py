from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from crud.course import CourseCRUD
from crud.enrollment import EnrollmentCRUD
from crud.user import UserCRUD
from database import get_database
from dependencies import (
    get_current_user, require_admin, require_any_user,
    require_course_owner_or_admin, require_instructor_or_admin,
)
from schemas.course import EnrollmentCreate, ProgressUpdate
from services.enrollment_service import EnrollmentService
from utils.errors import success_response
from utils.rate_limiter import api_rate_limiter
from utils.tokens import TokenClaims

router = APIRouter(
    prefix="/api/enrollments",
    tags=["enrollments"],
    dependencies=[Depends(api_rate_limiter)],
)


async def get_enrollment_service(db=Depends(get_database)) -> EnrollmentService:
    return EnrollmentService(EnrollmentCRUD(db), CourseCRUD(db), UserCRUD(db))


# Fixed paths are declared before "/{enrollment_id}/..." so they never match as ids
@router.get("/all")
async def get_all_enrollments(
    course_id: Optional[str] = Query(None, alias="courseId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: TokenClaims = Depends(require_admin),
):
    enrollments = await service.list_all(course_id=course_id, user_id=user_id)
    return success_response("Enrollments retrieved successfully", {
        "count": len(enrollments),
        "enrollments": enrollments,
    })


@router.get("/course/{course_id}", dependencies=[Depends(require_instructor_or_admin)])
async def get_course_enrollments(
    course_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: TokenClaims = Depends(require_course_owner_or_admin),
):
    enrollments = await service.list_for_course(course_id)
    return success_response("Course enrollments retrieved successfully", {
        "count": len(enrollments),
        "enrollments": enrollments,
    })


@router.get("/me")
async def get_my_enrollments(
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: TokenClaims = Depends(get_current_user),
):
    enrollments = await service.list_for_user(current_user.id)
    return success_response("Enrollments retrieved successfully", {
        "count": len(enrollments),
        "enrollments": enrollments,
    })


@router.post("")
async def enroll_in_course(
    payload: EnrollmentCreate,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: TokenClaims = Depends(require_any_user),
):
    enrollment = await service.enroll(current_user.id, payload.course_id)
    return success_response(
        "Enrolled successfully", {"enrollment": enrollment.to_response()}, status.HTTP_201_CREATED
    )


@router.put("/{enrollment_id}/progress")
async def update_progress(
    enrollment_id: str,
    payload: ProgressUpdate,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: TokenClaims = Depends(get_current_user),
):
    enrollment = await service.update_progress(
        enrollment_id, payload.lesson_id, payload.completed, current_user
    )
    return success_response("Progress updated successfully", {"enrollment": enrollment.to_response()})
