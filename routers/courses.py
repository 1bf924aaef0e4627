import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from crud.course import CourseCRUD
from database import get_database
from dependencies import require_course_owner_or_admin, require_instructor_or_admin
from models.course import CategoryEnum, DifficultyEnum
from models.user import RoleEnum
from schemas.course import CourseCreate, CourseUpdate
from utils.errors import NotFound, success_response
from utils.rate_limiter import api_rate_limiter
from utils.tokens import TokenClaims

router = APIRouter(
    prefix="/api/courses",
    tags=["courses"],
    dependencies=[Depends(api_rate_limiter)],
)


async def get_course_crud(db=Depends(get_database)) -> CourseCRUD:
    return CourseCRUD(db)


@router.get("")
async def get_courses(
    category: Optional[CategoryEnum] = None,
    difficulty: Optional[DifficultyEnum] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    crud: CourseCRUD = Depends(get_course_crud),
):
    courses, total = await crud.get_courses(
        skip=(page - 1) * limit,
        limit=limit,
        category=category.value if category else None,
        difficulty=difficulty.value if difficulty else None,
        search=search,
    )
    return success_response("Courses retrieved successfully", {
        "courses": [course.to_response() for course in courses],
        "count": len(courses),
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit),
    })


@router.get("/{identifier}")
async def get_course(identifier: str, crud: CourseCRUD = Depends(get_course_crud)):
    course = await crud.get_course_by_id_or_slug(identifier)
    if course is None:
        raise NotFound("Course not found")
    return success_response("Course retrieved successfully", {"course": course.to_response()})


@router.post("")
async def create_course(
    course: CourseCreate,
    crud: CourseCRUD = Depends(get_course_crud),
    current_user: TokenClaims = Depends(require_instructor_or_admin),
):
    if current_user.role == RoleEnum.instructor.value:
        instructor_id = current_user.id
    else:
        instructor_id = course.instructor_id
    created = await crud.create_course(course, instructor_id=instructor_id)
    return success_response(
        "Course created successfully", {"course": created.to_response()}, status.HTTP_201_CREATED
    )


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    course_update: CourseUpdate,
    crud: CourseCRUD = Depends(get_course_crud),
    current_user: TokenClaims = Depends(require_course_owner_or_admin),
):
    updated = await crud.update_course(course_id, course_update)
    if updated is None:
        raise NotFound("Course not found")
    return success_response("Course updated successfully", {"course": updated.to_response()})


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    crud: CourseCRUD = Depends(get_course_crud),
    current_user: TokenClaims = Depends(require_course_owner_or_admin),
):
    if not await crud.delete_course(course_id):
        raise NotFound("Course not found")
    return success_response("Course deleted successfully")
