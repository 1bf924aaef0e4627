# dependencies.py
import logging
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from crud.course import CourseCRUD
from database import get_database
from models.user import RoleEnum
from utils.errors import AppError, Forbidden, InternalError, NotFound, Unauthorized
from utils.tokens import TokenClaims, TokenExpired, TokenInvalid, verify_access_token

logger = logging.getLogger(__name__)

# auto_error is off so a missing header yields our own envelope instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)

OwnerResolver = Callable[[Request, object], Awaitable[Optional[str]]]


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token provided, authorization denied")

    try:
        claims = verify_access_token(credentials.credentials)
    except TokenExpired:
        raise Unauthorized("Token has expired")
    except TokenInvalid:
        raise Unauthorized("Invalid token")

    request.state.user = claims
    return claims


def require_roles(*allowed_roles: RoleEnum):
    allowed = [RoleEnum(role).value for role in allowed_roles]

    async def role_checker(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if current_user.role not in allowed:
            raise Forbidden(f"Access denied. Required role: {' or '.join(allowed)}")
        return current_user

    return role_checker


def require_ownership_or_admin(resolve_owner_id: OwnerResolver):
    """Allow admins, or the caller whose id matches the resource owner's id.

    ``resolve_owner_id`` receives the request and the database and returns the
    owning user's id (or ``None`` when the resource has no owner).
    """

    async def ownership_checker(
        request: Request,
        current_user: TokenClaims = Depends(get_current_user),
        db=Depends(get_database),
    ) -> TokenClaims:
        if current_user.role == RoleEnum.admin.value:
            return current_user

        try:
            owner_id = await resolve_owner_id(request, db)
        except AppError:
            raise
        except Exception:
            logger.exception("Ownership resolver failed for %s", request.url.path)
            raise InternalError("Error checking resource ownership")

        if owner_id is not None and str(owner_id) == str(current_user.id):
            return current_user

        raise Forbidden("Access denied. You can only access your own resources.")

    return ownership_checker


require_admin = require_roles(RoleEnum.admin)
require_instructor_or_admin = require_roles(RoleEnum.instructor, RoleEnum.admin)
require_any_user = require_roles(RoleEnum.student, RoleEnum.instructor, RoleEnum.admin)


async def resolve_course_owner(request: Request, db) -> Optional[str]:
    course = await CourseCRUD(db).get_course(request.path_params["course_id"])
    if course is None:
        raise NotFound("Course not found")
    return course.instructor_id


require_course_owner_or_admin = require_ownership_or_admin(resolve_course_owner)
