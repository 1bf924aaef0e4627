"""Signup, login, token rotation and logout over the credential store.

A user's session moves from anonymous to authenticated (token pair issued and
the refresh token stored), through any number of rotations, to logged out
(stored refresh token cleared). Only the stored refresh token can be exchanged
for a new pair, which is what makes rotation and logout revoke older tokens.

Two concurrent refreshes presenting the same token can both pass the stored
token comparison before either writes; the last write wins.
"""
import logging
from typing import Optional

from config import settings
from crud.user import UserCRUD, DUPLICATE_EMAIL_MESSAGE
from models.user import User, RoleEnum
from utils.errors import (
    BadRequest, Conflict, FeatureNotImplemented, NotFound, Unauthorized, ValidationFailed,
)
from utils.security import verify_password
from utils.tokens import TokenClaims, TokenError, TokenPair, issue_token_pair, verify_refresh_token
from utils.validators import (
    is_valid_email, is_valid_role, sanitize_string, validate_name, validate_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
PRIVILEGED_ROLES = {RoleEnum.admin.value, RoleEnum.instructor.value}


def claims_for(user: User) -> TokenClaims:
    return TokenClaims(id=user.id, email=user.email, role=user.role)


class AuthService:
    def __init__(self, user_crud: UserCRUD):
        self.user_crud = user_crud

    async def _start_session(self, user: User) -> TokenPair:
        tokens = issue_token_pair(claims_for(user))
        await self.user_crud.set_refresh_token(user.id, tokens.refresh_token)
        return tokens

    def _session_payload(self, user: User, tokens: TokenPair) -> dict:
        return {
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
            "user": user.public_view(),
        }

    async def signup(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
    ) -> dict:
        errors = []

        name = sanitize_string(name)
        name_ok, name_message = validate_name(name)
        if not name_ok:
            errors.append({"field": "name", "message": name_message})

        if not is_valid_email(email):
            errors.append({"field": "email", "message": "Please provide a valid email address"})

        password_ok, password_message = validate_password(password)
        if not password_ok:
            errors.append({"field": "password", "message": password_message})

        user_role = RoleEnum.student.value
        if role:
            if not is_valid_role(role):
                errors.append({
                    "field": "role",
                    "message": "Invalid role. Must be student, instructor, or admin",
                })
            elif role in PRIVILEGED_ROLES and not settings.ALLOW_PRIVILEGED_SIGNUP:
                errors.append({
                    "field": "role",
                    "message": "Only student accounts can be created through signup",
                })
            else:
                user_role = role

        if errors:
            raise ValidationFailed("Validation failed", errors=errors)

        if await self.user_crud.get_user_by_email(email):
            raise Conflict(DUPLICATE_EMAIL_MESSAGE)

        user = await self.user_crud.create_user(
            name=name,
            email=email,
            password=password,
            role=RoleEnum(user_role),
        )
        tokens = await self._start_session(user)
        logger.info("✅ User registered: %s (%s)", user.email, user.role)
        return self._session_payload(user, tokens)

    async def login(self, email: Optional[str], password: Optional[str]) -> dict:
        if not email or not password:
            raise BadRequest("Please provide email and password")

        if not is_valid_email(email):
            raise BadRequest("Please provide a valid email address")

        user = await self.user_crud.get_user_by_email(email)
        # Same answer for unknown account and wrong password
        if user is None or not verify_password(password, user.password_hash):
            logger.info("🔐 Failed login attempt for %s", email.lower())
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)

        tokens = await self._start_session(user)
        return self._session_payload(user, tokens)

    async def refresh(self, refresh_token: Optional[str]) -> dict:
        if not refresh_token:
            raise BadRequest("Refresh token is required")

        try:
            claims = verify_refresh_token(refresh_token)
        except TokenError:
            raise Unauthorized("Invalid or expired refresh token")

        user = await self.user_crud.get_user_by_id(claims.id)
        if user is None or user.refresh_token != refresh_token:
            logger.warning("🔁 Rejected superseded or revoked refresh token for user %s", claims.id)
            raise Unauthorized("Invalid refresh token")

        tokens = await self._start_session(user)
        return {
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
        }

    async def logout(self, user_id: str) -> None:
        await self.user_crud.set_refresh_token(user_id, None)
        logger.info("👋 User %s logged out", user_id)

    async def get_me(self, user_id: str) -> dict:
        user = await self.user_crud.get_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return {"user": user.public_view(include_created_at=True)}

    async def forgot_password(self, email: Optional[str]) -> None:
        if not is_valid_email(email):
            raise BadRequest("Please provide a valid email address")

        # The response never reveals whether the account exists
        user = await self.user_crud.get_user_by_email(email)
        if user:
            logger.info("Password reset requested for %s", user.email)

    async def reset_password(self, token: Optional[str], password: Optional[str]) -> None:
        if not token or not password:
            raise BadRequest("Token and password are required")

        password_ok, password_message = validate_password(password)
        if not password_ok:
            raise BadRequest(password_message)

        raise FeatureNotImplemented("Password reset is not available yet")
