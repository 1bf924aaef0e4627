# utils/tokens.py
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from config import settings
from models.user import RoleEnum

DURATION_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}
DURATION_REGEX = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    pass


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass


class TokenClaims(BaseModel):
    """Identity carried by both access and refresh tokens."""

    id: str
    email: str
    role: RoleEnum

    model_config = ConfigDict(use_enum_values=True)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def parse_duration(value: str) -> timedelta:
    """Parse expiries such as ``"15m"``, ``"7d"`` or ``"3600"`` (bare seconds)."""
    match = DURATION_REGEX.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * DURATION_UNITS[unit or "s"])


def _issue(claims: TokenClaims, token_type: str, secret: str, expires_in: str) -> str:
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = claims.model_dump()
    to_encode.update({
        "iat": now,
        "exp": now + parse_duration(expires_in),
        "jti": uuid.uuid4().hex,
        "type": token_type,
    })
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def _verify(token: str, token_type: str, secret: str) -> TokenClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired("Token has expired") from exc
    except JWTError as exc:
        raise TokenInvalid("Invalid token") from exc

    # Access and refresh tokens may be signed with the same secret
    if payload.get("type") != token_type:
        raise TokenInvalid("Invalid token")

    try:
        return TokenClaims(**payload)
    except ValidationError as exc:
        raise TokenInvalid("Invalid token") from exc


def issue_access_token(claims: TokenClaims) -> str:
    return _issue(claims, ACCESS_TOKEN_TYPE, settings.JWT_SECRET, settings.JWT_EXPIRE)


def issue_refresh_token(claims: TokenClaims) -> str:
    return _issue(claims, REFRESH_TOKEN_TYPE, settings.JWT_REFRESH_SECRET, settings.JWT_REFRESH_EXPIRE)


def verify_access_token(token: str) -> TokenClaims:
    return _verify(token, ACCESS_TOKEN_TYPE, settings.JWT_SECRET)


def verify_refresh_token(token: str) -> TokenClaims:
    return _verify(token, REFRESH_TOKEN_TYPE, settings.JWT_REFRESH_SECRET)


def issue_token_pair(claims: TokenClaims) -> TokenPair:
    return TokenPair(
        access_token=issue_access_token(claims),
        refresh_token=issue_refresh_token(claims),
    )
