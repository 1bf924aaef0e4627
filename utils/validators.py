# utils/validators.py
import re
from typing import Any, Optional, Tuple

from models.user import RoleEnum

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 100

ValidationResult = Tuple[bool, str]


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_REGEX.match(email) is not None


def validate_password(password: Any) -> ValidationResult:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
    if len(password) > PASSWORD_MAX_LENGTH:
        return False, f"Password must be less than {PASSWORD_MAX_LENGTH} characters"
    return True, "Password is valid"


def validate_name(name: Any) -> ValidationResult:
    if not isinstance(name, str) or not name.strip():
        return False, "Name is required"
    if len(name) > NAME_MAX_LENGTH:
        return False, f"Name must be less than {NAME_MAX_LENGTH} characters"
    return True, "Name is valid"


def sanitize_string(value: Any) -> str:
    """Trim and drop angle brackets so stored display strings never carry markup."""
    if not isinstance(value, str):
        return ""
    return value.strip().replace("<", "").replace(">", "")


def is_valid_role(role: Any) -> bool:
    return role in {r.value for r in RoleEnum}


def slugify(title: Optional[str]) -> str:
    """Lowercase, whitespace runs to hyphens, then drop anything outside [a-z0-9-]."""
    slug = re.sub(r"\s+", "-", (title or "").lower())
    return re.sub(r"[^a-z0-9-]", "", slug)
