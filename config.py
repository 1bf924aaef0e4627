# config.py
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ALLOWED_ENVIRONMENTS = ("development", "production", "test")
MIN_SECRET_LENGTH = 32


class ConfigurationError(RuntimeError):
    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Environment variable validation failed: " + "; ".join(problems))


def _get_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


class Settings:
    """Runtime configuration read from the process environment."""

    def __init__(self):
        self.MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "elearning")

        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        # Refresh tokens fall back to the access secret when no dedicated one is set
        self.JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET") or self.JWT_SECRET
        self.JWT_EXPIRE = os.getenv("JWT_EXPIRE") or "7d"
        self.JWT_REFRESH_EXPIRE = os.getenv("JWT_REFRESH_EXPIRE") or "30d"
        self.JWT_ALGORITHM = "HS256"

        self.BCRYPT_ROUNDS = _get_int("BCRYPT_ROUNDS", 10)

        self.ENVIRONMENT = os.getenv("ENVIRONMENT") or "development"
        self.FRONTEND_URL = os.getenv("FRONTEND_URL") or "http://localhost:3000"
        self.LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

        self.AUTH_RATE_LIMIT_ENABLED = _get_bool(
            "AUTH_RATE_LIMIT_ENABLED", self.ENVIRONMENT != "development"
        )
        self.RATE_LIMIT_SWEEP_SECONDS = _get_int("RATE_LIMIT_SWEEP_SECONDS", 300)

        # Whether signup may request the instructor/admin role
        self.ALLOW_PRIVILEGED_SIGNUP = _get_bool("ALLOW_PRIVILEGED_SIGNUP", False)

    @property
    def cors_origins(self) -> List[str]:
        origins = [self.FRONTEND_URL, "http://localhost:3000", "http://localhost:5173"]
        return list(dict.fromkeys(origins))


def validate_settings(config: Settings) -> None:
    """Check the loaded configuration and fail loudly on every problem at once."""
    problems = []

    if not config.JWT_SECRET.strip():
        problems.append("Missing required environment variable: JWT_SECRET")
    elif len(config.JWT_SECRET) < MIN_SECRET_LENGTH:
        problems.append(
            f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters long "
            f"(current length: {len(config.JWT_SECRET)})"
        )

    if config.ENVIRONMENT not in ALLOWED_ENVIRONMENTS:
        problems.append(
            f"ENVIRONMENT must be one of: {', '.join(ALLOWED_ENVIRONMENTS)} "
            f"(current value: {config.ENVIRONMENT})"
        )

    if not 4 <= config.BCRYPT_ROUNDS <= 31:
        problems.append("BCRYPT_ROUNDS must be between 4 and 31")

    if config.RATE_LIMIT_SWEEP_SECONDS <= 0:
        problems.append("RATE_LIMIT_SWEEP_SECONDS must be positive")

    if os.getenv("JWT_REFRESH_SECRET") is None:
        logger.warning("⚠️  JWT_REFRESH_SECRET not set, refresh tokens share JWT_SECRET")
    elif len(config.JWT_REFRESH_SECRET) < MIN_SECRET_LENGTH:
        logger.warning(
            "⚠️  JWT_REFRESH_SECRET should be at least %d characters for security",
            MIN_SECRET_LENGTH,
        )

    if not config.AUTH_RATE_LIMIT_ENABLED:
        logger.warning("⚠️  Auth rate limiting is disabled (environment: %s)", config.ENVIRONMENT)

    if problems:
        for problem in problems:
            logger.error("❌ %s", problem)
        raise ConfigurationError(problems)


settings = Settings()
