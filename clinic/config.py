"""
Runtime configuration loaded from environment variables.

A ``.env`` file at the project root is honoured for local development.
Values that tests need to flip at runtime (rate limiting) are read through
small helper functions instead of module constants.
"""
import os
import warnings
from pathlib import Path
from typing import List

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

SERVICE_NAME = "dental-clinic-service"
API_PREFIX = "/api/v1"

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
PASSWORD_RESET_EXPIRE_MINUTES = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))

DEFAULT_CORS_ORIGINS = "http://localhost,http://localhost:3000,http://localhost:8000"


def _normalize_list_env(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


CORS_ORIGINS = _normalize_list_env("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)


def is_production() -> bool:
    return ENVIRONMENT == "production"


def rate_limit_enabled() -> bool:
    return os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def rate_limit_window_seconds() -> int:
    return int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))


def rate_limit_max_requests() -> int:
    return int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))


def auth_rate_limit_max_requests() -> int:
    return int(os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "5"))


def build_info() -> dict:
    """Version and build metadata injected by the deployment pipeline."""
    return {
        "service_name": SERVICE_NAME,
        "version": os.getenv("VERSION", "1.0.0"),
        "build_sha": os.getenv("BUILD_SHA") or None,
        "build_timestamp": os.getenv("BUILD_TIMESTAMP") or None,
        "image_tag": os.getenv("IMAGE_TAG") or None,
        "environment": ENVIRONMENT,
    }
