"""
Service metadata and health endpoints. No authentication required.
"""
import logging

from fastapi import APIRouter
from starlette.responses import JSONResponse

from clinic.config import API_PREFIX, SERVICE_NAME, build_info
from clinic.db.database import check_database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
def root():
    info = build_info()
    return {
        "service": SERVICE_NAME,
        "version": info["version"],
        "docs": "/docs",
        "api_prefix": API_PREFIX,
    }


@router.get("/health")
def health_check():
    try:
        check_database()
    except Exception as e:
        logger.error("health_check_failed: %s", e)
        return JSONResponse(
            {"status": "unhealthy", "service": SERVICE_NAME, "database": "disconnected"},
            status_code=503,
        )
    return {"status": "healthy", "service": SERVICE_NAME, "database": "connected"}


@router.get("/version")
def version():
    info = build_info()
    return {"service_name": info["service_name"], "version": info["version"]}


@router.get("/build-info")
def get_build_info():
    return build_info()
