"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging
import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from clinic.config import (
    API_PREFIX,
    CORS_ORIGINS,
    auth_rate_limit_max_requests,
    build_info,
    rate_limit_enabled,
    rate_limit_max_requests,
    rate_limit_window_seconds,
)

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from clinic.api.accounting import router as accounting_router  # noqa: E402
from clinic.api.appointments import router as appointments_router  # noqa: E402
from clinic.api.audits import router as audits_router  # noqa: E402
from clinic.api.auth import router as auth_router  # noqa: E402
from clinic.api.followups import notes_router, router as followups_router  # noqa: E402
from clinic.api.medical import router as medical_router  # noqa: E402
from clinic.api.odontograms import router as odontograms_router  # noqa: E402
from clinic.api.patients import router as patients_router  # noqa: E402
from clinic.api.schedules import router as schedules_router  # noqa: E402
from clinic.api.system import router as system_router  # noqa: E402
from clinic.api.users import router as users_router  # noqa: E402
from clinic.utils.rate_limit import get_rate_limiter  # noqa: E402

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Dental Clinic Service",
    description="API for patients, appointments, odontograms, treatments and clinic accounting.",
    version=build_info()["version"],
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

AUTH_LIMITED_PATHS = {
    f"{API_PREFIX}/auth/login",
    f"{API_PREFIX}/auth/register",
    f"{API_PREFIX}/auth/forgot-password",
}


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# Middleware: fixed-window rate limit per client IP on the versioned API
@app.middleware("http")
async def rate_limit(request: Request, call_next):
    path = request.url.path or ""
    if not rate_limit_enabled() or not path.startswith(API_PREFIX) or request.method == "OPTIONS":
        return await call_next(request)

    ip = _client_ip(request)
    if path in AUTH_LIMITED_PATHS:
        key, limit = f"auth:{ip}", auth_rate_limit_max_requests()
    else:
        key, limit = f"api:{ip}", rate_limit_max_requests()
    result = get_rate_limiter().hit(key, limit=limit, window_seconds=rate_limit_window_seconds())
    if not result.allowed:
        logger.warning("rate_limited ip=%s path=%s", ip, path)
        return JSONResponse(
            {
                "detail": "Too many requests, please try again later.",
                "retry_after_seconds": result.retry_after_seconds,
            },
            status_code=429,
            headers={"Retry-After": str(result.retry_after_seconds)},
        )
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    return response


# Middleware: one log line per request
@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


for router in (
    auth_router,
    users_router,
    patients_router,
    appointments_router,
    schedules_router,
    odontograms_router,
    medical_router,
    accounting_router,
    followups_router,
    notes_router,
    audits_router,
    system_router,
):
    app.include_router(router, prefix=API_PREFIX)

# Health and version checks are also served unversioned for load balancers
app.include_router(system_router)
