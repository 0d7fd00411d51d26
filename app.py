"""
App assembly entry point.

Re-exports the FastAPI `app` from `clinic.api.main` so that
``uvicorn app:app`` works from the project root.
"""

from clinic.api.main import app  # noqa: F401
