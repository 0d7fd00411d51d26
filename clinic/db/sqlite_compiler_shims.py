"""SQLite compilation shim for PostgreSQL-specific SQLAlchemy types.

Registers a compiler for JSONB when the active dialect is SQLite so that the
declarative metadata can be created in test runs that use an in-memory SQLite
database. JSONB operators are not emulated; the repositories only read and
write whole documents.

Usage: imported for side-effects by clinic.db.models.base.
"""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    # Stored as JSON text on SQLite
    return "JSON"
