"""
Shared SQLAlchemy base and helpers.
"""
from datetime import datetime, UTC

from sqlalchemy import Numeric
from sqlalchemy.orm import declarative_base

# Side-effect import: JSONB compiles to JSON on SQLite test databases.
from .. import sqlite_compiler_shims  # noqa: F401


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


# Currency amounts: two decimals in the database, floats in Python.
MONEY = Numeric(12, 2, asdecimal=False)


Base = declarative_base()
