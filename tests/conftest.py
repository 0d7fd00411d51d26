"""
Shared pytest fixtures.

Tests run against the in-memory SQLite engine from ``clinic.db.database``.
Every test gets a session bound to an outer transaction that is rolled back
at teardown, so routers may call ``commit()`` freely without leaking rows
into the next test.
"""
import os
from contextvars import ContextVar
from typing import Optional

os.environ.setdefault("PYTEST_RUNNING", "1")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from clinic.api.main import app
from clinic.db import database as db_module
from clinic.utils.role_permissions import ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST
from clinic.utils.timeslots import day_of_week

from tests.factories import make_patient, make_schedule, make_user, next_weekday

_current_session: ContextVar[Optional[Session]] = ContextVar("_current_session", default=None)
# TestClient runs sync endpoints in a worker thread where the ContextVar is unset
_GLOBAL_SESSION: Optional[Session] = None


def _override_get_db():
    session = _current_session.get() or _GLOBAL_SESSION
    if session is None:
        raise RuntimeError("No test session bound")
    yield session


app.dependency_overrides[db_module.get_db] = _override_get_db


@pytest.fixture(autouse=True)
def db_session():
    global _GLOBAL_SESSION
    connection = db_module.engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="rollback_only")
    token = _current_session.set(session)
    _GLOBAL_SESSION = session
    try:
        yield session
    finally:
        _current_session.reset(token)
        _GLOBAL_SESSION = None
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def client(db_session):
    return TestClient(app)


@pytest.fixture
def admin(db):
    return make_user(db, ROLE_ADMIN, first_name="Admin", last_name="Sistema")


@pytest.fixture
def doctor(db):
    return make_user(db, ROLE_DOCTOR, first_name="Juan", last_name="Perez")


@pytest.fixture
def receptionist(db):
    return make_user(db, ROLE_RECEPTIONIST, first_name="Maria", last_name="Gonzalez")


@pytest.fixture
def patient(db):
    return make_patient(db)


@pytest.fixture
def booking_day():
    """A Monday at least two days out."""
    return next_weekday(0, min_days_ahead=2)


@pytest.fixture
def doctor_with_schedule(db, doctor, booking_day):
    make_schedule(db, doctor, day_of_week(booking_day))
    return doctor
