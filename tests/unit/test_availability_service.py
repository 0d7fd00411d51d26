from datetime import timedelta

import pytest

from clinic.db import models
from clinic.services.availability import AvailabilityService
from clinic.utils.timeslots import day_of_week
from tests.factories import make_patient, make_schedule


@pytest.fixture
def booked(db, doctor_with_schedule, booking_day):
    patient = make_patient(db, first_name="Luis", last_name="Mora")
    appointment = models.Appointment(
        patient_id=patient.id,
        doctor_id=doctor_with_schedule.id,
        date=booking_day,
        start_time="09:00",
        end_time="09:30",
        duration=30,
        type="CONSULTATION",
        status="SCHEDULED",
        reason="Control",
    )
    db.add(appointment)
    db.commit()
    return appointment


def _check(db, doctor, on, start, duration=30, **kwargs):
    return AvailabilityService(db).check(doctor_id=doctor.id, on=on, start_time=start, duration=duration, **kwargs)


def test_day_off(db, doctor_with_schedule, booking_day):
    result = _check(db, doctor_with_schedule, booking_day + timedelta(days=1), "09:00")
    assert not result.available
    assert result.reason == "Doctor does not work on this day"


@pytest.mark.parametrize("start, duration", [("07:30", 30), ("16:45", 30), ("17:00", 15)])
def test_outside_working_hours(db, doctor_with_schedule, booking_day, start, duration):
    result = _check(db, doctor_with_schedule, booking_day, start, duration)
    assert not result.available
    assert result.reason == "Doctor works from 08:00 to 17:00"


def test_booking_may_end_at_closing_time(db, doctor_with_schedule, booking_day):
    assert _check(db, doctor_with_schedule, booking_day, "16:30", 30).available


def test_break_window(db, doctor_with_schedule, booking_day):
    result = _check(db, doctor_with_schedule, booking_day, "11:45", 30)
    assert not result.available
    assert result.reason == "Break time from 12:00 to 13:00"
    assert _check(db, doctor_with_schedule, booking_day, "11:30", 30).available
    assert _check(db, doctor_with_schedule, booking_day, "13:00", 30).available


def test_booking_past_midnight_never_fits(db, doctor, booking_day):
    make_schedule(db, doctor, day_of_week(booking_day), start="00:00", end="23:59", break_start=None, break_end=None)
    result = _check(db, doctor, booking_day, "23:30", 60)
    assert not result.available


def test_blocked_time(db, doctor_with_schedule, booking_day):
    db.add(models.BlockedTime(
        doctor_id=doctor_with_schedule.id, date=booking_day, start_time="14:00", end_time="15:00", reason="Congreso",
    ))
    db.commit()
    result = _check(db, doctor_with_schedule, booking_day, "14:30")
    assert not result.available
    assert result.reason == "Time blocked: Congreso"


def test_conflict_lists_existing_booking(db, doctor_with_schedule, booking_day, booked):
    result = _check(db, doctor_with_schedule, booking_day, "09:15")
    assert not result.available
    assert result.reason == "Time slot conflicts with existing appointments"
    assert [c.id for c in result.conflicts] == [booked.id]
    assert result.conflicts[0].patient_name == "Luis Mora"


def test_back_to_back_is_allowed(db, doctor_with_schedule, booking_day, booked):
    assert _check(db, doctor_with_schedule, booking_day, "09:30").available
    assert _check(db, doctor_with_schedule, booking_day, "08:30").available


def test_exclude_and_cancelled_release_the_slot(db, doctor_with_schedule, booking_day, booked):
    assert _check(db, doctor_with_schedule, booking_day, "09:00", exclude_appointment_id=booked.id).available
    booked.status = "CANCELLED"
    db.commit()
    assert _check(db, doctor_with_schedule, booking_day, "09:00").available


def test_slots_grid(db, doctor_with_schedule, booking_day, booked):
    grid = AvailabilityService(db).slots(doctor_id=doctor_with_schedule.id, on=booking_day, slot_duration=30)
    assert len(grid.slots) == 18
    by_start = {s.start_time: s for s in grid.slots}
    assert by_start["08:00"].available
    assert by_start["09:00"].reason == "Booked"
    assert by_start["09:00"].appointment_id == booked.id
    assert by_start["12:00"].reason == "Break time"
    assert by_start["12:30"].reason == "Break time"
    assert by_start["16:30"].end_time == "17:00"


def test_slots_empty_on_day_off(db, doctor_with_schedule, booking_day):
    grid = AvailabilityService(db).slots(doctor_id=doctor_with_schedule.id, on=booking_day + timedelta(days=1))
    assert grid.slots == []
