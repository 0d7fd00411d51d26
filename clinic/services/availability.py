"""
Doctor availability: the booking check and the day slot grid.

The check runs in a fixed order and reports the first rule that fails:
work day, working hours, break window, blocked times, then existing
bookings. Intervals are half-open, so a booking may start exactly when
another one ends.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from clinic.db import models, schemas
from clinic.db.repositories import appointments as appointment_repo
from clinic.utils.timeslots import day_of_week, from_minutes, overlaps, to_minutes

logger = logging.getLogger(__name__)

DEFAULT_SLOT_MINUTES = 30


def _patient_name(appointment: models.Appointment) -> str:
    patient = appointment.patient
    return patient.full_name if patient is not None else ""


class AvailabilityService:
    def __init__(self, db: Session):
        self.db = db

    def check(
        self,
        *,
        doctor_id: uuid.UUID,
        on: date,
        start_time: str,
        duration: int,
        exclude_appointment_id: Optional[uuid.UUID] = None,
    ) -> schemas.AvailabilityResult:
        start = to_minutes(start_time)
        # Raw end: a booking that runs past midnight never fits inside a schedule.
        end = start + duration

        schedule = appointment_repo.get_active_schedule(self.db, doctor_id, day_of_week(on))
        if schedule is None:
            return schemas.AvailabilityResult(available=False, reason="Doctor does not work on this day")

        work_start, work_end = to_minutes(schedule.start_time), to_minutes(schedule.end_time)
        if not (work_start <= start < work_end) or not (work_start <= end <= work_end):
            return schemas.AvailabilityResult(
                available=False, reason=f"Doctor works from {schedule.start_time} to {schedule.end_time}"
            )

        if schedule.break_start and schedule.break_end:
            if overlaps(start, end, to_minutes(schedule.break_start), to_minutes(schedule.break_end)):
                return schemas.AvailabilityResult(
                    available=False, reason=f"Break time from {schedule.break_start} to {schedule.break_end}"
                )

        for blocked in appointment_repo.list_blocked_times(self.db, doctor_id, date_from=on, date_to=on):
            if overlaps(start, end, to_minutes(blocked.start_time), to_minutes(blocked.end_time)):
                return schemas.AvailabilityResult(available=False, reason=f"Time blocked: {blocked.reason}")

        conflicts = [
            schemas.AppointmentConflict(
                id=existing.id,
                start_time=existing.start_time,
                end_time=existing.end_time,
                patient_name=_patient_name(existing),
            )
            for existing in appointment_repo.active_for_doctor_on(
                self.db, doctor_id, on, exclude_id=exclude_appointment_id
            )
            if overlaps(start, end, to_minutes(existing.start_time), to_minutes(existing.start_time) + existing.duration)
        ]
        if conflicts:
            return schemas.AvailabilityResult(
                available=False,
                reason="Time slot conflicts with existing appointments",
                conflicts=conflicts,
            )
        return schemas.AvailabilityResult(available=True)

    def slots(self, *, doctor_id: uuid.UUID, on: date, slot_duration: int = DEFAULT_SLOT_MINUTES) -> schemas.AvailableSlots:
        """Fixed-length slots from schedule start to end; empty when the doctor is off."""
        result = schemas.AvailableSlots(doctor_id=doctor_id, date=on, slot_duration=slot_duration, slots=[])
        schedule = appointment_repo.get_active_schedule(self.db, doctor_id, day_of_week(on))
        if schedule is None:
            return result

        work_start, work_end = to_minutes(schedule.start_time), to_minutes(schedule.end_time)
        breaks = []
        if schedule.break_start and schedule.break_end:
            breaks.append((to_minutes(schedule.break_start), to_minutes(schedule.break_end)))
        blocked = [
            (to_minutes(b.start_time), to_minutes(b.end_time), b.reason)
            for b in appointment_repo.list_blocked_times(self.db, doctor_id, date_from=on, date_to=on)
        ]
        booked = [
            (to_minutes(a.start_time), to_minutes(a.start_time) + a.duration, a.id)
            for a in appointment_repo.active_for_doctor_on(self.db, doctor_id, on)
        ]

        slots: List[schemas.TimeSlot] = []
        minute = work_start
        while minute + slot_duration <= work_end:
            slot_end = minute + slot_duration
            slot = schemas.TimeSlot(start_time=from_minutes(minute), end_time=from_minutes(slot_end), available=True)
            if any(overlaps(minute, slot_end, b_start, b_end) for b_start, b_end in breaks):
                slot.available, slot.reason = False, "Break time"
            else:
                hit = next((b for b in blocked if overlaps(minute, slot_end, b[0], b[1])), None)
                if hit is not None:
                    slot.available, slot.reason = False, f"Time blocked: {hit[2]}"
                else:
                    taken = next((a for a in booked if overlaps(minute, slot_end, a[0], a[1])), None)
                    if taken is not None:
                        slot.available, slot.reason, slot.appointment_id = False, "Booked", taken[2]
            slots.append(slot)
            minute = slot_end
        result.slots = slots
        return result
