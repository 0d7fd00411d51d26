"""
Appointment booking service.

Wraps the repositories with the booking rules: referenced patient and doctor
must exist, every slot change is re-validated against availability, and
recurring series are all-or-nothing.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from clinic.db import models, schemas
from clinic.db.repositories import appointments as appointment_repo
from clinic.db.repositories import patients as patient_repo
from clinic.db.repositories import users as user_repo
from clinic.services.availability import AvailabilityService
from clinic.services.recurrence import generate_dates
from clinic.utils.role_permissions import ROLE_DOCTOR
from clinic.utils.timeslots import add_minutes

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("doctor_id", "date", "start_time", "duration")
CLEARABLE_FIELDS = ("notes", "color")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def raise_unavailable(result: schemas.AvailabilityResult) -> None:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": result.reason,
            "conflicts": [c.model_dump(mode="json") for c in result.conflicts],
        },
    )


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.availability = AvailabilityService(db)

    def require_patient(self, patient_id: uuid.UUID) -> models.Patient:
        patient = patient_repo.get_patient(self.db, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def require_doctor(self, doctor_id: uuid.UUID) -> models.User:
        doctor = user_repo.get_user(self.db, doctor_id)
        if not doctor or doctor.role != ROLE_DOCTOR or not doctor.is_active:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def require_appointment(self, appointment_id: uuid.UUID) -> models.Appointment:
        appointment = appointment_repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def create(self, payload: schemas.AppointmentCreate, *, actor_id: uuid.UUID) -> models.Appointment:
        self.require_patient(payload.patient_id)
        self.require_doctor(payload.doctor_id)
        result = self.availability.check(
            doctor_id=payload.doctor_id, on=payload.date, start_time=payload.start_time, duration=payload.duration
        )
        if not result.available:
            raise_unavailable(result)

        data = payload.model_dump()
        data.update(
            end_time=add_minutes(payload.start_time, payload.duration),
            status="SCHEDULED",
            created_by=actor_id,
        )
        appointment = appointment_repo.create_appointment(self.db, data)
        logger.info("appointment_created id=%s patient=%s doctor=%s", appointment.id, appointment.patient_id, appointment.doctor_id)
        return appointment

    def update(self, appointment: models.Appointment, payload: schemas.AppointmentUpdate) -> models.Appointment:
        # null clears notes or color; other fields keep their value
        updates = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_FIELDS
        }

        if any(field in updates and updates[field] != getattr(appointment, field) for field in SLOT_FIELDS):
            doctor_id = updates.get("doctor_id", appointment.doctor_id)
            if doctor_id != appointment.doctor_id:
                self.require_doctor(doctor_id)
            start_time = updates.get("start_time", appointment.start_time)
            duration = updates.get("duration", appointment.duration)
            result = self.availability.check(
                doctor_id=doctor_id,
                on=updates.get("date", appointment.date),
                start_time=start_time,
                duration=duration,
                exclude_appointment_id=appointment.id,
            )
            if not result.available:
                raise_unavailable(result)
            updates["end_time"] = add_minutes(start_time, duration)

        updated = appointment_repo.update_appointment(self.db, appointment, updates)
        logger.info("appointment_updated id=%s fields=%s", updated.id, sorted(updates))
        return updated

    def update_status(self, appointment: models.Appointment, payload: schemas.AppointmentStatusUpdate) -> models.Appointment:
        previous = appointment.status
        updates = {"status": payload.status}
        if payload.notes is not None:
            updates["notes"] = payload.notes
        if payload.status == "CANCELLED" and appointment.cancelled_at is None:
            updates["cancelled_at"] = _now()
        updated = appointment_repo.update_appointment(self.db, appointment, updates)
        logger.info("appointment_status_updated id=%s old=%s new=%s", updated.id, previous, updated.status)
        return updated

    def cancel(self, appointment: models.Appointment, reason: str) -> models.Appointment:
        if appointment.status == "CANCELLED":
            raise HTTPException(status_code=400, detail="Appointment is already cancelled")
        if appointment.status == "COMPLETED":
            raise HTTPException(status_code=400, detail="Cannot cancel a completed appointment")
        updated = appointment_repo.update_appointment(
            self.db,
            appointment,
            {"status": "CANCELLED", "notes": f"Cancellation reason: {reason}", "cancelled_at": _now()},
        )
        logger.info("appointment_cancelled id=%s", updated.id)
        return updated

    def create_recurring(
        self, payload: schemas.RecurringAppointmentCreate, *, actor_id: uuid.UUID
    ) -> schemas.RecurringAppointmentResult:
        self.require_patient(payload.patient_id)
        self.require_doctor(payload.doctor_id)

        dates = generate_dates(
            frequency=payload.frequency,
            start_date=payload.start_date,
            interval=payload.interval,
            days_of_week=payload.days_of_week,
            end_date=payload.end_date,
            occurrences=payload.occurrences,
        )
        if not dates:
            raise HTTPException(status_code=400, detail="No valid dates generated for the recurring pattern")

        unavailable: List[str] = []
        for on in dates:
            result = self.availability.check(
                doctor_id=payload.doctor_id, on=on, start_time=payload.start_time, duration=payload.duration
            )
            if not result.available:
                unavailable.append(on.isoformat())
        if unavailable:
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "Some dates are not available. Adjust the pattern or exclude these dates.",
                    "unavailable_dates": unavailable,
                },
            )

        pattern = payload.model_dump(exclude={"notes", "color"})
        pattern.update(active=True, created_by=actor_id)
        end_time = add_minutes(payload.start_time, payload.duration)
        rows = [
            {
                "patient_id": payload.patient_id,
                "doctor_id": payload.doctor_id,
                "date": on,
                "start_time": payload.start_time,
                "end_time": end_time,
                "duration": payload.duration,
                "type": payload.type,
                "reason": payload.reason,
                "notes": payload.notes,
                "color": payload.color,
                "status": "SCHEDULED",
                "created_by": actor_id,
            }
            for on in dates
        ]
        recurring, created = appointment_repo.create_recurring_with_appointments(self.db, pattern, rows)
        logger.info("recurring_appointments_created id=%s count=%s", recurring.id, len(created))
        return schemas.RecurringAppointmentResult(
            recurring=schemas.RecurringAppointment.model_validate(recurring),
            appointments=[schemas.Appointment.model_validate(a) for a in created],
            appointment_count=len(created),
        )
