"""
Appointments API endpoints.

Booking, rescheduling, status changes and cancellation, plus the calendar
views and availability helpers the scheduling screens rely on.
"""
import logging
import uuid
from collections import Counter
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.api.deps import require_permission
from clinic.audit import AuditAction, log_appointment
from clinic.db import schemas
from clinic.db.database import get_db
from clinic.db.repositories import appointments as appointment_repo
from clinic.db.schemas.common import AppointmentStatus, AppointmentType
from clinic.services.appointments import AppointmentService
from clinic.services.availability import AvailabilityService
from clinic.utils.role_permissions import APPOINTMENTS, CREATE, DELETE, READ, UPDATE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


@router.get("/", response_model=schemas.PaginatedAppointments)
def list_appointments(
    patient_id: Optional[uuid.UUID] = None,
    doctor_id: Optional[uuid.UUID] = None,
    status: Optional[AppointmentStatus] = None,
    type: Optional[AppointmentType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=schemas.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    items, total = appointment_repo.list_appointments(
        db,
        patient_id=patient_id,
        doctor_id=doctor_id,
        status=status,
        type=type,
        date_from=date_from,
        date_to=date_to,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.page_payload(items, total, page, limit)


@router.post("/", response_model=schemas.Appointment, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: schemas.AppointmentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, CREATE)),
):
    user, _ctx = user_context
    appointment = AppointmentService(db).create(payload, actor_id=user.id)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=appointment.id, action=AuditAction.APPOINTMENT_CREATE,
        metadata={"patient_id": str(appointment.patient_id), "date": appointment.date.isoformat()},
    )
    return appointment_repo.get_appointment(db, appointment.id)


@router.get("/calendar", response_model=List[schemas.Appointment])
def calendar(
    date_from: date,
    date_to: date,
    doctor_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    if date_to < date_from:
        raise HTTPException(status_code=400, detail="date_to must not be before date_from")
    items, _total = appointment_repo.list_appointments(
        db, doctor_id=doctor_id, date_from=date_from, date_to=date_to, limit=None
    )
    return items


@router.get("/today", response_model=List[schemas.Appointment])
def today(
    doctor_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    on = date.today()
    items, _total = appointment_repo.list_appointments(db, doctor_id=doctor_id, date_from=on, date_to=on, limit=None)
    return items


@router.get("/upcoming", response_model=List[schemas.Appointment])
def upcoming(
    days: int = Query(7, ge=1, le=365),
    doctor_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    start = date.today()
    items, _total = appointment_repo.list_appointments(
        db, doctor_id=doctor_id, date_from=start, date_to=start + timedelta(days=days), limit=None
    )
    return [a for a in items if a.status in ("SCHEDULED", "CONFIRMED")]


@router.get("/stats", response_model=schemas.AppointmentStats)
def stats(
    doctor_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    rows = appointment_repo.status_counts(db, doctor_id=doctor_id, date_from=date_from, date_to=date_to)
    by_status = Counter(row[0] for row in rows)
    by_type = Counter(row[1] for row in rows)
    total = len(rows)
    return schemas.AppointmentStats(
        total=total,
        by_status=dict(by_status),
        by_type=dict(by_type),
        completion_rate=_rate(by_status.get("COMPLETED", 0), total),
        cancellation_rate=_rate(by_status.get("CANCELLED", 0), total),
        no_show_rate=_rate(by_status.get("NO_SHOW", 0), total),
    )


@router.post("/check-availability", response_model=schemas.AvailabilityResult)
def check_availability(
    payload: schemas.AvailabilityCheck,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    AppointmentService(db).require_doctor(payload.doctor_id)
    return AvailabilityService(db).check(
        doctor_id=payload.doctor_id,
        on=payload.date,
        start_time=payload.start_time,
        duration=payload.duration,
        exclude_appointment_id=payload.exclude_appointment_id,
    )


@router.get("/available-slots", response_model=schemas.AvailableSlots)
def available_slots(
    doctor_id: uuid.UUID,
    on: date = Query(..., alias="date"),
    slot_duration: int = Query(30, ge=5, le=240),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    AppointmentService(db).require_doctor(doctor_id)
    return AvailabilityService(db).slots(doctor_id=doctor_id, on=on, slot_duration=slot_duration)


@router.post("/recurring", response_model=schemas.RecurringAppointmentResult, status_code=status.HTTP_201_CREATED)
def create_recurring(
    payload: schemas.RecurringAppointmentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, CREATE)),
):
    user, _ctx = user_context
    result = AppointmentService(db).create_recurring(payload, actor_id=user.id)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=result.recurring.id, action=AuditAction.RECURRING_CREATE,
        metadata={"appointment_count": result.appointment_count, "frequency": payload.frequency},
    )
    return result


@router.get("/{appointment_id}", response_model=schemas.Appointment)
def get_appointment(
    appointment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, READ)),
):
    return AppointmentService(db).require_appointment(appointment_id)


@router.put("/{appointment_id}", response_model=schemas.Appointment)
def update_appointment(
    appointment_id: uuid.UUID,
    payload: schemas.AppointmentUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, UPDATE)),
):
    user, _ctx = user_context
    service = AppointmentService(db)
    appointment = service.update(service.require_appointment(appointment_id), payload)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=appointment.id, action=AuditAction.APPOINTMENT_UPDATE,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return appointment_repo.get_appointment(db, appointment.id)


@router.patch("/{appointment_id}/status", response_model=schemas.Appointment)
def update_status(
    appointment_id: uuid.UUID,
    payload: schemas.AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, UPDATE)),
):
    user, _ctx = user_context
    service = AppointmentService(db)
    appointment = service.require_appointment(appointment_id)
    previous = appointment.status
    appointment = service.update_status(appointment, payload)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=appointment.id, action=AuditAction.APPOINTMENT_STATUS_CHANGE,
        metadata={"from": previous, "to": appointment.status},
    )
    return appointment_repo.get_appointment(db, appointment.id)


@router.post("/{appointment_id}/cancel", response_model=schemas.Appointment)
def cancel_appointment(
    appointment_id: uuid.UUID,
    payload: schemas.AppointmentCancel,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, UPDATE)),
):
    user, _ctx = user_context
    service = AppointmentService(db)
    appointment = service.cancel(service.require_appointment(appointment_id), payload.reason)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=appointment.id, action=AuditAction.APPOINTMENT_CANCEL,
        metadata={"reason": payload.reason},
    )
    return appointment_repo.get_appointment(db, appointment.id)


@router.delete("/{appointment_id}", response_model=schemas.Appointment)
def delete_appointment(
    appointment_id: uuid.UUID,
    reason: str = Query("Deleted by user", min_length=3, max_length=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(APPOINTMENTS, DELETE)),
):
    """Soft delete: the appointment is cancelled, never removed."""
    user, _ctx = user_context
    service = AppointmentService(db)
    appointment = service.cancel(service.require_appointment(appointment_id), reason)
    log_appointment(
        db, actor_user_id=user.id, appointment_id=appointment.id, action=AuditAction.APPOINTMENT_CANCEL,
        metadata={"reason": reason, "via": "delete"},
    )
    return appointment_repo.get_appointment(db, appointment.id)
