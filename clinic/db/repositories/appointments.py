"""
Scheduling repository: appointments, work schedules, blocked times and
recurring patterns.
"""
from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from clinic.db import models

# Statuses that release the slot they occupied.
INACTIVE_STATUSES = ("CANCELLED", "NO_SHOW")


def _with_people(db: Session):
    return db.query(models.Appointment).options(
        joinedload(models.Appointment.patient), joinedload(models.Appointment.doctor)
    )


def get_appointment(db: Session, appointment_id: uuid.UUID) -> Optional[models.Appointment]:
    return _with_people(db).filter(models.Appointment.id == appointment_id).first()


def list_appointments(
    db: Session,
    *,
    patient_id: Optional[uuid.UUID] = None,
    doctor_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: Optional[int] = 20,
) -> Tuple[List[models.Appointment], int]:
    query = db.query(models.Appointment)
    if patient_id:
        query = query.filter(models.Appointment.patient_id == patient_id)
    if doctor_id:
        query = query.filter(models.Appointment.doctor_id == doctor_id)
    if status:
        query = query.filter(models.Appointment.status == status)
    if type:
        query = query.filter(models.Appointment.type == type)
    if date_from:
        query = query.filter(models.Appointment.date >= date_from)
    if date_to:
        query = query.filter(models.Appointment.date <= date_to)

    total = query.count()
    query = query.options(
        joinedload(models.Appointment.patient), joinedload(models.Appointment.doctor)
    ).order_by(models.Appointment.date, models.Appointment.start_time)
    if limit is not None:
        query = query.offset(skip).limit(limit)
    return query.all(), total


def active_for_doctor_on(
    db: Session, doctor_id: uuid.UUID, on: date, *, exclude_id: Optional[uuid.UUID] = None
) -> List[models.Appointment]:
    query = _with_people(db).filter(
        models.Appointment.doctor_id == doctor_id,
        models.Appointment.date == on,
        models.Appointment.status.notin_(INACTIVE_STATUSES),
    )
    if exclude_id:
        query = query.filter(models.Appointment.id != exclude_id)
    return query.order_by(models.Appointment.start_time).all()


def upcoming_for_patient(db: Session, patient_id: uuid.UUID, *, start: date, end: date) -> List[models.Appointment]:
    return (
        _with_people(db)
        .filter(
            models.Appointment.patient_id == patient_id,
            models.Appointment.date >= start,
            models.Appointment.date <= end,
            models.Appointment.status.in_(("SCHEDULED", "CONFIRMED")),
        )
        .order_by(models.Appointment.date, models.Appointment.start_time)
        .all()
    )


def build_appointment(data: Dict[str, Any]) -> models.Appointment:
    return models.Appointment(**data)


def create_appointment(db: Session, data: Dict[str, Any]) -> models.Appointment:
    appointment = build_appointment(data)
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def update_appointment(db: Session, appointment: models.Appointment, updates: Dict[str, Any]) -> models.Appointment:
    for field, value in updates.items():
        setattr(appointment, field, value)
    db.commit()
    db.refresh(appointment)
    return appointment


def status_counts(
    db: Session, *, doctor_id: Optional[uuid.UUID] = None, date_from: Optional[date] = None, date_to: Optional[date] = None
) -> List[Tuple[str, str]]:
    query = db.query(models.Appointment.status, models.Appointment.type)
    if doctor_id:
        query = query.filter(models.Appointment.doctor_id == doctor_id)
    if date_from:
        query = query.filter(models.Appointment.date >= date_from)
    if date_to:
        query = query.filter(models.Appointment.date <= date_to)
    return query.all()


# Work schedules

def get_schedule(db: Session, doctor_id: uuid.UUID, day_of_week: int) -> Optional[models.WorkSchedule]:
    return (
        db.query(models.WorkSchedule)
        .filter(models.WorkSchedule.doctor_id == doctor_id, models.WorkSchedule.day_of_week == day_of_week)
        .first()
    )


def get_active_schedule(db: Session, doctor_id: uuid.UUID, day_of_week: int) -> Optional[models.WorkSchedule]:
    schedule = get_schedule(db, doctor_id, day_of_week)
    return schedule if schedule and schedule.is_active else None


def list_schedules(db: Session, doctor_id: uuid.UUID) -> List[models.WorkSchedule]:
    return (
        db.query(models.WorkSchedule)
        .filter(models.WorkSchedule.doctor_id == doctor_id)
        .order_by(models.WorkSchedule.day_of_week)
        .all()
    )


def upsert_schedule(db: Session, doctor_id: uuid.UUID, data: Dict[str, Any]) -> models.WorkSchedule:
    schedule = get_schedule(db, doctor_id, data["day_of_week"])
    if schedule is None:
        schedule = models.WorkSchedule(doctor_id=doctor_id, **data)
        db.add(schedule)
    else:
        for field, value in data.items():
            setattr(schedule, field, value)
    db.commit()
    db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, schedule: models.WorkSchedule) -> None:
    db.delete(schedule)
    db.commit()


# Blocked times

def get_blocked_time(db: Session, blocked_id: uuid.UUID) -> Optional[models.BlockedTime]:
    return db.query(models.BlockedTime).filter(models.BlockedTime.id == blocked_id).first()


def list_blocked_times(
    db: Session, doctor_id: uuid.UUID, *, date_from: Optional[date] = None, date_to: Optional[date] = None
) -> List[models.BlockedTime]:
    query = db.query(models.BlockedTime).filter(models.BlockedTime.doctor_id == doctor_id)
    if date_from:
        query = query.filter(models.BlockedTime.date >= date_from)
    if date_to:
        query = query.filter(models.BlockedTime.date <= date_to)
    return query.order_by(models.BlockedTime.date, models.BlockedTime.start_time).all()


def create_blocked_time(db: Session, data: Dict[str, Any]) -> models.BlockedTime:
    blocked = models.BlockedTime(**data)
    db.add(blocked)
    db.commit()
    db.refresh(blocked)
    return blocked


def delete_blocked_time(db: Session, blocked: models.BlockedTime) -> None:
    db.delete(blocked)
    db.commit()


# Recurring patterns

def create_recurring_with_appointments(
    db: Session, pattern: Dict[str, Any], appointments: List[Dict[str, Any]]
) -> Tuple[models.RecurringAppointment, List[models.Appointment]]:
    """Persist the pattern and every generated appointment in one commit."""
    recurring = models.RecurringAppointment(**pattern)
    db.add(recurring)
    db.flush()
    created = []
    for data in appointments:
        appointment = build_appointment({**data, "recurring_id": recurring.id})
        db.add(appointment)
        created.append(appointment)
    db.commit()
    db.refresh(recurring)
    for appointment in created:
        db.refresh(appointment)
    return recurring, created
