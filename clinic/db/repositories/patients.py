"""
Patient repository: filtered listing, uniqueness lookups and soft delete.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from clinic.db import models

SORTABLE_FIELDS = {
    "first_name": models.Patient.first_name,
    "last_name": models.Patient.last_name,
    "created_at": models.Patient.created_at,
    "date_of_birth": models.Patient.date_of_birth,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _live(db: Session):
    return db.query(models.Patient).filter(models.Patient.deleted_at.is_(None))


def get_patient(db: Session, patient_id: uuid.UUID, *, include_deleted: bool = False) -> Optional[models.Patient]:
    query = db.query(models.Patient) if include_deleted else _live(db)
    return query.filter(models.Patient.id == patient_id).first()


def get_by_identification(db: Session, identification: str) -> Optional[models.Patient]:
    return db.query(models.Patient).filter(models.Patient.identification == identification).first()


def get_by_email(db: Session, email: str) -> Optional[models.Patient]:
    return db.query(models.Patient).filter(func.lower(models.Patient.email) == email.lower()).first()


def list_patients(
    db: Session,
    *,
    search: Optional[str] = None,
    gender: Optional[str] = None,
    is_active: Optional[bool] = None,
    city: Optional[str] = None,
    has_insurance: Optional[bool] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Patient], int]:
    query = _live(db)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.Patient.first_name.ilike(term),
                models.Patient.last_name.ilike(term),
                models.Patient.identification.ilike(term),
                models.Patient.email.ilike(term),
            )
        )
    if gender:
        query = query.filter(models.Patient.gender == gender)
    if is_active is not None:
        query = query.filter(models.Patient.is_active == is_active)
    if city:
        query = query.filter(models.Patient.city.ilike(f"%{city.strip()}%"))
    if has_insurance is not None:
        query = query.filter(models.Patient.has_insurance == has_insurance)

    total = query.count()
    column = SORTABLE_FIELDS.get(sort_by, models.Patient.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    items = query.order_by(ordering, models.Patient.id).offset(skip).limit(limit).all()
    return items, total


def search_by_name(db: Session, q: str, *, limit: int = 10) -> List[models.Patient]:
    term = f"%{q.strip()}%"
    full_name = models.Patient.first_name + " " + models.Patient.last_name
    return (
        _live(db)
        .filter(
            or_(
                models.Patient.first_name.ilike(term),
                models.Patient.last_name.ilike(term),
                full_name.ilike(term),
            )
        )
        .order_by(models.Patient.last_name, models.Patient.first_name)
        .limit(limit)
        .all()
    )


def create_patient(db: Session, data: Dict[str, Any], *, created_by: Optional[uuid.UUID]) -> models.Patient:
    patient = models.Patient(**data, created_by=created_by)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def update_patient(db: Session, patient: models.Patient, updates: Dict[str, Any]) -> models.Patient:
    for field, value in updates.items():
        setattr(patient, field, value)
    db.commit()
    db.refresh(patient)
    return patient


def soft_delete(db: Session, patient: models.Patient) -> models.Patient:
    return update_patient(db, patient, {"deleted_at": _now(), "is_active": False})


def restore(db: Session, patient: models.Patient) -> models.Patient:
    return update_patient(db, patient, {"deleted_at": None, "is_active": True})


def count_active_bookings(db: Session, patient_id: uuid.UUID) -> int:
    return (
        db.query(models.Appointment)
        .filter(
            models.Appointment.patient_id == patient_id,
            models.Appointment.status.in_(("SCHEDULED", "CONFIRMED")),
        )
        .count()
    )


def dashboard_counts(db: Session, *, month_start: datetime) -> Dict[str, Any]:
    base = _live(db)
    gender_rows = (
        db.query(models.Patient.gender, func.count(models.Patient.id))
        .filter(models.Patient.deleted_at.is_(None), models.Patient.is_active.is_(True))
        .group_by(models.Patient.gender)
        .all()
    )
    return {
        "total_active": base.filter(models.Patient.is_active.is_(True)).count(),
        "total_inactive": base.filter(models.Patient.is_active.is_(False)).count(),
        "new_this_month": base.filter(models.Patient.created_at >= month_start).count(),
        "with_insurance": base.filter(
            models.Patient.is_active.is_(True), models.Patient.has_insurance.is_(True)
        ).count(),
        "gender_distribution": {gender: count for gender, count in gender_rows},
    }
