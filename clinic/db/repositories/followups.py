"""
Follow-up task and patient note repository.
"""
from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from clinic.db import models

OPEN_STATUSES = ("PENDING", "IN_PROGRESS")

SORTABLE_FIELDS = {
    "due_date": models.FollowUp.due_date,
    "priority": models.FollowUp.priority,
    "created_at": models.FollowUp.created_at,
    "title": models.FollowUp.title,
}


def get_followup(db: Session, followup_id: uuid.UUID) -> Optional[models.FollowUp]:
    return db.query(models.FollowUp).filter(models.FollowUp.id == followup_id).first()


def list_followups(
    db: Session,
    *,
    patient_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
    search: Optional[str] = None,
    sort_by: str = "due_date",
    sort_order: str = "asc",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.FollowUp], int]:
    query = db.query(models.FollowUp)
    if patient_id:
        query = query.filter(models.FollowUp.patient_id == patient_id)
    if status:
        query = query.filter(models.FollowUp.status == status)
    if priority:
        query = query.filter(models.FollowUp.priority == priority)
    if due_from:
        query = query.filter(models.FollowUp.due_date >= due_from)
    if due_to:
        query = query.filter(models.FollowUp.due_date <= due_to)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(models.FollowUp.title.ilike(term), models.FollowUp.description.ilike(term)))

    total = query.count()
    column = SORTABLE_FIELDS.get(sort_by, models.FollowUp.due_date)
    ordering = column.desc() if sort_order == "desc" else column.asc()
    items = query.order_by(ordering, models.FollowUp.id).offset(skip).limit(limit).all()
    return items, total


def list_overdue(db: Session, today: date) -> List[models.FollowUp]:
    return (
        db.query(models.FollowUp)
        .filter(models.FollowUp.status.in_(OPEN_STATUSES), models.FollowUp.due_date < today)
        .order_by(models.FollowUp.due_date)
        .all()
    )


def list_upcoming(db: Session, start: date, end: date) -> List[models.FollowUp]:
    return (
        db.query(models.FollowUp)
        .filter(
            models.FollowUp.status.in_(OPEN_STATUSES),
            models.FollowUp.due_date >= start,
            models.FollowUp.due_date <= end,
        )
        .order_by(models.FollowUp.due_date)
        .all()
    )


def list_by_priority(db: Session, priority: str) -> List[models.FollowUp]:
    return (
        db.query(models.FollowUp)
        .filter(models.FollowUp.priority == priority, models.FollowUp.status.in_(OPEN_STATUSES))
        .order_by(models.FollowUp.due_date)
        .all()
    )


def count_by(db: Session, column) -> Dict[str, int]:
    rows = db.query(column, func.count(models.FollowUp.id)).group_by(column).all()
    return {key: count for key, count in rows}


def count_overdue(db: Session, today: date) -> int:
    return (
        db.query(models.FollowUp)
        .filter(models.FollowUp.status.in_(OPEN_STATUSES), models.FollowUp.due_date < today)
        .count()
    )


def count_upcoming(db: Session, start: date, end: date) -> int:
    return (
        db.query(models.FollowUp)
        .filter(
            models.FollowUp.status.in_(OPEN_STATUSES),
            models.FollowUp.due_date >= start,
            models.FollowUp.due_date <= end,
        )
        .count()
    )


def create_followup(db: Session, data: Dict[str, Any]) -> models.FollowUp:
    followup = models.FollowUp(**data)
    db.add(followup)
    db.commit()
    db.refresh(followup)
    return followup


def update_followup(db: Session, followup: models.FollowUp, updates: Dict[str, Any]) -> models.FollowUp:
    for field, value in updates.items():
        setattr(followup, field, value)
    db.commit()
    db.refresh(followup)
    return followup


def delete_followup(db: Session, followup: models.FollowUp) -> None:
    db.delete(followup)
    db.commit()


# Patient notes

def get_note(db: Session, note_id: uuid.UUID) -> Optional[models.PatientNote]:
    return db.query(models.PatientNote).filter(models.PatientNote.id == note_id).first()


def list_notes(db: Session, patient_id: uuid.UUID) -> List[models.PatientNote]:
    return (
        db.query(models.PatientNote)
        .filter(models.PatientNote.patient_id == patient_id)
        .order_by(models.PatientNote.is_pinned.desc(), models.PatientNote.created_at.desc())
        .all()
    )


def create_note(db: Session, data: Dict[str, Any]) -> models.PatientNote:
    note = models.PatientNote(**data)
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def update_note(db: Session, note: models.PatientNote, updates: Dict[str, Any]) -> models.PatientNote:
    for field, value in updates.items():
        setattr(note, field, value)
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, note: models.PatientNote) -> None:
    db.delete(note)
    db.commit()
