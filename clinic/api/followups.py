"""
Follow-up tasks and patient notes.

Follow-ups are dated to-dos attached to a patient (call back, check a
healing site); notes are free text with optional pinning.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.api.deps import get_current_user_context, require_permission, require_roles
from clinic.db import models, schemas
from clinic.db.database import get_db
from clinic.db.repositories import followups as followup_repo
from clinic.db.repositories import patients as patient_repo
from clinic.db.schemas.common import FollowUpPriority, FollowUpStatus, SortOrder
from clinic.utils.role_permissions import CREATE, DELETE, FOLLOWUPS, READ, ROLE_ADMIN, ROLE_DOCTOR, UPDATE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/followups", tags=["followups"])
notes_router = APIRouter(prefix="/patients/{patient_id}/notes", tags=["notes"])


def _present(followup: models.FollowUp, today: Optional[date] = None) -> schemas.FollowUp:
    today = today or date.today()
    item = schemas.FollowUp.model_validate(followup)
    item.is_overdue = followup.status in followup_repo.OPEN_STATUSES and followup.due_date < today
    return item


def _present_all(followups: Iterable[models.FollowUp]) -> List[schemas.FollowUp]:
    today = date.today()
    return [_present(f, today) for f in followups]


def _require_followup(db: Session, followup_id: uuid.UUID) -> models.FollowUp:
    followup = followup_repo.get_followup(db, followup_id)
    if not followup:
        raise HTTPException(status_code=404, detail="Follow-up not found")
    return followup


def _require_patient(db: Session, patient_id: uuid.UUID) -> None:
    if not patient_repo.get_patient(db, patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")


@router.get("/", response_model=schemas.PaginatedFollowUps)
def list_followups(
    patient_id: Optional[uuid.UUID] = None,
    status: Optional[FollowUpStatus] = None,
    priority: Optional[FollowUpPriority] = None,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
    search: Optional[str] = None,
    sort_by: str = Query("due_date", pattern="^(due_date|priority|created_at|title)$"),
    sort_order: SortOrder = "asc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=schemas.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    items, total = followup_repo.list_followups(
        db,
        patient_id=patient_id,
        status=status,
        priority=priority,
        due_from=due_from,
        due_to=due_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.page_payload(_present_all(items), total, page, limit)


@router.post("/", response_model=schemas.FollowUp, status_code=status.HTTP_201_CREATED)
def create_followup(
    payload: schemas.FollowUpCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, CREATE)),
):
    user, _ctx = user_context
    _require_patient(db, payload.patient_id)
    data = payload.model_dump()
    data.update(status="PENDING", created_by=user.id)
    followup = followup_repo.create_followup(db, data)
    logger.info("followup_created id=%s patient=%s due=%s", followup.id, followup.patient_id, followup.due_date)
    return _present(followup)


@router.get("/overdue", response_model=List[schemas.FollowUp])
def overdue(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    return _present_all(followup_repo.list_overdue(db, date.today()))


@router.get("/upcoming", response_model=List[schemas.FollowUp])
def upcoming(
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    today = date.today()
    return _present_all(followup_repo.list_upcoming(db, today, today + timedelta(days=days)))


@router.get("/priority/{priority}", response_model=List[schemas.FollowUp])
def by_priority(
    priority: FollowUpPriority,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    return _present_all(followup_repo.list_by_priority(db, priority))


@router.get("/stats", response_model=schemas.FollowUpStats)
def stats(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    today = date.today()
    by_status = followup_repo.count_by(db, models.FollowUp.status)
    return schemas.FollowUpStats(
        total=sum(by_status.values()),
        pending=by_status.get("PENDING", 0),
        in_progress=by_status.get("IN_PROGRESS", 0),
        completed=by_status.get("COMPLETED", 0),
        cancelled=by_status.get("CANCELLED", 0),
        overdue=followup_repo.count_overdue(db, today),
        by_priority=followup_repo.count_by(db, models.FollowUp.priority),
        upcoming_this_week=followup_repo.count_upcoming(db, today, today + timedelta(days=7)),
    )


@router.get("/{followup_id}", response_model=schemas.FollowUp)
def get_followup(
    followup_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, READ)),
):
    return _present(_require_followup(db, followup_id))


@router.put("/{followup_id}", response_model=schemas.FollowUp)
def update_followup(
    followup_id: uuid.UUID,
    payload: schemas.FollowUpUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, UPDATE)),
):
    followup = _require_followup(db, followup_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if updates.get("status") == "COMPLETED" and followup.completed_at is None:
        updates["completed_at"] = datetime.now(timezone.utc)
    elif "status" in updates and updates["status"] != "COMPLETED":
        updates["completed_at"] = None
    return _present(followup_repo.update_followup(db, followup, updates))


@router.post("/{followup_id}/complete", response_model=schemas.FollowUp)
def complete_followup(
    followup_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, UPDATE)),
):
    followup = _require_followup(db, followup_id)
    if followup.status == "COMPLETED":
        raise HTTPException(status_code=400, detail="Follow-up is already completed")
    if followup.status == "CANCELLED":
        raise HTTPException(status_code=400, detail="Cannot complete a cancelled follow-up")
    updated = followup_repo.update_followup(
        db, followup, {"status": "COMPLETED", "completed_at": datetime.now(timezone.utc)}
    )
    logger.info("followup_completed id=%s", updated.id)
    return _present(updated)


@router.post("/{followup_id}/cancel", response_model=schemas.FollowUp)
def cancel_followup(
    followup_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, UPDATE)),
):
    followup = _require_followup(db, followup_id)
    if followup.status == "CANCELLED":
        raise HTTPException(status_code=400, detail="Follow-up is already cancelled")
    if followup.status == "COMPLETED":
        raise HTTPException(status_code=400, detail="Cannot cancel a completed follow-up")
    return _present(followup_repo.update_followup(db, followup, {"status": "CANCELLED"}))


@router.delete("/{followup_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_followup(
    followup_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(FOLLOWUPS, DELETE)),
):
    followup_repo.delete_followup(db, _require_followup(db, followup_id))
    return None


# Patient notes

def _require_note(db: Session, patient_id: uuid.UUID, note_id: uuid.UUID) -> models.PatientNote:
    note = followup_repo.get_note(db, note_id)
    if not note or note.patient_id != patient_id:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@notes_router.get("/", response_model=List[schemas.PatientNote])
def list_notes(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _require_patient(db, patient_id)
    return followup_repo.list_notes(db, patient_id)


@notes_router.post("/", response_model=schemas.PatientNote, status_code=status.HTTP_201_CREATED)
def create_note(
    patient_id: uuid.UUID,
    payload: schemas.PatientNoteCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    _require_patient(db, patient_id)
    data = payload.model_dump()
    data.update(patient_id=patient_id, author_id=user.id)
    return followup_repo.create_note(db, data)


@notes_router.put("/{note_id}", response_model=schemas.PatientNote)
def update_note(
    patient_id: uuid.UUID,
    note_id: uuid.UUID,
    payload: schemas.PatientNoteUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    note = _require_note(db, patient_id, note_id)
    return followup_repo.update_note(db, note, payload.model_dump(exclude_unset=True, exclude_none=True))


@notes_router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    patient_id: uuid.UUID,
    note_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_roles(ROLE_ADMIN, ROLE_DOCTOR)),
):
    followup_repo.delete_note(db, _require_note(db, patient_id, note_id))
    return None
