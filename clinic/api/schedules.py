"""
Doctor work schedules and blocked times.

Weekly hours are upserted per (doctor, day of week); blocked times carve
one-off gaps out of a working day.
"""
import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from clinic.api.deps import get_current_user_context, require_permission, require_roles
from clinic.db import schemas
from clinic.db.database import get_db
from clinic.db.repositories import appointments as appointment_repo
from clinic.services.appointments import AppointmentService
from clinic.utils.role_permissions import READ, ROLE_ADMIN, SCHEDULES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedules"])


@router.get("/doctors/{doctor_id}/schedules", response_model=List[schemas.WorkSchedule])
def list_schedules(
    doctor_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(SCHEDULES, READ)),
):
    AppointmentService(db).require_doctor(doctor_id)
    return appointment_repo.list_schedules(db, doctor_id)


@router.put("/doctors/{doctor_id}/schedules", response_model=schemas.WorkSchedule)
def upsert_schedule(
    doctor_id: uuid.UUID,
    payload: schemas.WorkScheduleUpsert,
    db: Session = Depends(get_db),
    user_context=Depends(require_roles(ROLE_ADMIN)),
):
    AppointmentService(db).require_doctor(doctor_id)
    schedule = appointment_repo.upsert_schedule(db, doctor_id, payload.model_dump())
    logger.info("schedule_upserted doctor=%s day=%s", doctor_id, schedule.day_of_week)
    return schedule


@router.delete("/doctors/{doctor_id}/schedules/{day_of_week}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    doctor_id: uuid.UUID,
    day_of_week: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_roles(ROLE_ADMIN)),
):
    schedule = appointment_repo.get_schedule(db, doctor_id, day_of_week)
    if not schedule:
        raise HTTPException(status_code=404, detail="Work schedule not found")
    appointment_repo.delete_schedule(db, schedule)
    logger.info("schedule_deleted doctor=%s day=%s", doctor_id, day_of_week)
    return None


@router.get("/doctors/{doctor_id}/blocked-times", response_model=List[schemas.BlockedTime])
def list_blocked_times(
    doctor_id: uuid.UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(SCHEDULES, READ)),
):
    return appointment_repo.list_blocked_times(db, doctor_id, date_from=date_from, date_to=date_to)


def _ensure_admin_or_self(user, doctor_id: uuid.UUID) -> None:
    if user.role != ROLE_ADMIN and user.id != doctor_id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")


@router.post("/blocked-times", response_model=schemas.BlockedTime, status_code=status.HTTP_201_CREATED)
def create_blocked_time(
    payload: schemas.BlockedTimeCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    _ensure_admin_or_self(user, payload.doctor_id)
    AppointmentService(db).require_doctor(payload.doctor_id)
    blocked = appointment_repo.create_blocked_time(db, payload.model_dump())
    logger.info("blocked_time_created id=%s doctor=%s date=%s", blocked.id, blocked.doctor_id, blocked.date)
    return blocked


@router.delete("/blocked-times/{blocked_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_time(
    blocked_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    blocked = appointment_repo.get_blocked_time(db, blocked_id)
    if not blocked:
        raise HTTPException(status_code=404, detail="Blocked time not found")
    _ensure_admin_or_self(user, blocked.doctor_id)
    appointment_repo.delete_blocked_time(db, blocked)
    return None
