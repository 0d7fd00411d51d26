"""
Patients API endpoints.

CRUD with soft delete, search, upcoming appointments, history and
statistics for the patient registry.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.api.deps import require_permission, require_roles
from clinic.audit import AuditAction, log_patient
from clinic.db import models, schemas
from clinic.db.database import get_db
from clinic.db.schemas.common import Gender
from clinic.db.repositories import appointments as appointment_repo
from clinic.db.repositories import medical as medical_repo
from clinic.db.repositories import patients as patient_repo
from clinic.utils.identification import is_valid_cedula
from clinic.utils.role_permissions import CREATE, DELETE, PATIENTS, READ, ROLE_ADMIN, UPDATE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["patients"])


def _get_or_404(db: Session, patient_id: uuid.UUID) -> models.Patient:
    patient = patient_repo.get_patient(db, patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


def _check_unique(db: Session, *, identification: Optional[str], email: Optional[str], exclude_id=None) -> None:
    if identification:
        existing = patient_repo.get_by_identification(db, identification)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail="A patient with this identification already exists")
    if email:
        existing = patient_repo.get_by_email(db, email)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail="A patient with this email already exists")


def _check_insurance(has_insurance: bool, provider: Optional[str]) -> None:
    if has_insurance and not (provider or "").strip():
        raise HTTPException(status_code=400, detail="Insurance provider is required when the patient has insurance")


@router.get("/", response_model=schemas.PaginatedPatients)
def list_patients(
    search: Optional[str] = None,
    gender: Optional[Gender] = None,
    is_active: Optional[bool] = None,
    city: Optional[str] = None,
    has_insurance: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=schemas.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at", pattern="^(first_name|last_name|created_at|date_of_birth)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    items, total = patient_repo.list_patients(
        db,
        search=search,
        gender=gender,
        is_active=is_active,
        city=city,
        has_insurance=has_insurance,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.page_payload(items, total, page, limit)


@router.post("/", response_model=schemas.Patient, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: schemas.PatientCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, CREATE)),
):
    user, _ctx = user_context
    _check_insurance(payload.has_insurance, payload.insurance_provider)
    _check_unique(db, identification=payload.identification, email=payload.email)

    data = payload.model_dump()
    if data.get("emergency_contact") is None:
        data.pop("emergency_contact", None)
    patient = patient_repo.create_patient(db, data, created_by=user.id)
    logger.info("patient_created id=%s", patient.id)
    log_patient(db, actor_user_id=user.id, patient_id=patient.id, action=AuditAction.PATIENT_CREATE)
    return patient


@router.get("/search", response_model=List[schemas.PatientSummary])
def search_patients(
    q: str = Query(..., min_length=2),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    return patient_repo.search_by_name(db, q, limit=limit)


@router.get("/stats", response_model=schemas.PatientDashboardStats)
def dashboard_stats(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    today = datetime.now(timezone.utc)
    month_start = today.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return patient_repo.dashboard_counts(db, month_start=month_start)


@router.get("/identification/{identification}", response_model=schemas.Patient)
def get_by_identification(
    identification: str,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    patient = patient_repo.get_by_identification(db, identification)
    if not patient or patient.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.get("/{patient_id}", response_model=schemas.Patient)
def get_patient(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    return _get_or_404(db, patient_id)


@router.put("/{patient_id}", response_model=schemas.Patient)
def update_patient(
    patient_id: uuid.UUID,
    payload: schemas.PatientUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, UPDATE)),
):
    user, _ctx = user_context
    patient = _get_or_404(db, patient_id)
    updates = payload.model_dump(exclude_unset=True)

    identification = updates.get("identification", patient.identification)
    identification_type = updates.get("identification_type", patient.identification_type)
    if ("identification" in updates or "identification_type" in updates) and identification_type == "CEDULA":
        if not is_valid_cedula(identification):
            raise HTTPException(status_code=400, detail="Invalid cédula number")
    _check_insurance(
        updates.get("has_insurance", patient.has_insurance),
        updates.get("insurance_provider", patient.insurance_provider),
    )
    _check_unique(db, identification=updates.get("identification"), email=updates.get("email"), exclude_id=patient.id)

    updated = patient_repo.update_patient(db, patient, updates)
    log_patient(
        db, actor_user_id=user.id, patient_id=patient.id, action=AuditAction.PATIENT_UPDATE,
        metadata={"fields": sorted(updates)},
    )
    return updated


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, DELETE)),
):
    user, _ctx = user_context
    patient = _get_or_404(db, patient_id)
    if patient_repo.count_active_bookings(db, patient.id):
        raise HTTPException(
            status_code=400, detail="Cannot delete a patient with scheduled or confirmed appointments"
        )
    patient_repo.soft_delete(db, patient)
    logger.info("patient_deleted id=%s", patient.id)
    log_patient(db, actor_user_id=user.id, patient_id=patient.id, action=AuditAction.PATIENT_DELETE)
    return None


@router.post("/{patient_id}/restore", response_model=schemas.Patient)
def restore_patient(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_roles(ROLE_ADMIN)),
):
    user, _ctx = user_context
    patient = patient_repo.get_patient(db, patient_id, include_deleted=True)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    if patient.deleted_at is None:
        raise HTTPException(status_code=400, detail="Patient is not deleted")
    restored = patient_repo.restore(db, patient)
    log_patient(db, actor_user_id=user.id, patient_id=patient.id, action=AuditAction.PATIENT_RESTORE)
    return restored


def _set_active(db: Session, patient_id: uuid.UUID, active: bool, user) -> models.Patient:
    patient = _get_or_404(db, patient_id)
    if patient.is_active == active:
        raise HTTPException(status_code=400, detail=f"Patient is already {'active' if active else 'inactive'}")
    updated = patient_repo.update_patient(db, patient, {"is_active": active})
    log_patient(
        db,
        actor_user_id=user.id,
        patient_id=patient.id,
        action=AuditAction.PATIENT_ACTIVATE if active else AuditAction.PATIENT_DEACTIVATE,
    )
    return updated


@router.post("/{patient_id}/activate", response_model=schemas.Patient)
def activate_patient(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, UPDATE)),
):
    return _set_active(db, patient_id, True, user_context[0])


@router.post("/{patient_id}/deactivate", response_model=schemas.Patient)
def deactivate_patient(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, UPDATE)),
):
    return _set_active(db, patient_id, False, user_context[0])


@router.get("/{patient_id}/upcoming-appointments", response_model=List[schemas.Appointment])
def upcoming_appointments(
    patient_id: uuid.UUID,
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    _get_or_404(db, patient_id)
    today = date.today()
    return appointment_repo.upcoming_for_patient(db, patient_id, start=today, end=today + timedelta(days=days))


@router.get("/{patient_id}/history", response_model=schemas.PatientHistory)
def patient_history(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    patient = _get_or_404(db, patient_id)
    appointments, _total = appointment_repo.list_appointments(db, patient_id=patient_id, limit=None)
    return {
        "patient": patient,
        "appointments": list(reversed(appointments)),
        "treatments": medical_repo.list_treatments(db, patient_id),
        "diagnoses": medical_repo.list_diagnoses(db, patient_id),
    }


@router.get("/{patient_id}/stats", response_model=schemas.PatientStats)
def patient_stats(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(PATIENTS, READ)),
):
    _get_or_404(db, patient_id)
    appointments, total = appointment_repo.list_appointments(db, patient_id=patient_id, limit=None)
    by_status = {}
    for appointment in appointments:
        by_status[appointment.status] = by_status.get(appointment.status, 0) + 1

    today = date.today()
    completed_dates = [a.date for a in appointments if a.status == "COMPLETED"]
    upcoming_dates = [a.date for a in appointments if a.status in ("SCHEDULED", "CONFIRMED") and a.date >= today]
    treatments = [t for t in medical_repo.list_treatments(db, patient_id) if t.status != "CANCELLED"]
    return schemas.PatientStats(
        patient_id=patient_id,
        total_appointments=total,
        appointments_by_status=by_status,
        completed_appointments=by_status.get("COMPLETED", 0),
        cancelled_appointments=by_status.get("CANCELLED", 0),
        total_treatments=len(treatments),
        total_cost=round(sum(t.cost for t in treatments), 2),
        total_paid=round(sum(t.paid for t in treatments), 2),
        total_balance=round(sum(t.balance for t in treatments), 2),
        last_visit=max(completed_dates) if completed_dates else None,
        next_appointment=min(upcoming_dates) if upcoming_dates else None,
    )
