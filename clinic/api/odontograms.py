"""
Odontogram API endpoints.

Every write appends an immutable snapshot; reads default to the patient's
current version.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from clinic.api.deps import require_permission
from clinic.audit import AuditAction, log_odontogram
from clinic.db import schemas
from clinic.db.database import get_db
from clinic.db.repositories import odontograms as odontogram_repo
from clinic.db.repositories import patients as patient_repo
from clinic.services.odontograms import OdontogramService
from clinic.utils.role_permissions import CREATE, ODONTOGRAMS, READ, UPDATE

router = APIRouter(prefix="/odontograms", tags=["odontograms"])


@router.post("/", response_model=schemas.Odontogram, status_code=status.HTTP_201_CREATED)
def create_odontogram(
    payload: schemas.OdontogramCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, CREATE)),
):
    user, _ctx = user_context
    odontogram = OdontogramService(db).create(payload, actor_id=user.id)
    log_odontogram(
        db, actor_user_id=user.id, odontogram_id=odontogram.id, action=AuditAction.ODONTOGRAM_CREATE,
        version=odontogram.version,
    )
    return odontogram


@router.get("/patient/{patient_id}/current", response_model=schemas.Odontogram)
def get_current(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, READ)),
):
    return OdontogramService(db).require_current(patient_id)


@router.get("/patient/{patient_id}/history", response_model=List[schemas.OdontogramSummary])
def get_history(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, READ)),
):
    if not patient_repo.get_patient(db, patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    return odontogram_repo.list_history(db, patient_id)


@router.get("/patient/{patient_id}/statistics", response_model=schemas.OdontogramStatistics)
def get_statistics(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, READ)),
):
    return OdontogramService(db).statistics(patient_id)


@router.post("/patient/{patient_id}/versions", response_model=schemas.Odontogram, status_code=status.HTTP_201_CREATED)
def create_version_from(
    patient_id: uuid.UUID,
    payload: schemas.OdontogramNewVersion,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, CREATE)),
):
    user, _ctx = user_context
    odontogram = OdontogramService(db).new_version_from(patient_id, payload, actor_id=user.id)
    log_odontogram(
        db, actor_user_id=user.id, odontogram_id=odontogram.id, action=AuditAction.ODONTOGRAM_VERSION,
        version=odontogram.version,
    )
    return odontogram


@router.get("/compare", response_model=schemas.OdontogramComparison)
def compare_versions(
    from_id: uuid.UUID,
    to_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, READ)),
):
    return OdontogramService(db).compare(from_id, to_id)


@router.get("/{odontogram_id}", response_model=schemas.Odontogram)
def get_odontogram(
    odontogram_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, READ)),
):
    return OdontogramService(db).require(odontogram_id)


@router.put("/{odontogram_id}", response_model=schemas.Odontogram)
def update_odontogram(
    odontogram_id: uuid.UUID,
    payload: schemas.OdontogramUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, UPDATE)),
):
    user, _ctx = user_context
    service = OdontogramService(db)
    odontogram = service.update(service.require(odontogram_id), payload, actor_id=user.id)
    log_odontogram(
        db, actor_user_id=user.id, odontogram_id=odontogram.id, action=AuditAction.ODONTOGRAM_VERSION,
        version=odontogram.version,
    )
    return odontogram


@router.patch("/{odontogram_id}/teeth/{tooth_number}", response_model=schemas.Odontogram)
def update_tooth(
    payload: schemas.ToothUpdate,
    odontogram_id: uuid.UUID,
    tooth_number: int = Path(..., ge=11, le=85),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(ODONTOGRAMS, UPDATE)),
):
    user, _ctx = user_context
    service = OdontogramService(db)
    odontogram = service.update_tooth(service.require(odontogram_id), tooth_number, payload, actor_id=user.id)
    log_odontogram(
        db, actor_user_id=user.id, odontogram_id=odontogram.id, action=AuditAction.ODONTOGRAM_VERSION,
        version=odontogram.version,
    )
    return odontogram
