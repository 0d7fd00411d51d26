"""
Clinical records API endpoints.

Medical history, CIE-10 diagnoses, treatments (with their payment balance),
treatment plans and the combined clinical history of a patient.
"""
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.api.deps import require_permission
from clinic.audit import AuditAction, log_treatment
from clinic.db import models, schemas
from clinic.db.database import get_db
from clinic.db.repositories import medical as medical_repo
from clinic.db.repositories import patients as patient_repo
from clinic.db.schemas.common import TreatmentStatus
from clinic.utils.role_permissions import CREATE, MEDICAL_HISTORY, READ, TREATMENTS, UPDATE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["medical"])

TREATMENT_REQUIRED_FIELDS = ("catalog_id", "status", "cost", "paid")


def _require_patient(db: Session, patient_id: uuid.UUID) -> models.Patient:
    patient = patient_repo.get_patient(db, patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


def _require_treatment(db: Session, treatment_id: uuid.UUID) -> models.Treatment:
    treatment = medical_repo.get_treatment(db, treatment_id)
    if not treatment:
        raise HTTPException(status_code=404, detail="Treatment not found")
    return treatment


def _check_treatment_refs(db: Session, patient_id: uuid.UUID, fields: Dict[str, Any]) -> None:
    diagnosis_id = fields.get("diagnosis_id")
    if diagnosis_id is not None:
        diagnosis = medical_repo.get_diagnosis(db, diagnosis_id)
        if not diagnosis or diagnosis.patient_id != patient_id:
            raise HTTPException(status_code=400, detail="Diagnosis not found for this patient")
    catalog_id = fields.get("catalog_id")
    if catalog_id is not None and not medical_repo.get_catalog_item(db, catalog_id):
        raise HTTPException(status_code=400, detail="Treatment catalog item not found")


# Medical history

@router.get("/patients/{patient_id}/medical-history", response_model=schemas.MedicalHistory)
def get_medical_history(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    _require_patient(db, patient_id)
    history = medical_repo.get_medical_history(db, patient_id)
    if not history:
        raise HTTPException(status_code=404, detail="Medical history not found")
    return history


@router.post(
    "/patients/{patient_id}/medical-history",
    response_model=schemas.MedicalHistory,
    status_code=status.HTTP_201_CREATED,
)
def create_medical_history(
    patient_id: uuid.UUID,
    payload: schemas.MedicalHistoryCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, CREATE)),
):
    _require_patient(db, patient_id)
    if medical_repo.get_medical_history(db, patient_id):
        raise HTTPException(status_code=409, detail="Medical history already exists for this patient")
    history = medical_repo.create_medical_history(db, patient_id, payload.model_dump())
    logger.info("medical_history_created patient=%s", patient_id)
    return history


@router.put("/patients/{patient_id}/medical-history", response_model=schemas.MedicalHistory)
def update_medical_history(
    patient_id: uuid.UUID,
    payload: schemas.MedicalHistoryUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, UPDATE)),
):
    _require_patient(db, patient_id)
    history = medical_repo.get_medical_history(db, patient_id)
    if not history:
        raise HTTPException(status_code=404, detail="Medical history not found")
    updates = payload.model_dump(exclude_unset=True)
    is_pregnant = updates.get("is_pregnant", history.is_pregnant)
    if not is_pregnant:
        if updates.get("gestation_weeks") is not None:
            raise HTTPException(status_code=400, detail="gestation_weeks requires is_pregnant")
        updates["gestation_weeks"] = None
    return medical_repo.update_medical_history(db, history, updates)


# CIE-10 and diagnoses

@router.get("/cie10", response_model=List[schemas.CIE10Code])
def list_cie10(
    q: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    return medical_repo.list_cie10(db, q=q, limit=limit)


@router.get("/patients/{patient_id}/diagnoses", response_model=List[schemas.Diagnosis])
def list_diagnoses(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    _require_patient(db, patient_id)
    return medical_repo.list_diagnoses(db, patient_id)


@router.post(
    "/patients/{patient_id}/diagnoses",
    response_model=schemas.Diagnosis,
    status_code=status.HTTP_201_CREATED,
)
def create_diagnosis(
    patient_id: uuid.UUID,
    payload: schemas.DiagnosisCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, CREATE)),
):
    user, _ctx = user_context
    _require_patient(db, patient_id)
    code = medical_repo.get_cie10(db, payload.cie10_code)
    if not code:
        raise HTTPException(status_code=400, detail=f"CIE-10 code {payload.cie10_code} not found")
    data = payload.model_dump()
    data.update(
        patient_id=patient_id,
        doctor_id=user.id,
        cie10_name=code.name,
        date=payload.date or date.today(),
    )
    diagnosis = medical_repo.create_diagnosis(db, data)
    logger.info("diagnosis_created id=%s patient=%s code=%s", diagnosis.id, patient_id, diagnosis.cie10_code)
    return diagnosis


@router.get("/diagnoses/by-code/{code}", response_model=List[schemas.Diagnosis])
def list_diagnoses_by_code(
    code: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    return medical_repo.list_diagnoses_by_code(db, code.upper(), skip=skip, limit=limit)


@router.get("/diagnoses/{diagnosis_id}", response_model=schemas.Diagnosis)
def get_diagnosis(
    diagnosis_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    diagnosis = medical_repo.get_diagnosis(db, diagnosis_id)
    if not diagnosis:
        raise HTTPException(status_code=404, detail="Diagnosis not found")
    return diagnosis


@router.get("/diagnoses/{diagnosis_id}/treatments", response_model=List[schemas.Treatment])
def list_treatments_by_diagnosis(
    diagnosis_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    if not medical_repo.get_diagnosis(db, diagnosis_id):
        raise HTTPException(status_code=404, detail="Diagnosis not found")
    return medical_repo.list_treatments_by_diagnosis(db, diagnosis_id)


# Treatments

@router.get("/treatment-catalog", response_model=List[schemas.TreatmentCatalogItem])
def list_treatment_catalog(
    category: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    return medical_repo.list_catalog(db, category=category, active_only=not include_inactive)


@router.get("/patients/{patient_id}/treatments", response_model=List[schemas.Treatment])
def list_treatments(
    patient_id: uuid.UUID,
    status: Optional[TreatmentStatus] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    _require_patient(db, patient_id)
    return medical_repo.list_treatments(db, patient_id, status=status)


@router.post(
    "/patients/{patient_id}/treatments",
    response_model=schemas.Treatment,
    status_code=status.HTTP_201_CREATED,
)
def create_treatment(
    patient_id: uuid.UUID,
    payload: schemas.TreatmentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, CREATE)),
):
    user, _ctx = user_context
    _require_patient(db, patient_id)
    data = payload.model_dump()
    _check_treatment_refs(db, patient_id, data)
    if data["status"] == "COMPLETED" and data.get("completed_date") is None:
        data["completed_date"] = date.today()
    data.update(
        patient_id=patient_id,
        doctor_id=user.id,
        balance=round(data["cost"] - data["paid"], 2),
    )
    treatment = medical_repo.create_treatment(db, data)
    logger.info("treatment_created id=%s patient=%s", treatment.id, patient_id)
    log_treatment(
        db, actor_user_id=user.id, treatment_id=treatment.id, action=AuditAction.TREATMENT_CREATE,
        metadata={"catalog_id": str(treatment.catalog_id), "cost": treatment.cost},
    )
    return medical_repo.get_treatment(db, treatment.id)


@router.get("/treatments/{treatment_id}", response_model=schemas.Treatment)
def get_treatment(
    treatment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    return _require_treatment(db, treatment_id)


@router.put("/treatments/{treatment_id}", response_model=schemas.Treatment)
def update_treatment(
    treatment_id: uuid.UUID,
    payload: schemas.TreatmentUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, UPDATE)),
):
    user, _ctx = user_context
    treatment = _require_treatment(db, treatment_id)
    # Required columns ignore null
    updates = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field not in TREATMENT_REQUIRED_FIELDS
    }
    _check_treatment_refs(db, treatment.patient_id, updates)

    cost = updates.get("cost", treatment.cost)
    paid = updates.get("paid", treatment.paid)
    if paid > cost:
        raise HTTPException(status_code=400, detail="Paid amount cannot exceed total cost")
    if "cost" in updates or "paid" in updates:
        updates["balance"] = round(cost - paid, 2)

    new_status = updates.get("status", treatment.status)
    if new_status == "COMPLETED":
        completed_on = updates["completed_date"] if "completed_date" in updates else treatment.completed_date
        if completed_on is None:
            updates["completed_date"] = treatment.completed_date or date.today()
    elif updates.get("completed_date") is not None:
        raise HTTPException(status_code=400, detail="completed_date is only allowed when status is COMPLETED")

    previous_status = treatment.status
    updated = medical_repo.update_treatment(db, treatment, updates)
    log_treatment(
        db, actor_user_id=user.id, treatment_id=updated.id, action=AuditAction.TREATMENT_UPDATE,
        metadata={"fields": sorted(updates), "from_status": previous_status, "to_status": updated.status},
    )
    return medical_repo.get_treatment(db, updated.id)


# Treatment plans

def _require_plan(db: Session, plan_id: uuid.UUID) -> models.TreatmentPlan:
    plan = medical_repo.get_treatment_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Treatment plan not found")
    return plan


@router.get("/patients/{patient_id}/treatment-plans", response_model=List[schemas.TreatmentPlan])
def list_treatment_plans(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    _require_patient(db, patient_id)
    return medical_repo.list_treatment_plans(db, patient_id)


@router.post(
    "/patients/{patient_id}/treatment-plans",
    response_model=schemas.TreatmentPlan,
    status_code=status.HTTP_201_CREATED,
)
def create_treatment_plan(
    patient_id: uuid.UUID,
    payload: schemas.TreatmentPlanCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, CREATE)),
):
    _require_patient(db, patient_id)
    data = payload.model_dump()
    data["patient_id"] = patient_id
    if data["status"] == "APPROVED":
        data["approved_at"] = datetime.now(timezone.utc)
    plan = medical_repo.create_treatment_plan(db, data)
    logger.info("treatment_plan_created id=%s patient=%s", plan.id, patient_id)
    return plan


@router.get("/treatment-plans/{plan_id}", response_model=schemas.TreatmentPlan)
def get_treatment_plan(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, READ)),
):
    return _require_plan(db, plan_id)


@router.put("/treatment-plans/{plan_id}", response_model=schemas.TreatmentPlan)
def update_treatment_plan(
    plan_id: uuid.UUID,
    payload: schemas.TreatmentPlanUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(TREATMENTS, UPDATE)),
):
    plan = _require_plan(db, plan_id)
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("status") == "APPROVED" and plan.status != "APPROVED":
        updates["approved_at"] = datetime.now(timezone.utc)
    return medical_repo.update_treatment_plan(db, plan, updates)


@router.get("/patients/{patient_id}/complete-history", response_model=schemas.CompleteMedicalHistory)
def complete_history(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(MEDICAL_HISTORY, READ)),
):
    _require_patient(db, patient_id)
    return schemas.CompleteMedicalHistory(
        patient_id=patient_id,
        medical_history=medical_repo.get_medical_history(db, patient_id),
        diagnoses=medical_repo.list_diagnoses(db, patient_id),
        treatments=medical_repo.list_treatments(db, patient_id),
        treatment_plans=medical_repo.list_treatment_plans(db, patient_id),
    )
