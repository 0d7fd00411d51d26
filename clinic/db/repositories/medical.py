"""
Clinical records repository: medical histories, CIE-10 catalog, diagnoses,
treatments and treatment plans.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from clinic.db import models


def _save(db: Session, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def _apply(db: Session, obj, updates: Dict[str, Any]):
    for field, value in updates.items():
        setattr(obj, field, value)
    db.commit()
    db.refresh(obj)
    return obj


# Medical history

def get_medical_history(db: Session, patient_id: uuid.UUID) -> Optional[models.MedicalHistory]:
    return db.query(models.MedicalHistory).filter(models.MedicalHistory.patient_id == patient_id).first()


def create_medical_history(db: Session, patient_id: uuid.UUID, data: Dict[str, Any]) -> models.MedicalHistory:
    return _save(db, models.MedicalHistory(patient_id=patient_id, **data))


def update_medical_history(db: Session, history: models.MedicalHistory, updates: Dict[str, Any]) -> models.MedicalHistory:
    return _apply(db, history, updates)


# CIE-10 catalog

def get_cie10(db: Session, code: str) -> Optional[models.CIE10Code]:
    return db.query(models.CIE10Code).filter(models.CIE10Code.code == code).first()


def list_cie10(db: Session, *, q: Optional[str] = None, limit: int = 100) -> List[models.CIE10Code]:
    query = db.query(models.CIE10Code)
    if q:
        term = f"%{q.strip()}%"
        query = query.filter(or_(models.CIE10Code.code.ilike(term), models.CIE10Code.name.ilike(term)))
    return query.order_by(models.CIE10Code.code).limit(limit).all()


# Diagnoses

def get_diagnosis(db: Session, diagnosis_id: uuid.UUID) -> Optional[models.Diagnosis]:
    return db.query(models.Diagnosis).filter(models.Diagnosis.id == diagnosis_id).first()


def list_diagnoses(db: Session, patient_id: uuid.UUID) -> List[models.Diagnosis]:
    return (
        db.query(models.Diagnosis)
        .filter(models.Diagnosis.patient_id == patient_id)
        .order_by(models.Diagnosis.date.desc(), models.Diagnosis.created_at.desc())
        .all()
    )


def list_diagnoses_by_code(db: Session, code: str, *, skip: int = 0, limit: int = 100) -> List[models.Diagnosis]:
    return (
        db.query(models.Diagnosis)
        .filter(models.Diagnosis.cie10_code == code)
        .order_by(models.Diagnosis.date.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_diagnosis(db: Session, data: Dict[str, Any]) -> models.Diagnosis:
    return _save(db, models.Diagnosis(**data))


# Treatment catalog

def get_catalog_item(db: Session, catalog_id: uuid.UUID) -> Optional[models.TreatmentCatalog]:
    return db.query(models.TreatmentCatalog).filter(models.TreatmentCatalog.id == catalog_id).first()


def list_catalog(db: Session, *, category: Optional[str] = None, active_only: bool = True) -> List[models.TreatmentCatalog]:
    query = db.query(models.TreatmentCatalog)
    if active_only:
        query = query.filter(models.TreatmentCatalog.is_active.is_(True))
    if category:
        query = query.filter(models.TreatmentCatalog.category == category)
    return query.order_by(models.TreatmentCatalog.code).all()


# Treatments

def _treatments(db: Session):
    return db.query(models.Treatment).options(joinedload(models.Treatment.catalog))


def get_treatment(db: Session, treatment_id: uuid.UUID) -> Optional[models.Treatment]:
    return _treatments(db).filter(models.Treatment.id == treatment_id).first()


def list_treatments(db: Session, patient_id: uuid.UUID, *, status: Optional[str] = None) -> List[models.Treatment]:
    query = _treatments(db).filter(models.Treatment.patient_id == patient_id)
    if status:
        query = query.filter(models.Treatment.status == status)
    return query.order_by(models.Treatment.created_at.desc()).all()


def list_treatments_by_diagnosis(db: Session, diagnosis_id: uuid.UUID) -> List[models.Treatment]:
    return (
        _treatments(db)
        .filter(models.Treatment.diagnosis_id == diagnosis_id)
        .order_by(models.Treatment.created_at.desc())
        .all()
    )


def create_treatment(db: Session, data: Dict[str, Any]) -> models.Treatment:
    return _save(db, models.Treatment(**data))


def update_treatment(db: Session, treatment: models.Treatment, updates: Dict[str, Any]) -> models.Treatment:
    return _apply(db, treatment, updates)


# Treatment plans

def get_treatment_plan(db: Session, plan_id: uuid.UUID) -> Optional[models.TreatmentPlan]:
    return db.query(models.TreatmentPlan).filter(models.TreatmentPlan.id == plan_id).first()


def list_treatment_plans(db: Session, patient_id: uuid.UUID) -> List[models.TreatmentPlan]:
    return (
        db.query(models.TreatmentPlan)
        .filter(models.TreatmentPlan.patient_id == patient_id)
        .order_by(models.TreatmentPlan.created_at.desc())
        .all()
    )


def create_treatment_plan(db: Session, data: Dict[str, Any]) -> models.TreatmentPlan:
    return _save(db, models.TreatmentPlan(**data))


def update_treatment_plan(db: Session, plan: models.TreatmentPlan, updates: Dict[str, Any]) -> models.TreatmentPlan:
    return _apply(db, plan, updates)
