import uuid
from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, MONEY, now_utc


class MedicalHistory(Base):
    __tablename__ = 'medical_histories'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False, unique=True)

    allergies = Column(JSONB, nullable=False, default=list)
    chronic_diseases = Column(JSONB, nullable=False, default=list)
    current_medications = Column(JSONB, nullable=False, default=list)
    previous_surgeries = Column(JSONB, nullable=False, default=list)
    family_history = Column(JSONB, nullable=False, default=list)

    last_dental_visit = Column(Date, nullable=True)
    brushing_frequency = Column(Integer, nullable=True)
    uses_floss = Column(Boolean, nullable=False, default=False)
    uses_mouthwash = Column(Boolean, nullable=False, default=False)
    smoking_habit = Column(Boolean, nullable=False, default=False)
    alcohol_consumption = Column(Boolean, nullable=False, default=False)
    bruxism = Column(Boolean, nullable=False, default=False)
    nail_biting = Column(Boolean, nullable=False, default=False)
    is_pregnant = Column(Boolean, nullable=False, default=False)
    gestation_weeks = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class CIE10Code(Base):
    __tablename__ = 'cie10_codes'
    code = Column(String(10), primary_key=True)
    name = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    chapter = Column(String(20), nullable=True)


class Diagnosis(Base):
    __tablename__ = 'diagnoses'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    cie10_code = Column(String(10), ForeignKey('cie10_codes.code'), nullable=False)
    cie10_name = Column(Text, nullable=False)
    tooth_number = Column(Integer, nullable=True)
    description = Column(Text, nullable=False)
    severity = Column(String(20), nullable=True)  # MILD|MODERATE|SEVERE
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_diagnoses_patient_id_date', 'patient_id', 'date'),
        Index('ix_diagnoses_cie10_code', 'cie10_code'),
    )


class TreatmentCatalog(Base):
    __tablename__ = 'treatment_catalog'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(20), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)
    base_cost = Column(MONEY, nullable=False)
    duration = Column(Integer, nullable=True)  # minutes
    is_active = Column(Boolean, nullable=False, default=True)


class Treatment(Base):
    __tablename__ = 'treatments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    diagnosis_id = Column(UUID(as_uuid=True), ForeignKey('diagnoses.id'), nullable=True)
    catalog_id = Column(UUID(as_uuid=True), ForeignKey('treatment_catalog.id'), nullable=False)
    tooth_number = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default='PLANNED')
    cost = Column(MONEY, nullable=False)
    paid = Column(MONEY, nullable=False, default=0)
    balance = Column(MONEY, nullable=False, default=0)
    planned_date = Column(Date, nullable=True)
    completed_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    catalog = relationship("TreatmentCatalog")

    __table_args__ = (
        Index('ix_treatments_patient_id', 'patient_id'),
        Index('ix_treatments_diagnosis_id', 'diagnosis_id'),
        CheckConstraint(
            "status in ('PLANNED','IN_PROGRESS','COMPLETED','CANCELLED')", name='ck_treatments_status'
        ),
        CheckConstraint('paid <= cost', name='ck_treatments_paid_le_cost'),
    )


class TreatmentPlan(Base):
    __tablename__ = 'treatment_plans'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    total_cost = Column(MONEY, nullable=False)
    status = Column(String(20), nullable=False, default='DRAFT')
    approved_at = Column(DateTime(timezone=True), nullable=True)
    pdf_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_treatment_plans_patient_id', 'patient_id'),
    )
