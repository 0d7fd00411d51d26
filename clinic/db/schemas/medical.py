import datetime as dt
import uuid
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import Severity, TreatmentPlanStatus, TreatmentStatus

CIE10_PATTERN = r"^K[0-1][0-9](\.[0-9])?$"


def _check_cie10_range(code: str) -> str:
    # K00-K14 is the oral cavity chapter
    if int(code[1:3]) > 14:
        raise ValueError("CIE-10 code must be within K00-K14")
    return code


class MedicalHistoryBase(BaseModel):
    allergies: List[str] = []
    chronic_diseases: List[str] = []
    current_medications: List[str] = []
    previous_surgeries: List[str] = []
    family_history: List[str] = []
    last_dental_visit: dt.date | None = None
    brushing_frequency: int | None = Field(default=None, ge=0, le=10)
    uses_floss: bool = False
    uses_mouthwash: bool = False
    smoking_habit: bool = False
    alcohol_consumption: bool = False
    bruxism: bool = False
    nail_biting: bool = False
    is_pregnant: bool = False
    gestation_weeks: int | None = Field(default=None, ge=1, le=42)
    notes: str | None = Field(default=None, max_length=5000)


class MedicalHistoryCreate(MedicalHistoryBase):
    @model_validator(mode="after")
    def _pregnancy_fields(self):
        if self.gestation_weeks is not None and not self.is_pregnant:
            raise ValueError("gestation_weeks requires is_pregnant")
        return self


class MedicalHistoryUpdate(BaseModel):
    allergies: List[str] | None = None
    chronic_diseases: List[str] | None = None
    current_medications: List[str] | None = None
    previous_surgeries: List[str] | None = None
    family_history: List[str] | None = None
    last_dental_visit: dt.date | None = None
    brushing_frequency: int | None = Field(default=None, ge=0, le=10)
    uses_floss: bool | None = None
    uses_mouthwash: bool | None = None
    smoking_habit: bool | None = None
    alcohol_consumption: bool | None = None
    bruxism: bool | None = None
    nail_biting: bool | None = None
    is_pregnant: bool | None = None
    gestation_weeks: int | None = Field(default=None, ge=1, le=42)
    notes: str | None = Field(default=None, max_length=5000)


class MedicalHistory(MedicalHistoryBase):
    id: uuid.UUID
    patient_id: uuid.UUID
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class CIE10Code(BaseModel):
    code: str
    name: str
    category: str | None = None
    chapter: str | None = None
    model_config = ConfigDict(from_attributes=True)


class DiagnosisCreate(BaseModel):
    cie10_code: str = Field(pattern=CIE10_PATTERN)
    tooth_number: int | None = Field(default=None, ge=11, le=85)
    description: str = Field(min_length=3, max_length=2000)
    severity: Severity | None = None
    date: dt.date | None = None

    @field_validator("cie10_code")
    @classmethod
    def _in_range(cls, v: str) -> str:
        return _check_cie10_range(v)


class Diagnosis(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    cie10_code: str
    cie10_name: str
    tooth_number: int | None = None
    description: str
    severity: Severity | None = None
    date: dt.date
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class TreatmentCatalogItem(BaseModel):
    id: uuid.UUID
    code: str
    name: str
    category: str
    base_cost: float
    duration: int | None = None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class TreatmentCreate(BaseModel):
    diagnosis_id: uuid.UUID | None = None
    catalog_id: uuid.UUID
    tooth_number: int | None = Field(default=None, ge=11, le=85)
    status: TreatmentStatus = "PLANNED"
    cost: float = Field(gt=0)
    paid: float = Field(default=0, ge=0)
    planned_date: dt.date | None = None
    completed_date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _consistent(self):
        if self.paid > self.cost:
            raise ValueError("Paid amount cannot exceed total cost")
        if self.completed_date is not None and self.status != "COMPLETED":
            raise ValueError("completed_date is only allowed when status is COMPLETED")
        return self


class TreatmentUpdate(BaseModel):
    diagnosis_id: uuid.UUID | None = None
    catalog_id: uuid.UUID | None = None
    tooth_number: int | None = Field(default=None, ge=11, le=85)
    status: TreatmentStatus | None = None
    cost: float | None = Field(default=None, gt=0)
    paid: float | None = Field(default=None, ge=0)
    planned_date: dt.date | None = None
    completed_date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class Treatment(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    diagnosis_id: uuid.UUID | None = None
    catalog_id: uuid.UUID
    catalog: TreatmentCatalogItem | None = None
    tooth_number: int | None = None
    status: TreatmentStatus
    cost: float
    paid: float
    balance: float
    planned_date: dt.date | None = None
    completed_date: dt.date | None = None
    notes: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class TreatmentPlanCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    total_cost: float = Field(gt=0)
    status: TreatmentPlanStatus = "DRAFT"
    pdf_url: str | None = Field(default=None, max_length=1000)


class TreatmentPlanUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    total_cost: float | None = Field(default=None, gt=0)
    status: TreatmentPlanStatus | None = None
    pdf_url: str | None = Field(default=None, max_length=1000)


class TreatmentPlan(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    title: str
    description: str | None = None
    total_cost: float
    status: TreatmentPlanStatus
    approved_at: dt.datetime | None = None
    pdf_url: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class CompleteMedicalHistory(BaseModel):
    patient_id: uuid.UUID
    medical_history: MedicalHistory | None = None
    diagnoses: List[Diagnosis]
    treatments: List[Treatment]
    treatment_plans: List[TreatmentPlan]
