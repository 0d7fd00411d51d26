import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from clinic.utils.identification import is_valid_cedula
from .appointments import Appointment
from .common import (
    BloodType, Gender, IdentificationType, MaritalStatus, PHONE_PATTERN,
)
from .medical import Diagnosis, Treatment


def _age_in_years(born: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def _check_birth_date(value: date) -> date:
    if value > date.today():
        raise ValueError("Date of birth cannot be in the future")
    age = _age_in_years(value)
    if age < 1 or age > 150:
        raise ValueError("Patient age must be between 1 and 150 years")
    return value


class EmergencyContact(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    relationship: str = Field(min_length=2, max_length=50)
    phone: str = Field(pattern=PHONE_PATTERN)
    phone2: str | None = Field(default=None, pattern=PHONE_PATTERN)


class PatientBase(BaseModel):
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    date_of_birth: date
    gender: Gender
    identification: str = Field(min_length=5, max_length=20)
    identification_type: IdentificationType = "CEDULA"
    phone: str = Field(pattern=PHONE_PATTERN)
    email: EmailStr | None = None
    address: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    has_insurance: bool = False
    insurance_provider: str | None = Field(default=None, max_length=100)
    insurance_number: str | None = Field(default=None, max_length=50)
    occupation: str | None = Field(default=None, max_length=100)
    marital_status: MaritalStatus | None = None
    blood_type: BloodType | None = None
    emergency_contact: EmergencyContact | None = None


class PatientCreate(PatientBase):
    @field_validator("date_of_birth")
    @classmethod
    def _valid_birth_date(cls, v: date) -> date:
        return _check_birth_date(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return v.lower() if v else v

    @model_validator(mode="after")
    def _valid_identification(self):
        if self.identification_type == "CEDULA" and not is_valid_cedula(self.identification):
            raise ValueError("Invalid cédula number")
        return self


class PatientUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=2, max_length=100)
    last_name: str | None = Field(default=None, min_length=2, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    identification: str | None = Field(default=None, min_length=5, max_length=20)
    identification_type: IdentificationType | None = None
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    email: EmailStr | None = None
    address: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    has_insurance: bool | None = None
    insurance_provider: str | None = Field(default=None, max_length=100)
    insurance_number: str | None = Field(default=None, max_length=50)
    occupation: str | None = Field(default=None, max_length=100)
    marital_status: MaritalStatus | None = None
    blood_type: BloodType | None = None
    emergency_contact: EmergencyContact | None = None

    @field_validator("date_of_birth")
    @classmethod
    def _valid_birth_date(cls, v):
        return _check_birth_date(v) if v else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return v.lower() if v else v


class Patient(PatientBase):
    id: uuid.UUID
    email: str | None = None
    age: int | None = None
    is_active: bool
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _derive_age(self):
        if self.age is None and self.date_of_birth:
            self.age = _age_in_years(self.date_of_birth)
        return self


class PatientSummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    identification: str
    phone: str
    email: str | None = None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class PaginatedPatients(BaseModel):
    items: List[Patient]
    total_items: int
    total_pages: int
    page: int
    limit: int
    has_more: bool


class PatientStats(BaseModel):
    patient_id: uuid.UUID
    total_appointments: int
    appointments_by_status: Dict[str, int]
    completed_appointments: int
    cancelled_appointments: int
    total_treatments: int
    total_cost: float
    total_paid: float
    total_balance: float
    last_visit: date | None = None
    next_appointment: date | None = None


class PatientDashboardStats(BaseModel):
    total_active: int
    total_inactive: int
    new_this_month: int
    with_insurance: int
    gender_distribution: Dict[str, int]


class PatientHistory(BaseModel):
    patient: Patient
    appointments: List[Appointment]
    treatments: List[Treatment]
    diagnoses: List[Diagnosis]
