import datetime as dt
import uuid
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .common import DentitionType, SurfaceName, ToothStatus

SURFACES = ("O", "M", "D", "V", "L", "P")


class ToothSurface(BaseModel):
    status: ToothStatus = "HEALTHY"
    date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=500)


class Tooth(BaseModel):
    tooth_number: int
    status: ToothStatus = "HEALTHY"
    surfaces: Dict[SurfaceName, ToothSurface] = {}
    notes: str | None = Field(default=None, max_length=1000)


class ToothUpdate(BaseModel):
    status: ToothStatus | None = None
    surfaces: Dict[SurfaceName, ToothSurface] | None = None
    notes: str | None = Field(default=None, max_length=1000)


class OdontogramCreate(BaseModel):
    patient_id: uuid.UUID
    dentition_type: DentitionType = "PERMANENT"
    teeth: List[Tooth] | None = None
    general_notes: str | None = Field(default=None, max_length=5000)


class OdontogramUpdate(BaseModel):
    teeth: List[Tooth] | None = None
    general_notes: str | None = Field(default=None, max_length=5000)


class OdontogramNewVersion(BaseModel):
    base_version_id: uuid.UUID
    general_notes: str | None = Field(default=None, max_length=5000)


class Odontogram(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    dentition_type: DentitionType
    version: int
    is_current: bool
    teeth: List[Tooth]
    general_notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class OdontogramSummary(BaseModel):
    id: uuid.UUID
    version: int
    is_current: bool
    dentition_type: DentitionType
    general_notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class ToothChange(BaseModel):
    tooth_number: int
    field: str
    old_value: str | None = None
    new_value: str | None = None


class ComparisonSummary(BaseModel):
    total_changes: int
    teeth_modified: int
    status_changes: int
    surface_changes: int


class OdontogramComparison(BaseModel):
    patient_id: uuid.UUID
    from_version: int
    to_version: int
    changes: List[ToothChange]
    summary: ComparisonSummary


class OdontogramStatistics(BaseModel):
    odontogram_id: uuid.UUID
    version: int
    total: int
    healthy: int
    caries: int
    filled: int
    missing: int
    other: int
