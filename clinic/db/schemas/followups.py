import datetime as dt
import uuid
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import FollowUpPriority, FollowUpStatus


class FollowUpBase(BaseModel):
    patient_id: uuid.UUID
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=1000)
    due_date: dt.date
    priority: FollowUpPriority = "MEDIUM"


class FollowUpCreate(FollowUpBase):
    @field_validator("due_date")
    @classmethod
    def _not_in_past(cls, v: dt.date) -> dt.date:
        if v < dt.date.today():
            raise ValueError("due_date cannot be in the past")
        return v


class FollowUpUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=10, max_length=1000)
    due_date: dt.date | None = None
    priority: FollowUpPriority | None = None
    status: FollowUpStatus | None = None


class FollowUp(FollowUpBase):
    id: uuid.UUID
    status: FollowUpStatus
    completed_at: dt.datetime | None = None
    created_by: uuid.UUID
    is_overdue: bool = False
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedFollowUps(BaseModel):
    items: List[FollowUp]
    total_items: int
    total_pages: int
    page: int
    limit: int
    has_more: bool


class FollowUpStats(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    cancelled: int
    overdue: int
    by_priority: Dict[str, int]
    upcoming_this_week: int


class PatientNoteCreate(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    is_pinned: bool = False


class PatientNoteUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    content: str | None = Field(default=None, min_length=1, max_length=5000)
    is_pinned: bool | None = None


class PatientNote(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    author_id: uuid.UUID
    title: str | None = None
    content: str
    is_pinned: bool
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)
