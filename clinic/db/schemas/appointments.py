import uuid
import datetime as dt
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clinic.utils.timeslots import to_minutes
from .common import (
    AppointmentStatus, AppointmentType, COLOR_PATTERN, RecurrenceFrequency, TIME_PATTERN,
)

MAX_RECURRING_OCCURRENCES = 52


class AppointmentBase(BaseModel):
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    date: dt.date
    start_time: str = Field(pattern=TIME_PATTERN)
    duration: int = Field(default=30, ge=5, le=480)
    type: AppointmentType = "CONSULTATION"
    reason: str = Field(min_length=3, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentUpdate(BaseModel):
    doctor_id: uuid.UUID | None = None
    date: dt.date | None = None
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=5, le=480)
    type: AppointmentType | None = None
    reason: str | None = Field(default=None, min_length=3, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: str | None = Field(default=None, max_length=1000)


class AppointmentCancel(BaseModel):
    reason: str = Field(min_length=3, max_length=500)


class PersonRef(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    model_config = ConfigDict(from_attributes=True)


class Appointment(AppointmentBase):
    id: uuid.UUID
    end_time: str
    status: AppointmentStatus
    recurring_id: uuid.UUID | None = None
    cancelled_at: dt.datetime | None = None
    created_by: uuid.UUID | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    patient: PersonRef | None = None
    doctor: PersonRef | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedAppointments(BaseModel):
    items: List[Appointment]
    total_items: int
    total_pages: int
    page: int
    limit: int
    has_more: bool


class AppointmentConflict(BaseModel):
    id: uuid.UUID
    start_time: str
    end_time: str
    patient_name: str


class AvailabilityResult(BaseModel):
    available: bool
    reason: str | None = None
    conflicts: List[AppointmentConflict] = []


class TimeSlot(BaseModel):
    start_time: str
    end_time: str
    available: bool
    reason: str | None = None
    appointment_id: uuid.UUID | None = None


class AvailableSlots(BaseModel):
    doctor_id: uuid.UUID
    date: dt.date
    slot_duration: int
    slots: List[TimeSlot]


class AppointmentStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    completion_rate: float
    cancellation_rate: float
    no_show_rate: float


class RecurringAppointmentCreate(BaseModel):
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    start_date: dt.date
    start_time: str = Field(pattern=TIME_PATTERN)
    duration: int = Field(default=30, ge=5, le=480)
    type: AppointmentType = "CONSULTATION"
    reason: str = Field(min_length=3, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=30)
    days_of_week: List[int] | None = None
    end_date: dt.date | None = None
    occurrences: int | None = Field(default=None, ge=1, le=MAX_RECURRING_OCCURRENCES)

    @field_validator("days_of_week")
    @classmethod
    def _valid_days(cls, v):
        if v is None:
            return v
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @model_validator(mode="after")
    def _valid_pattern(self):
        if self.frequency == "WEEKLY" and not self.days_of_week:
            raise ValueError("days_of_week is required for WEEKLY recurrence")
        if self.end_date is None and self.occurrences is None:
            raise ValueError("Either end_date or occurrences is required")
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class RecurringAppointment(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    frequency: RecurrenceFrequency
    interval: int
    days_of_week: List[int] | None = None
    start_date: dt.date
    end_date: dt.date | None = None
    occurrences: int | None = None
    start_time: str
    duration: int
    type: str
    reason: str
    active: bool
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class RecurringAppointmentResult(BaseModel):
    recurring: RecurringAppointment
    appointments: List[Appointment]
    appointment_count: int


class WorkScheduleBase(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    break_start: str | None = Field(default=None, pattern=TIME_PATTERN)
    break_end: str | None = Field(default=None, pattern=TIME_PATTERN)
    is_active: bool = True

    @model_validator(mode="after")
    def _valid_window(self):
        if to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("break_start and break_end must be provided together")
        if self.break_start is not None:
            b_start, b_end = to_minutes(self.break_start), to_minutes(self.break_end)
            if b_end <= b_start:
                raise ValueError("break_end must be after break_start")
            if b_start < to_minutes(self.start_time) or b_end > to_minutes(self.end_time):
                raise ValueError("Break must fall within working hours")
        return self


class WorkScheduleUpsert(WorkScheduleBase):
    pass


class WorkSchedule(WorkScheduleBase):
    id: uuid.UUID
    doctor_id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class BlockedTimeCreate(BaseModel):
    doctor_id: uuid.UUID
    date: dt.date
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    reason: str = Field(min_length=3, max_length=500)

    @model_validator(mode="after")
    def _valid_window(self):
        if to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class BlockedTime(BlockedTimeCreate):
    id: uuid.UUID
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class AvailabilityCheck(BaseModel):
    doctor_id: uuid.UUID
    date: dt.date
    start_time: str = Field(pattern=TIME_PATTERN)
    duration: int = Field(default=30, ge=5, le=480)
    exclude_appointment_id: uuid.UUID | None = None
