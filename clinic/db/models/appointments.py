import uuid
from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Appointment(Base):
    __tablename__ = 'appointments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    date = Column(Date, nullable=False)
    # Wall-clock times as "HH:MM"
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False, default='CONSULTATION')
    status = Column(String(20), nullable=False, default='SCHEDULED')
    reason = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    recurring_id = Column(UUID(as_uuid=True), ForeignKey('recurring_appointments.id'), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    patient = relationship("Patient", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    __table_args__ = (
        Index('ix_appointments_doctor_id_date', 'doctor_id', 'date'),
        Index('ix_appointments_patient_id_date', 'patient_id', 'date'),
        Index('ix_appointments_status', 'status'),
        CheckConstraint('duration >= 5 AND duration <= 480', name='ck_appointments_duration'),
        CheckConstraint(
            "status in ('SCHEDULED','CONFIRMED','IN_PROGRESS','COMPLETED','CANCELLED','NO_SHOW')",
            name='ck_appointments_status',
        ),
    )


class WorkSchedule(Base):
    __tablename__ = 'work_schedules'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday .. 6 = Saturday
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint('doctor_id', 'day_of_week', name='uq_work_schedules_doctor_day'),
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_work_schedules_day_of_week'),
    )


class BlockedTime(Base):
    __tablename__ = 'blocked_times'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('ix_blocked_times_doctor_id_date', 'doctor_id', 'date'),
    )


class RecurringAppointment(Base):
    __tablename__ = 'recurring_appointments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    doctor_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    frequency = Column(String(20), nullable=False)  # DAILY|WEEKLY|BIWEEKLY|MONTHLY
    interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(JSONB, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    occurrences = Column(Integer, nullable=True)
    start_time = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    appointments = relationship("Appointment", foreign_keys="Appointment.recurring_id")
