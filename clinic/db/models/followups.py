import uuid
from sqlalchemy import Column, String, Date, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class FollowUp(Base):
    __tablename__ = 'follow_ups'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    due_date = Column(Date, nullable=False)
    priority = Column(String(10), nullable=False, default='MEDIUM')
    status = Column(String(20), nullable=False, default='PENDING')
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_follow_ups_status_due_date', 'status', 'due_date'),
        Index('ix_follow_ups_patient_id', 'patient_id'),
        CheckConstraint("priority in ('LOW','MEDIUM','HIGH','URGENT')", name='ck_follow_ups_priority'),
        CheckConstraint(
            "status in ('PENDING','IN_PROGRESS','COMPLETED','CANCELLED')", name='ck_follow_ups_status'
        ),
    )


class PatientNote(Base):
    __tablename__ = 'patient_notes'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_patient_notes_patient_id', 'patient_id'),
    )
