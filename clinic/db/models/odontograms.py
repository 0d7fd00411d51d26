import uuid
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Odontogram(Base):
    """One immutable snapshot of a patient's dentition.

    Each write produces a new row; only the newest row per patient carries
    ``is_current = True``.
    """
    __tablename__ = 'odontograms'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    dentition_type = Column(String(20), nullable=False, default='PERMANENT')
    version = Column(Integer, nullable=False)
    is_current = Column(Boolean, nullable=False, default=True)
    # [{tooth_number, status, surfaces: {O|M|D|V|L|P: {status, date, notes}}, notes}]
    teeth = Column(JSONB, nullable=False)
    general_notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint('patient_id', 'version', name='uq_odontograms_patient_version'),
        Index('ix_odontograms_patient_id_is_current', 'patient_id', 'is_current'),
    )
