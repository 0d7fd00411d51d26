import uuid
from sqlalchemy import Column, String, Date, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Patient(Base):
    __tablename__ = 'patients'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(10), nullable=False)  # MALE|FEMALE|OTHER
    identification = Column(String(20), nullable=False, unique=True)
    identification_type = Column(String(20), nullable=False, default='CEDULA')
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)

    has_insurance = Column(Boolean, nullable=False, default=False)
    insurance_provider = Column(String(100), nullable=True)
    insurance_number = Column(String(50), nullable=True)

    occupation = Column(String(100), nullable=True)
    marital_status = Column(String(20), nullable=True)
    blood_type = Column(String(5), nullable=True)
    # {name, relationship, phone, phone2}
    emergency_contact = Column(JSONB, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_patients_last_name_first_name', 'last_name', 'first_name'),
        Index('ix_patients_deleted_at', 'deleted_at'),
        CheckConstraint("gender in ('MALE','FEMALE','OTHER')", name='ck_patients_gender'),
        CheckConstraint(
            "identification_type in ('CEDULA','PASSPORT','RUC')", name='ck_patients_identification_type'
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
