import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class AuditLog(Base):
    """Append-only record of clinical, financial and account changes."""

    __tablename__ = 'audit_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor_user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    action_type = Column(String(50), nullable=False)
    # patient, appointment, odontogram, treatment, payment_plan, expense, user
    target_type = Column(String(50), nullable=True)
    target_id = Column(UUID(as_uuid=True), nullable=True)
    status = Column(String(10), nullable=False, default='success')
    reason = Column(Text, nullable=True)
    # Column is named 'metadata' in the database; the attribute name is reserved by SQLAlchemy
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_audit_logs_actor_user_id_created_at', 'actor_user_id', 'created_at'),
        Index('ix_audit_logs_target', 'target_type', 'target_id'),
        Index('ix_audit_logs_created_at', 'created_at'),
        CheckConstraint("status in ('success','failure')", name='ck_audit_logs_status'),
    )
