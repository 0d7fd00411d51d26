import uuid
from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, MONEY, now_utc


class Transaction(Base):
    __tablename__ = 'transactions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(String(10), nullable=False)  # INCOME|EXPENSE
    amount = Column(MONEY, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False)
    payment_method = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=True)
    appointment_id = Column(UUID(as_uuid=True), ForeignKey('appointments.id'), nullable=True)
    invoice_number = Column(String(50), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('ix_transactions_date_type', 'date', 'type'),
        CheckConstraint("type in ('INCOME','EXPENSE')", name='ck_transactions_type'),
        CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
    )


class PatientPayment(Base):
    __tablename__ = 'patient_payments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    treatment_id = Column(UUID(as_uuid=True), ForeignKey('treatments.id'), nullable=True)
    appointment_id = Column(UUID(as_uuid=True), ForeignKey('appointments.id'), nullable=True)
    installment_id = Column(UUID(as_uuid=True), ForeignKey('installments.id'), nullable=True)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String(20), nullable=False)
    concept = Column(String(200), nullable=False)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    receipt_number = Column(String(50), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('ix_patient_payments_patient_id_date', 'patient_id', 'date'),
        CheckConstraint('amount > 0', name='ck_patient_payments_amount_positive'),
    )


class PaymentPlan(Base):
    __tablename__ = 'payment_plans'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    patient_id = Column(UUID(as_uuid=True), ForeignKey('patients.id'), nullable=False)
    treatment_id = Column(UUID(as_uuid=True), ForeignKey('treatments.id'), nullable=False)
    total_amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, nullable=False, default=0)
    balance = Column(MONEY, nullable=False)
    total_installments = Column(Integer, nullable=False)
    frequency = Column(String(20), nullable=False, default='MONTHLY')
    first_due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default='ACTIVE')  # ACTIVE|COMPLETED|CANCELLED
    notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    installments = relationship(
        "Installment", back_populates="payment_plan", order_by="Installment.number", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint('total_installments >= 1 AND total_installments <= 60', name='ck_payment_plans_installments'),
    )


class Installment(Base):
    __tablename__ = 'installments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_plan_id = Column(UUID(as_uuid=True), ForeignKey('payment_plans.id', ondelete='CASCADE'), nullable=False)
    number = Column(Integer, nullable=False)
    amount = Column(MONEY, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default='PENDING')  # PENDING|PAID|OVERDUE
    paid_at = Column(Date, nullable=True)

    payment_plan = relationship("PaymentPlan", back_populates="installments")

    __table_args__ = (
        Index('ix_installments_status_due_date', 'status', 'due_date'),
    )


class Expense(Base):
    __tablename__ = 'expenses'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category = Column(String(20), nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    supplier = Column(String(200), nullable=True)
    invoice_number = Column(String(50), nullable=True)
    payment_method = Column(String(20), nullable=False)
    recurring = Column(Boolean, nullable=False, default=False)
    # EXPENSE ledger row kept in step with this expense
    transaction_id = Column(UUID(as_uuid=True), ForeignKey('transactions.id'), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_expenses_category_date', 'category', 'date'),
        CheckConstraint('amount > 0', name='ck_expenses_amount_positive'),
    )
