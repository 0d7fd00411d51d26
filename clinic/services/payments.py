"""
Payment handling: patient payments, payment plans and expenses.

Every money movement also writes a ledger ``Transaction`` in the same
commit; monthly reports are computed from transactions only.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.db import models, schemas
from clinic.db.repositories import accounting as accounting_repo
from clinic.db.repositories import medical as medical_repo
from clinic.db.repositories import patients as patient_repo
from clinic.services.installments import build_schedule

logger = logging.getLogger(__name__)

PATIENT_PAYMENT_CATEGORY = "Patient Payment"
PAYMENT_PLAN_CATEGORY = "Payment Plan"
PATIENT_INCOME_CATEGORIES = (PATIENT_PAYMENT_CATEGORY, PAYMENT_PLAN_CATEGORY)
EXPENSE_CLEARABLE_FIELDS = ("supplier", "invoice_number")

# Tolerance when comparing currency amounts held as floats.
CENT = 0.005


class PaymentService:
    def __init__(self, db: Session):
        self.db = db

    def _require_patient(self, patient_id: uuid.UUID) -> models.Patient:
        patient = patient_repo.get_patient(self.db, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def _require_treatment_of(self, treatment_id: uuid.UUID, patient_id: uuid.UUID) -> models.Treatment:
        treatment = medical_repo.get_treatment(self.db, treatment_id)
        if not treatment:
            raise HTTPException(status_code=404, detail="Treatment not found")
        if treatment.patient_id != patient_id:
            raise HTTPException(status_code=400, detail="Treatment does not belong to this patient")
        return treatment

    def create_patient_payment(self, payload: schemas.PatientPaymentCreate, *, actor_id: uuid.UUID) -> models.PatientPayment:
        self._require_patient(payload.patient_id)
        treatment: Optional[models.Treatment] = None
        if payload.treatment_id:
            treatment = self._require_treatment_of(payload.treatment_id, payload.patient_id)
            if payload.amount > treatment.balance + CENT:
                raise HTTPException(
                    status_code=400,
                    detail=f"Payment amount exceeds the treatment balance of {treatment.balance:.2f}",
                )

        on = payload.date or date.today()
        data = payload.model_dump()
        data.update(date=on, created_by=actor_id)
        payment = accounting_repo.create_payment(self.db, data, commit=False)

        if treatment is not None:
            treatment.paid = round(treatment.paid + payload.amount, 2)
            treatment.balance = round(max(0.0, treatment.balance - payload.amount), 2)

        accounting_repo.create_transaction(
            self.db,
            {
                "type": "INCOME",
                "amount": payload.amount,
                "description": payload.concept,
                "category": PATIENT_PAYMENT_CATEGORY,
                "payment_method": payload.payment_method,
                "date": on,
                "patient_id": payload.patient_id,
                "appointment_id": payload.appointment_id,
                "invoice_number": payload.receipt_number,
                "created_by": actor_id,
            },
            commit=False,
        )
        self.db.commit()
        self.db.refresh(payment)
        logger.info("patient_payment_recorded id=%s patient=%s amount=%.2f", payment.id, payment.patient_id, payment.amount)
        return payment

    def create_plan(self, payload: schemas.PaymentPlanCreate, *, actor_id: uuid.UUID) -> models.PaymentPlan:
        self._require_patient(payload.patient_id)
        self._require_treatment_of(payload.treatment_id, payload.patient_id)
        if payload.first_due_date < date.today():
            raise HTTPException(status_code=400, detail="First due date cannot be in the past")

        data = payload.model_dump()
        data.update(paid_amount=0.0, balance=payload.total_amount, status="ACTIVE", created_by=actor_id)
        installments = build_schedule(
            payload.total_amount, payload.total_installments, payload.first_due_date, payload.frequency
        )
        plan = accounting_repo.create_plan(self.db, data, installments)
        logger.info("payment_plan_created id=%s patient=%s installments=%s", plan.id, plan.patient_id, len(installments))
        return plan

    def record_plan_payment(
        self, plan: models.PaymentPlan, payload: schemas.RecordPaymentRequest, *, actor_id: uuid.UUID
    ) -> schemas.RecordPaymentResult:
        if plan.status != "ACTIVE":
            raise HTTPException(status_code=400, detail=f"Payment plan is {plan.status.lower()}")
        if payload.amount > plan.balance + CENT:
            raise HTTPException(
                status_code=400, detail=f"Payment amount exceeds the remaining balance of {plan.balance:.2f}"
            )
        installment = accounting_repo.next_open_installment(self.db, plan.id)
        if installment is None:
            raise HTTPException(status_code=400, detail="No pending installments for this plan")

        on = payload.date or date.today()
        payment = accounting_repo.create_payment(
            self.db,
            {
                "patient_id": plan.patient_id,
                "treatment_id": plan.treatment_id,
                "installment_id": installment.id,
                "amount": payload.amount,
                "payment_method": payload.payment_method,
                "concept": f"Installment {installment.number}/{plan.total_installments}",
                "date": on,
                "notes": payload.notes,
                "receipt_number": payload.receipt_number,
                "created_by": actor_id,
            },
            commit=False,
        )
        # Partial payments accumulate on the same installment
        if accounting_repo.installment_paid_total(self.db, installment.id) + CENT >= installment.amount:
            installment.status = "PAID"
            installment.paid_at = on

        plan.paid_amount = round(plan.paid_amount + payload.amount, 2)
        plan.balance = round(max(0.0, plan.total_amount - plan.paid_amount), 2)
        if plan.balance <= CENT:
            plan.balance = 0.0
            plan.status = "COMPLETED"

        accounting_repo.create_transaction(
            self.db,
            {
                "type": "INCOME",
                "amount": payload.amount,
                "description": f"Payment plan installment {installment.number}/{plan.total_installments}",
                "category": PAYMENT_PLAN_CATEGORY,
                "payment_method": payload.payment_method,
                "date": on,
                "patient_id": plan.patient_id,
                "invoice_number": payload.receipt_number,
                "created_by": actor_id,
            },
            commit=False,
        )
        self.db.commit()
        for obj in (payment, installment, plan):
            self.db.refresh(obj)
        logger.info("payment_plan_payment id=%s plan=%s installment=%s", payment.id, plan.id, installment.number)
        return schemas.RecordPaymentResult(
            payment=schemas.PatientPayment.model_validate(payment),
            installment=schemas.Installment.model_validate(installment),
            updated_balance=plan.balance,
            plan_status=plan.status,
        )

    def mark_overdue(self, today: Optional[date] = None) -> List[models.Installment]:
        """Flag pending past-due installments of active plans and return every overdue one."""
        today = today or date.today()
        stale = accounting_repo.pending_past_due(self.db, today)
        for installment in stale:
            installment.status = "OVERDUE"
        if stale:
            self.db.commit()
            logger.info("installments_marked_overdue count=%s", len(stale))
        return accounting_repo.overdue_installments(self.db)

    def create_expense(self, payload: schemas.ExpenseCreate, *, actor_id: uuid.UUID) -> models.Expense:
        on = payload.date or date.today()
        transaction = accounting_repo.create_transaction(
            self.db,
            {
                "type": "EXPENSE",
                "amount": payload.amount,
                "description": payload.description,
                "category": payload.category,
                "payment_method": payload.payment_method,
                "date": on,
                "invoice_number": payload.invoice_number,
                "created_by": actor_id,
            },
            commit=False,
        )
        data = payload.model_dump()
        data.update(date=on, created_by=actor_id, transaction_id=transaction.id)
        expense = accounting_repo.create_expense(self.db, data, commit=False)
        self.db.commit()
        self.db.refresh(expense)
        logger.info("expense_recorded id=%s category=%s amount=%.2f", expense.id, expense.category, expense.amount)
        return expense

    def update_expense(self, expense: models.Expense, payload: schemas.ExpenseUpdate) -> models.Expense:
        """Apply the changes and carry them to the expense's ledger transaction."""
        # Optional columns may be cleared with null; required ones keep their value
        updates = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in EXPENSE_CLEARABLE_FIELDS
        }
        accounting_repo.update_expense(self.db, expense, updates, commit=False)

        transaction = accounting_repo.linked_transaction(self.db, expense)
        if transaction is not None:
            transaction.amount = expense.amount
            transaction.category = expense.category
            transaction.description = expense.description
            transaction.date = expense.date
            transaction.payment_method = expense.payment_method
            transaction.invoice_number = expense.invoice_number
        self.db.commit()
        self.db.refresh(expense)
        logger.info("expense_updated id=%s fields=%s", expense.id, sorted(updates))
        return expense

    def delete_expense(self, expense: models.Expense) -> models.Expense:
        transaction = accounting_repo.linked_transaction(self.db, expense)
        accounting_repo.soft_delete_expense(self.db, expense, commit=False)
        if transaction is not None:
            transaction.deleted_at = expense.deleted_at
        self.db.commit()
        self.db.refresh(expense)
        logger.info("expense_deleted id=%s transaction=%s", expense.id, expense.transaction_id)
        return expense
