"""
Accounting API endpoints.

Ledger transactions, patient payments, payment plans with installments,
clinic expenses and the admin financial reports built on top of them.
"""
import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.api.deps import require_permission
from clinic.audit import AuditAction, log_payment
from clinic.db import models, schemas
from clinic.db.database import get_db
from clinic.db.repositories import accounting as accounting_repo
from clinic.db.repositories import patients as patient_repo
from clinic.db.schemas.common import ExpenseCategory, TransactionType
from clinic.services.payments import PaymentService
from clinic.services.reports import ReportService
from clinic.utils.role_permissions import BILLING, CREATE, DELETE, READ, REPORTS, UPDATE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounting", tags=["accounting"])


def _require_patient(db: Session, patient_id: uuid.UUID) -> None:
    if not patient_repo.get_patient(db, patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")


def _require_plan(db: Session, plan_id: uuid.UUID) -> models.PaymentPlan:
    plan = accounting_repo.get_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Payment plan not found")
    return plan


def _require_expense(db: Session, expense_id: uuid.UUID) -> models.Expense:
    expense = accounting_repo.get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


# Transactions

@router.get("/transactions", response_model=schemas.PaginatedTransactions)
def list_transactions(
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    patient_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=schemas.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    items, total, sums = accounting_repo.list_transactions(
        db,
        type=type,
        category=category,
        patient_id=patient_id,
        date_from=date_from,
        date_to=date_to,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {
        **schemas.page_payload(items, total, page, limit),
        "total_income": round(sums.get("INCOME", 0.0), 2),
        "total_expense": round(sums.get("EXPENSE", 0.0), 2),
    }


@router.post("/transactions", response_model=schemas.Transaction, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: schemas.TransactionCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, CREATE)),
):
    user, _ctx = user_context
    if payload.patient_id:
        _require_patient(db, payload.patient_id)
    data = payload.model_dump()
    data.update(date=payload.date or date.today(), created_by=user.id)
    transaction = accounting_repo.create_transaction(db, data)
    logger.info("transaction_created id=%s type=%s amount=%.2f", transaction.id, transaction.type, transaction.amount)
    return transaction


@router.get("/transactions/{transaction_id}", response_model=schemas.Transaction)
def get_transaction(
    transaction_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    transaction = accounting_repo.get_transaction(db, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, DELETE)),
):
    user, _ctx = user_context
    transaction = accounting_repo.get_transaction(db, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if accounting_repo.expense_for_transaction(db, transaction.id):
        raise HTTPException(status_code=400, detail="Transaction belongs to an expense; delete the expense instead")
    accounting_repo.soft_delete_transaction(db, transaction)
    log_payment(
        db, actor_user_id=user.id, target_type="transaction", target_id=transaction.id,
        action=AuditAction.TRANSACTION_DELETE, amount=transaction.amount,
    )
    return None


# Patient payments

@router.post("/payments", response_model=schemas.PatientPayment, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: schemas.PatientPaymentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, CREATE)),
):
    user, _ctx = user_context
    payment = PaymentService(db).create_patient_payment(payload, actor_id=user.id)
    log_payment(
        db, actor_user_id=user.id, target_type="patient_payment", target_id=payment.id,
        action=AuditAction.PAYMENT_CREATE, amount=payment.amount,
    )
    return payment


@router.get("/payments/{payment_id}", response_model=schemas.PatientPayment)
def get_payment(
    payment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    payment = accounting_repo.get_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


@router.get("/patients/{patient_id}/payments", response_model=List[schemas.PatientPayment])
def list_patient_payments(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    _require_patient(db, patient_id)
    return accounting_repo.list_payments(db, patient_id)


# Payment plans

@router.post("/payment-plans", response_model=schemas.PaymentPlan, status_code=status.HTTP_201_CREATED)
def create_payment_plan(
    payload: schemas.PaymentPlanCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, CREATE)),
):
    user, _ctx = user_context
    plan = PaymentService(db).create_plan(payload, actor_id=user.id)
    log_payment(
        db, actor_user_id=user.id, target_type="payment_plan", target_id=plan.id,
        action=AuditAction.PAYMENT_PLAN_CREATE, amount=plan.total_amount,
    )
    return plan


@router.get("/payment-plans/overdue-installments", response_model=List[schemas.Installment])
def overdue_installments(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    return PaymentService(db).mark_overdue()


@router.get("/patients/{patient_id}/payment-plans", response_model=List[schemas.PaymentPlan])
def list_patient_plans(
    patient_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    _require_patient(db, patient_id)
    return accounting_repo.list_plans(db, patient_id)


@router.get("/payment-plans/{plan_id}", response_model=schemas.PaymentPlan)
def get_payment_plan(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    return _require_plan(db, plan_id)


@router.patch("/payment-plans/{plan_id}", response_model=schemas.PaymentPlan)
def update_payment_plan(
    plan_id: uuid.UUID,
    payload: schemas.PaymentPlanUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, UPDATE)),
):
    plan = _require_plan(db, plan_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if updates.get("status") == "COMPLETED" and plan.balance > 0:
        raise HTTPException(status_code=400, detail="Cannot complete a payment plan with an outstanding balance")
    return accounting_repo.update_plan(db, plan, updates)


@router.get("/payment-plans/{plan_id}/installments", response_model=List[schemas.Installment])
def list_installments(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    return sorted(_require_plan(db, plan_id).installments, key=lambda i: i.number)


@router.post("/payment-plans/{plan_id}/payments", response_model=schemas.RecordPaymentResult)
def record_plan_payment(
    plan_id: uuid.UUID,
    payload: schemas.RecordPaymentRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, CREATE)),
):
    user, _ctx = user_context
    plan = _require_plan(db, plan_id)
    result = PaymentService(db).record_plan_payment(plan, payload, actor_id=user.id)
    log_payment(
        db, actor_user_id=user.id, target_type="payment_plan", target_id=plan_id,
        action=AuditAction.PAYMENT_PLAN_PAYMENT, amount=payload.amount,
    )
    return result


# Expenses

@router.get("/expenses", response_model=schemas.PaginatedExpenses)
def list_expenses(
    category: Optional[ExpenseCategory] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=schemas.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    items, total, amount = accounting_repo.list_expenses(
        db, category=category, date_from=date_from, date_to=date_to, skip=(page - 1) * limit, limit=limit
    )
    return {**schemas.page_payload(items, total, page, limit), "total_amount": round(amount, 2)}


@router.post("/expenses", response_model=schemas.Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, CREATE)),
):
    user, _ctx = user_context
    expense = PaymentService(db).create_expense(payload, actor_id=user.id)
    log_payment(
        db, actor_user_id=user.id, target_type="expense", target_id=expense.id,
        action=AuditAction.EXPENSE_CREATE, amount=expense.amount,
    )
    return expense


@router.get("/expenses/by-category", response_model=List[schemas.ExpenseCategoryTotal])
def expenses_by_category(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    rows = accounting_repo.expenses_by_category(db, date_from=date_from, date_to=date_to)
    return sorted(
        (schemas.ExpenseCategoryTotal(category=c, total_amount=round(a, 2), count=n) for c, a, n in rows),
        key=lambda row: row.total_amount,
        reverse=True,
    )


@router.get("/expenses/{expense_id}", response_model=schemas.Expense)
def get_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, READ)),
):
    return _require_expense(db, expense_id)


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: uuid.UUID,
    payload: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, UPDATE)),
):
    expense = _require_expense(db, expense_id)
    return PaymentService(db).update_expense(expense, payload)


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(BILLING, DELETE)),
):
    user, _ctx = user_context
    expense = _require_expense(db, expense_id)
    PaymentService(db).delete_expense(expense)
    log_payment(
        db, actor_user_id=user.id, target_type="expense", target_id=expense.id,
        action=AuditAction.EXPENSE_DELETE, amount=expense.amount,
    )
    return None


# Reports

@router.get("/reports/monthly-balance", response_model=schemas.MonthlyBalance)
def monthly_balance(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(REPORTS, READ)),
):
    return ReportService(db).monthly_balance(month, year)


@router.get("/reports/cash-flow", response_model=schemas.CashFlow)
def cash_flow(
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(REPORTS, READ)),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    return ReportService(db).cash_flow(start_date, end_date)


@router.get("/reports/accounts-receivable", response_model=List[schemas.AccountReceivable])
def accounts_receivable(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(REPORTS, READ)),
):
    return ReportService(db).accounts_receivable()


@router.get("/reports/income-by-treatment", response_model=List[schemas.IncomeByTreatment])
def income_by_treatment(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(REPORTS, READ)),
):
    return ReportService(db).income_by_treatment(date_from=date_from, date_to=date_to)


@router.get("/reports/financial", response_model=schemas.FinancialReport)
def financial_report(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(REPORTS, READ)),
):
    return ReportService(db).financial_report(month, year)
