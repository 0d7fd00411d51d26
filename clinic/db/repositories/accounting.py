"""
Accounting repository: transactions, patient payments, payment plans,
installments and expenses.

Functions taking ``commit=False`` only stage changes so that services can
group several writes into one transaction.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from clinic.db import models


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _stage(db: Session, obj, commit: bool):
    db.add(obj)
    if commit:
        db.commit()
        db.refresh(obj)
    else:
        db.flush()
    return obj


# Transactions

def _live_transactions(db: Session):
    return db.query(models.Transaction).filter(models.Transaction.deleted_at.is_(None))


def get_transaction(db: Session, transaction_id: uuid.UUID) -> Optional[models.Transaction]:
    return _live_transactions(db).filter(models.Transaction.id == transaction_id).first()


def list_transactions(
    db: Session,
    *,
    type: Optional[str] = None,
    category: Optional[str] = None,
    patient_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Transaction], int, Dict[str, float]]:
    query = _live_transactions(db)
    if type:
        query = query.filter(models.Transaction.type == type)
    if category:
        query = query.filter(models.Transaction.category == category)
    if patient_id:
        query = query.filter(models.Transaction.patient_id == patient_id)
    if date_from:
        query = query.filter(models.Transaction.date >= date_from)
    if date_to:
        query = query.filter(models.Transaction.date <= date_to)

    total = query.count()
    sums = {row_type: float(amount or 0) for row_type, amount in (
        query.with_entities(models.Transaction.type, func.sum(models.Transaction.amount))
        .group_by(models.Transaction.type)
        .all()
    )}
    items = (
        query.order_by(models.Transaction.date.desc(), models.Transaction.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total, sums


def create_transaction(db: Session, data: Dict[str, Any], *, commit: bool = True) -> models.Transaction:
    return _stage(db, models.Transaction(**data), commit)


def soft_delete_transaction(db: Session, transaction: models.Transaction) -> models.Transaction:
    transaction.deleted_at = _now()
    db.commit()
    db.refresh(transaction)
    return transaction


def transactions_between(db: Session, start: date, end: date) -> List[models.Transaction]:
    return (
        _live_transactions(db)
        .filter(models.Transaction.date >= start, models.Transaction.date <= end)
        .order_by(models.Transaction.date, models.Transaction.created_at)
        .all()
    )


def sum_by_type_before(db: Session, before: date) -> Dict[str, float]:
    rows = (
        _live_transactions(db)
        .filter(models.Transaction.date < before)
        .with_entities(models.Transaction.type, func.sum(models.Transaction.amount))
        .group_by(models.Transaction.type)
        .all()
    )
    return {row_type: float(amount or 0) for row_type, amount in rows}


# Patient payments

def get_payment(db: Session, payment_id: uuid.UUID) -> Optional[models.PatientPayment]:
    return db.query(models.PatientPayment).filter(models.PatientPayment.id == payment_id).first()


def list_payments(db: Session, patient_id: uuid.UUID) -> List[models.PatientPayment]:
    return (
        db.query(models.PatientPayment)
        .filter(models.PatientPayment.patient_id == patient_id)
        .order_by(models.PatientPayment.date.desc(), models.PatientPayment.created_at.desc())
        .all()
    )


def create_payment(db: Session, data: Dict[str, Any], *, commit: bool = True) -> models.PatientPayment:
    return _stage(db, models.PatientPayment(**data), commit)


# Payment plans

def _plans(db: Session):
    return db.query(models.PaymentPlan).options(joinedload(models.PaymentPlan.installments))


def get_plan(db: Session, plan_id: uuid.UUID) -> Optional[models.PaymentPlan]:
    return _plans(db).filter(models.PaymentPlan.id == plan_id).first()


def list_plans(db: Session, patient_id: uuid.UUID) -> List[models.PaymentPlan]:
    return (
        _plans(db)
        .filter(models.PaymentPlan.patient_id == patient_id)
        .order_by(models.PaymentPlan.created_at.desc())
        .all()
    )


def create_plan(db: Session, data: Dict[str, Any], installments: List[Dict[str, Any]]) -> models.PaymentPlan:
    plan = models.PaymentPlan(**data)
    plan.installments = [models.Installment(**item) for item in installments]
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def update_plan(db: Session, plan: models.PaymentPlan, updates: Dict[str, Any]) -> models.PaymentPlan:
    for field, value in updates.items():
        setattr(plan, field, value)
    db.commit()
    db.refresh(plan)
    return plan


def next_open_installment(db: Session, plan_id: uuid.UUID) -> Optional[models.Installment]:
    return (
        db.query(models.Installment)
        .filter(
            models.Installment.payment_plan_id == plan_id,
            models.Installment.status.in_(("PENDING", "OVERDUE")),
        )
        .order_by(models.Installment.number)
        .first()
    )


def installment_paid_total(db: Session, installment_id: uuid.UUID) -> float:
    total = (
        db.query(func.sum(models.PatientPayment.amount))
        .filter(models.PatientPayment.installment_id == installment_id)
        .scalar()
    )
    return float(total or 0)


def pending_past_due(db: Session, today: date) -> List[models.Installment]:
    return (
        db.query(models.Installment)
        .join(models.PaymentPlan)
        .filter(
            models.PaymentPlan.status == "ACTIVE",
            models.Installment.status == "PENDING",
            models.Installment.due_date < today,
        )
        .all()
    )


def overdue_installments(db: Session) -> List[models.Installment]:
    return (
        db.query(models.Installment)
        .join(models.PaymentPlan)
        .filter(models.PaymentPlan.status == "ACTIVE", models.Installment.status == "OVERDUE")
        .order_by(models.Installment.due_date, models.Installment.number)
        .all()
    )


def active_plans_with_balance(db: Session) -> List[models.PaymentPlan]:
    return (
        _plans(db)
        .filter(models.PaymentPlan.status == "ACTIVE", models.PaymentPlan.balance > 0)
        .all()
    )


# Expenses

def _live_expenses(db: Session):
    return db.query(models.Expense).filter(models.Expense.deleted_at.is_(None))


def get_expense(db: Session, expense_id: uuid.UUID) -> Optional[models.Expense]:
    return _live_expenses(db).filter(models.Expense.id == expense_id).first()


def list_expenses(
    db: Session,
    *,
    category: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Expense], int, float]:
    query = _live_expenses(db)
    if category:
        query = query.filter(models.Expense.category == category)
    if date_from:
        query = query.filter(models.Expense.date >= date_from)
    if date_to:
        query = query.filter(models.Expense.date <= date_to)
    total = query.count()
    amount = query.with_entities(func.sum(models.Expense.amount)).scalar()
    items = query.order_by(models.Expense.date.desc(), models.Expense.created_at.desc()).offset(skip).limit(limit).all()
    return items, total, float(amount or 0)


def create_expense(db: Session, data: Dict[str, Any], *, commit: bool = True) -> models.Expense:
    return _stage(db, models.Expense(**data), commit)


def update_expense(db: Session, expense: models.Expense, updates: Dict[str, Any], *, commit: bool = True) -> models.Expense:
    for field, value in updates.items():
        setattr(expense, field, value)
    if commit:
        db.commit()
        db.refresh(expense)
    else:
        db.flush()
    return expense


def soft_delete_expense(db: Session, expense: models.Expense, *, commit: bool = True) -> models.Expense:
    return update_expense(db, expense, {"deleted_at": _now()}, commit=commit)


def linked_transaction(db: Session, expense: models.Expense) -> Optional[models.Transaction]:
    if expense.transaction_id is None:
        return None
    return get_transaction(db, expense.transaction_id)


def expense_for_transaction(db: Session, transaction_id: uuid.UUID) -> Optional[models.Expense]:
    return _live_expenses(db).filter(models.Expense.transaction_id == transaction_id).first()


def expenses_by_category(
    db: Session, *, date_from: Optional[date] = None, date_to: Optional[date] = None
) -> List[Tuple[str, float, int]]:
    query = _live_expenses(db)
    if date_from:
        query = query.filter(models.Expense.date >= date_from)
    if date_to:
        query = query.filter(models.Expense.date <= date_to)
    rows = (
        query.with_entities(models.Expense.category, func.sum(models.Expense.amount), func.count(models.Expense.id))
        .group_by(models.Expense.category)
        .all()
    )
    return [(category, float(amount or 0), int(count)) for category, amount, count in rows]


# Reports

def transaction_totals(db: Session, start: date, end: date) -> List[Tuple[str, str, float]]:
    """(type, category, amount) sums for the inclusive range."""
    rows = (
        _live_transactions(db)
        .filter(models.Transaction.date >= start, models.Transaction.date <= end)
        .with_entities(models.Transaction.type, models.Transaction.category, func.sum(models.Transaction.amount))
        .group_by(models.Transaction.type, models.Transaction.category)
        .all()
    )
    return [(row_type, category, float(amount or 0)) for row_type, category, amount in rows]


def completed_treatment_income(
    db: Session, *, date_from: Optional[date] = None, date_to: Optional[date] = None
) -> List[Tuple[str, str, float, int]]:
    """(catalog code, catalog name, summed cost, count) for completed treatments."""
    query = (
        db.query(
            models.TreatmentCatalog.code,
            models.TreatmentCatalog.name,
            func.sum(models.Treatment.cost),
            func.count(models.Treatment.id),
        )
        .join(models.Treatment, models.Treatment.catalog_id == models.TreatmentCatalog.id)
        .filter(models.Treatment.status == "COMPLETED")
    )
    if date_from:
        query = query.filter(models.Treatment.completed_date >= date_from)
    if date_to:
        query = query.filter(models.Treatment.completed_date <= date_to)
    rows = query.group_by(models.TreatmentCatalog.code, models.TreatmentCatalog.name).all()
    return [(code, name, float(total or 0), int(count)) for code, name, total, count in rows]
