from datetime import date, timedelta

import pytest
from fastapi import HTTPException

from clinic.db import models, schemas
from clinic.services.payments import PaymentService
from clinic.services.reports import ReportService, month_bounds
from tests.factories import make_treatment


@pytest.fixture
def treatment(db, patient, doctor):
    return make_treatment(db, patient, doctor, cost=120.0)


def _plan(db, treatment, actor, *, total=90.0, count=3, first_due=None):
    payload = schemas.PaymentPlanCreate(
        patient_id=treatment.patient_id,
        treatment_id=treatment.id,
        total_amount=total,
        total_installments=count,
        first_due_date=first_due or date.today() + timedelta(days=1),
    )
    return PaymentService(db).create_plan(payload, actor_id=actor.id)


def test_patient_payment_updates_treatment_and_ledger(db, treatment, receptionist):
    payment = PaymentService(db).create_patient_payment(
        schemas.PatientPaymentCreate(
            patient_id=treatment.patient_id, treatment_id=treatment.id, amount=50, concept="Abono inicial"
        ),
        actor_id=receptionist.id,
    )
    db.refresh(treatment)
    assert payment.date == date.today()
    assert treatment.paid == 50
    assert treatment.balance == 70
    tx = db.query(models.Transaction).filter(models.Transaction.patient_id == treatment.patient_id).one()
    assert (tx.type, tx.category, tx.amount) == ("INCOME", "Patient Payment", 50)


def test_patient_payment_cannot_exceed_balance(db, treatment, receptionist):
    with pytest.raises(HTTPException) as exc:
        PaymentService(db).create_patient_payment(
            schemas.PatientPaymentCreate(
                patient_id=treatment.patient_id, treatment_id=treatment.id, amount=120.5, concept="Pago total"
            ),
            actor_id=receptionist.id,
        )
    assert exc.value.status_code == 400


def test_plan_schedule_and_payments_until_completed(db, treatment, receptionist):
    plan = _plan(db, treatment, receptionist)
    assert plan.status == "ACTIVE"
    assert plan.balance == 90
    assert sorted(i.amount for i in plan.installments) == [30, 30, 30]

    service = PaymentService(db)
    first = service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=30), actor_id=receptionist.id)
    assert first.installment.number == 1
    assert first.installment.status == "PAID"
    assert first.updated_balance == 60
    assert first.plan_status == "ACTIVE"

    # A partial payment leaves the installment open
    partial = service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=10), actor_id=receptionist.id)
    assert partial.installment.number == 2
    assert partial.installment.status == "PENDING"

    with pytest.raises(HTTPException):
        service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=60), actor_id=receptionist.id)

    settled = service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=20), actor_id=receptionist.id)
    assert settled.installment.number == 2
    assert settled.installment.status == "PAID"

    last = service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=30), actor_id=receptionist.id)
    assert last.installment.number == 3
    assert last.updated_balance == 0
    assert last.plan_status == "COMPLETED"

    with pytest.raises(HTTPException) as exc:
        service.record_plan_payment(plan, schemas.RecordPaymentRequest(amount=1), actor_id=receptionist.id)
    assert exc.value.detail == "Payment plan is completed"


def test_plan_first_due_date_cannot_be_past(db, treatment, receptionist):
    with pytest.raises(HTTPException) as exc:
        _plan(db, treatment, receptionist, first_due=date.today() - timedelta(days=1))
    assert exc.value.status_code == 400


def test_mark_overdue(db, treatment, receptionist):
    plan = _plan(db, treatment, receptionist, count=2)
    first = min(plan.installments, key=lambda i: i.number)
    first.due_date = date.today() - timedelta(days=3)
    db.commit()

    overdue = PaymentService(db).mark_overdue()
    assert [i.id for i in overdue] == [first.id]
    db.refresh(first)
    assert first.status == "OVERDUE"

    receivables = ReportService(db).accounts_receivable()
    assert len(receivables) == 1
    assert receivables[0].total_debt == 90
    assert receivables[0].overdue_amount == 45
    assert receivables[0].days_overdue == 3


def test_monthly_balance_splits_income_sources(db, treatment, receptionist):
    service = PaymentService(db)
    service.create_patient_payment(
        schemas.PatientPaymentCreate(patient_id=treatment.patient_id, amount=40, concept="Consulta"),
        actor_id=receptionist.id,
    )
    service.create_expense(
        schemas.ExpenseCreate(category="SUPPLIES", amount=15, description="Guantes"), actor_id=receptionist.id
    )
    db.add(models.Transaction(
        type="INCOME", amount=10, description="Venta de cepillos", category="Products",
        payment_method="CASH", date=date.today(), created_by=receptionist.id,
    ))
    db.commit()

    today = date.today()
    balance = ReportService(db).monthly_balance(today.month, today.year)
    assert balance.total_income == 50
    assert balance.total_expenses == 15
    assert balance.net_income == 35
    assert balance.income_sources.patient_payments == 40
    assert balance.income_sources.other_income == 10
    assert balance.expenses_by_category == {"SUPPLIES": 15}


def test_cash_flow_opening_balance(db, receptionist):
    start = date(2025, 3, 1)
    for on, kind, amount in ((date(2025, 2, 10), "INCOME", 100), (date(2025, 2, 11), "EXPENSE", 30),
                             (date(2025, 3, 5), "INCOME", 50), (date(2025, 4, 1), "INCOME", 999)):
        db.add(models.Transaction(type=kind, amount=amount, description="Movimiento", category="Other",
                                  payment_method="CASH", date=on, created_by=receptionist.id))
    db.commit()

    flow = ReportService(db).cash_flow(start, date(2025, 3, 31))
    assert flow.opening_balance == 70
    assert flow.total_income == 50
    assert flow.closing_balance == 120
    assert len(flow.entries) == 1


def test_month_bounds():
    assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(12, 2025) == (date(2025, 12, 1), date(2025, 12, 31))
