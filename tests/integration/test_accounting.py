import uuid
from datetime import date, timedelta

import pytest

from clinic.db import models
from tests.factories import API, auth_headers, make_catalog_item, make_treatment


@pytest.fixture
def headers(receptionist):
    return auth_headers(receptionist)


@pytest.fixture
def treatment(db, patient, doctor):
    return make_treatment(db, patient, doctor, cost=300)


def test_patient_payment_reduces_treatment_balance(client, db, headers, patient, treatment):
    response = client.post(
        f"{API}/accounting/payments",
        json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "amount": 120,
              "payment_method": "CARD", "concept": "Abono endodoncia"},
        headers=headers,
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["date"] == date.today().isoformat()

    db.refresh(treatment)
    assert (treatment.paid, treatment.balance) == (120, 180)
    over = client.post(
        f"{API}/accounting/payments",
        json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "amount": 181, "concept": "Saldo"},
        headers=headers,
    )
    assert over.status_code == 400

    listed = client.get(f"{API}/accounting/patients/{patient.id}/payments", headers=headers).json()
    assert [p["id"] for p in listed] == [payment["id"]]
    ledger = client.get(f"{API}/accounting/transactions", params={"patient_id": str(patient.id)},
                        headers=headers).json()
    assert ledger["total_items"] == 1
    assert ledger["items"][0]["category"] == "Patient Payment"
    assert ledger["total_income"] == 120


def test_payment_plan_to_completion(client, db, headers, patient, treatment):
    first_due = date.today() + timedelta(days=5)
    response = client.post(
        f"{API}/accounting/payment-plans",
        json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "total_amount": 100,
              "total_installments": 3, "first_due_date": first_due.isoformat()},
        headers=headers,
    )
    assert response.status_code == 201
    plan = response.json()
    assert [i["amount"] for i in plan["installments"]] == [33.33, 33.33, 33.34]
    assert [i["due_date"] for i in plan["installments"]] == [
        (first_due + timedelta(days=30 * n)).isoformat() for n in range(3)
    ]

    url = f"{API}/accounting/payment-plans/{plan['id']}/payments"
    results = [client.post(url, json={"amount": amount}, headers=headers).json()
               for amount in (33.33, 33.33, 33.34)]
    assert [r["installment"]["number"] for r in results] == [1, 2, 3]
    assert results[-1]["updated_balance"] == 0
    assert results[-1]["plan_status"] == "COMPLETED"
    assert client.post(url, json={"amount": 1}, headers=headers).status_code == 400

    installments = client.get(f"{API}/accounting/payment-plans/{plan['id']}/installments", headers=headers).json()
    assert {i["status"] for i in installments} == {"PAID"}
    plan_income = db.query(models.Transaction).filter(models.Transaction.category == "Payment Plan").count()
    assert plan_income == 3
    # Plan payments are not applied to the treatment itself
    db.refresh(treatment)
    assert treatment.paid == 0


def test_payment_plan_validation(client, db, headers, patient, treatment):
    base = {"patient_id": str(patient.id), "treatment_id": str(treatment.id), "total_amount": 100,
            "total_installments": 2}
    past = client.post(f"{API}/accounting/payment-plans",
                       json={**base, "first_due_date": (date.today() - timedelta(days=1)).isoformat()},
                       headers=headers)
    assert past.status_code == 400
    too_many = client.post(f"{API}/accounting/payment-plans",
                           json={**base, "total_installments": 61, "first_due_date": date.today().isoformat()},
                           headers=headers)
    assert too_many.status_code == 422


def test_plan_status_changes(client, admin, headers, patient, treatment):
    plan = client.post(
        f"{API}/accounting/payment-plans",
        json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "total_amount": 50,
              "total_installments": 1, "first_due_date": date.today().isoformat()},
        headers=headers,
    ).json()
    url = f"{API}/accounting/payment-plans/{plan['id']}"
    assert client.patch(url, json={"status": "CANCELLED"}, headers=headers).status_code == 403
    assert client.patch(url, json={"status": "COMPLETED"}, headers=auth_headers(admin)).status_code == 400
    cancelled = client.patch(url, json={"status": "CANCELLED"}, headers=auth_headers(admin)).json()
    assert cancelled["status"] == "CANCELLED"
    assert client.post(f"{url}/payments", json={"amount": 10}, headers=headers).status_code == 400
    plans = client.get(f"{API}/accounting/patients/{patient.id}/payment-plans", headers=headers).json()
    assert [p["id"] for p in plans] == [plan["id"]]


def test_overdue_installments_endpoint(client, db, headers, patient, treatment):
    plan = client.post(
        f"{API}/accounting/payment-plans",
        json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "total_amount": 60,
              "total_installments": 2, "frequency": "WEEKLY", "first_due_date": date.today().isoformat()},
        headers=headers,
    ).json()
    first = db.get(models.Installment, uuid.UUID(plan["installments"][0]["id"]))
    first.due_date = date.today() - timedelta(days=2)
    db.commit()

    overdue = client.get(f"{API}/accounting/payment-plans/overdue-installments", headers=headers).json()
    assert [i["id"] for i in overdue] == [plan["installments"][0]["id"]]
    assert overdue[0]["status"] == "OVERDUE"


def test_expenses(client, admin, headers):
    created = client.post(f"{API}/accounting/expenses",
                          json={"category": "SUPPLIES", "amount": 45.5, "description": "Resinas compuestas",
                                "supplier": "Dental Andina"}, headers=headers)
    assert created.status_code == 201
    client.post(f"{API}/accounting/expenses",
                json={"category": "RENT", "amount": 800, "description": "Arriendo consultorio"}, headers=headers)
    client.post(f"{API}/accounting/expenses",
                json={"category": "SUPPLIES", "amount": 20, "description": "Guantes de nitrilo"}, headers=headers)

    listed = client.get(f"{API}/accounting/expenses", params={"category": "SUPPLIES"}, headers=headers).json()
    assert listed["total_items"] == 2
    assert listed["total_amount"] == 65.5

    by_category = client.get(f"{API}/accounting/expenses/by-category", headers=headers).json()
    assert by_category == [
        {"category": "RENT", "total_amount": 800, "count": 1},
        {"category": "SUPPLIES", "total_amount": 65.5, "count": 2},
    ]

    expense_id = created.json()["id"]
    assert client.put(f"{API}/accounting/expenses/{expense_id}", json={"amount": 50},
                      headers=headers).status_code == 403
    updated = client.put(f"{API}/accounting/expenses/{expense_id}", json={"amount": 50},
                         headers=auth_headers(admin)).json()
    assert updated["amount"] == 50
    assert client.delete(f"{API}/accounting/expenses/{expense_id}", headers=auth_headers(admin)).status_code == 204
    assert client.get(f"{API}/accounting/expenses/{expense_id}", headers=headers).status_code == 404


def test_expense_edits_and_deletes_flow_into_reports(client, admin, headers):
    reports = auth_headers(admin)
    today = date.today()
    params = {"month": today.month, "year": today.year}
    created = client.post(f"{API}/accounting/expenses",
                          json={"category": "RENT", "amount": 800, "description": "Arriendo consultorio"},
                          headers=headers).json()
    assert created["transaction_id"]

    def monthly():
        return client.get(f"{API}/accounting/reports/monthly-balance", params=params, headers=reports).json()

    assert monthly()["expenses_by_category"] == {"RENT": 800}

    client.put(f"{API}/accounting/expenses/{created['id']}", json={"amount": 500, "category": "MAINTENANCE"},
               headers=reports)
    balance = monthly()
    assert balance["total_expenses"] == 500
    assert balance["expenses_by_category"] == {"MAINTENANCE": 500}

    # The ledger row is owned by the expense
    tx_url = f"{API}/accounting/transactions/{created['transaction_id']}"
    assert client.delete(tx_url, headers=reports).status_code == 400

    assert client.delete(f"{API}/accounting/expenses/{created['id']}", headers=reports).status_code == 204
    balance = monthly()
    assert balance["total_expenses"] == 0
    assert balance["expenses_by_category"] == {}
    flow = client.get(f"{API}/accounting/reports/cash-flow",
                      params={"start_date": today.isoformat(), "end_date": today.isoformat()}, headers=reports).json()
    assert flow["entries"] == []
    assert client.get(tx_url, headers=reports).status_code == 404


def test_expense_update_ignores_nulls_for_required_fields(client, admin, headers):
    created = client.post(f"{API}/accounting/expenses",
                          json={"category": "SUPPLIES", "amount": 30, "description": "Anestesia local",
                                "supplier": "Dental Andina"}, headers=headers).json()
    updated = client.put(f"{API}/accounting/expenses/{created['id']}", json={"amount": None, "supplier": None},
                         headers=auth_headers(admin)).json()
    assert updated["amount"] == 30
    assert updated["supplier"] is None


def test_manual_transactions(client, admin, headers, patient):
    created = client.post(f"{API}/accounting/transactions",
                          json={"type": "INCOME", "amount": 15, "description": "Venta de cepillos",
                                "category": "Products"}, headers=headers)
    assert created.status_code == 201
    tx_id = created.json()["id"]
    assert client.delete(f"{API}/accounting/transactions/{tx_id}", headers=headers).status_code == 403
    assert client.delete(f"{API}/accounting/transactions/{tx_id}", headers=auth_headers(admin)).status_code == 204
    assert client.get(f"{API}/accounting/transactions/{tx_id}", headers=headers).status_code == 404


def test_reports_are_admin_only(client, headers, doctor):
    today = date.today()
    params = {"month": today.month, "year": today.year}
    assert client.get(f"{API}/accounting/reports/monthly-balance", params=params, headers=headers).status_code == 403
    assert client.get(f"{API}/accounting/reports/financial", params=params,
                      headers=auth_headers(doctor)).status_code == 403


def test_reports(client, db, admin, headers, patient, doctor, treatment):
    client.post(f"{API}/accounting/payments",
                json={"patient_id": str(patient.id), "treatment_id": str(treatment.id), "amount": 200,
                      "concept": "Abono"}, headers=headers)
    client.post(f"{API}/accounting/transactions",
                json={"type": "INCOME", "amount": 50, "description": "Venta de productos", "category": "Products"},
                headers=headers)
    client.post(f"{API}/accounting/expenses",
                json={"category": "UTILITIES", "amount": 100, "description": "Luz y agua"}, headers=headers)
    catalog = make_catalog_item(db, code="ORT-001", name="Ortodoncia")
    make_treatment(db, patient, doctor, cost=500, status="COMPLETED", catalog=catalog)

    reports = auth_headers(admin)
    today = date.today()
    balance = client.get(f"{API}/accounting/reports/monthly-balance",
                         params={"month": today.month, "year": today.year}, headers=reports).json()
    assert balance["total_income"] == 250
    assert balance["income_sources"] == {"patient_payments": 200, "other_income": 50}
    assert balance["expenses_by_category"] == {"UTILITIES": 100}

    report = client.get(f"{API}/accounting/reports/financial",
                        params={"month": today.month, "year": today.year}, headers=reports).json()
    assert report["summary"] == {"revenue": 250, "expenses": 100, "profit": 150, "profit_margin": 60}

    flow = client.get(f"{API}/accounting/reports/cash-flow",
                      params={"start_date": today.isoformat(), "end_date": today.isoformat()}, headers=reports).json()
    assert flow["closing_balance"] == 150
    assert len(flow["entries"]) == 3
    bad = client.get(f"{API}/accounting/reports/cash-flow",
                     params={"start_date": today.isoformat(), "end_date": (today - timedelta(days=1)).isoformat()},
                     headers=reports)
    assert bad.status_code == 400

    income = client.get(f"{API}/accounting/reports/income-by-treatment", headers=reports).json()
    assert income == [{"treatment_code": "ORT-001", "treatment_name": "Ortodoncia", "total_income": 500,
                       "number_of_treatments": 1, "average_price": 500}]
    assert client.get(f"{API}/accounting/reports/accounts-receivable", headers=reports).json() == []
