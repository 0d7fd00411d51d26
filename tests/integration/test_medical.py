from datetime import date

import pytest

from tests.factories import API, auth_headers, make_catalog_item, make_cie10, make_patient


@pytest.fixture
def headers(doctor):
    return auth_headers(doctor)


def test_medical_history_lifecycle(client, headers, receptionist, patient):
    url = f"{API}/patients/{patient.id}/medical-history"
    assert client.get(url, headers=headers).status_code == 404

    created = client.post(url, json={"allergies": ["Penicilina"], "is_pregnant": True, "gestation_weeks": 20},
                          headers=headers)
    assert created.status_code == 201
    assert created.json()["allergies"] == ["Penicilina"]
    assert client.post(url, json={}, headers=headers).status_code == 409

    assert client.put(url, json={"is_pregnant": False, "gestation_weeks": 22}, headers=headers).status_code == 400
    cleared = client.put(url, json={"is_pregnant": False}, headers=headers).json()
    assert cleared["gestation_weeks"] is None

    reception = auth_headers(receptionist)
    assert client.get(url, headers=reception).status_code == 200
    assert client.put(url, json={"bruxism": True}, headers=reception).status_code == 403


def test_gestation_without_pregnancy_is_rejected(client, headers, patient):
    response = client.post(f"{API}/patients/{patient.id}/medical-history", json={"gestation_weeks": 10},
                           headers=headers)
    assert response.status_code == 422


def test_diagnoses(client, db, headers, doctor, patient):
    make_cie10(db)
    url = f"{API}/patients/{patient.id}/diagnoses"
    unknown = client.post(url, json={"cie10_code": "K05.1", "description": "Gingivitis crónica"}, headers=headers)
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "CIE-10 code K05.1 not found"
    out_of_range = client.post(url, json={"cie10_code": "J02", "description": "Faringitis"}, headers=headers)
    assert out_of_range.status_code == 422

    created = client.post(url, json={"cie10_code": "K02.1", "description": "Caries en 16", "tooth_number": 16,
                                     "severity": "MODERATE"}, headers=headers)
    assert created.status_code == 201
    body = created.json()
    assert body["cie10_name"] == "Caries de la dentina"
    assert body["doctor_id"] == str(doctor.id)

    assert [d["id"] for d in client.get(url, headers=headers).json()] == [body["id"]]
    by_code = client.get(f"{API}/diagnoses/by-code/k02.1", headers=headers).json()
    assert [d["id"] for d in by_code] == [body["id"]]
    codes = client.get(f"{API}/cie10", params={"q": "dentina"}, headers=headers).json()
    assert [c["code"] for c in codes] == ["K02.1"]


def test_treatments_track_balance(client, db, headers, patient):
    make_cie10(db)
    catalog = make_catalog_item(db, code="END-001", name="Endodoncia", base_cost=180)
    diagnosis = client.post(f"{API}/patients/{patient.id}/diagnoses",
                            json={"cie10_code": "K02.1", "description": "Caries profunda"}, headers=headers).json()

    url = f"{API}/patients/{patient.id}/treatments"
    created = client.post(url, json={"catalog_id": str(catalog.id), "diagnosis_id": diagnosis["id"],
                                     "cost": 180, "paid": 30, "tooth_number": 16}, headers=headers)
    assert created.status_code == 201
    treatment = created.json()
    assert treatment["balance"] == 150
    assert treatment["catalog"]["code"] == "END-001"

    linked = client.get(f"{API}/diagnoses/{diagnosis['id']}/treatments", headers=headers).json()
    assert [t["id"] for t in linked] == [treatment["id"]]

    too_much = client.put(f"{API}/treatments/{treatment['id']}", json={"paid": 200}, headers=headers)
    assert too_much.status_code == 400
    early_date = client.put(f"{API}/treatments/{treatment['id']}", json={"completed_date": "2025-01-01"},
                            headers=headers)
    assert early_date.status_code == 400

    done = client.put(f"{API}/treatments/{treatment['id']}", json={"status": "COMPLETED", "paid": 180},
                      headers=headers).json()
    assert done["balance"] == 0
    assert done["completed_date"] is not None

    completed = client.get(url, params={"status": "COMPLETED"}, headers=headers).json()
    assert [t["id"] for t in completed] == [treatment["id"]]


def test_completed_treatment_keeps_a_completed_date(client, db, headers, patient):
    catalog = make_catalog_item(db, code="PRO-001", name="Profilaxis", base_cost=40)
    created = client.post(f"{API}/patients/{patient.id}/treatments",
                          json={"catalog_id": str(catalog.id), "cost": 40}, headers=headers).json()
    url = f"{API}/treatments/{created['id']}"

    done = client.put(url, json={"status": "COMPLETED", "completed_date": None}, headers=headers)
    assert done.status_code == 200
    assert done.json()["completed_date"] == date.today().isoformat()

    again = client.put(url, json={"completed_date": None, "cost": None, "notes": "Sin novedades"},
                       headers=headers).json()
    assert again["completed_date"] == date.today().isoformat()
    assert again["cost"] == 40
    assert again["notes"] == "Sin novedades"


def test_treatment_reference_checks(client, db, headers, patient):
    make_cie10(db)
    catalog = make_catalog_item(db, code="PRF-001", name="Profilaxis")
    other = make_patient(db, first_name="Pablo", last_name="Cruz")
    foreign = client.post(f"{API}/patients/{other.id}/diagnoses",
                          json={"cie10_code": "K02.1", "description": "Caries"}, headers=headers).json()
    response = client.post(f"{API}/patients/{patient.id}/treatments",
                           json={"catalog_id": str(catalog.id), "diagnosis_id": foreign["id"], "cost": 40},
                           headers=headers)
    assert response.status_code == 400


def test_receptionist_cannot_create_treatments(client, db, receptionist, patient):
    catalog = make_catalog_item(db, code="PRF-001", name="Profilaxis")
    response = client.post(f"{API}/patients/{patient.id}/treatments", json={"catalog_id": str(catalog.id), "cost": 40},
                           headers=auth_headers(receptionist))
    assert response.status_code == 403


def test_treatment_plans_and_complete_history(client, db, headers, patient):
    url = f"{API}/patients/{patient.id}/treatment-plans"
    plan = client.post(url, json={"title": "Rehabilitación", "total_cost": 950}, headers=headers)
    assert plan.status_code == 201
    assert plan.json()["status"] == "DRAFT"
    assert plan.json()["approved_at"] is None

    approved = client.put(f"{API}/treatment-plans/{plan.json()['id']}", json={"status": "APPROVED"},
                          headers=headers).json()
    assert approved["approved_at"] is not None

    catalog = make_catalog_item(db, code="PRF-001", name="Profilaxis")
    client.post(f"{API}/patients/{patient.id}/treatments", json={"catalog_id": str(catalog.id), "cost": 40},
                headers=headers)
    history = client.get(f"{API}/patients/{patient.id}/complete-history", headers=headers).json()
    assert history["medical_history"] is None
    assert len(history["treatment_plans"]) == 1
    assert len(history["treatments"]) == 1
    assert history["diagnoses"] == []


def test_treatment_catalog_listing(client, db, headers):
    make_catalog_item(db, code="PRF-001", name="Profilaxis", category="PREVENTIVE")
    make_catalog_item(db, code="EXO-001", name="Exodoncia simple", category="SURGERY")
    items = client.get(f"{API}/treatment-catalog", params={"category": "SURGERY"}, headers=headers).json()
    assert [i["code"] for i in items] == ["EXO-001"]
