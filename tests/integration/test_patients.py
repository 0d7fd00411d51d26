import uuid
from datetime import date

from clinic.db import models
from tests.factories import API, auth_headers, make_patient, make_treatment


def _payload(**overrides):
    payload = {
        "first_name": "Carlos",
        "last_name": "Andrade",
        "date_of_birth": "1985-03-02",
        "gender": "MALE",
        "identification": "1710034065",
        "phone": "0991234567",
        "email": "carlos@example.com",
        "city": "Cuenca",
        "emergency_contact": {"name": "Rosa Andrade", "relationship": "Esposa", "phone": "0987654321"},
    }
    payload.update(overrides)
    return payload


def test_create_and_fetch_patient(client, db, receptionist):
    headers = auth_headers(receptionist)
    response = client.post(f"{API}/patients/", json=_payload(), headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["age"] >= 40
    assert body["emergency_contact"]["name"] == "Rosa Andrade"

    fetched = client.get(f"{API}/patients/{body['id']}", headers=headers)
    assert fetched.json()["identification"] == "1710034065"
    by_id = client.get(f"{API}/patients/identification/1710034065", headers=headers)
    assert by_id.json()["id"] == body["id"]

    audit = db.query(models.AuditLog).filter(models.AuditLog.action_type == "patient_create").one()
    assert str(audit.target_id) == body["id"]


def test_create_validation(client, receptionist):
    headers = auth_headers(receptionist)
    bad_cedula = client.post(f"{API}/patients/", json=_payload(identification="1710034066"), headers=headers)
    assert bad_cedula.status_code == 422
    no_provider = client.post(f"{API}/patients/", json=_payload(has_insurance=True), headers=headers)
    assert no_provider.status_code == 400


def test_duplicates_conflict(client, receptionist):
    headers = auth_headers(receptionist)
    assert client.post(f"{API}/patients/", json=_payload(), headers=headers).status_code == 201
    same_id = client.post(f"{API}/patients/", json=_payload(email="otro@example.com"), headers=headers)
    assert same_id.status_code == 409
    same_email = client.post(
        f"{API}/patients/", json=_payload(identification="AB998877", identification_type="PASSPORT"), headers=headers
    )
    assert same_email.status_code == 409


def test_list_search_and_paging(client, db, receptionist):
    make_patient(db, first_name="Beatriz", last_name="Ortega", city="Loja")
    make_patient(db, first_name="Bruno", last_name="Paredes", has_insurance=True, insurance_provider="Saludsa")
    make_patient(db, first_name="Camila", last_name="Ortega", gender="FEMALE")
    headers = auth_headers(receptionist)

    page = client.get(f"{API}/patients/", params={"limit": 2, "sort_by": "first_name", "sort_order": "asc"},
                      headers=headers).json()
    assert page["total_items"] == 3
    assert page["total_pages"] == 2
    assert page["has_more"] is True
    assert [p["first_name"] for p in page["items"]] == ["Beatriz", "Bruno"]

    by_name = client.get(f"{API}/patients/", params={"search": "ortega"}, headers=headers).json()
    assert by_name["total_items"] == 2
    insured = client.get(f"{API}/patients/", params={"has_insurance": True}, headers=headers).json()
    assert [p["first_name"] for p in insured["items"]] == ["Bruno"]

    quick = client.get(f"{API}/patients/search", params={"q": "camila orte"}, headers=headers).json()
    assert [p["first_name"] for p in quick] == ["Camila"]
    assert client.get(f"{API}/patients/search", params={"q": "c"}, headers=headers).status_code == 422


def test_update_patient(client, receptionist, patient):
    headers = auth_headers(receptionist)
    url = f"{API}/patients/{patient.id}"
    response = client.put(url, json={"city": "Ambato", "phone": "0987654321"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["city"] == "Ambato"
    assert client.put(url, json={"identification": "1710034066"}, headers=headers).status_code == 400


def test_delete_requires_permission_and_no_bookings(client, db, admin, receptionist, doctor, patient):
    url = f"{API}/patients/{patient.id}"
    assert client.delete(url, headers=auth_headers(receptionist)).status_code == 403

    booking = models.Appointment(
        patient_id=patient.id, doctor_id=doctor.id, date=date.today(),
        start_time="10:00", end_time="10:30", duration=30, type="CONSULTATION", status="SCHEDULED", reason="Control",
    )
    db.add(booking)
    db.commit()
    assert client.delete(url, headers=auth_headers(admin)).status_code == 400

    booking.status = "COMPLETED"
    db.commit()
    assert client.delete(url, headers=auth_headers(admin)).status_code == 204
    assert client.get(url, headers=auth_headers(admin)).status_code == 404

    restored = client.post(f"{url}/restore", headers=auth_headers(admin))
    assert restored.status_code == 200
    assert restored.json()["deleted_at"] is None
    assert client.post(f"{url}/restore", headers=auth_headers(admin)).status_code == 400


def test_restore_is_admin_only(client, receptionist, patient):
    assert client.post(f"{API}/patients/{patient.id}/restore", headers=auth_headers(receptionist)).status_code == 403


def test_activate_and_deactivate(client, receptionist, patient):
    headers = auth_headers(receptionist)
    assert client.post(f"{API}/patients/{patient.id}/activate", headers=headers).status_code == 400
    response = client.post(f"{API}/patients/{patient.id}/deactivate", headers=headers)
    assert response.json()["is_active"] is False
    assert client.post(f"{API}/patients/{patient.id}/activate", headers=headers).json()["is_active"] is True


def test_unknown_patient(client, receptionist):
    assert client.get(f"{API}/patients/{uuid.uuid4()}", headers=auth_headers(receptionist)).status_code == 404


def test_dashboard_stats(client, db, receptionist):
    make_patient(db, gender="MALE", first_name="Mario", last_name="Ruiz")
    make_patient(db, is_active=False, first_name="Elena", last_name="Soto")
    make_patient(db, has_insurance=True, insurance_provider="BMI")
    body = client.get(f"{API}/patients/stats", headers=auth_headers(receptionist)).json()
    assert body["total_active"] == 2
    assert body["total_inactive"] == 1
    assert body["with_insurance"] == 1
    assert body["new_this_month"] == 3
    assert body["gender_distribution"] == {"FEMALE": 1, "MALE": 1}


def test_patient_stats_and_history(client, db, doctor, receptionist, patient):
    make_treatment(db, patient, doctor, cost=200, paid=50)
    make_treatment(db, patient, doctor, cost=80, status="CANCELLED")
    headers = auth_headers(receptionist)
    stats = client.get(f"{API}/patients/{patient.id}/stats", headers=headers).json()
    assert stats["total_treatments"] == 1
    assert stats["total_cost"] == 200
    assert stats["total_balance"] == 150
    assert stats["total_appointments"] == 0
    assert stats["next_appointment"] is None

    history = client.get(f"{API}/patients/{patient.id}/history", headers=headers).json()
    assert history["patient"]["id"] == str(patient.id)
    assert len(history["treatments"]) == 2
    assert client.get(f"{API}/patients/{patient.id}/upcoming-appointments", headers=headers).json() == []
