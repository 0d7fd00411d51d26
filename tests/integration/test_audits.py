from datetime import date, timedelta

from clinic.audit import AuditAction, log
from tests.factories import API, auth_headers


def test_audit_logs_are_admin_only(client, doctor, receptionist):
    assert client.get(f"{API}/audits/", headers=auth_headers(doctor)).status_code == 403
    assert client.get(f"{API}/audits/", headers=auth_headers(receptionist)).status_code == 403


def test_list_and_filter(client, db, admin, receptionist, patient):
    log(db, action=AuditAction.PATIENT_UPDATE, target_type="patient", target_id=patient.id,
        actor_user_id=receptionist.id, metadata={"fields": ["city"]})
    log(db, action=AuditAction.EXPENSE_CREATE, target_type="expense", actor_user_id=admin.id)

    headers = auth_headers(admin)
    rows = client.get(f"{API}/audits/", headers=headers).json()
    assert len(rows) == 2

    filtered = client.get(f"{API}/audits/", params={"user_id": str(receptionist.id)}, headers=headers).json()
    assert len(filtered) == 1
    assert filtered[0]["action_type"] == "patient_update"
    assert filtered[0]["target_id"] == str(patient.id)
    assert filtered[0]["metadata"] == {"fields": ["city"]}

    by_target = client.get(f"{API}/audits/", params={"target_type": "expense"}, headers=headers).json()
    assert [r["actor_user_id"] for r in by_target] == [str(admin.id)]


def test_api_writes_leave_an_audit_trail(client, db, admin, patient):
    headers = auth_headers(admin)
    client.post(f"{API}/patients/{patient.id}/deactivate", headers=headers)
    rows = client.get(f"{API}/audits/", params={"action_type": "patient_deactivate"}, headers=headers).json()
    assert [r["target_id"] for r in rows] == [str(patient.id)]
    assert rows[0]["status"] == "success"


def test_filter_by_target_id_and_window(client, db, admin, patient):
    log(db, action=AuditAction.PATIENT_UPDATE, target_type="patient", target_id=patient.id, actor_user_id=admin.id)
    log(db, action=AuditAction.PATIENT_CREATE, target_type="patient", actor_user_id=admin.id)
    headers = auth_headers(admin)

    rows = client.get(f"{API}/audits/", params={"target_id": str(patient.id)}, headers=headers).json()
    assert [r["action_type"] for r in rows] == ["patient_update"]

    today = date.today()
    window = {"date_from": str(today - timedelta(days=1)), "date_to": str(today + timedelta(days=1))}
    assert len(client.get(f"{API}/audits/", params=window, headers=headers).json()) == 2
    old = {"date_to": str(today - timedelta(days=2))}
    assert client.get(f"{API}/audits/", params=old, headers=headers).json() == []

    inverted = {"date_from": str(today), "date_to": str(today - timedelta(days=1))}
    assert client.get(f"{API}/audits/", params=inverted, headers=headers).status_code == 400
    assert client.get(f"{API}/audits/", params={"status": "maybe"}, headers=headers).status_code == 422
