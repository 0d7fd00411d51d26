from clinic.utils.role_permissions import ROLE_DOCTOR
from tests.factories import API, auth_headers, make_user


def _week(**overrides):
    payload = {"day_of_week": 1, "start_time": "08:00", "end_time": "16:00",
               "break_start": "12:30", "break_end": "13:30"}
    payload.update(overrides)
    return payload


def test_admin_upserts_schedule(client, admin, doctor, receptionist):
    url = f"{API}/doctors/{doctor.id}/schedules"
    assert client.put(url, json=_week(), headers=auth_headers(receptionist)).status_code == 403

    created = client.put(url, json=_week(), headers=auth_headers(admin))
    assert created.status_code == 200
    updated = client.put(url, json=_week(end_time="18:00"), headers=auth_headers(admin)).json()
    assert updated["id"] == created.json()["id"]
    assert updated["end_time"] == "18:00"

    rows = client.get(url, headers=auth_headers(receptionist)).json()
    assert [(r["day_of_week"], r["end_time"]) for r in rows] == [(1, "18:00")]


def test_schedule_validation(client, admin, doctor, receptionist):
    url = f"{API}/doctors/{doctor.id}/schedules"
    bad_break = client.put(url, json=_week(break_start="07:00", break_end="08:30"), headers=auth_headers(admin))
    assert bad_break.status_code == 422
    not_a_doctor = client.put(f"{API}/doctors/{receptionist.id}/schedules", json=_week(), headers=auth_headers(admin))
    assert not_a_doctor.status_code == 404


def test_delete_schedule(client, admin, doctor):
    url = f"{API}/doctors/{doctor.id}/schedules"
    client.put(url, json=_week(day_of_week=3), headers=auth_headers(admin))
    assert client.delete(f"{url}/3", headers=auth_headers(admin)).status_code == 204
    assert client.delete(f"{url}/3", headers=auth_headers(admin)).status_code == 404


def test_blocked_times_owner_or_admin(client, db, admin, doctor, booking_day):
    colleague = make_user(db, ROLE_DOCTOR, first_name="Sofia", last_name="Lara")
    payload = {"doctor_id": str(doctor.id), "date": booking_day.isoformat(),
               "start_time": "14:00", "end_time": "16:00", "reason": "Capacitación"}

    assert client.post(f"{API}/blocked-times", json=payload, headers=auth_headers(colleague)).status_code == 403
    own = client.post(f"{API}/blocked-times", json=payload, headers=auth_headers(doctor))
    assert own.status_code == 201
    blocked_id = own.json()["id"]

    listed = client.get(f"{API}/doctors/{doctor.id}/blocked-times",
                        params={"date_from": booking_day.isoformat()}, headers=auth_headers(doctor)).json()
    assert [b["id"] for b in listed] == [blocked_id]

    assert client.delete(f"{API}/blocked-times/{blocked_id}", headers=auth_headers(colleague)).status_code == 403
    assert client.delete(f"{API}/blocked-times/{blocked_id}", headers=auth_headers(admin)).status_code == 204


def test_blocked_time_window(client, doctor, booking_day):
    payload = {"doctor_id": str(doctor.id), "date": booking_day.isoformat(),
               "start_time": "16:00", "end_time": "14:00", "reason": "Capacitación"}
    assert client.post(f"{API}/blocked-times", json=payload, headers=auth_headers(doctor)).status_code == 422
