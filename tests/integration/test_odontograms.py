import pytest

from clinic.db import models
from tests.factories import API, auth_headers, make_patient


@pytest.fixture
def headers(doctor):
    return auth_headers(doctor)


@pytest.fixture
def chart(client, headers, patient):
    response = client.post(f"{API}/odontograms/", json={"patient_id": str(patient.id)}, headers=headers)
    assert response.status_code == 201
    return response.json()


def test_create_defaults_to_full_permanent_chart(chart):
    assert chart["version"] == 1
    assert chart["is_current"] is True
    assert len(chart["teeth"]) == 32
    assert {t["status"] for t in chart["teeth"]} == {"HEALTHY"}


def test_receptionist_reads_but_cannot_write(client, receptionist, patient, chart):
    headers = auth_headers(receptionist)
    assert client.get(f"{API}/odontograms/patient/{patient.id}/current", headers=headers).status_code == 200
    denied = client.post(f"{API}/odontograms/", json={"patient_id": str(patient.id)}, headers=headers)
    assert denied.status_code == 403


def test_invalid_and_duplicate_teeth(client, headers, patient):
    teeth = [{"tooth_number": 11}, {"tooth_number": 55}]
    invalid = client.post(f"{API}/odontograms/", json={"patient_id": str(patient.id), "teeth": teeth},
                          headers=headers)
    assert invalid.status_code == 400
    assert "55" in invalid.json()["detail"]
    duplicate = client.post(
        f"{API}/odontograms/",
        json={"patient_id": str(patient.id), "dentition_type": "TEMPORARY",
              "teeth": [{"tooth_number": 51}, {"tooth_number": 51}]},
        headers=headers,
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Duplicate tooth numbers found: 51"


def test_tooth_update_appends_version(client, db, headers, patient, chart):
    response = client.patch(
        f"{API}/odontograms/{chart['id']}/teeth/16",
        json={"status": "CARIES", "surfaces": {"O": {"status": "CARIES", "notes": "Oclusal profunda"}}},
        headers=headers,
    )
    assert response.status_code == 200
    latest = response.json()
    assert latest["version"] == 2
    tooth = next(t for t in latest["teeth"] if t["tooth_number"] == 16)
    assert tooth["status"] == "CARIES"
    assert tooth["surfaces"]["O"]["notes"] == "Oclusal profunda"

    # The first snapshot is untouched and no longer current
    first = client.get(f"{API}/odontograms/{chart['id']}", headers=headers).json()
    assert first["is_current"] is False
    assert next(t for t in first["teeth"] if t["tooth_number"] == 16)["status"] == "HEALTHY"

    stale = client.patch(f"{API}/odontograms/{chart['id']}/teeth/16", json={"status": "FILLED"}, headers=headers)
    assert stale.status_code == 409
    assert db.query(models.Odontogram).filter(models.Odontogram.patient_id == patient.id).count() == 2


def test_tooth_update_unknown_tooth(client, headers, chart):
    assert client.patch(f"{API}/odontograms/{chart['id']}/teeth/55", json={"status": "FILLED"},
                        headers=headers).status_code == 404
    assert client.patch(f"{API}/odontograms/{chart['id']}/teeth/99", json={"status": "FILLED"},
                        headers=headers).status_code == 422


def test_full_update_history_and_compare(client, headers, patient, chart):
    updated = client.put(
        f"{API}/odontograms/{chart['id']}",
        json={"teeth": [{"tooth_number": 36, "status": "MISSING"}, {"tooth_number": 46, "status": "FILLED"}],
              "general_notes": "Control anual"},
        headers=headers,
    ).json()
    assert updated["version"] == 2
    assert len(updated["teeth"]) == 32
    assert updated["general_notes"] == "Control anual"

    history = client.get(f"{API}/odontograms/patient/{patient.id}/history", headers=headers).json()
    assert [h["version"] for h in history] == [2, 1]
    assert [h["is_current"] for h in history] == [True, False]

    comparison = client.get(f"{API}/odontograms/compare", params={"from_id": chart["id"], "to_id": updated["id"]},
                            headers=headers).json()
    assert comparison["from_version"] == 1
    assert comparison["to_version"] == 2
    assert comparison["summary"] == {"total_changes": 2, "teeth_modified": 2, "status_changes": 2,
                                     "surface_changes": 0}
    assert {(c["tooth_number"], c["new_value"]) for c in comparison["changes"]} == {(36, "MISSING"), (46, "FILLED")}

    stats = client.get(f"{API}/odontograms/patient/{patient.id}/statistics", headers=headers).json()
    assert stats["version"] == 2
    assert (stats["total"], stats["healthy"], stats["missing"], stats["filled"]) == (32, 30, 1, 1)


def test_new_version_from_base(client, db, headers, patient, chart):
    client.patch(f"{API}/odontograms/{chart['id']}/teeth/21", json={"status": "FRACTURED"}, headers=headers)
    restored = client.post(
        f"{API}/odontograms/patient/{patient.id}/versions",
        json={"base_version_id": chart["id"], "general_notes": "Revertido"},
        headers=headers,
    )
    assert restored.status_code == 201
    body = restored.json()
    assert body["version"] == 3
    assert next(t for t in body["teeth"] if t["tooth_number"] == 21)["status"] == "HEALTHY"

    other = make_patient(db, first_name="Pablo", last_name="Cruz")
    foreign = client.post(f"{API}/odontograms/patient/{other.id}/versions",
                          json={"base_version_id": chart["id"]}, headers=headers)
    assert foreign.status_code == 400


def test_compare_requires_same_patient(client, db, headers, chart):
    other = make_patient(db, first_name="Pablo", last_name="Cruz")
    second = client.post(f"{API}/odontograms/", json={"patient_id": str(other.id)}, headers=headers).json()
    response = client.get(f"{API}/odontograms/compare", params={"from_id": chart["id"], "to_id": second["id"]},
                          headers=headers)
    assert response.status_code == 400


def test_current_missing(client, headers, patient):
    assert client.get(f"{API}/odontograms/patient/{patient.id}/current", headers=headers).status_code == 404
