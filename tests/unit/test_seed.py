import json

from clinic.db import models, seed
from clinic.utils import token_crypto


def test_run_seed_creates_reference_data(db):
    summary = seed.run_seed(db, password="Demo12345")
    assert summary == {
        "users": 3,
        "work_schedules": 5,
        "cie10_codes": len(seed.CIE10_CODES),
        "treatment_catalog": len(seed.TREATMENT_CATALOG),
    }

    admin = db.query(models.User).filter(models.User.email == "admin@clinic.com").one()
    assert admin.role == "admin"
    assert token_crypto.verify_password("Demo12345", admin.password_hash)

    doctor = db.query(models.User).filter(models.User.email == "doctor@clinic.com").one()
    days = sorted(s.day_of_week for s in db.query(models.WorkSchedule).filter_by(doctor_id=doctor.id))
    assert days == [1, 2, 3, 4, 5]
    assert db.get(models.CIE10Code, "K02.1").name == "Caries de la dentina"


def test_run_seed_is_idempotent(db):
    seed.run_seed(db)
    again = seed.run_seed(db)
    assert again == {"users": 0, "work_schedules": 0, "cie10_codes": 0, "treatment_catalog": 0}


def test_main_prints_json_summary(db, monkeypatch, capsys):
    monkeypatch.setattr("clinic.db.database.SessionLocal", lambda: db)
    monkeypatch.setattr(db, "close", lambda: None)
    assert seed.main(["--password", "Demo12345", "--json"]) == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["users"] == 3
