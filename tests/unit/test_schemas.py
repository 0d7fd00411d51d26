import uuid
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from clinic.db import schemas


def _patient_payload(**overrides):
    payload = {
        "first_name": "Ana",
        "last_name": "Torres",
        "date_of_birth": "1990-05-17",
        "gender": "FEMALE",
        "identification": "1710034065",
        "phone": "0991234567",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
def test_weak_passwords_are_rejected(password):
    with pytest.raises(ValidationError):
        schemas.UserCreate(email="a@example.com", first_name="Ana", last_name="Torres", password=password)


def test_user_create_normalizes_email():
    user = schemas.UserCreate(email="Ana@Example.COM", first_name="Ana", last_name="Torres", password="Secret123")
    assert user.email == "ana@example.com"
    assert user.role is None


def test_user_name_and_phone_patterns():
    with pytest.raises(ValidationError):
        schemas.UserCreate(email="a@example.com", first_name="Ana1", last_name="Torres", password="Secret123")
    with pytest.raises(ValidationError):
        schemas.UserCreate(
            email="a@example.com", first_name="Ana", last_name="Torres", password="Secret123", phone="12345"
        )
    ok = schemas.UserCreate(
        email="a@example.com", first_name="José", last_name="Núñez", password="Secret123", phone="+593991234567"
    )
    assert ok.phone == "+593991234567"


def test_patient_create_validates_cedula():
    assert schemas.PatientCreate(**_patient_payload()).identification == "1710034065"
    with pytest.raises(ValidationError):
        schemas.PatientCreate(**_patient_payload(identification="1710034066"))
    passport = schemas.PatientCreate(**_patient_payload(identification="AB123456", identification_type="PASSPORT"))
    assert passport.identification_type == "PASSPORT"


def test_patient_birth_date_rules():
    with pytest.raises(ValidationError):
        schemas.PatientCreate(**_patient_payload(date_of_birth=(date.today() + timedelta(days=1)).isoformat()))
    with pytest.raises(ValidationError):
        schemas.PatientCreate(**_patient_payload(date_of_birth=date.today().isoformat()))


def test_patient_response_derives_age():
    born = date(date.today().year - 30, 1, 1)
    patient = schemas.Patient(**_patient_payload(date_of_birth=born.isoformat()), id=uuid.uuid4(), is_active=True)
    assert patient.age == 30


def _recurring(**overrides):
    payload = {
        "patient_id": str(uuid.uuid4()),
        "doctor_id": str(uuid.uuid4()),
        "start_date": "2025-01-06",
        "start_time": "09:00",
        "reason": "Ortodoncia",
        "frequency": "DAILY",
        "occurrences": 3,
    }
    payload.update(overrides)
    return schemas.RecurringAppointmentCreate(**payload)


def test_recurring_pattern_validation():
    assert _recurring(days_of_week=[3, 1, 3], frequency="WEEKLY").days_of_week == [1, 3]
    with pytest.raises(ValidationError):
        _recurring(frequency="WEEKLY")
    with pytest.raises(ValidationError):
        _recurring(occurrences=None)
    with pytest.raises(ValidationError):
        _recurring(end_date="2025-01-06", occurrences=None)
    with pytest.raises(ValidationError):
        _recurring(days_of_week=[7], frequency="WEEKLY")
    with pytest.raises(ValidationError):
        _recurring(occurrences=53)


def test_work_schedule_window_rules():
    ok = schemas.WorkScheduleUpsert(day_of_week=1, start_time="08:00", end_time="17:00",
                                    break_start="12:00", break_end="13:00")
    assert ok.is_active
    with pytest.raises(ValidationError):
        schemas.WorkScheduleUpsert(day_of_week=1, start_time="17:00", end_time="08:00")
    with pytest.raises(ValidationError):
        schemas.WorkScheduleUpsert(day_of_week=1, start_time="08:00", end_time="17:00", break_start="12:00")
    with pytest.raises(ValidationError):
        schemas.WorkScheduleUpsert(day_of_week=1, start_time="08:00", end_time="17:00",
                                   break_start="07:00", break_end="09:00")
    with pytest.raises(ValidationError):
        schemas.WorkScheduleUpsert(day_of_week=7, start_time="08:00", end_time="17:00")


def test_appointment_fields():
    with pytest.raises(ValidationError):
        schemas.AppointmentCreate(patient_id=uuid.uuid4(), doctor_id=uuid.uuid4(), date="2025-01-06",
                                  start_time="9:00", reason="Control")
    with pytest.raises(ValidationError):
        schemas.AppointmentCreate(patient_id=uuid.uuid4(), doctor_id=uuid.uuid4(), date="2025-01-06",
                                  start_time="09:00", duration=500, reason="Control")
    with pytest.raises(ValidationError):
        schemas.AppointmentCreate(patient_id=uuid.uuid4(), doctor_id=uuid.uuid4(), date="2025-01-06",
                                  start_time="09:00", reason="Control", color="#abcdef")


def test_clinical_schemas():
    with pytest.raises(ValidationError):
        schemas.DiagnosisCreate(cie10_code="K15.0", description="Fuera de rango")
    with pytest.raises(ValidationError):
        schemas.DiagnosisCreate(cie10_code="J02", description="Otro capítulo")
    assert schemas.DiagnosisCreate(cie10_code="K02", description="Caries").cie10_code == "K02"
    with pytest.raises(ValidationError):
        schemas.TreatmentCreate(catalog_id=uuid.uuid4(), cost=50, paid=60)
    with pytest.raises(ValidationError):
        schemas.TreatmentCreate(catalog_id=uuid.uuid4(), cost=50, completed_date="2025-01-01")
    with pytest.raises(ValidationError):
        schemas.MedicalHistoryCreate(gestation_weeks=12)
    assert schemas.MedicalHistoryCreate(is_pregnant=True, gestation_weeks=12).gestation_weeks == 12


def test_followup_due_date_not_in_past():
    with pytest.raises(ValidationError):
        schemas.FollowUpCreate(patient_id=uuid.uuid4(), title="Llamar", description="Llamar al paciente mañana",
                               due_date=date.today() - timedelta(days=1))
    ok = schemas.FollowUpCreate(patient_id=uuid.uuid4(), title="Llamar", description="Llamar al paciente mañana",
                                due_date=date.today())
    assert ok.priority == "MEDIUM"


def test_page_payload():
    page = schemas.page_payload(["a", "b"], 45, 2, 20)
    assert page["total_pages"] == 3
    assert page["has_more"] is True
    assert schemas.page_payload([], 40, 2, 20)["has_more"] is False
