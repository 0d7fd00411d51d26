import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from clinic.db import models, schemas
from clinic.db.repositories import odontograms as odontogram_repo
from clinic.services.odontograms import OdontogramService


@pytest.fixture
def first_version(db, patient, doctor):
    return OdontogramService(db).create(
        schemas.OdontogramCreate(patient_id=patient.id, dentition_type="TEMPORARY"), actor_id=doctor.id
    )


def _versions(db, patient):
    return [(o.version, o.is_current) for o in odontogram_repo.list_history(db, patient.id)]


def test_insert_refuses_a_superseded_base(db, patient, doctor, first_version):
    service = OdontogramService(db)
    service.update_tooth(first_version, 51, schemas.ToothUpdate(status="CARIES"), actor_id=doctor.id)

    with pytest.raises(odontogram_repo.StaleVersionError):
        odontogram_repo.insert_version(
            db,
            patient_id=patient.id,
            dentition_type="TEMPORARY",
            teeth=[dict(t) for t in first_version.teeth],
            general_notes=None,
            created_by=doctor.id,
            expected_current_id=first_version.id,
        )
    assert _versions(db, patient) == [(2, True), (1, False)]


def test_concurrent_tooth_edit_loses_with_409(db, patient, doctor, first_version, monkeypatch):
    service = OdontogramService(db)
    service.update_tooth(first_version, 51, schemas.ToothUpdate(status="CARIES"), actor_id=doctor.id)
    # Second writer already passed the current-version check before the first one committed
    monkeypatch.setattr(OdontogramService, "_ensure_current", lambda self, odontogram: None)

    with pytest.raises(HTTPException) as exc:
        service.update_tooth(first_version, 52, schemas.ToothUpdate(status="FILLED"), actor_id=doctor.id)
    assert exc.value.status_code == 409
    assert _versions(db, patient) == [(2, True), (1, False)]


def test_duplicate_version_number_maps_to_409(db, patient, doctor, first_version, monkeypatch):
    def _duplicate():
        raise IntegrityError("INSERT INTO odontograms", {}, Exception("uq_odontograms_patient_version"))

    rollbacks = []
    monkeypatch.setattr(db, "commit", _duplicate)
    monkeypatch.setattr(db, "rollback", lambda: rollbacks.append(True))

    with pytest.raises(HTTPException) as exc:
        OdontogramService(db).create(
            schemas.OdontogramCreate(patient_id=patient.id, dentition_type="TEMPORARY"), actor_id=doctor.id
        )
    assert exc.value.status_code == 409
    assert rollbacks == [True]


def test_new_snapshot_demotes_previous(db, patient, doctor, first_version):
    second = OdontogramService(db).update(
        first_version, schemas.OdontogramUpdate(general_notes="Control semestral"), actor_id=doctor.id
    )
    assert second.version == 2
    assert db.get(models.Odontogram, first_version.id).is_current is False
    assert _versions(db, patient) == [(2, True), (1, False)]
