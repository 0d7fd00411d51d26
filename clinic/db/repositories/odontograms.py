"""
Odontogram repository.

Rows are append-only: a new version is inserted and earlier rows only ever
have ``is_current`` cleared.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic.db import models


def get_odontogram(db: Session, odontogram_id: uuid.UUID) -> Optional[models.Odontogram]:
    return db.query(models.Odontogram).filter(models.Odontogram.id == odontogram_id).first()


def get_current(db: Session, patient_id: uuid.UUID) -> Optional[models.Odontogram]:
    return (
        db.query(models.Odontogram)
        .filter(models.Odontogram.patient_id == patient_id, models.Odontogram.is_current.is_(True))
        .first()
    )


def list_history(db: Session, patient_id: uuid.UUID) -> List[models.Odontogram]:
    return (
        db.query(models.Odontogram)
        .filter(models.Odontogram.patient_id == patient_id)
        .order_by(models.Odontogram.version.desc())
        .all()
    )


def max_version(db: Session, patient_id: uuid.UUID) -> int:
    value = (
        db.query(func.max(models.Odontogram.version))
        .filter(models.Odontogram.patient_id == patient_id)
        .scalar()
    )
    return value or 0


class StaleVersionError(Exception):
    """Another writer appended a version first."""


def insert_version(
    db: Session,
    *,
    patient_id: uuid.UUID,
    dentition_type: str,
    teeth: List[Dict[str, Any]],
    general_notes: Optional[str],
    created_by: Optional[uuid.UUID],
    expected_current_id: Optional[uuid.UUID] = None,
) -> models.Odontogram:
    """Append a new current snapshot and demote every earlier one in the same transaction.

    With ``expected_current_id`` the demotion only succeeds while that row is
    still current. The demoting UPDATE row-locks the current snapshot, so the
    version number is read after it.
    """
    demote = db.query(models.Odontogram).filter(
        models.Odontogram.patient_id == patient_id, models.Odontogram.is_current.is_(True)
    )
    if expected_current_id is not None:
        demote = demote.filter(models.Odontogram.id == expected_current_id)
    demoted = demote.update({models.Odontogram.is_current: False}, synchronize_session="fetch")
    if expected_current_id is not None and demoted == 0:
        raise StaleVersionError(f"Odontogram {expected_current_id} is no longer the current version")

    odontogram = models.Odontogram(
        patient_id=patient_id,
        dentition_type=dentition_type,
        version=max_version(db, patient_id) + 1,
        is_current=True,
        teeth=teeth,
        general_notes=general_notes,
        created_by=created_by,
    )
    db.add(odontogram)
    try:
        db.commit()
    except IntegrityError as exc:
        # uq_odontograms_patient_version: a concurrent writer took this number
        db.rollback()
        raise StaleVersionError(f"Version {odontogram.version} already exists for patient {patient_id}") from exc
    db.refresh(odontogram)
    return odontogram
