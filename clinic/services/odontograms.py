"""
Odontogram versioning.

Every write appends a new immutable snapshot (``version = max + 1``) and
makes it the patient's only current version. Teeth are stored as JSON
documents keyed by FDI tooth number.
"""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from clinic.db import models, schemas
from clinic.db.repositories import odontograms as odontogram_repo
from clinic.db.repositories import patients as patient_repo

logger = logging.getLogger(__name__)

PERMANENT_TEETH: Tuple[int, ...] = tuple(
    quadrant * 10 + n for quadrant in (1, 2, 3, 4) for n in range(1, 9)
)
TEMPORARY_TEETH: Tuple[int, ...] = tuple(
    quadrant * 10 + n for quadrant in (5, 6, 7, 8) for n in range(1, 6)
)


def valid_tooth_numbers(dentition_type: str) -> frozenset:
    if dentition_type == "PERMANENT":
        return frozenset(PERMANENT_TEETH)
    if dentition_type == "TEMPORARY":
        return frozenset(TEMPORARY_TEETH)
    return frozenset(PERMANENT_TEETH + TEMPORARY_TEETH)


def default_teeth(dentition_type: str) -> List[Dict[str, Any]]:
    """A full chart of healthy teeth for the dentition type."""
    return [
        {"tooth_number": number, "status": "HEALTHY", "surfaces": {}, "notes": None}
        for number in sorted(valid_tooth_numbers(dentition_type))
    ]


def validate_tooth_numbers(numbers: Iterable[int], dentition_type: str) -> None:
    numbers = list(numbers)
    duplicates = sorted(n for n, count in Counter(numbers).items() if count > 1)
    if duplicates:
        raise HTTPException(
            status_code=400, detail=f"Duplicate tooth numbers found: {', '.join(map(str, duplicates))}"
        )
    allowed = valid_tooth_numbers(dentition_type)
    invalid = sorted(n for n in numbers if n not in allowed)
    if invalid:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Invalid tooth numbers for dentition type {dentition_type}: {', '.join(map(str, invalid))}. "
                "Permanent: 11-48, Temporary: 51-85"
            ),
        )


def _dump_teeth(teeth: Iterable[schemas.Tooth]) -> List[Dict[str, Any]]:
    return [tooth.model_dump(mode="json") for tooth in teeth]


def _surface(tooth: Dict[str, Any], name: str) -> Dict[str, Any]:
    return (tooth.get("surfaces") or {}).get(name) or {}


def compare_teeth(
    old_teeth: List[Dict[str, Any]], new_teeth: List[Dict[str, Any]]
) -> Tuple[List[schemas.ToothChange], schemas.ComparisonSummary]:
    """Per-tooth differences for teeth present in both snapshots."""
    new_by_number = {tooth["tooth_number"]: tooth for tooth in new_teeth}
    changes: List[schemas.ToothChange] = []
    modified = set()
    status_changes = surface_changes = 0

    for old in sorted(old_teeth, key=lambda t: t["tooth_number"]):
        number = old["tooth_number"]
        new = new_by_number.get(number)
        if new is None:
            continue

        if old.get("status") != new.get("status"):
            changes.append(schemas.ToothChange(
                tooth_number=number, field="status", old_value=old.get("status"), new_value=new.get("status")
            ))
            modified.add(number)
            status_changes += 1

        for name in schemas.SURFACES:
            before, after = _surface(old, name), _surface(new, name)
            for attr in ("status", "notes"):
                if before.get(attr) != after.get(attr):
                    changes.append(schemas.ToothChange(
                        tooth_number=number,
                        field=f"surfaces.{name}.{attr}",
                        old_value=before.get(attr),
                        new_value=after.get(attr),
                    ))
                    modified.add(number)
                    surface_changes += 1

        if old.get("notes") != new.get("notes"):
            changes.append(schemas.ToothChange(
                tooth_number=number, field="notes", old_value=old.get("notes"), new_value=new.get("notes")
            ))
            modified.add(number)

    summary = schemas.ComparisonSummary(
        total_changes=len(changes),
        teeth_modified=len(modified),
        status_changes=status_changes,
        surface_changes=surface_changes,
    )
    return changes, summary


def tooth_statistics(teeth: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = Counter(tooth.get("status") for tooth in teeth)
    named = {"healthy": "HEALTHY", "caries": "CARIES", "filled": "FILLED", "missing": "MISSING"}
    stats = {key: counts.get(value, 0) for key, value in named.items()}
    stats["total"] = len(teeth)
    stats["other"] = len(teeth) - sum(stats[key] for key in named)
    return stats


class OdontogramService:
    def __init__(self, db: Session):
        self.db = db

    def require(self, odontogram_id: uuid.UUID) -> models.Odontogram:
        odontogram = odontogram_repo.get_odontogram(self.db, odontogram_id)
        if not odontogram:
            raise HTTPException(status_code=404, detail="Odontogram not found")
        return odontogram

    def require_current(self, patient_id: uuid.UUID) -> models.Odontogram:
        current = odontogram_repo.get_current(self.db, patient_id)
        if not current:
            raise HTTPException(status_code=404, detail="No odontogram found for this patient")
        return current

    def _require_patient(self, patient_id: uuid.UUID) -> None:
        if not patient_repo.get_patient(self.db, patient_id):
            raise HTTPException(status_code=404, detail="Patient not found")

    def _ensure_current(self, odontogram: models.Odontogram) -> None:
        if not odontogram.is_current:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Odontogram version {odontogram.version} is not the current version",
            )

    def _append(
        self,
        *,
        patient_id: uuid.UUID,
        dentition_type: str,
        teeth: List[Dict[str, Any]],
        general_notes: Optional[str],
        actor_id: Optional[uuid.UUID],
        based_on: Optional[models.Odontogram] = None,
    ) -> models.Odontogram:
        validate_tooth_numbers((tooth["tooth_number"] for tooth in teeth), dentition_type)
        try:
            created = odontogram_repo.insert_version(
                self.db,
                patient_id=patient_id,
                dentition_type=dentition_type,
                teeth=sorted(teeth, key=lambda t: t["tooth_number"]),
                general_notes=general_notes,
                created_by=actor_id,
                expected_current_id=based_on.id if based_on is not None else None,
            )
        except odontogram_repo.StaleVersionError as exc:
            logger.info("odontogram_write_conflict patient=%s reason=%s", patient_id, exc)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Odontogram was modified by another user; reload the current version",
            ) from exc
        logger.info("odontogram_version_created id=%s patient=%s version=%s", created.id, patient_id, created.version)
        return created

    def create(self, payload: schemas.OdontogramCreate, *, actor_id: uuid.UUID) -> models.Odontogram:
        self._require_patient(payload.patient_id)
        teeth = _dump_teeth(payload.teeth) if payload.teeth else default_teeth(payload.dentition_type)
        return self._append(
            patient_id=payload.patient_id,
            dentition_type=payload.dentition_type,
            teeth=teeth,
            general_notes=payload.general_notes,
            actor_id=actor_id,
        )

    def update(self, odontogram: models.Odontogram, payload: schemas.OdontogramUpdate, *, actor_id: uuid.UUID) -> models.Odontogram:
        """New version with the given teeth replaced and every other tooth copied."""
        self._ensure_current(odontogram)
        teeth = {tooth["tooth_number"]: dict(tooth) for tooth in odontogram.teeth}
        if payload.teeth:
            validate_tooth_numbers((t.tooth_number for t in payload.teeth), odontogram.dentition_type)
            for tooth in _dump_teeth(payload.teeth):
                teeth[tooth["tooth_number"]] = tooth
        fields = payload.model_dump(exclude_unset=True)
        general_notes = fields["general_notes"] if "general_notes" in fields else odontogram.general_notes
        return self._append(
            patient_id=odontogram.patient_id,
            dentition_type=odontogram.dentition_type,
            teeth=list(teeth.values()),
            general_notes=general_notes,
            actor_id=actor_id,
            based_on=odontogram,
        )

    def update_tooth(
        self, odontogram: models.Odontogram, tooth_number: int, payload: schemas.ToothUpdate, *, actor_id: uuid.UUID
    ) -> models.Odontogram:
        self._ensure_current(odontogram)
        teeth = [dict(tooth) for tooth in odontogram.teeth]
        target = next((tooth for tooth in teeth if tooth["tooth_number"] == tooth_number), None)
        if target is None:
            raise HTTPException(status_code=404, detail=f"Tooth {tooth_number} not found in odontogram")

        changes = payload.model_dump(mode="json", exclude_unset=True)
        if changes.get("status") is not None:
            target["status"] = changes["status"]
        if "notes" in changes:
            target["notes"] = changes["notes"]
        if changes.get("surfaces"):
            surfaces = dict(target.get("surfaces") or {})
            surfaces.update(changes["surfaces"])
            target["surfaces"] = surfaces

        return self._append(
            patient_id=odontogram.patient_id,
            dentition_type=odontogram.dentition_type,
            teeth=teeth,
            general_notes=odontogram.general_notes,
            actor_id=actor_id,
            based_on=odontogram,
        )

    def new_version_from(
        self, patient_id: uuid.UUID, payload: schemas.OdontogramNewVersion, *, actor_id: uuid.UUID
    ) -> models.Odontogram:
        self._require_patient(patient_id)
        base = self.require(payload.base_version_id)
        if base.patient_id != patient_id:
            raise HTTPException(status_code=400, detail="Base version does not belong to this patient")
        return self._append(
            patient_id=patient_id,
            dentition_type=base.dentition_type,
            teeth=[dict(tooth) for tooth in base.teeth],
            general_notes=payload.general_notes if payload.general_notes is not None else base.general_notes,
            actor_id=actor_id,
        )

    def compare(self, from_id: uuid.UUID, to_id: uuid.UUID) -> schemas.OdontogramComparison:
        older, newer = self.require(from_id), self.require(to_id)
        if older.patient_id != newer.patient_id:
            raise HTTPException(status_code=400, detail="Odontograms must belong to the same patient")
        changes, summary = compare_teeth(older.teeth, newer.teeth)
        return schemas.OdontogramComparison(
            patient_id=older.patient_id,
            from_version=older.version,
            to_version=newer.version,
            changes=changes,
            summary=summary,
        )

    def statistics(self, patient_id: uuid.UUID) -> schemas.OdontogramStatistics:
        current = self.require_current(patient_id)
        return schemas.OdontogramStatistics(
            odontogram_id=current.id, version=current.version, **tooth_statistics(current.teeth)
        )
