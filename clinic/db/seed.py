"""
Demo data for a fresh clinic database.

Creates the three staff accounts, Monday-Friday schedules for every doctor,
the CIE-10 oral cavity codes (K00-K14) and the treatment catalog. Every step
skips rows that already exist, so the command can be re-run safely.

Usage:
  python -m clinic.db.seed [--password PASSWORD] [--json]
"""
from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from clinic.db import models
from clinic.utils.role_permissions import ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST
from clinic.utils.token_crypto import hash_password

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "Admin1234"

USERS: List[Dict[str, str]] = [
    {"email": "admin@clinic.com", "first_name": "Admin", "last_name": "Sistema", "phone": "0999999999", "role": ROLE_ADMIN},
    {"email": "doctor@clinic.com", "first_name": "Juan", "last_name": "Pérez", "phone": "0988888888", "role": ROLE_DOCTOR},
    {"email": "recepcion@clinic.com", "first_name": "María", "last_name": "González", "phone": "0977777777", "role": ROLE_RECEPTIONIST},
]

# Monday (1) to Friday (5)
WORKING_DAYS = (1, 2, 3, 4, 5)
WORKING_HOURS = {"start_time": "08:00", "end_time": "17:00", "break_start": "12:00", "break_end": "13:00"}

_K00 = "K00: Trastornos del desarrollo y erupción de los dientes"
_K01 = "K01: Dientes incluidos e impactados"
_K02 = "K02: Caries dental"
_K03 = "K03: Otras enfermedades de los tejidos duros"
_K04 = "K04: Enfermedades de la pulpa y tejidos periapicales"
_K05 = "K05: Gingivitis y enfermedades periodontales"
_K06 = "K06: Otros trastornos de la encía"
_K07 = "K07: Anomalías dentofaciales"
_K08 = "K08: Otros trastornos de los dientes"
_K12 = "K12: Estomatitis y lesiones afines"
_K13 = "K13: Otras enfermedades de los labios y de la mucosa bucal"
_K14 = "K14: Enfermedades de la lengua"

CIE10_CODES: List[Tuple[str, str, str]] = [
    ("K00.0", "Anodoncia", _K00),
    ("K00.1", "Dientes supernumerarios", _K00),
    ("K00.2", "Anomalías del tamaño y forma de los dientes", _K00),
    ("K01.0", "Dientes incluidos", _K01),
    ("K01.1", "Dientes impactados", _K01),
    ("K02.0", "Caries limitada al esmalte", _K02),
    ("K02.1", "Caries de la dentina", _K02),
    ("K02.2", "Caries del cemento", _K02),
    ("K02.3", "Caries dentaria detenida", _K02),
    ("K02.9", "Caries dental no especificada", _K02),
    ("K03.0", "Atrición excesiva de los dientes", _K03),
    ("K03.1", "Abrasión de los dientes", _K03),
    ("K03.2", "Erosión de los dientes", _K03),
    ("K04.0", "Pulpitis", _K04),
    ("K04.1", "Necrosis de la pulpa", _K04),
    ("K04.4", "Periodontitis apical aguda", _K04),
    ("K04.5", "Periodontitis apical crónica", _K04),
    ("K04.6", "Absceso periapical con fístula", _K04),
    ("K04.7", "Absceso periapical sin fístula", _K04),
    ("K05.0", "Gingivitis aguda", _K05),
    ("K05.1", "Gingivitis crónica", _K05),
    ("K05.2", "Periodontitis aguda", _K05),
    ("K05.3", "Periodontitis crónica", _K05),
    ("K06.0", "Retracción gingival", _K06),
    ("K06.1", "Hiperplasia gingival", _K06),
    ("K07.0", "Anomalías del tamaño de los maxilares", _K07),
    ("K07.2", "Anomalías de la relación entre los arcos dentarios", _K07),
    ("K07.3", "Anomalías de la posición del diente", _K07),
    ("K07.6", "Trastornos de la articulación temporomandibular", _K07),
    ("K08.1", "Pérdida de dientes", _K08),
    ("K08.3", "Raíz dental retenida", _K08),
    ("K12.0", "Estomatitis aftosa recurrente", _K12),
    ("K13.0", "Enfermedades de los labios", _K13),
    ("K14.0", "Glositis", _K14),
]

# (code, name, category, base_cost, duration minutes)
TREATMENT_CATALOG: List[Tuple[str, str, str, float, int]] = [
    ("PREV-001", "Limpieza dental (profilaxis)", "Preventivo", 35.00, 30),
    ("PREV-002", "Aplicación de flúor", "Preventivo", 20.00, 15),
    ("PREV-003", "Sellantes dentales", "Preventivo", 25.00, 20),
    ("DIAG-001", "Consulta inicial", "Diagnóstico", 15.00, 30),
    ("DIAG-002", "Radiografía periapical", "Diagnóstico", 10.00, 10),
    ("DIAG-003", "Radiografía panorámica", "Diagnóstico", 30.00, 15),
    ("REST-001", "Resina (obturación simple)", "Restauración", 45.00, 45),
    ("REST-002", "Resina (obturación compuesta)", "Restauración", 60.00, 60),
    ("REST-003", "Amalgama", "Restauración", 40.00, 45),
    ("REST-004", "Incrustación", "Restauración", 150.00, 90),
    ("ENDO-001", "Endodoncia unirradicular", "Endodoncia", 120.00, 90),
    ("ENDO-002", "Endodoncia birradicular", "Endodoncia", 180.00, 120),
    ("ENDO-003", "Endodoncia multirradicular", "Endodoncia", 220.00, 150),
    ("CIRUG-001", "Extracción simple", "Cirugía", 35.00, 30),
    ("CIRUG-002", "Extracción compleja", "Cirugía", 80.00, 60),
    ("CIRUG-003", "Extracción de cordal", "Cirugía", 150.00, 90),
    ("CIRUG-004", "Cirugía de implante", "Cirugía", 600.00, 120),
    ("PROT-001", "Corona de porcelana", "Prótesis", 300.00, 90),
    ("PROT-002", "Corona metal-porcelana", "Prótesis", 250.00, 90),
    ("PROT-003", "Puente fijo 3 unidades", "Prótesis", 750.00, 120),
    ("PROT-004", "Prótesis total removible", "Prótesis", 500.00, 180),
    ("PROT-005", "Prótesis parcial removible", "Prótesis", 350.00, 120),
    ("ORTO-001", "Brackets metálicos", "Ortodoncia", 1200.00, 60),
    ("ORTO-002", "Brackets estéticos", "Ortodoncia", 1500.00, 60),
    ("ORTO-003", "Control mensual de ortodoncia", "Ortodoncia", 40.00, 30),
    ("PERIO-001", "Raspado y alisado radicular por cuadrante", "Periodoncia", 80.00, 60),
    ("PERIO-002", "Cirugía periodontal", "Periodoncia", 200.00, 90),
    ("ESTET-001", "Blanqueamiento dental", "Estética", 200.00, 90),
    ("ESTET-002", "Carilla de porcelana", "Estética", 350.00, 90),
]


def seed_users(db: Session, password: str) -> int:
    created = 0
    password_hash = None
    for entry in USERS:
        if db.query(models.User).filter(models.User.email == entry["email"]).first():
            continue
        password_hash = password_hash or hash_password(password)
        db.add(models.User(password_hash=password_hash, is_active=True, **entry))
        created += 1
    db.commit()
    return created


def seed_schedules(db: Session) -> int:
    created = 0
    doctors = db.query(models.User).filter(models.User.role == ROLE_DOCTOR).all()
    for doctor in doctors:
        existing = {
            s.day_of_week
            for s in db.query(models.WorkSchedule).filter(models.WorkSchedule.doctor_id == doctor.id)
        }
        for day in WORKING_DAYS:
            if day in existing:
                continue
            db.add(models.WorkSchedule(doctor_id=doctor.id, day_of_week=day, is_active=True, **WORKING_HOURS))
            created += 1
    db.commit()
    return created


def seed_cie10(db: Session) -> int:
    existing = {code for (code,) in db.query(models.CIE10Code.code)}
    rows = [
        models.CIE10Code(code=code, name=name, category=category, chapter="K00-K14")
        for code, name, category in CIE10_CODES
        if code not in existing
    ]
    db.add_all(rows)
    db.commit()
    return len(rows)


def seed_treatment_catalog(db: Session) -> int:
    existing = {code for (code,) in db.query(models.TreatmentCatalog.code)}
    rows = [
        models.TreatmentCatalog(
            code=code, name=name, category=category, base_cost=base_cost, duration=duration, is_active=True
        )
        for code, name, category, base_cost, duration in TREATMENT_CATALOG
        if code not in existing
    ]
    db.add_all(rows)
    db.commit()
    return len(rows)


def run_seed(db: Session, *, password: str = DEFAULT_PASSWORD) -> Dict[str, int]:
    """Seed every reference table and return how many rows each step created."""
    summary = {
        "users": seed_users(db, password),
        "work_schedules": seed_schedules(db),
        "cie10_codes": seed_cie10(db),
        "treatment_catalog": seed_treatment_catalog(db),
    }
    logger.info("seed_complete %s", " ".join(f"{k}={v}" for k, v in summary.items()))
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the clinic database with demo data.")
    parser.add_argument(
        "--password",
        default=os.getenv("SEED_PASSWORD", DEFAULT_PASSWORD),
        help="Password for the demo staff accounts (default: $SEED_PASSWORD or a development value)",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    from clinic.db.database import SessionLocal

    db = SessionLocal()
    try:
        summary = run_seed(db, password=args.password)
    finally:
        db.close()

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        for name, count in summary.items():
            print(f"{name}: {count} created")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
