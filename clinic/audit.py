"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records; includes
convenience wrappers per target type. ``safe_log`` is what routers call so a
failed audit write never breaks the primary operation.
"""
from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from clinic.db import schemas
from clinic.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Users
    USER_REGISTER = "user_register"
    USER_UPDATE = "user_update"
    USER_ROLE_CHANGE = "user_role_change"
    PASSWORD_CHANGE = "password_change"
    PASSWORD_RESET = "password_reset"
    # Patients
    PATIENT_CREATE = "patient_create"
    PATIENT_UPDATE = "patient_update"
    PATIENT_DELETE = "patient_delete"
    PATIENT_RESTORE = "patient_restore"
    PATIENT_ACTIVATE = "patient_activate"
    PATIENT_DEACTIVATE = "patient_deactivate"
    # Appointments
    APPOINTMENT_CREATE = "appointment_create"
    APPOINTMENT_UPDATE = "appointment_update"
    APPOINTMENT_STATUS_CHANGE = "appointment_status_change"
    APPOINTMENT_CANCEL = "appointment_cancel"
    RECURRING_CREATE = "recurring_create"
    # Odontograms
    ODONTOGRAM_CREATE = "odontogram_create"
    ODONTOGRAM_VERSION = "odontogram_version"
    # Clinical
    DIAGNOSIS_CREATE = "diagnosis_create"
    TREATMENT_CREATE = "treatment_create"
    TREATMENT_UPDATE = "treatment_update"
    # Accounting
    PAYMENT_CREATE = "payment_create"
    PAYMENT_PLAN_CREATE = "payment_plan_create"
    PAYMENT_PLAN_PAYMENT = "payment_plan_payment"
    EXPENSE_CREATE = "expense_create"
    EXPENSE_DELETE = "expense_delete"
    TRANSACTION_DELETE = "transaction_delete"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: uuid.UUID,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper."""
    # Persist plain string values, not Enum reprs (avoid 'AuditAction.XYZ')
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(db, audit_log=audit_log, actor_user_id=actor_user_id)


def safe_log(db: Session, **kwargs) -> None:
    try:
        log(db, **kwargs)
    except Exception as e:
        logger.warning("audit_log_failed action=%s: %s", kwargs.get("action"), e)
        db.rollback()


def log_patient(db: Session, *, actor_user_id: uuid.UUID, patient_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    safe_log(db, action=action, target_type="patient", target_id=patient_id, actor_user_id=actor_user_id, metadata=metadata)


def log_appointment(db: Session, *, actor_user_id: uuid.UUID, appointment_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    safe_log(db, action=action, target_type="appointment", target_id=appointment_id, actor_user_id=actor_user_id, metadata=metadata)


def log_odontogram(db: Session, *, actor_user_id: uuid.UUID, odontogram_id: uuid.UUID, action: AuditAction, version: Optional[int] = None):
    safe_log(
        db,
        action=action,
        target_type="odontogram",
        target_id=odontogram_id,
        actor_user_id=actor_user_id,
        metadata={"version": version} if version is not None else None,
    )


def log_treatment(db: Session, *, actor_user_id: uuid.UUID, treatment_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    safe_log(db, action=action, target_type="treatment", target_id=treatment_id, actor_user_id=actor_user_id, metadata=metadata)


def log_payment(db: Session, *, actor_user_id: uuid.UUID, target_type: str, target_id: uuid.UUID, action: AuditAction, amount: Optional[float] = None):
    safe_log(
        db,
        action=action,
        target_type=target_type,
        target_id=target_id,
        actor_user_id=actor_user_id,
        metadata={"amount": amount} if amount is not None else None,
    )


def log_user(db: Session, *, actor_user_id: uuid.UUID, user_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    safe_log(db, action=action, target_type="user", target_id=user_id, actor_user_id=actor_user_id, metadata=metadata)


__all__ = [
    "AuditAction",
    "AuditStatus",
    "log",
    "safe_log",
    "log_patient",
    "log_appointment",
    "log_odontogram",
    "log_treatment",
    "log_payment",
    "log_user",
]
