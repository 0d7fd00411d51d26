"""
Audit trail storage.

Rows are only ever inserted; the admin listing filters by actor, action,
target and creation window, newest first.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Query, Session

from clinic.db import models, schemas


def create_audit_log(db: Session, audit_log: schemas.AuditLogCreate, actor_user_id: uuid.UUID) -> models.AuditLog:
    data = audit_log.model_dump(exclude={"metadata"})
    entry = models.AuditLog(**data, actor_user_id=actor_user_id, metadata_json=audit_log.metadata or {})
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _filtered(
    db: Session,
    *,
    user_id: Optional[uuid.UUID],
    action_type: Optional[str],
    target_type: Optional[str],
    target_id: Optional[uuid.UUID],
    status: Optional[str],
    date_from: Optional[date],
    date_to: Optional[date],
) -> Query:
    AuditLog = models.AuditLog
    query = db.query(AuditLog)
    if user_id:
        query = query.filter(AuditLog.actor_user_id == user_id)
    if action_type:
        query = query.filter(AuditLog.action_type == action_type)
    if target_type:
        query = query.filter(AuditLog.target_type == target_type)
    if target_id:
        query = query.filter(AuditLog.target_id == target_id)
    if status:
        query = query.filter(AuditLog.status == status)
    if date_from:
        query = query.filter(AuditLog.created_at >= _day_start(date_from))
    if date_to:
        # inclusive of the whole end day
        query = query.filter(AuditLog.created_at < _day_start(date_to + timedelta(days=1)))
    return query


def get_audit_logs(
    db: Session,
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.AuditLog]:
    query = _filtered(
        db,
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
    )
    return query.order_by(models.AuditLog.created_at.desc()).offset(skip).limit(limit).all()
