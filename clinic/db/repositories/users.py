"""
User repository: lookups, registration and account updates.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from clinic.db import models, schemas
from clinic.utils.role_permissions import ROLE_DOCTOR


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_user(db: Session, user_id: uuid.UUID) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def create_user(db: Session, *, payload: schemas.UserCreate, password_hash: str, role: str) -> models.User:
    user = models.User(
        email=payload.email,
        password_hash=password_hash,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        phone=payload.phone,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_users(
    db: Session,
    *,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.User]:
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == role)
    if is_active is not None:
        query = query.filter(models.User.is_active == is_active)
    return query.order_by(models.User.last_name, models.User.first_name).offset(skip).limit(limit).all()


def list_active_doctors(db: Session) -> List[models.User]:
    return list_users(db, role=ROLE_DOCTOR, is_active=True, limit=1000)


def update_user(db: Session, user: models.User, updates: dict) -> models.User:
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def touch_last_login(db: Session, user: models.User) -> models.User:
    user.last_login_at = _now()
    db.commit()
    db.refresh(user)
    return user


def set_password_hash(db: Session, user: models.User, password_hash: str) -> models.User:
    user.password_hash = password_hash
    db.commit()
    db.refresh(user)
    return user
