"""
Users API endpoints.

Staff listing and administration (role and active flag), plus the doctor
directory used by scheduling screens.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from clinic.api.deps import get_current_user_context, require_permission
from clinic.audit import AuditAction, log_user
from clinic.db import schemas
from clinic.db.database import get_db
from clinic.db.repositories import users as user_repo
from clinic.utils.role_permissions import READ, UPDATE, USERS, permissions_for_display

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=List[schemas.User])
def list_users(
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(USERS, READ)),
):
    return user_repo.list_users(db, role=role, is_active=is_active, skip=skip, limit=limit)


@router.get("/doctors", response_model=List[schemas.User])
def list_doctors(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return user_repo.list_active_doctors(db)


@router.get("/me/permissions")
def my_permissions(user_context=Depends(get_current_user_context)):
    user, _ctx = user_context
    return {"role": user.role, "permissions": permissions_for_display(user.role)}


@router.patch("/{user_id}", response_model=schemas.User)
def update_user(
    user_id: uuid.UUID,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(USERS, UPDATE)),
):
    actor, _ctx = user_context
    target = user_repo.get_user(db, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in updates:
        updates["role"] = updates["role"].value
    if target.id == actor.id and (updates.get("is_active") is False or updates.get("role", actor.role) != actor.role):
        raise HTTPException(status_code=400, detail="Administrators cannot demote or deactivate themselves")

    previous_role = target.role
    updated = user_repo.update_user(db, target, updates)
    action = AuditAction.USER_ROLE_CHANGE if updated.role != previous_role else AuditAction.USER_UPDATE
    log_user(
        db,
        actor_user_id=actor.id,
        user_id=updated.id,
        action=action,
        metadata={"fields": sorted(updates), "old_role": previous_role, "new_role": updated.role},
    )
    return updated
