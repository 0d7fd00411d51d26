"""
API dependency helpers.

Resolves the calling staff member from an ``Authorization: Bearer`` access
token and exposes permission guards for routes.
"""
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from clinic.db import models
from clinic.db.database import get_db
from clinic.db.repositories import users as user_repo
from clinic.utils import token_crypto
from clinic.utils.role_permissions import has_permission

logger = logging.getLogger(__name__)

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if the token cannot be resolved, 403 for deactivated accounts.


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _build_context(user: models.User, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "token_jti": payload.get("jti"),
        "token_exp": payload.get("exp"),
    }


def get_current_user_context(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    token = parse_bearer(authorization)
    if not token:
        raise _unauthorized("Authentication required")
    payload = token_crypto.decode_token(token)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid or expired token")

    user = user_repo.get_user(db, user_id)
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return user, _build_context(user, payload)


def get_optional_user_context(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
) -> Optional[Tuple[models.User, Dict[str, Any]]]:
    """Like ``get_current_user_context`` but returns None for anonymous callers."""
    if not parse_bearer(authorization):
        return None
    try:
        return get_current_user_context(db=db, authorization=authorization)
    except HTTPException:
        return None


def require_permission(resource: str, action: str):
    """Dependency factory: the caller's role must grant ``action`` on ``resource``."""

    def _guard(user_context=Depends(get_current_user_context)):
        user, ctx = user_context
        if not has_permission(user.role, resource, action):
            logger.info("permission_denied user=%s role=%s resource=%s action=%s", user.id, user.role, resource, action)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user, ctx

    return _guard


def require_roles(*roles: str):
    """Dependency factory for the few rules that are phrased per role rather than per resource."""

    def _guard(user_context=Depends(get_current_user_context)):
        user, ctx = user_context
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user, ctx

    return _guard
