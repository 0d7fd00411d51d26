"""
Authentication endpoints: registration, login, token refresh, password
reset and password change.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from clinic import config
from clinic.api.deps import get_current_user_context, get_optional_user_context
from clinic.audit import AuditAction, log_user
from clinic.db import schemas
from clinic.db.database import get_db
from clinic.db.repositories import users as user_repo
from clinic.utils import token_crypto
from clinic.utils.role_permissions import DEFAULT_ROLE, ROLE_ADMIN, permissions_for_display

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

GENERIC_RESET_MESSAGE = "If an account exists for that email, a password reset link has been sent"


def _tokens(user) -> schemas.AuthTokens:
    pair = token_crypto.create_token_pair(user)
    return schemas.AuthTokens(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_optional_user_context),
):
    role = payload.role.value if payload.role else DEFAULT_ROLE
    actor = user_context[0] if user_context else None
    if role != DEFAULT_ROLE and (actor is None or actor.role != ROLE_ADMIN):
        raise HTTPException(status_code=403, detail="Only administrators can assign roles")
    if user_repo.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = user_repo.create_user(
        db, payload=payload, password_hash=token_crypto.hash_password(payload.password), role=role
    )
    logger.info("user_registered id=%s role=%s", user.id, user.role)
    log_user(
        db,
        actor_user_id=actor.id if actor else user.id,
        user_id=user.id,
        action=AuditAction.USER_REGISTER,
        metadata={"role": user.role},
    )
    return schemas.AuthResponse(user=schemas.User.model_validate(user), tokens=_tokens(user))


@router.post("/login", response_model=schemas.AuthResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = user_repo.get_user_by_email(db, payload.email)
    if not user or not token_crypto.verify_password(payload.password, user.password_hash):
        logger.info("login_failed email=%s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    user = user_repo.touch_last_login(db, user)
    logger.info("login_succeeded id=%s", user.id)
    return schemas.AuthResponse(user=schemas.User.model_validate(user), tokens=_tokens(user))


@router.post("/refresh", response_model=schemas.AuthTokens)
def refresh(payload: schemas.RefreshRequest, db: Session = Depends(get_db)):
    claims = token_crypto.decode_token(payload.refresh_token, expected_type=token_crypto.TOKEN_TYPE_REFRESH)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = user_repo.get_user_by_email(db, claims.get("email") or "")
    if not user or str(user.id) != claims.get("sub") or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    # Refresh tokens are single use
    token_crypto.revoke(claims.get("jti"))
    return _tokens(user)


@router.post("/forgot-password")
def forgot_password(payload: schemas.ForgotPasswordRequest, db: Session = Depends(get_db)):
    response = {"message": GENERIC_RESET_MESSAGE}
    user = user_repo.get_user_by_email(db, payload.email)
    if user and user.is_active:
        reset_token = token_crypto.create_password_reset_token(user)
        logger.info("password_reset_requested id=%s", user.id)
        if not config.is_production():
            response["reset_token"] = reset_token
    return response


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(payload: schemas.ResetPasswordRequest, db: Session = Depends(get_db)):
    claims = token_crypto.decode_token(payload.token, expected_type=token_crypto.TOKEN_TYPE_PASSWORD_RESET)
    if claims is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    user = user_repo.get_user_by_email(db, claims.get("email") or "")
    if not user or str(user.id) != claims.get("sub"):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user_repo.set_password_hash(db, user, token_crypto.hash_password(payload.new_password))
    token_crypto.revoke(claims.get("jti"))
    log_user(db, actor_user_id=user.id, user_id=user.id, action=AuditAction.PASSWORD_RESET)
    return {"message": "Password has been reset successfully"}


@router.get("/me", response_model=schemas.User)
def me(user_context=Depends(get_current_user_context)):
    user, _ctx = user_context
    return user


@router.get("/validate")
def validate(user_context=Depends(get_current_user_context)):
    user, ctx = user_context
    return {
        "valid": True,
        "user": schemas.User.model_validate(user).model_dump(mode="json"),
        "permissions": permissions_for_display(user.role),
        "expires_at": ctx.get("token_exp"),
    }


@router.post("/logout", response_model=schemas.MessageResponse)
def logout(user_context=Depends(get_current_user_context)):
    user, ctx = user_context
    token_crypto.revoke(ctx.get("token_jti"))
    logger.info("logout id=%s", user.id)
    return {"message": "Logged out successfully"}


@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    if payload.new_password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if payload.new_password == payload.current_password:
        raise HTTPException(status_code=400, detail="New password must be different from current password")
    if not token_crypto.verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    user_repo.set_password_hash(db, user, token_crypto.hash_password(payload.new_password))
    log_user(db, actor_user_id=user.id, user_id=user.id, action=AuditAction.PASSWORD_CHANGE)
    return {"message": "Password changed successfully"}
