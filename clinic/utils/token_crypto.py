"""
Password hashing and JWT utilities for staff authentication.

Responsibilities:
- Hash passwords with Argon2id and verify them
- Issue access, refresh and password-reset JWTs signed with SECRET_KEY
- Decode tokens, enforcing the expected token type and the revocation list
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Dict, Optional, Set

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import Type
from jose import JWTError
from jose import jwt as jose_jwt

from clinic import config

logger = logging.getLogger(__name__)

_argon2 = PasswordHasher(time_cost=2, memory_cost=102400, parallelism=8, hash_len=32, type=Type.ID)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPE_PASSWORD_RESET = "password_reset"

# jti values of tokens presented to /auth/logout; process-local
_revoked_jtis: Set[str] = set()
_revoked_lock = Lock()


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _argon2.hash(password)


def verify_password(password: str, encoded_hash: str) -> bool:
    if not password or not encoded_hash:
        return False
    try:
        return _argon2.verify(encoded_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.warning("password_verify_failed: %s", e)
        return False


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_token(claims: Dict[str, Any], *, token_type: str, expires_delta: timedelta) -> str:
    """Encode ``claims`` into a signed JWT with ``type``, ``jti``, ``iat`` and ``exp``."""
    issued_at = _now()
    to_encode = dict(claims)
    to_encode.update(
        {
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + expires_delta).timestamp()),
        }
    )
    return jose_jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def _user_claims(user) -> Dict[str, Any]:
    return {"sub": str(user.id), "email": user.email, "role": user.role}


def create_token_pair(user) -> TokenPair:
    """Issue a fresh access/refresh pair for ``user``."""
    access_delta = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = _user_claims(user)
    return TokenPair(
        access_token=create_token(claims, token_type=TOKEN_TYPE_ACCESS, expires_delta=access_delta),
        refresh_token=create_token(
            claims,
            token_type=TOKEN_TYPE_REFRESH,
            expires_delta=timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
        ),
        expires_in=int(access_delta.total_seconds()),
    )


def create_password_reset_token(user) -> str:
    return create_token(
        {"sub": str(user.id), "email": user.email},
        token_type=TOKEN_TYPE_PASSWORD_RESET,
        expires_delta=timedelta(minutes=config.PASSWORD_RESET_EXPIRE_MINUTES),
    )


def decode_token(token: str, *, expected_type: str = TOKEN_TYPE_ACCESS) -> Optional[Dict[str, Any]]:
    """Return the token payload, or None when invalid, expired, revoked or of another type."""
    if not token:
        return None
    try:
        payload = jose_jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        logger.info("jwt_rejected: %s", e)
        return None
    if payload.get("type") != expected_type:
        return None
    if is_revoked(payload.get("jti")):
        return None
    return payload


def revoke(jti: Optional[str]) -> None:
    if not jti:
        return
    with _revoked_lock:
        _revoked_jtis.add(jti)


def is_revoked(jti: Optional[str]) -> bool:
    if not jti:
        return False
    with _revoked_lock:
        return jti in _revoked_jtis
