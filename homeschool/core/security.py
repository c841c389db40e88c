# homeschool/core/security.py
"""Password hashing and token helpers."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID, uuid4
import hashlib
import secrets

import bcrypt
import jwt

from .config import settings
from .exceptions import TokenExpiredError, UnauthorizedError

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hashed version"""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


def hash_token(token: str) -> str:
    """Tokens are stored only as SHA-256 digests."""
    return hashlib.sha256(token.encode()).hexdigest()

def generate_opaque_token() -> str:
    return secrets.token_urlsafe(32)


def create_token(teacher_id: UUID, session_id: UUID, token_type: str, expires_in: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(teacher_id),
        "sid": str(session_id),
        "type": token_type,
        "jti": uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

def create_access_token(teacher_id: UUID, session_id: UUID) -> str:
    return create_token(teacher_id, session_id, ACCESS_TOKEN, settings.access_token_expire_seconds)

def create_refresh_token(teacher_id: UUID, session_id: UUID) -> str:
    return create_token(teacher_id, session_id, REFRESH_TOKEN, settings.refresh_token_expire_seconds)


def decode_token(token: str, expected_type: str) -> Dict[str, Any]:
    """Decode and check a JWT; expiry and tampering map to distinct errors"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub", "sid", "type"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    if payload.get("type") != expected_type:
        raise UnauthorizedError("Invalid token type")
    return payload
