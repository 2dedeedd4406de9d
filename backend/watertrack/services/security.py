"""
WaterTrack Authentication Utilities
Password hashing (bcrypt) and bearer token operations (PyJWT)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

import bcrypt
import jwt

from watertrack.config import settings
from watertrack.exceptions import ValidationError

logger = logging.getLogger(__name__)

# bcrypt ignores input past 72 bytes; longer passwords are rejected instead
MAX_PASSWORD_BYTES = 72


def _encode_password(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            message=f"Password must not exceed {MAX_PASSWORD_BYTES} bytes",
            field="password",
        )
    return encoded


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode_password(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """True if the password matches the stored hash."""
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError as e:
        # Malformed stored hash
        logger.warning("Password verification failed: %s", e)
        return False


def create_access_token(
    user_id: UUID,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token

    Args:
        user_id: User's UUID
        email: User's email
        expires_delta: Optional custom lifetime (default: JWT_EXPIRATION_DAYS)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expiration_days))

    payload = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
        "iat": now,
        # Distinguishes tokens issued within the same second
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token

    Returns:
        Decoded payload dict or None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token: %s", e)
        return None

    if not payload.get("sub"):
        logger.warning("Token missing subject")
        return None
    return payload
