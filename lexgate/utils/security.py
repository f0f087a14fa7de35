"""
LexGate - Security Utilities

JWT access token handling. Tokens are issued by the identity provider; the
claims carry everything needed to build a Principal:

    sub             principal id
    tenant_id       tenant the principal belongs to
    role            one of Role
    license_number  lawyers only
    elevated_until  optional ISO timestamp (time-boxed elevation)
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from lexgate.config import settings


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing token payload
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire, "type": "access"})

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token. Returns None if invalid."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[dict]:
    """Verify an access token and return payload, or None."""
    payload = decode_token(token)
    if payload and payload.get("type") == "access":
        return payload
    return None
