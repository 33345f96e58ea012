"""
Authentication utilities: JWT token management
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from config.settings import settings

# JWT configuration
ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)


def create_jwt(user_id: str, lifetime: Optional[timedelta] = None) -> str:
    """Create a JWT token for a user"""
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot create JWT token.")

    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + (lifetime if lifetime is not None else TOKEN_LIFETIME),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_jwt(token: str):
    """Decode a JWT token. Returns None if invalid."""
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot decode JWT token.")

    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
