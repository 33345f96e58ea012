"""
Authentication dependency for protected routes
"""

import uuid
import logging
from typing import Optional
from fastapi import HTTPException, Header, Depends, Cookie
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from crud.user import UserRepository
from auth_utils import decode_jwt

logger = logging.getLogger(__name__)


async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (httpOnly cookie set by the web app)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found
    """
    token = None
    if auth_token:
        token = auth_token
    elif authorization and authorization.startswith("Bearer "):
        token = authorization.replace("Bearer ", "").strip()

    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    try:
        payload = decode_jwt(token)
    except ValueError as e:
        logger.error(f"Cannot authenticate request: {e}")
        raise HTTPException(status_code=401, detail="Authentication is not configured")
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # JWT stores the user UUID as a string
    try:
        user_id = uuid.UUID(user_id_str)
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid user ID in token")

    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")

    return {
        "user_id": user.id,
        "email": user.email,
        "name": user.name,
        "stripe_customer_id": user.stripe_customer_id,
        "is_active": user.is_active,
    }
