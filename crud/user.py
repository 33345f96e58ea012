"""
UserRepository for database operations on User model
"""

import uuid
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import User


class UserRepository:
    """
    Repository class for User database operations.

    Accounts are provisioned by the external identity provider; this
    repository only looks them up and records their Stripe customer.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        """
        Mirror an identity-provider account locally.

        Args:
            user_data: Dictionary with key email and optionally id, name,
                is_active (defaults to True)

        Returns:
            Created User object
        """
        user = User(
            id=user_data.get("id") or uuid.uuid4(),
            email=user_data["email"].lower(),
            name=user_data.get("name"),
            is_active=user_data.get("is_active", True),
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def set_stripe_customer_id(self, user: User, stripe_customer_id: str) -> User:
        """Remember the Stripe customer so later checkouts reuse it."""
        user.stripe_customer_id = stripe_customer_id
        await self.db.flush()
        return user
