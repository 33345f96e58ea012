import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database_models import Price


class PriceRepository:
    """Read access to the price catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, price_id: uuid.UUID) -> Optional[Price]:
        result = await self.db.execute(
            select(Price).options(selectinload(Price.product)).where(Price.id == price_id)
        )
        return result.scalar_one_or_none()
