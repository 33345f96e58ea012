"""
Usage Service - message usage against the user's plan limits
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import FREE_DAILY_MESSAGE_LIMIT, FREE_MONTHLY_MESSAGE_LIMIT
from crud.subscription import SubscriptionRepository
from database_models import UsageRecord
from models.billing import Usage, UsageData
from models.enums import UsagePeriod, UsageType

logger = logging.getLogger(__name__)


class UsageService:
    """
    Counts chat messages per day and per billing month.

    Paid plans count the month from the Stripe period start and have no
    separate daily cap; the free plan counts calendar months.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.subscriptions = SubscriptionRepository(db)

    async def record_message(self, user_id: uuid.UUID, at: Optional[datetime] = None) -> UsageRecord:
        record = UsageRecord(
            user_id=user_id,
            type=UsageType.MESSAGE,
            timestamp=at or datetime.now(timezone.utc),
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def _count_since(self, user_id: uuid.UUID, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(UsageRecord)
            .where(UsageRecord.user_id == user_id)
            .where(UsageRecord.type == UsageType.MESSAGE)
            .where(UsageRecord.timestamp >= since)
        )
        return result.scalar_one()

    async def get_usage(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> UsageData:
        now = now or datetime.now(timezone.utc)
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        subscription = await self.subscriptions.get_active_for_user(user_id)
        if subscription:
            month_start = subscription.stripe_current_period_start
            monthly_limit = subscription.price.monthly_message_limit
            daily_limit = monthly_limit
        else:
            month_start = day_start.replace(day=1)
            monthly_limit = FREE_MONTHLY_MESSAGE_LIMIT
            daily_limit = FREE_DAILY_MESSAGE_LIMIT

        return UsageData(
            daily=Usage(
                period=UsagePeriod.DAY,
                usage_count=await self._count_since(user_id, day_start),
                limit_count=daily_limit,
            ),
            monthly=Usage(
                period=UsagePeriod.MONTH,
                usage_count=await self._count_since(user_id, month_start),
                limit_count=monthly_limit,
            ),
        )
