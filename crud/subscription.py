"""
SubscriptionRepository for database operations on Subscription model
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database_models import Price, Subscription, as_utc, utcnow
from models.enums import ScheduledSubscriptionAction, SubscriptionStatus


class SubscriptionRepository:
    """
    Repository class for Subscription database operations.

    Every query eagerly loads product, price and scheduled price so the
    records can be turned into views outside the session's async context.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _select(self):
        return select(Subscription).options(
            selectinload(Subscription.product),
            selectinload(Subscription.price).selectinload(Price.product),
            selectinload(Subscription.scheduled_price).selectinload(Price.product),
        )

    async def get_active_for_user(self, user_id: uuid.UUID) -> Optional[Subscription]:
        result = await self.db.execute(
            self._select()
            .where(Subscription.user_id == user_id)
            .where(Subscription.status == SubscriptionStatus.ACTIVE)
            .order_by(Subscription.started_at.desc())
        )
        return result.scalars().first()

    async def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        result = await self.db.execute(
            self._select().where(Subscription.stripe_subscription_id == stripe_subscription_id)
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: uuid.UUID, price: Price, stripe_data: dict) -> Subscription:
        """
        Create a subscription record for a completed checkout.

        Args:
            user_id: Owning user
            price: Subscribed price (its product is recorded too)
            stripe_data: Dictionary with keys stripe_customer_id,
                stripe_subscription_id, stripe_subscription_item_id,
                stripe_current_period_start, stripe_current_period_end

        Returns:
            Created Subscription object
        """
        subscription = Subscription(
            user_id=user_id,
            product=price.product,
            price=price,
            scheduled_price=None,
            status=SubscriptionStatus.ACTIVE,
            stripe_customer_id=stripe_data["stripe_customer_id"],
            stripe_subscription_id=stripe_data["stripe_subscription_id"],
            stripe_subscription_item_id=stripe_data["stripe_subscription_item_id"],
            stripe_current_period_start=stripe_data["stripe_current_period_start"],
            stripe_current_period_end=stripe_data["stripe_current_period_end"],
        )
        self.db.add(subscription)
        await self.db.flush()
        return subscription

    async def set_price(self, subscription: Subscription, price: Price) -> Subscription:
        subscription.price = price
        subscription.product = price.product
        await self.db.flush()
        return subscription

    async def set_scheduled_change(
        self,
        subscription: Subscription,
        action: ScheduledSubscriptionAction,
        change_at: datetime,
        price: Optional[Price] = None,
        schedule_id: Optional[str] = None,
    ) -> Subscription:
        """
        Record a change that takes effect at change_at.

        Raises:
            ValueError: If a price change is scheduled without a target price
        """
        if action == ScheduledSubscriptionAction.PRICE_CHANGE and price is None:
            raise ValueError("A scheduled price change needs a target price")

        subscription.scheduled_action = action
        subscription.scheduled_change_at = change_at
        subscription.scheduled_price = price
        subscription.stripe_subscription_schedule_id = schedule_id
        await self.db.flush()
        return subscription

    async def clear_scheduled_change(self, subscription: Subscription) -> Subscription:
        subscription.scheduled_action = None
        subscription.scheduled_change_at = None
        subscription.scheduled_price = None
        subscription.stripe_subscription_schedule_id = None
        await self.db.flush()
        return subscription

    async def record_billing_period(
        self,
        subscription: Subscription,
        period_start: datetime,
        period_end: datetime,
    ) -> bool:
        """
        Store the billing period Stripe reports for the subscription.

        A renewal that reaches scheduled_change_at settles the scheduled
        change: a price change becomes the current price, a cancellation
        ends the subscription.

        Returns:
            True when the period start moved forward, i.e. the subscription renewed
        """
        if period_end <= period_start:
            raise ValueError("Billing period must end after it starts")

        renewed = as_utc(period_start) > as_utc(subscription.stripe_current_period_start)
        subscription.stripe_current_period_start = period_start
        subscription.stripe_current_period_end = period_end

        if (
            renewed
            and subscription.scheduled_action is not None
            and as_utc(subscription.scheduled_change_at) <= as_utc(period_start)
        ):
            await self._settle_scheduled_change(subscription)

        await self.db.flush()
        return renewed

    async def _settle_scheduled_change(self, subscription: Subscription) -> None:
        if subscription.scheduled_action == ScheduledSubscriptionAction.PRICE_CHANGE:
            await self.set_price(subscription, subscription.scheduled_price)
            await self.clear_scheduled_change(subscription)
        elif subscription.scheduled_action == ScheduledSubscriptionAction.CANCELLATION:
            await self.mark_canceled(subscription, ended_at=subscription.scheduled_change_at)

    async def mark_canceled(self, subscription: Subscription, ended_at: Optional[datetime] = None) -> Subscription:
        subscription.status = SubscriptionStatus.CANCELED
        subscription.ended_at = ended_at or utcnow()
        subscription.scheduled_action = None
        subscription.scheduled_change_at = None
        subscription.scheduled_price = None
        subscription.stripe_subscription_schedule_id = None
        await self.db.flush()
        return subscription
