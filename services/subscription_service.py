"""
Subscription Service - keeps Stripe and the local subscription record in step
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from crud.price import PriceRepository
from crud.subscription import SubscriptionRepository
from crud.user import UserRepository
from models.billing import ExistingSubscriptionCheckout, NewSubscriptionCheckout, SubscriptionView
from models.enums import ScheduledSubscriptionAction
from services.billing_service import BillingService, is_tier_upgrade

logger = logging.getLogger(__name__)


class SubscriptionError(Exception):
    pass


class NotFoundError(SubscriptionError):
    pass


class SubscriptionService:
    """
    Service class for subscription workflows.

    Upgrades apply immediately; downgrades are scheduled for the start of
    the next billing period and mirrored on the record as a scheduled change.
    """

    def __init__(self, db: AsyncSession, billing: Optional[BillingService] = None):
        """
        Args:
            db: AsyncSession instance for database operations
            billing: Stripe adapter; read-only callers may omit it
        """
        self.db = db
        self.billing = billing
        self.users = UserRepository(db)
        self.prices = PriceRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    async def get_subscription(self, user_id: uuid.UUID) -> Optional[SubscriptionView]:
        subscription = await self.subscriptions.get_active_for_user(user_id)
        if not subscription:
            return None
        return SubscriptionView.from_record(subscription)

    async def _require_user(self, user_id: uuid.UUID):
        user = await self.users.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _require_price(self, price_id: uuid.UUID):
        price = await self.prices.get_by_id(price_id)
        if not price:
            raise NotFoundError("Price not found")
        return price

    async def _require_subscription(self, user_id: uuid.UUID):
        subscription = await self.subscriptions.get_active_for_user(user_id)
        if not subscription:
            raise NotFoundError("No active subscription")
        return subscription

    async def start_checkout(self, user_id: uuid.UUID, price_id: uuid.UUID):
        """
        Create a Checkout session for price_id, creating the Stripe customer
        on first use. Users with an active subscription get the prorated
        variant.

        Returns:
            The Stripe Checkout Session
        """
        user = await self._require_user(user_id)
        price = await self._require_price(price_id)

        if not user.stripe_customer_id:
            customer = await self.billing.create_customer(name=user.name or user.email, email=user.email)
            await self.users.set_stripe_customer_id(user, customer["id"])
            logger.info(f"Created Stripe customer {customer['id']} for user {user.id}")

        frontend_url = settings.frontend_url or "http://localhost:3000"
        fields = {
            "price_id": price.stripe_price_id,
            "user_id": str(user.id),
            "stripe_customer_id": user.stripe_customer_id,
            "success_url": f"{frontend_url}/subscription/success",
            "cancel_url": f"{frontend_url}/subscription/cancel",
        }

        existing = await self.subscriptions.get_active_for_user(user.id)
        if existing:
            request = ExistingSubscriptionCheckout(
                **fields,
                subscription_id=existing.stripe_subscription_id,
                customer_id=existing.stripe_customer_id,
            )
        else:
            request = NewSubscriptionCheckout(**fields)

        return await self.billing.create_checkout_session(request)

    async def create_portal_session(self, user_id: uuid.UUID):
        user = await self._require_user(user_id)
        if not user.stripe_customer_id:
            raise SubscriptionError("User has no Stripe customer")
        frontend_url = settings.frontend_url or "http://localhost:3000"
        return await self.billing.create_billing_portal_session(
            customer_id=user.stripe_customer_id,
            return_url=frontend_url,
        )

    async def change_price(self, user_id: uuid.UUID, price_id: uuid.UUID) -> SubscriptionView:
        """
        Move the user's subscription to price_id.

        Any pending schedule is released first so at most one scheduled
        change exists at a time.
        """
        subscription = await self._require_subscription(user_id)
        new_price = await self._require_price(price_id)
        if new_price.id == subscription.price_id:
            raise SubscriptionError("Subscription already uses this price")

        if subscription.stripe_subscription_schedule_id:
            await self.billing.release_subscription_schedule(subscription.stripe_subscription_schedule_id)
            await self.subscriptions.clear_scheduled_change(subscription)

        if is_tier_upgrade(subscription.price, new_price):
            await self.billing.update_subscription(
                subscription_id=subscription.stripe_subscription_id,
                subscription_item_id=subscription.stripe_subscription_item_id,
                price_id=new_price.stripe_price_id,
            )
            await self.subscriptions.set_price(subscription, new_price)
            if subscription.scheduled_action is not None:
                await self.subscriptions.clear_scheduled_change(subscription)
            logger.info(f"Upgraded subscription {subscription.id} to price {new_price.key}")
        else:
            schedule = await self.billing.update_subscription_next_period(
                subscription_id=subscription.stripe_subscription_id,
                price_id=new_price.stripe_price_id,
            )
            await self.subscriptions.set_scheduled_change(
                subscription,
                action=ScheduledSubscriptionAction.PRICE_CHANGE,
                change_at=subscription.stripe_current_period_end,
                price=new_price,
                schedule_id=schedule["id"],
            )
            logger.info(
                f"Scheduled subscription {subscription.id} to move to price {new_price.key} "
                f"at {subscription.stripe_current_period_end}"
            )

        return SubscriptionView.from_record(subscription)

    async def release_scheduled_change(self, user_id: uuid.UUID) -> SubscriptionView:
        subscription = await self._require_subscription(user_id)
        if subscription.scheduled_action is None:
            raise SubscriptionError("No scheduled change to release")

        if subscription.stripe_subscription_schedule_id:
            await self.billing.release_subscription_schedule(subscription.stripe_subscription_schedule_id)
        await self.subscriptions.clear_scheduled_change(subscription)
        return SubscriptionView.from_record(subscription)
