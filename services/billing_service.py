"""
Billing Service - thin adapter over the Stripe API

Every call forwards its parameters to Stripe and returns the Stripe object
unchanged. Stripe errors propagate to the caller; there is no retry here.
"""
import logging
from typing import Any

import stripe

from models.billing import CheckoutRequest, ExistingSubscriptionCheckout

logger = logging.getLogger(__name__)


class ScheduleStateError(Exception):
    """A freshly created subscription schedule is missing an expected part."""


class NoCurrentPhaseError(ScheduleStateError):
    def __init__(self):
        super().__init__("No current phase found")


class NoCurrentItemError(ScheduleStateError):
    def __init__(self):
        super().__init__("No current item found")


class NoCurrentPriceError(ScheduleStateError):
    def __init__(self):
        super().__init__("No current price found")


def is_tier_upgrade(current_price: Any, new_price: Any) -> bool:
    """True iff new_price allows more messages per month than current_price."""
    return new_price.monthly_message_limit > current_price.monthly_message_limit


def _price_id(price: Any) -> str:
    # Schedule items carry either the price id or an expanded Price object
    if not price:
        return ""
    if isinstance(price, str):
        return price
    return price["id"] or ""


class BillingService:
    """
    Service class wrapping the Stripe resources the product uses:
    customers, checkout sessions, billing portal sessions, subscriptions
    and subscription schedules.
    """

    def __init__(self, client: stripe.StripeClient):
        """
        Args:
            client: Process-wide StripeClient (see services.stripe_client)
        """
        self.client = client

    async def create_customer(self, name: str, email: str):
        return await self.client.v1.customers.create_async(params={"name": name, "email": email})

    async def create_checkout_session(self, request: CheckoutRequest):
        """
        Create a subscription-mode Checkout session.

        Checkout for a customer who already has a subscription asks Stripe
        to create prorations for the switch.
        """
        params = {
            "mode": "subscription",
            "customer": request.stripe_customer_id,
            "line_items": [
                {
                    "price": request.price_id,
                    "quantity": 1,
                },
            ],
            "payment_method_types": ["card"],
            "metadata": {
                "user_id": request.user_id,
            },
            "allow_promotion_codes": True,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
        }
        if isinstance(request, ExistingSubscriptionCheckout):
            params["subscription_data"] = {"proration_behavior": "create_prorations"}

        return await self.client.v1.checkout.sessions.create_async(params=params)

    async def create_billing_portal_session(self, customer_id: str, return_url: str):
        return await self.client.v1.billing_portal.sessions.create_async(
            params={"customer": customer_id, "return_url": return_url}
        )

    async def update_subscription(self, subscription_id: str, subscription_item_id: str, price_id: str):
        """Swap the subscription item to price_id now, invoicing the proration immediately."""
        return await self.client.v1.subscriptions.update_async(
            subscription_id,
            params={
                "items": [
                    {
                        "id": subscription_item_id,
                        "price": price_id,
                    },
                ],
                "proration_behavior": "always_invoice",
            },
        )

    async def update_subscription_next_period(self, subscription_id: str, price_id: str):
        """
        Switch a subscription to price_id starting with its next billing period.

        A schedule is created from the live subscription (Stripe snapshots the
        current phase), then its phases are replaced by the unchanged current
        phase followed by one iteration at the new price.

        Raises:
            NoCurrentPhaseError, NoCurrentItemError, NoCurrentPriceError: If the
                created schedule lacks the part in question. The schedule is
                left in place on Stripe's side.
        """
        schedule = await self.client.v1.subscription_schedules.create_async(
            params={"from_subscription": subscription_id}
        )

        phases = schedule["phases"]
        if not phases:
            raise NoCurrentPhaseError()
        current_phase = phases[0]

        items = current_phase["items"]
        if not items:
            raise NoCurrentItemError()
        current_item = items[0]

        current_price = _price_id(current_item["price"])
        if not current_price:
            raise NoCurrentPriceError()

        updated_schedule = await self.client.v1.subscription_schedules.update_async(
            schedule["id"],
            params={
                "phases": [
                    {
                        "items": [
                            {
                                "price": current_price,
                                "quantity": current_item["quantity"],
                            },
                        ],
                        "start_date": current_phase["start_date"],
                        "end_date": current_phase["end_date"],
                    },
                    {
                        "items": [
                            {
                                "price": price_id,
                                "quantity": 1,
                            },
                        ],
                        "iterations": 1,
                    },
                ],
            },
        )
        logger.info(f"Scheduled price {price_id} for next period of subscription {subscription_id}")
        return updated_schedule

    async def release_subscription_schedule(self, subscription_schedule_id: str):
        return await self.client.v1.subscription_schedules.release_async(subscription_schedule_id)

    async def get_subscription_schedule(self, subscription_schedule_id: str):
        return await self.client.v1.subscription_schedules.retrieve_async(subscription_schedule_id)
