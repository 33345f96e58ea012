from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from config.settings import FREE_PRODUCT_NAME
from models.enums import ProductType, ScheduledSubscriptionAction, SubscriptionStatus, UsagePeriod


# ---------------------------------------------------------------------------
# Checkout requests
# ---------------------------------------------------------------------------

class NewSubscriptionCheckout(BaseModel):
    """Checkout for a customer without a subscription."""
    kind: Literal["new"] = "new"
    price_id: str
    user_id: str
    stripe_customer_id: str
    success_url: str
    cancel_url: str


class ExistingSubscriptionCheckout(BaseModel):
    """Checkout replacing an existing subscription, prorated by Stripe."""
    kind: Literal["existing"] = "existing"
    price_id: str
    user_id: str
    stripe_customer_id: str
    success_url: str
    cancel_url: str
    subscription_id: str
    customer_id: str


CheckoutRequest = Annotated[
    Union[NewSubscriptionCheckout, ExistingSubscriptionCheckout],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Subscription views
# ---------------------------------------------------------------------------

class ProductView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    type: ProductType
    stripe_product_id: Optional[str] = None


class PriceView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    monthly_message_limit: int
    stripe_price_id: str


class ScheduledChange(BaseModel):
    scheduled_action: ScheduledSubscriptionAction
    scheduled_change_at: datetime
    price: Optional[PriceView] = None


class SubscriptionView(BaseModel):
    id: UUID
    status: SubscriptionStatus
    product: ProductView
    price: PriceView
    started_at: datetime
    ended_at: Optional[datetime] = None
    stripe_customer_id: str
    stripe_subscription_id: str
    stripe_current_period_start: datetime
    stripe_current_period_end: datetime
    scheduled_change: Optional[ScheduledChange] = None

    @classmethod
    def from_record(cls, subscription) -> "SubscriptionView":
        scheduled_change = None
        if subscription.scheduled_action is not None:
            scheduled_price = subscription.scheduled_price
            scheduled_change = ScheduledChange(
                scheduled_action=subscription.scheduled_action,
                scheduled_change_at=subscription.scheduled_change_at,
                price=PriceView.model_validate(scheduled_price) if scheduled_price else None,
            )
        return cls(
            id=subscription.id,
            status=subscription.status,
            product=ProductView.model_validate(subscription.product),
            price=PriceView.model_validate(subscription.price),
            started_at=subscription.started_at,
            ended_at=subscription.ended_at,
            stripe_customer_id=subscription.stripe_customer_id,
            stripe_subscription_id=subscription.stripe_subscription_id,
            stripe_current_period_start=subscription.stripe_current_period_start,
            stripe_current_period_end=subscription.stripe_current_period_end,
            scheduled_change=scheduled_change,
        )


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------

class Usage(BaseModel):
    period: UsagePeriod
    usage_count: int
    limit_count: int


class UsageData(BaseModel):
    daily: Usage
    monthly: Usage


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class CheckoutBody(BaseModel):
    price_id: UUID


class ChangePriceBody(BaseModel):
    price_id: UUID


FREE_PRODUCT_CONFIG = ProductView(name=FREE_PRODUCT_NAME, type=ProductType.FREE)
