"""
Usage section of the account menu: plan name, message usage and any
pending plan change.
"""
import inspect
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from models.billing import FREE_PRODUCT_CONFIG, SubscriptionView, Usage, UsageData
from models.enums import ProductType, ScheduledSubscriptionAction, UsagePeriod

LOADING_TEXT = "Calculating usage..."
REFETCH_DEBOUNCE_SECONDS = 1.0


class UsageSectionView(BaseModel):
    loading: bool = False
    loading_text: Optional[str] = None
    product_name: Optional[str] = None
    plan_label: Optional[str] = None
    usage_count: Optional[int] = None
    limit_count: Optional[int] = None
    period_label: Optional[str] = None
    usage_percent: Optional[float] = None
    scheduled_change_message: Optional[str] = None


def select_usage(product_type: ProductType, usage_data: Optional[UsageData]) -> Optional[Usage]:
    """Free plans are limited per day, paid plans per month."""
    if usage_data is None:
        return None
    if product_type == ProductType.FREE:
        return usage_data.daily
    return usage_data.monthly


def usage_percent(usage: Usage) -> float:
    if usage.limit_count > 0:
        return usage.usage_count / usage.limit_count * 100
    return 0


def format_change_date(value: datetime) -> str:
    """e.g. "March 7, 2026" """
    return f"{value:%B} {value.day}, {value.year}"


def scheduled_change_message(subscription: Optional[SubscriptionView]) -> Optional[str]:
    if not subscription or not subscription.scheduled_change:
        return None

    change = subscription.scheduled_change
    if change.scheduled_action == ScheduledSubscriptionAction.PRICE_CHANGE and change.price:
        return (
            f"Your {change.price.monthly_message_limit} messages a month plan starts on "
            f"{format_change_date(change.scheduled_change_at)}"
        )
    if change.scheduled_action == ScheduledSubscriptionAction.CANCELLATION:
        return f"Your subscription will end on {format_change_date(change.scheduled_change_at)}"
    return None


class LeadingDebounce:
    """
    Leading-edge debounce: the first call runs, calls arriving less than
    `wait_seconds` after the previous call are dropped. Nothing fires on
    the trailing edge.
    """

    def __init__(self, wait_seconds: float = REFETCH_DEBOUNCE_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.wait_seconds = wait_seconds
        self.clock = clock
        self._last_call: Optional[float] = None

    def ready(self) -> bool:
        now = self.clock()
        last_call = self._last_call
        self._last_call = now
        return last_call is None or now - last_call >= self.wait_seconds


RefetchUsage = Callable[[], Union[UsageData, Awaitable[UsageData]]]


class UsageSection:
    """
    Presentation state for the usage section.

    Holds the latest subscription and usage query results; usage is
    refetched when the section becomes visible, at most once per debounce
    window.
    """

    def __init__(
        self,
        subscription: Optional[SubscriptionView],
        usage_data: Optional[UsageData],
        refetch_usage: Optional[RefetchUsage] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.subscription = subscription
        self.usage_data = usage_data
        self.open = False
        self._refetch_usage = refetch_usage
        self._refetch_debounce = LeadingDebounce(clock=clock)

    async def set_open(self, open: bool) -> bool:
        """
        Record visibility; returns True when a usage refetch ran.
        """
        self.open = open
        if not open or self._refetch_usage is None:
            return False
        if not self._refetch_debounce.ready():
            return False

        result: Any = self._refetch_usage()
        if inspect.isawaitable(result):
            result = await result
        self.usage_data = result
        return True

    def render(self) -> UsageSectionView:
        product = self.subscription.product if self.subscription else FREE_PRODUCT_CONFIG
        usage = select_usage(product.type, self.usage_data)
        if usage is None:
            return UsageSectionView(loading=True, loading_text=LOADING_TEXT)

        return UsageSectionView(
            product_name=product.name,
            plan_label="Trial" if product.type == ProductType.FREE else "Active",
            usage_count=usage.usage_count,
            limit_count=usage.limit_count,
            period_label="daily" if usage.period == UsagePeriod.DAY else "monthly",
            usage_percent=usage_percent(usage),
            scheduled_change_message=scheduled_change_message(self.subscription),
        )
