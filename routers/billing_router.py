"""
Billing Router - subscription endpoints backed by Stripe
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from auth import get_current_user
from backend.utils.responses import success_response, error_response
from database import get_db
from models.billing import ChangePriceBody, CheckoutBody
from services.billing_service import BillingService, ScheduleStateError
from services.stripe_client import StripeNotConfiguredError, create_stripe_client
from services.subscription_service import NotFoundError, SubscriptionError, SubscriptionService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

billing_router = APIRouter(prefix="/api/subscription", tags=["billing"])


def get_billing_service() -> BillingService:
    try:
        return BillingService(create_stripe_client())
    except StripeNotConfiguredError:
        raise HTTPException(status_code=503, detail="Billing is not configured")


def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
) -> SubscriptionService:
    return SubscriptionService(db, billing)


def _billing_error(endpoint: str, user_id, error: Exception):
    """Map billing workflow errors to the normalized error envelope"""
    log_endpoint_event(endpoint, str(user_id), "error", {"error": str(error)})
    if isinstance(error, NotFoundError):
        return error_response("not_found", status=404, message=str(error))
    if isinstance(error, SubscriptionError):
        return error_response("invalid_request", status=400, message=str(error))
    if isinstance(error, ScheduleStateError):
        logger.error(f"Subscription schedule in unexpected state: {error}")
        return error_response("invalid_schedule_state", status=409, message=str(error))
    logger.error(f"Stripe request failed: {error}", exc_info=True)
    return error_response("billing_provider_error", status=502, message=str(error))


BILLING_ERRORS = (SubscriptionError, ScheduleStateError, stripe.StripeError)


@billing_router.get("")
async def get_subscription(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active subscription with any scheduled change, or null on the free plan"""
    # Reading the record needs no Stripe access
    service = SubscriptionService(db, billing=None)
    subscription = await service.get_subscription(current_user["user_id"])
    return success_response(subscription)


@billing_router.post("/checkout")
async def create_checkout_session(
    body: CheckoutBody,
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a Stripe Checkout session and return its URL"""
    try:
        session = await service.start_checkout(current_user["user_id"], body.price_id)
    except BILLING_ERRORS as e:
        return _billing_error("/subscription/checkout", current_user["user_id"], e)
    return success_response({"url": session["url"]})


@billing_router.post("/portal")
async def create_billing_portal_session(
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a Stripe Billing Portal session and return its URL"""
    try:
        session = await service.create_portal_session(current_user["user_id"])
    except BILLING_ERRORS as e:
        return _billing_error("/subscription/portal", current_user["user_id"], e)
    return success_response({"url": session["url"]})


@billing_router.post("/price")
async def change_price(
    body: ChangePriceBody,
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Move the subscription to another price: upgrades apply now,
    downgrades at the start of the next billing period.
    """
    try:
        subscription = await service.change_price(current_user["user_id"], body.price_id)
    except BILLING_ERRORS as e:
        return _billing_error("/subscription/price", current_user["user_id"], e)
    log_endpoint_event("/subscription/price", str(current_user["user_id"]), "success", {"price_id": body.price_id})
    return success_response(subscription)


@billing_router.post("/release")
async def release_scheduled_change(
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Drop a pending scheduled change and return to normal billing"""
    try:
        subscription = await service.release_scheduled_change(current_user["user_id"])
    except BILLING_ERRORS as e:
        return _billing_error("/subscription/release", current_user["user_id"], e)
    return success_response(subscription)
