"""
Process-wide Stripe client
"""
import logging
from functools import lru_cache

import stripe

from config.settings import settings

logger = logging.getLogger(__name__)


class StripeNotConfiguredError(RuntimeError):
    pass


@lru_cache(maxsize=1)
def create_stripe_client() -> stripe.StripeClient:
    """
    Build the Stripe client once and hand the same instance to every caller.

    Raises:
        StripeNotConfiguredError: If STRIPE_SECRET_KEY is not set
    """
    if not settings.stripe_secret_key:
        logger.error("STRIPE_SECRET_KEY is not set. Stripe functionality is unavailable.")
        raise StripeNotConfiguredError("STRIPE_SECRET_KEY is not set")
    return stripe.StripeClient(settings.stripe_secret_key)
