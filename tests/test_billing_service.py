"""
Unit tests for the Stripe adapter and the next-period schedule workflow
"""
from types import SimpleNamespace

import pytest
import stripe

from models.billing import ExistingSubscriptionCheckout, NewSubscriptionCheckout
from services.billing_service import (
    BillingService,
    NoCurrentItemError,
    NoCurrentPhaseError,
    NoCurrentPriceError,
    ScheduleStateError,
    is_tier_upgrade,
)


def price(limit):
    return SimpleNamespace(monthly_message_limit=limit)


def test_is_tier_upgrade_when_new_limit_is_higher():
    assert is_tier_upgrade(price(100), price(200)) is True
    assert is_tier_upgrade(price(200), price(100)) is False


def test_is_tier_upgrade_false_for_equal_limits():
    current, same = price(100), price(100)
    assert is_tier_upgrade(current, same) is False
    assert is_tier_upgrade(same, current) is False


@pytest.mark.parametrize("a,b", [(0, 0), (50, 500), (500, 50), (100, 100)])
def test_is_tier_upgrade_is_irreflexive_and_antisymmetric(a, b):
    first, second = price(a), price(b)
    assert is_tier_upgrade(first, first) is False
    assert not (is_tier_upgrade(first, second) and is_tier_upgrade(second, first))


async def test_update_subscription_next_period_replaces_phases(stripe_client):
    service = BillingService(stripe_client)

    schedule = await service.update_subscription_next_period(subscription_id="sub_123", price_id="price_pro_100")

    schedules = stripe_client.v1.subscription_schedules
    schedules.create_async.assert_awaited_once_with(params={"from_subscription": "sub_123"})
    schedules.update_async.assert_awaited_once()
    args, kwargs = schedules.update_async.call_args
    assert args == ("sub_sched_123",)

    phases = kwargs["params"]["phases"]
    assert len(phases) == 2
    current, upcoming = phases
    assert current["items"] == [{"price": "price_pro_200", "quantity": 1}]
    assert current["start_date"] == 1772323200
    assert current["end_date"] == 1775001600
    assert upcoming == {"items": [{"price": "price_pro_100", "quantity": 1}], "iterations": 1}

    # The updated schedule comes back untouched
    assert schedule["id"] == "sub_sched_123"
    assert schedule["phases"] == phases


async def test_update_subscription_next_period_keeps_current_quantity(stripe_client, schedule_factory):
    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(phases=[
        {
            "items": [{"price": {"id": "price_team", "object": "price"}, "quantity": 3}],
            "start_date": 100,
            "end_date": 200,
        }
    ])
    service = BillingService(stripe_client)

    await service.update_subscription_next_period(subscription_id="sub_123", price_id="price_pro_100")

    params = stripe_client.v1.subscription_schedules.update_async.call_args.kwargs["params"]
    assert params["phases"][0]["items"] == [{"price": "price_team", "quantity": 3}]
    assert params["phases"][1]["items"] == [{"price": "price_pro_100", "quantity": 1}]


async def test_schedule_without_phases_raises_before_any_update(stripe_client, schedule_factory):
    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(phases=[])
    service = BillingService(stripe_client)

    with pytest.raises(NoCurrentPhaseError, match="No current phase found"):
        await service.update_subscription_next_period(subscription_id="sub_123", price_id="price_pro_100")

    schedules = stripe_client.v1.subscription_schedules
    schedules.update_async.assert_not_awaited()
    # The schedule created on Stripe's side is left as is (no compensating release)
    schedules.release_async.assert_not_awaited()


async def test_schedule_phase_without_items_raises(stripe_client, schedule_factory):
    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(phases=[
        {"items": [], "start_date": 100, "end_date": 200}
    ])
    service = BillingService(stripe_client)

    with pytest.raises(NoCurrentItemError):
        await service.update_subscription_next_period(subscription_id="sub_123", price_id="price_pro_100")
    stripe_client.v1.subscription_schedules.update_async.assert_not_awaited()


async def test_schedule_item_without_price_raises(stripe_client, schedule_factory):
    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(phases=[
        {"items": [{"price": "", "quantity": 1}], "start_date": 100, "end_date": 200}
    ])
    service = BillingService(stripe_client)

    with pytest.raises(NoCurrentPriceError) as exc_info:
        await service.update_subscription_next_period(subscription_id="sub_123", price_id="price_pro_100")
    assert isinstance(exc_info.value, ScheduleStateError)
    stripe_client.v1.subscription_schedules.update_async.assert_not_awaited()


async def test_stripe_errors_propagate_unchanged(stripe_client):
    error = stripe.InvalidRequestError("No such subscription: 'sub_missing'", "from_subscription")
    stripe_client.v1.subscription_schedules.create_async.side_effect = error
    service = BillingService(stripe_client)

    with pytest.raises(stripe.InvalidRequestError) as exc_info:
        await service.update_subscription_next_period(subscription_id="sub_missing", price_id="price_pro_100")
    assert exc_info.value is error


async def test_new_subscription_checkout(stripe_client):
    service = BillingService(stripe_client)
    request = NewSubscriptionCheckout(
        price_id="price_pro_100",
        user_id="user-1",
        stripe_customer_id="cus_123",
        success_url="https://app.test/success",
        cancel_url="https://app.test/cancel",
    )

    session = await service.create_checkout_session(request)

    assert session["url"] == "https://checkout.stripe.test/cs_123"
    params = stripe_client.v1.checkout.sessions.create_async.call_args.kwargs["params"]
    assert params == {
        "mode": "subscription",
        "customer": "cus_123",
        "line_items": [{"price": "price_pro_100", "quantity": 1}],
        "payment_method_types": ["card"],
        "metadata": {"user_id": "user-1"},
        "allow_promotion_codes": True,
        "success_url": "https://app.test/success",
        "cancel_url": "https://app.test/cancel",
    }


async def test_existing_subscription_checkout_prorates(stripe_client):
    service = BillingService(stripe_client)
    request = ExistingSubscriptionCheckout(
        price_id="price_pro_200",
        user_id="user-1",
        stripe_customer_id="cus_123",
        success_url="https://app.test/success",
        cancel_url="https://app.test/cancel",
        subscription_id="sub_123",
        customer_id="cus_123",
    )

    await service.create_checkout_session(request)

    params = stripe_client.v1.checkout.sessions.create_async.call_args.kwargs["params"]
    assert params["subscription_data"] == {"proration_behavior": "create_prorations"}
    assert params["line_items"] == [{"price": "price_pro_200", "quantity": 1}]


async def test_update_subscription_invoices_immediately(stripe_client):
    service = BillingService(stripe_client)

    await service.update_subscription(
        subscription_id="sub_123",
        subscription_item_id="si_123",
        price_id="price_pro_200",
    )

    stripe_client.v1.subscriptions.update_async.assert_awaited_once_with(
        "sub_123",
        params={
            "items": [{"id": "si_123", "price": "price_pro_200"}],
            "proration_behavior": "always_invoice",
        },
    )


async def test_passthrough_calls_return_provider_objects(stripe_client):
    service = BillingService(stripe_client)

    customer = await service.create_customer(name="Ada", email="ada@example.com")
    portal = await service.create_billing_portal_session(customer_id="cus_123", return_url="https://app.test")
    released = await service.release_subscription_schedule("sub_sched_123")
    retrieved = await service.get_subscription_schedule("sub_sched_123")

    assert customer == {"id": "cus_new"}
    stripe_client.v1.customers.create_async.assert_awaited_once_with(
        params={"name": "Ada", "email": "ada@example.com"}
    )
    assert portal["url"] == "https://billing.stripe.test/bps_123"
    stripe_client.v1.billing_portal.sessions.create_async.assert_awaited_once_with(
        params={"customer": "cus_123", "return_url": "https://app.test"}
    )
    assert released["status"] == "released"
    stripe_client.v1.subscription_schedules.release_async.assert_awaited_once_with("sub_sched_123")
    assert retrieved["status"] == "active"
    stripe_client.v1.subscription_schedules.retrieve_async.assert_awaited_once_with("sub_sched_123")
