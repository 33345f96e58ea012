"""
Tests for subscription workflows: checkout, upgrades, scheduled downgrades and releases
"""
import uuid
from datetime import datetime, timezone

import pytest

from database_models import Price
from models.enums import ScheduledSubscriptionAction
from services.billing_service import BillingService, NoCurrentPhaseError
from services.subscription_service import NotFoundError, SubscriptionError, SubscriptionService

PERIOD_END = datetime(2026, 4, 1, tzinfo=timezone.utc)


def make_service(test_db, stripe_client):
    return SubscriptionService(test_db, BillingService(stripe_client))


async def test_get_subscription_returns_none_on_free_plan(test_db, user):
    assert await SubscriptionService(test_db).get_subscription(user.id) is None


async def test_upgrade_applies_immediately(test_db, stripe_client, subscription, catalog, user):
    # Start on the cheaper price so moving to "plus" is an upgrade
    subscription.price = catalog.starter
    await test_db.commit()

    view = await make_service(test_db, stripe_client).change_price(user.id, catalog.plus.id)

    stripe_client.v1.subscriptions.update_async.assert_awaited_once_with(
        "sub_123",
        params={
            "items": [{"id": "si_123", "price": "price_pro_200"}],
            "proration_behavior": "always_invoice",
        },
    )
    stripe_client.v1.subscription_schedules.create_async.assert_not_awaited()
    assert view.price.key == "pro_200"
    assert view.scheduled_change is None


async def test_downgrade_is_scheduled_for_next_period(test_db, stripe_client, subscription, catalog, user):
    view = await make_service(test_db, stripe_client).change_price(user.id, catalog.starter.id)

    stripe_client.v1.subscriptions.update_async.assert_not_awaited()
    stripe_client.v1.subscription_schedules.create_async.assert_awaited_once_with(
        params={"from_subscription": "sub_123"}
    )

    # Current price stays until the period ends
    assert view.price.key == "pro_200"
    assert view.scheduled_change.scheduled_action == ScheduledSubscriptionAction.PRICE_CHANGE
    assert view.scheduled_change.price.key == "pro_100"
    assert view.scheduled_change.scheduled_change_at == PERIOD_END
    assert subscription.stripe_subscription_schedule_id == "sub_sched_123"


async def test_pending_schedule_is_released_before_new_change(
    test_db, stripe_client, subscription, catalog, user, schedule_factory
):
    basic = Price(product=catalog.product, key="pro_50", monthly_message_limit=50, stripe_price_id="price_pro_50")
    test_db.add(basic)
    await test_db.commit()
    service = make_service(test_db, stripe_client)
    await service.change_price(user.id, basic.id)

    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(schedule_id="sub_sched_456")
    view = await service.change_price(user.id, catalog.starter.id)

    stripe_client.v1.subscription_schedules.release_async.assert_awaited_once_with("sub_sched_123")
    assert view.scheduled_change.price.key == "pro_100"
    assert subscription.stripe_subscription_schedule_id == "sub_sched_456"


async def test_change_to_current_price_is_rejected(test_db, stripe_client, subscription, catalog, user):
    with pytest.raises(SubscriptionError):
        await make_service(test_db, stripe_client).change_price(user.id, catalog.plus.id)
    stripe_client.v1.subscriptions.update_async.assert_not_awaited()


async def test_change_price_without_subscription(test_db, stripe_client, catalog, user):
    with pytest.raises(NotFoundError):
        await make_service(test_db, stripe_client).change_price(user.id, catalog.starter.id)


async def test_change_price_to_unknown_price(test_db, stripe_client, subscription, user):
    with pytest.raises(NotFoundError):
        await make_service(test_db, stripe_client).change_price(user.id, uuid.uuid4())


async def test_failed_schedule_leaves_record_untouched(test_db, stripe_client, subscription, catalog, user, schedule_factory):
    stripe_client.v1.subscription_schedules.create_async.return_value = schedule_factory(phases=[])

    with pytest.raises(NoCurrentPhaseError):
        await make_service(test_db, stripe_client).change_price(user.id, catalog.starter.id)

    assert subscription.scheduled_action is None
    assert subscription.stripe_subscription_schedule_id is None


async def test_release_scheduled_change(test_db, stripe_client, subscription, catalog, user):
    service = make_service(test_db, stripe_client)
    await service.change_price(user.id, catalog.starter.id)

    view = await service.release_scheduled_change(user.id)

    stripe_client.v1.subscription_schedules.release_async.assert_awaited_once_with("sub_sched_123")
    assert view.scheduled_change is None
    assert subscription.scheduled_price_id is None


async def test_release_without_scheduled_change(test_db, stripe_client, subscription, user):
    with pytest.raises(SubscriptionError):
        await make_service(test_db, stripe_client).release_scheduled_change(user.id)
    stripe_client.v1.subscription_schedules.release_async.assert_not_awaited()


async def test_first_checkout_creates_customer(test_db, stripe_client, catalog, user):
    session = await make_service(test_db, stripe_client).start_checkout(user.id, catalog.starter.id)

    stripe_client.v1.customers.create_async.assert_awaited_once_with(
        params={"name": "Ada", "email": "ada@example.com"}
    )
    assert user.stripe_customer_id == "cus_new"
    params = stripe_client.v1.checkout.sessions.create_async.call_args.kwargs["params"]
    assert params["customer"] == "cus_new"
    assert params["line_items"] == [{"price": "price_pro_100", "quantity": 1}]
    assert params["metadata"] == {"user_id": str(user.id)}
    assert "subscription_data" not in params
    assert session["url"] == "https://checkout.stripe.test/cs_123"


async def test_checkout_with_active_subscription_prorates(test_db, stripe_client, subscription, catalog, user):
    user.stripe_customer_id = "cus_123"
    await test_db.flush()

    await make_service(test_db, stripe_client).start_checkout(user.id, catalog.starter.id)

    stripe_client.v1.customers.create_async.assert_not_awaited()
    params = stripe_client.v1.checkout.sessions.create_async.call_args.kwargs["params"]
    assert params["subscription_data"] == {"proration_behavior": "create_prorations"}


async def test_portal_requires_stripe_customer(test_db, stripe_client, user):
    with pytest.raises(SubscriptionError):
        await make_service(test_db, stripe_client).create_portal_session(user.id)


async def test_upgrade_drops_scheduled_cancellation(test_db, stripe_client, subscription, catalog, user):
    subscription.price = catalog.starter
    subscription.scheduled_action = ScheduledSubscriptionAction.CANCELLATION
    subscription.scheduled_change_at = PERIOD_END
    await test_db.commit()

    view = await make_service(test_db, stripe_client).change_price(user.id, catalog.plus.id)

    stripe_client.v1.subscription_schedules.release_async.assert_not_awaited()
    assert view.scheduled_change is None
    assert subscription.scheduled_action is None
