from datetime import datetime, timedelta, timezone

import pytest

from apps.storefront.services.core_service import StoreError
from apps.storefront.services.subscriptions.subscription_service import SubscriptionService
from apps.storefront.utils.clock import iso, parse_ts
from tests.services.conftest import sign

CUSTOM = {
    "delivery_address": "12 MG Road, Bengaluru",
    "category_preferences": ["garden-fresh"],
    "spice_level": "spicy",
}


async def _active(subscriptions, user, plan_id="quarterly"):
    created = await subscriptions.subscribe(user, plan_id)
    sub_id = created["subscription_id"]
    await subscriptions.complete_payment(
        user["id"], sub_id, gateway_order_id="order_gw_1", payment_id="pay_sub_1", signature=sign("order_gw_1", "pay_sub_1")
    )
    return sub_id


async def test_subscribe_creates_pending_subscription(subscriptions, make_user, gateway, sb):
    user = make_user("sub-new")
    created = await subscriptions.subscribe(user, "quarterly", CUSTOM)

    assert created["checkout"]["amount"] == 152900
    assert gateway.create_order.call_args.kwargs["receipt"] == created["subscription_id"]

    sub = sb.rows("subscriptions")[0]
    assert sub["status"] == "pending"
    assert sub["final_price"] == "1529.00"
    assert sub["frequency"] == 3
    assert sub["customizations"]["spice_level"] == "spicy"
    assert sub["gateway_order_id"] == "order_gw_1"
    assert parse_ts(sub["next_delivery"]) > parse_ts(sub["start_date"])


async def test_subscribe_rejects_unknown_plan_and_bad_customizations(subscriptions, make_user):
    user = make_user("sub-bad")
    with pytest.raises(StoreError) as exc:
        await subscriptions.subscribe(user, "weekly")
    assert exc.value.code == "invalid_plan"

    with pytest.raises(StoreError) as exc:
        await subscriptions.subscribe(user, "monthly", {**CUSTOM, "spice_level": "volcanic"})
    assert exc.value.code == "invalid_customization"

    past = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
    with pytest.raises(StoreError, match="past"):
        await subscriptions.subscribe(user, "monthly", {**CUSTOM, "start_date": past})


async def test_custom_frequency_drives_schedule(subscriptions, make_user, sb):
    user = make_user("sub-freq")
    start = datetime(2030, 1, 31, tzinfo=timezone.utc)
    await subscriptions.subscribe(user, "quarterly", {**CUSTOM, "delivery_frequency": 4, "start_date": iso(start)})
    sub = sb.rows("subscriptions")[0]
    assert sub["frequency"] == 4
    assert parse_ts(sub["next_delivery"]) == datetime(2030, 5, 31, tzinfo=timezone.utc)


async def test_payment_activates_and_awards_points(subscriptions, make_user, sb):
    user = make_user("sub-pay")
    sub_id = await _active(subscriptions, user)

    sub = sb.rows("subscriptions")[0]
    assert sub["status"] == "active"
    assert sub["payment_status"] == "completed"

    payment = sb.rows("payments")[0]
    assert payment["type"] == "subscription"
    assert payment["subscription_id"] == sub_id
    assert payment["amount"] == "1529.00"

    assert sb.rows("users")[0]["loyalty_points"] == 152
    assert sb.rows("notifications")[0]["title"] == "Subscription Activated"


async def test_repeat_confirmation_does_not_double_award(subscriptions, make_user, sb):
    user = make_user("sub-repeat")
    sub_id = await _active(subscriptions, user)
    again = await subscriptions.complete_payment(
        user["id"], sub_id, gateway_order_id="order_gw_1", payment_id="pay_sub_1", signature=sign("order_gw_1", "pay_sub_1")
    )
    assert again["already_processed"] is True
    assert sb.rows("users")[0]["loyalty_points"] == 152


async def test_bad_signature_marks_failed(subscriptions, make_user, sb):
    user = make_user("sub-forged")
    created = await subscriptions.subscribe(user, "monthly")
    with pytest.raises(StoreError) as exc:
        await subscriptions.complete_payment(
            user["id"], created["subscription_id"], gateway_order_id="order_gw_1", payment_id="p", signature="nope"
        )
    assert exc.value.code == "invalid_signature"
    assert sb.rows("subscriptions")[0]["status"] == "payment_failed"


async def test_active_subscription_cannot_be_failed_afterwards(subscriptions, make_user, sb):
    user = make_user("sub-late-fail")
    sub_id = await _active(subscriptions, user)
    with pytest.raises(StoreError) as exc:
        await subscriptions.fail_payment(user["id"], sub_id, {"description": "late failure"})
    assert exc.value.code == "already_paid"

    sub = sb.rows("subscriptions")[0]
    assert sub["status"] == "active"
    assert sub["payment_status"] == "completed"


async def test_pause_resume_skip_cancel(subscriptions, make_user):
    user = make_user("sub-manage")
    sub_id = await _active(subscriptions, user, "monthly")

    paused = await subscriptions.pause(user["id"], sub_id, days=14)
    assert paused["status"] == "paused"
    assert paused["paused_until"] is not None

    with pytest.raises(StoreError) as exc:
        await subscriptions.skip_next(user["id"], sub_id)
    assert exc.value.status_code == 409

    resumed = await subscriptions.resume(user["id"], sub_id)
    assert resumed["status"] == "active"
    assert resumed["paused_until"] is None

    before = parse_ts(resumed["next_delivery"])
    skipped = await subscriptions.skip_next(user["id"], sub_id)
    assert skipped["skipped_deliveries"] == 1
    assert parse_ts(skipped["next_delivery"]) > before

    cancelled = await subscriptions.cancel(user["id"], sub_id)
    assert cancelled["status"] == "cancelled"
    assert cancelled["next_delivery"] is None

    with pytest.raises(StoreError):
        await subscriptions.cancel(user["id"], sub_id)


async def test_other_users_cannot_manage(subscriptions, make_user):
    owner = make_user("sub-owner")
    sub_id = await _active(subscriptions, owner, "monthly")
    with pytest.raises(StoreError) as exc:
        await subscriptions.pause("someone-else", sub_id)
    assert exc.value.status_code == 403


async def test_list_adds_status_color(subscriptions, make_user):
    user = make_user("sub-list")
    await subscriptions.subscribe(user, "monthly")
    rows = await subscriptions.list_for_user(user["id"])
    assert rows[0]["status_color"] == "info"


async def test_process_due_rolls_forward_and_resumes(subscriptions, sb):
    now = datetime(2026, 3, 15, 6, 0, tzinfo=timezone.utc)
    sb.seed(
        "subscriptions",
        {"id": "due", "status": "active", "frequency": 1, "next_delivery": "2026-03-01T06:00:00+00:00", "delivery_count": 2},
        {"id": "later", "status": "active", "frequency": 1, "next_delivery": "2026-04-01T06:00:00+00:00"},
        {"id": "paused-out", "status": "paused", "frequency": 3, "paused_until": "2026-03-10T00:00:00+00:00"},
        {"id": "paused-in", "status": "paused", "frequency": 3, "paused_until": "2026-04-10T00:00:00+00:00"},
    )

    out = await subscriptions.process_due(now)
    assert out == {"rolled_forward": 1, "resumed": 1}

    rows = {r["id"]: r for r in sb.rows("subscriptions")}
    assert rows["due"]["delivery_count"] == 3
    assert parse_ts(rows["due"]["next_delivery"]) == datetime(2026, 4, 1, 6, 0, tzinfo=timezone.utc)
    assert rows["paused-out"]["status"] == "active"
    assert parse_ts(rows["paused-out"]["next_delivery"]) == datetime(2026, 6, 15, 6, 0, tzinfo=timezone.utc)
    assert rows["paused-in"]["status"] == "paused"
    assert "updated_at" not in rows["later"]


async def test_missing_gateway_is_501(store, loyalty, make_user):
    service = SubscriptionService(store, loyalty=loyalty, gateway=None)
    with pytest.raises(StoreError) as exc:
        await service.subscribe(make_user("sub-nogw"), "monthly")
    assert exc.value.status_code == 501
