"""Points awarding, tier upgrades and reward redemption against the fake store."""

import asyncio

import pytest

from apps.storefront.services.core_service import NotFoundError, StoreError


async def test_award_points_applies_tier_multiplier(loyalty, make_user, sb):
    make_user("silver-1", points=1200)
    result = await loyalty.award_points("silver-1", 50, "order_purchase", {"order_id": "o1"})
    assert result.points_awarded == 60
    assert result.balance_after == 1260
    assert sb.rows("users")[0]["loyalty_points"] == 1260
    history = sb.rows("points_history")
    assert history[0]["points"] == 60
    assert history[0]["type"] == "order_purchase"


async def test_order_points_are_awarded_once_per_order(loyalty, make_user, sb):
    make_user("u-once")
    first = await loyalty.award_order_points("u-once", "ORDER_1", "999.00")
    again = await loyalty.award_order_points("u-once", "ORDER_1", "999.00")
    assert first.points_awarded == 99
    assert again.points_awarded == 0
    assert sb.rows("users")[0]["loyalty_points"] == 99
    assert len(sb.rows("points_history")) == 1


async def test_welcome_bonus_is_idempotent(loyalty, make_user):
    make_user("u-welcome")
    await loyalty.award_bonus("u-welcome", "welcome")
    second = await loyalty.award_bonus("u-welcome", "welcome")
    assert second.points_awarded == 0
    status = await loyalty.get_status("u-welcome")
    assert status["points"] == 100


async def test_unknown_bonus_is_rejected(loyalty, make_user):
    make_user("u-bonus")
    with pytest.raises(StoreError):
        await loyalty.award_bonus("u-bonus", "anniversary")


async def test_tier_upgrade_awards_bonus_once(loyalty, make_user, sb):
    make_user("u-tier", points=950)
    award = await loyalty.award_points("u-tier", 100, "order_purchase")
    upgrade = await loyalty.check_tier_upgrade("u-tier", award.balance_before, award.balance_after)
    assert upgrade["tier"]["key"] == "silver"
    # bonus earned at silver multiplier
    assert upgrade["bonus"] == 120

    repeat = await loyalty.check_tier_upgrade("u-tier", award.balance_before, award.balance_after)
    assert repeat["bonus"] == 0
    user = sb.rows("users")[0]
    assert user["loyalty_tier"] == "silver"
    assert user["loyalty_points"] == 1170


async def test_no_upgrade_within_tier(loyalty, make_user):
    make_user("u-flat", points=100)
    assert await loyalty.check_tier_upgrade("u-flat", 100, 200) is None


async def test_admin_adjustment_skips_multiplier(loyalty, make_user):
    make_user("u-adj", points=3000)
    result = await loyalty.adjust_points("u-adj", -500, "goodwill correction", "admin-1")
    assert result.points_awarded == -500
    assert result.balance_after == 2500


async def test_redeem_reward_mints_personal_voucher(loyalty, make_user, sb):
    make_user("u-redeem", points=800)
    result = await loyalty.redeem_reward("u-redeem", "LOYAL50")
    assert result["points_remaining"] == 300

    redeemed = result["voucher"]
    assert redeemed["code"].startswith("LOYAL50_")
    assert redeemed["is_used"] is False

    voucher = sb.rows("vouchers")[0]
    assert voucher["code"] == redeemed["code"]
    assert voucher["user_id"] == "u-redeem"
    assert voucher["usage_limit"] == 1
    assert voucher["created_by"] == "loyalty_program"

    history = sb.rows("points_history")[0]
    assert history["points"] == -500
    assert history["type"] == "voucher_redemption"


async def test_redeem_without_enough_points(loyalty, make_user, sb):
    make_user("u-poor", points=100)
    with pytest.raises(StoreError) as exc:
        await loyalty.redeem_reward("u-poor", "LOYAL50")
    assert exc.value.code == "insufficient_points"
    assert "400 more points" in exc.value.message
    assert sb.rows("vouchers") == []


async def test_concurrent_redemptions_cannot_overspend(loyalty, make_user, sb):
    make_user("u-race", points=600)
    results = await asyncio.gather(
        loyalty.redeem_reward("u-race", "LOYAL50"),
        loyalty.redeem_reward("u-race", "LOYAL50"),
        return_exceptions=True,
    )
    assert sum(1 for r in results if isinstance(r, StoreError)) == 1
    assert sb.rows("users")[0]["loyalty_points"] == 100
    assert len(sb.rows("vouchers")) == 1


async def test_rewards_fall_back_to_defaults_and_prefer_table(loyalty, sb):
    defaults = await loyalty.list_rewards()
    assert [r.id for r in defaults][:2] == ["LOYAL50", "LOYAL100"]

    sb.seed("loyalty_rewards", {"id": "TEA20", "title": "Tea", "points_cost": 200, "voucher_type": "fixed",
                                "voucher_value": 20, "is_active": True})
    rewards = await loyalty.list_rewards()
    assert [r.id for r in rewards] == ["TEA20"]


async def test_unknown_reward(loyalty, make_user):
    make_user("u-unknown", points=5000)
    with pytest.raises(NotFoundError):
        await loyalty.redeem_reward("u-unknown", "NOPE")


async def test_lookup_redeemed_voucher_rules(loyalty, make_user, sb):
    make_user("u-lookup", points=600)
    code = (await loyalty.redeem_reward("u-lookup", "LOYAL50"))["voucher"]["code"]

    row = await loyalty.lookup_redeemed_voucher("u-lookup", code.lower())
    assert row["code"] == code

    with pytest.raises(StoreError) as exc:
        await loyalty.lookup_redeemed_voucher("someone-else", code)
    assert exc.value.status_code == 403

    with pytest.raises(NotFoundError):
        await loyalty.lookup_redeemed_voucher("u-lookup", "NOT-A-CODE")


async def test_points_history_is_newest_first_with_descriptions(loyalty, make_user):
    make_user("u-hist")
    await loyalty.award_bonus("u-hist", "welcome")
    await loyalty.award_points("u-hist", 10, "review_bonus", idempotency_key="review:r1")
    history = await loyalty.points_history("u-hist")
    assert len(history) == 2
    assert {h["description"] for h in history} == {"Welcome bonus", "Review written"}
