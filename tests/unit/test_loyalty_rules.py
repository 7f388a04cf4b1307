"""Loyalty policy math, tier detection and the points ledger."""

import pytest

from apps.storefront.services.loyalty.loyalty_policy import LoyaltyPolicy, Tier
from apps.storefront.services.loyalty.points_ledger import (
    InsufficientPointsError,
    PointsEntry,
    already_applied,
    apply_delta,
    describe,
)
from apps.storefront.services.loyalty.tier_engine import TierEngine
from apps.storefront.utils.money import D

policy = LoyaltyPolicy()
engine = TierEngine(policy)


@pytest.mark.parametrize(
    "points,tier",
    [(0, "bronze"), (999, "bronze"), (1000, "silver"), (2499, "silver"), (2500, "gold"), (5000, "platinum"), (99999, "platinum")],
)
def test_tier_for_points(points, tier):
    assert policy.tier_for_points(points).key == tier


def test_next_tier_and_distance():
    assert policy.next_tier(1200).key == "gold"
    assert policy.points_to_next_tier(1200) == 1300
    assert policy.next_tier(5000) is None
    assert policy.points_to_next_tier(5000) is None


def test_progress_percent_is_capped():
    assert policy.progress_percent(500) == 50.0
    assert policy.progress_percent(6000) == 100.0


def test_order_points_are_floored():
    assert policy.base_order_points("999.99") == 99
    assert policy.base_order_points(D("9")) == 0
    assert policy.base_order_points(-50) == 0


def test_multiplier_follows_current_balance():
    assert policy.apply_multiplier(55, 0) == 55
    assert policy.apply_multiplier(55, 1000) == 66
    assert policy.apply_multiplier(55, 2500) == 83  # 82.5 rounds half up
    assert policy.apply_multiplier(55, 5000) == 110


def test_bonus_lookup():
    assert policy.bonus("welcome") == 100
    assert policy.bonus("review") == 10
    assert policy.bonus("unknown") == 0


def test_lowest_tier_must_start_at_zero():
    with pytest.raises(ValueError):
        LoyaltyPolicy(tiers=[Tier("x", "X", 10, D("1"))])


def test_policy_from_dict_keeps_default_bonuses():
    p = LoyaltyPolicy.from_dict({"rupees_per_point": "20", "bonuses": {"review": 25}})
    assert p.base_order_points(100) == 5
    assert p.bonus("review") == 25
    assert p.bonus("welcome") == 100


def test_detect_upgrade_only_counts_upward_moves():
    assert engine.detect_upgrade(900, 1100).key == "silver"
    assert engine.detect_upgrade(900, 6000).key == "platinum"
    assert engine.detect_upgrade(1100, 1200) is None
    assert engine.detect_upgrade(3000, 900) is None


def test_explain_status_messages():
    assert "points to Silver" in engine.explain_status(400)["message"]
    assert "highest tier" in engine.explain_status(7000)["message"]


def test_apply_delta_guards_against_negative_balance():
    assert apply_delta(100, -100) == 0
    with pytest.raises(InsufficientPointsError) as exc:
        apply_delta(80, -100)
    assert str(exc.value) == "You need 20 more points"


def test_already_applied_matches_idempotency_key():
    entries = [PointsEntry(user_id="u1", points=10, type="order_purchase", idempotency_key="order:1")]
    assert already_applied(entries, "order:1")
    assert not already_applied(entries, "order:2")
    assert not already_applied(entries, None)


def test_describe_redemption_uses_title():
    entry = PointsEntry(user_id="u1", points=-500, type="voucher_redemption", details={"voucher_title": "₹50 Off"})
    assert describe(entry) == "Voucher redeemed: ₹50 Off"
    assert describe(PointsEntry(user_id="u1", points=1, type="mystery")) == "Points transaction"
