"""
Loyalty Service
===============

Orchestrates loyalty policy + tier engine + points ledger + reward catalog
against the document store. Routes call this; no HTTP here.

Balance changes for one user are serialized with a per-user lock so two
concurrent redemptions cannot both spend the same points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.loyalty.loyalty_policy import LoyaltyPolicy
from apps.storefront.services.loyalty.points_ledger import (
    HISTORY_LIMIT,
    InsufficientPointsError,
    PointsEntry,
    already_applied,
    apply_delta,
    describe,
)
from apps.storefront.services.loyalty.rewards_catalog import DEFAULT_REWARDS, Reward
from apps.storefront.services.loyalty.tier_engine import TierEngine
from apps.storefront.utils.clock import iso, parse_ts, utcnow
from apps.storefront.utils.ids import reward_voucher_code
from apps.storefront.utils.locks import user_locks
from apps.storefront.utils.money import _q2, _to_decimal
from apps.storefront.utils.validation import normalize_code

log = logging.getLogger("picklish.loyalty")


@dataclass(frozen=True)
class AwardResult:
    points_awarded: int
    balance_before: int
    balance_after: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points_awarded": self.points_awarded,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
        }


class LoyaltyService:
    def __init__(self, store: Store, policy: Optional[LoyaltyPolicy] = None) -> None:
        self.store = store
        self.policy = policy or LoyaltyPolicy()
        self.tiers = TierEngine(self.policy)

    async def _user(self, user_id: str) -> Dict[str, Any]:
        user = await self.store.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # -----------------------------
    # Member status
    # -----------------------------
    async def get_status(self, user_id: str) -> Dict[str, Any]:
        user = await self._user(user_id)
        points = int(user.get("loyalty_points") or 0)
        explained = self.tiers.explain_status(points)
        return {
            "user_id": user_id,
            "points": points,
            "total_spent": str(_q2(_to_decimal(user.get("total_spent")))),
            **explained,
        }

    # -----------------------------
    # Awarding
    # -----------------------------
    async def award_points(
        self,
        user_id: str,
        points: int,
        type: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
        apply_multiplier: bool = True,
    ) -> AwardResult:
        async with user_locks.for_key(user_id):
            user = await self._user(user_id)
            balance = int(user.get("loyalty_points") or 0)

            if idempotency_key:
                rows = await self.store.points_history.find({"idempotency_key": idempotency_key})
                if already_applied([PointsEntry.from_dict(r) for r in rows], idempotency_key):
                    log.info("points already applied for %s (%s)", user_id, idempotency_key)
                    return AwardResult(0, balance, balance)

            final = self.policy.apply_multiplier(points, balance) if apply_multiplier else int(points)
            try:
                new_balance = apply_delta(balance, final)
            except InsufficientPointsError as e:
                raise StoreError(str(e), 400, code="insufficient_points")

            await self.store.users.update(
                user_id,
                {
                    "loyalty_points": new_balance,
                    "last_points_earned": final,
                    "last_points_activity": iso(),
                },
            )
            entry = PointsEntry(
                user_id=user_id,
                points=final,
                type=type,
                details=details or {},
                idempotency_key=idempotency_key,
            )
            await self.store.points_history.insert(entry.to_dict())

        log.info("awarded %s points to %s (%s)", final, user_id, type)
        return AwardResult(final, balance, new_balance)

    async def award_order_points(self, user_id: str, order_id: str, order_total: Any) -> AwardResult:
        base = self.policy.base_order_points(order_total)
        return await self.award_points(
            user_id,
            base,
            "order_purchase",
            {"order_id": order_id, "order_amount": str(_q2(_to_decimal(order_total)))},
            idempotency_key=f"order:{order_id}",
        )

    async def award_bonus(
        self,
        user_id: str,
        kind: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> AwardResult:
        points = self.policy.bonus(kind)
        if points <= 0:
            raise StoreError(f"Unknown bonus: {kind}", 400)
        if kind == "welcome":
            idempotency_key = f"welcome:{user_id}"
        return await self.award_points(
            user_id, points, f"{kind}_bonus", details, idempotency_key=idempotency_key
        )

    async def adjust_points(self, user_id: str, delta: int, reason: str, admin_id: str) -> AwardResult:
        return await self.award_points(
            user_id,
            delta,
            "admin_adjustment",
            {"reason": reason, "admin_id": admin_id},
            apply_multiplier=False,
        )

    async def check_tier_upgrade(self, user_id: str, points_before: int, points_after: int) -> Optional[Dict[str, Any]]:
        """Awards the upgrade bonus once per tier reached. The bonus itself is not re-checked."""
        tier = self.tiers.detect_upgrade(points_before, points_after)
        if tier is None:
            return None

        await self.store.users.update(user_id, {"loyalty_tier": tier.key, "tier_upgraded_at": iso()})
        result = await self.award_points(
            user_id,
            self.policy.bonus("tier_upgrade"),
            "tier_upgrade",
            {"new_tier": tier.key},
            idempotency_key=f"tier_upgrade:{tier.key}:{user_id}",
        )
        log.info("user %s upgraded to %s", user_id, tier.key)
        return {"tier": tier.to_dict(), "bonus": result.points_awarded}

    # -----------------------------
    # Rewards
    # -----------------------------
    async def list_rewards(self) -> List[Reward]:
        try:
            rows = await self.store.loyalty_rewards.find({"is_active": True}, order_by=("points_cost", False))
        except Exception:
            log.exception("reward catalog unavailable, using defaults")
            rows = []
        if not rows:
            return list(DEFAULT_REWARDS)
        return [Reward.from_dict(r) for r in rows]

    async def _reward(self, reward_id: str) -> Reward:
        for reward in await self.list_rewards():
            if reward.id == reward_id:
                return reward
        raise NotFoundError("Reward not found")

    async def redeem_reward(self, user_id: str, reward_id: str) -> Dict[str, Any]:
        reward = await self._reward(reward_id)
        if not reward.is_active:
            raise StoreError("This reward is no longer available", 400)

        async with user_locks.for_key(user_id):
            user = await self._user(user_id)
            balance = int(user.get("loyalty_points") or 0)
            try:
                new_balance = apply_delta(balance, -reward.points_cost)
            except InsufficientPointsError as e:
                raise StoreError(str(e), 400, code="insufficient_points")

            now = utcnow()
            code = reward_voucher_code(reward.id)
            voucher = reward.voucher_fields(code=code, user_id=user_id, now=now)

            # points leave the balance before any voucher exists
            await self.store.users.update(
                user_id, {"loyalty_points": new_balance, "last_points_activity": iso(now)}
            )
            await self.store.points_history.insert(
                PointsEntry(
                    user_id=user_id,
                    points=-reward.points_cost,
                    type="voucher_redemption",
                    details={"voucher_id": reward.id, "voucher_title": reward.title, "voucher_code": code},
                ).to_dict()
            )
            redeemed = {
                "code": code,
                "user_id": user_id,
                "original_voucher_id": reward.id,
                "title": reward.title,
                "description": reward.description,
                "type": reward.voucher_type,
                "value": voucher["value"],
                "min_order_amount": voucher["min_order_amount"],
                "max_discount": voucher["max_discount"],
                "points_cost": reward.points_cost,
                "is_active": True,
                "is_used": False,
                "redeemed_at": iso(now),
                "expires_at": voucher["expires_at"],
            }
            await self.store.redeemed_vouchers.insert(redeemed)
            await self.store.vouchers.insert(voucher)

        log.info("user %s redeemed %s for %s points", user_id, reward.id, reward.points_cost)
        return {"voucher": redeemed, "points_remaining": new_balance}

    async def my_vouchers(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.store.redeemed_vouchers.find({"user_id": user_id}, order_by=("redeemed_at", True))

    async def lookup_redeemed_voucher(self, user_id: str, code: str) -> Dict[str, Any]:
        code = normalize_code(code)
        row = await self.store.redeemed_vouchers.get(code)
        if not row:
            raise NotFoundError("Invalid voucher code")
        if row.get("user_id") != user_id:
            raise StoreError("This voucher belongs to another account", 403)
        if row.get("is_used"):
            raise StoreError("This voucher has already been used", 400)
        expires = parse_ts(row.get("expires_at"))
        if expires is not None and expires < utcnow():
            raise StoreError("This voucher has expired", 400)
        return row

    # -----------------------------
    # History
    # -----------------------------
    async def points_history(self, user_id: str) -> List[Dict[str, Any]]:
        rows = await self.store.points_history.find(
            {"user_id": user_id}, order_by=("created_at", True), limit=HISTORY_LIMIT
        )
        out = []
        for row in rows:
            entry = PointsEntry.from_dict(row)
            out.append({**entry.to_dict(), "description": describe(entry)})
        return out
