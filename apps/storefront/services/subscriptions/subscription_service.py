from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from apps.storefront.repositories.store import Store
from apps.storefront.services.account.notifications import notify
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.payments.razorpay_gateway import (
    PAYMENT_STATUS,
    GatewayError,
    RazorpayGateway,
)
from apps.storefront.services.subscriptions import schedule
from apps.storefront.services.subscriptions.plans import (
    PLANS,
    STATUS_COLORS,
    Plan,
    get_plan,
    validate_customizations,
)
from apps.storefront.utils.clock import iso, parse_ts, utcnow
from apps.storefront.utils.ids import subscription_id as new_subscription_id
from apps.storefront.utils.money import money_str, to_paise

log = logging.getLogger("picklish.subscriptions")


class SubscriptionService:
    def __init__(
        self,
        store: Store,
        *,
        loyalty: LoyaltyService,
        gateway: Optional[RazorpayGateway],
        currency: str = "INR",
        store_name: str = "Picklish",
    ) -> None:
        self.store = store
        self.loyalty = loyalty
        self.gateway = gateway
        self.currency = currency
        self.store_name = store_name

    @staticmethod
    def plans() -> List[Dict[str, Any]]:
        return [p.to_dict() for p in PLANS.values()]

    def _require_gateway(self) -> RazorpayGateway:
        if self.gateway is None:
            raise StoreError("Payments are not configured", 501, code="payments_unavailable")
        return self.gateway

    def _plan(self, plan_id: str) -> Plan:
        plan = get_plan(plan_id)
        if plan is None:
            raise StoreError("Invalid subscription plan", 400, code="invalid_plan")
        return plan

    async def _owned(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        sub = await self.store.subscriptions.get(sub_id)
        if not sub:
            raise NotFoundError("Subscription not found")
        if sub.get("user_id") != user_id:
            raise StoreError("Subscription belongs to another account", 403, code="forbidden")
        return sub

    # -----------------------------
    # Creation
    # -----------------------------
    async def subscribe(
        self,
        user: Dict[str, Any],
        plan_id: str,
        customizations: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        plan = self._plan(plan_id)
        gateway = self._require_gateway()

        now = utcnow()
        frequency = plan.frequency
        start: datetime = now
        custom: Dict[str, Any] = {}
        if customizations is not None:
            try:
                custom = validate_customizations(plan, customizations)
            except ValueError as e:
                raise StoreError(str(e), 400, code="invalid_customization")
            frequency = custom["delivery_frequency"]
            if custom["start_date"]:
                start = parse_ts(custom["start_date"]) or now
                if start.date() < now.date():
                    raise StoreError("Start date cannot be in the past", 400, code="invalid_customization")
                custom["start_date"] = iso(start)

        sub_id = new_subscription_id()
        doc = {
            "id": sub_id,
            "user_id": user["id"],
            "user_email": user.get("email") or "",
            "plan_id": plan.id,
            "plan_name": plan.name,
            "duration": plan.duration,
            "frequency": frequency,
            "base_price": money_str(plan.base_price),
            "discount": plan.discount,
            "final_price": money_str(plan.final_price),
            "status": "pending",
            "created_at": iso(now),
            "start_date": iso(start),
            "next_delivery": iso(schedule.next_delivery(frequency, start)),
            "delivery_count": 0,
            "skipped_deliveries": 0,
            "paused_until": None,
            "customizations": custom,
            "payment_status": PAYMENT_STATUS["PENDING"],
        }
        await self.store.subscriptions.insert(doc)

        amount_paise = to_paise(plan.final_price)
        try:
            gateway_order = await run_in_threadpool(
                gateway.create_order,
                amount_paise=amount_paise,
                currency=self.currency,
                receipt=sub_id,
                notes={"subscription_id": sub_id, "plan_id": plan.id},
            )
        except GatewayError as e:
            log.error("gateway order for subscription %s failed: %s", sub_id, e)
            await self.store.subscriptions.update(
                sub_id,
                {"status": "payment_failed", "payment_status": PAYMENT_STATUS["FAILED"], "payment_error": str(e)},
            )
            raise StoreError("Error creating subscription. Please try again.", 502, code="gateway_error")

        await self.store.subscriptions.update(sub_id, {"gateway_order_id": gateway_order.get("id")})
        log.info("subscription %s (%s) created for %s", sub_id, plan.id, user["id"])

        return {
            "subscription_id": sub_id,
            "plan": plan.to_dict(),
            "checkout": {
                "key_id": gateway.key_id,
                "gateway_order_id": gateway_order.get("id"),
                "amount": amount_paise,
                "currency": self.currency,
                "name": self.store_name,
                "description": f"{plan.name} Subscription",
            },
        }

    # -----------------------------
    # Payment outcomes
    # -----------------------------
    async def complete_payment(
        self,
        user_id: str,
        sub_id: str,
        *,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> Dict[str, Any]:
        gateway = self._require_gateway()
        sub = await self._owned(user_id, sub_id)

        if sub.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            return {"subscription_id": sub_id, "payment_id": sub.get("payment_id"), "already_processed": True}

        if sub.get("gateway_order_id") and sub["gateway_order_id"] != gateway_order_id:
            raise StoreError("Payment does not belong to this subscription", 400, code="order_mismatch")

        if not gateway.verify(gateway_order_id, payment_id, signature):
            await self.store.subscriptions.update(
                sub_id,
                {
                    "status": "payment_failed",
                    "payment_status": PAYMENT_STATUS["FAILED"],
                    "payment_error": "Payment signature verification failed",
                },
            )
            raise StoreError("Payment signature verification failed", 400, code="invalid_signature")

        now = iso()
        await self.store.subscriptions.update(
            sub_id,
            {
                "payment_id": payment_id,
                "gateway_order_id": gateway_order_id,
                "payment_signature": signature,
                "payment_status": PAYMENT_STATUS["COMPLETED"],
                "status": "active",
                "activated_at": now,
                "updated_at": now,
            },
        )
        await self.store.payments.upsert(
            {
                "id": payment_id,
                "subscription_id": sub_id,
                "user_id": user_id,
                "gateway_order_id": gateway_order_id,
                "signature": signature,
                "amount": sub.get("final_price"),
                "currency": self.currency,
                "status": PAYMENT_STATUS["COMPLETED"],
                "method": "razorpay",
                "type": "subscription",
                "plan_id": sub.get("plan_id"),
                "created_at": now,
            }
        )

        points = 0
        try:
            award = await self.loyalty.award_points(
                user_id,
                self.loyalty.policy.base_order_points(sub.get("final_price")),
                "order_purchase",
                {"subscription_id": sub_id, "order_amount": sub.get("final_price")},
                idempotency_key=f"subscription:{sub_id}",
            )
            points = award.points_awarded
            await self.loyalty.check_tier_upgrade(user_id, award.balance_before, award.balance_after)
        except Exception:
            log.exception("subscription points for %s failed", sub_id)

        try:
            await notify(
                self.store,
                user_id,
                "subscription_confirmation",
                "Subscription Activated",
                f"Your {sub.get('plan_name')} subscription has been activated successfully!",
                subscription_id=sub_id,
            )
        except Exception:
            log.exception("subscription notification for %s failed", sub_id)

        log.info("subscription %s activated (%s)", sub_id, payment_id)
        return {"subscription_id": sub_id, "payment_id": payment_id, "status": "active", "points_earned": points}

    async def fail_payment(self, user_id: str, sub_id: str, error: Dict[str, Any]) -> Dict[str, Any]:
        sub = await self._owned(user_id, sub_id)
        if sub.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            raise StoreError("Subscription is already paid", 409, code="already_paid")
        details = {k: error.get(k) for k in ("code", "description", "source", "step", "reason")}
        now = iso()
        await self.store.subscriptions.update(
            sub_id,
            {
                "payment_status": PAYMENT_STATUS["FAILED"],
                "status": "payment_failed",
                "payment_error": details,
                "failed_at": now,
                "updated_at": now,
            },
        )
        return {"subscription_id": sub_id, "status": "payment_failed"}

    async def cancel_payment(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        sub = await self._owned(user_id, sub_id)
        if sub.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            raise StoreError("Subscription is already paid", 409, code="already_paid")
        now = iso()
        await self.store.subscriptions.update(
            sub_id,
            {
                "payment_status": PAYMENT_STATUS["CANCELLED"],
                "status": "cancelled",
                "cancelled_at": now,
                "next_delivery": None,
                "updated_at": now,
            },
        )
        return {"subscription_id": sub_id, "status": "cancelled"}

    # -----------------------------
    # Management
    # -----------------------------
    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        rows = await self.store.subscriptions.find({"user_id": user_id}, order_by=("created_at", True))
        return [{**r, "status_color": STATUS_COLORS.get(r.get("status"), "secondary")} for r in rows]

    async def get(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        sub = await self._owned(user_id, sub_id)
        return {**sub, "status_color": STATUS_COLORS.get(sub.get("status"), "secondary")}

    async def _transition(self, user_id: str, sub_id: str, fn, **kwargs) -> Dict[str, Any]:
        sub = await self._owned(user_id, sub_id)
        try:
            changes = fn(sub, **kwargs)
        except schedule.TransitionError as e:
            raise StoreError(str(e), 409, code="invalid_transition")
        changes["updated_at"] = iso()
        saved = await self.store.subscriptions.update(sub_id, changes)
        return saved or {**sub, **changes}

    async def pause(self, user_id: str, sub_id: str, days: int = schedule.DEFAULT_PAUSE_DAYS) -> Dict[str, Any]:
        return await self._transition(user_id, sub_id, schedule.pause, days=days)

    async def resume(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        return await self._transition(user_id, sub_id, schedule.resume)

    async def skip_next(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        return await self._transition(user_id, sub_id, schedule.skip_next)

    async def cancel(self, user_id: str, sub_id: str) -> Dict[str, Any]:
        return await self._transition(user_id, sub_id, schedule.cancel)

    # -----------------------------
    # Background sweep
    # -----------------------------
    async def process_due(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Rolls due deliveries forward and resumes pauses that have run out."""
        now = now or utcnow()
        rolled = resumed = 0

        for sub in await self.store.subscriptions.find({"status": "paused"}):
            if schedule.pause_expired(sub, now):
                changes = schedule.resume(sub, now)
                changes["updated_at"] = iso(now)
                await self.store.subscriptions.update(sub["id"], changes)
                resumed += 1

        for sub in await self.store.subscriptions.find({"status": "active"}):
            changes = schedule.roll_forward(sub, now)
            if changes:
                changes["updated_at"] = iso(now)
                await self.store.subscriptions.update(sub["id"], changes)
                rolled += 1

        if rolled or resumed:
            log.info("subscription sweep: %s rolled forward, %s resumed", rolled, resumed)
        return {"rolled_forward": rolled, "resumed": resumed}
