"""
Checkout Service
================

Order creation, payment outcome handling, and refunds.

Order lifecycle:
    pending --(paid, signature ok)--> confirmed
    pending --(gateway failure / bad signature)--> payment_failed
    pending --(checkout dismissed)--> cancelled

A confirmed order cannot be failed or cancelled from the payment callbacks.

After a confirmed payment the follow-up steps (voucher usage, points,
user stats, notification, tier check, cart reset, sheet log) run one by one;
a failing step is logged and the rest still run.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from apps.storefront.repositories.store import Store
from apps.storefront.services.account.notifications import notify
from apps.storefront.services.cart.cart_service import CartService
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.payments.razorpay_gateway import (
    PAYMENT_STATUS,
    GatewayError,
    RazorpayGateway,
)
from apps.storefront.services.sheets.sheets_sync import SheetsSync
from apps.storefront.services.vouchers.voucher_service import VoucherService
from apps.storefront.utils.clock import iso
from apps.storefront.utils.ids import order_id as new_order_id
from apps.storefront.utils.ids import record_id
from apps.storefront.utils.locks import user_locks
from apps.storefront.utils.money import _q2, _to_decimal, money_str, to_paise

log = logging.getLogger("picklish.checkout")


class CheckoutService:
    def __init__(
        self,
        store: Store,
        *,
        cart: CartService,
        vouchers: VoucherService,
        loyalty: LoyaltyService,
        gateway: Optional[RazorpayGateway],
        sheets: Optional[SheetsSync] = None,
        currency: str = "INR",
        store_name: str = "Picklish",
    ) -> None:
        self.store = store
        self.cart = cart
        self.vouchers = vouchers
        self.loyalty = loyalty
        self.gateway = gateway
        self.sheets = sheets
        self.currency = currency
        self.store_name = store_name

    def _require_gateway(self) -> RazorpayGateway:
        if self.gateway is None:
            raise StoreError("Payments are not configured", 501, code="payments_unavailable")
        return self.gateway

    async def _order_for(self, user_id: str, order_id: str) -> Dict[str, Any]:
        order = await self.store.orders.get(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.get("user_id") != user_id:
            raise StoreError("Order belongs to another account", 403, code="forbidden")
        return order

    # -----------------------------
    # Order creation
    # -----------------------------
    async def create_order(
        self,
        user: Dict[str, Any],
        *,
        shipping_address: Optional[Any] = None,
        phone_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        gateway = self._require_gateway()

        cart = await self.cart.load(user["id"])
        if not cart.items:
            raise StoreError("Your cart is empty", 400, code="cart_empty")

        if cart.voucher_code:
            # raises when the voucher stopped being usable since it was applied
            await self.vouchers.validate(cart.voucher_code, subtotal=cart.subtotal, user_id=user["id"])
        pricing, voucher = await self.cart.priced(cart)

        order_id = new_order_id()
        order = {
            "id": order_id,
            "user_id": user["id"],
            "user_email": user.get("email") or "",
            "items": [line.to_dict() for line in cart.items],
            "subtotal": money_str(pricing.subtotal),
            "discount_amount": money_str(pricing.discount),
            "total": money_str(pricing.total),
            "applied_voucher": voucher.code if voucher else None,
            "shipping_address": shipping_address,
            "phone_number": phone_number,
            "notes": notes,
            "status": "pending",
            "payment_status": PAYMENT_STATUS["PENDING"],
            "created_at": iso(),
            "updated_at": iso(),
        }
        await self.store.orders.insert(order)

        amount_paise = to_paise(pricing.total)
        try:
            gateway_order = await run_in_threadpool(
                gateway.create_order,
                amount_paise=amount_paise,
                currency=self.currency,
                receipt=order_id,
                notes={"order_id": order_id, "user_id": user["id"]},
            )
        except GatewayError as e:
            log.error("gateway order for %s failed: %s", order_id, e)
            await self.store.orders.update(
                order_id,
                {
                    "status": "payment_failed",
                    "payment_status": PAYMENT_STATUS["FAILED"],
                    "payment_error": {"description": str(e), "step": "order_creation"},
                    "updated_at": iso(),
                },
            )
            raise StoreError("Error preparing checkout. Please try again.", 502, code="gateway_error")

        await self.store.orders.update(order_id, {"gateway_order_id": gateway_order.get("id")})
        log.info("order %s created for %s (%s paise)", order_id, user["id"], amount_paise)

        return {
            "order_id": order_id,
            "pricing": pricing.to_dict(),
            "checkout": {
                "key_id": gateway.key_id,
                "gateway_order_id": gateway_order.get("id"),
                "amount": amount_paise,
                "currency": self.currency,
                "name": self.store_name,
                "description": f"Order {order_id}",
                "prefill": {"email": user.get("email") or "", "name": user.get("name") or ""},
            },
        }

    # -----------------------------
    # Payment outcomes
    # -----------------------------
    async def complete_payment(
        self,
        user_id: str,
        order_id: str,
        *,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> Dict[str, Any]:
        gateway = self._require_gateway()
        order = await self._order_for(user_id, order_id)

        if order.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            return {"order_id": order_id, "payment_id": order.get("payment_id"), "already_processed": True}

        if order.get("gateway_order_id") and order["gateway_order_id"] != gateway_order_id:
            raise StoreError("Payment does not belong to this order", 400, code="order_mismatch")

        if not gateway.verify(gateway_order_id, payment_id, signature):
            log.warning("signature mismatch for order %s payment %s", order_id, payment_id)
            await self.store.orders.update(
                order_id,
                {
                    "status": "payment_failed",
                    "payment_status": PAYMENT_STATUS["FAILED"],
                    "payment_error": "Payment signature verification failed",
                    "updated_at": iso(),
                },
            )
            raise StoreError("Payment signature verification failed", 400, code="invalid_signature")

        paid_at = iso()
        order = await self.store.orders.update(
            order_id,
            {
                "payment_id": payment_id,
                "gateway_order_id": gateway_order_id,
                "payment_signature": signature,
                "payment_status": PAYMENT_STATUS["COMPLETED"],
                "status": "confirmed",
                "paid_at": paid_at,
                "updated_at": paid_at,
            },
        ) or {**order, "status": "confirmed", "payment_status": PAYMENT_STATUS["COMPLETED"]}

        await self.store.payments.upsert(
            {
                "id": payment_id,
                "order_id": order_id,
                "user_id": user_id,
                "gateway_order_id": gateway_order_id,
                "signature": signature,
                "amount": order.get("total"),
                "currency": self.currency,
                "status": PAYMENT_STATUS["COMPLETED"],
                "method": "razorpay",
                "type": "order",
                "created_at": paid_at,
            }
        )

        outcome = await self._post_payment(order)
        log.info("order %s paid (%s)", order_id, payment_id)
        return {"order_id": order_id, "payment_id": payment_id, **outcome}

    async def _post_payment(self, order: Dict[str, Any]) -> Dict[str, Any]:
        user_id = order["user_id"]
        total = _to_decimal(order.get("total"))
        outcome: Dict[str, Any] = {"points_earned": 0, "tier_upgrade": None, "failed_steps": []}

        async def step(name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
            try:
                return await fn()
            except Exception:
                log.exception("post-payment step %s failed for order %s", name, order["id"])
                outcome["failed_steps"].append(name)
                return None

        if order.get("applied_voucher"):
            await step("voucher_usage", lambda: self.vouchers.record_usage(order["applied_voucher"], user_id))

        award = await step("order_points", lambda: self.loyalty.award_order_points(user_id, order["id"], total))
        if award is not None:
            outcome["points_earned"] = award.points_awarded

        await step("user_stats", lambda: self._update_user_stats(user_id, total))

        short_id = order["id"][:8].upper()
        await step(
            "notification",
            lambda: notify(
                self.store,
                user_id,
                "order_confirmation",
                "Order Confirmed",
                f"Your order #{short_id} has been confirmed and will be processed soon.",
                order_id=order["id"],
            ),
        )

        if award is not None:
            outcome["tier_upgrade"] = await step(
                "tier_upgrade",
                lambda: self.loyalty.check_tier_upgrade(user_id, award.balance_before, award.balance_after),
            )

        await step("clear_cart", lambda: self.cart.clear(user_id))

        if self.sheets is not None:
            synced = await run_in_threadpool(self.sheets.sync_order, order)
            if not synced:
                outcome["failed_steps"].append("sheet_sync")

        return outcome

    async def _update_user_stats(self, user_id: str, total) -> None:
        async with user_locks.for_key(user_id):
            user = await self.store.users.get(user_id)
            if not user:
                return
            await self.store.users.update(
                user_id,
                {
                    "total_spent": money_str(_to_decimal(user.get("total_spent")) + total),
                    "order_count": int(user.get("order_count") or 0) + 1,
                    "last_order_at": iso(),
                    "updated_at": iso(),
                },
            )

    async def fail_payment(self, user_id: str, order_id: str, error: Dict[str, Any]) -> Dict[str, Any]:
        order = await self._order_for(user_id, order_id)
        if order.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            raise StoreError("Order is already paid", 409, code="already_paid")
        details = {k: error.get(k) for k in ("code", "description", "source", "step", "reason")}
        failed_at = iso()
        await self.store.orders.update(
            order_id,
            {
                "payment_status": PAYMENT_STATUS["FAILED"],
                "status": "payment_failed",
                "payment_error": details,
                "failed_at": failed_at,
                "updated_at": failed_at,
            },
        )
        await self.store.failed_payments.insert(
            {
                "id": record_id("FAIL"),
                "order_id": order_id,
                "user_id": user_id,
                "error": details,
                "method": "razorpay",
                "status": PAYMENT_STATUS["FAILED"],
                "created_at": failed_at,
            }
        )
        log.warning("payment failed for order %s: %s", order_id, details.get("description"))
        return {"order_id": order_id, "status": "payment_failed", "message": f"Payment failed: {details.get('description') or 'unknown error'}"}

    async def cancel_payment(self, user_id: str, order_id: str) -> Dict[str, Any]:
        order = await self._order_for(user_id, order_id)
        if order.get("payment_status") == PAYMENT_STATUS["COMPLETED"]:
            raise StoreError("Paid orders cannot be cancelled here", 409, code="already_paid")
        now = iso()
        await self.store.orders.update(
            order_id,
            {
                "payment_status": PAYMENT_STATUS["CANCELLED"],
                "status": "cancelled",
                "cancelled_at": now,
                "updated_at": now,
            },
        )
        return {"order_id": order_id, "status": "cancelled"}

    # -----------------------------
    # Refunds / status
    # -----------------------------
    async def process_refund(
        self,
        *,
        payment_id: str,
        order_id: str,
        amount: Any,
        reason: str,
        requested_by: str,
    ) -> Dict[str, Any]:
        gateway = self._require_gateway()
        order = await self.store.orders.get(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.get("payment_id") != payment_id:
            raise StoreError("Payment does not belong to this order", 400, code="order_mismatch")

        amount_dec = _to_decimal(amount)
        if amount_dec <= 0 or amount_dec > _to_decimal(order.get("total")):
            raise StoreError("Refund amount must be between 0 and the order total", 400)

        amount_paise = to_paise(amount_dec)
        try:
            refund = await run_in_threadpool(
                gateway.refund, payment_id, amount_paise=amount_paise, notes={"reason": reason[:255]}
            )
        except GatewayError as e:
            log.error("refund for %s failed: %s", payment_id, e)
            raise StoreError("Refund request failed", 502, code="gateway_error")

        refund_id = record_id("refund")
        now = iso()
        await self.store.refunds.insert(
            {
                "id": refund_id,
                "payment_id": payment_id,
                "order_id": order_id,
                "amount": amount_paise,
                "reason": reason,
                "status": PAYMENT_STATUS["PROCESSING"],
                "gateway_refund_id": refund.get("id"),
                "requested_at": now,
                "requested_by": requested_by,
            }
        )
        await self.store.orders.update(
            order_id,
            {"refund_status": PAYMENT_STATUS["PROCESSING"], "refund_id": refund_id, "refund_requested_at": now, "updated_at": now},
        )
        log.info("refund %s requested for order %s (%s paise)", refund_id, order_id, amount_paise)
        return {"refund_id": refund_id, "amount": str(_q2(amount_dec)), "status": PAYMENT_STATUS["PROCESSING"]}

    async def get_payment_status(self, payment_id: str) -> Dict[str, Any]:
        payment = await self.store.payments.get(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment
