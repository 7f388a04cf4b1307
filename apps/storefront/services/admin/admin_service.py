from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP
from typing import Any, Dict, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.utils.clock import iso, parse_ts, utcnow
from apps.storefront.utils.money import D, _to_decimal, money_str

log = logging.getLogger("picklish.admin")

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")
ITEMS_PER_PAGE = 20


def _since(rows, field: str, start: datetime) -> int:
    count = 0
    for row in rows:
        ts = parse_ts(row.get(field))
        if ts is not None and ts >= start:
            count += 1
    return count


class AdminService:
    def __init__(self, store: Store) -> None:
        self.store = store

    # -----------------------------
    # Orders
    # -----------------------------
    async def order_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        orders = await self.store.orders.find()
        revenue = sum(
            (_to_decimal(o.get("total")) for o in orders if o.get("status") == "delivered"),
            D("0"),
        )
        return {
            "total_orders": len(orders),
            "pending_orders": sum(1 for o in orders if o.get("status") == "pending"),
            "today_orders": _since(orders, "created_at", midnight),
            "total_revenue": money_str(revenue),
        }

    async def list_orders(self, page: int = 1, status: Optional[str] = None) -> Dict[str, Any]:
        page = max(1, int(page))
        filters = {"status": status} if status else None
        rows = await self.store.orders.find(
            filters,
            order_by=("created_at", True),
            limit=ITEMS_PER_PAGE,
            offset=(page - 1) * ITEMS_PER_PAGE,
        )
        return {"page": page, "per_page": ITEMS_PER_PAGE, "orders": rows}

    async def update_order_status(
        self,
        order_id: str,
        status: str,
        notes: Optional[str],
        admin_id: str,
    ) -> Dict[str, Any]:
        if status not in ORDER_STATUSES:
            raise StoreError(f"Invalid order status: {status}", 400, code="invalid_status")
        order = await self.store.orders.get(order_id)
        if not order:
            raise NotFoundError("Order not found")

        now = iso()
        changes = {
            "status": status,
            f"{status}_at": now,
            "status_notes": notes or "",
            "updated_by": admin_id,
            "updated_at": now,
        }
        saved = await self.store.orders.update(order_id, changes)
        log.info("order %s -> %s by %s", order_id, status, admin_id)
        return saved or {**order, **changes}

    # -----------------------------
    # Subscriptions
    # -----------------------------
    async def subscription_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        subs = await self.store.subscriptions.find()
        active = [s for s in subs if s.get("status") == "active"]
        cancelled = [s for s in subs if s.get("status") == "cancelled"]
        cancelled_this_month = _since(cancelled, "cancelled_at", month_start)

        churn = D("0.0")
        if subs:
            churn = (D(cancelled_this_month) / D(len(subs)) * 100).quantize(D("0.1"), rounding=ROUND_HALF_UP)

        return {
            "total_subscriptions": len(subs),
            "active_subscriptions": len(active),
            "monthly_revenue": money_str(sum((_to_decimal(s.get("final_price")) for s in active), D("0"))),
            "churn_rate": str(churn),
        }

    async def list_subscriptions(self, status: Optional[str] = None):
        filters = {"status": status} if status else None
        return await self.store.subscriptions.find(filters, order_by=("created_at", True))

    # -----------------------------
    # Users
    # -----------------------------
    async def list_users(self, page: int = 1) -> Dict[str, Any]:
        page = max(1, int(page))
        rows = await self.store.users.find(
            order_by=("created_at", True),
            limit=ITEMS_PER_PAGE,
            offset=(page - 1) * ITEMS_PER_PAGE,
        )
        return {"page": page, "per_page": ITEMS_PER_PAGE, "users": rows}
