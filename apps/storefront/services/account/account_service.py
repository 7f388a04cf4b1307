from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.cart.cart_service import CartService
from apps.storefront.services.core_service import NotFoundError, StoreError, ValidationError
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.utils.clock import iso
from apps.storefront.utils.validation import is_valid_phone, is_valid_pincode

log = logging.getLogger("picklish.account")

ADDRESS_FIELDS = ("line1", "line2", "city", "state", "pincode")


def _clean_address(address: Any) -> Dict[str, str]:
    if not isinstance(address, dict):
        raise ValidationError("Address must be an object", "invalid_address")
    clean = {k: str(address.get(k) or "").strip() for k in ADDRESS_FIELDS}
    if not clean["line1"] or not clean["city"]:
        raise ValidationError("Address needs at least a street and a city", "invalid_address")
    if clean["pincode"] and not is_valid_pincode(clean["pincode"]):
        raise ValidationError("Please enter a valid 6-digit pincode", "invalid_pincode")
    return clean


class AccountService:
    def __init__(self, store: Store, *, loyalty: LoyaltyService, cart: CartService) -> None:
        self.store = store
        self.loyalty = loyalty
        self.cart = cart

    async def bootstrap(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Called after sign-in. First sign-in creates the user document and
        grants the welcome bonus; later calls only refresh the login time.
        """
        now = iso()
        existing = await self.store.users.get(user["id"])
        if existing:
            saved = await self.store.users.update(user["id"], {"last_login_at": now})
            return {"user": saved or {**existing, "last_login_at": now}, "created": False}

        doc = {
            "id": user["id"],
            "email": user.get("email") or "",
            "display_name": user.get("name") or "",
            "photo_url": user.get("photo_url"),
            "role": "customer",
            "is_active": True,
            "loyalty_points": 0,
            "loyalty_tier": "bronze",
            "total_spent": "0.00",
            "order_count": 0,
            "created_at": now,
            "last_login_at": now,
        }
        await self.store.users.insert(doc)
        log.info("created user document for %s", user["id"])

        try:
            await self.loyalty.award_bonus(user["id"], "welcome", {"reason": "account_created"})
        except Exception:
            log.exception("welcome bonus for %s failed", user["id"])

        return {"user": await self.store.users.get(user["id"]) or doc, "created": True}

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        user = await self.store.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        await self.get_profile(user_id)
        changes: Dict[str, Any] = {}
        if data.get("name") is not None:
            name = str(data["name"]).strip()
            if not name:
                raise ValidationError("Name cannot be blank", "invalid_name")
            changes["name"] = name
        if data.get("phone") is not None:
            phone = str(data["phone"]).strip()
            if not is_valid_phone(phone):
                raise ValidationError("Please enter a valid phone number", "invalid_phone")
            changes["phone"] = phone
        if data.get("address") is not None:
            changes["address"] = _clean_address(data["address"])
        if not changes:
            raise StoreError("Nothing to update", 400, code="empty_update")

        changes["updated_at"] = iso()
        saved = await self.store.users.update(user_id, changes)
        return saved or await self.get_profile(user_id)

    async def order_history(self, user_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters: Dict[str, Any] = {"user_id": user_id}
        if status:
            filters["status"] = status
        return await self.store.orders.find(filters, order_by=("created_at", True))

    async def reorder(self, user_id: str, order_id: str) -> Dict[str, Any]:
        order = await self.store.orders.get(order_id)
        if not order or order.get("user_id") != user_id:
            raise NotFoundError("Order not found")
        result = await self.cart.add_lines(user_id, order.get("items") or [])
        log.info("reorder of %s for %s (%s skipped)", order_id, user_id, len(result["skipped"]))
        return result
