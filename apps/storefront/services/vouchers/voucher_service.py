from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.vouchers.voucher_rules import (
    VOUCHER_TYPES,
    Voucher,
    VoucherError,
    calculate_discount,
    usage_changes,
    validate_voucher,
)
from apps.storefront.utils.clock import iso, parse_ts
from apps.storefront.utils.money import _to_decimal
from apps.storefront.utils.validation import normalize_code

log = logging.getLogger("picklish.vouchers")

# admin edits may null these out; other fields ignore an explicit null
CLEARABLE_FIELDS = (
    "max_discount", "min_order_amount", "usage_limit", "user_usage_limit",
    "starts_at", "expires_at", "user_id", "description",
)


class VoucherService:
    def __init__(self, store: Store, *, shipping_fee: Decimal) -> None:
        self.store = store
        self.shipping_fee = shipping_fee

    async def get(self, code: str) -> Optional[Voucher]:
        row = await self.store.vouchers.get(normalize_code(code))
        return Voucher.from_dict(row) if row else None

    async def validate(self, code: str, *, subtotal: Decimal, user_id: Optional[str]) -> Dict[str, Any]:
        code = normalize_code(code)
        if not code:
            raise VoucherError("Please enter a voucher code", "missing_code")

        voucher = validate_voucher(await self.get(code), subtotal=subtotal, user_id=user_id)
        discount = calculate_discount(voucher, subtotal, shipping_fee=self.shipping_fee)
        return {"voucher": voucher, "discount": discount}

    async def record_usage(self, code: str, user_id: Optional[str]) -> None:
        voucher = await self.get(code)
        if voucher is None:
            log.warning("voucher usage for unknown code %s", code)
            return

        await self.store.vouchers.update(voucher.code, usage_changes(voucher, user_id))

        redeemed = await self.store.redeemed_vouchers.get(voucher.code)
        if redeemed and redeemed.get("user_id") == user_id and not redeemed.get("is_used"):
            await self.store.redeemed_vouchers.update(
                voucher.code, {"is_used": True, "used_at": iso()}
            )

    # -----------------------------
    # Admin
    # -----------------------------
    async def list_vouchers(self) -> List[Dict[str, Any]]:
        return await self.store.vouchers.find(order_by=("created_at", True))

    async def save_voucher(self, data: Dict[str, Any], *, code: Optional[str] = None) -> Dict[str, Any]:
        code = normalize_code(code or data.get("code", ""))
        if not code:
            raise StoreError("Voucher code is required", 400)

        vtype = data.get("type")
        if vtype is not None and vtype not in VOUCHER_TYPES:
            raise StoreError(f"Unsupported voucher type: {vtype}", 400)
        if data.get("value") is not None and _to_decimal(data.get("value")) < 0:
            raise StoreError("Voucher value cannot be negative", 400)
        for field in ("starts_at", "expires_at"):
            value = data.get(field)
            if value not in (None, "") and parse_ts(value) is None:
                raise StoreError(f"{field} is not a valid date: {value}", 400, code="invalid_date")

        existing = await self.store.vouchers.get(code)
        doc = {
            k: v
            for k, v in data.items()
            if k not in ("code", "used_count", "user_usage") and (v is not None or k in CLEARABLE_FIELDS)
        }
        doc["code"] = code
        doc["updated_at"] = iso()

        if existing:
            merged = {**existing, **doc}
        else:
            merged = {
                "is_active": True,
                "type": "fixed",
                "value": "0",
                **doc,
                "used_count": 0,
                "user_usage": {},
                "created_at": iso(),
            }

        # round-trip through the model so bad rows never land in the table
        Voucher.from_dict(merged)
        return await self.store.vouchers.upsert(merged)

    async def delete_voucher(self, code: str) -> None:
        code = normalize_code(code)
        if not await self.store.vouchers.get(code):
            raise NotFoundError("Voucher not found")
        await self.store.vouchers.delete(code)
