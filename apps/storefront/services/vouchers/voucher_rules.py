"""
Voucher Rules
=============

Pure discount and eligibility rules for checkout vouchers.

Voucher types:
- percentage: percent of the order total, optionally capped by max_discount
- fixed: flat rupee amount, never more than the total
- free_shipping: waives the shipping fee

Validation runs in a fixed order so a customer always sees the first
blocking reason: existence, active flag, expiry, start date, minimum order,
global usage, per-user usage, owner restriction.

No DB access. No HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from apps.storefront.services.core_service import ValidationError
from apps.storefront.utils.clock import iso, parse_ts, utcnow
from apps.storefront.utils.money import D, _q2, _to_decimal, round_rupee
from apps.storefront.utils.validation import normalize_code


VOUCHER_TYPES = ("percentage", "fixed", "free_shipping")
DEFAULT_SHIPPING_FEE = D("50")


class VoucherError(ValidationError):
    code = "voucher_invalid"


def _opt_decimal(v: Any) -> Optional[Decimal]:
    if v is None or v == "":
        return None
    return _to_decimal(v)


def _opt_int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    return int(v)


@dataclass(frozen=True)
class Voucher:
    code: str
    type: str
    value: Decimal
    max_discount: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    user_usage_limit: Optional[int] = None
    user_usage: Dict[str, int] = field(default_factory=dict)
    is_active: bool = True
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    user_id: Optional[str] = None
    description: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Voucher":
        vtype = str(d.get("type") or "fixed")
        if vtype not in VOUCHER_TYPES:
            raise VoucherError(f"Unsupported voucher type: {vtype}", "invalid_type")
        return cls(
            code=normalize_code(d.get("code", "")),
            type=vtype,
            value=_to_decimal(d.get("value")),
            max_discount=_opt_decimal(d.get("max_discount")),
            min_order_amount=_opt_decimal(d.get("min_order_amount")),
            usage_limit=_opt_int(d.get("usage_limit")),
            used_count=int(d.get("used_count") or 0),
            user_usage_limit=_opt_int(d.get("user_usage_limit")),
            user_usage={str(k): int(v) for k, v in (d.get("user_usage") or {}).items()},
            is_active=bool(d.get("is_active", True)),
            starts_at=parse_ts(d.get("starts_at")),
            expires_at=parse_ts(d.get("expires_at")),
            user_id=d.get("user_id") or None,
            description=str(d.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "type": self.type,
            "value": str(_q2(self.value)),
            "max_discount": None if self.max_discount is None else str(_q2(self.max_discount)),
            "min_order_amount": None if self.min_order_amount is None else str(_q2(self.min_order_amount)),
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "user_usage_limit": self.user_usage_limit,
            "user_usage": dict(self.user_usage),
            "is_active": self.is_active,
            "starts_at": None if self.starts_at is None else iso(self.starts_at),
            "expires_at": None if self.expires_at is None else iso(self.expires_at),
            "user_id": self.user_id,
            "description": self.description,
        }


def calculate_discount(
    voucher: Voucher,
    total: Decimal,
    *,
    shipping_fee: Decimal = DEFAULT_SHIPPING_FEE,
) -> Decimal:
    """
    Discount in whole rupees (half up), never above the order total.
    A max_discount of zero or None means uncapped.
    """
    total = max(D("0"), _to_decimal(total))

    if voucher.type == "percentage":
        discount = total * voucher.value / D("100")
        if voucher.max_discount:
            discount = min(discount, voucher.max_discount)
    elif voucher.type == "fixed":
        discount = min(voucher.value, total)
    elif voucher.type == "free_shipping":
        discount = min(_to_decimal(shipping_fee), total)
    else:
        discount = D("0")

    return round_rupee(max(D("0"), discount))


def validate_voucher(
    voucher: Optional[Voucher],
    *,
    subtotal: Decimal,
    user_id: Optional[str],
    now: Optional[datetime] = None,
) -> Voucher:
    now = now or utcnow()

    if voucher is None:
        raise VoucherError("Invalid voucher code", "not_found", status_code=404)

    if not voucher.is_active:
        raise VoucherError("This voucher is no longer active", "inactive")

    if voucher.expires_at is not None and voucher.expires_at < now:
        raise VoucherError("This voucher has expired", "expired")

    if voucher.starts_at is not None and voucher.starts_at > now:
        raise VoucherError("This voucher is not yet valid", "not_started")

    if voucher.min_order_amount and _to_decimal(subtotal) < voucher.min_order_amount:
        raise VoucherError(
            f"Minimum order amount of ₹{round_rupee(voucher.min_order_amount)} required",
            "min_order",
        )

    if voucher.usage_limit is not None and voucher.used_count >= voucher.usage_limit:
        raise VoucherError("This voucher has reached its usage limit", "usage_limit")

    if voucher.user_usage_limit is not None and user_id:
        if voucher.user_usage.get(user_id, 0) >= voucher.user_usage_limit:
            raise VoucherError("You have reached the usage limit for this voucher", "user_limit")

    if voucher.user_id and voucher.user_id != user_id:
        raise VoucherError("This voucher belongs to another account", "not_owner", status_code=403)

    return voucher


def usage_changes(voucher: Voucher, user_id: Optional[str], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Column changes that record one redemption of the voucher."""
    user_usage = dict(voucher.user_usage)
    if user_id:
        user_usage[user_id] = user_usage.get(user_id, 0) + 1
    return {
        "used_count": voucher.used_count + 1,
        "user_usage": user_usage,
        "last_used_at": iso(now),
    }
