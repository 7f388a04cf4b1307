"""
Reward catalog: point-priced vouchers a member can redeem.

The catalog lives in the ``loyalty_rewards`` table; when that is empty the
built-in rewards below are offered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.storefront.utils.clock import iso, utcnow
from apps.storefront.utils.money import D, _q2, _to_decimal


@dataclass(frozen=True)
class Reward:
    id: str
    title: str
    description: str
    points_cost: int
    voucher_type: str
    voucher_value: Decimal
    min_order_amount: Decimal
    max_discount: Decimal
    validity_days: int
    category: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "points_cost": self.points_cost,
            "voucher_type": self.voucher_type,
            "voucher_value": str(_q2(self.voucher_value)),
            "min_order_amount": str(_q2(self.min_order_amount)),
            "max_discount": str(_q2(self.max_discount)),
            "validity_days": self.validity_days,
            "category": self.category,
            "is_active": self.is_active,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Reward":
        return Reward(
            id=str(d["id"]),
            title=str(d.get("title") or d["id"]),
            description=str(d.get("description") or ""),
            points_cost=int(d.get("points_cost") or 0),
            voucher_type=str(d.get("voucher_type") or "fixed"),
            voucher_value=_to_decimal(d.get("voucher_value")),
            min_order_amount=_to_decimal(d.get("min_order_amount")),
            max_discount=_to_decimal(d.get("max_discount")),
            validity_days=int(d.get("validity_days") or 30),
            category=str(d.get("category") or "discount"),
            is_active=bool(d.get("is_active", True)),
        )

    def voucher_fields(self, *, code: str, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Columns for the single-use checkout voucher minted by a redemption."""
        now = now or utcnow()
        return {
            "code": code,
            "type": self.voucher_type,
            "value": str(_q2(self.voucher_value)),
            "min_order_amount": str(_q2(self.min_order_amount)),
            "max_discount": str(_q2(self.max_discount)),
            "usage_limit": 1,
            "used_count": 0,
            "user_usage": {},
            "user_usage_limit": 1,
            "is_active": True,
            "starts_at": iso(now),
            "expires_at": iso(now + timedelta(days=self.validity_days)),
            "description": f"Loyalty reward: {self.title}",
            "created_by": "loyalty_program",
            "user_id": user_id,
            "created_at": iso(now),
        }


def _reward(id, title, description, cost, vtype, value, min_order, max_discount, days, category) -> Reward:
    return Reward(
        id=id,
        title=title,
        description=description,
        points_cost=cost,
        voucher_type=vtype,
        voucher_value=D(value),
        min_order_amount=D(min_order),
        max_discount=D(max_discount),
        validity_days=days,
        category=category,
    )


DEFAULT_REWARDS: List[Reward] = [
    _reward("LOYAL50", "₹50 Off", "Get ₹50 off on orders above ₹500", 500, "fixed", "50", "500", "50", 30, "discount"),
    _reward("LOYAL100", "₹100 Off", "Get ₹100 off on orders above ₹1000", 1000, "fixed", "100", "1000", "100", 30, "discount"),
    _reward("FREESHIP", "Free Shipping", "Free shipping on any order", 300, "free_shipping", "0", "0", "50", 15, "shipping"),
    _reward("LOYAL200", "₹200 Off", "Get ₹200 off on orders above ₹2000", 2000, "fixed", "200", "2000", "200", 30, "discount"),
    _reward("PREMIUM15", "15% Off Premium", "15% off on premium pickle collections", 1500, "percentage", "15", "800", "300", 30, "premium"),
    _reward("BIRTHDAY500", "Birthday Special", "₹500 off for your special day", 3000, "fixed", "500", "1500", "500", 7, "special"),
]
