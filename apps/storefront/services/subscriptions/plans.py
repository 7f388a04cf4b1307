"""
Subscription plan catalog and customization rules. Pure data + functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.storefront.services.catalog.products import CATEGORIES
from apps.storefront.utils.money import D, _q2, round_rupee


SPICE_LEVELS = ("mild", "medium", "spicy", "extra-spicy")

STATUS_COLORS = {
    "active": "success",
    "paused": "warning",
    "cancelled": "danger",
    "pending": "info",
    "payment_failed": "danger",
}


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    duration: str
    frequency: int
    description: str
    base_price: Decimal
    discount: int
    features: List[str] = field(default_factory=list)
    popular: bool = False

    @property
    def final_price(self) -> Decimal:
        return round_rupee(self.base_price * (D("1") - D(self.discount) / D("100")))

    @property
    def savings(self) -> Decimal:
        return self.base_price - self.final_price

    def allowed_frequencies(self) -> List[int]:
        """The plan default, one month tighter (never below 1), or one month looser."""
        return sorted({max(1, self.frequency - 1), self.frequency, self.frequency + 1})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "frequency": self.frequency,
            "description": self.description,
            "base_price": str(_q2(self.base_price)),
            "discount": self.discount,
            "final_price": str(_q2(self.final_price)),
            "savings": str(_q2(self.savings)),
            "features": list(self.features),
            "popular": self.popular,
            "allowed_frequencies": self.allowed_frequencies(),
        }


PLANS: Dict[str, Plan] = {
    "monthly": Plan(
        id="monthly",
        name="Monthly Delight",
        duration="monthly",
        frequency=1,
        description="Fresh pickles delivered every month",
        base_price=D("599"),
        discount=0,
        features=["3-4 premium pickle varieties", "Free shipping", "Pause anytime", "Customer support"],
    ),
    "quarterly": Plan(
        id="quarterly",
        name="Quarterly Feast",
        duration="quarterly",
        frequency=3,
        description="Seasonal pickle collection every 3 months",
        base_price=D("1699"),
        discount=10,
        features=[
            "6-8 premium pickle varieties",
            "Free shipping",
            "Seasonal specialties",
            "Pause/skip anytime",
            "Priority customer support",
        ],
        popular=True,
    ),
    "halfyearly": Plan(
        id="halfyearly",
        name="Half-Yearly Premium",
        duration="half-yearly",
        frequency=6,
        description="Premium pickle experience every 6 months",
        base_price=D("3199"),
        discount=15,
        features=[
            "10-12 premium pickle varieties",
            "Free express shipping",
            "Exclusive limited editions",
            "Flexible delivery schedule",
            "Dedicated account manager",
            "Recipe cards included",
        ],
    ),
}


def get_plan(plan_id: str) -> Optional[Plan]:
    return PLANS.get(plan_id)


def validate_customizations(plan: Plan, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalized customization dict, or ValueError naming the first problem.
    """
    address = str(data.get("delivery_address") or "").strip()
    if not address:
        raise ValueError("Please enter delivery address")

    prefs = [p for p in (data.get("category_preferences") or []) if p]
    if not prefs:
        raise ValueError("Please select at least one category preference")
    unknown = [p for p in prefs if p not in CATEGORIES]
    if unknown:
        raise ValueError(f"Unknown category preference: {unknown[0]}")

    frequency = int(data.get("delivery_frequency") or plan.frequency)
    if frequency not in plan.allowed_frequencies():
        raise ValueError(f"Delivery frequency must be one of {plan.allowed_frequencies()} months")

    spice = str(data.get("spice_level") or "medium")
    if spice not in SPICE_LEVELS:
        raise ValueError(f"Spice level must be one of {', '.join(SPICE_LEVELS)}")

    return {
        "delivery_frequency": frequency,
        "start_date": data.get("start_date") or None,
        "category_preferences": prefs,
        "spice_level": spice,
        "delivery_address": address,
        "special_instructions": str(data.get("special_instructions") or "").strip(),
    }
