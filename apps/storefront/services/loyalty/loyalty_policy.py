"""
Loyalty Policy
==============

Single source of truth for the loyalty program rules.

- Points are earned at 1 point per ₹10 of order total (floored).
- Tiers are based on the current points balance.
- Each tier multiplies points earned while the member sits in it.
- Fixed bonuses: welcome, review, referral, birthday, tier upgrade.

Non-goals:
- No DB access (pure domain rules).
- No HTTP / FastAPI logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from apps.storefront.utils.money import D, _to_decimal


@dataclass(frozen=True)
class Tier:
    """
    A tier is defined by a minimum points balance.

    Example:
        Bronze:   min_points = 0,    multiplier = 1
        Silver:   min_points = 1000, multiplier = 1.2
    """
    key: str
    name: str
    min_points: int
    multiplier: Decimal
    color: str = "secondary"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "min_points": self.min_points,
            "multiplier": float(self.multiplier),
            "color": self.color,
        }


DEFAULT_TIERS: List[Tier] = [
    Tier("bronze", "Bronze", 0, D("1"), "warning"),
    Tier("silver", "Silver", 1000, D("1.2"), "secondary"),
    Tier("gold", "Gold", 2500, D("1.5"), "warning"),
    Tier("platinum", "Platinum", 5000, D("2"), "dark"),
]

DEFAULT_BONUSES: Dict[str, int] = {
    "welcome": 100,
    "review": 10,
    "referral": 200,
    "birthday": 500,
    "tier_upgrade": 100,
}


@dataclass(frozen=True)
class LoyaltyPolicy:
    version: str = "v1"
    rupees_per_point: Decimal = D("10")
    bonuses: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_BONUSES))
    tiers: List[Tier] = field(default_factory=lambda: list(DEFAULT_TIERS))

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError("LoyaltyPolicy requires at least one tier")
        if self.rupees_per_point <= 0:
            raise ValueError("rupees_per_point must be positive")
        ordered = sorted(self.tiers, key=lambda t: t.min_points)
        if ordered[0].min_points != 0:
            raise ValueError("The lowest tier must start at 0 points")
        object.__setattr__(self, "tiers", ordered)

    # -----------------------------
    # Tier lookup
    # -----------------------------
    def tier_for_points(self, points: int) -> Tier:
        points = max(0, int(points or 0))
        current = self.tiers[0]
        for tier in self.tiers:
            if points >= tier.min_points:
                current = tier
        return current

    def next_tier(self, points: int) -> Optional[Tier]:
        points = max(0, int(points or 0))
        for tier in self.tiers:
            if tier.min_points > points:
                return tier
        return None

    def points_to_next_tier(self, points: int) -> Optional[int]:
        nxt = self.next_tier(points)
        if nxt is None:
            return None
        return nxt.min_points - max(0, int(points or 0))

    def progress_percent(self, points: int) -> float:
        nxt = self.next_tier(points)
        if nxt is None:
            return 100.0
        pct = D(max(0, int(points or 0))) / D(nxt.min_points) * D("100")
        return float(min(pct, D("100")).quantize(D("0.1"), rounding=ROUND_HALF_UP))

    # -----------------------------
    # Earn math
    # -----------------------------
    def base_order_points(self, order_total: Any) -> int:
        amount = max(D("0"), _to_decimal(order_total))
        return int((amount / self.rupees_per_point).to_integral_value(rounding=ROUND_FLOOR))

    def apply_multiplier(self, points: int, balance: int) -> int:
        multiplier = self.tier_for_points(balance).multiplier
        return int((D(int(points)) * multiplier).quantize(D("1"), rounding=ROUND_HALF_UP))

    def bonus(self, kind: str) -> int:
        return int(self.bonuses.get(kind, 0))

    # -----------------------------
    # Serialization
    # -----------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "rupees_per_point": str(self.rupees_per_point),
            "bonuses": dict(self.bonuses),
            "tiers": [t.to_dict() for t in self.tiers],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LoyaltyPolicy":
        tiers_in = d.get("tiers") or []
        tiers = [
            Tier(
                key=str(t["key"]),
                name=str(t.get("name") or t["key"].title()),
                min_points=int(t.get("min_points", 0)),
                multiplier=_to_decimal(t.get("multiplier"), D("1")),
                color=str(t.get("color") or "secondary"),
            )
            for t in tiers_in
        ] or list(DEFAULT_TIERS)

        bonuses = dict(DEFAULT_BONUSES)
        bonuses.update({k: int(v) for k, v in (d.get("bonuses") or {}).items()})

        return LoyaltyPolicy(
            version=str(d.get("version", "v1")),
            rupees_per_point=_to_decimal(d.get("rupees_per_point"), D("10")),
            bonuses=bonuses,
            tiers=tiers,
        )
