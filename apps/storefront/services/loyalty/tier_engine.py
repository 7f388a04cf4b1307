"""
Tier Engine
===========

Deterministic tier computation from a points balance.
No side effects, no DB access, no HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .loyalty_policy import LoyaltyPolicy, Tier


@dataclass(frozen=True)
class TierStatus:
    current_tier: Tier
    points: int
    next_tier: Optional[Tier]
    points_to_next_tier: Optional[int]
    progress_percent: float

    @property
    def is_top_tier(self) -> bool:
        return self.next_tier is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_tier": self.current_tier.to_dict(),
            "points": self.points,
            "next_tier": None if self.next_tier is None else self.next_tier.to_dict(),
            "points_to_next_tier": self.points_to_next_tier,
            "progress_percent": self.progress_percent,
            "is_top_tier": self.is_top_tier,
        }


class TierEngine:
    def __init__(self, policy: LoyaltyPolicy) -> None:
        self.policy = policy

    def evaluate(self, points: int) -> TierStatus:
        points = max(0, int(points or 0))
        return TierStatus(
            current_tier=self.policy.tier_for_points(points),
            points=points,
            next_tier=self.policy.next_tier(points),
            points_to_next_tier=self.policy.points_to_next_tier(points),
            progress_percent=self.policy.progress_percent(points),
        )

    def detect_upgrade(self, points_before: int, points_after: int) -> Optional[Tier]:
        """
        The new tier when the balance moved strictly upward across a
        threshold, else None. Drops in balance never count.
        """
        before = self.policy.tier_for_points(points_before)
        after = self.policy.tier_for_points(points_after)
        if after.min_points > before.min_points:
            return after
        return None

    def explain_status(self, points: int) -> Dict[str, Any]:
        status = self.evaluate(points)

        if status.is_top_tier:
            message = f"You've reached the highest tier ({status.current_tier.name})!"
        else:
            message = (
                f"You are a {status.current_tier.name} member. "
                f"{status.points_to_next_tier} points to {status.next_tier.name}."
            )

        return {
            "tier_status": status.to_dict(),
            "message": message,
            "multiplier": float(status.current_tier.multiplier),
        }
