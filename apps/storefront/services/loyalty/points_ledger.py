"""
Points Ledger
=============

Points history entries and balance arithmetic. Pure domain logic.

Each balance change is written as one history entry; the user document
carries the running balance. Entries may carry an idempotency key (for
example ``order:<order_id>``) so retried payment callbacks never award
twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from apps.storefront.utils.clock import iso
from apps.storefront.utils.ids import record_id


HISTORY_DESCRIPTIONS: Dict[str, str] = {
    "order_purchase": "Order purchase",
    "review_bonus": "Review written",
    "voucher_redemption": "Voucher redeemed",
    "welcome_bonus": "Welcome bonus",
    "referral_bonus": "Referral bonus",
    "birthday_bonus": "Birthday bonus",
    "tier_upgrade": "Tier upgrade bonus",
    "admin_adjustment": "Admin adjustment",
}

HISTORY_LIMIT = 20


class InsufficientPointsError(ValueError):
    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__(f"You need {required - balance} more points")


@dataclass(frozen=True)
class PointsEntry:
    user_id: str
    points: int
    type: str
    details: Dict[str, Any] = field(default_factory=dict)
    idempotency_key: Optional[str] = None
    id: str = field(default_factory=lambda: record_id("PTS"))
    created_at: str = field(default_factory=iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "points": int(self.points),
            "type": self.type,
            "details": self.details,
            "idempotency_key": self.idempotency_key,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(row: Dict[str, Any]) -> "PointsEntry":
        return PointsEntry(
            id=str(row.get("id")),
            user_id=str(row.get("user_id")),
            points=int(row.get("points") or 0),
            type=str(row.get("type") or ""),
            details=row.get("details") or {},
            idempotency_key=row.get("idempotency_key"),
            created_at=str(row.get("created_at") or ""),
        )


def describe(entry: PointsEntry) -> str:
    if entry.type == "voucher_redemption":
        return f"Voucher redeemed: {entry.details.get('voucher_title') or 'Discount'}"
    return HISTORY_DESCRIPTIONS.get(entry.type, "Points transaction")


def apply_delta(balance: int, delta: int) -> int:
    """New balance after delta; debits may not take the balance below zero."""
    balance = int(balance or 0)
    if delta < 0 and balance + delta < 0:
        raise InsufficientPointsError(balance, -delta)
    return balance + int(delta)


def already_applied(entries: Iterable[PointsEntry], idempotency_key: Optional[str]) -> bool:
    if not idempotency_key:
        return False
    return any(e.idempotency_key == idempotency_key for e in entries)
