"""
Delivery date arithmetic and subscription state transitions.

Each transition returns the column changes to write; callers persist them.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from apps.storefront.utils.clock import iso, parse_ts, utcnow

DEFAULT_PAUSE_DAYS = 30


class TransitionError(ValueError):
    pass


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar month addition; the day clamps to the end of shorter months."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def next_delivery(frequency: int, from_dt: Optional[datetime] = None) -> datetime:
    return add_months(from_dt or utcnow(), int(frequency))


def _frequency(sub: Dict[str, Any]) -> int:
    return int(sub.get("frequency") or 1)


def pause(sub: Dict[str, Any], now: Optional[datetime] = None, days: int = DEFAULT_PAUSE_DAYS) -> Dict[str, Any]:
    if sub.get("status") != "active":
        raise TransitionError("Only active subscriptions can be paused")
    if days < 1:
        raise TransitionError("Pause length must be at least one day")
    now = now or utcnow()
    return {
        "status": "paused",
        "paused_until": iso(now + timedelta(days=days)),
        "paused_at": iso(now),
    }


def resume(sub: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    if sub.get("status") != "paused":
        raise TransitionError("Only paused subscriptions can be resumed")
    now = now or utcnow()
    return {
        "status": "active",
        "paused_until": None,
        "resumed_at": iso(now),
        "next_delivery": iso(next_delivery(_frequency(sub), now)),
    }


def skip_next(sub: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    if sub.get("status") != "active":
        raise TransitionError("Only active subscriptions can skip a delivery")
    now = now or utcnow()
    current = parse_ts(sub.get("next_delivery")) or now
    return {
        "next_delivery": iso(next_delivery(_frequency(sub), current)),
        "skipped_deliveries": int(sub.get("skipped_deliveries") or 0) + 1,
        "last_skipped_at": iso(now),
    }


def cancel(sub: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    if sub.get("status") == "cancelled":
        raise TransitionError("Subscription is already cancelled")
    return {
        "status": "cancelled",
        "cancelled_at": iso(now),
        "next_delivery": None,
    }


def roll_forward(sub: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    For an active subscription whose delivery date has passed: count the
    deliveries made and move next_delivery past now. None when nothing is due.
    """
    if sub.get("status") != "active":
        return None
    now = now or utcnow()
    current = parse_ts(sub.get("next_delivery"))
    if current is None or current > now:
        return None

    delivered = 0
    while current <= now:
        delivered += 1
        current = next_delivery(_frequency(sub), current)

    return {
        "next_delivery": iso(current),
        "delivery_count": int(sub.get("delivery_count") or 0) + delivered,
        "last_delivery_at": iso(now),
    }


def pause_expired(sub: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    if sub.get("status") != "paused":
        return False
    until = parse_ts(sub.get("paused_until"))
    return until is not None and until <= (now or utcnow())
