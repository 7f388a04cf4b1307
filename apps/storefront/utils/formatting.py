from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from apps.storefront.utils.clock import parse_ts, utcnow


def _group_indian(digits: str) -> str:
    # 12,34,567 style grouping
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    parts = []
    while len(head) > 2:
        parts.insert(0, head[-2:])
        head = head[:-2]
    if head:
        parts.insert(0, head)
    return ",".join(parts) + "," + tail


def format_inr(amount: Any) -> str:
    """Rupee amount, Indian digit grouping, up to two decimals."""
    if amount is None:
        return "₹0"
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, frac = f"{abs(value):.2f}".partition(".")
    frac = frac.rstrip("0")
    out = _group_indian(whole)
    if frac:
        out = f"{out}.{frac}"
    return f"{sign}₹{out}"


def format_date(value: Any) -> str:
    dt = parse_ts(value)
    if dt is None:
        return "N/A"
    return f"{dt.day} {dt.strftime('%b')} {dt.year}"


def relative_time(value: Any, now: Optional[datetime] = None) -> str:
    dt = parse_ts(value)
    if dt is None:
        return "Unknown"
    seconds = int(((now or utcnow()) - dt).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 2592000:
        return f"{seconds // 86400} days ago"
    return format_date(dt)
