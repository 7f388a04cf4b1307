"""
Review validation, rating rollups and list filters. Pure functions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from apps.storefront.services.core_service import ValidationError
from apps.storefront.utils.clock import parse_ts, utcnow
from apps.storefront.utils.money import D

MIN_COMMENT_LENGTH = 10
MAX_PHOTOS = 5
RECENT_DAYS = 30
FILTERS = ("all", "verified", "photos", "recent")


class ReviewError(ValidationError):
    code = "review_invalid"


def validate_submission(rating: Any, comment: Optional[str], photos: Optional[List[str]]) -> Dict[str, Any]:
    try:
        rating_int = int(rating) if rating not in (None, "") else 0
    except (TypeError, ValueError):
        rating_int = 0
    if rating_int < 1 or rating_int > 5:
        raise ReviewError("Please select a rating", "rating")

    text = (comment or "").strip()
    if not text:
        raise ReviewError("Please write a review", "comment_missing")
    if len(text) < MIN_COMMENT_LENGTH:
        raise ReviewError(f"Review must be at least {MIN_COMMENT_LENGTH} characters long", "comment_short")

    urls = [p.strip() for p in (photos or []) if p and p.strip()]
    if len(urls) > MAX_PHOTOS:
        raise ReviewError(f"You can attach at most {MAX_PHOTOS} photos", "too_many_photos")
    for url in urls:
        if not url.startswith(("https://", "http://")):
            raise ReviewError("Photos must be links to uploaded images", "photo_url")

    return {"rating": rating_int, "comment": text, "photos": urls}


def purchased_product(orders: Iterable[Dict[str, Any]], product_id: str) -> bool:
    """True when a delivered order contains the product."""
    for order in orders:
        if order.get("status") != "delivered":
            continue
        if any(item.get("id") == product_id for item in order.get("items") or []):
            return True
    return False


def average_rating(reviews: List[Dict[str, Any]]) -> float:
    if not reviews:
        return 0.0
    total = sum(int(r.get("rating") or 0) for r in reviews)
    avg = D(total) / D(len(reviews))
    return float(avg.quantize(D("0.1"), rounding=ROUND_HALF_UP))


def rating_distribution(reviews: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    dist = {star: 0 for star in range(1, 6)}
    for r in reviews:
        star = int(r.get("rating") or 0)
        if star in dist:
            dist[star] += 1
    return dist


def apply_filter(reviews: List[Dict[str, Any]], filter_type: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    if filter_type == "verified":
        return [r for r in reviews if r.get("verified")]
    if filter_type == "photos":
        return [r for r in reviews if r.get("photos")]
    if filter_type == "recent":
        cutoff = (now or utcnow()) - timedelta(days=RECENT_DAYS)
        return [r for r in reviews if (parse_ts(r.get("created_at")) or cutoff) > cutoff]
    return list(reviews)
