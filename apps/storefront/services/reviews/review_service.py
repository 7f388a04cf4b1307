from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.reviews.review_rules import (
    FILTERS,
    apply_filter,
    average_rating,
    purchased_product,
    rating_distribution,
    validate_submission,
)
from apps.storefront.utils.clock import iso
from apps.storefront.utils.ids import review_id as new_review_id

log = logging.getLogger("picklish.reviews")


class ReviewService:
    def __init__(self, store: Store, *, catalog: CatalogService, loyalty: LoyaltyService) -> None:
        self.store = store
        self.catalog = catalog
        self.loyalty = loyalty

    async def submit(
        self,
        user: Dict[str, Any],
        product_id: str,
        *,
        rating: Any,
        comment: Optional[str],
        photos: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        await self.catalog.get_product(product_id)
        clean = validate_submission(rating, comment, photos)

        orders = await self.store.orders.find({"user_id": user["id"], "status": "delivered"})
        now = iso()
        review = {
            "id": new_review_id(product_id, user["id"]),
            "product_id": product_id,
            "user_id": user["id"],
            "user_name": user.get("name") or user.get("email") or "",
            "user_avatar": user.get("photo_url"),
            **clean,
            "verified": purchased_product(orders, product_id),
            "helpful": 0,
            "helpful_users": [],
            "reported": False,
            "created_at": now,
            "updated_at": now,
        }
        await self.store.reviews.insert(review)

        try:
            await self._refresh_product_rating(product_id)
        except Exception:
            log.exception("rating refresh for %s failed", product_id)

        points = 0
        try:
            award = await self.loyalty.award_points(
                user["id"],
                self.loyalty.policy.bonus("review"),
                "review_bonus",
                {"review_id": review["id"], "product_id": product_id},
                idempotency_key=f"review:{review['id']}",
            )
            points = award.points_awarded
        except Exception:
            log.exception("review points for %s failed", user["id"])

        return {"review": review, "points_earned": points}

    async def _refresh_product_rating(self, product_id: str) -> None:
        reviews = await self.store.reviews.find({"product_id": product_id})
        if not reviews:
            return
        await self.catalog.set_rating(product_id, average_rating(reviews), len(reviews))

    async def for_product(self, product_id: str, filter_type: str = "all") -> Dict[str, Any]:
        if filter_type not in FILTERS:
            raise StoreError(f"Unknown filter: {filter_type}", 400)
        reviews = await self.store.reviews.find({"product_id": product_id}, order_by=("created_at", True))
        return {
            "product_id": product_id,
            "average_rating": average_rating(reviews),
            "review_count": len(reviews),
            "distribution": rating_distribution(reviews),
            "reviews": apply_filter(reviews, filter_type),
        }

    async def mark_helpful(self, user_id: str, review_id: str) -> Dict[str, Any]:
        review = await self.store.reviews.get(review_id)
        if not review:
            raise NotFoundError("Review not found")
        helpful_users = list(review.get("helpful_users") or [])
        if user_id in helpful_users:
            raise StoreError("You already marked this review as helpful", 409, code="already_marked")
        if review.get("user_id") == user_id:
            raise StoreError("You cannot mark your own review as helpful", 400)
        helpful_users.append(user_id)
        changes = {"helpful": int(review.get("helpful") or 0) + 1, "helpful_users": helpful_users}
        await self.store.reviews.update(review_id, changes)
        return {"review_id": review_id, "helpful": changes["helpful"]}

    async def report(self, user_id: str, review_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        review = await self.store.reviews.get(review_id)
        if not review:
            raise NotFoundError("Review not found")
        await self.store.reviews.update(
            review_id,
            {"reported": True, "reported_by": user_id, "reported_at": iso(), "report_reason": reason},
        )
        log.info("review %s reported by %s", review_id, user_id)
        return {"review_id": review_id, "reported": True}

    async def for_user(self, user_id: str) -> List[Dict[str, Any]]:
        reviews = await self.store.reviews.find({"user_id": user_id}, order_by=("created_at", True))
        out = []
        for review in reviews:
            try:
                product = (await self.catalog.get_product(review["product_id"])).to_dict()
            except NotFoundError:
                product = None
            out.append({**review, "product": product})
        return out
