from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.storefront.routes.deps import get_current_user, get_review_service
from apps.storefront.services.reviews.review_service import ReviewService
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["reviews"])


class ReviewIn(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None
    photos: List[str] = []


class ReportIn(BaseModel):
    reason: Optional[str] = None


@router.get("/products/{product_id}")
async def product_reviews(
    product_id: str,
    filter: str = "all",
    reviews: ReviewService = Depends(get_review_service),
):
    return ok(await reviews.for_product(product_id, filter))


@router.post("/products/{product_id}")
async def submit_review(
    product_id: str,
    body: ReviewIn,
    user: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service),
):
    result = await reviews.submit(
        user, product_id, rating=body.rating, comment=body.comment, photos=body.photos
    )
    return ok(result, status=201)


@router.post("/{review_id}/helpful")
async def mark_helpful(
    review_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service),
):
    return ok(await reviews.mark_helpful(user["id"], review_id))


@router.post("/{review_id}/report")
async def report_review(
    review_id: str,
    body: Optional[ReportIn] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service),
):
    return ok(await reviews.report(user["id"], review_id, body.reason if body else None))


@router.get("/mine")
async def my_reviews(
    user: Dict[str, Any] = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service),
):
    return ok(await reviews.for_user(user["id"]))
