from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from apps.storefront.routes.checkout import PaymentConfirmIn, PaymentFailureIn
from apps.storefront.routes.deps import get_current_user, get_subscription_service
from apps.storefront.services.subscriptions.schedule import DEFAULT_PAUSE_DAYS
from apps.storefront.services.subscriptions.subscription_service import SubscriptionService
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["subscriptions"])


class CustomizationsIn(BaseModel):
    delivery_address: Optional[str] = None
    category_preferences: List[str] = []
    spice_level: Optional[str] = None
    delivery_frequency: Optional[int] = None
    start_date: Optional[str] = None
    special_instructions: Optional[str] = None


class SubscribeIn(BaseModel):
    plan_id: str
    customizations: Optional[CustomizationsIn] = None


class PauseIn(BaseModel):
    days: int = Field(DEFAULT_PAUSE_DAYS, ge=1, le=365)


@router.get("/plans")
async def list_plans():
    return ok(SubscriptionService.plans())


@router.post("")
async def subscribe(
    body: SubscribeIn,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    custom = body.customizations.dict() if body.customizations else None
    return ok(await subs.subscribe(user, body.plan_id, custom), status=201)


@router.get("")
async def my_subscriptions(
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.list_for_user(user["id"]))


@router.get("/{sub_id}")
async def get_subscription(
    sub_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.get(user["id"], sub_id))


@router.post("/{sub_id}/payment")
async def confirm_payment(
    sub_id: str,
    body: PaymentConfirmIn,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(
        await subs.complete_payment(
            user["id"],
            sub_id,
            gateway_order_id=body.gateway_order_id,
            payment_id=body.payment_id,
            signature=body.signature,
        )
    )


@router.post("/{sub_id}/payment/failure")
async def payment_failed(
    sub_id: str,
    body: PaymentFailureIn,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.fail_payment(user["id"], sub_id, body.dict()))


@router.post("/{sub_id}/payment/cancel")
async def payment_cancelled(
    sub_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.cancel_payment(user["id"], sub_id))


@router.post("/{sub_id}/pause")
async def pause(
    sub_id: str,
    body: Optional[PauseIn] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    days = body.days if body else DEFAULT_PAUSE_DAYS
    return ok(await subs.pause(user["id"], sub_id, days))


@router.post("/{sub_id}/resume")
async def resume(
    sub_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.resume(user["id"], sub_id))


@router.post("/{sub_id}/skip")
async def skip_next(
    sub_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.skip_next(user["id"], sub_id))


@router.post("/{sub_id}/cancel")
async def cancel(
    sub_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    subs: SubscriptionService = Depends(get_subscription_service),
):
    return ok(await subs.cancel(user["id"], sub_id))
