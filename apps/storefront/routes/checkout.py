from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.storefront.routes.deps import get_checkout_service, get_current_user
from apps.storefront.services.core_service import NotFoundError
from apps.storefront.services.payments.checkout_service import CheckoutService
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["checkout"])


class CheckoutIn(BaseModel):
    shipping_address: Optional[Dict[str, Any]] = None
    phone_number: Optional[str] = None
    notes: Optional[str] = None


class PaymentConfirmIn(BaseModel):
    gateway_order_id: str
    payment_id: str
    signature: str


class PaymentFailureIn(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    step: Optional[str] = None
    reason: Optional[str] = None


@router.post("/orders")
async def create_order(
    body: CheckoutIn,
    user: Dict[str, Any] = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    result = await checkout.create_order(
        user,
        shipping_address=body.shipping_address,
        phone_number=body.phone_number,
        notes=body.notes,
    )
    return ok(result, status=201)


@router.post("/orders/{order_id}/payment")
async def confirm_payment(
    order_id: str,
    body: PaymentConfirmIn,
    user: Dict[str, Any] = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return ok(
        await checkout.complete_payment(
            user["id"],
            order_id,
            gateway_order_id=body.gateway_order_id,
            payment_id=body.payment_id,
            signature=body.signature,
        )
    )


@router.post("/orders/{order_id}/payment/failure")
async def payment_failed(
    order_id: str,
    body: PaymentFailureIn,
    user: Dict[str, Any] = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return ok(await checkout.fail_payment(user["id"], order_id, body.dict()))


@router.post("/orders/{order_id}/payment/cancel")
async def payment_cancelled(
    order_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return ok(await checkout.cancel_payment(user["id"], order_id))


@router.get("/payments/{payment_id}")
async def payment_status(
    payment_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    payment = await checkout.get_payment_status(payment_id)
    if payment.get("user_id") != user["id"] and not user.get("is_admin"):
        raise NotFoundError("Payment not found")
    return ok(payment)
