from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from apps.storefront.routes.deps import get_cart_service, get_current_user
from apps.storefront.services.cart.cart_service import CartService
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["cart"])


class CartItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class QuantityIn(BaseModel):
    quantity: int


class VoucherIn(BaseModel):
    code: str


@router.get("")
async def view_cart(
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.view(user["id"]))


@router.post("/items")
async def add_item(
    body: CartItemIn,
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.add_item(user["id"], body.product_id, body.quantity))


@router.patch("/items/{product_id}")
async def update_item(
    product_id: str,
    body: QuantityIn,
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.update_quantity(user["id"], product_id, body.quantity))


@router.delete("/items/{product_id}")
async def remove_item(
    product_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.remove_item(user["id"], product_id))


@router.delete("")
async def clear_cart(
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.clear(user["id"]))


@router.post("/voucher")
async def apply_voucher(
    body: VoucherIn,
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.apply_voucher(user["id"], body.code))


@router.delete("/voucher")
async def remove_voucher(
    user: Dict[str, Any] = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    return ok(await cart.remove_voucher(user["id"]))
