from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.storefront.routes.catalog import product_out
from apps.storefront.routes.deps import (
    get_admin_service,
    get_catalog_service,
    get_checkout_service,
    get_loyalty_service,
    get_sheets_sync,
    get_voucher_service,
    require_admin,
)
from apps.storefront.services.admin.admin_service import AdminService
from apps.storefront.services.admin.observability import system_snapshot
from apps.storefront.services.admin.overrides import clear_override, list_overrides, set_override
from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.payments.checkout_service import CheckoutService
from apps.storefront.services.sheets.google_client import GoogleAPIError
from apps.storefront.services.sheets.sheets_sync import SheetsSync
from apps.storefront.services.vouchers.voucher_service import VoucherService
from apps.storefront.utils.envelope import ok

# no prefix here; mounted under /admin in main.py
router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


class OrderStatusIn(BaseModel):
    status: str
    notes: Optional[str] = None


class VoucherIn(BaseModel):
    code: Optional[str] = None
    type: Optional[str] = None
    value: Optional[float] = None
    max_discount: Optional[float] = None
    min_order_amount: Optional[float] = None
    usage_limit: Optional[int] = None
    user_usage_limit: Optional[int] = None
    starts_at: Optional[str] = None
    expires_at: Optional[str] = None
    is_active: Optional[bool] = None
    user_id: Optional[str] = None
    description: Optional[str] = None


class RefundIn(BaseModel):
    payment_id: str
    order_id: str
    amount: float
    reason: str = "requested_by_customer"


class PointsAdjustIn(BaseModel):
    points: int
    reason: str


class InventoryIn(BaseModel):
    change: int
    notes: str = ""


class OverrideIn(BaseModel):
    key: str
    value: bool


def _sheets_or_501(sheets: Optional[SheetsSync]) -> SheetsSync:
    if sheets is None:
        raise StoreError("Sheet sync is disabled", 501, code="sheets_unavailable")
    return sheets


# -----------------------------
# Orders
# -----------------------------
@router.get("/orders/stats")
async def order_stats(admin: AdminService = Depends(get_admin_service)):
    return ok(await admin.order_stats())


@router.get("/orders")
async def list_orders(
    page: int = 1,
    status: Optional[str] = None,
    admin: AdminService = Depends(get_admin_service),
):
    return ok(await admin.list_orders(page, status))


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: OrderStatusIn,
    user: Dict[str, Any] = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    return ok(await admin.update_order_status(order_id, body.status, body.notes, user.get("email") or user["id"]))


@router.post("/refunds")
async def refund(
    body: RefundIn,
    user: Dict[str, Any] = Depends(require_admin),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    result = await checkout.process_refund(
        payment_id=body.payment_id,
        order_id=body.order_id,
        amount=body.amount,
        reason=body.reason,
        requested_by=user["id"],
    )
    return ok(result, status=201)


# -----------------------------
# Subscriptions
# -----------------------------
@router.get("/subscriptions/stats")
async def subscription_stats(admin: AdminService = Depends(get_admin_service)):
    return ok(await admin.subscription_stats())


@router.get("/subscriptions")
async def list_subscriptions(
    status: Optional[str] = None,
    admin: AdminService = Depends(get_admin_service),
):
    return ok(await admin.list_subscriptions(status))


# -----------------------------
# Vouchers
# -----------------------------
@router.get("/vouchers")
async def list_vouchers(vouchers: VoucherService = Depends(get_voucher_service)):
    return ok(await vouchers.list_vouchers())


@router.post("/vouchers")
async def create_voucher(body: VoucherIn, vouchers: VoucherService = Depends(get_voucher_service)):
    data = body.dict(exclude_none=True)
    if await vouchers.get(data.get("code", "")):
        raise StoreError("Voucher code already exists", 409, code="duplicate_voucher")
    return ok(await vouchers.save_voucher(data), status=201)


@router.put("/vouchers/{code}")
async def update_voucher(
    code: str,
    body: VoucherIn,
    vouchers: VoucherService = Depends(get_voucher_service),
):
    if not await vouchers.get(code):
        raise NotFoundError("Voucher not found")
    # explicit nulls clear a field; omitted fields are left alone
    return ok(await vouchers.save_voucher(body.dict(exclude_unset=True), code=code))


@router.delete("/vouchers/{code}")
async def delete_voucher(code: str, vouchers: VoucherService = Depends(get_voucher_service)):
    await vouchers.delete_voucher(code)
    return ok({"code": code, "deleted": True})


# -----------------------------
# Users / points
# -----------------------------
@router.get("/users")
async def list_users(page: int = 1, admin: AdminService = Depends(get_admin_service)):
    return ok(await admin.list_users(page))


@router.post("/users/{user_id}/points")
async def adjust_points(
    user_id: str,
    body: PointsAdjustIn,
    user: Dict[str, Any] = Depends(require_admin),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    result = await loyalty.adjust_points(user_id, body.points, body.reason, user["id"])
    return ok(result.to_dict())


# -----------------------------
# Products / sheets
# -----------------------------
@router.post("/products")
async def add_product(body: Dict[str, Any], catalog: CatalogService = Depends(get_catalog_service)):
    return ok(await catalog.add_product(body), status=201)


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    body: Dict[str, Any],
    catalog: CatalogService = Depends(get_catalog_service),
):
    return ok(await catalog.update_product(product_id, body))


@router.get("/products")
async def all_products(catalog: CatalogService = Depends(get_catalog_service)):
    return ok([product_out(p) for p in await catalog.load_products()])


@router.get("/inventory")
def inventory(sheets: Optional[SheetsSync] = Depends(get_sheets_sync)):
    try:
        return ok(_sheets_or_501(sheets).load_inventory())
    except GoogleAPIError as e:
        raise StoreError(f"Inventory sheet unavailable: {e}", 502, code="sheets_error")


@router.post("/inventory/{product_id}")
def update_inventory(
    product_id: str,
    body: InventoryIn,
    sheets: Optional[SheetsSync] = Depends(get_sheets_sync),
):
    try:
        return ok(_sheets_or_501(sheets).update_inventory(product_id, body.change, body.notes))
    except GoogleAPIError as e:
        raise StoreError(f"Inventory update failed: {e}", 502, code="sheets_error")


@router.post("/backup")
async def backup(sheets: Optional[SheetsSync] = Depends(get_sheets_sync)):
    try:
        return ok(await _sheets_or_501(sheets).create_backup(), status=201)
    except GoogleAPIError as e:
        raise StoreError(f"Backup upload failed: {e}", 502, code="sheets_error")


# -----------------------------
# Runtime
# -----------------------------
@router.get("/overrides")
def get_overrides():
    return ok(list_overrides())


@router.post("/overrides")
def set_admin_override(body: OverrideIn, user: Dict[str, Any] = Depends(require_admin)):
    try:
        set_override(body.key, body.value, set_by=user.get("email") or user["id"])
    except ValueError as e:
        raise StoreError(str(e), 400, code="invalid_override")
    return ok(list_overrides())


@router.delete("/overrides/{key}")
def clear_admin_override(key: str):
    clear_override(key)
    return ok(list_overrides())


@router.get("/observability")
def observability():
    return ok(system_snapshot())
