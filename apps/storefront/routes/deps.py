from typing import Any, Dict, Optional

from fastapi import Depends, Header

from apps.storefront.config.settings import settings
from apps.storefront.flags import enabled
from apps.storefront.repositories.store import Store
from apps.storefront.services.account.account_service import AccountService
from apps.storefront.services.admin.admin_service import AdminService
from apps.storefront.services.cart.cart_service import CartService
from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.core_service import StoreError, _require_supabase, resolve_user
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.payments.checkout_service import CheckoutService
from apps.storefront.services.payments.razorpay_gateway import RazorpayGateway
from apps.storefront.services.reviews.review_service import ReviewService
from apps.storefront.services.sheets.google_client import GoogleSheetsClient
from apps.storefront.services.sheets.sheets_sync import SheetsSync
from apps.storefront.services.subscriptions.subscription_service import SubscriptionService
from apps.storefront.services.vouchers.voucher_service import VoucherService
from apps.storefront.utils.money import _to_decimal


# -----------------------------
# Infrastructure
# -----------------------------
def get_store() -> Store:
    return Store.from_client(_require_supabase())


def get_gateway() -> Optional[RazorpayGateway]:
    if not settings.razorpay_configured:
        return None
    return RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)


def get_sheets_sync(store: Store = Depends(get_store)) -> Optional[SheetsSync]:
    if not (enabled("FEATURE_SHEETS_SYNC") and settings.sheets_configured):
        return None
    return SheetsSync(
        GoogleSheetsClient(settings.GOOGLE_ACCESS_TOKEN),
        store,
        products_sheet_id=settings.PRODUCTS_SHEET_ID,
        inventory_sheet_id=settings.INVENTORY_SHEET_ID,
        orders_sheet_id=settings.ORDERS_SHEET_ID,
        backup_folder_id=settings.BACKUP_FOLDER_ID,
    )


# -----------------------------
# Identity
# -----------------------------
def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise StoreError("Please sign in to continue", 401, code="unauthorized")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise StoreError("Please sign in to continue", 401, code="unauthorized")
    return resolve_user(_require_supabase(), token)


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.get("is_admin"):
        raise StoreError("Admin access required", 403, code="forbidden")
    return user


# -----------------------------
# Services
# -----------------------------
def get_catalog_service(
    store: Store = Depends(get_store),
    sheets: Optional[SheetsSync] = Depends(get_sheets_sync),
) -> CatalogService:
    return CatalogService(store, sheets=sheets)


def get_voucher_service(store: Store = Depends(get_store)) -> VoucherService:
    return VoucherService(store, shipping_fee=_to_decimal(settings.SHIPPING_FEE))


def get_loyalty_service(store: Store = Depends(get_store)) -> LoyaltyService:
    return LoyaltyService(store)


def get_cart_service(
    store: Store = Depends(get_store),
    catalog: CatalogService = Depends(get_catalog_service),
    vouchers: VoucherService = Depends(get_voucher_service),
) -> CartService:
    return CartService(store, catalog, vouchers)


def get_checkout_service(
    store: Store = Depends(get_store),
    cart: CartService = Depends(get_cart_service),
    vouchers: VoucherService = Depends(get_voucher_service),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    gateway: Optional[RazorpayGateway] = Depends(get_gateway),
    sheets: Optional[SheetsSync] = Depends(get_sheets_sync),
) -> CheckoutService:
    return CheckoutService(
        store,
        cart=cart,
        vouchers=vouchers,
        loyalty=loyalty,
        gateway=gateway,
        sheets=sheets,
        currency=settings.CURRENCY,
        store_name=settings.STORE_NAME,
    )


def get_subscription_service(
    store: Store = Depends(get_store),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    gateway: Optional[RazorpayGateway] = Depends(get_gateway),
) -> SubscriptionService:
    return SubscriptionService(
        store,
        loyalty=loyalty,
        gateway=gateway,
        currency=settings.CURRENCY,
        store_name=settings.STORE_NAME,
    )


def get_review_service(
    store: Store = Depends(get_store),
    catalog: CatalogService = Depends(get_catalog_service),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
) -> ReviewService:
    return ReviewService(store, catalog=catalog, loyalty=loyalty)


def get_account_service(
    store: Store = Depends(get_store),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    cart: CartService = Depends(get_cart_service),
) -> AccountService:
    return AccountService(store, loyalty=loyalty, cart=cart)


def get_admin_service(store: Store = Depends(get_store)) -> AdminService:
    return AdminService(store)
