"""Service fixtures: a fake Supabase behind a real Store, services wired
the same way routes/deps.py wires them, and a Razorpay gateway whose HTTP
calls are replaced with mocks.
"""

from unittest.mock import MagicMock

import pytest

from apps.storefront.repositories.store import Store
from apps.storefront.services.account.account_service import AccountService
from apps.storefront.services.admin.admin_service import AdminService
from apps.storefront.services.cart.cart_service import CartService
from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.payments.checkout_service import CheckoutService
from apps.storefront.services.payments.razorpay_gateway import RazorpayGateway, compute_signature
from apps.storefront.services.reviews.review_service import ReviewService
from apps.storefront.services.subscriptions.subscription_service import SubscriptionService
from apps.storefront.services.vouchers.voucher_service import VoucherService
from apps.storefront.utils.money import D
from tests.fakes import FakeSupabase

KEY_SECRET = "rzp_test_secret"


def sign(gateway_order_id: str, payment_id: str) -> str:
    return compute_signature(KEY_SECRET, gateway_order_id, payment_id)


@pytest.fixture
def sb():
    return FakeSupabase()


@pytest.fixture
def store(sb):
    return Store.from_client(sb)


@pytest.fixture
def gateway():
    gw = RazorpayGateway("rzp_test_key", KEY_SECRET)
    gw.create_order = MagicMock(return_value={"id": "order_gw_1", "status": "created"})
    gw.refund = MagicMock(return_value={"id": "rfnd_1", "status": "processed"})
    return gw


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def vouchers(store):
    return VoucherService(store, shipping_fee=D("50"))


@pytest.fixture
def loyalty(store):
    return LoyaltyService(store)


@pytest.fixture
def cart(store, catalog, vouchers):
    return CartService(store, catalog, vouchers)


@pytest.fixture
def checkout(store, cart, vouchers, loyalty, gateway):
    return CheckoutService(store, cart=cart, vouchers=vouchers, loyalty=loyalty, gateway=gateway)


@pytest.fixture
def subscriptions(store, loyalty, gateway):
    return SubscriptionService(store, loyalty=loyalty, gateway=gateway)


@pytest.fixture
def reviews(store, catalog, loyalty):
    return ReviewService(store, catalog=catalog, loyalty=loyalty)


@pytest.fixture
def account(store, loyalty, cart):
    return AccountService(store, loyalty=loyalty, cart=cart)


@pytest.fixture
def admin(store):
    return AdminService(store)


@pytest.fixture
def make_user(sb):
    def _make(user_id: str, points: int = 0, **extra):
        doc = {
            "id": user_id,
            "email": f"{user_id}@example.com",
            "loyalty_points": points,
            "total_spent": "0.00",
            "order_count": 0,
            "created_at": "2026-01-01T00:00:00+00:00",
            **extra,
        }
        sb.seed("users", doc)
        return {"id": user_id, "email": doc["email"], "name": user_id.title(), "photo_url": None, "is_admin": False}

    return _make
