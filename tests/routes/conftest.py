"""Route test fixtures: the FastAPI app over a fake Supabase.

Both the store and token lookup go through deps._require_supabase, so
patching it swaps the whole backend. The payment gateway is overridden
with one whose HTTP calls are mocks.
"""

from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

import apps.storefront.routes.deps as deps
from apps.storefront.main import app
from apps.storefront.services.admin.overrides import reset_overrides
from apps.storefront.services.payments.razorpay_gateway import RazorpayGateway
from tests.fakes import FakeSupabase

KEY_SECRET = "rzp_test_secret"
CUSTOMER = {"Authorization": "Bearer customer-token"}
ADMIN = {"Authorization": "Bearer admin-token"}


@pytest.fixture
def sb():
    fake = FakeSupabase()
    fake.auth.add_user("customer-token", "cust-1", "meera@example.com", name="Meera")
    fake.auth.add_user("admin-token", "admin-1", "ops@example.com", name="Ops", admin=True)
    return fake


@pytest.fixture
def gateway():
    gw = RazorpayGateway("rzp_test_key", KEY_SECRET)
    gw.create_order = MagicMock(return_value={"id": "order_gw_1", "status": "created"})
    gw.refund = MagicMock(return_value={"id": "rfnd_1", "status": "processed"})
    return gw


@pytest.fixture
async def client(sb, gateway, monkeypatch):
    monkeypatch.setattr(deps, "_require_supabase", lambda: sb)
    app.dependency_overrides[deps.get_gateway] = lambda: gateway

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    reset_overrides()
