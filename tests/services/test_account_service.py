import pytest

from apps.storefront.services.core_service import NotFoundError, StoreError, ValidationError

NEW_USER = {"id": "acct-new", "email": "asha@example.com", "name": "Asha", "photo_url": None, "is_admin": False}


async def test_first_session_creates_user_with_welcome_bonus(account, sb):
    out = await account.bootstrap(NEW_USER)
    assert out["created"] is True
    assert out["user"]["loyalty_points"] == 100
    assert out["user"]["loyalty_tier"] == "bronze"
    assert out["user"]["display_name"] == "Asha"

    again = await account.bootstrap(NEW_USER)
    assert again["created"] is False
    assert again["user"]["loyalty_points"] == 100
    assert len(sb.rows("points_history")) == 1


async def test_welcome_bonus_failure_still_creates_user(account, sb):
    sb.fail_tables.add("points_history")
    out = await account.bootstrap({**NEW_USER, "id": "acct-nobonus"})
    assert out["created"] is True
    assert sb.rows("users")[0]["id"] == "acct-nobonus"


async def test_update_profile(account, make_user):
    make_user("acct-1")
    saved = await account.update_profile(
        "acct-1",
        {"name": " Ravi ", "phone": "+91 98765 43210", "address": {"line1": "4 Beach Rd", "city": "Kochi", "pincode": "682001"}},
    )
    assert saved["name"] == "Ravi"
    assert saved["address"]["city"] == "Kochi"
    assert saved["address"]["line2"] == ""


@pytest.mark.parametrize(
    "data,reason",
    [
        ({"name": "  "}, "invalid_name"),
        ({"phone": "12ab"}, "invalid_phone"),
        ({"address": {"line1": "4 Beach Rd"}}, "invalid_address"),
        ({"address": {"line1": "4 Beach Rd", "city": "Kochi", "pincode": "012345"}}, "invalid_pincode"),
    ],
)
async def test_update_profile_rejects(account, make_user, data, reason):
    make_user("acct-2")
    with pytest.raises(ValidationError) as exc:
        await account.update_profile("acct-2", data)
    assert exc.value.reason == reason


async def test_empty_update_and_missing_user(account, make_user):
    make_user("acct-3")
    with pytest.raises(StoreError) as exc:
        await account.update_profile("acct-3", {})
    assert exc.value.code == "empty_update"
    with pytest.raises(NotFoundError):
        await account.get_profile("nobody")


async def test_order_history_filters_by_status(account, sb):
    sb.seed(
        "orders",
        {"id": "o1", "user_id": "acct-4", "status": "delivered", "created_at": "2026-01-01"},
        {"id": "o2", "user_id": "acct-4", "status": "pending", "created_at": "2026-01-02"},
        {"id": "o3", "user_id": "other", "status": "pending", "created_at": "2026-01-03"},
    )
    assert [o["id"] for o in await account.order_history("acct-4")] == ["o2", "o1"]
    assert [o["id"] for o in await account.order_history("acct-4", "delivered")] == ["o1"]


async def test_reorder_refills_cart(account, sb):
    sb.seed("orders", {"id": "o1", "user_id": "acct-5", "items": [{"id": "veg-lemon-pickle", "quantity": 3}]})
    out = await account.reorder("acct-5", "o1")
    assert out["items"][0]["quantity"] == 3
    assert out["skipped"] == []

    with pytest.raises(NotFoundError):
        await account.reorder("acct-other", "o1")
