import pytest

from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.vouchers.voucher_rules import VoucherError
from apps.storefront.utils.money import D


async def test_validate_returns_voucher_and_discount(vouchers, sb):
    sb.seed("vouchers", {"code": "PICKLE20", "type": "percentage", "value": "20", "max_discount": "100"})
    out = await vouchers.validate(" pickle20 ", subtotal=D("1000"), user_id="u1")
    assert out["voucher"].code == "PICKLE20"
    assert out["discount"] == D("100")


async def test_free_shipping_uses_configured_fee(vouchers, sb):
    sb.seed("vouchers", {"code": "SHIPFREE", "type": "free_shipping", "value": "0"})
    out = await vouchers.validate("SHIPFREE", subtotal=D("300"), user_id=None)
    assert out["discount"] == D("50")


async def test_validate_errors(vouchers, sb):
    with pytest.raises(VoucherError) as exc:
        await vouchers.validate("", subtotal=D("100"), user_id="u1")
    assert exc.value.reason == "missing_code"

    with pytest.raises(VoucherError) as exc:
        await vouchers.validate("NOPE", subtotal=D("100"), user_id="u1")
    assert exc.value.status_code == 404

    sb.seed("vouchers", {"code": "MINE", "type": "fixed", "value": "50", "user_id": "owner"})
    with pytest.raises(VoucherError) as exc:
        await vouchers.validate("MINE", subtotal=D("100"), user_id="u1")
    assert exc.value.reason == "not_owner"


async def test_record_usage_updates_counts_and_redeemed_voucher(vouchers, sb):
    sb.seed("vouchers", {"code": "LOYAL50_X", "type": "fixed", "value": "50", "used_count": 0, "user_usage": {}})
    sb.seed("redeemed_vouchers", {"code": "LOYAL50_X", "user_id": "u1", "is_used": False})

    await vouchers.record_usage("LOYAL50_X", "u1")

    voucher = sb.rows("vouchers")[0]
    assert voucher["used_count"] == 1
    assert voucher["user_usage"] == {"u1": 1}
    assert sb.rows("redeemed_vouchers")[0]["is_used"] is True


async def test_record_usage_of_unknown_code_is_ignored(vouchers, sb):
    await vouchers.record_usage("GHOST", "u1")
    assert sb.rows("vouchers") == []


async def test_save_new_voucher_fills_defaults(vouchers, sb):
    saved = await vouchers.save_voucher({"code": "diwali", "type": "percentage", "value": "15", "used_count": 99})
    assert saved["code"] == "DIWALI"
    assert saved["used_count"] == 0
    assert saved["is_active"] is True

    updated = await vouchers.save_voucher({"is_active": False}, code="DIWALI")
    assert updated["is_active"] is False
    assert updated["value"] == "15"


async def test_save_rejects_bad_input(vouchers):
    with pytest.raises(StoreError):
        await vouchers.save_voucher({"type": "fixed", "value": "10"})
    with pytest.raises(StoreError):
        await vouchers.save_voucher({"code": "X", "type": "bogo"})
    with pytest.raises(StoreError):
        await vouchers.save_voucher({"code": "X", "value": "-5"})


async def test_save_rejects_unparseable_dates(vouchers, sb):
    with pytest.raises(StoreError) as exc:
        await vouchers.save_voucher({"code": "LATE", "type": "fixed", "value": "10", "expires_at": "next tuesday"})
    assert exc.value.code == "invalid_date"
    assert sb.rows("vouchers") == []


async def test_edit_can_clear_limits_but_not_required_fields(vouchers):
    await vouchers.save_voucher(
        {"code": "FEST", "type": "fixed", "value": "25", "usage_limit": 5, "expires_at": "2030-01-01T00:00:00+00:00"}
    )
    updated = await vouchers.save_voucher({"usage_limit": None, "expires_at": None, "is_active": None}, code="FEST")
    assert updated["usage_limit"] is None
    assert updated["expires_at"] is None
    assert updated["is_active"] is True


async def test_delete_voucher(vouchers, sb):
    sb.seed("vouchers", {"code": "OLD", "type": "fixed", "value": "10"})
    await vouchers.delete_voucher("old")
    assert sb.rows("vouchers") == []
    with pytest.raises(NotFoundError):
        await vouchers.delete_voucher("old")
