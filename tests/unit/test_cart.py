"""Cart line rules and pricing."""

import pytest

from apps.storefront.services.cart.cart import MAX_QUANTITY, Cart, CartError, price_cart
from apps.storefront.services.catalog.products import DEFAULT_PRODUCTS
from apps.storefront.services.vouchers.voucher_rules import Voucher
from apps.storefront.utils.money import D

CHICKEN = next(p for p in DEFAULT_PRODUCTS if p.id == "meat-chicken-pickle")  # 349
MANGO = next(p for p in DEFAULT_PRODUCTS if p.id == "veg-mango-pickle")  # 199
BEEF = next(p for p in DEFAULT_PRODUCTS if p.id == "meat-beef-pickle")  # out of stock


def test_adding_same_product_merges_lines():
    cart = Cart(user_id="u1")
    cart.add(CHICKEN, 2)
    cart.add(CHICKEN, 3)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 5


def test_quantity_is_capped_per_line():
    cart = Cart(user_id="u1")
    cart.add(CHICKEN, 8)
    cart.add(CHICKEN, 8)
    assert cart.items[0].quantity == MAX_QUANTITY


def test_out_of_stock_products_are_rejected():
    with pytest.raises(CartError):
        Cart(user_id="u1").add(BEEF)


def test_update_below_one_removes_line():
    cart = Cart(user_id="u1")
    cart.add(CHICKEN)
    cart.add(MANGO)
    cart.update_quantity(CHICKEN.id, 0)
    assert [line.id for line in cart.items] == [MANGO.id]


def test_update_quantity_caps_at_max():
    cart = Cart(user_id="u1")
    cart.add(MANGO)
    cart.update_quantity(MANGO.id, 25)
    assert cart.items[0].quantity == MAX_QUANTITY


def test_update_unknown_line_raises():
    with pytest.raises(CartError):
        Cart(user_id="u1").update_quantity("nope", 2)


def test_item_count_and_subtotal():
    cart = Cart(user_id="u1")
    cart.add(CHICKEN, 2)
    cart.add(MANGO, 1)
    assert cart.item_count == 3
    assert cart.subtotal == D("897")


def test_price_without_voucher():
    cart = Cart(user_id="u1")
    cart.add(MANGO, 2)
    pricing = price_cart(cart)
    assert pricing.total == D("398")
    assert pricing.discount == D("0")
    assert pricing.voucher_code is None


def test_price_with_fixed_voucher_never_negative():
    cart = Cart(user_id="u1")
    cart.add(MANGO, 1)
    v = Voucher.from_dict({"code": "BIG", "type": "fixed", "value": 1000})
    pricing = price_cart(cart, v)
    assert pricing.discount == D("199")
    assert pricing.total == D("0")
    assert pricing.to_dict()["voucher_code"] == "BIG"


def test_clear_drops_voucher():
    cart = Cart(user_id="u1", voucher_code="SAVE10")
    cart.add(MANGO)
    cart.clear()
    assert cart.items == []
    assert cart.voucher_code is None


def test_cart_document_round_trip_keeps_prices_as_strings():
    cart = Cart(user_id="u1", voucher_code="SAVE10")
    cart.add(CHICKEN, 2)
    doc = cart.to_dict()
    assert doc["items"][0]["price"] == "349.00"
    again = Cart.from_dict(doc)
    assert again.subtotal == D("698")
    assert again.voucher_code == "SAVE10"
