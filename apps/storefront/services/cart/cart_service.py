from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from apps.storefront.repositories.store import Store
from apps.storefront.services.cart.cart import Cart, CartError, CartPricing, price_cart
from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.core_service import StoreError
from apps.storefront.services.vouchers.voucher_rules import Voucher, VoucherError
from apps.storefront.services.vouchers.voucher_service import VoucherService
from apps.storefront.utils.clock import iso
from apps.storefront.utils.formatting import format_inr
from apps.storefront.utils.locks import user_locks

log = logging.getLogger("picklish.cart")


class CartService:
    def __init__(self, store: Store, catalog: CatalogService, vouchers: VoucherService) -> None:
        self.store = store
        self.catalog = catalog
        self.vouchers = vouchers

    async def load(self, user_id: str) -> Cart:
        row = await self.store.carts.get(user_id)
        return Cart.from_dict(row) if row else Cart(user_id=user_id)

    async def _save(self, cart: Cart) -> None:
        await self.store.carts.upsert({**cart.to_dict(), "updated_at": iso()})

    async def priced(self, cart: Cart) -> Tuple[CartPricing, Optional[Voucher]]:
        """
        Prices the cart, re-validating any applied voucher. A voucher that
        stopped being valid is dropped from the pricing.
        """
        voucher = None
        if cart.voucher_code and cart.items:
            try:
                result = await self.vouchers.validate(
                    cart.voucher_code, subtotal=cart.subtotal, user_id=cart.user_id
                )
                voucher = result["voucher"]
            except VoucherError as e:
                log.info("dropping voucher %s for %s: %s", cart.voucher_code, cart.user_id, e.reason)
        return price_cart(cart, voucher, shipping_fee=self.vouchers.shipping_fee), voucher

    async def view(self, user_id: str) -> Dict[str, Any]:
        cart = await self.load(user_id)
        pricing, _ = await self.priced(cart)
        return {"items": [line.to_dict() for line in cart.items], "pricing": pricing.to_dict()}

    async def _mutate(self, user_id: str, fn) -> Dict[str, Any]:
        async with user_locks.for_key(f"cart:{user_id}"):
            cart = await self.load(user_id)
            try:
                fn(cart)
            except CartError as e:
                raise StoreError(str(e), 400, code="cart_error")
            if not cart.items:
                cart.voucher_code = None
            await self._save(cart)
        return await self.view(user_id)

    async def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        product = await self.catalog.get_product(product_id)
        return await self._mutate(user_id, lambda cart: cart.add(product, quantity))

    async def update_quantity(self, user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
        return await self._mutate(user_id, lambda cart: cart.update_quantity(product_id, quantity))

    async def remove_item(self, user_id: str, product_id: str) -> Dict[str, Any]:
        return await self._mutate(user_id, lambda cart: cart.remove(product_id))

    async def clear(self, user_id: str) -> Dict[str, Any]:
        return await self._mutate(user_id, lambda cart: cart.clear())

    async def add_lines(self, user_id: str, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Adds order lines back to the cart; unavailable products are skipped."""
        skipped = []
        products = []
        for line in lines:
            try:
                product = await self.catalog.get_product(str(line.get("id")))
            except StoreError:
                skipped.append(line.get("id"))
                continue
            if not product.in_stock:
                skipped.append(product.id)
                continue
            products.append((product, int(line.get("quantity") or 1)))

        def apply(cart: Cart) -> None:
            for product, qty in products:
                cart.add(product, qty)

        view = await self._mutate(user_id, apply)
        return {**view, "skipped": skipped}

    # -----------------------------
    # Vouchers
    # -----------------------------
    async def apply_voucher(self, user_id: str, code: str) -> Dict[str, Any]:
        async with user_locks.for_key(f"cart:{user_id}"):
            cart = await self.load(user_id)
            if not cart.items:
                raise StoreError("Your cart is empty", 400, code="cart_empty")
            result = await self.vouchers.validate(code, subtotal=cart.subtotal, user_id=user_id)
            cart.voucher_code = result["voucher"].code
            await self._save(cart)

        view = await self.view(user_id)
        view["message"] = f"Voucher applied! You saved {format_inr(result['discount'])}"
        return view

    async def remove_voucher(self, user_id: str) -> Dict[str, Any]:
        def drop(cart: Cart) -> None:
            cart.voucher_code = None

        return await self._mutate(user_id, drop)
