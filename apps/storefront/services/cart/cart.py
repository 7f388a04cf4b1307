"""
Cart model and pricing. Pure domain logic: no DB, no HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.storefront.services.catalog.products import Product
from apps.storefront.services.vouchers.voucher_rules import (
    DEFAULT_SHIPPING_FEE,
    Voucher,
    calculate_discount,
)
from apps.storefront.utils.money import D, _q2, _to_decimal


MAX_QUANTITY = 10


class CartError(ValueError):
    pass


@dataclass
class CartLine:
    id: str
    name: str
    price: Decimal
    quantity: int
    category: str = ""
    image: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(_q2(self.price)),
            "quantity": self.quantity,
            "category": self.category,
            "image": self.image,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CartLine":
        return CartLine(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            price=_to_decimal(d.get("price")),
            quantity=int(d.get("quantity") or 1),
            category=str(d.get("category") or ""),
            image=str(d.get("image") or ""),
        )


@dataclass
class Cart:
    user_id: str
    items: List[CartLine] = field(default_factory=list)
    voucher_code: Optional[str] = None

    def _line(self, product_id: str) -> Optional[CartLine]:
        for line in self.items:
            if line.id == product_id:
                return line
        return None

    def add(self, product: Product, quantity: int = 1) -> CartLine:
        if not product.in_stock:
            raise CartError(f"{product.name} is out of stock")
        if quantity < 1:
            raise CartError("Quantity must be at least 1")

        line = self._line(product.id)
        if line is None:
            line = CartLine(
                id=product.id,
                name=product.name,
                price=product.price,
                quantity=0,
                category=product.category,
                image=product.image,
            )
            self.items.append(line)
        line.quantity = min(line.quantity + quantity, MAX_QUANTITY)
        return line

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        line = self._line(product_id)
        if line is None:
            raise CartError("Item not in cart")
        if quantity < 1:
            self.remove(product_id)
            return None
        line.quantity = min(quantity, MAX_QUANTITY)
        return line

    def remove(self, product_id: str) -> None:
        self.items = [line for line in self.items if line.id != product_id]

    def clear(self) -> None:
        self.items = []
        self.voucher_code = None

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.items), D("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "items": [line.to_dict() for line in self.items],
            "voucher_code": self.voucher_code,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Cart":
        return Cart(
            user_id=str(d["user_id"]),
            items=[CartLine.from_dict(i) for i in d.get("items") or []],
            voucher_code=d.get("voucher_code") or None,
        )


@dataclass(frozen=True)
class CartPricing:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    item_count: int
    voucher_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": str(_q2(self.subtotal)),
            "discount": str(_q2(self.discount)),
            "total": str(_q2(self.total)),
            "item_count": self.item_count,
            "voucher_code": self.voucher_code,
        }


def price_cart(
    cart: Cart,
    voucher: Optional[Voucher] = None,
    *,
    shipping_fee: Decimal = DEFAULT_SHIPPING_FEE,
) -> CartPricing:
    subtotal = cart.subtotal
    discount = D("0")
    if voucher is not None and cart.items:
        discount = calculate_discount(voucher, subtotal, shipping_fee=shipping_fee)
    total = max(D("0"), subtotal - discount)
    return CartPricing(
        subtotal=subtotal,
        discount=discount,
        total=total,
        item_count=cart.item_count,
        voucher_code=voucher.code if voucher is not None else None,
    )
