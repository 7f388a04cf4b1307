from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from apps.storefront.repositories.base import DocumentRepository


@dataclass
class Store:
    users: DocumentRepository
    carts: DocumentRepository
    products: DocumentRepository
    vouchers: DocumentRepository
    loyalty_rewards: DocumentRepository
    redeemed_vouchers: DocumentRepository
    points_history: DocumentRepository
    orders: DocumentRepository
    payments: DocumentRepository
    failed_payments: DocumentRepository
    refunds: DocumentRepository
    notifications: DocumentRepository
    subscriptions: DocumentRepository
    reviews: DocumentRepository

    @classmethod
    def from_client(cls, sb: Any) -> "Store":
        return cls(
            users=DocumentRepository(sb, "users"),
            carts=DocumentRepository(sb, "carts", key="user_id"),
            products=DocumentRepository(sb, "products"),
            vouchers=DocumentRepository(sb, "vouchers", key="code"),
            loyalty_rewards=DocumentRepository(sb, "loyalty_rewards"),
            redeemed_vouchers=DocumentRepository(sb, "redeemed_vouchers", key="code"),
            points_history=DocumentRepository(sb, "points_history"),
            orders=DocumentRepository(sb, "orders"),
            payments=DocumentRepository(sb, "payments"),
            failed_payments=DocumentRepository(sb, "failed_payments"),
            refunds=DocumentRepository(sb, "refunds"),
            notifications=DocumentRepository(sb, "notifications"),
            subscriptions=DocumentRepository(sb, "subscriptions"),
            reviews=DocumentRepository(sb, "reviews"),
        )
