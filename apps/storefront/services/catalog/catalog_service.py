from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from apps.storefront.repositories.store import Store
from apps.storefront.services.catalog.products import (
    DEFAULT_MAX_PRICE,
    DEFAULT_PRODUCTS,
    Product,
    category_summary,
    filter_products,
    sort_products,
)
from apps.storefront.services.core_service import NotFoundError
from apps.storefront.services.sheets.sheets_sync import SheetsSync
from apps.storefront.utils.clock import iso

log = logging.getLogger("picklish.catalog")


class CatalogService:
    """
    Product reads fall through: sheet (when wired) -> products table -> built-in list.
    """

    def __init__(self, store: Store, sheets: Optional[SheetsSync] = None) -> None:
        self.store = store
        self.sheets = sheets

    async def load_products(self) -> List[Product]:
        if self.sheets is not None:
            try:
                rows = await self.sheets.load_products()
                if rows:
                    return [Product.from_dict(r) for r in rows]
            except Exception as e:
                log.warning("sheet product load failed, using store: %s", e)

        try:
            rows = await self.store.products.find()
        except Exception:
            log.exception("product load failed, using built-in catalog")
            rows = []

        if not rows:
            return list(DEFAULT_PRODUCTS)
        return [Product.from_dict(r) for r in rows]

    async def browse(
        self,
        *,
        categories: Optional[Iterable[str]] = None,
        max_price: Optional[Decimal] = DEFAULT_MAX_PRICE,
        sort_by: Optional[str] = "name",
    ) -> List[Product]:
        products = await self.load_products()
        return sort_products(filter_products(products, categories=categories, max_price=max_price), sort_by)

    async def categories(self) -> List[Dict[str, Any]]:
        return category_summary(await self.load_products())

    async def get_product(self, product_id: str) -> Product:
        row = await self.store.products.get(product_id)
        if row:
            return Product.from_dict(row)
        for product in DEFAULT_PRODUCTS:
            if product.id == product_id:
                return product
        raise NotFoundError("Product not found")

    async def _materialize(self, product_id: str) -> Product:
        """
        Makes sure the product has a row. An empty table gets the whole
        built-in catalog, otherwise one write would shrink the listing to
        a single product.
        """
        product = await self.get_product(product_id)
        if await self.store.products.get(product_id):
            return product
        if not await self.store.products.find(limit=1):
            for default in DEFAULT_PRODUCTS:
                await self.store.products.upsert(default.to_dict())
            log.info("seeded products table with %s built-in products", len(DEFAULT_PRODUCTS))
        else:
            await self.store.products.upsert(product.to_dict())
        return product

    async def set_rating(self, product_id: str, rating: float, review_count: int) -> None:
        await self._materialize(product_id)
        await self.store.products.update(
            product_id, {"rating": rating, "review_count": review_count, "updated_at": iso()}
        )

    async def update_product(self, product_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        await self._materialize(product_id)
        if self.sheets is not None:
            return await self.sheets.update_product(product_id, updates)
        saved = await self.store.products.update(product_id, {**updates, "last_updated": iso()})
        return {"product": saved, "synced": False}

    async def add_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        Product.from_dict(data)
        if self.sheets is not None:
            return await self.sheets.add_product(data)
        saved = await self.store.products.upsert({**data, "created_at": iso()})
        return {"product": saved, "synced": False}
