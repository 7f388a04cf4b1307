from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.catalog.products import DEFAULT_MAX_PRICE, Product
from apps.storefront.routes.deps import get_catalog_service
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["catalog"])


def product_out(product: Product) -> dict:
    return {**product.to_dict(), "category_name": product.category_name}


@router.get("/products")
async def list_products(
    category: Optional[List[str]] = Query(None),
    max_price: Decimal = Query(DEFAULT_MAX_PRICE, ge=0),
    sort: str = "name",
    catalog: CatalogService = Depends(get_catalog_service),
):
    products = await catalog.browse(categories=category, max_price=max_price, sort_by=sort)
    return ok([product_out(p) for p in products], {"count": len(products)})


@router.get("/products/{product_id}")
async def get_product(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    return ok(product_out(await catalog.get_product(product_id)))


@router.get("/categories")
async def list_categories(catalog: CatalogService = Depends(get_catalog_service)):
    return ok(await catalog.categories())
