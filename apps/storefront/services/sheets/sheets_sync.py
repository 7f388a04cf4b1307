"""
Spreadsheet sync for the product catalog, inventory, and order log, plus
JSON backups to Drive.

The sheet is an editing surface for the catalog; the products table is the
cache the storefront reads. Sheet failures never block a store write.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from fastapi.concurrency import run_in_threadpool

from apps.storefront.repositories.store import Store
from apps.storefront.services.core_service import NotFoundError, StoreError
from apps.storefront.services.sheets.google_client import GoogleSheetsClient
from apps.storefront.utils.clock import iso, utcnow

log = logging.getLogger("picklish.sheets")

PRODUCTS_RANGE = "Products!A:M"
PRODUCT_HEADERS = [
    "id", "name", "category", "price", "originalPrice", "description",
    "ingredients", "weight", "shelfLife", "inStock", "featured", "tags", "lastUpdated",
]

INVENTORY_RANGE = "Inventory!A:F"
INVENTORY_HEADERS = ["productId", "currentStock", "lowStockThreshold", "lastRestocked", "supplier", "notes"]
DEFAULT_LOW_STOCK_THRESHOLD = 10

ORDER_HEADERS = [
    "orderId", "customerEmail", "items", "total", "status", "paymentStatus",
    "createdAt", "shippingAddress", "phoneNumber", "notes", "trackingNumber", "deliveredAt",
]
ORDERS_RANGE = f"Orders!A:{chr(ord('A') + len(ORDER_HEADERS) - 1)}"

# sheet header -> products table column
HEADER_TO_FIELD = {
    "originalPrice": "original_price",
    "shelfLife": "shelf_life",
    "inStock": "in_stock",
    "lastUpdated": "last_updated",
}
FIELD_TO_HEADER = {v: k for k, v in HEADER_TO_FIELD.items()}

_LAST_COL = chr(ord("A") + len(PRODUCT_HEADERS) - 1)
_INV_LAST_COL = chr(ord("A") + len(INVENTORY_HEADERS) - 1)


def _float(value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: str) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def parse_product_rows(values: List[List[str]]) -> List[Dict[str, Any]]:
    """Header row + data rows -> product documents (table column names)."""
    if not values or len(values) < 2:
        return []

    headers = values[0]
    products = []
    for row in values[1:]:
        if not row or not row[0]:
            continue
        doc: Dict[str, Any] = {}
        for i, header in enumerate(headers):
            value = row[i] if i < len(row) else ""
            if header in ("price", "originalPrice"):
                parsed: Any = _float(value)
            elif header in ("inStock", "featured"):
                parsed = str(value).strip().lower() == "true"
            elif header == "tags":
                parsed = [t.strip() for t in value.split(",") if t.strip()] if value else []
            else:
                parsed = value
            doc[HEADER_TO_FIELD.get(header, header)] = parsed
        products.append(doc)
    return products


def parse_inventory_rows(values: List[List[str]]) -> Dict[str, Dict[str, Any]]:
    if not values or len(values) < 2:
        return {}

    headers = values[0]
    inventory: Dict[str, Dict[str, Any]] = {}
    for row in values[1:]:
        if not row or not row[0]:
            continue
        entry: Dict[str, Any] = {}
        for i, header in enumerate(headers):
            value = row[i] if i < len(row) else ""
            entry[header] = _int(value) if header in ("currentStock", "lowStockThreshold") else value
        inventory[row[0]] = entry
    return inventory


def to_cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if value is None:
        return ""
    if isinstance(value, (int, float, str)):
        return value
    return str(value)


def product_to_row(data: Dict[str, Any], headers: List[str] = PRODUCT_HEADERS) -> List[Any]:
    row = []
    for header in headers:
        if header == "lastUpdated":
            row.append(iso())
        else:
            row.append(to_cell(data.get(HEADER_TO_FIELD.get(header, header))))
    return row


def order_to_row(order: Dict[str, Any]) -> List[Any]:
    items = [
        {"name": i.get("name"), "quantity": i.get("quantity"), "price": i.get("price")}
        for i in order.get("items") or []
    ]
    address = order.get("shipping_address") or ""
    if isinstance(address, dict):
        address = ", ".join(str(v) for v in address.values() if v)
    return [
        order.get("id"),
        order.get("user_email") or "",
        json.dumps(items),
        to_cell(order.get("total")),
        order.get("status") or "",
        order.get("payment_status") or "",
        order.get("created_at") or iso(),
        address,
        order.get("phone_number") or "",
        order.get("notes") or "",
        order.get("tracking_number") or "",
        order.get("delivered_at") or "",
    ]


def _strip_private(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k not in ("email", "phone", "phone_number")}


class SheetsSync:
    def __init__(
        self,
        client: GoogleSheetsClient,
        store: Store,
        *,
        products_sheet_id: str,
        inventory_sheet_id: str = "",
        orders_sheet_id: str = "",
        backup_folder_id: str = "",
    ) -> None:
        self.client = client
        self.store = store
        self.products_sheet_id = products_sheet_id
        self.inventory_sheet_id = inventory_sheet_id
        self.orders_sheet_id = orders_sheet_id
        self.backup_folder_id = backup_folder_id

    # -----------------------------
    # Products
    # -----------------------------
    async def load_products(self) -> List[Dict[str, Any]]:
        """Products from the sheet, cached into the products table. Empty when the sheet has none."""
        values = await run_in_threadpool(self.client.get_values, self.products_sheet_id, PRODUCTS_RANGE)
        products = parse_product_rows(values)
        if not products:
            log.info("no products found in sheet")
            return []

        synced_at = iso()
        for doc in products:
            try:
                await self.store.products.upsert({**doc, "source": "google_sheets", "last_synced": synced_at})
            except Exception:
                log.exception("caching product %s failed", doc.get("id"))
        return products

    async def update_product(self, product_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        synced = True
        try:
            values = await run_in_threadpool(self.client.get_values, self.products_sheet_id, PRODUCTS_RANGE)
            if not values:
                raise StoreError("No data found in products sheet", 502)

            headers = values[0]
            row_index = next(
                (i for i, row in enumerate(values) if i > 0 and row and row[0] == product_id), -1
            )
            if row_index == -1:
                raise StoreError("Product not found in sheet", 404)

            row = list(values[row_index]) + [""] * (len(headers) - len(values[row_index]))
            for key, value in updates.items():
                header = FIELD_TO_HEADER.get(key, key)
                if header in headers:
                    row[headers.index(header)] = to_cell(value)
            if "lastUpdated" in headers:
                row[headers.index("lastUpdated")] = iso()

            n = row_index + 1
            await run_in_threadpool(
                self.client.update_values, self.products_sheet_id, f"Products!A{n}:{_LAST_COL}{n}", [row]
            )
        except Exception as e:
            log.warning("sheet update for %s failed, writing store only: %s", product_id, e)
            synced = False

        changes = {**updates, "last_updated": iso()}
        if synced:
            changes["last_synced"] = changes["last_updated"]
        saved = await self.store.products.update(product_id, changes)
        if saved is None:
            raise NotFoundError("Product not found")
        return {"product": saved, "synced": synced}

    async def add_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        synced = True
        try:
            header_rows = await run_in_threadpool(
                self.client.get_values, self.products_sheet_id, f"Products!A1:{_LAST_COL}1"
            )
            headers = header_rows[0] if header_rows else PRODUCT_HEADERS
            await run_in_threadpool(
                self.client.append_values, self.products_sheet_id, PRODUCTS_RANGE, [product_to_row(data, headers)]
            )
        except Exception as e:
            log.warning("sheet append for %s failed, writing store only: %s", data.get("id"), e)
            synced = False

        doc = {**data, "created_at": iso()}
        if synced:
            doc.update({"source": "google_sheets", "last_synced": doc["created_at"]})
        saved = await self.store.products.upsert(doc)
        return {"product": saved, "synced": synced}

    # -----------------------------
    # Orders
    # -----------------------------
    def sync_order(self, order: Dict[str, Any]) -> bool:
        if not self.orders_sheet_id:
            return False
        try:
            self.client.append_values(self.orders_sheet_id, ORDERS_RANGE, [order_to_row(order)])
            return True
        except Exception as e:
            log.warning("order %s sheet sync failed: %s", order.get("id"), e)
            return False

    # -----------------------------
    # Inventory
    # -----------------------------
    def load_inventory(self) -> Dict[str, Dict[str, Any]]:
        if not self.inventory_sheet_id:
            return {}
        return parse_inventory_rows(self.client.get_values(self.inventory_sheet_id, INVENTORY_RANGE))

    def update_inventory(self, product_id: str, stock_change: int, notes: str = "") -> Dict[str, Any]:
        if not self.inventory_sheet_id:
            raise StoreError("Inventory sheet is not configured", 501)

        values = self.client.get_values(self.inventory_sheet_id, INVENTORY_RANGE)
        row_index = next(
            (i for i, row in enumerate(values) if i > 0 and row and row[0] == product_id), -1
        )
        now = iso()

        if row_index == -1:
            new_stock = max(0, int(stock_change))
            row = [product_id, new_stock, DEFAULT_LOW_STOCK_THRESHOLD, now, "", notes]
            self.client.append_values(self.inventory_sheet_id, INVENTORY_RANGE, [row])
        else:
            row = list(values[row_index]) + [""] * (len(INVENTORY_HEADERS) - len(values[row_index]))
            new_stock = max(0, _int(row[1]) + int(stock_change))
            row[1] = new_stock
            row[3] = now
            if notes:
                row[5] = notes
            n = row_index + 1
            self.client.update_values(self.inventory_sheet_id, f"Inventory!A{n}:{_INV_LAST_COL}{n}", [row])

        return {"product_id": product_id, "current_stock": new_stock}

    # -----------------------------
    # Backup
    # -----------------------------
    async def create_backup(self) -> Dict[str, Any]:
        payload = {
            "timestamp": iso(),
            "products": await self._safe_all(self.store.products),
            "orders": await self._safe_all(self.store.orders),
            "subscriptions": await self._safe_all(self.store.subscriptions),
            "users": [_strip_private(u) for u in await self._safe_all(self.store.users)],
        }
        name = f"picklish_backup_{utcnow().date().isoformat()}.json"
        result = await run_in_threadpool(
            self.client.upload_json, name, payload, parent_id=self.backup_folder_id or None
        )
        log.info("backup %s uploaded", name)
        return {"name": name, "file_id": result.get("id")}

    @staticmethod
    async def _safe_all(repo) -> List[Dict[str, Any]]:
        try:
            return await repo.find()
        except Exception:
            log.exception("backup read of %s failed", repo.table)
            return []
