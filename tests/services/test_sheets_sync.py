"""SheetsSync over a mocked Sheets client and the fake store."""

import json
from unittest.mock import MagicMock

import pytest

from apps.storefront.services.catalog.catalog_service import CatalogService
from apps.storefront.services.sheets.google_client import GoogleAPIError, GoogleSheetsClient
from apps.storefront.services.sheets.sheets_sync import PRODUCT_HEADERS, SheetsSync

MANGO_ROW = [
    "veg-mango-pickle", "Classic Mango Pickle", "garden-fresh", "199", "229", "Raw mango", "Mango", "400g",
    "24 months", "true", "false", "classic", "2026-01-01",
]


@pytest.fixture
def client():
    return MagicMock(spec=GoogleSheetsClient)


@pytest.fixture
def sheets(client, store):
    return SheetsSync(
        client,
        store,
        products_sheet_id="products-sheet",
        orders_sheet_id="orders-sheet",
        backup_folder_id="backup-folder",
    )


async def test_load_products_caches_sheet_rows(sheets, client, sb):
    client.get_values.return_value = [PRODUCT_HEADERS, MANGO_ROW]

    products = await sheets.load_products()

    assert [p["id"] for p in products] == ["veg-mango-pickle"]
    cached = sb.rows("products")
    assert len(cached) == 1
    assert cached[0]["source"] == "google_sheets"
    assert cached[0]["price"] == 199.0
    assert cached[0]["last_synced"]


async def test_empty_sheet_loads_nothing(sheets, client, sb):
    client.get_values.return_value = [PRODUCT_HEADERS]
    assert await sheets.load_products() == []
    assert sb.rows("products") == []


async def test_update_product_writes_sheet_row_and_store(sheets, client, sb):
    sb.seed("products", {"id": "veg-mango-pickle", "name": "Classic Mango Pickle", "price": 199.0})
    client.get_values.return_value = [PRODUCT_HEADERS, MANGO_ROW]

    out = await sheets.update_product("veg-mango-pickle", {"price": 209.0, "in_stock": False})

    assert out["synced"] is True
    sheet_id, range_, rows = client.update_values.call_args.args
    assert sheet_id == "products-sheet"
    assert range_ == "Products!A2:M2"
    assert rows[0][PRODUCT_HEADERS.index("price")] == 209.0
    assert rows[0][PRODUCT_HEADERS.index("inStock")] == "false"

    saved = sb.rows("products")[0]
    assert saved["price"] == 209.0
    assert saved["last_synced"] == saved["last_updated"]


async def test_sheet_failure_still_updates_store(sheets, client, sb):
    sb.seed("products", {"id": "veg-mango-pickle", "name": "Classic Mango Pickle", "price": 199.0})
    client.get_values.side_effect = GoogleAPIError("quota exceeded")

    out = await sheets.update_product("veg-mango-pickle", {"price": 215.0})

    assert out["synced"] is False
    saved = sb.rows("products")[0]
    assert saved["price"] == 215.0
    assert "last_synced" not in saved
    client.update_values.assert_not_called()


async def test_product_missing_from_sheet_is_store_only(sheets, client, sb):
    sb.seed("products", {"id": "garlic", "name": "Garlic Pickle", "price": 189.0})
    client.get_values.return_value = [PRODUCT_HEADERS, MANGO_ROW]

    out = await sheets.update_product("garlic", {"price": 195.0})

    assert out["synced"] is False
    assert sb.rows("products")[0]["price"] == 195.0


async def test_add_product_appends_row(sheets, client, sb):
    client.get_values.return_value = [PRODUCT_HEADERS]

    out = await sheets.add_product({"id": "garlic", "name": "Garlic Pickle", "price": 189, "tags": ["hot", "garlic"]})

    assert out["synced"] is True
    row = client.append_values.call_args.args[2][0]
    assert row[0] == "garlic"
    assert row[PRODUCT_HEADERS.index("tags")] == "hot, garlic"
    assert sb.rows("products")[0]["source"] == "google_sheets"


async def test_add_product_sheet_failure_still_writes_store(sheets, client, sb):
    client.get_values.return_value = [PRODUCT_HEADERS]
    client.append_values.side_effect = GoogleAPIError("sheet is read-only")

    out = await sheets.add_product({"id": "garlic", "name": "Garlic Pickle", "price": 189})

    assert out["synced"] is False
    saved = sb.rows("products")[0]
    assert saved["id"] == "garlic"
    assert "source" not in saved


async def test_catalog_edit_through_failing_sheet(store, client, sb):
    client.get_values.side_effect = GoogleAPIError("offline")
    catalog = CatalogService(store, sheets=SheetsSync(client, store, products_sheet_id="products-sheet"))

    out = await catalog.update_product("veg-mango-pickle", {"price": 205.0})

    assert out["synced"] is False
    mango = next(r for r in sb.rows("products") if r["id"] == "veg-mango-pickle")
    assert mango["price"] == 205.0


def test_sync_order_appends_to_order_log(sheets, client):
    order = {"id": "ORDER_1", "user_email": "a@example.com", "items": [], "total": "199.00", "status": "confirmed"}
    assert sheets.sync_order(order) is True
    assert client.append_values.call_args.args[0] == "orders-sheet"

    client.append_values.side_effect = GoogleAPIError("down")
    assert sheets.sync_order(order) is False


async def test_backup_drops_contact_details(sheets, client, sb):
    sb.seed(
        "users",
        {"id": "u-1", "email": "meera@example.com", "phone": "9876543210", "display_name": "Meera", "loyalty_points": 40},
    )
    sb.seed("orders", {"id": "ORDER_1", "user_id": "u-1", "phone_number": "9876543210", "total": "199.00"})
    client.upload_json.return_value = {"id": "drive-file-1"}

    out = await sheets.create_backup()

    assert out["file_id"] == "drive-file-1"
    name, payload = client.upload_json.call_args.args
    assert name == out["name"]
    assert name.startswith("picklish_backup_")
    assert client.upload_json.call_args.kwargs["parent_id"] == "backup-folder"

    user = payload["users"][0]
    assert user["display_name"] == "Meera"
    assert "email" not in user
    assert "phone" not in user
    assert "meera@example.com" not in json.dumps(payload["users"])
    assert len(payload["orders"]) == 1
