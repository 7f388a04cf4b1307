"""Sheet row parsing and row building for the catalog, inventory and order log."""

import json
from unittest.mock import MagicMock

from apps.storefront.services.sheets.sheets_sync import (
    PRODUCT_HEADERS,
    SheetsSync,
    order_to_row,
    parse_inventory_rows,
    parse_product_rows,
    product_to_row,
)

SHEET = [
    PRODUCT_HEADERS,
    ["veg-mango-pickle", "Classic Mango Pickle", "garden-fresh", "199", "229", "Raw mango", "Mango", "400g",
     "24 months", "TRUE", "false", "classic, tangy", "2026-01-01"],
    ["", "blank id row is skipped"],
    ["veg-lemon-pickle", "Zesty Lemon Pickle", "garden-fresh", "not-a-number"],
]


def test_parse_product_rows_types_columns():
    products = parse_product_rows(SHEET)
    assert [p["id"] for p in products] == ["veg-mango-pickle", "veg-lemon-pickle"]
    mango = products[0]
    assert mango["price"] == 199.0
    assert mango["original_price"] == 229.0
    assert mango["in_stock"] is True
    assert mango["featured"] is False
    assert mango["tags"] == ["classic", "tangy"]
    assert mango["shelf_life"] == "24 months"


def test_short_rows_fill_defaults():
    lemon = parse_product_rows(SHEET)[1]
    assert lemon["price"] == 0.0
    assert lemon["in_stock"] is False
    assert lemon["tags"] == []


def test_header_only_sheet_is_empty():
    assert parse_product_rows([PRODUCT_HEADERS]) == []
    assert parse_product_rows([]) == []


def test_parse_inventory_rows():
    values = [
        ["productId", "currentStock", "lowStockThreshold", "lastRestocked", "supplier", "notes"],
        ["veg-mango-pickle", "42", "10", "2026-01-01", "Farm Co", ""],
    ]
    inv = parse_inventory_rows(values)
    assert inv["veg-mango-pickle"]["currentStock"] == 42
    assert inv["veg-mango-pickle"]["supplier"] == "Farm Co"


def test_product_to_row_uses_sheet_cells():
    row = product_to_row({"id": "p1", "name": "P", "in_stock": True, "tags": ["a", "b"], "original_price": None})
    assert row[0] == "p1"
    assert row[PRODUCT_HEADERS.index("inStock")] == "true"
    assert row[PRODUCT_HEADERS.index("tags")] == "a, b"
    assert row[PRODUCT_HEADERS.index("originalPrice")] == ""


def test_order_to_row_flattens_items_and_address():
    row = order_to_row(
        {
            "id": "ORDER_1",
            "user_email": "a@example.com",
            "items": [{"name": "Mango", "quantity": 2, "price": "199.00", "image": "x"}],
            "total": "398.00",
            "status": "confirmed",
            "payment_status": "completed",
            "shipping_address": {"line1": "12 MG Road", "city": "Pune"},
        }
    )
    assert row[0] == "ORDER_1"
    assert json.loads(row[2]) == [{"name": "Mango", "quantity": 2, "price": "199.00"}]
    assert row[7] == "12 MG Road, Pune"


def _sync(client):
    return SheetsSync(client, MagicMock(), products_sheet_id="p", inventory_sheet_id="inv", orders_sheet_id="ord")


def test_update_inventory_never_goes_below_zero():
    client = MagicMock()
    client.get_values.return_value = [
        ["productId", "currentStock", "lowStockThreshold", "lastRestocked", "supplier", "notes"],
        ["veg-mango-pickle", "3", "10", "", "", ""],
    ]
    out = _sync(client).update_inventory("veg-mango-pickle", -5, "damaged")
    assert out == {"product_id": "veg-mango-pickle", "current_stock": 0}
    range_, rows = client.update_values.call_args.args[1:]
    assert range_ == "Inventory!A2:F2"
    assert rows[0][1] == 0
    assert rows[0][5] == "damaged"


def test_update_inventory_appends_unknown_product():
    client = MagicMock()
    client.get_values.return_value = [["productId", "currentStock"]]
    out = _sync(client).update_inventory("new-pickle", 12)
    assert out["current_stock"] == 12
    appended = client.append_values.call_args.args[2][0]
    assert appended[:3] == ["new-pickle", 12, 10]


def test_sync_order_reports_failure():
    client = MagicMock()
    client.append_values.side_effect = RuntimeError("quota")
    assert _sync(client).sync_order({"id": "ORDER_1"}) is False
