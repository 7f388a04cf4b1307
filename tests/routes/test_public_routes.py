import apps.storefront.routes.health as health


async def test_root_lists_routes(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert "/catalog" in res.json()["routes"]


async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["ok"] is True


async def test_store_health_without_client_is_503(client, monkeypatch):
    monkeypatch.setattr(health, "get_supabase", lambda: None)
    res = await client.get("/health/store")
    assert res.status_code == 503
    assert res.json()["error"] == "store_unavailable"


async def test_store_health_with_client(client, sb, monkeypatch):
    monkeypatch.setattr(health, "get_supabase", lambda: sb)
    res = await client.get("/health/store")
    assert res.status_code == 200


async def test_catalog_listing_filters(client):
    res = await client.get("/catalog/products", params={"category": ["garden-fresh"], "sort": "price"})
    body = res.json()
    assert res.status_code == 200
    assert body["meta"]["count"] == 3
    assert body["data"][0]["id"] == "veg-lemon-pickle"
    assert body["data"][0]["category_name"] == "Garden Fresh"


async def test_unknown_product_is_404_envelope(client):
    res = await client.get("/catalog/products/pickled-socks")
    assert res.status_code == 404
    assert res.json()["ok"] is False


async def test_categories(client):
    res = await client.get("/catalog/categories")
    assert {c["id"] for c in res.json()["data"]} == {"premium-meats", "ocean-delights", "garden-fresh"}


async def test_plans_and_tiers_are_public(client):
    plans = await client.get("/subscriptions/plans")
    tiers = await client.get("/loyalty/tiers")
    assert len(plans.json()["data"]) == 3
    assert [t["key"] for t in tiers.json()["data"]["tiers"]] == ["bronze", "silver", "gold", "platinum"]
