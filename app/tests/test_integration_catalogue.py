import pytest


@pytest.mark.asyncio
async def test_create_product_fills_syp_prices(async_client, admin_headers):
    resp = await async_client.post(
        "/api/products",
        json={"name": "Ka'ak", "category": "bread", "unit": "bag", "price_eur": 1.2, "cost_eur": 0.6},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    product = resp.json()["data"]
    assert product["price_syp"] == 18000
    assert product["cost_syp"] == 9000
    assert product["profit_margin_eur"] == pytest.approx(0.6)

    resp = await async_client.post(
        "/api/products",
        json={"name": "Ka'ak", "unit": "bag", "price_eur": 1.0},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "يوجد منتج بهذا الاسم مسبقاً"


@pytest.mark.asyncio
async def test_distributor_cannot_manage_products(async_client, distributor_headers):
    resp = await async_client.post(
        "/api/products", json={"name": "Donut", "unit": "piece", "price_eur": 1.0}, headers=distributor_headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_price_change_is_recorded(async_client, admin_headers, test_products):
    bread = test_products[0]
    resp = await async_client.put(
        f"/api/products/{bread.id}",
        json={"price_eur": 2.5, "change_reason": "flour prices"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["price_eur"] == 2.5
    assert resp.json()["data"]["price_syp"] == 37500

    resp = await async_client.get("/api/pricing/history", params={"product_id": bread.id}, headers=admin_headers)
    history = resp.json()["data"]["history"]
    assert len(history) == 1
    assert history[0]["old_price_eur"] == 2.0
    assert history[0]["new_price_eur"] == 2.5
    assert history[0]["change_reason"] == "flour prices"


@pytest.mark.asyncio
async def test_product_search_and_toggle(async_client, admin_headers, test_products):
    resp = await async_client.get("/api/products/search", params={"q": "b"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = await async_client.get("/api/products/search", params={"q": "bread"}, headers=admin_headers)
    assert [p["name"] for p in resp.json()["data"]] == ["Arabic Bread"]

    resp = await async_client.patch(f"/api/products/{test_products[0].id}/toggle-status", headers=admin_headers)
    assert resp.json()["data"]["status"] == "inactive"

    # inactive products drop out of search
    resp = await async_client.get("/api/products/search", params={"q": "bread"}, headers=admin_headers)
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_product_filters_and_statistics(async_client, admin_headers, test_products):
    resp = await async_client.get("/api/products", params={"category": "pastry"}, headers=admin_headers)
    products = resp.json()["data"]["products"]
    assert [p["name"] for p in products] == ["Croissant"]

    resp = await async_client.get("/api/products/statistics", headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["total"] == 2
    assert stats["active"] == 2
    assert {c["category"] for c in stats["by_category"]} == {"bread", "pastry"}


@pytest.mark.asyncio
async def test_delete_product_used_in_orders(async_client, admin_headers, confirmed_order, test_products):
    resp = await async_client.delete(f"/api/products/{test_products[0].id}", headers=admin_headers)
    assert resp.status_code == 400

    resp = await async_client.delete(f"/api/products/{test_products[1].id}", headers=admin_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"/api/products/{test_products[1].id}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_store_validates_coordinates(async_client, admin_headers):
    resp = await async_client.post(
        "/api/stores", json={"name": "Far Away", "latitude": 120, "longitude": 10}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = await async_client.post(
        "/api/stores",
        json={"name": "Jasmine Cafe", "category": "cafe", "latitude": 33.49, "longitude": 36.27},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    store = resp.json()["data"]
    assert store["category"] == "cafe"
    assert store["status"] == "active"

    resp = await async_client.post("/api/stores", json={"name": "Jasmine Cafe"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "يوجد محل بهذا الاسم مسبقاً"


@pytest.mark.asyncio
async def test_nearby_stores(async_client, admin_headers, test_store):
    resp = await async_client.get(
        "/api/stores/nearby", params={"lat": 33.5138, "lng": 36.2765, "radius": 1}, headers=admin_headers
    )
    assert resp.status_code == 200
    stores = resp.json()["data"]
    assert len(stores) == 1
    assert stores[0]["id"] == test_store.id
    assert stores[0]["distance_km"] == 0

    # Aleppo is far outside the radius
    resp = await async_client.get(
        "/api/stores/nearby", params={"lat": 36.2021, "lng": 37.1343, "radius": 5}, headers=admin_headers
    )
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_store_orders_and_delete(async_client, async_db_session, admin_headers, confirmed_order, test_store):
    resp = await async_client.get(f"/api/stores/{test_store.id}/orders", headers=admin_headers)
    orders = resp.json()["data"]["orders"]
    assert [o["id"] for o in orders] == [confirmed_order.id]

    resp = await async_client.delete(f"/api/stores/{test_store.id}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا يمكن حذف المحل لوجود طلبات نشطة مرتبطة به"

    confirmed_order.status = "delivered"
    await async_db_session.commit()
    resp = await async_client.get("/api/stores/statistics", headers=admin_headers)
    assert resp.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_distributor_cannot_list_store_orders(async_client, distributor_headers, test_store):
    resp = await async_client.get(f"/api/stores/{test_store.id}/orders", headers=distributor_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_low_stock(async_client, async_db_session, admin_headers, test_products):
    test_products[1].stock_quantity = 2
    test_products[1].minimum_stock = 10
    await async_db_session.commit()

    resp = await async_client.get("/api/products/low-stock", headers=admin_headers)
    low = resp.json()["data"]
    assert [p["name"] for p in low] == ["Croissant"]
    assert low[0]["is_low_stock"] is True


@pytest.mark.asyncio
async def test_discontinued_product_cannot_be_toggled(async_client, admin_headers, test_products):
    bread = test_products[0]
    resp = await async_client.put(f"/api/products/{bread.id}", json={"status": "discontinued"}, headers=admin_headers)
    assert resp.status_code == 200

    resp = await async_client.patch(f"/api/products/{bread.id}/toggle-status", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا يمكن تفعيل منتج متوقف نهائياً"

    resp = await async_client.get(f"/api/products/{bread.id}", headers=admin_headers)
    assert resp.json()["data"]["status"] == "discontinued"


@pytest.mark.asyncio
async def test_store_update_rejects_taken_name(async_client, admin_headers, test_store):
    resp = await async_client.post("/api/stores", json={"name": "Olive Grocery"}, headers=admin_headers)
    assert resp.status_code == 201
    other = resp.json()["data"]

    resp = await async_client.put(f"/api/stores/{other['id']}", json={"name": test_store.name}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "يوجد محل بهذا الاسم مسبقاً"

    resp = await async_client.put(f"/api/stores/{other['id']}", json={"name": None}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "name"

    resp = await async_client.put(
        f"/api/stores/{other['id']}", json={"name": "Olive Grocery", "credit_limit_eur": 500}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["is_within_credit_limit"] is True


@pytest.mark.asyncio
async def test_product_update_rejects_null_price(async_client, admin_headers, test_products):
    bread = test_products[0]
    resp = await async_client.put(f"/api/products/{bread.id}", json={"price_eur": None}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "بيانات غير صحيحة"
    assert resp.json()["errors"][0]["field"] == "price_eur"

    resp = await async_client.get(f"/api/products/{bread.id}", headers=admin_headers)
    assert resp.json()["data"]["price_eur"] == 2.0
