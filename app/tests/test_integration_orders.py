from datetime import date, timedelta

import pytest

from conftest import auth_headers_for, create_user


def order_payload(store, products, **overrides):
    bread, croissant = products
    payload = {
        "store_id": store.id,
        "delivery_date": str(date.today() + timedelta(days=3)),
        "priority": "medium",
        "discount_amount_eur": 1.0,
        "items": [
            {"product_id": bread.id, "quantity": 5},
            {"product_id": croissant.id, "quantity": 2, "discount_amount_eur": 0.5},
        ],
    }
    payload.update(overrides)
    return payload


async def create_order(client, headers, store, products, **overrides):
    resp = await client.post("/api/orders", json=order_payload(store, products, **overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def set_status(client, headers, order_id, status):
    return await client.patch(f"/api/orders/{order_id}/status", json={"status": status}, headers=headers)


@pytest.mark.asyncio
async def test_create_order_prices_from_catalogue(async_client, admin_headers, admin_user, test_store, test_products):
    order = await create_order(async_client, admin_headers, test_store, test_products)

    assert order["order_number"] == f"ORD-{date.today():%Y%m%d}-0001"
    assert order["status"] == "draft"
    assert order["payment_status"] == "pending"
    assert order["scheduling_status"] == "unscheduled"
    assert order["priority"] == "normal"
    assert order["store_name"] == "Corner Market"
    assert order["created_by_name"] == admin_user.full_name

    assert order["total_amount_eur"] == 13.0
    assert order["discount_amount_eur"] == 1.5
    assert order["final_amount_eur"] == 11.5
    assert order["total_amount_syp"] == 195000
    assert order["final_amount_syp"] == 172500
    assert order["commission_eur"] == pytest.approx(0.55)

    croissant_line = next(i for i in order["items"] if i["product_name"] == "Croissant")
    assert croissant_line["unit_price_eur"] == 1.5
    assert croissant_line["final_price_eur"] == 2.5

    second = await create_order(async_client, admin_headers, test_store, test_products)
    assert second["order_number"] == f"ORD-{date.today():%Y%m%d}-0002"

    resp = await async_client.get(f"/api/stores/{test_store.id}", headers=admin_headers)
    assert resp.json()["data"]["total_orders"] == 2


@pytest.mark.asyncio
async def test_create_order_rejects_bad_items(async_client, async_db_session, admin_headers, test_store, test_products):
    resp = await async_client.post(
        "/api/orders",
        json=order_payload(test_store, test_products, items=[{"product_id": 999, "quantity": 1}]),
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "المنتج 999 غير موجود"

    resp = await async_client.post(
        "/api/orders",
        json=order_payload(test_store, test_products, items=[{"product_id": test_products[0].id, "quantity": 0}]),
        headers=admin_headers,
    )
    assert resp.status_code == 400

    test_products[1].status = "inactive"
    await async_db_session.commit()
    resp = await async_client.post("/api/orders", json=order_payload(test_store, test_products), headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "المنتج Croissant غير متاح"

    resp = await async_client.post(
        "/api/orders", json=order_payload(test_store, test_products, store_id=999), headers=admin_headers
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_viewer_cannot_create_orders(async_client, viewer_headers, test_store, test_products):
    resp = await async_client.post("/api/orders", json=order_payload(test_store, test_products), headers=viewer_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_update_and_delete_only_while_draft(async_client, admin_headers, test_store, test_products):
    order = await create_order(async_client, admin_headers, test_store, test_products)

    resp = await async_client.put(
        f"/api/orders/{order['id']}",
        json={"items": [{"product_id": test_products[0].id, "quantity": 10}], "notes": "double bread"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert len(updated["items"]) == 1
    assert updated["total_amount_eur"] == 20.0
    # order-level discount survives the item change
    assert updated["discount_amount_eur"] == 1.0
    assert updated["final_amount_eur"] == 19.0
    assert updated["notes"] == "double bread"

    await set_status(async_client, admin_headers, order["id"], "cancelled")

    resp = await async_client.put(f"/api/orders/{order['id']}", json={"notes": "late"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا يمكن تحديث الطلب بعد تأكيده"

    resp = await async_client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert resp.status_code == 400

    draft_order = await create_order(async_client, admin_headers, test_store, test_products)
    resp = await async_client.delete(f"/api/orders/{draft_order['id']}", headers=admin_headers)
    assert resp.status_code == 200
    resp = await async_client.get(f"/api/orders/{draft_order['id']}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_distributors_see_only_their_orders(
    async_client, async_db_session, admin_headers, distributor_headers, test_store, test_products
):
    admin_order = await create_order(async_client, admin_headers, test_store, test_products)
    own_order = await create_order(async_client, distributor_headers, test_store, test_products)

    resp = await async_client.get(f"/api/orders/{admin_order['id']}", headers=distributor_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "غير مصرح لك بالوصول إلى هذا الطلب"

    resp = await async_client.get("/api/orders", headers=distributor_headers)
    assert [o["id"] for o in resp.json()["data"]["orders"]] == [own_order["id"]]

    resp = await async_client.get("/api/orders", headers=admin_headers)
    assert resp.json()["data"]["pagination"]["totalItems"] == 2

    other = await create_user(async_db_session, "south_driver", delivery_zone="south")
    resp = await async_client.patch(
        f"/api/orders/{own_order['id']}/status", json={"status": "confirmed"}, headers=auth_headers_for(other)
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_invalid_status_transition(async_client, admin_headers, test_store, test_products):
    order = await create_order(async_client, admin_headers, test_store, test_products)
    resp = await set_status(async_client, admin_headers, order["id"], "delivered")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_confirm_creates_scheduling_draft(
    async_client, admin_headers, distributor_user, test_store, test_products
):
    order = await create_order(async_client, admin_headers, test_store, test_products)

    resp = await set_status(async_client, admin_headers, order["id"], "confirmed")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "confirmed"
    assert data["scheduling_status"] == "pending_review"
    # the draft does not assign the order by itself
    assert data["assigned_distributor_id"] is None

    draft = data["scheduling_draft"]
    assert draft["order_id"] == order["id"]
    assert draft["status"] == "pending_review"
    assert draft["suggested_distributor_id"] == distributor_user.id
    assert 0 <= draft["confidence_score"] <= 100
    assert draft["reasoning_text"]


@pytest.mark.asyncio
async def test_confirm_without_distributors_requires_manual_scheduling(
    async_client, admin_headers, test_store, test_products
):
    order = await create_order(async_client, admin_headers, test_store, test_products)
    resp = await set_status(async_client, admin_headers, order["id"], "confirmed")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["scheduling_status"] == "manual_required"
    assert "scheduling_draft" not in data


@pytest.mark.asyncio
async def test_confirm_with_auto_scheduling_disabled(
    async_client, monkeypatch, admin_headers, distributor_user, test_store, test_products
):
    monkeypatch.setenv("AUTO_SCHEDULING_ENABLED", "false")
    order = await create_order(async_client, admin_headers, test_store, test_products)
    resp = await set_status(async_client, admin_headers, order["id"], "confirmed")
    data = resp.json()["data"]
    assert data["scheduling_status"] == "unscheduled"
    assert "scheduling_draft" not in data


@pytest.mark.asyncio
async def test_delivery_updates_sales_totals(async_client, admin_headers, test_store, test_products):
    order = await create_order(async_client, admin_headers, test_store, test_products)
    for status in ("confirmed", "in_progress", "delivered"):
        resp = await set_status(async_client, admin_headers, order["id"], status)
        assert resp.status_code == 200, resp.text

    resp = await async_client.get(f"/api/products/{test_products[0].id}", headers=admin_headers)
    bread = resp.json()["data"]
    assert bread["total_sold"] == 5
    assert bread["stock_quantity"] == 95
    assert bread["total_revenue_eur"] == 10.0

    resp = await async_client.get(f"/api/stores/{test_store.id}", headers=admin_headers)
    store = resp.json()["data"]
    assert store["completed_orders"] == 1
    assert store["total_purchases_eur"] == 11.5

    # final states stay put
    resp = await set_status(async_client, admin_headers, order["id"], "cancelled")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_payment_status_requires_admin_or_manager(
    async_client, admin_headers, manager_headers, distributor_headers, test_store, test_products
):
    order = await create_order(async_client, distributor_headers, test_store, test_products)

    resp = await async_client.patch(
        f"/api/orders/{order['id']}/payment-status", json={"payment_status": "paid"}, headers=distributor_headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "غير مصرح لك بتحديث حالة الدفع"

    resp = await async_client.patch(
        f"/api/orders/{order['id']}/payment-status", json={"payment_status": "paid"}, headers=manager_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["payment_status"] == "paid"

    resp = await async_client.patch(
        f"/api/orders/{order['id']}/payment-status", json={"payment_status": "free"}, headers=admin_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_order_filters_today_and_statistics(async_client, admin_headers, test_store, test_products):
    first = await create_order(async_client, admin_headers, test_store, test_products, priority="high")
    await create_order(async_client, admin_headers, test_store, test_products)
    await set_status(async_client, admin_headers, first["id"], "cancelled")

    resp = await async_client.get("/api/orders", params={"priority": "high"}, headers=admin_headers)
    assert [o["id"] for o in resp.json()["data"]["orders"]] == [first["id"]]

    resp = await async_client.get("/api/orders", params={"search": "corner"}, headers=admin_headers)
    assert resp.json()["data"]["pagination"]["totalItems"] == 2

    resp = await async_client.get("/api/orders/today", headers=admin_headers)
    assert len(resp.json()["data"]) == 2

    resp = await async_client.get("/api/orders/statistics", headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["total_orders"] == 2
    assert stats["by_status"]["cancelled"] == 1
    assert stats["by_status"]["draft"] == 1
    assert stats["total_amount_eur"] == 11.5
    assert stats["pending_payments"] == 2
    assert stats["today_orders"] == 2


@pytest.mark.asyncio
async def test_distributor_cannot_read_order_statistics(async_client, distributor_headers):
    resp = await async_client.get("/api/orders/statistics", headers=distributor_headers)
    assert resp.status_code == 403
