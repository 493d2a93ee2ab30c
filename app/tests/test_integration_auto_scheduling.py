from datetime import date, timedelta

import pytest

from conftest import auth_headers_for, create_user


async def schedule(client, headers, order_id):
    return await client.post("/api/auto-scheduling/manual-schedule", json={"order_id": order_id}, headers=headers)


async def make_draft(client, headers, order_id) -> dict:
    resp = await schedule(client, headers, order_id)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["draft"]


@pytest.mark.asyncio
async def test_manual_schedule_requires_order(async_client, admin_headers):
    resp = await async_client.post("/api/auto-scheduling/manual-schedule", json={}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "معرف الطلب مطلوب"

    resp = await schedule(async_client, admin_headers, 999)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_manual_schedule_without_distributors(async_client, admin_headers, confirmed_order):
    resp = await schedule(async_client, admin_headers, confirmed_order.id)
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا توجد موزعون متاحون لهذا الطلب"


@pytest.mark.asyncio
async def test_manual_schedule_ranks_distributors(async_client, async_db_session, admin_headers, distributor_user, confirmed_order):
    await create_user(async_db_session, "roaming_driver", delivery_zone="all", performance_rating=70)
    await create_user(async_db_session, "south_driver", delivery_zone="south", performance_rating=99)

    resp = await schedule(async_client, admin_headers, confirmed_order.id)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert resp.json()["message"] == "تم إنشاء اقتراح جدولة جديد بنجاح"

    draft = data["draft"]
    assert draft["suggested_distributor_id"] == distributor_user.id
    assert draft["suggested_distributor"]["full_name"] == distributor_user.full_name
    assert draft["order"]["order_number"] == confirmed_order.order_number
    assert draft["suggested_delivery_date"] == str(confirmed_order.delivery_date)
    # the south driver does not serve the store's zone
    assert [alt["distributor_name"] for alt in data["alternatives"]] == ["Roaming Driver"]

    # any live draft blocks a second run
    resp = await schedule(async_client, admin_headers, confirmed_order.id)
    assert resp.status_code == 400
    assert resp.json()["message"] == "يوجد اقتراح جدولة لهذا الطلب بالفعل"


@pytest.mark.asyncio
async def test_pending_reviews_and_draft_detail(async_client, admin_headers, distributor_user, confirmed_order, test_store):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)

    resp = await async_client.get("/api/auto-scheduling/pending-reviews", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [d["id"] for d in data["drafts"]] == [draft["id"]]
    assert data["pagination"]["totalItems"] == 1

    resp = await async_client.get(f"/api/auto-scheduling/drafts/{draft['id']}", headers=admin_headers)
    detail = resp.json()["data"]
    assert detail["order"]["store"]["name"] == test_store.name
    assert detail["order"]["items"][0]["quantity"] == 10

    resp = await async_client.get("/api/auto-scheduling/drafts/999", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "مسودة الجدولة غير موجودة"


@pytest.mark.asyncio
async def test_distributors_cannot_review(async_client, distributor_headers):
    resp = await async_client.get("/api/auto-scheduling/pending-reviews", headers=distributor_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_approve_creates_trip(
    async_client, admin_headers, distributor_user, distributor_headers, confirmed_order
):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)

    resp = await async_client.post(
        f"/api/auto-scheduling/drafts/{draft['id']}/approve", json={"admin_notes": "ok"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "تم إعتماد الجدولة بنجاح"
    data = resp.json()["data"]
    assert data["draft"]["status"] == "approved"
    assert data["draft"]["approved_distributor_id"] == distributor_user.id
    assert data["draft"]["reviewed_by"] is not None

    trip = data["trip"]
    assert trip["trip_number"].startswith(f"TRIP-{date.today():%Y%m%d}-")
    assert trip["distributor_id"] == distributor_user.id
    assert trip["order_ids"] == [confirmed_order.id]
    assert trip["total_amount_eur"] == 20.0
    assert trip["status"] == "pending"

    resp = await async_client.get(f"/api/orders/{confirmed_order.id}", headers=admin_headers)
    order = resp.json()["data"]
    assert order["assigned_distributor_id"] == distributor_user.id
    assert order["scheduling_status"] == "scheduled"

    # reviewed drafts are final
    resp = await async_client.post(f"/api/auto-scheduling/drafts/{draft['id']}/approve", json={}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "تمت مراجعة مسودة الجدولة مسبقاً"

    # the assigned distributor now sees the order and the trip
    resp = await async_client.get(f"/api/orders/{confirmed_order.id}", headers=distributor_headers)
    assert resp.status_code == 200
    resp = await async_client.get("/api/distribution-trips", headers=distributor_headers)
    assert [t["id"] for t in resp.json()["data"]["trips"]] == [trip["id"]]


@pytest.mark.asyncio
async def test_approve_with_modifications(async_client, async_db_session, manager_headers, distributor_user, confirmed_order):
    other = await create_user(async_db_session, "roaming_driver", delivery_zone="all")
    draft = await make_draft(async_client, manager_headers, confirmed_order.id)
    new_date = date.today() + timedelta(days=5)

    resp = await async_client.post(
        f"/api/auto-scheduling/drafts/{draft['id']}/approve",
        json={
            "modifications": {"distributor_id": other.id, "delivery_date": str(new_date), "priority": "urgent"},
            "create_distribution_trip": False,
        },
        headers=manager_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "تم تعديل وإعتماد الجدولة بنجاح"
    data = resp.json()["data"]
    assert data["trip"] is None
    assert data["draft"]["status"] == "modified"
    assert data["draft"]["approved_distributor_id"] == other.id
    assert data["draft"]["approved_priority"] == "urgent"
    assert data["draft"]["modifications"]["distributor_id"] == other.id

    resp = await async_client.get(f"/api/orders/{confirmed_order.id}", headers=manager_headers)
    order = resp.json()["data"]
    assert order["assigned_distributor_id"] == other.id
    assert order["delivery_date"] == str(new_date)
    assert order["priority"] == "urgent"


@pytest.mark.asyncio
async def test_approve_with_unknown_distributor(async_client, admin_headers, admin_user, distributor_user, confirmed_order):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)
    resp = await async_client.post(
        f"/api/auto-scheduling/drafts/{draft['id']}/approve",
        json={"modifications": {"distributor_id": admin_user.id}},
        headers=admin_headers,
    )
    assert resp.status_code == 404

    resp = await async_client.get(f"/api/auto-scheduling/drafts/{draft['id']}", headers=admin_headers)
    assert resp.json()["data"]["status"] == "pending_review"


@pytest.mark.asyncio
async def test_reject_then_reschedule(async_client, admin_headers, distributor_user, confirmed_order):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)

    resp = await async_client.post(f"/api/auto-scheduling/drafts/{draft['id']}/reject", json={}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "سبب الرفض مطلوب"

    resp = await async_client.post(
        f"/api/auto-scheduling/drafts/{draft['id']}/reject",
        json={"reason": "driver on leave", "reassign_to_manual": True},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected"
    assert resp.json()["data"]["admin_notes"] == "driver on leave"

    resp = await async_client.get(f"/api/orders/{confirmed_order.id}", headers=admin_headers)
    assert resp.json()["data"]["scheduling_status"] == "manual_required"

    resp = await async_client.get(
        "/api/auto-scheduling/pending-reviews", params={"status": "rejected"}, headers=admin_headers
    )
    assert [d["id"] for d in resp.json()["data"]["drafts"]] == [draft["id"]]

    # a rejected draft is replaced by a fresh suggestion
    fresh = await make_draft(async_client, admin_headers, confirmed_order.id)
    assert fresh["status"] == "pending_review"
    resp = await async_client.get("/api/auto-scheduling/pending-reviews", headers=admin_headers)
    assert [d["id"] for d in resp.json()["data"]["drafts"]] == [fresh["id"]]
    resp = await async_client.get(
        "/api/auto-scheduling/pending-reviews", params={"status": "rejected"}, headers=admin_headers
    )
    assert resp.json()["data"]["drafts"] == []


@pytest.mark.asyncio
async def test_scheduling_statistics(async_client, async_db_session, admin_headers, distributor_user, confirmed_order):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)
    await async_client.post(f"/api/auto-scheduling/drafts/{draft['id']}/approve", json={}, headers=admin_headers)

    resp = await async_client.get("/api/auto-scheduling/statistics", params={"period": "today"}, headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["period"] == "today"
    assert stats["total_drafts"] == 1
    assert stats["by_status"]["approved"]["count"] == 1
    assert stats["accuracy_metrics"]["approval_rate"] == 100
    assert stats["top_distributors"][0]["distributor_id"] == distributor_user.id

    resp = await async_client.get("/api/auto-scheduling/statistics", params={"period": "decade"}, headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_trip_status_updates(async_client, async_db_session, admin_headers, distributor_user, distributor_headers, confirmed_order):
    draft = await make_draft(async_client, admin_headers, confirmed_order.id)
    resp = await async_client.post(f"/api/auto-scheduling/drafts/{draft['id']}/approve", json={}, headers=admin_headers)
    trip_id = resp.json()["data"]["trip"]["id"]

    resp = await async_client.patch(
        f"/api/distribution-trips/{trip_id}/status", json={"status": "completed"}, headers=distributor_headers
    )
    assert resp.status_code == 400

    resp = await async_client.patch(
        f"/api/distribution-trips/{trip_id}/status",
        json={"status": "in_progress", "notes": "left the bakery"},
        headers=distributor_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "in_progress"

    other = await create_user(async_db_session, "other_driver", delivery_zone="south")
    resp = await async_client.get(f"/api/distribution-trips/{trip_id}", headers=auth_headers_for(other))
    assert resp.status_code == 403

    trip_date = (date.today() + timedelta(days=3)).isoformat()
    resp = await async_client.get("/api/distribution-trips", params={"date": trip_date}, headers=admin_headers)
    assert resp.json()["data"]["pagination"]["totalItems"] == 1
    assert resp.json()["data"]["trips"][0]["trip_date"] == trip_date

    resp = await async_client.get("/api/distribution-trips/999", headers=admin_headers)
    assert resp.status_code == 404
