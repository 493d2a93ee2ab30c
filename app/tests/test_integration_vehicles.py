from datetime import date, timedelta

import pytest


VAN = {
    "vehicle_type": "van",
    "vehicle_model": "Hyundai H100",
    "vehicle_plate": " dam-1001 ",
    "vehicle_year": 2019,
    "current_km": 52000,
    "next_maintenance_km": 50000,
}


async def create_vehicle(client, headers, **overrides):
    resp = await client.post("/api/vehicles", json={**VAN, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_create_vehicle_normalizes_plate(async_client, admin_headers, admin_user):
    vehicle = await create_vehicle(async_client, admin_headers)
    assert vehicle["vehicle_plate"] == "DAM-1001"
    assert vehicle["status"] == "active"
    assert vehicle["created_by_name"] == admin_user.full_name
    assert vehicle["is_maintenance_due"] is True
    assert vehicle["can_be_assigned"] is True

    resp = await async_client.post("/api/vehicles", json=VAN, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "رقم اللوحة موجود مسبقاً"


@pytest.mark.asyncio
async def test_create_vehicle_rejects_old_year(async_client, admin_headers):
    resp = await async_client.post("/api/vehicles", json={**VAN, "vehicle_year": 1985}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "بيانات غير صحيحة"


@pytest.mark.asyncio
async def test_viewer_can_list_but_not_create(async_client, viewer_headers, admin_headers):
    await create_vehicle(async_client, admin_headers)

    resp = await async_client.get("/api/vehicles", headers=viewer_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"]["totalItems"] == 1
    assert data["vehicles"][0]["vehicle_plate"] == "DAM-1001"

    resp = await async_client.post("/api/vehicles", json={**VAN, "vehicle_plate": "DAM-2002"}, headers=viewer_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "ليس لديك صلاحية للقيام بهذا الإجراء"


@pytest.mark.asyncio
async def test_assign_and_unassign(async_client, admin_headers, distributor_user):
    vehicle = await create_vehicle(async_client, admin_headers)
    second = await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-2002")

    resp = await async_client.post(
        f"/api/vehicles/{vehicle['id']}/assign", json={"distributor_id": distributor_user.id}, headers=admin_headers
    )
    assert resp.status_code == 200
    assigned = resp.json()["data"]
    assert assigned["assigned_distributor_id"] == distributor_user.id
    assert assigned["assigned_distributor"]["full_name"] == distributor_user.full_name

    # one active vehicle per distributor
    resp = await async_client.post(
        f"/api/vehicles/{second['id']}/assign", json={"distributor_id": distributor_user.id}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "الموزع لديه مركبة معينة بالفعل"

    # assigned vehicles cannot be deleted
    resp = await async_client.delete(f"/api/vehicles/{vehicle['id']}", headers=admin_headers)
    assert resp.status_code == 400

    resp = await async_client.get(f"/api/vehicles/distributor/{distributor_user.id}", headers=admin_headers)
    assert [v["id"] for v in resp.json()["data"]] == [vehicle["id"]]

    resp = await async_client.post(f"/api/vehicles/{vehicle['id']}/unassign", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["assigned_distributor_id"] is None

    resp = await async_client.post(f"/api/vehicles/{vehicle['id']}/unassign", headers=admin_headers)
    assert resp.status_code == 400

    resp = await async_client.delete(f"/api/vehicles/{vehicle['id']}", headers=admin_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_assign_to_non_distributor(async_client, admin_headers, manager_user):
    vehicle = await create_vehicle(async_client, admin_headers)
    resp = await async_client.post(
        f"/api/vehicles/{vehicle['id']}/assign", json={"distributor_id": manager_user.id}, headers=admin_headers
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_status_change_releases_distributor(async_client, admin_headers, distributor_user):
    vehicle = await create_vehicle(async_client, admin_headers)
    await async_client.post(
        f"/api/vehicles/{vehicle['id']}/assign", json={"distributor_id": distributor_user.id}, headers=admin_headers
    )

    resp = await async_client.patch(
        f"/api/vehicles/{vehicle['id']}/status", json={"status": "flying"}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "حالة المركبة غير صحيحة"

    resp = await async_client.patch(
        f"/api/vehicles/{vehicle['id']}/status", json={"status": "retired", "notes": "sold"}, headers=admin_headers
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "retired"
    assert data["assigned_distributor_id"] is None
    assert data["notes"] == "sold"

    resp = await async_client.post(
        f"/api/vehicles/{vehicle['id']}/assign", json={"distributor_id": distributor_user.id}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا يمكن تعيين مركبة غير نشطة"


@pytest.mark.asyncio
async def test_statistics_and_lists(async_client, admin_headers, distributor_user):
    first = await create_vehicle(async_client, admin_headers)
    await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-2002", next_maintenance_km=90000)
    await async_client.post(
        f"/api/vehicles/{first['id']}/assign", json={"distributor_id": distributor_user.id}, headers=admin_headers
    )

    resp = await async_client.get("/api/vehicles/statistics", headers=admin_headers)
    assert resp.json()["data"] == {
        "total": 2,
        "active": 2,
        "assigned": 1,
        "available": 1,
        "maintenance": 0,
        "utilizationRate": 50,
    }

    resp = await async_client.get("/api/vehicles/available", headers=admin_headers)
    assert [v["vehicle_plate"] for v in resp.json()["data"]] == ["DAM-2002"]

    resp = await async_client.get("/api/vehicles/maintenance-due", headers=admin_headers)
    assert [v["vehicle_plate"] for v in resp.json()["data"]] == ["DAM-1001"]

    resp = await async_client.get("/api/vehicles", params={"assigned": "false"}, headers=admin_headers)
    assert resp.json()["data"]["pagination"]["totalItems"] == 1


@pytest.mark.asyncio
async def test_export_csv(async_client, admin_headers, distributor_headers):
    await create_vehicle(async_client, admin_headers)

    resp = await async_client.get("/api/vehicles/export", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    assert "License Plate" in resp.text
    assert "DAM-1001" in resp.text

    resp = await async_client.get("/api/vehicles/export", headers=distributor_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_get_missing_vehicle(async_client, admin_headers):
    resp = await async_client.get("/api/vehicles/999", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "لم يتم العثور على المركبة"}


@pytest.mark.asyncio
async def test_insurance_expiring_window(async_client, admin_headers):
    soon = (date.today() + timedelta(days=10)).isoformat()
    later = (date.today() + timedelta(days=90)).isoformat()
    await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-2001", insurance_expiry_date=soon)
    await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-2002", insurance_expiry_date=later)
    await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-2003")

    resp = await async_client.get("/api/vehicles/insurance-expiring", headers=admin_headers)
    assert [v["vehicle_plate"] for v in resp.json()["data"]] == ["DAM-2001"]

    resp = await async_client.get("/api/vehicles/insurance-expiring", params={"days": 120}, headers=admin_headers)
    assert [v["vehicle_plate"] for v in resp.json()["data"]] == ["DAM-2001", "DAM-2002"]


@pytest.mark.asyncio
async def test_vehicle_type_info_has_icon(async_client, admin_headers):
    vehicle = await create_vehicle(async_client, admin_headers, vehicle_type="truck", vehicle_plate="DAM-3001")
    assert vehicle["vehicle_type_info"]["icon"] == "🚚"
    assert vehicle["vehicle_type_info"]["label"] == "شاحنة"


@pytest.mark.asyncio
async def test_update_rejects_taken_plate(async_client, admin_headers):
    await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-4001")
    second = await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-4002")

    resp = await async_client.put(
        f"/api/vehicles/{second['id']}", json={"vehicle_plate": "dam-4001"}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "رقم اللوحة موجود مسبقاً"

    resp = await async_client.put(
        f"/api/vehicles/{second['id']}", json={"vehicle_plate": "DAM-4002", "vehicle_color": "white"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["vehicle_color"] == "white"


@pytest.mark.asyncio
async def test_update_rejects_null_required_field(async_client, admin_headers):
    vehicle = await create_vehicle(async_client, admin_headers, vehicle_plate="DAM-5001")

    resp = await async_client.put(f"/api/vehicles/{vehicle['id']}", json={"vehicle_model": None}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "بيانات غير صحيحة"
    assert resp.json()["errors"][0]["field"] == "vehicle_model"

    resp = await async_client.put(f"/api/vehicles/{vehicle['id']}", json={"vehicle_color": None}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["vehicle_model"] == "Hyundai H100"


@pytest.mark.asyncio
async def test_expiry_flags_are_exposed(async_client, admin_headers):
    soon = (date.today() + timedelta(days=5)).isoformat()
    vehicle = await create_vehicle(
        async_client, admin_headers, vehicle_plate="DAM-6001", registration_expiry_date=soon
    )
    assert vehicle["is_registration_expiring"] is True
    assert vehicle["is_insurance_expiring"] is False
