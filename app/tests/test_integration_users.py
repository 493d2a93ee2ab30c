import pytest

from conftest import TEST_PASSWORD


NEW_DISTRIBUTOR = {
    "username": "east_driver",
    "email": "East@Example.com",
    "password": "driverpass",
    "full_name": "East Driver",
    "role": "distributor",
    "delivery_zone": "east",
    "max_daily_capacity": 8,
}


@pytest.mark.asyncio
async def test_admin_creates_and_updates_users(async_client, admin_headers):
    resp = await async_client.post("/api/users", json=NEW_DISTRIBUTOR, headers=admin_headers)
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["email"] == "east@example.com"
    assert created["max_daily_capacity"] == 8

    resp = await async_client.put(
        f"/api/users/{created['id']}", json={"performance_rating": 95, "password": "newpass99"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["performance_rating"] == 95

    resp = await async_client.post(
        "/api/auth/login", json={"username": "east_driver", "password": "newpass99"}
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected(async_client, admin_headers, distributor_user):
    payload = {**NEW_DISTRIBUTOR, "email": distributor_user.email}
    resp = await async_client.post("/api/users", json=payload, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "البريد الإلكتروني موجود مسبقاً"


@pytest.mark.asyncio
async def test_manager_can_view_but_not_manage(async_client, manager_headers, distributor_user):
    resp = await async_client.get("/api/users", headers=manager_headers)
    assert resp.status_code == 200

    resp = await async_client.get("/api/users/distributors", headers=manager_headers)
    assert [u["id"] for u in resp.json()["data"]] == [distributor_user.id]

    resp = await async_client.post("/api/users", json=NEW_DISTRIBUTOR, headers=manager_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admins_cannot_be_deleted(async_client, admin_user, admin_headers, distributor_user):
    resp = await async_client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "لا يمكن حذف المدير الرئيسي"

    resp = await async_client.delete(f"/api/users/{distributor_user.id}", headers=admin_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"/api/users/{distributor_user.id}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_toggle_status_blocks_login(async_client, admin_user, admin_headers, distributor_user):
    resp = await async_client.patch(f"/api/users/{distributor_user.id}/toggle-status", headers=admin_headers)
    assert resp.json()["data"]["status"] == "inactive"

    resp = await async_client.post(
        "/api/auth/login", json={"username": distributor_user.username, "password": TEST_PASSWORD}
    )
    assert resp.status_code == 401

    resp = await async_client.patch(f"/api/users/{admin_user.id}/toggle-status", headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_user_statistics(async_client, admin_headers, distributor_user, viewer_user):
    resp = await async_client.get("/api/users/statistics", headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["total"] == 3
    assert stats["by_role"] == {"admin": 1, "distributor": 1, "viewer": 1}
    assert stats["active_distributors"] == 1

    resp = await async_client.get("/api/users", params={"role": "viewer"}, headers=admin_headers)
    assert [u["username"] for u in resp.json()["data"]["users"]] == ["viewer_user"]


@pytest.mark.asyncio
async def test_update_rejects_email_of_another_user(async_client, admin_headers, distributor_user):
    resp = await async_client.post("/api/users", json=NEW_DISTRIBUTOR, headers=admin_headers)
    created = resp.json()["data"]

    resp = await async_client.put(
        f"/api/users/{created['id']}", json={"email": distributor_user.email.upper()}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "البريد الإلكتروني موجود مسبقاً"

    resp = await async_client.put(
        f"/api/users/{created['id']}", json={"email": "EAST@example.com"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "east@example.com"


@pytest.mark.asyncio
async def test_update_rejects_null_username(async_client, admin_headers, distributor_user):
    resp = await async_client.put(f"/api/users/{distributor_user.id}", json={"username": None}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "username"
