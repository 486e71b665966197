import pytest
import pytest_asyncio

from models.account import Account, Device


NOTIFICATION = {
    "line_id": "L1",
    "stop_id": "S1",
    "distance": 300,
    "distance_unit": "m",
    "start_time": 25200,
    "end_time": 32400,
    "week_days": ["monday", "friday"],
}


@pytest_asyncio.fixture()
async def seeded(repository):
    """One plain user per device d1/d2, an admin on device adm and an owner on device own."""
    for device_id, role in (("d1", "user"), ("d2", "user"), ("adm", "admin"), ("own", "owner")):
        await repository.create(Account(devices=[Device(device_id=device_id)], role=role))


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "data": {"status": "ok"}, "error": None}
    assert resp.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    resp = await client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["ok"] is False


@pytest.mark.asyncio
async def test_create_account(client):
    body = {"devices": [{"device_id": "d1", "name": "Pixel"}], "first_name": "Ana", "role": "owner"}
    resp = await client.post("/accounts", json=body)

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["devices"] == [{"device_id": "d1", "name": "Pixel", "type": None}]
    assert data["first_name"] == "Ana"
    assert data["role"] == "user"
    assert data["id"]

    resp = await client.post("/accounts", json={"devices": [{"device_id": "d1"}]})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "conflict"


@pytest.mark.asyncio
async def test_create_account_requires_a_device(client):
    resp = await client.post("/accounts", json={"devices": []})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "bad_request"


@pytest.mark.asyncio
async def test_missing_or_invalid_token(client, seeded, auth):
    resp = await client.get("/accounts/d1")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"

    resp = await client.get("/accounts/d1", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "caller, target, status",
    [
        ("d1", "d1", 200),
        ("d1", "d2", 403),
        ("adm", "d1", 200),
        ("own", "d2", 200),
    ],
)
async def test_get_account_permissions(client, seeded, auth, caller, target, status):
    resp = await client.get(f"/accounts/{target}", headers=auth(caller))
    assert resp.status_code == status
    if status == 403:
        assert resp.json()["error"]["message"] == "You are not allowed to execute this action"


@pytest.mark.asyncio
async def test_get_unknown_account(client, auth):
    resp = await client.get("/accounts/ghost", headers=auth("ghost"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_accounts_is_staff_only(client, seeded, auth):
    resp = await client.get("/accounts", headers=auth("d1"))
    assert resp.status_code == 403

    resp = await client.get("/accounts", headers=auth("adm"))
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 4

    resp = await client.get("/accounts", params={"role": "owner"}, headers=auth("adm"))
    assert [a["devices"][0]["device_id"] for a in resp.json()["data"]] == ["own"]


@pytest.mark.asyncio
async def test_update_drops_role_unless_owner(client, seeded, auth):
    resp = await client.put("/accounts/d1", json={"first_name": "Ana", "role": "owner"}, headers=auth("d1"))
    assert resp.status_code == 200
    assert resp.json()["data"]["first_name"] == "Ana"
    assert resp.json()["data"]["role"] == "user"

    resp = await client.put("/accounts/d1", json={"role": "admin"}, headers=auth("adm"))
    assert resp.json()["data"]["role"] == "user"

    resp = await client.put("/accounts/d1", json={"role": "admin"}, headers=auth("own"))
    assert resp.json()["data"]["role"] == "admin"
    assert resp.json()["data"]["first_name"] == "Ana"


@pytest.mark.asyncio
async def test_delete_account(client, seeded, auth):
    resp = await client.delete("/accounts/d2", headers=auth("d1"))
    assert resp.status_code == 403

    resp = await client.delete("/accounts/d2", headers=auth("d2"))
    assert resp.status_code == 200
    assert resp.json()["data"]["devices"][0]["device_id"] == "d2"

    resp = await client.delete("/accounts/d2", headers=auth("adm"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_merge_and_remove_device(client, seeded, auth):
    resp = await client.post("/accounts/d1/add-device/d2", headers=auth("d2"))
    assert resp.status_code == 403

    resp = await client.post("/accounts/d1/add-device/d2", headers=auth("d1"))
    assert resp.status_code == 200
    assert [d["device_id"] for d in resp.json()["data"]["devices"]] == ["d1", "d2"]

    resp = await client.post("/accounts/d1/add-device/d2", headers=auth("d1"))
    assert resp.status_code == 400

    resp = await client.delete("/accounts/d1/remove-device/d2", headers=auth("d1"))
    assert resp.status_code == 200
    assert [d["device_id"] for d in resp.json()["data"]["devices"]] == ["d1"]

    resp = await client.delete("/accounts/d1/remove-device/d2", headers=auth("d1"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_add_device_with_sync_token(client, seeded, token):
    headers = {"Authorization": f"Bearer {token('d1', device_id_2='new-device')}"}
    resp = await client.post("/accounts/add-device", headers=headers)

    assert resp.status_code == 200
    assert [d["device_id"] for d in resp.json()["data"]["devices"]] == ["d1", "new-device"]

    resp = await client.post("/accounts/add-device")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_toggle_favorites_is_self_only(client, seeded, auth):
    resp = await client.post("/accounts/d1/favorite-lines/L1", headers=auth("adm"))
    assert resp.status_code == 403

    resp = await client.post("/accounts/d1/favorite-lines/L1", headers=auth("d1"))
    assert resp.json()["data"]["favorite_lines"] == ["L1"]

    resp = await client.post("/accounts/d1/favorite-lines/L1", headers=auth("d1"))
    assert resp.json()["data"]["favorite_lines"] == []

    resp = await client.post("/accounts/fresh/favorite-stops/S1", headers=auth("fresh"))
    assert resp.status_code == 200
    assert resp.json()["data"]["favorite_stops"] == ["S1"]


@pytest.mark.asyncio
async def test_notification_crud(client, seeded, auth, smart_notifications):
    resp = await client.post("/accounts/d1/notifications", json=NOTIFICATION, headers=auth("d1"))
    assert resp.status_code == 201
    notification = resp.json()["data"]
    assert notification["line_id"] == "L1"

    resp = await client.get("/accounts/d1/notifications", headers=auth("adm"))
    assert [n["id"] for n in resp.json()["data"]] == [notification["id"]]

    resp = await client.put(
        f"/accounts/d1/notifications/{notification['id']}",
        json={**NOTIFICATION, "stop_id": "S2"},
        headers=auth("d1"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["stop_id"] == "S2"

    resp = await client.get(f"/accounts/d1/notifications/{notification['id']}", headers=auth("d2"))
    assert resp.status_code == 403

    resp = await client.delete(f"/accounts/d1/notifications/{notification['id']}", headers=auth("d1"))
    assert resp.status_code == 200

    resp = await client.get(f"/accounts/d1/notifications/{notification['id']}", headers=auth("d1"))
    assert resp.status_code == 404

    assert [(method, path.split(":")[-1]) for method, path, _ in smart_notifications.requests] == [
        ("POST", "/notifications"),
        ("POST", "/notifications"),
        ("DELETE", notification["id"]),
    ]


@pytest.mark.asyncio
async def test_invalid_notification_is_rejected(client, seeded, auth, smart_notifications):
    resp = await client.post(
        "/accounts/d1/notifications",
        json={**NOTIFICATION, "start_time": 7200, "end_time": 3600},
        headers=auth("d1"),
    )

    assert resp.status_code == 400
    assert "End time must be greater than start time" in resp.json()["error"]["message"]
    assert smart_notifications.requests == []

    resp = await client.get("/accounts/d1/notifications", headers=auth("d1"))
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_upstream_failure_status(client, seeded, auth, smart_notifications):
    smart_notifications.fail_with = 503

    resp = await client.post("/accounts/d1/notifications", json=NOTIFICATION, headers=auth("d1"))

    assert resp.status_code == 503
    assert resp.json()["error"] == {"code": "upstream_error", "message": "upstream rejected"}

    resp = await client.get("/accounts/d1/notifications", headers=auth("d1"))
    assert len(resp.json()["data"]) == 1


@pytest.mark.asyncio
async def test_create_account_rejects_duplicate_devices(client):
    resp = await client.post("/accounts", json={"devices": [{"device_id": "d1"}, {"device_id": "d1"}]})

    assert resp.status_code == 400
    assert "Duplicate device id" in resp.json()["error"]["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["favorite_lines", "favorite_stops"])
async def test_update_rejects_null_favorites(client, seeded, auth, field):
    await client.post("/accounts/d1/favorite-lines/L1", headers=auth("d1"))

    resp = await client.put("/accounts/d1", json={field: None}, headers=auth("d1"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "bad_request"

    resp = await client.get("/accounts/d1", headers=auth("d1"))
    assert resp.status_code == 200
    assert resp.json()["data"]["favorite_lines"] == ["L1"]

    resp = await client.post("/accounts/d1/favorite-lines/L2", headers=auth("d1"))
    assert resp.json()["data"]["favorite_lines"] == ["L1", "L2"]


@pytest.mark.asyncio
async def test_update_replaces_favorites_list(client, seeded, auth):
    resp = await client.put("/accounts/d1", json={"favorite_stops": ["S1", "S2"]}, headers=auth("d1"))
    assert resp.status_code == 200
    assert resp.json()["data"]["favorite_stops"] == ["S1", "S2"]
