import pytest
from fastapi.testclient import TestClient

MORPHINE = {
    "name": "Morphine 10mg/ml",
    "quantity": 4,
    "unit": "ampoules",
    "expirationDate": "2027-03-31",
    "lotNumber": "MX-2231",
    "controlledSubstance": True,
    "schedule": "II",
}


@pytest.fixture
def create_box(client: TestClient, admin_headers):
    def _create_box(box_number: str, **fields) -> dict:
        response = client.post("/api/boxes", json={"boxNumber": box_number, **fields}, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create_box


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def alice_headers(alice, auth_headers):
    return auth_headers(alice)


def test_create_box(client: TestClient, admin_headers):
    response = client.post(
        "/api/boxes",
        json={"boxNumber": " ER-01 ", "description": "Crash cart", "location": "ER bay 2", "medications": [MORPHINE]},
        headers=admin_headers,
    )

    assert response.status_code == 201
    box = response.json()
    assert box["boxNumber"] == "ER-01"
    assert box["status"] == "active"
    assert box["assignedTo"] == []
    assert box["createdBy"] == "boss"
    assert box["updatedBy"] == "boss"
    assert box["lastInventoryDate"] is None
    assert box["medications"][0]["name"] == "Morphine 10mg/ml"
    assert box["medications"][0]["controlledSubstance"] is True


def test_create_box_duplicate_number(client: TestClient, admin_headers, create_box):
    create_box("ER-01")
    response = client.post("/api/boxes", json={"boxNumber": "ER-01"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == 'Box number "ER-01" already exists'


def test_create_box_requires_number(client: TestClient, admin_headers):
    response = client.post("/api/boxes", json={"description": "no number"}, headers=admin_headers)
    assert response.status_code == 400


def test_create_box_rejects_negative_quantity(client: TestClient, admin_headers):
    response = client.post(
        "/api/boxes",
        json={"boxNumber": "ER-01", "medications": [{"name": "Saline", "quantity": -1}]},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_standard_user_only_sees_assigned_boxes(client: TestClient, admin_headers, alice_headers, create_box):
    first = create_box("ER-01")
    create_box("ER-02")
    client.post(f"/api/boxes/{first['id']}/assign", json={"userIds": ["alice"]}, headers=admin_headers)

    mine = client.get("/api/boxes", headers=alice_headers)
    everything = client.get("/api/boxes", headers=admin_headers)

    assert [b["boxNumber"] for b in mine.json()] == ["ER-01"]
    assert [b["boxNumber"] for b in everything.json()] == ["ER-01", "ER-02"]


def test_read_box_access(client: TestClient, admin_headers, alice_headers, create_box):
    box = create_box("ER-01")

    assert client.get(f"/api/boxes/{box['id']}", headers=alice_headers).status_code == 403
    assert client.get(f"/api/boxes/{box['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/boxes/999", headers=admin_headers).status_code == 404


def test_update_box_applies_only_allowed_fields(client: TestClient, admin_headers, create_box):
    box = create_box("ER-01", description="old")

    response = client.put(
        f"/api/boxes/{box['id']}",
        json={"description": "new", "location": "ICU", "createdBy": "mallory", "assignedTo": ["mallory"], "id": 77},
        headers=admin_headers,
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["id"] == box["id"]
    assert updated["description"] == "new"
    assert updated["location"] == "ICU"
    assert updated["createdBy"] == "boss"
    assert updated["assignedTo"] == []
    assert updated["boxNumber"] == "ER-01"


def test_update_box_number_conflict(client: TestClient, admin_headers, create_box):
    create_box("ER-01")
    second = create_box("ER-02")

    response = client.put(f"/api/boxes/{second['id']}", json={"boxNumber": "ER-01"}, headers=admin_headers)

    assert response.status_code == 400


def test_assigned_user_can_update_box(client: TestClient, admin_headers, alice_headers, create_box):
    box = create_box("ER-01")
    client.post(f"/api/boxes/{box['id']}/assign", json={"userIds": ["alice"]}, headers=admin_headers)

    response = client.put(f"/api/boxes/{box['id']}", json={"status": "sealed"}, headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "sealed"
    assert response.json()["updatedBy"] == "alice"


def test_unassigned_user_cannot_update_box(client: TestClient, alice_headers, create_box):
    box = create_box("ER-01")
    response = client.put(f"/api/boxes/{box['id']}", json={"status": "sealed"}, headers=alice_headers)
    assert response.status_code == 403


def test_delete_box(client: TestClient, admin_headers, create_box):
    box = create_box("ER-01")

    response = client.delete(f"/api/boxes/{box['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Box deleted successfully"}
    assert client.get(f"/api/boxes/{box['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/boxes/{box['id']}", headers=admin_headers).status_code == 404


def test_assign_replaces_list_and_drops_duplicates(client: TestClient, admin_headers, make_user, create_box):
    make_user("alice")
    make_user("bob")
    box = create_box("ER-01")

    first = client.post(f"/api/boxes/{box['id']}/assign", json={"userIds": ["alice", "bob", "alice"]}, headers=admin_headers)
    second = client.post(f"/api/boxes/{box['id']}/assign", json={"userIds": ["bob"]}, headers=admin_headers)

    assert first.status_code == 200
    assert sorted(first.json()["assignedTo"]) == ["alice", "bob"]
    assert second.json() == {"id": box["id"], "assignedTo": ["bob"]}


def test_assign_rejects_unknown_or_inactive_users(client: TestClient, admin_headers, make_user, user_admin, create_box):
    make_user("alice")
    make_user("carol")
    user_admin.deactivate_user("carol")
    box = create_box("ER-01")

    response = client.post(
        f"/api/boxes/{box['id']}/assign", json={"userIds": ["alice", "carol", "ghost"]}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown or inactive user id(s): carol, ghost"
    assert client.get(f"/api/boxes/{box['id']}", headers=admin_headers).json()["assignedTo"] == []


def test_assign_unknown_box(client: TestClient, admin_headers):
    response = client.post("/api/boxes/999/assign", json={"userIds": []}, headers=admin_headers)
    assert response.status_code == 404


def test_inventory_check(client: TestClient, admin_headers, alice_headers, create_box):
    box = create_box("ER-01", medications=[MORPHINE])
    client.post(f"/api/boxes/{box['id']}/assign", json={"userIds": ["alice"]}, headers=admin_headers)

    response = client.post(
        f"/api/boxes/{box['id']}/inventory",
        json={"medications": [{**MORPHINE, "quantity": 3}, {"name": "Naloxone", "quantity": 2}]},
        headers=alice_headers,
    )

    assert response.status_code == 200
    checked = response.json()
    assert checked["lastInventoryDate"] is not None
    assert checked["updatedBy"] == "alice"
    assert [m["quantity"] for m in checked["medications"]] == [3, 2]
    assert checked["medications"][1]["unit"] == "units"


def test_inventory_check_requires_access(client: TestClient, alice_headers, create_box):
    box = create_box("ER-01")
    response = client.post(f"/api/boxes/{box['id']}/inventory", json={"medications": []}, headers=alice_headers)
    assert response.status_code == 403


def test_box_operations_are_audited(client: TestClient, admin_headers, alice, create_box):
    box = create_box("ER-01")
    client.put(f"/api/boxes/{box['id']}", json={"location": "ICU", "bogus": 1}, headers=admin_headers)
    client.post(f"/api/boxes/{box['id']}/assign", json={"userIds": ["alice"]}, headers=admin_headers)
    client.post(f"/api/boxes/{box['id']}/inventory", json={"medications": []}, headers=admin_headers)
    client.delete(f"/api/boxes/{box['id']}", headers=admin_headers)

    logs = client.get("/api/audit-logs", params={"targetId": str(box["id"])}, headers=admin_headers).json()

    assert [entry["action"] for entry in logs] == [
        "BOX_DELETE",
        "INVENTORY_CHECK",
        "BOX_ASSIGN",
        "BOX_UPDATE",
        "BOX_CREATE",
    ]
    assert all(entry["targetType"] == "medication-box" for entry in logs)
    assert logs[0]["details"] == {"boxNumber": "ER-01"}
    assert logs[2]["details"] == {"assignedTo": ["alice"]}
    assert logs[3]["details"] == {"changes": ["location"]}
