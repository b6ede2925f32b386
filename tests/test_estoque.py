from conftest import login, post_json


def _create_item(client, **extra):
    payload = {"name": "Luva de procedimento", "unit": "cx", "currentQuantity": 10, "minQuantity": 3}
    payload.update(extra)
    resp = post_json(client, "/api/inventory-items", payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _move(client, item_id, kind, quantity):
    return post_json(client, "/api/inventory-movements", {"itemId": item_id, "type": kind, "quantity": quantity})


def test_item_crud_and_unique_name(client, clinic):
    login(client, clinic["admin_email"])
    item = _create_item(client)
    assert item["currentQuantity"] == 10
    assert item["isLowStock"] is False

    resp = post_json(client, "/api/inventory-items", {"name": "Luva de procedimento", "unit": "cx"})
    assert resp.status_code == 400

    resp = post_json(client, f"/api/inventory-items/{item['id']}", {"minQuantity": 12}, method="patch")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["isLowStock"] is True

    resp = client.delete(f"/api/inventory-items/{item['id']}")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["isActive"] is False


def test_receptionist_cannot_create_items(client, clinic):
    login(client, clinic["reception_email"])
    resp = post_json(client, "/api/inventory-items", {"name": "Gaze", "unit": "pct"})
    assert resp.status_code == 403


def test_movements_adjust_balance(client, clinic):
    login(client, clinic["owner_email"])
    item = _create_item(client)

    resp = _move(client, item["id"], "IN", 5)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["item"]["currentQuantity"] == 15

    resp = _move(client, item["id"], "OUT", 13)
    assert resp.status_code == 201
    body = resp.get_json()["data"]
    assert body["movement"]["type"] == "OUT"
    assert body["item"]["currentQuantity"] == 2
    assert body["item"]["isLowStock"] is True

    low = client.get("/api/inventory-items?lowStock=true").get_json()["data"]
    assert [i["id"] for i in low] == [item["id"]]

    movements = client.get(f"/api/inventory-movements?itemId={item['id']}&type=IN").get_json()["data"]
    assert len(movements) == 1 and movements[0]["quantity"] == 5


def test_out_movement_never_goes_negative(client, clinic):
    login(client, clinic["owner_email"])
    item = _create_item(client, currentQuantity=4)
    resp = _move(client, item["id"], "OUT", 5)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Quantidade insuficiente em estoque. Disponível: 4 cx"

    resp = client.get(f"/api/inventory-items/{item['id']}")
    assert resp.get_json()["data"]["currentQuantity"] == 4
    assert client.get("/api/inventory-movements").get_json()["data"] == []


def test_movement_roles(client, clinic):
    login(client, clinic["owner_email"])
    item = _create_item(client)

    login(client, clinic["reception_email"])
    resp = _move(client, item["id"], "IN", 1)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Apenas proprietários e administradores podem registrar entradas"
    assert _move(client, item["id"], "OUT", 1).status_code == 201

    login(client, clinic["dentist_email"])
    resp = _move(client, item["id"], "OUT", 1)
    assert resp.status_code == 403


def test_inactive_item_rejects_movements(client, clinic):
    login(client, clinic["owner_email"])
    item = _create_item(client)
    client.delete(f"/api/inventory-items/{item['id']}")
    resp = _move(client, item["id"], "IN", 1)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Item de estoque está inativo"
