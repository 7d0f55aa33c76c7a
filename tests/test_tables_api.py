import uuid


async def test_create_table_assigns_qr_code(client, staff):
    response = await client.post("/api/tables", headers=staff, json={"table_number": 12})

    assert response.status_code == 201
    table = response.json()["table"]
    assert table["table_number"] == "12"
    assert table["is_active"] is True
    uuid.UUID(table["qr_code"])


async def test_duplicate_table_number_is_rejected(client, staff, table):
    response = await client.post("/api/tables", headers=staff, json={"table_number": "5"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Table number already exists"


async def test_same_number_allowed_in_another_restaurant(client, table, other_restaurant):
    response = await client.post(
        "/api/tables",
        headers={"X-Restaurant-Id": str(other_restaurant.id)},
        json={"table_number": "5"},
    )

    assert response.status_code == 201


async def test_table_number_too_long(client, staff):
    response = await client.post("/api/tables", headers=staff, json={"table_number": "x" * 21})

    assert response.status_code == 422


async def test_list_tables_in_natural_order(client, staff):
    for number in ("10", "2", "Terrace", "1"):
        await client.post("/api/tables", headers=staff, json={"table_number": number})

    response = await client.get("/api/tables", headers=staff)

    assert [t["table_number"] for t in response.json()["tables"]] == ["1", "2", "10", "Terrace"]


async def test_update_table(client, staff, table):
    response = await client.put(
        f"/api/tables/{table.id}", headers=staff, json={"table_number": "5A", "is_active": False}
    )

    assert response.status_code == 200
    assert response.json()["table"]["table_number"] == "5A"
    assert response.json()["table"]["is_active"] is False


async def test_rename_to_existing_number_is_rejected(client, staff, table):
    other = (await client.post("/api/tables", headers=staff, json={"table_number": "6"})).json()["table"]

    response = await client.put(f"/api/tables/{other['id']}", headers=staff, json={"table_number": "5"})

    assert response.status_code == 400


async def test_delete_table(client, staff, table):
    response = await client.delete(f"/api/tables/{table.id}", headers=staff)
    assert response.status_code == 200

    assert (await client.get("/api/tables", headers=staff)).json()["tables"] == []


async def test_delete_table_with_orders_is_refused(client, staff, table, menu, place_order):
    await place_order([(menu["Cola"], 2)])

    response = await client.delete(f"/api/tables/{table.id}", headers=staff)

    assert response.status_code == 409


async def test_qrcode_url_uses_request_host(client, staff, restaurant, table):
    response = await client.get(
        f"/api/tables/{table.id}/qrcode",
        headers={**staff, "X-Forwarded-Proto": "https", "Host": "dine.example.com"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["qr_url"] == f"https://dine.example.com/order/{restaurant.id}/{table.id}"
    assert body["qr_code"] == table.qr_code
    assert body["table_number"] == "5"


async def test_qrcode_for_other_restaurant_table_is_not_found(client, table, other_restaurant):
    response = await client.get(
        f"/api/tables/{table.id}/qrcode",
        headers={"X-Restaurant-Id": str(other_restaurant.id)},
    )

    assert response.status_code == 404


# =============================================================================
# PUBLIC
# =============================================================================

async def test_public_menu_groups_available_items(client, restaurant, menu):
    response = await client.get(f"/api/public/menu/{restaurant.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["restaurant"]["name"] == "Trattoria Roma"
    assert "email" not in body["restaurant"]
    assert body["categories"] == ["Drinks", "Pizza", "Salads"]
    assert [i["name"] for i in body["menu"]["Pizza"]] == ["Margherita"]


async def test_public_menu_hidden_until_published(client, staff, restaurant, menu):
    await client.put("/api/restaurant/publish", headers=staff, json={"is_published": False})

    response = await client.get(f"/api/public/menu/{restaurant.id}")

    assert response.status_code == 404


async def test_public_tables_lists_active_tables(client, staff, restaurant, table):
    inactive = (await client.post("/api/tables", headers=staff, json={"table_number": "9"})).json()["table"]
    await client.put(f"/api/tables/{inactive['id']}", headers=staff, json={"is_active": False})

    response = await client.get(f"/api/public/tables/{restaurant.id}")

    assert response.status_code == 200
    assert response.json()["tables"] == [{"id": table.id, "table_number": "5"}]


async def test_public_tables_unknown_restaurant(client):
    response = await client.get("/api/public/tables/4242")

    assert response.status_code == 404
