from sqlalchemy import select
from werkzeug.security import check_password_hash

from qrdine.models import Restaurant

SIGNUP = {
    "email": "Owner@Example.com",
    "password": "s3cret-pass",
    "name": "Casa Nostra",
    "address": "3 Quay Street",
    "phone": "+353 1 111 2222",
}


async def test_signup_creates_unpublished_restaurant(client, session_maker):
    response = await client.post("/api/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    body = response.json()
    assert body["restaurant"]["email"] == "owner@example.com"
    assert body["restaurant"]["is_published"] is False
    assert body["restaurant"]["currency"] == "€"
    assert "password_hash" not in body["restaurant"]

    async with session_maker() as session:
        stored = (await session.execute(select(Restaurant))).scalar_one()
    assert stored.password_hash != SIGNUP["password"]
    assert check_password_hash(stored.password_hash, SIGNUP["password"])


async def test_signup_rejects_duplicate_email(client):
    assert (await client.post("/api/auth/signup", json=SIGNUP)).status_code == 201

    response = await client.post("/api/auth/signup", json={**SIGNUP, "email": "owner@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Restaurant with this email already exists"


async def test_signup_validates_input(client):
    response = await client.post("/api/auth/signup", json={**SIGNUP, "email": "not-an-email"})
    assert response.status_code == 422

    response = await client.post("/api/auth/signup", json={k: v for k, v in SIGNUP.items() if k != "phone"})
    assert response.status_code == 422


async def test_staff_endpoints_require_restaurant_header(client, restaurant):
    assert (await client.get("/api/restaurant/settings")).status_code == 401
    response = await client.get("/api/restaurant/settings", headers={"X-Restaurant-Id": "999"})
    assert response.status_code == 404


async def test_get_and_update_settings(client, staff):
    response = await client.get("/api/restaurant/settings", headers=staff)
    assert response.status_code == 200
    assert response.json()["restaurant"]["name"] == "Trattoria Roma"

    response = await client.put(
        "/api/restaurant/settings",
        headers=staff,
        json={
            "name": "Trattoria Roma II",
            "address": "1 Main Street",
            "phone": "+353 1 234 5678",
            "website": "  ",
            "currency": "$",
        },
    )

    assert response.status_code == 200
    restaurant = response.json()["restaurant"]
    assert restaurant["name"] == "Trattoria Roma II"
    assert restaurant["website"] is None
    assert restaurant["currency"] == "$"


async def test_blank_currency_falls_back_to_default(client, staff):
    response = await client.put(
        "/api/restaurant/settings",
        headers=staff,
        json={"name": "T", "address": "A", "phone": "P", "currency": ""},
    )

    assert response.json()["restaurant"]["currency"] == "€"


async def test_currency_longer_than_five_characters_is_rejected(client, staff):
    response = await client.put(
        "/api/restaurant/settings",
        headers=staff,
        json={"name": "T", "address": "A", "phone": "P", "currency": "EURO€€"},
    )

    assert response.status_code == 422


async def test_publish_toggle(client, staff, menu):
    response = await client.get("/api/restaurant/publish", headers=staff)
    assert response.status_code == 200
    assert response.json()["restaurant"]["is_published"] is True
    # Tiramisu is unavailable
    assert response.json()["restaurant"]["available_menu_items_count"] == 3

    response = await client.put("/api/restaurant/publish", headers=staff, json={"is_published": False})
    assert response.status_code == 200
    assert response.json()["message"] == "Menu unpublished successfully"

    response = await client.get("/api/restaurant/publish", headers=staff)
    assert response.json()["restaurant"]["is_published"] is False


async def test_publish_requires_boolean(client, staff):
    response = await client.put("/api/restaurant/publish", headers=staff, json={"is_published": "yes"})

    assert response.status_code == 422
