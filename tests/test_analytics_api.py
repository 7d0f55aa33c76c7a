async def test_dashboard_counts_todays_orders(client, staff, restaurant, table, menu, place_order):
    await place_order([(menu["Margherita"], 2)])
    await place_order([(menu["Cola"], 1)], customer_name="Aoife")

    response = await client.get("/api/analytics/dashboard", headers=staff)

    assert response.status_code == 200
    body = response.json()
    assert body["restaurant"]["name"] == "Trattoria Roma"
    assert body["metrics"]["today"] == {"orders": 2, "revenue": 28.0, "items": 2}
    assert body["metrics"]["week"]["orders"] == 2
    assert body["inventory"] == {
        "total_tables": 1, "active_tables": 1, "total_menu_items": 4, "active_menu_items": 3,
    }
    assert len(body["charts"]["hourly_orders"]) == 24
    assert body["charts"]["orders_by_status"] == [{"status": "PENDING", "count": 2}]

    recent = body["recent_orders"]
    assert [r["customer_name"] for r in recent] == ["Aoife", None]
    assert recent[0]["table_number"] == "5"


async def test_dashboard_for_new_restaurant(client, staff, restaurant):
    body = (await client.get("/api/analytics/dashboard", headers=staff)).json()

    assert body["metrics"]["month"] == {"orders": 0, "revenue": 0.0, "items": 0, "growth": 0.0}
    assert body["recent_orders"] == []


async def test_dashboard_is_scoped_to_restaurant(client, other_restaurant, menu, place_order):
    await place_order([(menu["Cola"], 1)])

    body = (await client.get(
        "/api/analytics/dashboard", headers={"X-Restaurant-Id": str(other_restaurant.id)}
    )).json()

    assert body["metrics"]["today"]["orders"] == 0


async def test_reports_default_range(client, staff, menu, place_order):
    order = (await place_order([(menu["Margherita"], 1), (menu["Cola"], 2)])).json()["order"]
    await place_order([(menu["Caesar Salad"], 1)])
    await client.put(f"/api/orders/{order['id']}", headers=staff, json={"status": "CANCELLED"})

    response = await client.get("/api/reports", headers=staff, params={"type": "sales"})

    assert response.status_code == 200
    body = response.json()
    assert body["report_type"] == "sales"
    overview = body["overview"]
    assert overview["total_orders"] == 2
    assert overview["total_revenue"] == 26.5
    assert overview["cancellation_rate"] == 50.0
    assert overview["unique_customers"] == 1
    assert overview["repeat_customers"] == 1
    assert body["order_metrics"]["orders_by_status"] == {"CANCELLED": 1, "PENDING": 1}
    assert body["menu_performance"]["top_menu_items"][0]["name"] == "Margherita"
    assert body["table_performance"]["top_tables"][0]["table_number"] == "5"


async def test_reports_explicit_range_excludes_orders(client, staff, menu, place_order):
    await place_order([(menu["Cola"], 1)])

    response = await client.get(
        "/api/reports",
        headers=staff,
        params={"start_date": "2020-01-01T00:00:00Z", "end_date": "2020-01-31T00:00:00Z"},
    )

    assert response.status_code == 200
    assert response.json()["overview"]["total_orders"] == 0
    assert response.json()["date_range"]["start_date"].startswith("2020-01-01")


async def test_reports_reject_inverted_range(client, staff):
    response = await client.get(
        "/api/reports",
        headers=staff,
        params={"start_date": "2024-02-01T00:00:00Z", "end_date": "2024-01-01T00:00:00Z"},
    )

    assert response.status_code == 400


async def test_analytics_require_staff(client):
    assert (await client.get("/api/analytics/dashboard")).status_code == 401
    assert (await client.get("/api/reports")).status_code == 401
