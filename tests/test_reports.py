from datetime import datetime, timedelta, timezone

import pytest

from qrdine.models import ItemStatus, MenuItem, Order, OrderItem, OrderStatus, Table
from qrdine.services.reports import build_dashboard, build_report, dashboard_windows, default_range

NOW = datetime(2026, 3, 14, 19, 30, tzinfo=timezone.utc)

PIZZA = MenuItem(id=1, name="Margherita", price=12.5, category="Pizza")
COLA = MenuItem(id=2, name="Cola", price=3.0, category="Drinks")
SALAD = MenuItem(id=3, name="Caesar Salad", price=8.0, category="Salads")

TABLE_1 = Table(id=1, table_number="1")
TABLE_2 = Table(id=2, table_number="2")

COUNTS = {"total_tables": 2, "active_tables": 2, "total_menu_items": 3, "active_menu_items": 3}

_next_id = iter(range(1, 10_000))


def make_order(created_at, lines, status=OrderStatus.PENDING, table=TABLE_1, completed_after=None):
    """lines: (menu_item, quantity)"""
    items = [
        OrderItem(
            id=next(_next_id),
            menu_item=menu_item,
            menu_item_id=menu_item.id,
            quantity=quantity,
            price=menu_item.price,
            status=ItemStatus.PENDING,
            batch=1,
        )
        for menu_item, quantity in lines
    ]
    return Order(
        id=next(_next_id),
        order_number="ORD-1",
        status=status,
        created_at=created_at,
        completed_at=created_at + completed_after if completed_after else None,
        table=table,
        table_id=table.id,
        total_amount=round(sum(i.price * i.quantity for i in items), 2),
        items=items,
    )


# =============================================================================
# REPORTS
# =============================================================================

@pytest.fixture
def period():
    return datetime(2026, 3, 7, tzinfo=timezone.utc), NOW


@pytest.fixture
def orders(period):
    start, _ = period
    return [
        make_order(
            start + timedelta(days=1, hours=12), [(PIZZA, 2), (COLA, 2)],
            status=OrderStatus.DELIVERED, completed_after=timedelta(minutes=20),
        ),
        make_order(
            start + timedelta(days=1, hours=12, minutes=30), [(SALAD, 1)],
            status=OrderStatus.DELIVERED, table=TABLE_2, completed_after=timedelta(minutes=10),
        ),
        make_order(start + timedelta(days=2, hours=19), [(COLA, 1)], status=OrderStatus.CANCELLED),
        make_order(start + timedelta(days=3, hours=12), [(PIZZA, 2)]),
    ]


def test_report_overview(orders, period):
    start, end = period
    previous = [make_order(start - timedelta(days=2), [(PIZZA, 2)])]

    report = build_report(orders, previous, start, end, COUNTS)

    overview = report["overview"]
    assert overview["total_orders"] == 4
    assert overview["total_revenue"] == 67.0
    assert overview["average_order_value"] == 16.75
    assert overview["unique_customers"] == 2
    assert overview["repeat_customers"] == 1
    assert overview["customer_retention_rate"] == 50.0
    assert overview["completion_rate"] == 50.0
    assert overview["cancellation_rate"] == 25.0
    assert overview["average_prep_time"] == 15.0
    assert overview["revenue_growth"] == 168.0
    assert overview["order_growth"] == 300.0


def test_report_order_metrics(orders, period):
    start, end = period

    metrics = build_report(orders, [], start, end, COUNTS)["order_metrics"]

    assert metrics["orders_by_status"] == {"DELIVERED": 2, "CANCELLED": 1, "PENDING": 1}
    assert metrics["hourly_orders"] == {12: 3, 19: 1}
    assert metrics["peak_hours"] == [{"hour": 12, "orders": 3}, {"hour": 19, "orders": 1}]
    assert metrics["daily_revenue"] == {"2026-03-08": 39.0, "2026-03-09": 3.0, "2026-03-10": 25.0}


def test_report_menu_and_table_performance(orders, period):
    start, end = period

    report = build_report(orders, [], start, end, COUNTS)

    top_items = report["menu_performance"]["top_menu_items"]
    assert [(i["name"], i["quantity"], i["revenue"], i["orders"]) for i in top_items] == [
        ("Margherita", 4, 50.0, 2),
        ("Cola", 3, 9.0, 2),
        ("Caesar Salad", 1, 8.0, 1),
    ]
    assert [c["category"] for c in report["menu_performance"]["category_performance"]] == [
        "Pizza", "Drinks", "Salads",
    ]
    assert report["menu_performance"]["active_menu_items"] == 3

    tables = report["table_performance"]["top_tables"]
    assert tables[0] == {
        "table_id": 1, "table_number": "1", "orders": 3, "revenue": 59.0, "average_order_value": 19.67,
    }
    assert tables[1]["table_number"] == "2"


def test_report_without_orders(period):
    start, end = period

    report = build_report([], [], start, end, COUNTS)

    assert report["overview"]["total_orders"] == 0
    assert report["overview"]["average_order_value"] == 0.0
    assert report["overview"]["revenue_growth"] == 0.0
    assert report["order_metrics"]["peak_hours"] == []
    assert report["menu_performance"]["top_menu_items"] == []
    assert report["table_performance"]["top_tables"] == []


def test_default_range():
    start, end = default_range(None, None, 30, now=NOW)
    assert end == NOW
    assert start == NOW - timedelta(days=30)

    with pytest.raises(ValueError):
        default_range(NOW, NOW - timedelta(days=1), 30)


# =============================================================================
# DASHBOARD
# =============================================================================

def test_dashboard_windows():
    w = dashboard_windows(NOW)

    assert w["today_start"] == datetime(2026, 3, 14, tzinfo=timezone.utc)
    assert w["month_start"] == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert w["last_month_start"] == datetime(2026, 2, 1, tzinfo=timezone.utc)
    assert w["week_start"] == NOW - timedelta(days=7)


def test_dashboard_metrics():
    orders = [
        make_order(datetime(2026, 2, 20, 12, tzinfo=timezone.utc), [(PIZZA, 2)]),
        make_order(datetime(2026, 3, 2, 12, tzinfo=timezone.utc), [(COLA, 5)]),
        make_order(datetime(2026, 3, 10, 13, tzinfo=timezone.utc), [(PIZZA, 1)], status=OrderStatus.DELIVERED),
        make_order(datetime(2026, 3, 14, 12, 15, tzinfo=timezone.utc), [(PIZZA, 1), (COLA, 1)]),
        make_order(datetime(2026, 3, 14, 12, 45, tzinfo=timezone.utc), [(SALAD, 1)]),
    ]

    dashboard = build_dashboard(orders, orders[::-1][:2], COUNTS, now=NOW)

    metrics = dashboard["metrics"]
    assert metrics["today"] == {"orders": 2, "revenue": 23.5, "items": 3}
    assert metrics["week"] == {"orders": 3, "revenue": 36.0, "items": 4}
    assert metrics["month"]["orders"] == 4
    assert metrics["month"]["revenue"] == 51.0
    assert metrics["month"]["growth"] == 104.0
    assert metrics["average_order_value"] == 12.0

    hourly = dashboard["charts"]["hourly_orders"]
    assert len(hourly) == 24
    assert hourly[12] == {"hour": 12, "orders": 2, "revenue": 23.5}
    assert hourly[13] == {"hour": 13, "orders": 0, "revenue": 0.0}

    assert dashboard["charts"]["orders_by_status"] == [
        {"status": "DELIVERED", "count": 1},
        {"status": "PENDING", "count": 2},
    ]

    top = dashboard["charts"]["top_menu_items"]
    assert [(t["name"], t["quantity"], t["count"]) for t in top] == [
        ("Cola", 6, 2),
        ("Margherita", 2, 2),
        ("Caesar Salad", 1, 1),
    ]

    assert [r["item_count"] for r in dashboard["recent_orders"]] == [1, 2]
    assert dashboard["inventory"]["total_tables"] == 2


def test_dashboard_growth_without_last_month():
    orders = [make_order(datetime(2026, 3, 2, tzinfo=timezone.utc), [(COLA, 1)])]

    dashboard = build_dashboard(orders, [], COUNTS, now=NOW)

    assert dashboard["metrics"]["month"]["growth"] == 100.0


def test_dashboard_empty():
    dashboard = build_dashboard([], [], COUNTS, now=NOW)

    assert dashboard["metrics"]["today"] == {"orders": 0, "revenue": 0.0, "items": 0}
    assert dashboard["metrics"]["month"]["growth"] == 0.0
    assert dashboard["charts"]["top_menu_items"] == []
    assert dashboard["charts"]["orders_by_status"] == []


def test_dashboard_dates_added_batches_by_their_own_time():
    order = make_order(datetime(2026, 2, 25, 20, tzinfo=timezone.utc), [(PIZZA, 1)])
    order.items.append(OrderItem(
        id=next(_next_id),
        menu_item=COLA,
        menu_item_id=COLA.id,
        quantity=2,
        price=COLA.price,
        status=ItemStatus.PENDING,
        batch=2,
        created_at=NOW - timedelta(hours=1),
    ))

    dashboard = build_dashboard([order], [], COUNTS, now=NOW)

    assert dashboard["metrics"]["today"] == {"orders": 0, "revenue": 0.0, "items": 1}
    assert dashboard["metrics"]["month"]["items"] == 1
    top = dashboard["charts"]["top_menu_items"]
    assert [(t["name"], t["quantity"]) for t in top] == [("Cola", 2)]
