"""
Reports and Dashboard Analytics

Aggregates orders into the figures shown on the staff dashboard and the
reports page. Queries stay in the API layer; this module only receives
loaded orders and does the arithmetic with pandas.

All hour and day buckets are UTC.

Version: 1.0.0
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import pandas as pd

from qrdine.models import Order, OrderStatus
from qrdine.services.order_workflow import as_utc

logger = logging.getLogger(__name__)

ORDER_FRAME_COLUMNS = [
    "id",
    "order_number",
    "table_id",
    "table_number",
    "status",
    "total_amount",
    "created_at",
    "completed_at",
]

ITEM_FRAME_COLUMNS = [
    "order_id",
    "menu_item_id",
    "name",
    "category",
    "menu_price",
    "quantity",
    "revenue",
    "created_at",
]


# =============================================================================
# FRAME BUILDERS
# =============================================================================

def orders_frame(orders: Iterable[Order]) -> pd.DataFrame:
    rows = [
        {
            "id": o.id,
            "order_number": o.order_number,
            "table_id": o.table_id,
            "table_number": o.table_number or "Unknown",
            "status": o.status.value,
            "total_amount": float(o.total_amount or 0),
            "created_at": as_utc(o.created_at),
            "completed_at": as_utc(o.completed_at) if o.completed_at else None,
        }
        for o in orders
    ]
    df = pd.DataFrame(rows, columns=ORDER_FRAME_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    df["completed_at"] = pd.to_datetime(df["completed_at"], utc=True)
    return df


def items_frame(orders: Iterable[Order]) -> pd.DataFrame:
    rows = [
        {
            "order_id": o.id,
            "menu_item_id": item.menu_item_id,
            "name": item.menu_item.name if item.menu_item else "Unknown Item",
            "category": item.menu_item.category if item.menu_item else "Uncategorized",
            "menu_price": item.menu_item.price if item.menu_item else 0.0,
            "quantity": item.quantity,
            "revenue": item.price * item.quantity,
            # Added batches count on the day they were ordered
            "created_at": as_utc(item.created_at or o.created_at),
        }
        for o in orders
        for item in o.items
    ]
    df = pd.DataFrame(rows, columns=ITEM_FRAME_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


# =============================================================================
# HELPERS
# =============================================================================

def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _growth(current: float, previous: float) -> float:
    return round((current - previous) / previous * 100, 2) if previous else 0.0


def default_range(
    start: Optional[datetime],
    end: Optional[datetime],
    days: int,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """Resolve an optional date range, defaulting to the last ``days`` days."""
    now = as_utc(now or datetime.now(timezone.utc))
    end = as_utc(end) if end else now
    start = as_utc(start) if start else end - timedelta(days=days)
    if start > end:
        raise ValueError("start_date must be before end_date")
    return start, end


def _status_counts(df: pd.DataFrame) -> dict[str, int]:
    if df.empty:
        return {}
    return {status: int(n) for status, n in df["status"].value_counts().items()}


def _daily_revenue(df: pd.DataFrame) -> dict[str, float]:
    if df.empty:
        return {}
    daily = df.groupby(df["created_at"].dt.strftime("%Y-%m-%d"))["total_amount"].sum()
    return {day: round(float(v), 2) for day, v in daily.sort_index().items()}


def _hourly_counts(df: pd.DataFrame) -> dict[int, int]:
    if df.empty:
        return {}
    hourly = df.groupby(df["created_at"].dt.hour)["id"].count()
    return {int(hour): int(n) for hour, n in hourly.sort_index().items()}


# =============================================================================
# REPORTS PAGE
# =============================================================================

def _menu_performance(items: pd.DataFrame) -> tuple[list[dict], list[dict]]:
    if items.empty:
        return [], []

    per_item = (
        items.groupby("menu_item_id")
        .agg(
            name=("name", "first"),
            category=("category", "first"),
            quantity=("quantity", "sum"),
            revenue=("revenue", "sum"),
            orders=("order_id", "nunique"),
        )
        .sort_values("revenue", ascending=False, kind="stable")
        .head(10)
    )
    top_items = [
        {
            "id": int(menu_item_id),
            "name": row["name"],
            "category": row["category"],
            "quantity": int(row["quantity"]),
            "revenue": round(float(row["revenue"]), 2),
            "orders": int(row["orders"]),
        }
        for menu_item_id, row in per_item.iterrows()
    ]

    per_category = (
        items.groupby("category")
        .agg(
            quantity=("quantity", "sum"),
            revenue=("revenue", "sum"),
            orders=("order_id", "nunique"),
        )
        .sort_values("revenue", ascending=False, kind="stable")
    )
    categories = [
        {
            "category": category,
            "quantity": int(row["quantity"]),
            "revenue": round(float(row["revenue"]), 2),
            "orders": int(row["orders"]),
        }
        for category, row in per_category.iterrows()
    ]

    return top_items, categories


def _table_performance(df: pd.DataFrame) -> list[dict]:
    if df.empty:
        return []

    per_table = (
        df.groupby("table_id")
        .agg(
            table_number=("table_number", "first"),
            orders=("id", "count"),
            revenue=("total_amount", "sum"),
        )
        .sort_values("revenue", ascending=False, kind="stable")
        .head(10)
    )
    return [
        {
            "table_id": int(table_id),
            "table_number": row["table_number"],
            "orders": int(row["orders"]),
            "revenue": round(float(row["revenue"]), 2),
            "average_order_value": round(float(row["revenue"]) / int(row["orders"]), 2),
        }
        for table_id, row in per_table.iterrows()
    ]


def build_report(
    orders: list[Order],
    previous_orders: list[Order],
    start: datetime,
    end: datetime,
    counts: dict[str, int],
    restaurant: Optional[dict[str, Any]] = None,
    report_type: str = "overview",
) -> dict[str, Any]:
    """
    Build the reports page payload.

    Args:
        orders: Orders created inside [start, end]
        previous_orders: Orders from the equal-length period before ``start``
        counts: total_tables, active_tables, total_menu_items, active_menu_items
        restaurant: Restaurant summary echoed back to the client
        report_type: Echoed back; every section is always computed

    Returns:
        Nested dictionary of report sections
    """
    df = orders_frame(orders)
    items = items_frame(orders)

    total_orders = len(df)
    total_revenue = round(float(df["total_amount"].sum()), 2) if total_orders else 0.0
    average_order_value = round(total_revenue / total_orders, 2) if total_orders else 0.0

    # Tables stand in for customers: there is no customer account
    per_table_counts = df["table_id"].value_counts() if total_orders else pd.Series(dtype=int)
    unique_customers = int(len(per_table_counts))
    repeat_customers = int((per_table_counts > 1).sum())
    retention_rate = _pct(repeat_customers, unique_customers)

    delivered = df[df["status"] == OrderStatus.DELIVERED.value]
    completed_orders = len(delivered)
    cancelled_orders = int((df["status"] == OrderStatus.CANCELLED.value).sum())

    prep = delivered.dropna(subset=["completed_at"])
    if prep.empty:
        average_prep_time = 0.0
    else:
        minutes = (prep["completed_at"] - prep["created_at"]).dt.total_seconds() / 60
        average_prep_time = round(float(minutes.mean()), 2)

    previous_revenue = sum(float(o.total_amount or 0) for o in previous_orders)
    revenue_growth = _growth(total_revenue, previous_revenue)
    order_growth = _growth(total_orders, len(previous_orders))

    orders_by_status = _status_counts(df)
    daily_revenue = _daily_revenue(df)
    hourly_orders = _hourly_counts(df)
    peak_hours = [
        {"hour": hour, "orders": n}
        for hour, n in sorted(hourly_orders.items(), key=lambda kv: (-kv[1], kv[0]))[:3]
    ]

    top_menu_items, category_performance = _menu_performance(items)
    top_tables = _table_performance(df)

    logger.debug(f"Report built: {total_orders} orders, revenue {total_revenue}")

    return {
        "restaurant": restaurant,
        "report_type": report_type,
        "date_range": {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        },
        "overview": {
            "total_orders": total_orders,
            "total_revenue": total_revenue,
            "average_order_value": average_order_value,
            "unique_customers": unique_customers,
            "repeat_customers": repeat_customers,
            "customer_retention_rate": retention_rate,
            "completion_rate": _pct(completed_orders, total_orders),
            "cancellation_rate": _pct(cancelled_orders, total_orders),
            "average_prep_time": average_prep_time,
            "revenue_growth": revenue_growth,
            "order_growth": order_growth,
        },
        "order_metrics": {
            "orders_by_status": orders_by_status,
            "daily_revenue": daily_revenue,
            "hourly_orders": hourly_orders,
            "peak_hours": peak_hours,
            "completed_orders": completed_orders,
            "cancelled_orders": cancelled_orders,
        },
        "menu_performance": {
            "top_menu_items": top_menu_items,
            "category_performance": category_performance,
            "total_menu_items": counts.get("total_menu_items", 0),
            "active_menu_items": counts.get("active_menu_items", 0),
        },
        "table_performance": {
            "top_tables": top_tables,
            "total_tables": counts.get("total_tables", 0),
            "active_tables": counts.get("active_tables", 0),
        },
        "trends": {
            "daily_revenue": daily_revenue,
            "hourly_distribution": hourly_orders,
        },
        "business_metrics": {
            "average_order_value": average_order_value,
            "customer_retention_rate": retention_rate,
            "average_prep_time": average_prep_time,
            "revenue_growth": revenue_growth,
            "order_growth": order_growth,
        },
    }


# =============================================================================
# DASHBOARD
# =============================================================================

def dashboard_windows(now: Optional[datetime] = None) -> dict[str, datetime]:
    """Start (and end) instants of the dashboard periods."""
    now = as_utc(now or datetime.now(timezone.utc))
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today_start.replace(day=1)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)
    return {
        "now": now,
        "today_start": today_start,
        "week_start": now - timedelta(days=7),
        "month_start": month_start,
        "last_month_start": last_month_start,
    }


def _period_metrics(df: pd.DataFrame, items: pd.DataFrame, since: datetime, until: Optional[datetime] = None) -> dict[str, Any]:
    mask = df["created_at"] >= since
    item_mask = items["created_at"] >= since
    if until is not None:
        mask &= df["created_at"] < until
        item_mask &= items["created_at"] < until
    period = df[mask]
    return {
        "orders": int(len(period)),
        "revenue": round(float(period["total_amount"].sum()), 2),
        "items": int(item_mask.sum()),
    }


def build_dashboard(
    orders: list[Order],
    recent_orders: list[Order],
    counts: dict[str, int],
    restaurant: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Build the staff dashboard payload.

    Args:
        orders: Every order created since the start of last month
        recent_orders: The latest orders, newest first
        counts: total_tables, active_tables, total_menu_items, active_menu_items
    """
    w = dashboard_windows(now)
    df = orders_frame(orders)
    items = items_frame(orders)

    today = _period_metrics(df, items, w["today_start"])
    week = _period_metrics(df, items, w["week_start"])
    month = _period_metrics(df, items, w["month_start"])
    last_month = _period_metrics(df, items, w["last_month_start"], w["month_start"])

    if last_month["revenue"] > 0:
        month["growth"] = _growth(month["revenue"], last_month["revenue"])
    else:
        month["growth"] = 100.0 if month["revenue"] > 0 else 0.0

    average_order_value = round(week["revenue"] / week["orders"], 2) if week["orders"] else 0.0

    todays = df[df["created_at"] >= w["today_start"]]
    by_hour = todays.groupby(todays["created_at"].dt.hour).agg(
        orders=("id", "count"), revenue=("total_amount", "sum")
    ) if not todays.empty else None
    hourly_chart = []
    for hour in range(24):
        if by_hour is not None and hour in by_hour.index:
            row = by_hour.loc[hour]
            hourly_chart.append({
                "hour": hour,
                "orders": int(row["orders"]),
                "revenue": round(float(row["revenue"]), 2),
            })
        else:
            hourly_chart.append({"hour": hour, "orders": 0, "revenue": 0.0})

    week_df = df[df["created_at"] >= w["week_start"]]
    orders_by_status = [
        {"status": status, "count": n} for status, n in sorted(_status_counts(week_df).items())
    ]

    month_items = items[items["created_at"] >= w["month_start"]]
    top_menu_items = []
    if not month_items.empty:
        top = (
            month_items.groupby("menu_item_id")
            .agg(
                name=("name", "first"),
                price=("menu_price", "first"),
                quantity=("quantity", "sum"),
                count=("order_id", "count"),
            )
            .sort_values("quantity", ascending=False, kind="stable")
            .head(5)
        )
        top_menu_items = [
            {
                "menu_item_id": int(menu_item_id),
                "name": row["name"],
                "price": float(row["price"]),
                "quantity": int(row["quantity"]),
                "count": int(row["count"]),
            }
            for menu_item_id, row in top.iterrows()
        ]

    return {
        "restaurant": restaurant,
        "metrics": {
            "today": today,
            "week": week,
            "month": month,
            "average_order_value": average_order_value,
        },
        "inventory": {
            "total_tables": counts.get("total_tables", 0),
            "active_tables": counts.get("active_tables", 0),
            "total_menu_items": counts.get("total_menu_items", 0),
            "active_menu_items": counts.get("active_menu_items", 0),
        },
        "charts": {
            "hourly_orders": hourly_chart,
            "orders_by_status": orders_by_status,
            "top_menu_items": top_menu_items,
        },
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "status": o.status.value,
                "total_amount": float(o.total_amount or 0),
                "item_count": len(o.items),
                "table_number": o.table_number or "N/A",
                "created_at": as_utc(o.created_at).isoformat(),
                "customer_name": o.customer_name,
                "customer_phone": o.customer_phone,
            }
            for o in recent_orders
        ],
    }
