"""
Dinner Rush Simulation Script

Fires concurrent table orders at a running server, adds follow-up batches
to some of them, then plays the kitchen: every item is walked through
PENDING -> PREPARING -> READY and finished orders are delivered.

The restaurant must be published and have active tables and available
menu items.

Run from project root: python scripts/simulate.py --restaurant-id 1

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
ADD_ITEMS_RATIO = 0.3

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
ITEM_NOTES = [None, None, None, "No onions", "Extra cheese", "Well done", "Gluten free"]


def generate_items(menu_ids: list[int]) -> list[dict[str, Any]]:
    """Generate 1-4 random order lines."""
    return [
        {
            "menu_item_id": random.choice(menu_ids),
            "quantity": random.randint(1, 3),
            "notes": random.choice(ITEM_NOTES),
        }
        for _ in range(random.randint(1, 4))
    ]


async def load_restaurant(client: httpx.AsyncClient, restaurant_id: int) -> tuple[list[int], list[int]]:
    """Active table ids and available menu item ids from the public endpoints."""
    tables = await client.get(f"{API_BASE_URL}/api/public/tables/{restaurant_id}")
    tables.raise_for_status()
    menu = await client.get(f"{API_BASE_URL}/api/public/menu/{restaurant_id}")
    menu.raise_for_status()

    table_ids = [t["id"] for t in tables.json()["tables"]]
    menu_ids = [item["id"] for items in menu.json()["menu"].values() for item in items]
    return table_ids, menu_ids


# =============================================================================
# CUSTOMERS
# =============================================================================

async def place_order(
    client: httpx.AsyncClient,
    order_num: int,
    restaurant_id: int,
    table_ids: list[int],
    menu_ids: list[int],
) -> dict[str, Any]:
    """Place one order from a random table."""
    payload = {
        "restaurant_id": restaurant_id,
        "table_id": random.choice(table_ids),
        "customer_name": random.choice(FIRST_NAMES),
        "items": generate_items(menu_ids),
    }
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_id": order["id"],
                "total": order["total_amount"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def add_batch(client: httpx.AsyncClient, order_id: int, menu_ids: list[int]) -> bool:
    """A table orders another round."""
    response = await client.post(
        f"{API_BASE_URL}/api/orders/{order_id}/add-items",
        json={"items": generate_items(menu_ids)},
        timeout=30.0,
    )
    return response.status_code == 200


# =============================================================================
# KITCHEN
# =============================================================================

async def run_kitchen(client: httpx.AsyncClient, restaurant_id: int, max_rounds: int = 10) -> dict[str, int]:
    """Advance every open item one step per round, delivering finished orders."""
    headers = {"X-Restaurant-Id": str(restaurant_id)}
    stats = {"item_updates": 0, "delivered": 0, "conflicts": 0}

    for round_num in range(1, max_rounds + 1):
        response = await client.get(f"{API_BASE_URL}/api/kitchen/orders", headers=headers)
        response.raise_for_status()
        view = response.json()

        if not view["orders"]:
            print(f"   Kitchen clear after {round_num - 1} rounds")
            break

        print(
            f"   Round {round_num}: {view['total_orders']} orders, "
            f"{view['pending_items']} pending / {view['preparing_items']} preparing / "
            f"{view['ready_items']} ready"
        )

        for item in view["all_items"]:
            if item["next_status"] in ("PREPARING", "READY"):
                r = await client.put(
                    f"{API_BASE_URL}/api/orders/items/{item['id']}",
                    json={"status": item["next_status"]},
                    headers=headers,
                )
                if r.status_code == 200:
                    stats["item_updates"] += 1
                elif r.status_code == 409:
                    stats["conflicts"] += 1

        for order in view["orders"]:
            if order["status"] == "READY":
                r = await client.put(
                    f"{API_BASE_URL}/api/orders/{order['id']}",
                    json={"status": "DELIVERED"},
                    headers=headers,
                )
                if r.status_code == 200:
                    stats["delivered"] += 1
                elif r.status_code == 409:
                    stats["conflicts"] += 1

    return stats


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(restaurant_id: int, num_orders: int = TOTAL_ORDERS, kitchen: bool = True) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"🏪 Restaurant: #{restaurant_id}")
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        table_ids, menu_ids = await load_restaurant(client, restaurant_id)
        if not table_ids or not menu_ids:
            print("\n❌ Restaurant needs active tables and available menu items")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        print(f"\n🚀 Firing {num_orders} orders from {len(table_ids)} tables...\n")
        results = await asyncio.gather(*[
            place_order(client, i + 1, restaurant_id, table_ids, menu_ids)
            for i in range(num_orders)
        ])

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        followups = random.sample(successful, k=int(len(successful) * ADD_ITEMS_RATIO))
        added = await asyncio.gather(*[add_batch(client, r["order_id"], menu_ids) for r in followups])

        kitchen_stats = {}
        if kitchen:
            print("\n👨‍🍳 Kitchen working...\n")
            kitchen_stats = await run_kitchen(client, restaurant_id)

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"➕ Follow-up batches: {sum(added)}/{len(followups)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Revenue (first batches): {sum(r['total'] for r in successful):.2f}")

    if kitchen_stats:
        print(f"\n🍳 Kitchen:")
        print(f"   Item updates: {kitchen_stats['item_updates']}")
        print(f"   Orders delivered: {kitchen_stats['delivered']}")
        print(f"   Conflicts (409): {kitchen_stats['conflicts']}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print(f"3. Open {API_BASE_URL}/api/reports with X-Restaurant-Id: {restaurant_id}")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "kitchen": kitchen_stats,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation")
    parser.add_argument("--restaurant-id", type=int, required=True, help="Published restaurant id")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-kitchen", action="store_true", help="Only place orders")
    args = parser.parse_args()

    asyncio.run(run_simulation(args.restaurant_id, num_orders=args.orders, kitchen=not args.no_kitchen))
