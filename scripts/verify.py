"""
Excel Verification Script

Verifies data integrity of the order export workbook written by the
Celery worker.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import json
import os
import sys
from datetime import datetime

import pandas as pd

DATA_DIR = os.environ.get("DATA_DIRECTORY", "data")
EXCEL_FILE = os.path.join(DATA_DIR, os.environ.get("EXCEL_FILENAME", "orders.xlsx"))

REQUIRED_COLUMNS = [
    "order_id",
    "order_number",
    "restaurant_id",
    "table_number",
    "items",
    "total_amount",
    "order_status",
]


def items_total(raw) -> float:
    """Recompute an order total from its exported item lines."""
    try:
        lines = json.loads(raw)
    except (TypeError, ValueError):
        return float("nan")
    return round(sum(line["price"] * line["quantity"] for line in lines), 2)


def verify_excel() -> bool:
    """Verify export workbook integrity after a simulation."""

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {EXCEL_FILE}")
    print("=" * 60)

    if not os.path.exists(EXCEL_FILE):
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py --restaurant-id <id>")
        return False

    try:
        df = pd.read_excel(EXCEL_FILE, engine="openpyxl")
        print(f"\n✅ File loaded successfully!")
    except (OSError, ValueError) as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    ok = True

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        ok = False
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print(f"\n✅ All required columns present")

    if "order_id" in df.columns:
        duplicates = int(df["order_id"].duplicated().sum())
        if duplicates > 0:
            ok = False
            print(f"\n⚠️ {duplicates} duplicate order IDs found!")
        else:
            print(f"✅ No duplicate order IDs")

    if "order_number" in df.columns:
        malformed = int((~df["order_number"].astype(str).str.match(r"^ORD-\d+-[A-Z0-9]{4}$")).sum())
        if malformed:
            ok = False
            print(f"⚠️ {malformed} malformed order numbers")
        else:
            print(f"✅ All order numbers well-formed")

    if not missing and len(df) > 0:
        recomputed = df["items"].map(items_total)
        mismatched = int(((recomputed - df["total_amount"]).abs() > 0.01).sum())
        if mismatched:
            ok = False
            print(f"⚠️ {mismatched} orders whose items do not add up to the total")
        else:
            print(f"✅ Item lines add up to every order total")

        total = df["total_amount"].sum()
        avg = df["total_amount"].mean()
        print(f"\n💰 REVENUE:")
        print(f"   Total: {total:.2f}")
        print(f"   Average: {avg:.2f}")

        print(f"\n🏪 ORDERS PER RESTAURANT:")
        print(df.groupby("restaurant_id")["order_id"].count().to_string())

    print(f"\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = ["order_number", "table_number", "total_amount", "order_status"]
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
