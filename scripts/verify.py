"""
Order Verification Script

Verifies data integrity of the stored orders through the API:
unique ids, totals matching their lines, one line per item and
dashboard counts matching the order list.
Run from project root: python scripts/verify.py
"""

import sys
from collections import Counter
from datetime import datetime

import httpx

API_BASE_URL = "http://localhost:8001"
TOTAL_TOLERANCE = 0.005


def verify_orders() -> bool:
    """Verify stored orders after a simulation."""

    print("=" * 60)
    print("🔍 ORDER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"🎯 Target: {API_BASE_URL}")
    print("=" * 60)

    try:
        orders = httpx.get(f"{API_BASE_URL}/api/orders", timeout=30.0).json()["orders"]
        dashboard = httpx.get(f"{API_BASE_URL}/api/dashboard-data", timeout=30.0).json()
        print("\n✅ Orders loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not load orders: {e}")
        print("   Is the API running? uvicorn qrmenu.main:app --port 8001")
        return False

    ok = True

    # Statistics
    statuses = Counter(order["status"] for order in orders)
    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(orders)}")
    for status, count in sorted(statuses.items()):
        print(f"   {status}: {count}")

    # Duplicates
    duplicates = [order_id for order_id, n in Counter(o["id"] for o in orders).items() if n > 1]
    if duplicates:
        ok = False
        print(f"\n⚠️ {len(duplicates)} duplicate order IDs found!")
    else:
        print("\n✅ No duplicate order IDs")

    # Totals and lines
    bad_totals = []
    repeated_lines = []
    for order in orders:
        expected = round(sum(line["price"] * line["quantity"] for line in order["items"]), 2)
        if abs(order["total"] - expected) > TOTAL_TOLERANCE:
            bad_totals.append((order["id"], order["total"], expected))
        item_ids = [line["item_id"] for line in order["items"]]
        if len(item_ids) != len(set(item_ids)):
            repeated_lines.append(order["id"])

    if bad_totals:
        ok = False
        print(f"⚠️ {len(bad_totals)} orders with totals not matching their lines:")
        for order_id, total, expected in bad_totals[:5]:
            print(f"   {order_id}: {total:.2f} != {expected:.2f}")
    else:
        print("✅ All totals match their lines")

    if repeated_lines:
        ok = False
        print(f"⚠️ {len(repeated_lines)} orders with more than one line per item")
    else:
        print("✅ One line per item in every order")

    # Dashboard consistency
    if dashboard.get("total_orders") != len(orders):
        ok = False
        print(f"⚠️ Dashboard reports {dashboard.get('total_orders')} orders, list has {len(orders)}")
    else:
        print("✅ Dashboard counts match")

    # Revenue
    if orders:
        total = sum(order["total"] for order in orders)
        print("\n💰 REVENUE:")
        print(f"   Total: ${total:.2f}")
        print(f"   Average: ${total / len(orders):.2f}")
        print(f"   Today: ${dashboard.get('today_revenue', 0):.2f}")

    # Sample data
    print("\n📋 RECENT ORDERS:")
    print("-" * 60)
    for order in orders[:5]:
        print(f"   {order['id']:<20} table {order['table_id']:<8} {order['status']:<10} ${order['total']:.2f}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_orders() else 1)
