"""
Rush Hour Simulation Script

Simulates many tables ordering at once to test the ordering flow under
concurrency: every table fills its cart and submits, and with
``--double-submit`` each table fires two submits at the same time
(a customer tapping "Place Order" twice). Exactly one order per table
must come out of it.

Run the API first (ENV_MODE=development, optionally with
MOCK_FAILURE_RATE=0.2 to exercise retries), then from project root:

    python scripts/simulate.py --tables 30 --double-submit
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
TOTAL_TABLES = 20


async def fetch_menu_ids(client: httpx.AsyncClient) -> list[str]:
    response = await client.get(f"{API_BASE_URL}/api/menu")
    response.raise_for_status()
    return [item["id"] for item in response.json()]


async def fill_cart(client: httpx.AsyncClient, table_id: str, menu_ids: list[str]) -> float:
    """Add 1-4 random items to the table's cart; returns the cart total."""
    cart = {"total": 0.0}
    for item_id in random.sample(menu_ids, k=random.randint(1, min(4, len(menu_ids)))):
        response = await client.post(
            f"{API_BASE_URL}/api/tables/{table_id}/cart/items",
            json={"item_id": item_id, "quantity": random.randint(1, 3)},
        )
        response.raise_for_status()
        cart = response.json()
    return cart["total"]


async def submit(client: httpx.AsyncClient, table_id: str) -> httpx.Response:
    return await client.post(f"{API_BASE_URL}/api/tables/{table_id}/cart/submit", timeout=30.0)


async def run_table(
    client: httpx.AsyncClient,
    table_num: int,
    menu_ids: list[str],
    double_submit: bool,
) -> dict[str, Any]:
    """Order from one table and report what came back."""
    table_id = f"sim-{table_num}"
    start_time = time.time()

    try:
        cart_total = await fill_cart(client, table_id, menu_ids)
        if double_submit:
            responses = await asyncio.gather(submit(client, table_id), submit(client, table_id))
        else:
            responses = [await submit(client, table_id)]
        elapsed = round(time.time() - start_time, 3)

        created = [r.json() for r in responses if r.status_code == 201]
        rejected = [r for r in responses if r.status_code == 409]
        failed = [r for r in responses if r.status_code not in (201, 409)]

        return {
            "table_id": table_id,
            "success": len(created) == 1 and not failed,
            "orders": [order["id"] for order in created],
            "total": created[0]["total"] if created else 0.0,
            "cart_total": cart_total,
            "duplicates_rejected": len(rejected),
            "error": failed[0].text[:100] if failed else None,
            "time": elapsed,
        }
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "table_id": table_id,
            "success": False,
            "orders": [],
            "total": 0.0,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_tables: int = TOTAL_TABLES, double_submit: bool = False) -> dict[str, Any]:
    """
    Run the rush hour simulation.

    Args:
        num_tables: Number of tables ordering concurrently
        double_submit: Fire two simultaneous submits per table
    """
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION - CONCURRENT TABLES")
    print("=" * 70)
    print(f"📋 Tables: {num_tables}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔁 Double submit: {double_submit}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu_ids = await fetch_menu_ids(client)
        print(f"\n🚀 Ordering from {num_tables} tables ({len(menu_ids)} menu items)...\n")
        tasks = [run_table(client, i + 1, menu_ids, double_submit) for i in range(num_tables)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    duplicated = [r for r in results if len(r["orders"]) > 1]
    mismatched = [r for r in successful if abs(r["total"] - r["cart_total"]) > 0.005]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Tables with exactly one order: {len(successful)}/{num_tables}")
    print(f"❌ Failed tables: {len(failed)}/{num_tables}")
    print(f"⏱️  Total Time: {total_time}s")

    if double_submit:
        rejected = sum(r.get("duplicates_rejected", 0) for r in results)
        print(f"\n🛑 Duplicate submits rejected (409): {rejected}")
        print(f"⚠️  Tables with duplicate orders: {len(duplicated)}")

    if mismatched:
        print(f"⚠️  Orders whose total differs from the cart: {len(mismatched)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)

        print("\n📈 Performance Metrics:")
        print(f"   Average Table Flow: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: ${total_revenue:.2f}")

    if failed:
        print("\n⚠️  Failed Table Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Table {f['table_id']}: {f.get('error') or f['orders']}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Run: python scripts/verify.py")
    print(f"2. Visit {API_BASE_URL}/api/dashboard-data to see the new orders")
    print("=" * 70)

    return {
        "total": num_tables,
        "successful": len(successful),
        "failed": len(failed),
        "duplicated": len(duplicated),
        "total_time": total_time,
        "results": results,
    }


async def preflight_checks() -> bool:
    """Check the API answers before starting the rush."""
    print("\n" + "=" * 70)
    print("🧪 PRE-FLIGHT CHECKS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Data source: {data.get('provider')} ({data.get('data_source')})")

        print("\n2️⃣ Menu...")
        menu_ids = await fetch_menu_ids(client)
        if not menu_ids:
            print("   ❌ The menu is empty")
            return False
        print(f"   ✅ {len(menu_ids)} items")

        print("\n3️⃣ Empty Cart Submit...")
        response = await submit(client, "preflight")
        if response.status_code == 400:
            print(f"   ✅ Rejected: {response.json().get('detail')}")
        else:
            print(f"   ⚠️ Unexpected response: {response.status_code} {response.text[:100]}")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--tables", type=int, default=TOTAL_TABLES, help="Number of tables")
    parser.add_argument("--double-submit", action="store_true", help="Submit twice per table concurrently")
    parser.add_argument("--skip-checks", action="store_true", help="Skip pre-flight checks")
    args = parser.parse_args()

    if not args.skip_checks:
        if not asyncio.run(preflight_checks()):
            print("\n❌ Pre-flight checks failed. Fix issues before running simulation.")
            sys.exit(1)
        print("\n✅ Pre-flight checks passed!")

    summary = asyncio.run(run_simulation(num_tables=args.tables, double_submit=args.double_submit))
    sys.exit(0 if summary["failed"] == 0 and summary["duplicated"] == 0 else 1)
