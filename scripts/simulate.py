"""
Rush Hour Simulation Script

Drives every free table through a full service at the same time: items,
kitchen, pass, bill and payment. Useful to check the order and bill
number sequences and the table state machine under concurrency.
Run from project root (after scripts/seed.py): python scripts/simulate.py

Author: Khalil Bannouri
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
STAFF_EMAIL = "staff@restaurant.com"
STAFF_PASSWORD = "password123"

GUEST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
INSTRUCTIONS = [None, None, "No onions", "Extra spicy", "Gluten free"]
PAYMENT_METHODS = ["cash", "card", "upi"]


async def login(client: httpx.AsyncClient) -> None:
    response = await client.post("/auth/login", json={"email": STAFF_EMAIL, "password": STAFF_PASSWORD})
    response.raise_for_status()
    client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"


async def load_floor(client: httpx.AsyncClient) -> tuple[list[dict], list[dict]]:
    tables = (await client.get("/tables")).json()["props"]["tables"]
    items = (await client.get("/menu/items")).json()["props"]["items"]
    free = [t for t in tables if t["status"] == "available" and t["is_active"]]
    return free, [i for i in items if i["is_available"]]


def random_lines(menu_items: list[dict]) -> list[dict[str, Any]]:
    picks = random.sample(menu_items, k=min(len(menu_items), random.randint(1, 4)))
    return [
        {
            "menu_item_id": item["id"],
            "quantity": random.randint(1, 3),
            "special_instructions": random.choice(INSTRUCTIONS),
        }
        for item in picks
    ]


async def serve_table(client: httpx.AsyncClient, table: dict, menu_items: list[dict]) -> dict[str, Any]:
    """One full service on ``table``; returns a result row."""
    start_time = time.time()
    step = "book"
    try:
        response = await client.post(
            f"/quick-service/tables/{table['id']}/book",
            json={"customer_name": random.choice(GUEST_NAMES), "party_size": min(2, table["capacity"])},
        )
        response.raise_for_status()

        step = "items"
        response = await client.post(
            f"/quick-service/tables/{table['id']}/items",
            json={"items": random_lines(menu_items)},
        )
        response.raise_for_status()
        order = response.json()["order"]

        step = "kitchen"
        (await client.post(f"/quick-service/orders/{order['id']}/submit")).raise_for_status()
        for status in ("preparing", "ready"):
            await asyncio.sleep(random.uniform(0.05, 0.3))
            response = await client.patch(f"/kitchen/orders/{order['id']}/status", json={"status": status})
            response.raise_for_status()

        step = "served"
        (await client.post(f"/reception/orders/{order['id']}/served")).raise_for_status()

        step = "bill"
        response = await client.post(f"/orders/{order['id']}/generate-bill")
        response.raise_for_status()
        bill = response.json()["bill"]

        step = "payment"
        method = random.choice(PAYMENT_METHODS)
        payload = {"amount": bill["total_amount"], "payment_method": method}
        if method == "card":
            payload["payment_method_token"] = "tok_visa"
        response = await client.post(f"/bills/{bill['id']}/payment", json=payload)
        response.raise_for_status()

        step = "complete"
        (await client.post(f"/quick-service/orders/{order['id']}/complete")).raise_for_status()

        return {
            "table": table["table_number"],
            "success": True,
            "order_number": order["order_number"],
            "bill_number": bill["bill_number"],
            "total": float(bill["total_amount"]),
            "time": round(time.time() - start_time, 3),
        }
    except httpx.HTTPError as e:
        detail = e.response.text[:100] if isinstance(e, httpx.HTTPStatusError) else str(e)[:100]
        return {
            "table": table["table_number"],
            "success": False,
            "error": f"{step}: {detail}",
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(rounds: int = 1) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔁 Rounds: {rounds}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    results = []
    start_time = time.time()

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        await login(client)
        for round_number in range(1, rounds + 1):
            tables, menu_items = await load_floor(client)
            if not tables or not menu_items:
                print("\n❌ No free tables or no available menu items. Run scripts/seed.py first.")
                break
            print(f"\n🚀 Round {round_number}: serving {len(tables)} tables at once...")
            results.extend(await asyncio.gather(*(serve_table(client, t, menu_items) for t in tables)))

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Services completed: {len(successful)}/{len(results)}")
    print(f"❌ Services failed: {len(failed)}/{len(results)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        numbers = [r["order_number"] for r in successful]
        bills = [r["bill_number"] for r in successful]
        print(f"\n📈 Average service: {round(sum(r['time'] for r in successful) / len(successful), 3)}s")
        print(f"   💰 Revenue: ${sum(r['total'] for r in successful):.2f}")
        print(f"   Duplicate order numbers: {len(numbers) - len(set(numbers))}")
        print(f"   Duplicate bill numbers: {len(bills) - len(set(bills))}")

    if failed:
        print("\n⚠️  Failed services (showing first 5):")
        for f in failed[:5]:
            print(f"   Table {f['table']}: {f['error']}")

    print("\n" + "=" * 70)
    return {
        "total": len(results),
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation")
    parser.add_argument("--rounds", type=int, default=1, help="Number of back-to-back services per table")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.rounds))
    sys.exit(0 if summary["failed"] == 0 else 1)
