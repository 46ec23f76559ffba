"""
Checkout Rush Simulation

Fires concurrent checkouts at the POS to exercise the checkout transaction
and inventory decrement under contention.
Run from project root: python scripts/simulate.py

Seed the menu and recipes first; unknown menu names make checkouts fail.
"""

import asyncio
import sys
import os
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

# Sample data for random carts
ENTREES = ["Orange Chicken", "Broccoli Beef", "Kung Pao Chicken", "Beijing Beef"]
SIDES = ["Fried Rice", "Chow Mein", "White Steamed Rice"]
DRINKS = ["Small Drink", "Medium Drink", "Large Drink"]
APPETIZERS = ["Chicken Egg Roll", "Cream Cheese Rangoon"]
MEAL_SIZES = {"Bowl": (1, 8.49), "Plate": (2, 9.99), "Bigger Plate": (3, 11.49)}
DRINK_PRICES = {"Small Drink": 1.99, "Medium Drink": 2.29, "Large Drink": 2.49}
APPETIZER_PRICE = 1.99


def generate_random_meal() -> dict[str, Any]:
    size = random.choice(list(MEAL_SIZES))
    slots, price = MEAL_SIZES[size]
    entrees: list[Any] = random.sample(ENTREES, slots)
    entrees += [None] * (3 - slots)
    return {
        "type": "Meal",
        "size": size,
        "entrees": entrees,
        "side": random.choice(SIDES),
        "price": price,
        "quantity": random.randint(1, 2),
    }


def generate_random_cart() -> list[dict]:
    """Generate a random cart of meals, drinks and appetizers."""
    cart = [generate_random_meal() for _ in range(random.randint(0, 2))]

    for _ in range(random.randint(0, 2)):
        name = random.choice(DRINKS)
        cart.append({"type": "Drink", "name": name, "price": DRINK_PRICES[name],
                     "quantity": random.randint(1, 3)})

    if random.random() < 0.4:
        cart.append({"type": "Appetizer", "name": random.choice(APPETIZERS),
                     "price": APPETIZER_PRICE, "quantity": 1})

    return cart or [generate_random_meal()]


def generate_checkout_payload() -> dict[str, Any]:
    cart = generate_random_cart()
    total = round(sum(e["price"] * e["quantity"] for e in cart), 2)
    return {"orderList": cart, "totalPrice": total}


# =============================================================================
# CHECKOUT SIMULATION
# =============================================================================

async def send_checkout(
    client: httpx.AsyncClient,
    order_num: int
) -> dict[str, Any]:
    """Send one cart to the checkout endpoint."""
    payload = generate_checkout_payload()
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders/checkout",
            json=payload,
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "receipt_id": data.get("result"),
                "total": data.get("total_amount"),
                "negative_inventory": data.get("negative_inventory", []),
                "time": elapsed,
            }
        else:
            return {
                "order_num": order_num,
                "success": False,
                "error": response.text[:100],
                "time": elapsed,
            }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the checkout rush.

    Args:
        num_orders: Number of concurrent checkouts
    """
    print("=" * 70)
    print("CHECKOUT RUSH - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        tasks = [send_checkout(client, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    receipt_ids = [r["receipt_id"] for r in successful]

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)

    print(f"\nSuccessful Checkouts: {len(successful)}/{num_orders}")
    print(f"Failed Checkouts: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if len(set(receipt_ids)) != len(receipt_ids):
        print("\nWARNING: duplicate receipt ids returned!")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)
        short = sorted({n for r in successful for n in r["negative_inventory"]})

        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Total Revenue: ${total_revenue:.2f}")
        if short:
            print(f"   Inventory below zero: {', '.join(short)}")

    if failed:
        print("\nFailed Checkout Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("VERIFICATION STEPS")
    print("=" * 70)
    print("1. Run: python scripts/verify.py")
    print("2. Check GET /api/inventory/restock for items to reorder")
    print("3. Check GET /api/kitchen/pending for the kitchen queue")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def test_single_flows() -> bool:
    """Test individual flows before the rush."""
    print("\n" + "=" * 70)
    print("TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1. Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code == 200:
            data = response.json()
            print(f"   Status: {data.get('status')}")
            print(f"   Database: {data.get('database')}")
            print(f"   Redis: {data.get('redis')}")
        else:
            print(f"   Failed: {response.text}")
            return False

        print("\n2. Single Checkout...")
        response = await client.post(
            f"{API_BASE_URL}/api/orders/checkout",
            json=generate_checkout_payload()
        )
        if response.status_code != 200:
            print(f"   Failed: {response.text[:100]}")
            return False

        receipt_id = response.json()["result"]
        print(f"   Receipt #{receipt_id} created")

        print("\n3. Receipt Round Trip...")
        response = await client.get(f"{API_BASE_URL}/api/receipts/{receipt_id}")
        if response.status_code == 200:
            data = response.json()
            print(f"   {len(data['line_items'])} line items, total ${data['totalamount']}")
        else:
            print(f"   Failed: {response.text[:100]}")
            return False

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    if not args.skip_tests:
        success = asyncio.run(test_single_flows())
        if not success:
            print("\nPre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\nPre-flight tests passed!")
        input("\nPress Enter to start the checkout rush...")

    asyncio.run(run_simulation(num_orders=args.orders))
