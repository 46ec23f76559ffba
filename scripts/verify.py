"""
Receipt Verification Script

Checks receipt integrity through the API after a simulation run.
Run from project root: python scripts/verify.py
"""

import sys
from datetime import datetime

import httpx

API_BASE_URL = "http://localhost:8001"
PAGE_SIZE = 200


def fetch_all_receipts(client: httpx.Client) -> list[dict]:
    receipts: list[dict] = []
    page = 1
    while True:
        response = client.get(
            f"{API_BASE_URL}/api/receipts",
            params={"page": page, "limit": PAGE_SIZE},
        )
        response.raise_for_status()
        batch = response.json()
        receipts.extend(batch)
        if len(batch) < PAGE_SIZE:
            return receipts
        page += 1


def verify_receipts() -> bool:
    """Verify every receipt has line items with exactly one known variant."""

    print("=" * 60)
    print("RECEIPT VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Target: {API_BASE_URL}")
    print("=" * 60)

    with httpx.Client(timeout=30.0) as client:
        try:
            receipts = fetch_all_receipts(client)
        except httpx.HTTPError as e:
            print(f"\nCould not list receipts: {e}")
            return False

        print("\nSTATISTICS:")
        print(f"   Total Receipts: {len(receipts)}")

        empty, unknown = [], []
        for summary in receipts:
            detail = client.get(f"{API_BASE_URL}/api/receipts/{summary['receipt_id']}").json()
            if not detail["line_items"]:
                empty.append(summary["receipt_id"])
            if any(li["type"] == "Unknown" for li in detail["line_items"]):
                unknown.append(summary["receipt_id"])

        if empty:
            print(f"\n{len(empty)} receipts without line items: {empty[:10]}")
        else:
            print("No receipts without line items")

        if unknown:
            print(f"{len(unknown)} receipts with untyped line items: {unknown[:10]}")
        else:
            print("No untyped line items")

        if receipts:
            total = sum(r["totalamount"] for r in receipts)
            print("\nREVENUE:")
            print(f"   Total: ${total:.2f}")
            print(f"   Average: ${total / len(receipts):.2f}")

        restock = client.get(f"{API_BASE_URL}/api/inventory/restock").json()
        print("\nRESTOCK:")
        print("-" * 60)
        for item in restock:
            print(f"   [{item['restock_severity']:>8}] {item['name']}: "
                  f"{item['quantity']:g} {item['quantity_type']}")

    ok = not empty and not unknown
    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE" if ok else "VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_receipts() else 1)
