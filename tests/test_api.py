"""Integration tests for the FastAPI endpoints (main.py)."""

from conftest import count_rows, end_to_end_cart, stock_of
from restaurant_pos.models import LineItem, Receipt


def checkout(client, cart=None, total=12.47):
    return client.post(
        "/api/orders/checkout",
        json={"orderList": cart or end_to_end_cart(), "totalPrice": total},
    )


class TestRootEndpoints:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    def test_health_reports_components(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "healthy"
        assert data["notification_service"] == "healthy"
        assert data["status"] in ("operational", "degraded")


class TestCheckoutEndpoint:
    def test_checkout_returns_receipt_id(self, client, sync_engine):
        response = checkout(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert isinstance(data["result"], int)
        assert data["total_amount"] == 12.47
        assert count_rows(sync_engine, LineItem) == 3
        assert stock_of(sync_engine, "Medium Cup") == 96.0

    def test_failure_is_opaque_and_atomic(self, client, sync_engine):
        cart = [*end_to_end_cart(), {"type": "Drink", "name": "Discontinued Soda", "price": 1.99}]
        response = checkout(client, cart, 14.46)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process order"}
        assert count_rows(sync_engine, Receipt) == 0
        assert stock_of(sync_engine, "Chicken") == 100.0

    def test_unknown_type_is_opaque_failure(self, client, sync_engine):
        response = checkout(client, [{"type": "Combo", "name": "Family Feast", "price": 30.0}], 30.0)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process order"
        assert count_rows(sync_engine, LineItem) == 0

    def test_empty_cart_is_opaque_failure(self, client, sync_engine):
        response = client.post("/api/orders/checkout", json={"orderList": [], "totalPrice": 0})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process order"}
        assert count_rows(sync_engine, Receipt) == 0

    def test_entry_without_price_is_opaque_failure(self, client, sync_engine):
        response = checkout(client, [{"type": "Drink", "name": "Medium Drink"}], 1.99)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process order"}
        assert count_rows(sync_engine, Receipt) == 0

    def test_entry_without_type_is_opaque_failure(self, client, sync_engine):
        response = checkout(client, [{"name": "Medium Drink", "price": 1.99}], 1.99)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process order"}
        assert count_rows(sync_engine, Receipt) == 0

    def test_zero_quantity_is_opaque_failure(self, client, sync_engine):
        cart = [*end_to_end_cart(), {"type": "Drink", "name": "Medium Drink", "price": 1.99, "quantity": 0}]
        response = checkout(client, cart)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to process order"}
        assert count_rows(sync_engine, Receipt) == 0
        assert stock_of(sync_engine, "Medium Cup") == 100.0

    def test_non_numeric_price_is_opaque_failure(self, client, sync_engine):
        response = checkout(client, [{"type": "Drink", "name": "Medium Drink", "price": "abc"}], 1.99)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process order"
        assert count_rows(sync_engine, LineItem) == 0

    def test_missing_total_is_opaque_failure(self, client, sync_engine):
        response = client.post("/api/orders/checkout", json={"orderList": end_to_end_cart()})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to process order"
        assert count_rows(sync_engine, Receipt) == 0

    def test_resubmitting_creates_second_receipt(self, client, sync_engine):
        first = checkout(client).json()["result"]
        second = checkout(client).json()["result"]

        assert first != second
        assert count_rows(sync_engine, Receipt) == 2


class TestReceiptEndpoints:
    def test_round_trip(self, client):
        receipt_id = checkout(client).json()["result"]

        response = client.get(f"/api/receipts/{receipt_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["totalamount"] == 12.47
        assert data["status"] == "Pending"
        assert [li["type"] for li in data["line_items"]] == ["Meal", "Drink", "Drink"]
        assert data["line_items"][0]["meats"] == ["Orange Chicken", "Broccoli Beef"]
        assert data["line_items"][0]["side"] == "Fried Rice"
        assert data["line_items"][1]["name"] == "Medium Drink"
        assert "meats" not in data["line_items"][1]

    def test_get_missing_receipt(self, client):
        assert client.get("/api/receipts/9999").status_code == 404

    def test_list_receipts(self, client):
        ids = [checkout(client).json()["result"] for _ in range(2)]

        response = client.get("/api/receipts", params={"page": 1, "limit": 10})
        assert response.status_code == 200
        assert [r["receipt_id"] for r in response.json()] == list(reversed(ids))

    def test_update_receipt(self, client):
        receipt_id = checkout(client).json()["result"]

        response = client.put(
            f"/api/receipts/{receipt_id}",
            json={
                "status": "Fulfilled",
                "line_items": [{"type": "Drink", "name": "Medium Drink", "price": 1.99, "quantity": 2}],
            },
        )
        assert response.status_code == 200

        data = client.get(f"/api/receipts/{receipt_id}").json()
        assert data["status"] == "Fulfilled"
        assert [li["type"] for li in data["line_items"]] == ["Drink", "Drink"]

    def test_update_with_bad_line_item(self, client):
        receipt_id = checkout(client).json()["result"]

        response = client.put(
            f"/api/receipts/{receipt_id}",
            json={"line_items": [{"type": "Drink", "price": 1.99}]},
        )
        assert response.status_code == 400

    def test_update_invalid_status(self, client):
        receipt_id = checkout(client).json()["result"]
        response = client.put(f"/api/receipts/{receipt_id}", json={"status": "Lost"})
        assert response.status_code == 422

    def test_update_missing_receipt(self, client):
        response = client.put("/api/receipts/9999", json={"status": "Fulfilled"})
        assert response.status_code == 404

    def test_delete_receipt(self, client, sync_engine):
        receipt_id = checkout(client).json()["result"]

        assert client.delete(f"/api/receipts/{receipt_id}").status_code == 200
        assert client.get(f"/api/receipts/{receipt_id}").status_code == 404
        assert count_rows(sync_engine, LineItem) == 0

    def test_delete_missing_receipt(self, client):
        assert client.delete("/api/receipts/9999").status_code == 404

    def test_email_receipt_queues_task(self, client, queued_emails):
        receipt_id = checkout(client).json()["result"]

        response = client.post(f"/api/receipts/{receipt_id}/email", json={"email": "guest@example.com"})

        assert response.status_code == 200
        assert queued_emails == [("send_receipt_email", receipt_id, "guest@example.com")]

    def test_email_rejects_bad_address(self, client, queued_emails):
        receipt_id = checkout(client).json()["result"]

        response = client.post(f"/api/receipts/{receipt_id}/email", json={"email": "not-an-email"})

        assert response.status_code == 422
        assert queued_emails == []


class TestKitchenEndpoints:
    def test_pending_then_complete(self, client, queued_emails):
        receipt_id = checkout(client).json()["result"]
        client.post(f"/api/receipts/{receipt_id}/email", json={"email": "guest@example.com"})

        pending = client.get("/api/kitchen/pending").json()
        assert [o["receipt_id"] for o in pending] == [receipt_id]
        assert pending[0]["email"] == "guest@example.com"

        response = client.post(f"/api/kitchen/{receipt_id}/complete")
        assert response.status_code == 200
        assert response.json()["notified"] is True
        assert queued_emails[-1] == ("send_order_ready_email", receipt_id, "guest@example.com")

        assert client.get("/api/kitchen/pending").json() == []

    def test_complete_without_email_sends_nothing(self, client, queued_emails):
        receipt_id = checkout(client).json()["result"]

        response = client.post(f"/api/kitchen/{receipt_id}/complete")

        assert response.json()["notified"] is False
        assert queued_emails == []

    def test_complete_missing_receipt(self, client):
        assert client.post("/api/kitchen/9999/complete").status_code == 404


class TestMenuEndpoints:
    def test_list_menu_by_category(self, client):
        response = client.get("/api/menu", params={"category": "entree"})
        assert response.status_code == 200
        assert {item["name"] for item in response.json()} == {"Orange Chicken", "Broccoli Beef"}

    def test_add_menu_item_and_recipe(self, client):
        response = client.post(
            "/api/menu",
            json={"name": "Kung Pao Chicken", "item_type": "entree", "calories": 290},
        )
        assert response.status_code == 201
        menu_id = response.json()["menu_id"]

        inventory = {i["name"]: i["inventory_id"] for i in client.get("/api/inventory").json()}
        response = client.post(
            f"/api/menu/{menu_id}/ingredients",
            json={"inventory_id": inventory["Chicken"], "name": "Chicken", "quantity": 1.5},
        )
        assert response.status_code == 201

        ingredients = client.get(f"/api/menu/{menu_id}/ingredients").json()
        assert [(i["name"], i["quantity"]) for i in ingredients] == [("Chicken", 1.5)]

    def test_duplicate_menu_name_conflicts(self, client):
        response = client.post("/api/menu", json={"name": "Orange Chicken", "item_type": "entree"})
        assert response.status_code == 409

    def test_rename_carries_over_to_sold_items(self, client):
        receipt_id = checkout(client).json()["result"]
        menu = {m["name"]: m for m in client.get("/api/menu").json()}
        item = menu["Medium Drink"]

        response = client.put(
            f"/api/menu/{item['menu_id']}",
            json={"name": "Regular Drink", "item_type": "drink", "price": 1.99},
        )
        assert response.status_code == 200

        line_items = client.get(f"/api/receipts/{receipt_id}").json()["line_items"]
        assert line_items[1]["name"] == "Regular Drink"

    def test_delete_unsold_menu_item(self, client):
        response = client.post("/api/menu", json={"name": "Honey Walnut Shrimp", "item_type": "entree"})
        menu_id = response.json()["menu_id"]

        assert client.delete(f"/api/menu/{menu_id}").status_code == 200
        assert client.get(f"/api/menu/{menu_id}/ingredients").status_code == 404

    def test_delete_sold_menu_item_conflicts(self, client):
        checkout(client)
        menu = {m["name"]: m for m in client.get("/api/menu").json()}

        response = client.delete(f"/api/menu/{menu['Fried Rice']['menu_id']}")
        assert response.status_code == 409

        assert "Fried Rice" in {m["name"] for m in client.get("/api/menu").json()}

    def test_edit_and_remove_recipe_ingredient(self, client):
        menu = {m["name"]: m for m in client.get("/api/menu").json()}
        ingredient = client.get(f"/api/menu/{menu['Fried Rice']['menu_id']}/ingredients").json()[0]

        response = client.put(
            f"/api/recipe-ingredients/{ingredient['recipe_ing_id']}",
            json={
                "inventory_id": ingredient["inventory_id"],
                "name": "Rice",
                "quantity": 2.0,
                "quantity_type": "cups",
            },
        )
        assert response.status_code == 200
        assert response.json()["quantity"] == 2.0

        assert client.delete(f"/api/recipe-ingredients/{ingredient['recipe_ing_id']}").status_code == 200
        assert client.delete(f"/api/recipe-ingredients/{ingredient['recipe_ing_id']}").status_code == 404


class TestInventoryEndpoints:
    def test_list_includes_severity(self, client):
        items = {i["name"]: i for i in client.get("/api/inventory").json()}

        assert items["Napkins"]["restock_severity"] == "critical"
        assert items["Rice"]["restock_severity"] == "ok"

    def test_restock_report(self, client):
        response = client.get("/api/inventory/restock")
        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["Napkins", "Egg Roll Wrapper", "Orange Sauce"]

    def test_add_edit_delete(self, client):
        response = client.post("/api/inventory", json={"name": "Soy Sauce", "quantity": 12, "quantity_type": "bottles"})
        assert response.status_code == 201
        item = response.json()
        assert item["restock_severity"] == "medium"

        response = client.put(
            f"/api/inventory/{item['inventory_id']}",
            json={"name": "Soy Sauce", "quantity": 80, "quantity_type": "bottles"},
        )
        assert response.json()["restock_severity"] == "ok"

        assert client.delete(f"/api/inventory/{item['inventory_id']}").status_code == 200
        assert client.delete(f"/api/inventory/{item['inventory_id']}").status_code == 404

    def test_delete_item_used_by_recipe_conflicts(self, client):
        items = {i["name"]: i for i in client.get("/api/inventory").json()}

        response = client.delete(f"/api/inventory/{items['Chicken']['inventory_id']}")
        assert response.status_code == 409


class TestRequestValidation:
    def test_other_endpoints_keep_422(self, client):
        response = client.post("/api/menu", json={"name": "Orange Chicken"})

        assert response.status_code == 422
        assert "detail" in response.json()
