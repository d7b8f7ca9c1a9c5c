import unittest
from unittest.mock import patch

from bson import ObjectId
from fastapi.testclient import TestClient

from catalog.app import create_app
from catalog.config import Settings
from catalog.db import InMemoryItemStore
from catalog.errors import BackendUnavailableError

SAMPLE_ITEM = {
    "name": "Desk Lamp",
    "description": "LED lamp with an adjustable arm",
    "price": 39.99,
    "category": "Home",
    "inStock": False,
}


class ItemsApiTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryItemStore()
        settings = Settings(use_in_memory_backends=True, _env_file=None)
        self.client = TestClient(create_app(settings=settings, store=self.store))

    def create(self, **overrides):
        response = self.client.post("/api/items", json={**SAMPLE_ITEM, **overrides})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_and_get_round_trip(self):
        created = self.create()
        self.assertTrue(ObjectId.is_valid(created["_id"]))
        self.assertIn("createdAt", created)
        self.assertIn("updatedAt", created)

        response = self.client.get(f"/api/items/{created['_id']}")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        for key, value in SAMPLE_ITEM.items():
            self.assertEqual(payload["data"][key], value)

    def test_create_defaults_in_stock_and_trims_name(self):
        body = {k: v for k, v in SAMPLE_ITEM.items() if k != "inStock"}
        body["name"] = "  Desk Lamp  "
        response = self.client.post("/api/items", json=body)
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertTrue(data["inStock"])
        self.assertEqual(data["name"], "Desk Lamp")

    def test_create_rejects_negative_price(self):
        response = self.client.post("/api/items", json={**SAMPLE_ITEM, "price": -1})
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error"], "Validation failed")
        self.assertEqual(
            payload["validationErrors"], {"price": "Price must be a positive number"}
        )
        self.assertEqual(self.store.items, {})

    def test_create_reports_each_missing_field(self):
        response = self.client.post("/api/items", json={"name": "   "})
        self.assertEqual(response.status_code, 400)
        errors = response.json()["validationErrors"]
        self.assertEqual(errors["name"], "Please provide a name for this item")
        self.assertEqual(
            errors["description"], "Please provide a description for this item"
        )
        self.assertEqual(errors["price"], "Please provide a price for this item")
        self.assertEqual(errors["category"], "Please specify a category for this item")

    def test_create_rejects_long_name(self):
        response = self.client.post("/api/items", json={**SAMPLE_ITEM, "name": "x" * 61})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["validationErrors"]["name"],
            "Name cannot be more than 60 characters",
        )

    def test_create_rejects_non_object_body(self):
        response = self.client.post("/api/items", json=["not", "an", "item"])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_list_paginates(self):
        for index in range(3):
            self.create(name=f"Lamp {index}")
        response = self.client.get("/api/items", params={"page": 2, "limit": 1})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["data"]), 1)
        self.assertEqual(payload["data"][0]["name"], "Lamp 1")
        self.assertEqual(
            payload["pagination"], {"total": 3, "page": 2, "limit": 1, "pages": 3}
        )

    def test_list_filters_by_category_and_stock(self):
        self.create(name="Lamp", category="Home", inStock=True)
        self.create(name="Rug", category="Home", inStock=False)
        self.create(name="Novel", category="Books", inStock=True)

        response = self.client.get(
            "/api/items", params={"category": "Home", "inStock": "true"}
        )
        payload = response.json()
        self.assertEqual([item["name"] for item in payload["data"]], ["Lamp"])
        self.assertEqual(payload["pagination"]["total"], 1)

        response = self.client.get("/api/items", params={"inStock": "false"})
        self.assertEqual([item["name"] for item in response.json()["data"]], ["Rug"])

    def test_list_defaults(self):
        response = self.client.get("/api/items")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["pagination"],
            {"total": 0, "page": 1, "limit": 10, "pages": 0},
        )

    def test_list_rejects_bad_page(self):
        response = self.client.get("/api/items", params={"page": 0})
        self.assertEqual(response.status_code, 400)
        self.assertIn("page", response.json()["validationErrors"])

    def test_invalid_id_never_reaches_store(self):
        with patch.object(self.store, "get_item") as get_item, patch.object(
            self.store, "update_item"
        ) as update_item, patch.object(self.store, "delete_item") as delete_item:
            responses = [
                self.client.get("/api/items/abc"),
                self.client.put("/api/items/abc", json={"price": 1}),
                self.client.delete("/api/items/abc"),
            ]
        for response in responses:
            self.assertEqual(response.status_code, 400)
            self.assertEqual(
                response.json(),
                {"success": False, "error": "Invalid item ID format"},
            )
        get_item.assert_not_called()
        update_item.assert_not_called()
        delete_item.assert_not_called()

    def test_unknown_id_is_not_found(self):
        missing = str(ObjectId())
        for response in (
            self.client.get(f"/api/items/{missing}"),
            self.client.put(f"/api/items/{missing}", json={"price": 1}),
            self.client.delete(f"/api/items/{missing}"),
        ):
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.json()["error"], "Item not found")

    def test_update_is_partial_and_revalidated(self):
        created = self.create()
        response = self.client.put(
            f"/api/items/{created['_id']}", json={"price": 10, "inStock": True}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["price"], 10)
        self.assertTrue(data["inStock"])
        self.assertEqual(data["name"], SAMPLE_ITEM["name"])

        response = self.client.put(f"/api/items/{created['_id']}", json={"price": -5})
        self.assertEqual(response.status_code, 400)
        self.assertIn("price", response.json()["validationErrors"])

        response = self.client.put(f"/api/items/{created['_id']}", json={"name": ""})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["validationErrors"]["name"],
            "Please provide a name for this item",
        )
        self.assertEqual(self.store.items[created["_id"]].price, 10)

    def test_delete(self):
        created = self.create()
        response = self.client.delete(f"/api/items/{created['_id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "data": {}})
        self.assertEqual(
            self.client.get(f"/api/items/{created['_id']}").status_code, 404
        )

    def test_backend_failure_is_reported(self):
        with patch.object(
            self.store,
            "list_items",
            side_effect=BackendUnavailableError("connection refused"),
        ):
            response = self.client.get("/api/items")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"success": False, "error": "connection refused"}
        )

    def test_unexpected_error_keeps_json_envelope(self):
        client = TestClient(self.client.app, raise_server_exceptions=False)
        with patch.object(
            self.store, "list_items", side_effect=RuntimeError("corrupt document")
        ):
            response = client.get("/api/items")
        self.assertEqual(response.status_code, 500)
        self.assertTrue(response.headers["content-type"].startswith("application/json"))
        self.assertEqual(
            response.json(), {"success": False, "error": "corrupt document"}
        )

    def test_null_in_stock_uses_default_on_create(self):
        created = self.create(inStock=None)
        self.assertTrue(created["inStock"])

    def test_null_in_stock_leaves_update_unchanged(self):
        created = self.create(inStock=False)
        response = self.client.put(
            f"/api/items/{created['_id']}", json={"inStock": None, "price": 5}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertFalse(data["inStock"])
        self.assertEqual(data["price"], 5)


if __name__ == "__main__":
    unittest.main()
