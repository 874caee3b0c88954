"""
HTTP API tests through the FastAPI test client
"""

import pytest

from .conftest import MONDAY

API = "/api/v1"


@pytest.fixture
def seeded(client, auth_headers):
    """Oatmeal, porridge and a template with porridge on Monday breakfast, via the API"""
    product = client.post(f"{API}/products", headers=auth_headers, json={
        "name": "Oatmeal", "unit": "g", "stock_quantity": 1000, "category": "grains",
    }).json()["data"]
    dish = client.post(f"{API}/dishes", headers=auth_headers, json={
        "name": "Porridge",
        "category": "breakfast",
        "ingredients": [{"product_id": product["product_id"], "quantity": 50, "unit": "g"}],
    }).json()["data"]
    template = client.post(f"{API}/weekly-menu-template", headers=auth_headers, json={
        "name": "Standard Week", "default_child_count": 30,
    }).json()["data"]
    client.post(f"{API}/weekly-menu-template/{template['template_id']}/dish", headers=auth_headers, json={
        "day": "monday", "meal_type": "breakfast", "dish_id": dish["dish_id"],
    })
    return {"product": product, "dish": dish, "template": template}


class TestAuth:

    def test_token_required(self, client):
        response = client.get(f"{API}/products")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "HTTP_ERROR"

    def test_invalid_token(self, client):
        response = client.get(f"{API}/products", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_reference_is_public(self, client):
        response = client.get(f"{API}/reference/meal-types")
        assert response.status_code == 200
        names = {item["value"]: item["name"] for item in response.json()["data"]}
        assert names["breakfast"] == "Завтрак"
        assert len(client.get(f"{API}/reference/weekdays").json()["data"]) == 7

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestTemplateApi:

    def test_template_roundtrip(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        response = client.get(f"{API}/weekly-menu-template/{template_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        monday = body["data"]["days"]["monday"]
        assert [d["dish_id"] for d in monday["breakfast"]] == [seeded["dish"]["dish_id"]]
        assert body["data"]["days"]["sunday"]["dinner"] == []

    def test_empty_name_is_rejected(self, client, auth_headers):
        response = client.post(f"{API}/weekly-menu-template", headers=auth_headers, json={"name": "  "})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_missing_template(self, client, auth_headers):
        response = client.get(f"{API}/weekly-menu-template/9999", headers=auth_headers)
        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "TEMPLATE_NOT_FOUND"
        assert body["details"] == {"id": 9999}

    def test_required_products(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        response = client.get(
            f"{API}/weekly-menu-template/{template_id}/required-products",
            headers=auth_headers,
            params={"days": 7, "child_count": 30, "start_date": MONDAY.isoformat()},
        )

        assert response.status_code == 200
        item = response.json()["data"][0]
        assert item["required"] == pytest.approx(1500)
        assert item["available"] == 1000
        assert item["shortage"] == pytest.approx(500)
        assert item["sufficient"] is False

    def test_required_products_needs_child_count(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        response = client.get(f"{API}/weekly-menu-template/{template_id}/required-products",
                              headers=auth_headers)
        assert response.status_code == 422

    def test_apply_week_and_read_back(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        response = client.post(f"{API}/weekly-menu-template/{template_id}/apply-week", headers=auth_headers,
                               json={"start_date": MONDAY.isoformat(), "child_count": 30})

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["created_menus"]) == 7
        assert len(data["shortages"]) == 1

        menu = client.get(f"{API}/daily-menu/date/{MONDAY.isoformat()}", headers=auth_headers).json()["data"]
        assert menu["meals"]["breakfast"]["dishes"][0]["name"] == "Porridge"

    def test_apply_rejects_zero_children(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        response = client.post(f"{API}/weekly-menu-template/{template_id}/apply-month", headers=auth_headers,
                               json={"start_date": MONDAY.isoformat(), "child_count": 0})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_remove_dish(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        dish_id = seeded["dish"]["dish_id"]
        response = client.delete(f"{API}/weekly-menu-template/{template_id}/monday/breakfast/{dish_id}",
                                 headers=auth_headers)
        assert response.json()["data"]["days"]["monday"]["breakfast"] == []


class TestDailyMenuApi:

    def test_serve_and_cancel(self, client, auth_headers, seeded):
        template_id = seeded["template"]["template_id"]
        product_id = seeded["product"]["product_id"]
        client.post(f"{API}/weekly-menu-template/{template_id}/apply-week", headers=auth_headers,
                    json={"start_date": MONDAY.isoformat(), "child_count": 10})
        menu_id = client.get(f"{API}/daily-menu/date/{MONDAY.isoformat()}",
                             headers=auth_headers).json()["data"]["menu_id"]

        response = client.post(f"{API}/daily-menu/{menu_id}/serve/breakfast", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Завтрак served"
        stock = client.get(f"{API}/products/{product_id}", headers=auth_headers).json()["data"]
        assert stock["stock_quantity"] == pytest.approx(500)

        again = client.post(f"{API}/daily-menu/{menu_id}/serve/breakfast", headers=auth_headers)
        assert again.status_code == 409
        assert again.json()["error_code"] == "MEAL_STATE_INVALID"

        client.post(f"{API}/daily-menu/{menu_id}/cancel/breakfast", headers=auth_headers)
        stock = client.get(f"{API}/products/{product_id}", headers=auth_headers).json()["data"]
        assert stock["stock_quantity"] == pytest.approx(1000)

    def test_duplicate_date(self, client, auth_headers):
        payload = {"date": MONDAY.isoformat()}
        assert client.post(f"{API}/daily-menu", headers=auth_headers, json=payload).status_code == 200
        response = client.post(f"{API}/daily-menu", headers=auth_headers, json=payload)
        assert response.status_code == 409
        assert response.json()["error_code"] == "DAILY_MENU_DUPLICATE"


class TestCatalogApi:

    def test_unit_mismatch(self, client, auth_headers, seeded):
        response = client.post(f"{API}/dishes", headers=auth_headers, json={
            "name": "Oat drink",
            "category": "snack",
            "ingredients": [{"product_id": seeded["product"]["product_id"], "quantity": 1, "unit": "l"}],
        })
        assert response.status_code == 422
        assert response.json()["error_code"] == "UNIT_MISMATCH"

    def test_decrease_stock_beyond_available(self, client, auth_headers, seeded):
        product_id = seeded["product"]["product_id"]
        response = client.post(f"{API}/products/{product_id}/decrease-stock", headers=auth_headers,
                               json={"quantity": 5000})
        assert response.status_code == 409
        assert response.json()["error_code"] == "INSUFFICIENT_STOCK"

    def test_dish_requirements(self, client, auth_headers, seeded):
        dish_id = seeded["dish"]["dish_id"]
        response = client.get(f"{API}/dishes/{dish_id}/requirements", headers=auth_headers,
                              params={"child_count": 10})
        assert response.json()["data"][0]["required"] == pytest.approx(500)
