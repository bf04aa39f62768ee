from fastapi.testclient import TestClient

from storefront.core.config import ACTIVE_ORDER_COOKIE
from tests.fixtures_data import HAPPY_PATH_CHECKOUT, RESTAURANT_SLUG, make_gateway, make_test_app


def _client(tmp_path, **seed_options):
    gateway, _ = make_gateway(tmp_path, **seed_options)
    return TestClient(make_test_app(gateway))


def test_public_menu_groups_available_items_by_category(tmp_path):
    client = _client(tmp_path)

    response = client.get(f"/menu/{RESTAURANT_SLUG}")

    assert response.status_code == 200
    body = response.json()
    assert body["restaurant"]["name"] == "Spice Hub"
    assert "owner_id" not in body["restaurant"]
    assert body["order_type"] == "DELIVERY"
    assert body["table_number"] is None
    assert body["active_order_id"] is None

    categories = {category["name"]: category["items"] for category in body["categories"]}
    assert [category["name"] for category in body["categories"]] == ["Other", "Mains", "Starters"]
    assert [item["id"] for item in categories["Other"]] == ["B"]
    assert categories["Mains"][0]["is_out_of_stock"] is True
    assert categories["Starters"][0]["is_out_of_stock"] is False
    assert all(item["id"] != "D" for items in categories.values() for item in items)
    assert [review["customer_name"] for review in body["reviews"]] == ["Meera"]


def test_public_menu_echoes_active_order_cookie(tmp_path):
    client = _client(tmp_path)
    client.cookies.set(ACTIVE_ORDER_COOKIE, "order-123")

    response = client.get(f"/menu/{RESTAURANT_SLUG}")

    assert response.json()["active_order_id"] == "order-123"


def test_unknown_slug_and_bad_table_are_rejected(tmp_path):
    client = _client(tmp_path)

    assert client.get("/menu/no-such-place").status_code == 404
    assert client.get(f"/menu/{RESTAURANT_SLUG}", params={"table": 0}).status_code == 422


def test_menu_rejects_table_outside_restaurant(tmp_path):
    client = _client(tmp_path, total_tables=4)

    assert client.get(f"/menu/{RESTAURANT_SLUG}", params={"table": 9}).status_code == 422
    seated = client.get(f"/menu/{RESTAURANT_SLUG}", params={"table": 4})
    assert seated.status_code == 200
    assert seated.json()["table_number"] == 4


def test_checkout_rejects_missing_fields(tmp_path):
    client = _client(tmp_path)
    payload = dict(HAPPY_PATH_CHECKOUT, customer_address="  ")

    response = client.post(f"/menu/{RESTAURANT_SLUG}/orders", json=payload)

    assert response.status_code == 422
    assert response.json()["detail"]["missing_fields"] == ["customer_address"]
    assert ACTIVE_ORDER_COOKIE not in response.cookies


def test_checkout_rejects_table_outside_restaurant(tmp_path):
    client = _client(tmp_path, total_tables=4)

    response = client.post(f"/menu/{RESTAURANT_SLUG}/orders", params={"table": 9}, json=HAPPY_PATH_CHECKOUT)

    assert response.status_code == 422
    assert response.json()["detail"]["missing_fields"] == ["table_number"]


def test_checkout_rejects_unavailable_items(tmp_path):
    client = _client(tmp_path)
    payload = dict(HAPPY_PATH_CHECKOUT, items=[{"item_id": "A", "quantity": 1}, {"item_id": "C", "quantity": 1}])

    response = client.post(f"/menu/{RESTAURANT_SLUG}/orders", json=payload)

    assert response.status_code == 409
    assert response.json()["detail"]["item_ids"] == ["C"]


def test_checkout_refused_when_store_closed(tmp_path):
    client = _client(tmp_path, is_accepting_orders=False)

    response = client.post(f"/menu/{RESTAURANT_SLUG}/orders", json=HAPPY_PATH_CHECKOUT)

    assert response.status_code == 409


def test_tracking_page_for_unknown_order_is_404(tmp_path):
    client = _client(tmp_path)

    response = client.get("/order-success/does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"] == "Order not found"
