from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tests.fixtures_data import (
    HAPPY_PATH_CHECKOUT,
    OTHER_OWNER_ID,
    RESTAURANT_SLUG,
    make_gateway,
    make_test_app,
    owner_headers,
)


@pytest.fixture()
def client(tmp_path):
    gateway, _ = make_gateway(tmp_path)
    return TestClient(make_test_app(gateway))


def _place_order(client, **overrides):
    payload = dict(HAPPY_PATH_CHECKOUT, **overrides)
    response = client.post(f"/menu/{RESTAURANT_SLUG}/orders", json=payload)
    assert response.status_code == 201
    return response.json()["order_id"]


def test_dashboard_requires_a_valid_token(client):
    assert client.get("/dashboard/orders").status_code == 401
    assert client.get("/dashboard/orders", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_owner_without_restaurant_is_sent_to_settings(client):
    response = client.get("/dashboard/orders", headers=owner_headers("owner-without-restaurant"))

    assert response.status_code == 404
    assert "settings" in response.json()["detail"]


def test_order_board_lists_newest_first_with_actions(client):
    first = _place_order(client)
    second = _place_order(client, latitude=12.97, longitude=77.59)

    response = client.get("/dashboard/orders", headers=owner_headers())

    assert response.status_code == 200
    entries = response.json()["orders"]
    assert [entry["order"]["id"] for entry in entries] == [second, first]
    assert entries[0]["actions"] == ["preparing", "cancelled"]
    assert entries[0]["maps_url"].endswith("query=12.97,77.59")
    assert entries[1]["maps_url"] is None


def test_illegal_transition_is_a_conflict(client):
    order_id = _place_order(client)

    response = client.patch(
        f"/dashboard/orders/{order_id}/status",
        json={"status": "delivered"},
        headers=owner_headers(),
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["current_status"] == "pending"
    assert detail["allowed"] == ["preparing", "cancelled"]


def test_stale_expected_status_is_a_conflict(client):
    order_id = _place_order(client)
    headers = owner_headers()
    client.patch(f"/dashboard/orders/{order_id}/status", json={"status": "preparing"}, headers=headers)

    response = client.patch(
        f"/dashboard/orders/{order_id}/status",
        json={"status": "cancelled", "expected_status": "pending"},
        headers=headers,
    )

    assert response.status_code == 409
    assert response.json()["detail"]["current_status"] == "preparing"


def test_foreign_orders_are_forbidden(client):
    order_id = _place_order(client)
    headers = owner_headers(OTHER_OWNER_ID)

    assert client.get(f"/dashboard/orders/{order_id}", headers=headers).status_code == 403
    response = client.patch(f"/dashboard/orders/{order_id}/status", json={"status": "cancelled"}, headers=headers)
    assert response.status_code == 403


def test_overview_counts_delivered_revenue_only(client):
    headers = owner_headers()
    delivered = _place_order(client)
    _place_order(client, items=[{"item_id": "B", "quantity": 4}])
    client.patch(f"/dashboard/orders/{delivered}/status", json={"status": "preparing"}, headers=headers)
    client.patch(f"/dashboard/orders/{delivered}/status", json={"status": "delivered"}, headers=headers)

    response = client.get("/dashboard/overview", headers=headers)

    assert response.status_code == 200
    overview = response.json()["overview"]
    assert overview["total_orders"] == 2
    assert overview["delivered_orders"] == 1
    assert Decimal(str(overview["total_revenue"])) == Decimal("250")
    assert overview["status_breakdown"]["pending"] == 1
    assert overview["top_items"][0] == {"name": "Masala Chai", "count": 5}
    assert overview["low_stock_count"] == 1


def test_settings_create_then_update_keeps_slug(client):
    headers = owner_headers("owner-new")
    assert client.get("/dashboard/settings", headers=headers).json()["restaurant"] is None

    created = client.put("/dashboard/settings", json={"name": "Café Déjà Vu", "total_tables": 6}, headers=headers)
    assert created.status_code == 200
    assert created.json()["restaurant"]["slug"] == "cafe-deja-vu"
    assert created.json()["public_url"] == "/menu/cafe-deja-vu"

    renamed = client.put("/dashboard/settings", json={"name": "Deja Vu Bistro"}, headers=headers)
    assert renamed.json()["restaurant"]["name"] == "Deja Vu Bistro"
    assert renamed.json()["restaurant"]["slug"] == "cafe-deja-vu"


def test_settings_reject_unusable_or_taken_names(client):
    assert client.put("/dashboard/settings", json={"name": "!!!"}, headers=owner_headers("owner-a")).status_code == 422

    response = client.put("/dashboard/settings", json={"name": "Spice Hub"}, headers=owner_headers("owner-b"))
    assert response.status_code == 409


def test_menu_admin_lifecycle(client):
    headers = owner_headers()

    listing = client.get("/dashboard/menu", headers=headers).json()
    by_id = {entry["item"]["id"]: entry for entry in listing}
    assert by_id["C"]["is_purchasable"] is False
    assert by_id["D"]["is_purchasable"] is False
    assert Decimal(str(by_id["A"]["recipe_cost"])) == Decimal("80")

    created = client.post(
        "/dashboard/menu",
        json={"name": "Paneer Roll", "price": "120", "recipe": [{"inventory_item_id": "inv-paneer", "quantity": 0.1}]},
        headers=headers,
    )
    assert created.status_code == 201
    item_id = created.json()["item"]["id"]
    assert created.json()["category"] == "Other"

    updated = client.patch(f"/dashboard/menu/{item_id}", json={"is_available": False}, headers=headers)
    assert updated.json()["item"]["is_available"] is False
    assert updated.json()["item"]["name"] == "Paneer Roll"

    assert client.patch("/dashboard/menu/A", json={"price": "0"}, headers=headers).status_code == 422
    assert client.delete(f"/dashboard/menu/{item_id}", headers=headers).status_code == 204
    assert client.delete(f"/dashboard/menu/{item_id}", headers=headers).status_code == 404


def test_inventory_restock_and_valuation(client):
    headers = owner_headers()

    listing = client.get("/dashboard/inventory", headers=headers).json()
    assert listing["low_stock_count"] == 1
    assert Decimal(str(listing["total_valuation"])) == Decimal("2030")

    restocked = client.post("/dashboard/inventory/inv-chicken/restock", json={"amount": 2}, headers=headers)
    assert restocked.status_code == 200
    assert restocked.json()["is_low_stock"] is False

    menu = {entry["item"]["id"]: entry for entry in client.get("/dashboard/menu", headers=headers).json()}
    assert menu["C"]["is_out_of_stock"] is False

    created = client.post("/dashboard/inventory", json={"name": "Rice", "unit": "kg", "current_stock": 10}, headers=headers)
    assert created.status_code == 201
    assert client.delete(f"/dashboard/inventory/{created.json()['item']['id']}", headers=headers).status_code == 204
    assert client.post("/dashboard/inventory/inv-chicken/restock", json={"amount": 0}, headers=headers).status_code == 422


def test_recipe_edits_flip_stock_state(client):
    headers = owner_headers()

    linked = client.post(
        "/dashboard/menu/B/recipe",
        json={"inventory_item_id": "inv-chicken", "quantity": 0.25},
        headers=headers,
    )
    assert linked.status_code == 201
    assert linked.json()["is_out_of_stock"] is True
    assert linked.json()["is_purchasable"] is False

    public = client.get(f"/menu/{RESTAURANT_SLUG}").json()
    chai = next(item for category in public["categories"] for item in category["items"] if item["id"] == "B")
    assert chai["is_out_of_stock"] is True

    menu = {entry["item"]["id"]: entry for entry in client.get("/dashboard/menu", headers=headers).json()}
    link_id = menu["C"]["item"]["recipe"][0]["id"]
    unlinked = client.delete(f"/dashboard/menu/C/recipe/{link_id}", headers=headers)
    assert unlinked.status_code == 200
    assert unlinked.json()["item"]["recipe"] == []
    assert unlinked.json()["is_out_of_stock"] is False
    assert unlinked.json()["is_purchasable"] is True

    assert client.delete(f"/dashboard/menu/C/recipe/{link_id}", headers=headers).status_code == 404
    missing = client.post("/dashboard/menu/B/recipe", json={"inventory_item_id": "inv-none", "quantity": 1}, headers=headers)
    assert missing.status_code == 404
    zero = client.post("/dashboard/menu/B/recipe", json={"inventory_item_id": "inv-paneer", "quantity": 0}, headers=headers)
    assert zero.status_code == 422


def test_menu_update_rejects_explicit_nulls(client):
    headers = owner_headers()

    for field in ("name", "price", "is_veg", "is_available"):
        response = client.patch("/dashboard/menu/A", json={field: None}, headers=headers)
        assert response.status_code == 422, field

    cleared = client.patch("/dashboard/menu/A", json={"category": None}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["category"] == "Other"


def test_inventory_edit_recomputes_alerts_and_valuation(client):
    headers = owner_headers()

    response = client.patch(
        "/dashboard/inventory/inv-paneer",
        json={"name": "Fresh Paneer", "cost_per_unit": "500", "min_stock_alert": 6},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["item"]["name"] == "Fresh Paneer"
    assert body["item"]["unit"] == "kg"
    assert body["is_low_stock"] is True
    assert Decimal(str(body["valuation"])) == Decimal("2500")

    listing = client.get("/dashboard/inventory", headers=headers).json()
    assert listing["low_stock_count"] == 2

    emptied = client.patch("/dashboard/inventory/inv-paneer", json={"current_stock": 0}, headers=headers)
    assert emptied.status_code == 200
    menu = {entry["item"]["id"]: entry for entry in client.get("/dashboard/menu", headers=headers).json()}
    assert menu["A"]["is_out_of_stock"] is True

    assert client.patch("/dashboard/inventory/inv-paneer", json={"current_stock": -1}, headers=headers).status_code == 422
    assert client.patch("/dashboard/inventory/inv-paneer", json={"name": None}, headers=headers).status_code == 422
    foreign = client.patch("/dashboard/inventory/inv-paneer", json={"name": "x"}, headers=owner_headers(OTHER_OWNER_ID))
    assert foreign.status_code == 403


def test_review_moderation_hides_from_public_menu(client):
    headers = owner_headers()
    reviews = client.get("/dashboard/reviews", headers=headers).json()
    assert len(reviews) == 2
    visible = next(review for review in reviews if review["is_visible"])

    response = client.patch(f"/dashboard/reviews/{visible['id']}", json={"is_visible": False}, headers=headers)

    assert response.status_code == 200
    assert client.get(f"/menu/{RESTAURANT_SLUG}").json()["reviews"] == []
