from fastapi.testclient import TestClient


REQUIRED_ROUTES = {
    "/menu/{slug}",
    "/menu/{slug}/orders",
    "/order-success/{order_id}",
    "/dashboard/orders",
    "/dashboard/orders/{order_id}/status",
    "/dashboard/overview",
    "/dashboard/settings",
    "/dashboard/menu",
    "/dashboard/menu/{item_id}/recipe",
    "/dashboard/menu/{item_id}/recipe/{link_id}",
    "/dashboard/inventory/{item_id}",
    "/dashboard/inventory/{item_id}/restock",
    "/dashboard/reviews/{review_id}",
}

# Socket routes are absent from the OpenAPI document; resolved by endpoint name instead.
REQUIRED_SOCKETS = {
    ("order_board_socket", ()): "/dashboard/orders/ws",
    ("order_tracking_socket", (("order_id", "abc"),)): "/order-success/abc/ws",
}


def test_api_startup_and_router_registration(monkeypatch):
    from storefront import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/")
        health_response = client.get("/health")
        openapi_response = client.get("/openapi.json")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert health_response.json() == {"status": "healthy"}
    assert openapi_response.status_code == 200

    paths = set(openapi_response.json()["paths"])
    paths |= {getattr(route, "path", None) for route in main.app.routes}
    assert REQUIRED_ROUTES.issubset(paths)

    for (name, params), expected in REQUIRED_SOCKETS.items():
        assert main.app.url_path_for(name, **dict(params)) == expected
