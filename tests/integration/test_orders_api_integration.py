def _seed(store, order_id="o1", user_id="test-user", **extra):
    order = {
        "id": order_id, "order_number": f"UD-{order_id}", "user_id": user_id, "status": "pending_payment",
        "payment_status": "pending", "payment_method": "cash_on_delivery", "total": 2450.0,
        "points_discount": 0, "items": [], "points_awarded": False,
    }
    order.update(extra)
    store.orders[order_id] = order
    return order

def test_list_my_orders(client, store):
    _seed(store, "o1")
    _seed(store, "o2", status="delivered")
    _seed(store, "o3", user_id="someone-else")
    res = client.get("/api/v1/orders")
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 2
    assert body["pages"] == 1

    res = client.get("/api/v1/orders", params={"status": "delivered"})
    assert [o["id"] for o in res.json()["orders"]] == ["o2"]

def test_get_order_ownership(client, store):
    _seed(store, "o1")
    _seed(store, "o3", user_id="someone-else")
    assert client.get("/api/v1/orders/o1").status_code == 200
    assert client.get("/api/v1/orders/o3").status_code == 403
    assert client.get("/api/v1/orders/missing").status_code == 404

def test_cancel_order(client, store):
    _seed(store, "o1")
    _seed(store, "o2", status="shipped")
    res = client.post("/api/v1/orders/o1/cancel")
    assert res.status_code == 200
    assert res.json()["order"]["status"] == "cancelled"
    assert client.post("/api/v1/orders/o2/cancel").status_code == 409

def test_admin_routes_require_admin(client, store):
    _seed(store, "o1")
    # utilisateur standard: pas de jeton admin -> 401 (aucune session réelle)
    assert client.get("/api/v1/admin/orders").status_code == 401

def test_admin_update_status(authenticated_admin_client, store):
    _seed(store, "o1", status="shipped", payment_status="paid")
    res = authenticated_admin_client.patch("/api/v1/admin/orders/o1/status", json={"status": "delivered"})
    assert res.status_code == 200
    assert res.json()["status"] == "delivered"
    assert store.loyalty["test-user"]["points"] > 0

    listing = authenticated_admin_client.get("/api/v1/admin/orders", params={"status": "delivered"})
    assert [o["id"] for o in listing.json()["orders"]] == ["o1"]

def test_admin_update_status_rejects_unknown_status(authenticated_admin_client, store):
    _seed(store, "o1")
    res = authenticated_admin_client.patch("/api/v1/admin/orders/o1/status", json={"status": "lost"})
    assert res.status_code == 422
