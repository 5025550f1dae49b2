ADDRESS = {"full_name": "Jean Pierre", "phone": "37001234", "address": "12 Rue Capois", "city": "Delmas"}

def _body(method, **kw):
    data = {"payment_method": method, "shipping_address": ADDRESS, "items": [{"id": "tv", "quantity": 1}]}
    data.update(kw)
    return data

def test_checkout_cash_on_delivery(client, store):
    store.add_offer("tv", 2000)
    res = client.post("/api/v1/payments/checkout", json=_body("cash_on_delivery"))
    assert res.status_code == 200
    body = res.json()
    assert body["action"] == "confirmation"
    assert body["total"] == 2450.0
    assert body["order_number"].startswith("UD-")

def test_checkout_unknown_method_is_422(client, store):
    store.add_offer("tv", 2000)
    assert client.post("/api/v1/payments/checkout", json=_body("paypal")).status_code == 422

def test_checkout_wallet_insufficient_is_402(client, store):
    store.add_offer("tv", 2000)
    store.wallets["test-user"] = {"user_id": "test-user", "balance": 10, "credit_limit": 0}
    res = client.post("/api/v1/payments/checkout", json=_body("wallet"))
    assert res.status_code == 402
    assert res.json()["detail"] == "Solde insuffisant dans votre portefeuille."

def test_checkout_moncash_unavailable_is_502_with_reference(client, store, monkeypatch):
    from storefront.gateways.errors import GatewayError

    store.add_offer("tv", 2000)
    monkeypatch.setattr("storefront.utils.retry.time.sleep", lambda s: None)

    def boom(amount, order_id):
        raise GatewayError("down", gateway="moncash")

    monkeypatch.setattr("storefront.gateways.moncash_client.create_payment", boom)
    res = client.post("/api/v1/payments/checkout", json=_body("moncash"))
    assert res.status_code == 502
    order_id = next(iter(store.orders))
    assert res.json()["detail"].endswith(f"Référence: {order_id}")
    assert res.json()["gateway"] == "moncash"

def test_checkout_stripe_not_configured_is_503(client, store, monkeypatch):
    store.add_offer("tv", 2000)
    monkeypatch.setattr("storefront.gateways.stripe_client.STRIPE_SECRET_KEY", "")
    res = client.post("/api/v1/payments/checkout", json=_body("stripe"))
    assert res.status_code == 503

def test_checkout_sends_whatsapp_confirmation(client, store, monkeypatch):
    store.add_offer("tv", 2000)
    sent = []
    monkeypatch.setattr("storefront.notifications.service.send_order_confirmation", lambda order, user=None: sent.append(order["id"]) or True)
    res = client.post("/api/v1/payments/checkout", json=_body("cash_on_delivery"))
    assert sent == [res.json()["order_id"]]

def test_checkout_rejects_invalid_address(client, store):
    store.add_offer("tv", 2000)
    bad = dict(ADDRESS, phone="12")
    assert client.post("/api/v1/payments/checkout", json=_body("cash_on_delivery", shipping_address=bad)).status_code == 422

def test_checkout_with_coupon_records_usage_and_cancel_releases_it(client, store):
    store.add_offer("tv", 2000)
    coupon = store.add_coupon("MOINS500", "fixed", 500, per_user_limit=1)
    res = client.post("/api/v1/payments/checkout", json=_body("cash_on_delivery", coupon_code="moins500"))
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1950.0
    order = store.orders[body["order_id"]]
    assert order["coupon_code"] == "MOINS500"
    assert order["coupon_discount"] == 500.0
    assert store.coupons[coupon["id"]]["usage_count"] == 1

    again = client.post("/api/v1/payments/checkout", json=_body("cash_on_delivery", coupon_code="MOINS500"))
    assert again.status_code == 409

    assert client.post(f"/api/v1/orders/{body['order_id']}/cancel").status_code == 200
    assert store.coupons[coupon["id"]]["usage_count"] == 0
    assert store.coupon_usage == []
