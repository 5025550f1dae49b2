from storefront.gateways import natcash_client

def _seed(store, order_id="o1", **extra):
    order = {"id": order_id, "order_number": "UD-1", "user_id": "test-user", "status": "pending_payment",
             "payment_status": "pending", "payment_method": "moncash", "total": 2450.0}
    order.update(extra)
    store.orders[order_id] = order
    return order

def test_stripe_webhook_marks_order_paid(client, store, monkeypatch):
    _seed(store, payment_method="stripe")

    async def fake_parse_event(request):
        return {"type": "checkout.session.completed",
                "data": {"object": {"metadata": {"order_id": "o1"}, "payment_status": "paid", "payment_intent": "pi_1"}}}

    monkeypatch.setattr("storefront.gateways.stripe_client.parse_event", fake_parse_event)
    res = client.post("/api/v1/payments/webhook/stripe", json={"dummy": True})
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
    assert store.orders["o1"]["payment_status"] == "paid"

def test_stripe_webhook_invalid_signature_is_400(client):
    res = client.post("/api/v1/payments/webhook/stripe", content=b"{}", headers={"stripe-signature": "bad"})
    assert res.status_code == 400

def test_moncash_webhook(client, store, monkeypatch):
    _seed(store)
    monkeypatch.setattr(
        "storefront.gateways.moncash_client.get_payment_by_transaction_id",
        lambda tid: {"reference": "o1", "transaction_id": tid, "message": "successful"},
    )
    res = client.post("/api/v1/payments/webhook/moncash", json={"orderId": "o1", "transactionId": "T1"})
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    again = client.post("/api/v1/payments/webhook/moncash", json={"orderId": "o1", "transactionId": "T1"})
    assert again.json()["status"] == "already_processed"

def test_moncash_webhook_errors(client, store):
    assert client.post("/api/v1/payments/webhook/moncash", json={}).status_code == 400
    assert client.post("/api/v1/payments/webhook/moncash", json={"orderId": "missing"}).status_code == 404

def test_natcash_webhook_signature(client, store, monkeypatch):
    _seed(store, payment_method="natcash")
    monkeypatch.setattr(natcash_client, "NATCASH_SECRET_KEY", "s3cret")
    payload = {"orderId": "o1", "status": "completed", "transactionId": "N1"}

    res = client.post("/api/v1/payments/webhook/natcash", json=payload, headers={"X-Signature": "forged"})
    assert res.status_code == 401

    signature = natcash_client.generate_signature(payload)
    res = client.post("/api/v1/payments/webhook/natcash", json=payload, headers={"X-Signature": signature})
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
    assert store.orders["o1"]["transaction_id"] == "N1"

def test_payment_status_refresh_moncash(client, store, monkeypatch):
    _seed(store)
    monkeypatch.setattr("storefront.gateways.moncash_client.get_payment_by_order_id", lambda oid: {"message": "successful", "transaction_id": "T9"})
    res = client.get("/api/v1/payments/o1/status")
    assert res.json() == {"order_id": "o1", "status": "paid", "payment_status": "paid"}
