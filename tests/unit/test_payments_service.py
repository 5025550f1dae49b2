import pytest
from fastapi import HTTPException

from storefront.gateways.errors import GatewayError
from storefront.orders.models import CheckoutRequest
from storefront.payments import service as payments_service

ADDRESS = {"full_name": "Jean Pierre", "phone": "37001234", "address": "12 Rue Capois", "city": "Delmas"}
USER = {"id": "u1", "email": "u1@example.com", "phone": "37001234", "is_union_plus": False}

def _req(method, **kw):
    data = {"payment_method": method, "shipping_address": ADDRESS, "items": [{"id": "tv", "quantity": 1}]}
    data.update(kw)
    return CheckoutRequest(**data)

@pytest.fixture
def catalog(store):
    store.add_offer("tv", 2000, stock=5)
    store.carts["u1"] = [{"id": "tv", "quantity": 1}]
    return store

def test_checkout_cash_on_delivery(catalog):
    out = payments_service.checkout(USER, _req("cash_on_delivery"))
    assert out["action"] == "confirmation"
    assert out["total"] == 2450.0
    assert out["status"] == "pending_payment"
    assert catalog.orders[out["order_id"]]["payment_method"] == "cash_on_delivery"
    assert catalog.carts["u1"] == []

def test_checkout_uses_saved_cart_when_items_missing(catalog):
    out = payments_service.checkout(USER, _req("cash_on_delivery", items=None))
    assert catalog.orders[out["order_id"]]["items"][0]["id"] == "tv"

def test_checkout_empty_cart(store):
    with pytest.raises(HTTPException) as exc:
        payments_service.checkout(USER, _req("cash_on_delivery", items=None))
    assert exc.value.status_code == 400

def test_checkout_moncash_redirect(catalog, monkeypatch):
    calls = []

    def fake_create(amount, order_id):
        calls.append((amount, order_id))
        return {"payment_token": "tok", "redirect_url": "https://moncash.test/redirect?token=tok", "order_id": order_id, "amount": amount}

    monkeypatch.setattr("storefront.gateways.moncash_client.create_payment", fake_create)
    out = payments_service.checkout(USER, _req("moncash"))
    assert out["action"] == "redirect"
    assert out["redirect_url"].endswith("token=tok")
    assert calls == [(2450.0, out["order_id"])]
    assert catalog.orders[out["order_id"]]["payment_token"] == "tok"

def test_checkout_moncash_failure_after_retries(catalog, monkeypatch):
    sleeps = []
    monkeypatch.setattr("storefront.utils.retry.time.sleep", lambda s: sleeps.append(s))

    def boom(amount, order_id):
        raise GatewayError("down", gateway="moncash")

    monkeypatch.setattr("storefront.gateways.moncash_client.create_payment", boom)
    with pytest.raises(GatewayError) as exc:
        payments_service.checkout(USER, _req("moncash"))
    order_id = next(iter(catalog.orders))
    assert exc.value.status_code == 502
    assert "momentanément indisponible" in exc.value.message
    assert exc.value.message.endswith(f"Référence: {order_id}")
    assert len(sleeps) == 2
    assert catalog.orders[order_id]["payment_status"] == "failed"
    assert catalog.orders[order_id]["status"] == "cancelled"
    assert catalog.offers["tv"]["stock"] == 5
    # panier conservé pour réessayer
    assert catalog.carts["u1"] == [{"id": "tv", "quantity": 1}]

def test_checkout_natcash_manual_fallback(catalog, monkeypatch):
    monkeypatch.setattr("storefront.gateways.natcash_client.NATCASH_MERCHANT_ID", "")
    out = payments_service.checkout(USER, _req("natcash"))
    assert out["action"] == "manual"
    assert out["reference"] == out["order_id"]
    assert len(out["instructions"]) == 6

def test_checkout_natcash_ussd(catalog, monkeypatch):
    monkeypatch.setattr(
        "storefront.gateways.natcash_client.create_payment",
        lambda amount, order_id, phone, description="": {"is_manual": False, "payment_id": "np1", "ussd_code": "*202*1#"},
    )
    out = payments_service.checkout(USER, _req("natcash"))
    assert out["action"] == "ussd"
    assert catalog.orders[out["order_id"]]["natcash_payment_id"] == "np1"

def test_checkout_stripe(catalog, monkeypatch):
    captured = {}

    def fake_session(**kw):
        captured.update(kw)
        return {"id": "cs_1", "url": "https://stripe.test/cs_1"}

    monkeypatch.setattr("storefront.gateways.stripe_client.create_session", fake_session)
    out = payments_service.checkout(USER, _req("stripe"))
    assert out["action"] == "redirect"
    assert out["session_id"] == "cs_1"
    assert "{CHECKOUT_SESSION_ID}" in captured["success_url"]
    assert f"order_id={out['order_id']}" in captured["success_url"]
    assert catalog.orders[out["order_id"]]["stripe_session_id"] == "cs_1"

def test_checkout_wallet_insufficient_creates_no_order(catalog):
    catalog.wallets["u1"] = {"user_id": "u1", "balance": 100, "credit_limit": 0}
    with pytest.raises(HTTPException) as exc:
        payments_service.checkout(USER, _req("wallet"))
    assert exc.value.status_code == 402
    assert catalog.orders == {}

def test_checkout_wallet_paid(catalog):
    catalog.wallets["u1"] = {"user_id": "u1", "balance": 3000, "credit_limit": 0}
    out = payments_service.checkout(USER, _req("wallet"))
    assert out["action"] == "confirmation"
    assert out["status"] == "paid"
    assert out["wallet_balance"] == 550.0

def test_checkout_wallet_conflict_cancels_order(catalog, monkeypatch):
    catalog.wallets["u1"] = {"user_id": "u1", "balance": 3000, "credit_limit": 0}
    monkeypatch.setattr("storefront.wallet.repository.update_balance", lambda *a: False)
    with pytest.raises(HTTPException) as exc:
        payments_service.checkout(USER, _req("wallet"))
    assert exc.value.status_code == 409
    order = next(iter(catalog.orders.values()))
    assert order["status"] == "cancelled"
    assert order["payment_status"] == "failed"
    assert catalog.offers["tv"]["stock"] == 5

def test_checkout_union_pay_installments(catalog):
    out = payments_service.checkout(USER, _req("union_pay_3x"))
    assert out["installments"] == 3
    assert out["installment_amount"] == 817
    assert catalog.orders[out["order_id"]]["payment_plan"]["installment_amount"] == 817

def test_checkout_union_pay_credit_exceeded(catalog):
    catalog.wallets["u1"] = {"user_id": "u1", "balance": 0, "credit_limit": 1000}
    with pytest.raises(HTTPException) as exc:
        payments_service.checkout(USER, _req("union_pay_3x"))
    assert exc.value.detail == "Limite de crédit dépassée."

def test_handle_stripe_event(store):
    store.orders["o1"] = {"id": "o1", "user_id": "u1", "status": "pending_payment", "payment_status": "pending"}
    event = {"type": "checkout.session.completed", "data": {"object": {"metadata": {"order_id": "o1"}, "payment_status": "paid", "payment_intent": "pi_1"}}}
    assert payments_service.handle_stripe_event(event)["status"] == "ok"
    assert store.orders["o1"]["transaction_id"] == "pi_1"
    assert payments_service.handle_stripe_event(event)["status"] == "already_processed"
    assert payments_service.handle_stripe_event({"type": "invoice.paid"})["status"] == "ignored"

def test_handle_moncash_notification_verifies_transaction(store, monkeypatch):
    store.orders["o1"] = {"id": "o1", "user_id": "u1", "status": "pending_payment", "payment_status": "pending"}
    monkeypatch.setattr(
        "storefront.gateways.moncash_client.get_payment_by_transaction_id",
        lambda tid: {"reference": "o1", "transaction_id": tid, "message": "successful"},
    )
    out = payments_service.handle_moncash_notification("o1", "T1")
    assert out["status"] == "ok"
    assert store.orders["o1"]["payment_status"] == "paid"
    assert payments_service.handle_moncash_notification("o1", "T1")["status"] == "already_processed"

def test_handle_moncash_notification_rejects_unconfirmed(store, monkeypatch):
    store.orders["o1"] = {"id": "o1", "user_id": "u1", "status": "pending_payment", "payment_status": "pending"}
    monkeypatch.setattr("storefront.gateways.moncash_client.get_payment_by_order_id", lambda oid: {"message": "pending"})
    with pytest.raises(HTTPException) as exc:
        payments_service.handle_moncash_notification("o1", None)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        payments_service.handle_moncash_notification("missing", "T1")
    assert exc.value.status_code == 404

def test_handle_natcash_notification(store):
    store.orders["o1"] = {"id": "o1", "user_id": "u1", "status": "pending_payment", "payment_status": "pending"}
    store.orders["o2"] = {"id": "o2", "user_id": "u1", "status": "pending_payment", "payment_status": "pending"}
    assert payments_service.handle_natcash_notification({"orderId": "o1", "status": "completed", "transactionId": "N1"})["status"] == "ok"
    assert payments_service.handle_natcash_notification({"orderId": "o2", "status": "expired"})["status"] == "expired"
    assert store.orders["o2"]["payment_status"] == "failed"
    with pytest.raises(HTTPException):
        payments_service.handle_natcash_notification({"status": "completed"})

def test_refresh_payment_status_stripe(store, monkeypatch):
    store.orders["o1"] = {"id": "o1", "user_id": "u1", "status": "pending_payment", "payment_status": "pending",
                          "payment_method": "stripe", "stripe_session_id": "cs_1"}
    monkeypatch.setattr("storefront.gateways.stripe_client.get_session", lambda sid: {"payment_status": "paid", "payment_intent": "pi_9"})
    out = payments_service.refresh_payment_status("o1", USER)
    assert out == {"order_id": "o1", "status": "paid", "payment_status": "paid"}

def test_failed_moncash_attempts_release_stock_and_points(catalog, monkeypatch):
    monkeypatch.setattr("storefront.utils.retry.time.sleep", lambda s: None)
    catalog.loyalty["u1"] = {"user_id": "u1", "points": 40, "lifetime_points": 40, "tier": "bronze", "badges": [], "order_count": 0}

    def boom(amount, order_id):
        raise GatewayError("down", gateway="moncash")

    monkeypatch.setattr("storefront.gateways.moncash_client.create_payment", boom)
    for _ in range(2):
        with pytest.raises(GatewayError):
            payments_service.checkout(USER, _req("moncash", points_to_redeem=40))

    assert catalog.offers["tv"]["stock"] == 5
    assert catalog.loyalty["u1"]["points"] == 40
    assert [(o["status"], o["payment_status"], o["points_applied"]) for o in catalog.orders.values()] == [
        ("cancelled", "failed", 40),
        ("cancelled", "failed", 40),
    ]

def test_checkout_stripe_unavailable_cancels_order(catalog, monkeypatch):
    monkeypatch.setattr("storefront.gateways.stripe_client.STRIPE_SECRET_KEY", "")
    with pytest.raises(GatewayError) as exc:
        payments_service.checkout(USER, _req("stripe"))
    assert exc.value.status_code == 503
    order = next(iter(catalog.orders.values()))
    assert order["status"] == "cancelled"
    assert order["payment_status"] == "failed"
    assert catalog.offers["tv"]["stock"] == 5
    assert catalog.carts["u1"] == [{"id": "tv", "quantity": 1}]
