import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator, Dict, Any, List
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.app import app as fastapi_app
from storefront.utils.security import require_user, require_admin

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

FAKE_USER: Dict[str, Any] = {
    "id": "test-user",
    "email": "test@example.com",
    "phone": "37001234",
    "role": "user",
    "metadata": {"full_name": "Test User"},
    "is_union_plus": False,
    "token": "fake-token",
}

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def fake_user() -> Dict[str, Any]:
    return dict(FAKE_USER)

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, fake_user):
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def authenticated_admin_client(app, client):
    def _override_require_admin():
        return {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    app.dependency_overrides[require_admin] = _override_require_admin
    yield client
    app.dependency_overrides.pop(require_admin, None)

# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.notifications.repository.log_notification", lambda data: True)
    monkeypatch.setattr("storefront.notifications.repository.count_recent", lambda user_id, channel="whatsapp", seconds=60: 0)

class FakeStore:
    """Tables en mémoire branchées à la place des repositories Supabase."""

    def __init__(self):
        self.offers: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, List[Dict[str, Any]]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.wallets: Dict[str, Dict[str, Any]] = {}
        self.transactions: List[Dict[str, Any]] = []
        self.loyalty: Dict[str, Dict[str, Any]] = {}
        self.ledger: Dict[str, Dict[str, Any]] = {}
        self.coupons: Dict[str, Dict[str, Any]] = {}
        self.coupon_usage: List[Dict[str, Any]] = []

    def add_offer(self, offer_id: str, price: float, **extra) -> Dict[str, Any]:
        offer = {"id": offer_id, "title": f"Produit {offer_id}", "price": price, "is_active": True, "type": "physical", "stock": 10}
        offer.update(extra)
        self.offers[offer_id] = offer
        return offer

    def add_coupon(self, code: str, kind: str, value: float = 0, **extra) -> Dict[str, Any]:
        coupon = {"id": f"c-{code.lower()}", "code": code.upper(), "type": kind, "value": value, "active": True, "usage_count": 0}
        coupon.update(extra)
        self.coupons[coupon["id"]] = coupon
        return coupon

    # offers
    def fetch_offers_by_ids(self, ids):
        return [dict(self.offers[i]) for i in ids if i in self.offers]

    def get_offer(self, offer_id):
        return dict(self.offers[offer_id]) if offer_id in self.offers else None

    def list_offers(self, vertical=None, limit=50):
        rows = [o for o in self.offers.values() if o.get("is_active", True)]
        if vertical:
            rows = [o for o in rows if o.get("vertical") == vertical]
        return rows[:limit]

    def adjust_stock(self, offer_id, delta):
        if offer_id in self.offers:
            self.offers[offer_id]["stock"] = max(int(self.offers[offer_id].get("stock") or 0) + delta, 0)
        return True

    # carts
    def get_cart_items(self, user_id):
        return [dict(i) for i in self.carts.get(user_id, [])]

    def save_cart_items(self, user_id, items):
        self.carts[user_id] = [dict(i) for i in items]
        return True

    # orders
    def insert_order(self, order):
        self.orders[order["id"]] = dict(order)
        return dict(order)

    def get_order(self, order_id):
        return dict(self.orders[order_id]) if order_id in self.orders else None

    def update_order(self, order_id, data):
        if order_id not in self.orders:
            return None
        self.orders[order_id].update(data)
        return dict(self.orders[order_id])

    def list_user_orders(self, user_id, page=1, limit=10, status=None):
        rows = [o for o in self.orders.values() if o["user_id"] == user_id and (not status or o["status"] == status)]
        start = (page - 1) * limit
        return rows[start:start + limit], len(rows)

    def list_orders(self, limit=100, status=None):
        return [o for o in self.orders.values() if not status or o["status"] == status][:limit]

    # wallets
    def get_wallet(self, user_id):
        return dict(self.wallets[user_id]) if user_id in self.wallets else None

    def create_wallet(self, data):
        self.wallets[data["user_id"]] = dict(data)
        return dict(data)

    def update_balance(self, user_id, expected_balance, new_balance):
        wallet = self.wallets.get(user_id)
        if not wallet or float(wallet["balance"]) != float(expected_balance):
            return False
        wallet["balance"] = new_balance
        return True

    def insert_transaction(self, data):
        self.transactions.append(dict(data))
        return True

    def list_transactions(self, user_id, limit=10):
        return [t for t in self.transactions if t["user_id"] == user_id][:limit]

    # loyalty
    def get_loyalty_account(self, user_id):
        return dict(self.loyalty[user_id]) if user_id in self.loyalty else None

    def save_loyalty_account(self, account):
        self.loyalty[account["user_id"]] = dict(account)
        return True

    def find_ledger_entry(self, key):
        return dict(self.ledger[key]) if key in self.ledger else None

    def insert_ledger_entry(self, entry):
        if entry["idempotency_key"] in self.ledger:
            return False
        self.ledger[entry["idempotency_key"]] = dict(entry)
        return True

    def update_ledger_status(self, key, status):
        if key not in self.ledger:
            return False
        self.ledger[key]["status"] = status
        return True

    # coupons
    def get_active_coupon(self, code):
        for c in self.coupons.values():
            if c["code"] == code.upper() and c.get("active"):
                return dict(c)
        return None

    def count_user_usage(self, coupon_id, user_id):
        return len([u for u in self.coupon_usage if u["coupon_id"] == coupon_id and u["user_id"] == user_id])

    def insert_usage(self, data):
        self.coupon_usage.append(dict(data))
        return True

    def delete_usage(self, order_id):
        before = len(self.coupon_usage)
        self.coupon_usage = [u for u in self.coupon_usage if u["order_id"] != order_id]
        return len(self.coupon_usage) < before

    def adjust_usage_count(self, coupon_id, delta):
        if coupon_id in self.coupons:
            self.coupons[coupon_id]["usage_count"] = max(int(self.coupons[coupon_id].get("usage_count") or 0) + delta, 0)
        return True

@pytest.fixture
def store(monkeypatch) -> FakeStore:
    s = FakeStore()
    patches = {
        "storefront.offers.repository.fetch_offers_by_ids": s.fetch_offers_by_ids,
        "storefront.offers.repository.get_offer": s.get_offer,
        "storefront.offers.repository.list_offers": s.list_offers,
        "storefront.offers.repository.adjust_stock": s.adjust_stock,
        "storefront.cart.repository.get_cart_items": s.get_cart_items,
        "storefront.cart.repository.save_cart_items": s.save_cart_items,
        "storefront.orders.repository.insert_order": s.insert_order,
        "storefront.orders.repository.get_order": s.get_order,
        "storefront.orders.repository.update_order": s.update_order,
        "storefront.orders.repository.list_user_orders": s.list_user_orders,
        "storefront.orders.repository.list_orders": s.list_orders,
        "storefront.wallet.repository.get_wallet": s.get_wallet,
        "storefront.wallet.repository.create_wallet": s.create_wallet,
        "storefront.wallet.repository.update_balance": s.update_balance,
        "storefront.wallet.repository.insert_transaction": s.insert_transaction,
        "storefront.wallet.repository.list_transactions": s.list_transactions,
        "storefront.loyalty.repository.get_account": s.get_loyalty_account,
        "storefront.loyalty.repository.save_account": s.save_loyalty_account,
        "storefront.loyalty.repository.find_ledger_entry": s.find_ledger_entry,
        "storefront.loyalty.repository.insert_ledger_entry": s.insert_ledger_entry,
        "storefront.loyalty.repository.update_ledger_status": s.update_ledger_status,
        "storefront.coupons.repository.get_active_coupon": s.get_active_coupon,
        "storefront.coupons.repository.count_user_usage": s.count_user_usage,
        "storefront.coupons.repository.insert_usage": s.insert_usage,
        "storefront.coupons.repository.delete_usage": s.delete_usage,
        "storefront.coupons.repository.adjust_usage_count": s.adjust_usage_count,
    }
    for target, fn in patches.items():
        monkeypatch.setattr(target, fn)
    return s
