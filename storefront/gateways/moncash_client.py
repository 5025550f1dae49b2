"""
Adaptateur MonCash (Digicel): OAuth client_credentials + API REST via httpx.
- Le token est mis en cache 50 minutes (il expire à 59).
- Toute erreur réseau ou réponse inattendue devient GatewayError (message en français).
"""
import base64
import logging
import time
from typing import Any, Dict, Optional

import httpx

from storefront.config import MONCASH_CLIENT_ID, MONCASH_CLIENT_SECRET, MONCASH_MODE
from storefront.gateways.errors import GatewayError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 50 * 60
TIMEOUT = 15

_token_cache: Dict[str, Any] = {"token": None, "expires_at": 0.0}

def _host() -> str:
    if MONCASH_MODE == "production":
        return "https://moncashbutton.digicelgroup.com"
    return "https://sandbox.moncashbutton.digicelgroup.com"

def api_base() -> str:
    return f"{_host()}/Api"

def redirect_base() -> str:
    return f"{_host()}/Moncash-middleware/Payment/Redirect"

def reset_token_cache() -> None:
    _token_cache.update({"token": None, "expires_at": 0.0})

def get_access_token() -> str:
    """Token OAuth (mis en cache)."""
    token = _token_cache.get("token")
    if token and time.time() < _token_cache.get("expires_at", 0):
        return token
    if not MONCASH_CLIENT_ID or not MONCASH_CLIENT_SECRET:
        raise GatewayError("MonCash n'est pas configuré", gateway="moncash", status_code=503)

    credentials = base64.b64encode(f"{MONCASH_CLIENT_ID}:{MONCASH_CLIENT_SECRET}".encode("utf-8")).decode("ascii")
    try:
        resp = httpx.post(
            f"{api_base()}/oauth/token",
            content="grant_type=client_credentials&scope=read,write",
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            timeout=TIMEOUT,
        )
        resp.raise_for_status()
        token = resp.json().get("access_token")
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("moncash.oauth failed")
        raise GatewayError("Impossible de se connecter à MonCash", gateway="moncash") from e
    if not token:
        raise GatewayError("Impossible de se connecter à MonCash", gateway="moncash")

    _token_cache.update({"token": token, "expires_at": time.time() + TOKEN_TTL_SECONDS})
    return token

def _post(path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    token = get_access_token()
    resp = httpx.post(
        f"{api_base()}{path}",
        json=payload,
        headers={
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
        timeout=TIMEOUT,
    )
    resp.raise_for_status()
    return resp.json() or {}

def create_payment(amount: float, order_id: str) -> Dict[str, Any]:
    """
    Crée un paiement MonCash.
    Retour: {payment_token, redirect_url, order_id, amount}
    """
    try:
        data = _post("/v1/CreatePayment", {"amount": amount, "orderId": order_id})
    except GatewayError:
        raise
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("moncash.create_payment failed order_id=%s", order_id)
        raise GatewayError("Erreur lors de la création du paiement MonCash", gateway="moncash") from e

    payment_token = ((data.get("payment_token") or {}).get("token"))
    if not payment_token:
        raise GatewayError("Token de paiement non reçu", gateway="moncash")
    return {
        "payment_token": payment_token,
        "redirect_url": f"{redirect_base()}?token={payment_token}",
        "order_id": order_id,
        "amount": amount,
    }

def get_payment_by_transaction_id(transaction_id: str) -> Optional[Dict[str, Any]]:
    """Détail d'une transaction (reference, transaction_id, cost, message, payer)."""
    try:
        return _post("/v1/RetrieveTransactionPayment", {"transactionId": transaction_id}).get("payment")
    except GatewayError:
        raise
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("moncash.retrieve_transaction failed transaction_id=%s", transaction_id)
        raise GatewayError("Transaction non trouvée", gateway="moncash", status_code=404) from e

def get_payment_by_order_id(order_id: str) -> Optional[Dict[str, Any]]:
    try:
        return _post("/v1/RetrieveOrderPayment", {"orderId": order_id}).get("payment")
    except GatewayError:
        raise
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("moncash.retrieve_order failed order_id=%s", order_id)
        raise GatewayError("Commande non trouvée", gateway="moncash", status_code=404) from e

def is_successful(payment: Optional[Dict[str, Any]]) -> bool:
    return str((payment or {}).get("message") or "").lower() == "successful"
