"""
Adaptateur NatCash (Natcom): requêtes signées sha256(json(data) + secret).
Si l'API est injoignable ou refuse la demande, create_payment bascule sur un
paiement manuel (envoi au numéro marchand avec la référence de commande).
"""
import hashlib
import hmac
import json
import logging
import re
import time
from typing import Any, Dict, Optional

import httpx

from storefront.config import (
    NATCASH_MERCHANT_ID,
    NATCASH_SECRET_KEY,
    NATCASH_MODE,
    NATCASH_MERCHANT_NUMBER,
    BASE_URL,
    FRONTEND_URL,
    DEFAULT_CURRENCY,
)
from storefront.gateways.errors import GatewayError

logger = logging.getLogger(__name__)

TIMEOUT = 15

def api_base() -> str:
    return "https://api.natcash.ht/v1" if NATCASH_MODE == "production" else "https://sandbox.natcash.ht/v1"

def format_phone(phone: Optional[str]) -> str:
    """Numéro au format NatCash: chiffres uniquement, préfixe 509."""
    cleaned = re.sub(r"[^0-9]", "", phone or "")
    return cleaned if cleaned.startswith("509") else f"509{cleaned}"

def generate_signature(data: Dict[str, Any]) -> str:
    payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False) + NATCASH_SECRET_KEY
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()

def verify_webhook(payload: Dict[str, Any], signature: Optional[str]) -> bool:
    """Compare la signature reçue à la signature attendue en temps constant."""
    if not signature or not NATCASH_SECRET_KEY:
        return False
    return hmac.compare_digest(signature.encode("utf-8"), generate_signature(payload).encode("utf-8"))

def _headers(signature: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Merchant-Id": NATCASH_MERCHANT_ID,
        "X-Signature": signature,
    }

def manual_payment(amount: float, order_id: str) -> Dict[str, Any]:
    """Instructions de paiement manuel (API indisponible)."""
    merchant_number = NATCASH_MERCHANT_NUMBER or "4040-0000"
    return {
        "is_manual": True,
        "merchant_number": merchant_number,
        "amount": amount,
        "reference": order_id,
        "instructions": [
            "1. Ouvrez NatCash sur votre téléphone",
            "2. Sélectionnez \"Envoyer de l'argent\"",
            f"3. Entrez le numéro: {merchant_number}",
            f"4. Montant: {amount:,.0f} HTG",
            f"5. Référence: {order_id}",
            "6. Confirmez le paiement",
        ],
        "note": "Votre commande sera confirmée après vérification du paiement (2-5 minutes)",
    }

def create_payment(amount: float, order_id: str, customer_phone: Optional[str], description: str = "") -> Dict[str, Any]:
    """
    Demande de paiement USSD NatCash.
    Retour: {is_manual: False, payment_id, ussd_code, qr_code, expires_at, instructions}
    ou le paiement manuel en cas d'échec.
    """
    data = {
        "merchantId": NATCASH_MERCHANT_ID,
        "orderId": order_id,
        "amount": amount,
        "currency": DEFAULT_CURRENCY,
        "customerPhone": format_phone(customer_phone),
        "description": description or f"Commande {order_id}",
        "callbackUrl": f"{BASE_URL.rstrip('/')}/api/v1/payments/webhook/natcash",
        "returnUrl": f"{FRONTEND_URL.rstrip('/')}/order-confirmation",
        "timestamp": int(time.time() * 1000),
    }
    try:
        if not NATCASH_MERCHANT_ID or not NATCASH_SECRET_KEY:
            raise GatewayError("NatCash n'est pas configuré", gateway="natcash")
        resp = httpx.post(f"{api_base()}/payment/create", json=data, headers=_headers(generate_signature(data)), timeout=TIMEOUT)
        resp.raise_for_status()
        body = resp.json() or {}
        if not body.get("success"):
            raise GatewayError(body.get("message") or "Erreur NatCash", gateway="natcash")
    except (GatewayError, httpx.HTTPError, ValueError):
        logger.warning("natcash.create_payment failed, manual fallback order_id=%s", order_id, exc_info=True)
        return manual_payment(amount, order_id)

    ussd = body.get("ussdCode")
    return {
        "is_manual": False,
        "payment_id": body.get("paymentId"),
        "ussd_code": ussd,
        "qr_code": body.get("qrCode"),
        "expires_at": body.get("expiresAt"),
        "instructions": f"Composez {ussd} sur votre téléphone Natcom pour payer",
    }

def get_payment_status(payment_id: str) -> Dict[str, Any]:
    """Statut: pending, completed, failed ou expired."""
    data = {"merchantId": NATCASH_MERCHANT_ID, "paymentId": payment_id, "timestamp": int(time.time() * 1000)}
    try:
        resp = httpx.get(f"{api_base()}/payment/status/{payment_id}", headers=_headers(generate_signature(data)), timeout=TIMEOUT)
        resp.raise_for_status()
        body = resp.json() or {}
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("natcash.get_payment_status failed payment_id=%s", payment_id)
        raise GatewayError("Impossible de vérifier le statut du paiement", gateway="natcash") from e
    return {
        "status": body.get("status"),
        "transaction_id": body.get("transactionId"),
        "paid_at": body.get("paidAt"),
    }
