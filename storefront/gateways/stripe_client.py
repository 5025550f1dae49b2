"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import logging
from typing import Any, Dict

import stripe
from fastapi import Request

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_CURRENCY
from storefront.gateways.errors import GatewayError

logger = logging.getLogger(__name__)

def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - GatewayError(503) si STRIPE_SECRET_KEY est absent.
    """
    if not STRIPE_SECRET_KEY:
        raise GatewayError("Le paiement par carte n'est pas disponible", gateway="stripe", status_code=503)
    stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def create_session(
    *,
    amount: float,
    order_id: str,
    order_number: str,
    success_url: str,
    cancel_url: str,
    customer_email: str | None = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout pour le total de la commande
    (taxe, livraison, garantie et remise points inclus).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=[{
                "quantity": 1,
                "price_data": {
                    "currency": STRIPE_CURRENCY,
                    "unit_amount": int(round(float(amount) * 100)),
                    "product_data": {"name": f"Commande {order_number}"},
                },
            }],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=customer_email,
            client_reference_id=order_id,
            metadata={"order_id": order_id, "order_number": order_number},
            payment_method_types=["card"],
        )
    except stripe.StripeError as e:
        logger.exception("stripe.create_session failed order_id=%s", order_id)
        raise GatewayError("Le paiement par carte a échoué, veuillez réessayer", gateway="stripe") from e
    return session.to_dict()

def get_session(session_id: str) -> Dict[str, Any]:
    """Session Stripe Checkout par identifiant (payment_status, metadata, ...)."""
    require_stripe()
    try:
        return stripe.checkout.Session.retrieve(session_id).to_dict()
    except stripe.StripeError as e:
        logger.exception("stripe.get_session failed session_id=%s", session_id)
        raise GatewayError("Session de paiement introuvable", gateway="stripe", status_code=404) from e

async def parse_event(request: Request):
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    - Retourne le payload JSON vérifié (dict)
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    return json.loads(payload)
