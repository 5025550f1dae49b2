"""Messages métier envoyés au client (confirmation, paiement reçu)."""
from typing import Any, Dict
import logging

from storefront.notifications.whatsapp import send_whatsapp

logger = logging.getLogger(__name__)

def _customer_phone(order: Dict[str, Any], user: Dict[str, Any] | None = None) -> str | None:
    address = order.get("shipping_address") or {}
    return address.get("phone") or (user or {}).get("phone") or order.get("customer_phone")

def send_order_confirmation(order: Dict[str, Any], user: Dict[str, Any] | None = None) -> bool:
    """Confirmation de commande WhatsApp; les échecs sont seulement journalisés."""
    try:
        total = float(order.get("total") or 0)
        message = (
            f"Merci pour votre commande {order.get('order_number')} ! "
            f"Montant: {total:,.2f} HTG. "
            f"Statut: {'payée' if order.get('status') == 'paid' else 'en attente de paiement'}."
        )
        return send_whatsapp(_customer_phone(order, user), "order_confirmation", message, user_id=order.get("user_id"))
    except Exception:
        logger.exception("notifications.send_order_confirmation failed order_id=%s", order.get("id"))
        return False

def send_payment_received(order: Dict[str, Any]) -> bool:
    try:
        message = f"Paiement reçu pour la commande {order.get('order_number')}. Nous préparons votre commande."
        return send_whatsapp(_customer_phone(order), "payment_received", message, user_id=order.get("user_id"))
    except Exception:
        logger.exception("notifications.send_payment_received failed order_id=%s", order.get("id"))
        return False
