"""
Cas d'usage 'payments': orchestre panier, commande, passerelles et wallet.

checkout() choisit la branche selon le moyen de paiement et renvoie au front
l'action à effectuer:
- redirect: ouvrir redirect_url (MonCash, Stripe)
- ussd / manual: afficher les instructions NatCash
- confirmation: commande enregistrée (wallet, Union Pay 3x, paiement à la livraison)
"""
from typing import Any, Dict, List, Optional
import logging
from fastapi import BackgroundTasks, HTTPException

from storefront.config import (
    FRONTEND_URL,
    CHECKOUT_SUCCESS_PATH,
    CHECKOUT_CANCEL_PATH,
    PAYMENT_MAX_RETRIES,
    PAYMENT_RETRY_DELAY,
)
from storefront.cart import logic as cart_logic
from storefront.cart import service as cart_service
from storefront.offers import repository as offers_repo
from storefront.loyalty import service as loyalty_service
from storefront.coupons import service as coupons_service
from storefront.wallet import service as wallet_service
from storefront.orders import service as orders_service
from storefront.orders import repository as orders_repo
from storefront.orders.models import CheckoutRequest
from storefront.pricing.service import installment_amount
from storefront.gateways import moncash_client, natcash_client, stripe_client
from storefront.gateways.errors import GatewayError
from storefront.utils.retry import retry_with_backoff
from storefront.notifications import service as notifications

logger = logging.getLogger(__name__)

INSTALLMENTS = 3

def _resolve_items(user: Dict[str, Any], req: CheckoutRequest) -> List[Dict[str, Any]]:
    if req.items is not None:
        items = [i.model_dump() for i in req.items]
    else:
        items = cart_service.get_items(user["id"])
    if not items:
        raise HTTPException(status_code=400, detail="Votre panier est vide")
    return items

def _release(order: Dict[str, Any], reason: str) -> None:
    """Paiement non lancé: annule la commande (stock et points rendus) et la marque en échec."""
    orders_service.update_status(order["id"], "cancelled", reason)
    orders_service.mark_failed(order["id"], reason)

def _pay_with_moncash(order: Dict[str, Any]) -> Dict[str, Any]:
    try:
        payment = retry_with_backoff(
            lambda: moncash_client.create_payment(order["total"], order["id"]),
            max_retries=PAYMENT_MAX_RETRIES,
            delay=PAYMENT_RETRY_DELAY,
        )
    except GatewayError as e:
        _release(order, e.message)
        raise GatewayError(
            "Le service de paiement MonCash est momentanément indisponible. "
            "Veuillez réessayer ou choisir un autre moyen de paiement. "
            f"Référence: {order['id']}",
            gateway="moncash",
        ) from e
    if not payment.get("redirect_url"):
        _release(order, "redirect_url manquant")
        raise GatewayError(f"Réponse MonCash invalide. Référence: {order['id']}", gateway="moncash")
    orders_repo.update_order(order["id"], {"payment_token": payment["payment_token"]})
    return {"action": "redirect", "redirect_url": payment["redirect_url"]}

def _pay_with_natcash(order: Dict[str, Any]) -> Dict[str, Any]:
    payment = natcash_client.create_payment(
        order["total"], order["id"], order.get("customer_phone"), f"Commande {order['order_number']}"
    )
    if payment.get("is_manual"):
        return {"action": "manual", **payment}
    orders_repo.update_order(order["id"], {"natcash_payment_id": payment.get("payment_id")})
    return {"action": "ussd", **payment}

def _pay_with_stripe(order: Dict[str, Any], customer_email: Optional[str]) -> Dict[str, Any]:
    base = FRONTEND_URL.rstrip("/")
    try:
        session = stripe_client.create_session(
            amount=order["total"],
            order_id=order["id"],
            order_number=order["order_number"],
            success_url=f"{base}{CHECKOUT_SUCCESS_PATH}?order_id={order['id']}&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base}{CHECKOUT_CANCEL_PATH}",
            customer_email=customer_email,
        )
    except GatewayError as e:
        _release(order, e.message)
        raise
    orders_repo.update_order(order["id"], {"stripe_session_id": session.get("id")})
    return {"action": "redirect", "redirect_url": session.get("url"), "session_id": session.get("id")}

def _pay_with_wallet(order: Dict[str, Any]) -> Dict[str, Any]:
    try:
        wallet = wallet_service.pay(order["user_id"], order["total"], order["id"], order["order_number"])
    except HTTPException as e:
        _release(order, str(e.detail))
        raise
    return {"action": "confirmation", "wallet_balance": float(wallet.get("balance") or 0)}

def _pay_with_union_pay(order: Dict[str, Any]) -> Dict[str, Any]:
    monthly = installment_amount(order["total"], INSTALLMENTS)
    orders_repo.update_order(order["id"], {"payment_plan": {"installments": INSTALLMENTS, "installment_amount": monthly}})
    return {"action": "confirmation", "installments": INSTALLMENTS, "installment_amount": monthly}

def checkout(user: Dict[str, Any], req: CheckoutRequest, background_tasks: Optional[BackgroundTasks] = None) -> Dict[str, Any]:
    """
    Crée la commande puis déclenche le paiement choisi.
    - 402 si le solde wallet ou la limite de crédit Union Pay est insuffisant (aucune commande créée)
    - GatewayError si la passerelle échoue: commande annulée (stock et points rendus), référence fournie
    - Le panier enregistré est vidé dès que le paiement est lancé
    - La confirmation WhatsApp part en tâche de fond (échecs journalisés seulement)
    """
    items = _resolve_items(user, req)
    quantities = cart_logic.aggregate_quantities(items)
    offers = offers_repo.get_offers_map(list(quantities.keys()))
    balance = loyalty_service.get_balance(user["id"]) if req.points_to_redeem else 0
    coupon = coupons_service.find_valid_coupon(req.coupon_code, user["id"]) if req.coupon_code else None
    order = orders_service.build_order(user, req, items, offers, points_balance=balance, coupon=coupon)

    if req.payment_method == "wallet":
        wallet_service.ensure_balance(wallet_service.get_or_create_wallet(user["id"]), order["total"])
    elif req.payment_method == "union_pay_3x":
        wallet_service.ensure_credit(wallet_service.get_or_create_wallet(user["id"]), order["total"])

    order = orders_service.create_order(order)

    method = req.payment_method
    if method == "moncash":
        result = _pay_with_moncash(order)
    elif method == "natcash":
        result = _pay_with_natcash(order)
    elif method == "stripe":
        result = _pay_with_stripe(order, user.get("email"))
    elif method == "wallet":
        result = _pay_with_wallet(order)
    elif method == "union_pay_3x":
        result = _pay_with_union_pay(order)
    else:
        result = {"action": "confirmation"}

    try:
        cart_service.clear(user["id"])
    except HTTPException:
        logger.warning("payments.checkout cart not cleared user_id=%s order_id=%s", user["id"], order["id"])
    if background_tasks is not None:
        background_tasks.add_task(notifications.send_order_confirmation, order, user)
    logger.info("payments.checkout order_id=%s method=%s action=%s", order["id"], method, result.get("action"))
    return {
        "order_id": order["id"],
        "order_number": order["order_number"],
        "status": order["status"],
        "total": order["total"],
        "currency": order["currency"],
        "payment_method": method,
        **result,
    }

def handle_stripe_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """checkout.session.completed -> commande payée (metadata.order_id)."""
    if (event or {}).get("type") != "checkout.session.completed":
        return {"status": "ignored"}
    session = ((event or {}).get("data") or {}).get("object") or {}
    order_id = (session.get("metadata") or {}).get("order_id") or session.get("client_reference_id")
    if not order_id:
        return {"status": "ignored"}
    if session.get("payment_status") not in (None, "paid"):
        return {"status": "ignored"}
    result = orders_service.mark_paid(order_id, provider="stripe", transaction_id=session.get("payment_intent"))
    return {"status": "already_processed" if result["already_processed"] else "ok", "order": result["order"]}

def handle_moncash_notification(order_id: str, transaction_id: Optional[str]) -> Dict[str, Any]:
    """
    Notification MonCash: vérifie la transaction auprès de MonCash avant de marquer payé.
    - 404 commande introuvable, 400 paiement non confirmé
    """
    order = orders_repo.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    if order.get("payment_status") == "paid":
        return {"status": "already_processed", "order": order}

    if transaction_id:
        payment = moncash_client.get_payment_by_transaction_id(transaction_id)
    else:
        payment = moncash_client.get_payment_by_order_id(order_id)
    if not moncash_client.is_successful(payment):
        raise HTTPException(status_code=400, detail="Paiement MonCash non confirmé")
    if payment.get("reference") and str(payment.get("reference")) != order_id:
        raise HTTPException(status_code=400, detail="Transaction ne correspondant pas à la commande")

    result = orders_service.mark_paid(
        order_id, provider="moncash", transaction_id=transaction_id or (payment or {}).get("transaction_id")
    )
    return {"status": "already_processed" if result["already_processed"] else "ok", "order": result["order"]}

def handle_natcash_notification(payload: Dict[str, Any]) -> Dict[str, Any]:
    order_id = payload.get("orderId")
    if not order_id:
        raise HTTPException(status_code=400, detail="orderId requis")
    status = payload.get("status")
    if status == "completed":
        result = orders_service.mark_paid(order_id, provider="natcash", transaction_id=payload.get("transactionId"))
        return {"status": "already_processed" if result["already_processed"] else "ok", "order": result["order"]}
    if status in ("failed", "expired"):
        orders_service.mark_failed(order_id, f"natcash {status}")
        return {"status": status}
    return {"status": "ignored"}

def refresh_payment_status(order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Revalide le paiement d'une commande en attente auprès de sa passerelle.
    Retour: {order_id, status, payment_status}
    """
    order = orders_service.get_order_for_user(order_id, user)
    if order.get("payment_status") != "paid":
        method = order.get("payment_method")
        paid, transaction_id = False, None
        if method == "moncash":
            payment = moncash_client.get_payment_by_order_id(order_id)
            paid = moncash_client.is_successful(payment)
            transaction_id = (payment or {}).get("transaction_id")
        elif method == "natcash" and order.get("natcash_payment_id"):
            status = natcash_client.get_payment_status(order["natcash_payment_id"])
            paid = status.get("status") == "completed"
            transaction_id = status.get("transaction_id")
        elif method == "stripe" and order.get("stripe_session_id"):
            session = stripe_client.get_session(order["stripe_session_id"])
            paid = session.get("payment_status") == "paid"
            transaction_id = session.get("payment_intent")
        if paid:
            order = orders_service.mark_paid(order_id, provider=method, transaction_id=transaction_id)["order"]
    return {"order_id": order_id, "status": order.get("status"), "payment_status": order.get("payment_status")}
