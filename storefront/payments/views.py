import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.utils.security import require_user
from storefront.utils.rate_limit import optional_rate_limit
from storefront.orders.models import CheckoutRequest
from storefront.payments import service as payments_service
from storefront.gateways import natcash_client, stripe_client
from storefront.notifications import service as notifications

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout(req: CheckoutRequest, background_tasks: BackgroundTasks, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée la commande et lance le paiement pour l'utilisateur authentifié.
    - Entrée JSON: { "items"?: [...], "payment_method": "...", "shipping_address"?: {...}, ... }
    - Sécurité: require_user + rate limit (10 req / 60s)
    - Réponse: {order_id, order_number, total, action, ...} (voir payments_service.checkout)
    - Erreurs: 400 panier/commande invalide, 402 solde/crédit, 502/503 passerelle
    """
    return payments_service.checkout(user, req, background_tasks)

@router.post("/webhook/stripe", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: checkout.session.completed marque la commande payée.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET
    - Erreurs: 400 si signature/payload invalide
    """
    try:
        event = await stripe_client.parse_event(request)
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    result = payments_service.handle_stripe_event(event)
    logger.info("payments.webhook.stripe type=%s status=%s", (event or {}).get("type"), result["status"])
    return JSONResponse({"status": result["status"]})

@router.post("/webhook/moncash", include_in_schema=False)
async def webhook_moncash(request: Request, background_tasks: BackgroundTasks):
    """
    Notification MonCash: { "orderId": "...", "transactionId": "..." }.
    - 400 si orderId manquant ou transaction non confirmée, 404 si commande inconnue
    - Réponse: {"status": "ok"} ou {"status": "already_processed"}
    """
    try:
        body = await request.json()
    except ValueError:
        body = {}
    order_id = (body or {}).get("orderId")
    if not order_id:
        raise HTTPException(status_code=400, detail="orderId requis")
    result = payments_service.handle_moncash_notification(str(order_id), (body or {}).get("transactionId"))
    if result["status"] == "ok":
        background_tasks.add_task(notifications.send_payment_received, result["order"])
    logger.info("payments.webhook.moncash order_id=%s status=%s", order_id, result["status"])
    return {"status": result["status"], "order_id": order_id}

@router.post("/webhook/natcash", include_in_schema=False)
async def webhook_natcash(request: Request, background_tasks: BackgroundTasks):
    """
    Notification NatCash signée (en-tête X-Signature).
    - 401 si la signature est invalide
    - completed: commande payée; failed/expired: paiement en échec
    """
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Payload invalide")
    if not natcash_client.verify_webhook(body or {}, request.headers.get("X-Signature")):
        logger.warning("payments.webhook.natcash invalid signature")
        raise HTTPException(status_code=401, detail="Signature invalide")
    result = payments_service.handle_natcash_notification(body or {})
    if result["status"] == "ok":
        background_tasks.add_task(notifications.send_payment_received, result["order"])
    return {"status": result["status"]}

@router.get("/{order_id}/status")
def payment_status(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    """Revalide le paiement auprès de la passerelle (retour de redirection MonCash/Stripe)."""
    return payments_service.refresh_payment_status(order_id, user)
