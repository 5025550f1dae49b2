"""Couche service des commandes.
Rôles:
- Construire une commande à partir du catalogue (prix DB uniquement) et la valider.
- Lire, lister, annuler une commande; marquer une commande payée (idempotent).
- Mettre à jour le statut (admin) et déclencher les effets de bord fidélité/wallet.
"""
import math
import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging
from fastapi import HTTPException

from storefront.config import DEFAULT_CURRENCY, MAX_ORDER_ITEMS, MAX_ORDER_TOTAL
from storefront.cart import logic as cart_logic
from storefront.offers import repository as offers_repo
from storefront.pricing import service as pricing
from storefront.loyalty import service as loyalty_service
from storefront.wallet import service as wallet_service
from storefront.coupons import service as coupons_service
from storefront.orders import repository
from storefront.orders.models import CANCELLABLE_STATUSES, CheckoutRequest

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out

def generate_order_number(now_ms: Optional[int] = None) -> str:
    """UD-<horodatage ms en base36>-<4 caractères aléatoires>."""
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"UD-{_base36(ms)}-{suffix}"

def generate_idempotency_key(user_id: str) -> str:
    return f"{user_id}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"

def initial_status(payment_method: str) -> str:
    return "paid" if payment_method == "wallet" else "pending_payment"

def _raise_for_issues(check: Dict[str, Any]) -> None:
    if check["valid"]:
        return
    issue = check["issues"][0]
    status = 404 if issue["code"] == "not_found" else 400
    raise HTTPException(status_code=status, detail=issue["message"])

def build_order(
    user: Dict[str, Any],
    req: CheckoutRequest,
    items: List[Dict[str, Any]],
    offers_by_id: Dict[str, Dict[str, Any]],
    points_balance: int = 0,
    coupon: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Construit le document commande (non persisté).
    - coupon: document validé par coupons.service.find_valid_coupon (400 sous le minimum d'achat)
    - 400/404 si une offre est introuvable, inactive ou en rupture
    - 400 si adresse manquante pour une livraison de biens physiques
    - 400 si le total sort de ]0, MAX_ORDER_TOTAL]
    """
    quantities = cart_logic.aggregate_quantities(items)
    if len(quantities) > MAX_ORDER_ITEMS:
        raise HTTPException(status_code=400, detail=f"Maximum {MAX_ORDER_ITEMS} articles par commande")
    _raise_for_issues(cart_logic.validate_cart(items, offers_by_id))

    lines = pricing.build_lines(quantities, offers_by_id)
    pickup = req.shipping_method == "pickup"
    totals = pricing.compute_totals(
        lines,
        is_union_plus=bool(user.get("is_union_plus")),
        pickup=pickup,
        warranty=req.warranty,
        points_requested=req.points_to_redeem,
        points_balance=points_balance,
        coupon=coupon,
    )
    if coupon:
        coupons_service.ensure_minimum(coupon, totals["subtotal"])
    if totals["has_physical"] and not pickup and not req.shipping_address:
        raise HTTPException(status_code=400, detail="Adresse de livraison requise")
    total = totals["total"]
    if total <= 0:
        raise HTTPException(status_code=400, detail="Montant de commande invalide")
    if total > Decimal(str(MAX_ORDER_TOTAL)):
        raise HTTPException(status_code=400, detail="Montant de commande trop élevé")

    order_items = pricing.serialize_lines(lines)
    if totals["order_bump"] > 0:
        bump = float(totals["order_bump"])
        order_items.append({**pricing.WARRANTY_ITEM, "unit_price": bump, "quantity": 1, "line_total": bump, "physical": False})

    status = initial_status(req.payment_method)
    now = _now_iso()
    return {
        "id": str(uuid4()),
        "order_number": generate_order_number(),
        "user_id": user["id"],
        "customer_email": user.get("email"),
        "items": order_items,
        "subtotal": float(totals["subtotal"]),
        "tax": float(totals["tax"]),
        "shipping": float(totals["shipping"]),
        "order_bump": float(totals["order_bump"]),
        "points_applied": totals["points_applied"],
        "points_discount": float(totals["points_discount"]),
        "coupon_id": str(coupon["id"]) if coupon else None,
        "coupon_code": totals["coupon_code"],
        "coupon_discount": float(totals["coupon_discount"]),
        "total": float(total),
        "points_earned": math.floor((total + totals["points_discount"]) / 100),
        "currency": DEFAULT_CURRENCY,
        "payment_method": req.payment_method,
        "payment_status": "paid" if status == "paid" else "pending",
        "status": status,
        "order_type": "mixed" if totals["has_physical"] else "digital",
        "shipping_method": req.shipping_method,
        "shipping_address": req.shipping_address.model_dump() if req.shipping_address else None,
        "customer_phone": req.customer_phone or (req.shipping_address.phone if req.shipping_address else user.get("phone")),
        "idempotency_key": generate_idempotency_key(user["id"]),
        "points_awarded": False,
        "created_at": now,
        "updated_at": now,
    }

def create_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """Persiste la commande, réserve les points utilisés et ajuste le stock physique."""
    saved = repository.insert_order(order)
    if not saved:
        raise HTTPException(status_code=503, detail="Impossible de créer la commande, veuillez réessayer")
    if order.get("points_applied"):
        if not loyalty_service.redeem(order["user_id"], int(order["points_applied"]), order["id"]):
            logger.warning("orders.create points redemption failed order_id=%s", order["id"])
    coupons_service.record_usage(order)
    for line in order.get("items") or []:
        if line.get("physical"):
            offers_repo.adjust_stock(line["id"], -int(line["quantity"]))
    logger.info(
        "orders.create order_id=%s number=%s method=%s total=%s",
        order["id"], order["order_number"], order["payment_method"], order["total"],
    )
    return {**order, **saved}

def get_order_for_user(order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    order = repository.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    if order.get("user_id") != user.get("id") and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Commande appartenant à un autre utilisateur")
    return order

def list_my_orders(user_id: str, page: int = 1, limit: int = 10, status: Optional[str] = None) -> Dict[str, Any]:
    rows, total = repository.list_user_orders(user_id, page=page, limit=limit, status=status)
    return {
        "orders": rows,
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }

def _restock(order: Dict[str, Any]) -> None:
    for line in order.get("items") or []:
        if line.get("physical"):
            offers_repo.adjust_stock(line["id"], int(line["quantity"]))

def cancel_order(order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Annulation client: seulement depuis pending_payment ou confirmed (409 sinon)."""
    order = get_order_for_user(order_id, user)
    if order.get("status") not in CANCELLABLE_STATUSES:
        raise HTTPException(status_code=409, detail="Cette commande ne peut plus être annulée")
    updated = repository.update_order(order_id, {"status": "cancelled", "cancelled_at": _now_iso(), "updated_at": _now_iso()})
    if not updated:
        raise HTTPException(status_code=503, detail="Impossible d'annuler la commande, veuillez réessayer")
    loyalty_service.cancel_redemption(order["user_id"], order_id)
    coupons_service.release_usage(order)
    _restock(order)
    logger.info("orders.cancel order_id=%s user_id=%s", order_id, user.get("id"))
    return updated

def mark_failed(order_id: str, reason: str) -> None:
    repository.update_order(order_id, {"payment_status": "failed", "payment_error": reason, "updated_at": _now_iso()})

def mark_paid(order_id: str, *, provider: str, transaction_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Marque la commande payée.
    Retour: {"order": ..., "already_processed": bool}; 404 si la commande n'existe pas.
    """
    order = repository.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    if order.get("payment_status") == "paid":
        return {"order": order, "already_processed": True}
    data = {
        "status": "paid" if order.get("status") == "pending_payment" else order.get("status"),
        "payment_status": "paid",
        "payment_provider": provider,
        "transaction_id": transaction_id,
        "paid_at": _now_iso(),
        "updated_at": _now_iso(),
    }
    updated = repository.update_order(order_id, data)
    if not updated:
        raise HTTPException(status_code=503, detail="Mise à jour de la commande impossible")
    logger.info("orders.paid order_id=%s provider=%s transaction_id=%s", order_id, provider, transaction_id)
    return {"order": {**order, **updated}, "already_processed": False}

def update_status(order_id: str, status: str, note: Optional[str] = None) -> Dict[str, Any]:
    """
    Changement de statut (admin).
    - delivered: crédite les points de fidélité une seule fois et confirme les points utilisés
    - cancelled/refunded: rend les points utilisés, le coupon et le stock; refunded rembourse un paiement wallet
    """
    order = repository.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Commande introuvable")
    previous = order.get("status")
    if previous == status:
        return order
    if previous in ("cancelled", "refunded"):
        raise HTTPException(status_code=409, detail="Commande déjà clôturée")

    data: Dict[str, Any] = {"status": status, "updated_at": _now_iso()}
    if note:
        data["status_note"] = note

    if status == "delivered":
        data["delivered_at"] = _now_iso()
        if not order.get("points_awarded"):
            # Points calculés sur le total avant remise fidélité
            base_total = float(order.get("total") or 0) + float(order.get("points_discount") or 0)
            loyalty_service.accrue_order_points(order["user_id"], order_id, base_total)
            data["points_awarded"] = True
        loyalty_service.confirm_redemption(order_id)
    elif status in ("cancelled", "refunded"):
        loyalty_service.cancel_redemption(order["user_id"], order_id)
        coupons_service.release_usage(order)
        _restock(order)
        if status == "refunded" and order.get("payment_method") == "wallet" and order.get("payment_status") == "paid":
            wallet_service.refund(order["user_id"], float(order.get("total") or 0), order_id)
            data["payment_status"] = "refunded"

    updated = repository.update_order(order_id, data)
    if not updated:
        raise HTTPException(status_code=503, detail="Mise à jour de la commande impossible")
    logger.info("orders.status order_id=%s %s -> %s", order_id, previous, status)
    return updated
