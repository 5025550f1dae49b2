"""Cas d'usage coupons.
Rôles:
- Retrouver un coupon actif et vérifier dates, limites globales et par utilisateur.
- Vérifier le minimum d'achat une fois le sous-total connu.
- Enregistrer l'utilisation à la création de la commande et la rendre à l'annulation.
Le calcul de la remise reste dans pricing.service.coupon_discount.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
import logging
from fastapi import HTTPException

from storefront.coupons import repository

logger = logging.getLogger(__name__)

def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

def find_valid_coupon(code: str, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Coupon utilisable par l'utilisateur.
    - 404 code inconnu ou inactif
    - 400 pas encore actif / expiré
    - 409 limite globale ou limite par utilisateur atteinte
    """
    coupon = repository.get_active_coupon((code or "").strip())
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon invalide ou expiré")
    now = now or datetime.now(timezone.utc)
    start, end = _parse_date(coupon.get("start_date")), _parse_date(coupon.get("end_date"))
    if start and now < start:
        raise HTTPException(status_code=400, detail="Ce coupon n'est pas encore actif")
    if end and now > end:
        raise HTTPException(status_code=400, detail="Ce coupon a expiré")

    usage_limit = int(coupon.get("usage_limit") or 0)
    if usage_limit and int(coupon.get("usage_count") or 0) >= usage_limit:
        raise HTTPException(status_code=409, detail="Ce coupon a atteint sa limite d'utilisation")
    per_user = int(coupon.get("per_user_limit") or 0)
    if per_user and repository.count_user_usage(str(coupon["id"]), user_id) >= per_user:
        raise HTTPException(status_code=409, detail="Vous avez déjà utilisé ce coupon")
    return coupon

def ensure_minimum(coupon: Dict[str, Any], subtotal: Decimal) -> None:
    minimum = coupon.get("min_purchase")
    if minimum and subtotal < Decimal(str(minimum)):
        raise HTTPException(status_code=400, detail=f"Minimum d'achat requis: {minimum} HTG")

def record_usage(order: Dict[str, Any]) -> None:
    coupon_id = order.get("coupon_id")
    if not coupon_id:
        return
    if repository.insert_usage({
        "coupon_id": coupon_id,
        "order_id": order["id"],
        "user_id": order["user_id"],
        "discount": order.get("coupon_discount") or 0,
        "used_at": datetime.now(timezone.utc).isoformat(),
    }):
        repository.adjust_usage_count(coupon_id, 1)
        logger.info("coupons.used coupon_id=%s order_id=%s", coupon_id, order["id"])

def release_usage(order: Dict[str, Any]) -> None:
    """Commande annulée ou remboursée: le coupon redevient disponible."""
    coupon_id = order.get("coupon_id")
    if coupon_id and repository.delete_usage(order["id"]):
        repository.adjust_usage_count(coupon_id, -1)
        logger.info("coupons.released coupon_id=%s order_id=%s", coupon_id, order["id"])
