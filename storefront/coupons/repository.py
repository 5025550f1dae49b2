"""
Accès aux coupons (tables 'coupons' et 'coupon_usage').
"""
from typing import Any, Dict, Optional
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_active_coupon(code: str) -> Optional[dict]:
    """Coupon actif par code (codes stockés en majuscules)."""
    if not code:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("coupons")
            .select("*")
            .eq("code", code.upper())
            .eq("active", True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("coupons.repository.get_active_coupon failed code=%s", code)
        return None

def count_user_usage(coupon_id: str, user_id: str) -> int:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("coupon_usage")
            .select("id")
            .eq("coupon_id", coupon_id)
            .eq("user_id", user_id)
            .execute()
        )
        return len(res.data or [])
    except Exception:
        logger.exception("coupons.repository.count_user_usage failed coupon_id=%s user_id=%s", coupon_id, user_id)
        return 0

def insert_usage(data: Dict[str, Any]) -> bool:
    try:
        supabase_client.get_service_supabase().table("coupon_usage").insert(data).execute()
        return True
    except Exception:
        logger.exception("coupons.repository.insert_usage failed order_id=%s", data.get("order_id"))
        return False

def delete_usage(order_id: str) -> bool:
    """Supprime l'utilisation liée à une commande. False si aucune ligne."""
    try:
        res = supabase_client.get_service_supabase().table("coupon_usage").delete().eq("order_id", order_id).execute()
        return bool(res.data)
    except Exception:
        logger.exception("coupons.repository.delete_usage failed order_id=%s", order_id)
        return False

def adjust_usage_count(coupon_id: str, delta: int) -> bool:
    """Compteur global d'utilisation (lecture puis écriture, sans verrou)."""
    try:
        client = supabase_client.get_service_supabase()
        res = client.table("coupons").select("usage_count").eq("id", coupon_id).single().execute()
        current = int((res.data or {}).get("usage_count") or 0)
        client.table("coupons").update({"usage_count": max(current + delta, 0)}).eq("id", coupon_id).execute()
        return True
    except Exception:
        logger.exception("coupons.repository.adjust_usage_count failed coupon_id=%s", coupon_id)
        return False
