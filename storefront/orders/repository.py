"""
Accès aux données commandes (table 'orders').
Les erreurs Supabase sont journalisées et converties en valeurs neutres.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def insert_order(order: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(order).execute()
        rows = res.data or []
        return rows[0] if rows else order
    except Exception:
        logger.exception("orders.repository.insert_order failed order_number=%s", order.get("order_number"))
        return None

def get_order(order_id: str) -> Optional[dict]:
    if not order_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("orders.repository.get_order failed id=%s", order_id)
        return None

def update_order(order_id: str, data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update(data)
            .eq("id", order_id)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("orders.repository.update_order failed id=%s data=%s", order_id, data)
        return None

def list_user_orders(user_id: str, page: int = 1, limit: int = 10, status: Optional[str] = None) -> Tuple[List[dict], int]:
    """Commandes de l'utilisateur, plus récentes d'abord. Retour: (page de lignes, total)."""
    start = (page - 1) * limit
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*", count="exact")
            .eq("user_id", user_id)
        )
        if status:
            query = query.eq("status", status)
        res = query.order("created_at", desc=True).range(start, start + limit - 1).execute()
        return res.data or [], int(res.count or 0)
    except Exception:
        logger.exception("orders.repository.list_user_orders failed user_id=%s", user_id)
        return [], 0

def list_orders(limit: int = 100, status: Optional[str] = None) -> List[dict]:
    """Toutes les commandes (admin)."""
    try:
        query = supabase_client.get_service_supabase().table("orders").select("*")
        if status:
            query = query.eq("status", status)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_orders failed status=%s", status)
        return []
