"""
Accès aux données panier (table 'carts', un document par utilisateur).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_cart_items(user_id: str) -> List[Dict[str, Any]]:
    """Lignes [{id, quantity}] du panier; [] si absent ou en cas d'erreur."""
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("items")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return (rows[0].get("items") or []) if rows else []
    except Exception:
        logger.exception("cart.repository.get_cart_items failed user_id=%s", user_id)
        return []

def save_cart_items(user_id: str, items: List[Dict[str, Any]]) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("carts")
            .upsert(
                {"user_id": user_id, "items": items, "updated_at": datetime.now(timezone.utc).isoformat()},
                on_conflict="user_id",
            )
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.save_cart_items failed user_id=%s", user_id)
        return False
