"""
Accès aux données du catalogue (table 'offers').
"""
from typing import Dict, Any, Iterable, List, Optional
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def list_offers(vertical: Optional[str] = None, limit: int = 50) -> List[dict]:
    """Offres actives, éventuellement filtrées par verticale, les plus récentes d'abord."""
    try:
        query = (
            supabase_client.get_supabase()
            .table("offers")
            .select("*")
            .eq("is_active", True)
        )
        if vertical:
            query = query.eq("vertical", vertical)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("offers.repository.list_offers failed vertical=%s", vertical)
        return []

def get_offer(offer_id: str) -> Optional[dict]:
    if not offer_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("offers")
            .select("*")
            .eq("id", offer_id)
            .single()
            .execute()
        )
        return res.data or None
    except Exception:
        logger.exception("offers.repository.get_offer failed id=%s", offer_id)
        return None

def fetch_offers_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les offres par leurs IDs.
    - Retourne [] si ids vide ou en cas d'erreur.
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("offers")
            .select("*")
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("offers.repository.fetch_offers_by_ids failed ids=%s", ids)
        return []

def get_offers_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Retourne un dict {id: offre} à partir d'une liste d'IDs."""
    offers = fetch_offers_by_ids(list(ids))
    return {str(o.get("id")): o for o in offers}

def adjust_stock(offer_id: str, delta: int) -> bool:
    """Ajuste le stock d'une offre physique de delta (lecture puis écriture, sans verrou)."""
    try:
        client = supabase_client.get_service_supabase()
        res = client.table("offers").select("stock").eq("id", offer_id).single().execute()
        current = int((res.data or {}).get("stock") or 0)
        client.table("offers").update({"stock": max(current + delta, 0)}).eq("id", offer_id).execute()
        return True
    except Exception:
        logger.exception("offers.repository.adjust_stock failed id=%s delta=%s", offer_id, delta)
        return False
