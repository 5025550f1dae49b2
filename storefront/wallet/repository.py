"""
Accès aux données portefeuille: tables 'wallets' et 'transactions'.
"""
from typing import Any, Dict, List, Optional
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_wallet(user_id: str) -> Optional[dict]:
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("wallets")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("wallet.repository.get_wallet failed user_id=%s", user_id)
        return None

def create_wallet(data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table("wallets").insert(data).execute()
        rows = res.data or []
        return rows[0] if rows else data
    except Exception:
        logger.exception("wallet.repository.create_wallet failed user_id=%s", data.get("user_id"))
        return None

def update_balance(user_id: str, expected_balance: float, new_balance: float) -> bool:
    """
    Écrit le nouveau solde seulement si le solde lu n'a pas changé entre-temps.
    Retour False si aucune ligne n'a été modifiée ou en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("wallets")
            .update({"balance": new_balance})
            .eq("user_id", user_id)
            .eq("balance", expected_balance)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("wallet.repository.update_balance failed user_id=%s", user_id)
        return False

def insert_transaction(data: Dict[str, Any]) -> bool:
    try:
        supabase_client.get_service_supabase().table("transactions").insert(data).execute()
        return True
    except Exception:
        logger.exception("wallet.repository.insert_transaction failed user_id=%s", data.get("user_id"))
        return False

def list_transactions(user_id: str, limit: int = 10) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("transactions")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("wallet.repository.list_transactions failed user_id=%s", user_id)
        return []
