"""
Accès aux données fidélité: comptes (table 'loyalty_accounts') et mouvements
de points (table 'points_ledger', clé d'idempotence unique).
"""
from typing import Any, Dict, Optional
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_account(user_id: str) -> Optional[dict]:
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("loyalty_accounts")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("loyalty.repository.get_account failed user_id=%s", user_id)
        return None

def save_account(account: Dict[str, Any]) -> bool:
    try:
        supabase_client.get_service_supabase().table("loyalty_accounts").upsert(account, on_conflict="user_id").execute()
        return True
    except Exception:
        logger.exception("loyalty.repository.save_account failed user_id=%s", account.get("user_id"))
        return False

def find_ledger_entry(idempotency_key: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("points_ledger")
            .select("*")
            .eq("idempotency_key", idempotency_key)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("loyalty.repository.find_ledger_entry failed key=%s", idempotency_key)
        return None

def insert_ledger_entry(entry: Dict[str, Any]) -> bool:
    try:
        supabase_client.get_service_supabase().table("points_ledger").insert(entry).execute()
        return True
    except Exception:
        logger.exception("loyalty.repository.insert_ledger_entry failed key=%s", entry.get("idempotency_key"))
        return False

def update_ledger_status(idempotency_key: str, status: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("points_ledger")
            .update({"status": status})
            .eq("idempotency_key", idempotency_key)
            .execute()
        )
        return True
    except Exception:
        logger.exception("loyalty.repository.update_ledger_status failed key=%s", idempotency_key)
        return False
