"""
Journal des notifications envoyées (table 'notifications').
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def log_notification(data: Dict[str, Any]) -> bool:
    try:
        supabase_client.get_service_supabase().table("notifications").insert(data).execute()
        return True
    except Exception:
        logger.exception("notifications.repository.log_notification failed to=%s", data.get("to"))
        return False

def count_recent(user_id: str, channel: str = "whatsapp", seconds: int = 60) -> int:
    """Nombre de messages envoyés pour l'utilisateur sur la fenêtre glissante."""
    since = (datetime.now(timezone.utc) - timedelta(seconds=seconds)).isoformat()
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("notifications")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("type", channel)
            .gt("created_at", since)
            .execute()
        )
        return int(res.count or 0)
    except Exception:
        logger.exception("notifications.repository.count_recent failed user_id=%s", user_id)
        return 0
