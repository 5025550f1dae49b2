"""Accès Supabase pour l'authentification et le profil applicatif (table users).
Les lectures de profil « catchent » les erreurs et renvoient None pour ne pas casser l'UX.
"""
from typing import Optional, Dict, Any
import logging
from storefront.infra.supabase_client import get_supabase, get_service_supabase

logger = logging.getLogger(__name__)

# --- Auth (supabase.auth.*) ---

def auth_sign_in_password(email: str, password: str):
    """Wrapper Supabase Auth: connexion par email/mot de passe (GoTrue)."""
    client = get_supabase()
    return client.auth.sign_in_with_password({"email": email, "password": password})

def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l'utilisateur depuis supabase.auth.get_user(access_token)."""
    res = get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "phone": getattr(user, "phone", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return user or {}

# --- Table users (profil applicatif) ---

def get_user_profile(user_id: str) -> Optional[dict]:
    """Profil applicatif (rôle, téléphone, abonnement Union Plus) ou None."""
    if not user_id:
        return None
    try:
        res = get_service_supabase().table("users").select("*").eq("id", user_id).single().execute()
        return res.data or None
    except Exception:
        logger.exception("auth.repository.get_user_profile failed user_id=%s", user_id)
        return None
