from typing import Dict, Any
from storefront.auth.models import AuthResponse, make_auth_response, handle_exception, determine_role
from .repository import (
    auth_sign_in_password as sign_in_password,
    get_user_from_access_token as _repo_get_user_from_token,
    get_user_profile,
)

def login(email: str, password: str) -> AuthResponse:
    """Connexion:
    - Délègue à supabase.auth.sign_in_with_password via repository
    - Normalise la réponse en AuthResponse
    """
    try:
        email = (email or "").strip()
        res = sign_in_password(email, password)
        return make_auth_response(res, fallback_error="Identifiants invalides ou email non confirmé")
    except Exception as e:
        return handle_exception("sign_in", e)

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, phone, full_name, metadata, role, is_union_plus, token}
    - Le profil (table users) complète le rôle, le téléphone et l'abonnement Union Plus
    """
    raw = _repo_get_user_from_token(access_token)
    uid = raw.get("id")
    metadata = raw.get("user_metadata") or {}
    profile = get_user_profile(uid) if uid else None
    profile = profile or {}

    return {
        "id": uid,
        "email": raw.get("email"),
        "phone": profile.get("phone") or raw.get("phone") or metadata.get("phone"),
        "full_name": profile.get("full_name") or metadata.get("full_name"),
        "metadata": metadata,
        "role": determine_role(metadata, profile),
        "is_union_plus": bool(profile.get("is_union_plus") or metadata.get("is_union_plus")),
        "token": access_token,
    }
