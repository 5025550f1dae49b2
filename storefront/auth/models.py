from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

class AuthResponse:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        session: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        self.success = success
        self.user = user
        self.session = session
        self.error = error

    @property
    def access_token(self):
        return (self.session or {}).get("access_token")

def determine_role(metadata: Dict[str, Any] | None, profile: Dict[str, Any] | None = None) -> str:
    """Rôle applicatif: 'admin' si présent dans user_metadata ou le profil, sinon 'user'."""
    for source in (metadata or {}, profile or {}):
        if str(source.get("role", "")).lower() == "admin":
            return "admin"
    return "user"

def build_user_dict(user) -> Dict[str, Any]:
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "metadata": metadata,
        "role": determine_role(metadata),
    }

def make_auth_response(res, fallback_error: str = "Identifiants invalides") -> AuthResponse:
    sess = getattr(res, "session", None)
    user = getattr(res, "user", None)
    if not sess or not getattr(sess, "access_token", None):
        return AuthResponse(False, error=fallback_error)
    session = {
        "access_token": getattr(sess, "access_token", None),
        "refresh_token": getattr(sess, "refresh_token", None),
    }
    return AuthResponse(True, user=build_user_dict(user), session=session)

def handle_exception(action: str, e: Exception) -> AuthResponse:
    logger.exception("Erreur %s", action)
    return AuthResponse(False, error=f"Erreur {action}: {str(e)}")
