from fastapi import APIRouter, HTTPException, Depends, Response
from pydantic import BaseModel, EmailStr
from typing import Dict, Any

from storefront.utils.security import require_user, set_session_cookie, clear_session_cookie
from storefront.utils.rate_limit import optional_rate_limit
from .service import login as svc_login

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_login(req: LoginRequest, response: Response):
    """Connexion (API JSON).
    - Délègue la vérification des identifiants au service (svc_login).
    - Pose le cookie de session (sb_access) et retourne {access_token, token_type, user}.
    """
    result = svc_login(req.email, req.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error or "Identifiants invalides")
    if result.access_token:
        set_session_cookie(response, result.access_token)
    return {"access_token": result.access_token, "token_type": "bearer", "user": result.user}

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Utilisateur courant, y compris le statut Union Plus utilisé pour la livraison."""
    return {
        "id": user.get("id"),
        "email": user.get("email"),
        "role": user.get("role"),
        "full_name": user.get("full_name"),
        "phone": user.get("phone"),
        "is_union_plus": bool(user.get("is_union_plus")),
    }

@api_router.post("/logout")
def api_logout(response: Response):
    """Supprime le cookie de session (sb_access)."""
    clear_session_cookie(response)
    return {"message": "Déconnexion réussie"}
