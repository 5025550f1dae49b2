from typing import Any, Dict
from fastapi import APIRouter, Depends

from storefront.utils.security import require_user
from storefront.loyalty import service as loyalty_service

router = APIRouter(prefix="/api/v1/loyalty", tags=["Loyalty API"])

@router.get("")
def get_loyalty(user: Dict[str, Any] = Depends(require_user)):
    """Points, palier, progression vers le palier suivant et badges de l'utilisateur."""
    return loyalty_service.summary(user["id"])
