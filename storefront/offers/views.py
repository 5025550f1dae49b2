from typing import Optional
from fastapi import APIRouter, HTTPException, Query

from storefront.offers import repository as offers_repo
from storefront.offers.service import VERTICALS, is_active, to_public

router = APIRouter(prefix="/api/v1/offers", tags=["Offers API"])

@router.get("")
def list_offers(vertical: Optional[str] = None, limit: int = Query(50, ge=1, le=200)):
    """Catalogue public, filtrable par verticale (physical, digital, service, ...)."""
    if vertical and vertical not in VERTICALS:
        raise HTTPException(status_code=400, detail="Verticale inconnue")
    offers = offers_repo.list_offers(vertical=vertical, limit=limit)
    return {"offers": [to_public(o) for o in offers]}

@router.get("/{offer_id}")
def get_offer(offer_id: str):
    offer = offers_repo.get_offer(offer_id)
    if not offer or not is_active(offer):
        raise HTTPException(status_code=404, detail="Offre non trouvée")
    return to_public(offer)
