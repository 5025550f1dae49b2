from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from storefront.utils.security import require_user
from storefront.cart import service as cart_service
from storefront.coupons import service as coupons_service
from storefront.loyalty import service as loyalty_service
from storefront.orders.models import ShippingMethod
from storefront.pricing.shipping import shipping_quotes

router = APIRouter(prefix="/api/v1", tags=["Pricing API"])

class PreviewItem(BaseModel):
    id: str
    quantity: int = Field(ge=1)

class CheckoutPreviewRequest(BaseModel):
    items: Optional[List[PreviewItem]] = None
    shipping_method: ShippingMethod = "delivery"
    warranty: bool = False
    points_to_redeem: int = Field(default=0, ge=0)
    coupon_code: Optional[str] = Field(default=None, max_length=40)

@router.post("/checkout/preview")
def checkout_preview(req: CheckoutPreviewRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Récapitulatif avant paiement: sous-total, taxe, livraison, garantie, remises, total.
    - items absent: utilise le panier enregistré
    - shipping_method=pickup: livraison à 0, comme au checkout
    - points_to_redeem: plafonné par le solde et par la règle de remise maximale
    - coupon_code: 404/400/409 si le coupon n'est pas utilisable
    """
    items = [i.model_dump() for i in req.items] if req.items is not None else None
    balance = loyalty_service.get_balance(user["id"]) if req.points_to_redeem else 0
    coupon = coupons_service.find_valid_coupon(req.coupon_code, user["id"]) if req.coupon_code else None
    return cart_service.priced_cart(
        user,
        items,
        pickup=req.shipping_method == "pickup",
        warranty=req.warranty,
        points_requested=req.points_to_redeem,
        points_balance=balance,
        coupon=coupon,
    )

@router.get("/shipping/quotes")
def get_shipping_quotes(city: str = "", weight: float = Query(1, gt=0)):
    return {"quotes": shipping_quotes(city, weight)}
