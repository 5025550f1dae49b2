from typing import Any, Dict, List
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.config import MAX_ITEM_QUANTITY
from storefront.utils.security import require_user
from storefront.cart import service as cart_service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])

class AddItemRequest(BaseModel):
    id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1, le=MAX_ITEM_QUANTITY)

class UpdateQuantityRequest(BaseModel):
    quantity: int

class CartItem(BaseModel):
    id: str
    quantity: int

class ValidateCartRequest(BaseModel):
    items: List[CartItem] = Field(default_factory=list)

@router.get("")
def get_cart(user: Dict[str, Any] = Depends(require_user)):
    """Panier enregistré, tarifé avec les prix du catalogue."""
    return cart_service.priced_cart(user)

@router.post("/items")
def add_item(req: AddItemRequest, user: Dict[str, Any] = Depends(require_user)):
    cart_service.add_item(user["id"], req.id, req.quantity)
    return cart_service.priced_cart(user)

@router.patch("/items/{offer_id}")
def update_item(offer_id: str, req: UpdateQuantityRequest, user: Dict[str, Any] = Depends(require_user)):
    """Quantité < 1 ignorée (utiliser DELETE pour retirer la ligne)."""
    cart_service.update_quantity(user["id"], offer_id, req.quantity)
    return cart_service.priced_cart(user)

@router.delete("/items/{offer_id}")
def remove_item(offer_id: str, user: Dict[str, Any] = Depends(require_user)):
    cart_service.remove_item(user["id"], offer_id)
    return cart_service.priced_cart(user)

@router.delete("")
def clear_cart(user: Dict[str, Any] = Depends(require_user)):
    cart_service.clear(user["id"])
    return cart_service.priced_cart(user, [])

@router.post("/validate")
def validate_cart(req: ValidateCartRequest, user: Dict[str, Any] = Depends(require_user)):
    """Vérifie disponibilité et stock; sans corps, valide le panier enregistré."""
    items = [i.model_dump() for i in req.items] or cart_service.get_items(user["id"])
    return cart_service.validate(items)
