"""Schémas des requêtes commande/checkout (validation de forme avant toute écriture)."""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from storefront.config import MAX_ORDER_ITEMS, MAX_ITEM_QUANTITY

PaymentMethod = Literal["moncash", "natcash", "stripe", "wallet", "union_pay_3x", "cash_on_delivery"]
ShippingMethod = Literal["delivery", "pickup"]

OrderStatus = Literal[
    "pending_payment", "paid", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded"
]
CANCELLABLE_STATUSES = ("pending_payment", "confirmed")

class OrderItemIn(BaseModel):
    id: str = Field(min_length=1)
    quantity: int = Field(ge=1, le=MAX_ITEM_QUANTITY)

class ShippingAddress(BaseModel):
    full_name: str = Field(min_length=2, max_length=120)
    phone: str = Field(min_length=8, max_length=20)
    address: str = Field(min_length=3, max_length=250)
    city: str = Field(min_length=2, max_length=80)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("phone")
    def phone_digits(cls, v: str) -> str:
        digits = "".join(c for c in v if c.isdigit())
        if len(digits) < 8:
            raise ValueError("Numéro de téléphone invalide")
        return v.strip()

class CheckoutRequest(BaseModel):
    """Corps du checkout. items absent: le panier enregistré est utilisé."""
    items: Optional[List[OrderItemIn]] = Field(default=None, max_length=MAX_ORDER_ITEMS)
    payment_method: PaymentMethod
    shipping_method: ShippingMethod = "delivery"
    shipping_address: Optional[ShippingAddress] = None
    warranty: bool = False
    points_to_redeem: int = Field(default=0, ge=0)
    coupon_code: Optional[str] = Field(default=None, max_length=40)
    customer_phone: Optional[str] = None

class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(default=None, max_length=500)
