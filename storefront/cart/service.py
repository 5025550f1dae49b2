"""Cas d'usage 'cart': persistance du panier et récapitulatif tarifé."""
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

from storefront.cart import logic
from storefront.cart import repository
from storefront.offers import repository as offers_repo
from storefront.offers.service import is_active
from storefront.pricing import service as pricing
from storefront.coupons import service as coupons_service

def get_items(user_id: str) -> List[Dict[str, Any]]:
    return repository.get_cart_items(user_id)

def _persist(user_id: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not repository.save_cart_items(user_id, items):
        raise HTTPException(status_code=503, detail="Impossible d'enregistrer le panier, réessayez")
    return items

def add_item(user_id: str, offer_id: str, quantity: int) -> List[Dict[str, Any]]:
    offer = offers_repo.get_offer(offer_id)
    if not offer or not is_active(offer):
        raise HTTPException(status_code=404, detail="Offre non trouvée")
    return _persist(user_id, logic.add_item(get_items(user_id), offer_id, quantity))

def update_quantity(user_id: str, offer_id: str, quantity: int) -> List[Dict[str, Any]]:
    return _persist(user_id, logic.update_quantity(get_items(user_id), offer_id, quantity))

def remove_item(user_id: str, offer_id: str) -> List[Dict[str, Any]]:
    return _persist(user_id, logic.remove_item(get_items(user_id), offer_id))

def clear(user_id: str) -> List[Dict[str, Any]]:
    return _persist(user_id, logic.clear())

def validate(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    quantities = logic.aggregate_quantities(items)
    offers = offers_repo.get_offers_map(list(quantities.keys()))
    return logic.validate_cart(items, offers)

def priced_cart(
    user: Dict[str, Any],
    items: Optional[List[Dict[str, Any]]] = None,
    *,
    pickup: bool = False,
    warranty: bool = False,
    points_requested: int = 0,
    points_balance: int = 0,
    coupon: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Panier tarifé depuis le catalogue: lignes, récapitulatif et problèmes éventuels.
    items=None lit le panier enregistré de l'utilisateur.
    - 400 si le sous-total n'atteint pas le minimum d'achat du coupon
    """
    items = get_items(user["id"]) if items is None else items
    if not items:
        empty = pricing.compute_totals([], is_union_plus=bool(user.get("is_union_plus")))
        return {"items": [], "summary": pricing.serialize_totals(empty), "valid": True, "issues": []}

    quantities = logic.aggregate_quantities(items)
    offers = offers_repo.get_offers_map(list(quantities.keys()))
    check = logic.validate_cart(items, offers)
    usable = {oid: o for oid, o in offers.items() if is_active(o)}
    lines = pricing.build_lines(quantities, usable)
    totals = pricing.compute_totals(
        lines,
        is_union_plus=bool(user.get("is_union_plus")),
        pickup=pickup,
        warranty=warranty,
        points_requested=points_requested,
        points_balance=points_balance,
        coupon=coupon,
    )
    if coupon:
        coupons_service.ensure_minimum(coupon, totals["subtotal"])
    return {
        "items": pricing.serialize_lines(lines),
        "summary": pricing.serialize_totals(totals),
        "valid": check["valid"],
        "issues": check["issues"],
    }
