"""
Logique panier pure (pas de DB, pas de passerelle).
Un panier est une liste de lignes [{"id": "<offer_id>", "quantity": <int>}];
les prix ne sont jamais lus depuis le client.
"""
from typing import Any, Dict, List
from fastapi import HTTPException

from storefront.config import MAX_ITEM_QUANTITY
from storefront.offers.service import is_active, is_physical

# module storefront.cart.logic
def aggregate_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Agrège un panier brut [{id, quantity}, ...] en {offer_id: total_quantity}.
    - Ignore les lignes invalides (id vide, quantity <= 0).
    - Soulève HTTPException(400) si aucune ligne valide n'est présente.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        offer_id = str(it.get("id") or "").strip()
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not offer_id or qty <= 0:
            continue
        quantities[offer_id] = quantities.get(offer_id, 0) + qty
    if not quantities:
        raise HTTPException(status_code=400, detail="Panier invalide")
    return quantities

def add_item(items: List[Dict[str, Any]], offer_id: str, quantity: int = 1) -> List[Dict[str, Any]]:
    """Ajoute une offre; si la ligne existe déjà, les quantités sont cumulées (plafonnées)."""
    if quantity < 1:
        raise HTTPException(status_code=400, detail="Quantité invalide")
    updated = [dict(it) for it in items or []]
    for line in updated:
        if line.get("id") == offer_id:
            line["quantity"] = min(int(line.get("quantity") or 0) + quantity, MAX_ITEM_QUANTITY)
            return updated
    updated.append({"id": offer_id, "quantity": min(quantity, MAX_ITEM_QUANTITY)})
    return updated

def update_quantity(items: List[Dict[str, Any]], offer_id: str, quantity: int) -> List[Dict[str, Any]]:
    """Fixe la quantité d'une ligne. Une quantité < 1 ou une ligne inconnue laisse le panier intact."""
    updated = [dict(it) for it in items or []]
    if quantity < 1:
        return updated
    for line in updated:
        if line.get("id") == offer_id:
            line["quantity"] = min(quantity, MAX_ITEM_QUANTITY)
    return updated

def remove_item(items: List[Dict[str, Any]], offer_id: str) -> List[Dict[str, Any]]:
    return [dict(it) for it in items or [] if it.get("id") != offer_id]

def clear() -> List[Dict[str, Any]]:
    return []

def validate_cart(items: List[Dict[str, Any]], offers_by_id: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Vérifie le panier contre le catalogue.
    Retour: {"valid": bool, "issues": [{"offer_id", "code", "message", ...}]}
    Codes: not_found, inactive, insufficient_stock (avec available_stock).
    """
    issues: List[Dict[str, Any]] = []
    for offer_id, qty in aggregate_quantities(items).items():
        offer = offers_by_id.get(offer_id)
        if not offer:
            issues.append({"offer_id": offer_id, "code": "not_found", "message": "Produit introuvable"})
            continue
        if not is_active(offer):
            issues.append({"offer_id": offer_id, "code": "inactive", "message": f"{offer.get('title') or 'Produit'} n'est plus disponible"})
            continue
        stock = offer.get("stock")
        if is_physical(offer) and stock is not None and int(stock) < qty:
            issues.append({
                "offer_id": offer_id,
                "code": "insufficient_stock",
                "message": f"Stock insuffisant pour {offer.get('title') or 'ce produit'}",
                "available_stock": int(stock),
            })
    return {"valid": not issues, "issues": issues}
