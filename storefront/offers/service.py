"""Règles du catalogue partagées par le panier, la tarification et les commandes."""
from typing import Any, Dict

VERTICALS = ("physical", "digital", "service", "rental", "real_estate", "travel", "education")

def is_physical(offer: Dict[str, Any]) -> bool:
    """Une offre sans type est traitée comme un bien physique (livrable)."""
    kind = (offer or {}).get("type")
    return not kind or kind == "physical"

def is_active(offer: Dict[str, Any]) -> bool:
    return (offer or {}).get("is_active", True) is not False

def price_from_offer(offer: Dict[str, Any]) -> float:
    """Prix d'une offre en float; 0.0 si absent ou illisible."""
    try:
        return float((offer or {}).get("price") or 0)
    except (TypeError, ValueError):
        return 0.0

def to_public(offer: Dict[str, Any]) -> Dict[str, Any]:
    """Projection publique d'une offre pour le front."""
    return {
        "id": str(offer.get("id") or ""),
        "title": offer.get("title") or "",
        "price": price_from_offer(offer),
        "vertical": offer.get("vertical"),
        "type": offer.get("type") or "physical",
        "stock": offer.get("stock"),
        "images": offer.get("images") or [],
        "vendor_id": offer.get("vendor_id"),
    }
