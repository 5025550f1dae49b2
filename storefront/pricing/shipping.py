"""
Devis de livraison par ville (HTG).
- standard partout (2 jours à Port-au-Prince, 5 ailleurs)
- express en zone urbaine (Port-au-Prince, Pétion-Ville, Delmas, Cap-Haïtien)
- moto en zone métropolitaine de Port-au-Prince si poids <= 10 kg
- retrait en point relais, gratuit
Les tarifs sont multipliés par max(1, ceil(poids / 5)).
"""
import math
import unicodedata
from typing import Any, Dict, List
from fastapi import HTTPException

from storefront.config import DEFAULT_CURRENCY

SHIPPING_RATES: Dict[str, Dict[str, int]] = {
    "Port-au-Prince": {"standard": 250, "express": 500},
    "Pétion-Ville": {"standard": 250, "express": 500},
    "Delmas": {"standard": 250, "express": 500},
    "Cap-Haïtien": {"standard": 750, "express": 1500},
    "Les Cayes": {"standard": 800, "express": 1600},
    "Gonaïves": {"standard": 600, "express": 1200},
    "Jacmel": {"standard": 700, "express": 1400},
    "Jérémie": {"standard": 1000, "express": 2000},
}
DEFAULT_RATES = {"standard": 1000, "express": 2000}

EXPRESS_CITIES = ("Port-au-Prince", "Pétion-Ville", "Delmas", "Cap-Haïtien")
METRO_CITIES = ("Port-au-Prince", "Pétion-Ville", "Delmas")
MOTO_RATE = 350
MOTO_MAX_WEIGHT = 10

def _fold(value: str) -> str:
    # "Cap-Haitien", "cap-haïtien " et "Cap-Haïtien" désignent la même ville
    normalized = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(c for c in normalized if not unicodedata.combining(c))

_CITY_INDEX = {_fold(name): name for name in SHIPPING_RATES}

def normalize_city(city: str) -> str:
    """Nom canonique de la ville si elle a un tarif dédié, sinon la saisie nettoyée."""
    cleaned = (city or "").strip()
    return _CITY_INDEX.get(_fold(cleaned), cleaned)

def shipping_quotes(city: str, weight: float = 1) -> List[Dict[str, Any]]:
    if not (city or "").strip():
        raise HTTPException(status_code=400, detail="Ville requise")
    if weight is None or weight <= 0:
        weight = 1

    canonical = normalize_city(city)
    rates = SHIPPING_RATES.get(canonical, DEFAULT_RATES)
    multiplier = max(1, math.ceil(weight / 5))

    quotes: List[Dict[str, Any]] = [{
        "provider": "standard",
        "provider_name": "Livraison Standard",
        "rate": rates["standard"] * multiplier,
        "currency": DEFAULT_CURRENCY,
        "estimated_days": 2 if canonical == "Port-au-Prince" else 5,
        "type": "standard",
    }]

    if canonical in EXPRESS_CITIES:
        quotes.append({
            "provider": "express",
            "provider_name": "Livraison Express (24h)",
            "rate": rates["express"] * multiplier,
            "currency": DEFAULT_CURRENCY,
            "estimated_days": 1,
            "type": "express",
        })

    if canonical in METRO_CITIES and weight <= MOTO_MAX_WEIGHT:
        quotes.append({
            "provider": "moto",
            "provider_name": "Moto Express (2-4h)",
            "rate": MOTO_RATE,
            "currency": DEFAULT_CURRENCY,
            "estimated_days": 0,
            "type": "express",
        })

    quotes.append({
        "provider": "pickup",
        "provider_name": "Retrait en point relais",
        "rate": 0,
        "currency": DEFAULT_CURRENCY,
        "estimated_days": 1,
        "type": "pickup",
    })
    return quotes
