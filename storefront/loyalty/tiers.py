"""
Paliers et barèmes du programme fidélité (logique pure).
"""
import math
from typing import Any, Dict, List, Optional

from storefront.config import POINTS_VALUE_HTG

# Ordre croissant: (id, libellé, points cumulés minimum, multiplicateur)
TIERS: List[Dict[str, Any]] = [
    {"id": "bronze", "name": "Bronze", "min_points": 0, "multiplier": 1},
    {"id": "silver", "name": "Argent", "min_points": 1000, "multiplier": 1.5},
    {"id": "gold", "name": "Or", "min_points": 5000, "multiplier": 2},
    {"id": "platinum", "name": "Platine", "min_points": 15000, "multiplier": 3},
    {"id": "diamond", "name": "Diamant", "min_points": 50000, "multiplier": 5},
]
_BY_ID = {t["id"]: t for t in TIERS}

# Badges attribués sur le nombre de commandes livrées
ORDER_BADGES = [
    ("first_purchase", 1, 50, "Première Commande"),
    ("five_orders", 5, 100, "Client Fidèle"),
    ("ten_orders", 10, 200, "Super Client"),
    ("fifty_orders", 50, 500, "Légende"),
]
BIG_SPENDER = ("big_spender", 50000, 300, "Big Spender")

def get_tier(tier_id: str) -> Dict[str, Any]:
    return _BY_ID.get(tier_id, TIERS[0])

def calculate_tier(lifetime_points: int) -> str:
    tier_id = TIERS[0]["id"]
    for tier in TIERS:
        if lifetime_points >= tier["min_points"]:
            tier_id = tier["id"]
    return tier_id

def next_tier(tier_id: str) -> Optional[Dict[str, Any]]:
    ids = [t["id"] for t in TIERS]
    idx = ids.index(tier_id) if tier_id in ids else 0
    return TIERS[idx + 1] if idx + 1 < len(TIERS) else None

def progress_to_next_tier(lifetime_points: int) -> float:
    """Pourcentage (0-100) entre le palier courant et le suivant; 100 au palier diamant."""
    current = get_tier(calculate_tier(lifetime_points))
    nxt = next_tier(current["id"])
    if not nxt:
        return 100.0
    span = nxt["min_points"] - current["min_points"]
    progress = (lifetime_points - current["min_points"]) / span * 100
    return round(min(100.0, max(0.0, progress)), 2)

def earn_points(base_points: int, tier_id: str) -> int:
    return math.floor(base_points * get_tier(tier_id)["multiplier"])

def points_for_purchase(order_total: float, tier_id: str = "bronze") -> int:
    """1 point de base par tranche de 100 HTG, multiplié selon le palier."""
    base = math.floor(float(order_total or 0) / 100)
    return earn_points(base, tier_id)

def points_to_currency(points: int) -> int:
    return int(points) * POINTS_VALUE_HTG

def new_badges(owned: List[str], order_count: int, order_total: float = 0) -> List[Dict[str, Any]]:
    """Badges nouvellement débloqués (jamais attribués deux fois)."""
    earned: List[Dict[str, Any]] = []
    for badge_id, threshold, bonus, name in ORDER_BADGES:
        if order_count >= threshold and badge_id not in owned:
            earned.append({"id": badge_id, "name": name, "points": bonus})
    badge_id, threshold, bonus, name = BIG_SPENDER
    if float(order_total or 0) >= threshold and badge_id not in owned:
        earned.append({"id": badge_id, "name": name, "points": bonus})
    return earned
