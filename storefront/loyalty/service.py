"""Cas d'usage fidélité.
Rôles:
- Lire/créer le compte fidélité d'un utilisateur et en produire le récapitulatif.
- Créditer les points d'une commande livrée une seule fois (clé order:<id>:earn).
- Réserver des points utilisés au checkout et les rendre si la commande est annulée.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
import logging

from storefront.config import POINTS_EXPIRY_DAYS
from storefront.loyalty import repository
from storefront.loyalty import tiers

logger = logging.getLogger(__name__)

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _default_account(user_id: str) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "points": 0,
        "lifetime_points": 0,
        "tier": "bronze",
        "badges": [],
        "order_count": 0,
    }

def get_account(user_id: str) -> Dict[str, Any]:
    """Compte fidélité (valeurs par défaut si absent, sans écriture)."""
    return {**_default_account(user_id), **(repository.get_account(user_id) or {})}

def get_balance(user_id: str) -> int:
    return int(get_account(user_id).get("points") or 0)

def summary(user_id: str) -> Dict[str, Any]:
    account = get_account(user_id)
    lifetime = int(account.get("lifetime_points") or 0)
    tier_id = tiers.calculate_tier(lifetime)
    nxt = tiers.next_tier(tier_id)
    points = int(account.get("points") or 0)
    return {
        "points": points,
        "lifetime_points": lifetime,
        "tier": tier_id,
        "tier_name": tiers.get_tier(tier_id)["name"],
        "multiplier": tiers.get_tier(tier_id)["multiplier"],
        "next_tier": nxt["id"] if nxt else None,
        "points_to_next_tier": max(nxt["min_points"] - lifetime, 0) if nxt else 0,
        "progress": tiers.progress_to_next_tier(lifetime),
        "badges": account.get("badges") or [],
        "currency_value": tiers.points_to_currency(points),
    }

def accrue_order_points(user_id: str, order_id: str, order_total: float) -> int:
    """
    Crédite les points d'une commande livrée (idempotent).
    - Barème: points_for_purchase(total, palier courant) + bonus des badges débloqués
    - Écrit un mouvement 'earn' avec expiration à POINTS_EXPIRY_DAYS
    Retour: points crédités (0 si déjà crédités)
    """
    key = f"order:{order_id}:earn"
    if repository.find_ledger_entry(key):
        logger.info("loyalty.accrue skipped (already earned) order_id=%s", order_id)
        return 0

    account = get_account(user_id)
    earned = tiers.points_for_purchase(order_total, account.get("tier") or "bronze")
    order_count = int(account.get("order_count") or 0) + 1
    badges = list(account.get("badges") or [])
    unlocked = tiers.new_badges(badges, order_count, order_total)
    bonus = sum(b["points"] for b in unlocked)
    total = earned + bonus

    ok = repository.insert_ledger_entry({
        "idempotency_key": key,
        "user_id": user_id,
        "order_id": order_id,
        "type": "earn",
        "points": total,
        "status": "confirmed",
        "expires_at": (_now() + timedelta(days=POINTS_EXPIRY_DAYS)).isoformat(),
        "created_at": _now().isoformat(),
    })
    if not ok:
        return 0

    lifetime = int(account.get("lifetime_points") or 0) + total
    account.update({
        "points": int(account.get("points") or 0) + total,
        "lifetime_points": lifetime,
        "tier": tiers.calculate_tier(lifetime),
        "badges": badges + [b["id"] for b in unlocked],
        "order_count": order_count,
        "updated_at": _now().isoformat(),
    })
    repository.save_account(account)
    logger.info("loyalty.accrue order_id=%s user_id=%s points=%s tier=%s", order_id, user_id, total, account["tier"])
    return total

def redeem(user_id: str, points: int, order_id: str) -> bool:
    """Débite des points pour une commande (mouvement 'redeem' en attente). False si solde insuffisant."""
    if points <= 0:
        return True
    account = get_account(user_id)
    balance = int(account.get("points") or 0)
    if balance < points:
        return False
    key = f"order:{order_id}:redeem"
    if repository.find_ledger_entry(key):
        return True
    if not repository.insert_ledger_entry({
        "idempotency_key": key,
        "user_id": user_id,
        "order_id": order_id,
        "type": "redeem",
        "points": -points,
        "status": "pending",
        "created_at": _now().isoformat(),
    }):
        return False
    account.update({"points": balance - points, "updated_at": _now().isoformat()})
    return repository.save_account(account)

def cancel_redemption(user_id: str, order_id: str) -> int:
    """Annule une utilisation de points en attente et recrédite le solde. Retour: points rendus."""
    key = f"order:{order_id}:redeem"
    entry = repository.find_ledger_entry(key)
    if not entry or entry.get("status") != "pending":
        return 0
    refunded = abs(int(entry.get("points") or 0))
    repository.update_ledger_status(key, "cancelled")
    account = get_account(user_id)
    account.update({"points": int(account.get("points") or 0) + refunded, "updated_at": _now().isoformat()})
    repository.save_account(account)
    logger.info("loyalty.redemption cancelled order_id=%s points=%s", order_id, refunded)
    return refunded

def confirm_redemption(order_id: str) -> bool:
    key = f"order:{order_id}:redeem"
    entry = repository.find_ledger_entry(key)
    if not entry or entry.get("status") != "pending":
        return False
    return repository.update_ledger_status(key, "confirmed")
