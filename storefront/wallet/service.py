"""Cas d'usage 'wallet': solde, limite de crédit Union Pay et paiement par portefeuille."""
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
from fastapi import HTTPException

from storefront.config import DEFAULT_CREDIT_LIMIT, DEFAULT_CURRENCY
from storefront.wallet import repository

logger = logging.getLogger(__name__)

def get_or_create_wallet(user_id: str) -> Dict[str, Any]:
    """Portefeuille de l'utilisateur, créé à la volée (solde 0, crédit par défaut)."""
    wallet = repository.get_wallet(user_id)
    if wallet:
        return wallet
    data = {
        "user_id": user_id,
        "balance": 0,
        "credit_limit": DEFAULT_CREDIT_LIMIT,
        "currency": DEFAULT_CURRENCY,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    return repository.create_wallet(data) or data

def ensure_balance(wallet: Dict[str, Any], amount: float) -> None:
    if float(wallet.get("balance") or 0) < amount:
        raise HTTPException(status_code=402, detail="Solde insuffisant dans votre portefeuille.")

def ensure_credit(wallet: Dict[str, Any], amount: float) -> None:
    if float(wallet.get("credit_limit") or 0) < amount:
        raise HTTPException(status_code=402, detail="Limite de crédit dépassée.")

def pay(user_id: str, amount: float, order_id: str, order_number: str = "") -> Dict[str, Any]:
    """
    Débite le portefeuille pour une commande et journalise la transaction.
    - 402 si le solde est insuffisant
    - 409 si le solde a changé pendant l'opération (réessayer)
    """
    wallet = get_or_create_wallet(user_id)
    ensure_balance(wallet, amount)
    current = float(wallet.get("balance") or 0)
    new_balance = round(current - amount, 2)
    if not repository.update_balance(user_id, current, new_balance):
        raise HTTPException(status_code=409, detail="Le solde a changé, veuillez réessayer.")
    repository.insert_transaction({
        "user_id": user_id,
        "type": "payment",
        "amount": -amount,
        "order_id": order_id,
        "description": f"Paiement commande #{order_number or order_id}",
        "status": "completed",
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("wallet.pay user_id=%s order_id=%s amount=%s", user_id, order_id, amount)
    return {**wallet, "balance": new_balance}

def refund(user_id: str, amount: float, order_id: str) -> bool:
    """Recrédite le portefeuille (annulation d'une commande payée par wallet)."""
    wallet = get_or_create_wallet(user_id)
    current = float(wallet.get("balance") or 0)
    if not repository.update_balance(user_id, current, round(current + amount, 2)):
        return False
    return repository.insert_transaction({
        "user_id": user_id,
        "type": "refund",
        "amount": amount,
        "order_id": order_id,
        "description": f"Remboursement commande #{order_id}",
        "status": "completed",
        "created_at": datetime.now(timezone.utc).isoformat(),
    })

def recent_transactions(user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    return repository.list_transactions(user_id, limit)
