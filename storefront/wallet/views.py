from typing import Any, Dict
from fastapi import APIRouter, Depends

from storefront.utils.security import require_user
from storefront.wallet import service as wallet_service

router = APIRouter(prefix="/api/v1/wallet", tags=["Wallet API"])

@router.get("")
def get_wallet(user: Dict[str, Any] = Depends(require_user)):
    """Solde, limite de crédit et 10 dernières transactions."""
    wallet = wallet_service.get_or_create_wallet(user["id"])
    return {
        "balance": float(wallet.get("balance") or 0),
        "credit_limit": float(wallet.get("credit_limit") or 0),
        "currency": wallet.get("currency") or "HTG",
        "transactions": wallet_service.recent_transactions(user["id"]),
    }
