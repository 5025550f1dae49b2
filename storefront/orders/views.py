# module storefront.orders.views

"""Endpoints commandes.
- /api/v1/orders: historique paginé, détail et annulation (client authentifié).
- /api/v1/admin/orders: listing et changement de statut (admin).
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query

from storefront.utils.security import require_user, require_admin
from storefront.orders import service as orders_service
from storefront.orders import repository as orders_repo
from storefront.orders.models import OrderStatus, StatusUpdateRequest

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])
admin_router = APIRouter(prefix="/api/v1/admin/orders", tags=["Admin Orders API"])

@router.get("")
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: Optional[OrderStatus] = None,
    user: Dict[str, Any] = Depends(require_user),
):
    return orders_service.list_my_orders(user["id"], page=page, limit=limit, status=status)

@router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return orders_service.get_order_for_user(order_id, user)

@router.post("/{order_id}/cancel")
def cancel_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    """Annule une commande en attente ou confirmée; les points utilisés sont rendus."""
    order = orders_service.cancel_order(order_id, user)
    return {"status": "cancelled", "order": order}

@admin_router.get("")
def admin_list_orders(
    status: Optional[OrderStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return {"orders": orders_repo.list_orders(limit=limit, status=status)}

@admin_router.patch("/{order_id}/status")
def admin_update_status(order_id: str, req: StatusUpdateRequest, admin: Dict[str, Any] = Depends(require_admin)):
    return orders_service.update_status(order_id, req.status, req.note)
