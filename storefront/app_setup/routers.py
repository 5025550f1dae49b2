"""
Registre central des routers.
- API v1: auth, offers, cart, checkout/shipping, orders, payments, wallet, loyalty
- Admin: commandes
- Health: health_router
"""
from fastapi import FastAPI
from storefront.auth.views import api_router as auth_api_router
from storefront.offers import views as offers_views
from storefront.cart import views as cart_views
from storefront.pricing import views as pricing_views
from storefront.orders import views as orders_views
from storefront.payments import views as payments_views
from storefront.wallet import views as wallet_views
from storefront.loyalty import views as loyalty_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(auth_api_router)
    app.include_router(offers_views.router)
    app.include_router(cart_views.router)
    app.include_router(pricing_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(wallet_views.router)
    app.include_router(loyalty_views.router)
    # Admin
    app.include_router(orders_views.admin_router)
    # Health & monitoring
    app.include_router(health_router)
