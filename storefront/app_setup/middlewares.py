"""
Middlewares transverses de l'application.
- register_basic_middlewares: session, CORS et TrustedHost.
- register_security_middleware: en-têtes de sécurité (API JSON uniquement, CSP stricte).
Notes:
- Pas de CSRF: l'API est consommée par jeton Bearer; les webhooks sont authentifiés par signature.
"""
import os
from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.sessions import SessionMiddleware
from storefront.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(SessionMiddleware, secret_key=os.getenv("SESSION_SECRET_KEY", "replace_me_with_a_long_random_secret"))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )

def register_security_middleware(app: FastAPI) -> None:
    """
    En-têtes ajoutés à chaque réponse s'ils sont absents:
    X-Frame-Options, X-Content-Type-Options, Referrer-Policy, Permissions-Policy,
    HSTS si COOKIE_SECURE, et une CSP limitée à la doc Swagger.
    """
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        swagger_cdns = "https://cdn.jsdelivr.net https://fastapi.tiangolo.com"
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
            f"img-src 'self' data: {swagger_cdns}; "
            f"style-src 'self' 'unsafe-inline' {swagger_cdns}; "
            f"script-src 'self' 'unsafe-inline' {swagger_cdns}",
        )
        return response
