"""
Factory d'application utilisée par les entrypoints (storefront.app, storefront.asgi).
"""
import logging
import os
from fastapi import FastAPI

from storefront import __version__
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "info").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et en-têtes de sécurité
      - gestionnaires d'exceptions (HTTPException, GatewayError)
      - tous les routers (API, admin, health)
    """
    _configure_logging()
    app = FastAPI(title="Union Storefront API", version=__version__, lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
