"""
Gestionnaires d'exceptions.
- HTTPException: body JSON FastAPI standard {"detail": ...}.
- GatewayError: échec d'une passerelle de paiement, renvoyé avec son code (502/503/404)
  et un message affichable au client.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.gateways.errors import GatewayError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(GatewayError)
    async def gateway_error_json(request: Request, exc: GatewayError):
        logger.warning("gateway error gateway=%s status=%s path=%s: %s", exc.gateway, exc.status_code, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "gateway": exc.gateway})
