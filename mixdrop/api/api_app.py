# -*- coding: UTF-8 -*-
from __future__ import annotations
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, status, Request
from fastapi.middleware.cors import CORSMiddleware

from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import get_settings
from mixdrop.api.utils.errors import register_exception_handlers, unhandled_exception_handler
from mixdrop.api.utils.request_context import REQUEST_ID_HEADER, reset_request_id, set_request_id
from mixdrop.api.services.cache_service import get_cache

# Importer les routes avant toute autre initialisation
from mixdrop.api import api_router  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire de lifespan pour l'application FastAPI."""
    logger.info("Démarrage de l'API MixDrop...")
    settings = get_settings()
    if not settings.oauth_enabled:
        logger.warning("[AUTH] OAuth non configuré : la connexion est désactivée")

    # Log des routes enregistrées
    for route in app.routes:
        if hasattr(route, "methods"):
            logger.debug(f"Route enregistrée: {route.path} [{route.methods}]")
    yield
    await get_cache().close()
    logger.info("Arrêt de l'API MixDrop")


def create_api() -> FastAPI:
    """
    Construit l'application FastAPI : CORS, corrélation des requêtes,
    gestionnaires d'erreurs et routes sous /api.
    """
    settings = get_settings()
    application = FastAPI(title="MixDrop API",
                          redirect_slashes=False,
                          version="1.0.0",
                          docs_url="/api/docs",
                          openapi_url="/api/openapi.json",
                          lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "x-response-time", "Retry-After"],
    )

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                # journalisé ici tant que l'identifiant de requête est positionné
                response = await unhandled_exception_handler(request, exc)
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["x-response-time"] = f"{elapsed_ms:.1f}ms"

            if response.status_code >= 500:
                logger.error(f"[API] ERROR {response.status_code}: {request.method} {request.url.path} ({elapsed_ms:.1f}ms)")
            elif response.status_code >= 400:
                logger.warning(f"[API] {response.status_code}: {request.method} {request.url.path} ({elapsed_ms:.1f}ms)")
            else:
                logger.debug(f"[API] {response.status_code}: {request.method} {request.url.path} ({elapsed_ms:.1f}ms)")
            return response
        finally:
            reset_request_id()

    register_exception_handlers(application)
    application.include_router(api_router, prefix="/api")

    @application.get('/api/healthcheck', status_code=status.HTTP_200_OK, tags=["health"])
    def perform_healthcheck():
        '''
        Route de supervision : répond 200 tant que le processus sert des requêtes.
        '''
        return {"status": "healthy"}

    return application


app = create_api()
