# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.entry.http.views.health_view import router as health_router
from adapters.entry.http.views.networks_view import router as networks_router
from adapters.entry.http.views.vaults_view import router as vaults_router
from adapters.external.database.mongo_client import close_mongo
from adapters.external.database.vault_record_repository_mongodb import VaultRecordRepositoryMongoDB
from config import get_settings

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    s = get_settings()
    logging.basicConfig(
        level=getattr(logging, s.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def init_mongo_indexes() -> None:
    """
    Make sure the `vaults` collection has its lookup and uniqueness indexes
    before serving any request.
    """
    VaultRecordRepositoryMongoDB().ensure_indexes()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context.

    Runs once on startup (before the first request) and once on shutdown.
    """
    configure_logging()
    init_mongo_indexes()
    logger.info("Vault deployment service started (env=%s)", get_settings().ENV)
    yield
    close_mongo()


def create_app() -> FastAPI:
    """
    Application factory for the multi-network vault deployment API.
    """
    s = get_settings()
    app = FastAPI(
        title="Vault Deployment API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # request validation errors map to 400, same as ValueError in the views
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    app.include_router(vaults_router, prefix="/api")
    app.include_router(networks_router, prefix="/api")
    app.include_router(health_router, prefix="/api")

    return app


app = create_app()
