"""
TAP API App - FastAPI Application

This module provides the FastAPI application exposing document loading,
sentence comparison and gold generation over HTTP. The loaded documents
live in a DocumentStore attached to ``app.state``.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tap_core.config_runtime import ConfigurationError
from tap_io.corpus_loader import DocumentStore
from tap_gold.merge_engine import InvalidSelectionError

logger = logging.getLogger(__name__)

_app: Optional[FastAPI] = None


@dataclass
class APIConfig:
    """Configuration for the API"""
    title: str = "Treebank Adjudication Platform API"

    description: str = "Compare dependency annotations and generate gold annotations"

    version: str = "1.0.0"

    debug: bool = False

    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    api_prefix: str = "/api/v1"


def error_body(status_code: int, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": True, "message": message, "status_code": status_code}
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Clear loaded documents on shutdown"""
    logger.info(f"API ready ({len(app.state.store)} documents preloaded)")
    yield
    app.state.store.clear()
    logger.info("API stopped, document store cleared")


def register_error_handlers(app: FastAPI):
    """Map domain and HTTP errors to JSON error bodies"""

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return error_body(exc.status_code, exc.detail)

    @app.exception_handler(InvalidSelectionError)
    async def invalid_selection(request: Request, exc: InvalidSelectionError):
        logger.warning(f"Invalid gold selection on {request.url.path}: {exc}")
        return error_body(400, str(exc))

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc}")
        return error_body(500, f"Configuration error: {exc}")

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return error_body(500, "Internal server error")


def register_routes(app: FastAPI, config: APIConfig):
    """Mount the document and gold routers plus service endpoints"""
    from tap_api.routes_documents import router as documents_router
    from tap_api.routes_gold import router as gold_router

    app.include_router(documents_router, prefix=f"{config.api_prefix}/documents", tags=["Documents"])
    app.include_router(gold_router, prefix=f"{config.api_prefix}/gold", tags=["Gold"])

    @app.get("/")
    async def root():
        return {
            "name": config.title,
            "version": config.version,
            "api": config.api_prefix,
            "docs": app.docs_url
        }

    @app.get("/health")
    async def health():
        store: DocumentStore = app.state.store
        return {
            "status": "healthy",
            "version": config.version,
            "documents": len(store),
            "active_document": store.active_key
        }


def create_app(config: Optional[APIConfig] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    """Create FastAPI application"""
    global _app

    config = config or APIConfig()

    app = FastAPI(
        title=config.title,
        description=config.description,
        version=config.version,
        debug=config.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.state.config = config
    app.state.store = store if store is not None else DocumentStore()

    register_error_handlers(app)
    register_routes(app, config)

    _app = app
    return app


def get_app() -> Optional[FastAPI]:
    """Get the most recently created application"""
    return _app
