"""
TAP API - FastAPI Application Package

This package provides a REST API for the Treebank Adjudication Platform:
loading annotator files, comparing sentences and generating gold
annotations.

Modules:
    app: FastAPI application
    routes_documents: Document and comparison endpoints
    routes_gold: Gold generation endpoints

University of Athens - Nikolaos Lavidas
"""

from tap_api.app import (
    create_app,
    get_app,
    APIConfig,
)

from tap_api.routes_documents import router as documents_router
from tap_api.routes_gold import router as gold_router

__version__ = "1.0.0"
__author__ = "Nikolaos Lavidas"

__all__ = [
    "create_app",
    "get_app",
    "APIConfig",
    "documents_router",
    "gold_router",
]
