"""
FastAPI application entry point for the Partage functions.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import get_settings
from backend.errors import install_error_handlers
from backend.routes import router

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_ALLOW_METHODS = ["POST", "OPTIONS"]


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Partage Functions (FastAPI)", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )
    install_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


logging.basicConfig(level=logging.INFO)
app = create_app()
