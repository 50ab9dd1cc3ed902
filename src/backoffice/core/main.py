"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from backoffice.api.v1 import auth
from backoffice.api.v1.marketplaces import create_marketplaces_router
from backoffice.core.database import Base, engine
from backoffice.core.dependencies import (
    get_app_settings,
    get_marketplace_registry,
    get_shopee_client,
    get_token_store,
)
from backoffice.plugins.shopee import create_shopee_router

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("api")


# Request tracing middleware
class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Request tracing middleware."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        # query strings are left out: the OAuth callback carries the authorization code
        logger.info("Request: %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("Response status: %s", response.status_code)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan for the FastAPI application."""
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully!")
    yield


app = FastAPI(
    title="Back-office API",
    description="Catalog back-office with marketplace exports",
    version="1.0.0",
    lifespan=lifespan,
)

# Add request tracing middleware
app.add_middleware(RequestTracingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_app_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Resolve the integrations at startup; missing credentials fail here
registry = get_marketplace_registry()
app.include_router(
    create_shopee_router(get_shopee_client(), get_token_store()),
    prefix="/integrations/shopee",
    tags=["shopee"],
)

# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(create_marketplaces_router(registry), prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": "Welcome to the Back-office API",
        "marketplaces": [adapter.type.value for adapter in registry.get_all()],
    }
