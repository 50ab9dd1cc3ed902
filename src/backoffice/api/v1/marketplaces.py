"""Marketplace export endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.auth import TokenData, get_current_user
from backoffice.core.database import get_db
from backoffice.marketplaces.catalog import get_products_for_marketplace
from backoffice.marketplaces.export import (
    Invalidator,
    can_export_to_marketplace,
    export_product_to_marketplace,
    get_marketplace_export_fields,
    log_invalidation,
)
from backoffice.marketplaces.registry import MarketplaceRegistry
from backoffice.marketplaces.types import ExportFormField

logger = logging.getLogger("api.marketplaces")


def create_marketplaces_router(
    registry: MarketplaceRegistry, invalidate: Invalidator = log_invalidation
) -> APIRouter:
    """Create a router exposing the export pipeline of every registered marketplace."""

    router = APIRouter(prefix="/marketplaces", tags=["marketplaces"])

    @router.get("/{marketplace}/fields", response_model=list[ExportFormField])
    async def export_fields(
        marketplace: str, user: TokenData = Depends(get_current_user)
    ) -> list[ExportFormField]:
        try:
            return await get_marketplace_export_fields(registry, marketplace)
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    @router.get("/{marketplace}/can-export")
    async def can_export(marketplace: str, user: TokenData = Depends(get_current_user)) -> dict:
        return {"canExport": await can_export_to_marketplace(registry, marketplace, user.user_id)}

    @router.post("/{marketplace}/products/{product_id}/export")
    async def export_product(
        marketplace: str,
        product_id: str,
        options: dict[str, Any] = Body(...),
        user: TokenData = Depends(get_current_user),
    ) -> dict:
        """Export a product; failures are reported in the body, not as HTTP errors."""
        logger.info("User %s exports product %s to %s", user.user_id, product_id, marketplace)
        result = await export_product_to_marketplace(
            registry, product_id, marketplace, options, user.user_id, invalidate
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    @router.get("/{marketplace}/products")
    async def products(
        marketplace: str,
        user: TokenData = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> dict:
        """Products already exported to the marketplace and products still available."""
        return get_products_for_marketplace(db, marketplace)

    return router
