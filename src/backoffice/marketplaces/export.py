"""
Export of catalog products to marketplaces.

``export_product_to_marketplace`` is the single entrypoint used by the API: it
resolves the adapter, checks the connection, validates the options and runs the
export. It never raises; every failure is reported as an ``ExportResult``.
"""

import logging
from typing import Any, Callable

from backoffice.marketplaces.registry import MarketplaceRegistry
from backoffice.marketplaces.types import ExportFormField, ExportResult

logger = logging.getLogger("marketplaces.export")

Invalidator = Callable[[list[str]], None]


def log_invalidation(paths: list[str]) -> None:
    """Default view-cache invalidation: the dashboard is told through the logs only."""
    logger.info("Invalidating cached views: %s", ", ".join(paths))


def dependent_views(marketplace: str) -> list[str]:
    return [f"/dashboard/marketplace/{marketplace}", "/dashboard/products"]


async def export_product_to_marketplace(
    registry: MarketplaceRegistry,
    product_id: str,
    marketplace: str,
    options: Any,
    user_id: str | None = None,
    invalidate: Invalidator = log_invalidation,
) -> ExportResult:
    """
    Export a product to a marketplace.

    Args:
        registry (MarketplaceRegistry): Registered adapters.
        product_id (str): Local product id.
        marketplace (str): Marketplace type, e.g. ``"shopee"``.
        options (Any): Marketplace-specific export options.
        user_id (str | None): Owner of the shop to export to.
        invalidate (Invalidator): Called with the dashboard paths to refresh after a success.

    Returns:
        ExportResult: Outcome of the export.
    """
    try:
        adapter = registry.get(marketplace)
        if adapter is None:
            return ExportResult.failure(f"Marketplace adapter not found: {marketplace}")

        if not await adapter.can_export(user_id):
            return ExportResult.failure(
                f"Cannot export to {marketplace}: not connected or not configured"
            )

        validation = adapter.validate_export_options(options)
        if not validation.valid:
            errors = list(validation.errors.values()) if validation.errors else []
            return ExportResult.failure(*(errors or ["Validation failed"]))

        logger.info("Exporting product %s to %s", product_id, marketplace)
        result = await adapter.export(product_id, options, user_id)

        if result.success:
            try:
                invalidate(dependent_views(marketplace))
            except Exception as e:
                logger.warning("View invalidation failed after export: %s", str(e))
        return result
    except Exception as e:
        logger.error("Unexpected error exporting product %s: %s", product_id, str(e))
        return ExportResult.failure(str(e) or "An unexpected error occurred")


async def get_marketplace_export_fields(
    registry: MarketplaceRegistry, marketplace: str
) -> list[ExportFormField]:
    """
    Form fields of a marketplace.

    Raises:
        LookupError: If no adapter is registered for the marketplace.
    """
    adapter = registry.get(marketplace)
    if adapter is None:
        raise LookupError(f"Marketplace adapter not found: {marketplace}")
    return await adapter.get_export_form_fields()


async def can_export_to_marketplace(
    registry: MarketplaceRegistry, marketplace: str, user_id: str | None = None
) -> bool:
    adapter = registry.get(marketplace)
    if adapter is None:
        return False
    return await adapter.can_export(user_id)
