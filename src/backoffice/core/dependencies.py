"""
FastAPI dependencies for the back-office application.
"""

import logging
from functools import lru_cache

from backoffice.core.database import SessionLocal
from backoffice.core.settings import AppSettings, MarketplaceType, ShopeeSettings
from backoffice.marketplaces.registry import MarketplaceRegistry
from backoffice.shopee.adapter import ShopeeAdapter
from backoffice.shopee.client import ShopeeClient
from backoffice.shopee.token_store import TokenStore

# Setup logger
logger = logging.getLogger("dependencies")


@lru_cache()
def get_settings(marketplace: MarketplaceType) -> ShopeeSettings:
    """
    Get the settings of a marketplace integration.
    """
    if marketplace == MarketplaceType.SHOPEE:
        settings = ShopeeSettings()  # Reads SHOPEE_* vars from .env
        logger.info("get_settings returning ShopeeSettings with API URL: %s", settings.api_url)
        return settings
    raise ValueError(f"No integration settings for marketplace: {marketplace}")


@lru_cache()
def get_app_settings() -> AppSettings:
    """
    Get the settings of the application itself.
    """
    return AppSettings()


@lru_cache()
def get_token_store() -> TokenStore:
    return TokenStore(SessionLocal)


@lru_cache()
def get_shopee_client() -> ShopeeClient:
    """
    Injection method to get the Shopee client.

    Raises:
        ConfigurationError: If the partner credentials are not configured.
    """
    settings = get_settings(MarketplaceType.SHOPEE)
    logger.info("Creating Shopee client for partner %s", settings.partner_id)
    return ShopeeClient(settings, token_store=get_token_store())


@lru_cache()
def get_marketplace_registry() -> MarketplaceRegistry:
    """
    Registry of every implemented marketplace adapter, built once.
    """
    return MarketplaceRegistry(
        [
            ShopeeAdapter(get_shopee_client(), get_token_store(), SessionLocal),
        ]
    )
