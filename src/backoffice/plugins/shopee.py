"""Shopee plugin module.

This module provides the API endpoints of the Shopee integration: the OAuth
authorization flow (redirect, callback), connection status, disconnect and
token refresh, and the remote option sets (categories, attributes, logistics
channels) the export dialog needs.

Access and refresh tokens stay on the server: the callback stores them through
the token store and only redirects the browser with the shop id.
"""

import datetime
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from backoffice.core.auth import TokenData, get_current_user, get_optional_user
from backoffice.core.exceptions import MarketplaceApiError
from backoffice.shopee.client import ShopeeClient
from backoffice.shopee.token_store import TokenStore
from backoffice.shopee.types import ShopConnection

# Setup module-level logger
logger = logging.getLogger("shopee.plugin")


def _iso(value: datetime.datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.UTC)
    return value.isoformat()


def create_shopee_router(client: ShopeeClient, token_store: TokenStore) -> APIRouter:
    """Create a router for the Shopee integration."""

    router = APIRouter()
    status_page_url = client.settings.status_page_url

    def status_page(**params: str) -> RedirectResponse:
        return RedirectResponse(f"{status_page_url}?{urlencode(params)}")

    def connected_shop(user: TokenData) -> ShopConnection:
        shop = token_store.find_connected(user.user_id)
        if shop is None:
            raise HTTPException(status_code=404, detail="No Shopee shop connected")
        return shop

    @router.get("/auth")
    async def initiate_oauth() -> RedirectResponse:
        """Initiate OAuth flow."""
        try:
            auth_url = client.generate_authorization_url()
        except Exception as e:
            logger.error("Shopee auth error: %s", str(e))
            return status_page(error="auth_failed", message=str(e))
        return RedirectResponse(auth_url)

    @router.get("/callback")
    async def oauth_callback(
        code: str | None = None,
        shop_id: str | None = None,
        error: str | None = None,
        user: TokenData | None = Depends(get_optional_user),
    ) -> RedirectResponse:
        """
        Handle OAuth callback from Shopee.

        On success the token pair is stored for the logged-in user and the
        browser is sent back to the status page with ``success=true`` and the
        shop id. On failure the status page gets ``error`` and ``message``.

        Args:
            code (str | None): The authorization code from Shopee.
            shop_id (str | None): The authorized shop.
            error (str | None): Error reported by Shopee instead of a code.
            user (TokenData | None): The logged-in user.
        """
        try:
            if user is None:
                raise ValueError("User not authenticated")
            if error:
                raise ValueError(f"Authorization failed: {error}")
            if not code or not shop_id:
                raise ValueError("Missing authorization code or shop_id")
            try:
                shop = int(shop_id)
            except ValueError as e:
                raise ValueError("Invalid shop_id") from e

            logger.info("OAuth callback received: code=%s... shop_id=%s", code[:5], shop)
            await client.exchange_code_for_token(code, shop, user.user_id)
        except (ValueError, MarketplaceApiError) as e:
            logger.error("Shopee callback error: %s", str(e))
            return status_page(error="callback_failed", message=str(e))

        logger.info("Shopee tokens saved for shop %s, user %s", shop, user.user_id)
        return status_page(success="true", shop_id=str(shop))

    @router.get("/status")
    async def connection_status(user: TokenData = Depends(get_current_user)) -> dict:
        """Connection status of the user's most recent Shopee shop."""
        shop = token_store.find_connected(user.user_id)
        if shop is None:
            return {"connected": False}
        return {
            "connected": True,
            "shopId": shop.shop_id,
            "shopName": shop.shop_name,
            "connectedAt": _iso(shop.created_at),
            "expiresAt": _iso(shop.expire_at),
        }

    @router.post("/disconnect")
    async def disconnect(user: TokenData = Depends(get_current_user)) -> dict:
        """Remove every Shopee connection of the user."""
        removed = token_store.delete_for_user(user.user_id)
        return {"success": True, "disconnected": removed}

    @router.post("/refresh")
    async def refresh(user: TokenData = Depends(get_current_user)) -> dict:
        """Refresh the access token of the user's shop."""
        shop = connected_shop(user)
        try:
            token = await client.refresh_access_token(shop.refresh_token, shop.shop_id)
        except MarketplaceApiError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

        stored = token_store.get(shop.shop_id)
        expires_at = (
            stored.expire_at
            if stored is not None and stored.access_token == token.access_token
            else datetime.datetime.now(datetime.UTC)
            + datetime.timedelta(seconds=token.expires_in_seconds)
        )
        return {"success": True, "shopId": shop.shop_id, "expiresAt": _iso(expires_at)}

    @router.get("/categories")
    async def categories(
        language: str | None = None, user: TokenData = Depends(get_current_user)
    ) -> list[dict]:
        shop = connected_shop(user)
        try:
            return await client.get_categories(shop.access_token, shop.shop_id, language)
        except MarketplaceApiError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

    @router.get("/categories/{category_id}/attributes")
    async def attributes(
        category_id: int,
        language: str | None = None,
        user: TokenData = Depends(get_current_user),
    ) -> list[dict]:
        shop = connected_shop(user)
        try:
            return await client.get_attributes(
                shop.access_token, shop.shop_id, category_id, language
            )
        except MarketplaceApiError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

    @router.get("/logistics")
    async def logistics(user: TokenData = Depends(get_current_user)) -> list[dict]:
        shop = connected_shop(user)
        try:
            return await client.get_logistics_channels(shop.access_token, shop.shop_id)
        except MarketplaceApiError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

    return router
