"""Shopee Open Platform client.

This module owns the OAuth lifecycle of a Shopee partner application
(authorization URL, code exchange, token refresh) and the execution of signed
calls against the partner API.

HTTP is done with a blocking ``requests.Session``; every call is pushed to a
worker thread with ``anyio.to_thread.run_sync`` so the event loop serving the
FastAPI routes is never blocked.
"""

import functools
import logging
import time
from typing import Any, Callable
from urllib.parse import urlencode

import anyio
import requests

from backoffice.core.exceptions import ConfigurationError, MarketplaceApiError
from backoffice.core.settings import SHOPEE_API_PREFIX, ShopeeSettings
from backoffice.shopee.signer import sign
from backoffice.shopee.token_store import TokenStore
from backoffice.shopee.types import TokenResponse

# Setup module-level logger
logger = logging.getLogger("shopee")

AUTH_PARTNER_PATH = f"{SHOPEE_API_PREFIX}/shop/auth_partner"
TOKEN_GET_PATH = f"{SHOPEE_API_PREFIX}/auth/token/get"
ACCESS_TOKEN_GET_PATH = f"{SHOPEE_API_PREFIX}/auth/access_token/get"
UPLOAD_IMAGE_PATH = f"{SHOPEE_API_PREFIX}/media_space/upload_image"
ADD_ITEM_PATH = f"{SHOPEE_API_PREFIX}/product/add_item"
GET_CATEGORY_PATH = f"{SHOPEE_API_PREFIX}/product/get_category"
GET_ATTRIBUTE_TREE_PATH = f"{SHOPEE_API_PREFIX}/product/get_attribute_tree"
GET_CHANNEL_LIST_PATH = f"{SHOPEE_API_PREFIX}/logistics/get_channel_list"


class ShopeeClient:
    """
    Client for one Shopee partner application.

    Args:
        settings (ShopeeSettings): Partner credentials and endpoint.
        token_store (TokenStore | None): Where exchanged and refreshed tokens are saved.
        http (requests.Session | None): Session used for every outbound call.
        clock (Callable[[], float]): Source of Unix time, used for signatures.

    Raises:
        ConfigurationError: If the partner id, partner key or redirect URI is missing.
    """

    def __init__(
        self,
        settings: ShopeeSettings,
        token_store: TokenStore | None = None,
        http: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not settings.partner_id:
            raise ConfigurationError("SHOPEE_PARTNER_ID environment variable is required")
        if not settings.partner_id.isdigit():
            raise ConfigurationError("SHOPEE_PARTNER_ID must be numeric")
        if not settings.partner_key:
            raise ConfigurationError("SHOPEE_PARTNER_KEY environment variable is required")
        if not settings.redirect_uri:
            raise ConfigurationError("SHOPEE_REDIRECT_URI environment variable is required")

        self.settings = settings
        self.token_store = token_store
        self.http = http or requests.Session()
        self._clock = clock
        self._api_url = settings.api_url.rstrip("/")
        self._refresh_locks: dict[int, anyio.Lock] = {}
        self._last_refresh: dict[int, tuple[str, TokenResponse]] = {}

    @property
    def partner_id(self) -> str:
        return self.settings.partner_id

    def _timestamp(self) -> int:
        return int(self._clock())

    def _signed_params(
        self,
        path: str,
        access_token: str | None = None,
        shop_id: int | None = None,
    ) -> dict[str, Any]:
        """Common query parameters, with a fresh timestamp and signature."""
        timestamp = self._timestamp()
        params: dict[str, Any] = {
            "partner_id": self.partner_id,
            "timestamp": timestamp,
        }
        if access_token:
            params["access_token"] = access_token
        if shop_id:
            params["shop_id"] = shop_id
        params["sign"] = sign(
            path,
            timestamp,
            self.partner_id,
            self.settings.partner_key,
            access_token,
            shop_id,
        )
        return params

    def generate_authorization_url(self, redirect_uri: str | None = None) -> str:
        """
        Build the shop authorization URL the seller is sent to.

        The signature embeds the current timestamp and Shopee rejects it after a
        few minutes, so the URL must be generated per request, never cached.
        """
        params = self._signed_params(AUTH_PARTNER_PATH)
        params["redirect"] = redirect_uri or self.settings.redirect_uri
        return f"{self._api_url}{AUTH_PARTNER_PATH}?{urlencode(params)}"

    def _send(
        self,
        method: str,
        path: str,
        access_token: str | None = None,
        shop_id: int | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        files: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform one signed call (blocking) and return the decoded JSON body.

        Connection failures are retried up to ``max_retries`` times, signing
        again each time. Read timeouts are not retried since the request may
        already have been processed.
        """
        url = f"{self._api_url}{path}"
        attempt = 0
        while True:
            query = self._signed_params(path, access_token, shop_id)
            if params:
                query.update(params)
            try:
                response = self.http.request(
                    method,
                    url,
                    params=query,
                    json=json_body,
                    files=files,
                    timeout=self.settings.request_timeout,
                )
            except requests.ConnectionError as e:
                if attempt >= self.settings.max_retries:
                    logger.error("Shopee %s %s failed: %s", method, path, e)
                    raise MarketplaceApiError("network_error", str(e)) from e
                attempt += 1
                logger.warning("Retrying Shopee %s %s after connection error: %s", method, path, e)
                continue
            except requests.RequestException as e:
                logger.error("Shopee %s %s failed: %s", method, path, e)
                raise MarketplaceApiError("network_error", str(e)) from e
            return self._parse(response, path)

    @staticmethod
    def _parse(response: requests.Response, path: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            logger.error("Non-JSON response from %s (HTTP %s)", path, response.status_code)
            raise MarketplaceApiError(
                "invalid_response", f"HTTP {response.status_code}: body is not JSON"
            ) from e

        if not isinstance(data, dict):
            raise MarketplaceApiError("invalid_response", "Unexpected response body")

        # successful responses carry an empty "error"
        if data.get("error"):
            logger.error("Shopee error on %s: %s - %s", path, data["error"], data.get("message"))
            raise MarketplaceApiError(
                str(data["error"]), str(data.get("message") or ""), data.get("request_id")
            )
        if not response.ok:
            raise MarketplaceApiError("http_error", f"HTTP {response.status_code}")
        return data

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return await anyio.to_thread.run_sync(
            functools.partial(self._send, method, path, **kwargs)
        )

    def _persist(
        self, shop_id: int, token: TokenResponse, user_id: str | None = None
    ) -> None:
        if self.token_store is None:
            return
        try:
            self.token_store.save(shop_id, token, user_id=user_id)
        except Exception as e:
            logger.warning(
                "Failed to persist Shopee tokens for shop %s (continuing OAuth flow): %s",
                shop_id,
                str(e),
            )

    async def exchange_code_for_token(
        self, code: str, shop_id: int, user_id: str | None = None
    ) -> TokenResponse:
        """
        Exchange the authorization code received in the callback for tokens.

        Args:
            code (str): Authorization code from the callback.
            shop_id (int): Shop id from the callback.
            user_id (str | None): Local user the shop gets linked to.

        Returns:
            TokenResponse: The new token pair.

        Raises:
            MarketplaceApiError: If Shopee rejects the exchange.
        """
        logger.info("Exchanging authorization code %s... for shop %s", code[:5], shop_id)
        data = await self._call(
            "POST",
            TOKEN_GET_PATH,
            json_body={"code": code, "shop_id": shop_id, "partner_id": int(self.partner_id)},
        )
        token = TokenResponse.from_api(data, shop_id)
        await anyio.to_thread.run_sync(functools.partial(self._persist, shop_id, token, user_id))
        return token

    def _lock_for(self, shop_id: int) -> anyio.Lock:
        lock = self._refresh_locks.get(shop_id)
        if lock is None:
            lock = self._refresh_locks[shop_id] = anyio.Lock()
        return lock

    async def refresh_access_token(self, refresh_token: str, shop_id: int) -> TokenResponse:
        """
        Obtain a new token pair from a refresh token.

        Refreshes of the same shop are serialized. A caller that waited for a
        concurrent refresh presenting the same refresh token gets that
        refresh's result instead of consuming the token again.

        Raises:
            MarketplaceApiError: If Shopee rejects the refresh.
        """
        async with self._lock_for(shop_id):
            previous = self._last_refresh.get(shop_id)
            if previous is not None and previous[0] == refresh_token:
                logger.info("Reusing concurrent token refresh for shop %s", shop_id)
                return previous[1]

            logger.info("Refreshing access token for shop %s", shop_id)
            data = await self._call(
                "POST",
                ACCESS_TOKEN_GET_PATH,
                json_body={
                    "refresh_token": refresh_token,
                    "shop_id": shop_id,
                    "partner_id": int(self.partner_id),
                },
            )
            token = TokenResponse.from_api(data, shop_id)
            self._last_refresh[shop_id] = (refresh_token, token)
            await anyio.to_thread.run_sync(functools.partial(self._persist, shop_id, token))
            return token

    async def signed_request(
        self,
        path: str,
        access_token: str,
        shop_id: int,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Call a shop-level endpoint: GET without a body, POST with a JSON body.

        Raises:
            MarketplaceApiError: If the response carries an error.
        """
        method = "GET" if body is None else "POST"
        return await self._call(
            method,
            path,
            access_token=access_token,
            shop_id=shop_id,
            params=params,
            json_body=body,
        )

    async def upload_image(
        self,
        access_token: str,
        shop_id: int,
        content: bytes,
        filename: str = "image.jpg",
        content_type: str = "image/jpeg",
    ) -> dict[str, Any]:
        """Upload one image to the media space as multipart field ``image``."""
        return await self._call(
            "POST",
            UPLOAD_IMAGE_PATH,
            access_token=access_token,
            shop_id=shop_id,
            files={"image": (filename, content, content_type)},
        )

    async def get_categories(
        self, access_token: str, shop_id: int, language: str | None = None
    ) -> list[dict[str, Any]]:
        data = await self.signed_request(
            GET_CATEGORY_PATH,
            access_token,
            shop_id,
            params={"language": language or self.settings.language},
        )
        return data.get("response", {}).get("category_list", [])

    async def get_attributes(
        self,
        access_token: str,
        shop_id: int,
        category_id: int,
        language: str | None = None,
    ) -> list[dict[str, Any]]:
        data = await self.signed_request(
            GET_ATTRIBUTE_TREE_PATH,
            access_token,
            shop_id,
            params={
                "category_id_list": category_id,
                "language": language or self.settings.language,
            },
        )
        return data.get("response", {}).get("attribute_list", [])

    async def get_logistics_channels(self, access_token: str, shop_id: int) -> list[dict[str, Any]]:
        data = await self.signed_request(GET_CHANNEL_LIST_PATH, access_token, shop_id)
        return data.get("response", {}).get("logistics_channel_list", [])
