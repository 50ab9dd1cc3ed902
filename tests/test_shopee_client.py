"""Tests for the Shopee client: OAuth lifecycle and signed calls."""

import datetime
import itertools
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import anyio
import pytest
import requests

from backoffice.core.exceptions import ConfigurationError, MarketplaceApiError
from backoffice.core.settings import ShopeeSettings
from backoffice.shopee.client import (
    ACCESS_TOKEN_GET_PATH,
    ADD_ITEM_PATH,
    AUTH_PARTNER_PATH,
    GET_CATEGORY_PATH,
    TOKEN_GET_PATH,
    ShopeeClient,
)
from backoffice.shopee.signer import sign
from backoffice.shopee.token_store import TokenStore
from conftest import NOW, TIMESTAMP, FakeShopeeApi, make_response

TOKEN_BODY = {
    "access_token": "AT-1",
    "refresh_token": "RT-1",
    "expire_in": 14400,
    "error": "",
    "message": "",
}


@pytest.mark.parametrize("field", ["partner_id", "partner_key", "redirect_uri"])
def test_missing_configuration_fails_at_construction(
    shopee_settings: ShopeeSettings, field: str
) -> None:
    settings = shopee_settings.model_copy(update={field: ""})
    with pytest.raises(ConfigurationError):
        ShopeeClient(settings)


def test_non_numeric_partner_id_is_rejected(shopee_settings: ShopeeSettings) -> None:
    settings = shopee_settings.model_copy(update={"partner_id": "abc"})
    with pytest.raises(ConfigurationError):
        ShopeeClient(settings)


def test_authorization_url(shopee_client: ShopeeClient) -> None:
    url = urlparse(shopee_client.generate_authorization_url())
    query = parse_qs(url.query)

    assert f"{url.scheme}://{url.netloc}" == "https://partner.example.test"
    assert url.path == AUTH_PARTNER_PATH
    assert query["partner_id"] == ["1001141"]
    assert query["timestamp"] == [str(TIMESTAMP)]
    assert query["redirect"] == ["http://localhost:8000/integrations/shopee/callback"]
    assert query["sign"] == [sign(AUTH_PARTNER_PATH, TIMESTAMP, "1001141", "test_partner_key")]
    assert "access_token" not in query


def test_authorization_url_redirect_override(shopee_client: ShopeeClient) -> None:
    url = shopee_client.generate_authorization_url("https://shop.example.test/back")
    assert parse_qs(urlparse(url).query)["redirect"] == ["https://shop.example.test/back"]


@pytest.mark.anyio
async def test_exchange_code_for_token_persists_connection(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi, token_store: TokenStore
) -> None:
    fake_api.routes[TOKEN_GET_PATH] = TOKEN_BODY

    token = await shopee_client.exchange_code_for_token("c0de123", 123, "user-1")

    assert token.access_token == "AT-1"
    assert token.refresh_token == "RT-1"
    assert token.expires_in_seconds == 14400
    assert token.shop_id == 123

    method, _, kwargs = fake_api.calls_to(TOKEN_GET_PATH)[0]
    assert method == "POST"
    assert kwargs["json"] == {"code": "c0de123", "shop_id": 123, "partner_id": 1001141}
    assert "access_token" not in kwargs["params"]
    assert kwargs["params"]["sign"] == sign(
        TOKEN_GET_PATH, TIMESTAMP, "1001141", "test_partner_key"
    )
    assert kwargs["timeout"] == 30.0

    shop = token_store.get(123)
    assert shop is not None
    assert shop.user_id == "user-1"
    assert shop.access_token == "AT-1"
    assert shop.expire_at == NOW + datetime.timedelta(seconds=14400)


@pytest.mark.anyio
async def test_exchange_error_raises_and_stores_nothing(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi, token_store: TokenStore
) -> None:
    fake_api.routes[TOKEN_GET_PATH] = make_response(
        403, {"error": "error_auth", "message": "Invalid code"}
    )

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.exchange_code_for_token("bad", 123)

    assert exc_info.value.code == "error_auth"
    assert exc_info.value.message == "Invalid code"
    assert token_store.get(123) is None


@pytest.mark.anyio
async def test_token_response_without_tokens_is_an_api_error(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi, token_store: TokenStore
) -> None:
    fake_api.routes[TOKEN_GET_PATH] = {"error": "", "message": "", "request_id": "r1"}
    fake_api.routes[ACCESS_TOKEN_GET_PATH] = {"error": "", "access_token": "AT-2"}

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.exchange_code_for_token("c0de123", 123)

    assert exc_info.value.code == "invalid_response"
    assert exc_info.value.request_id == "r1"
    assert token_store.get(123) is None

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.refresh_access_token("RT-1", 123)

    assert exc_info.value.code == "invalid_response"


@pytest.mark.anyio
async def test_persistence_failure_does_not_fail_exchange(
    shopee_settings: ShopeeSettings, fake_api: FakeShopeeApi
) -> None:
    failing_store = MagicMock(save=MagicMock(side_effect=RuntimeError("database is down")))
    client = ShopeeClient(shopee_settings, failing_store, http=fake_api, clock=lambda: TIMESTAMP)
    fake_api.routes[TOKEN_GET_PATH] = TOKEN_BODY

    token = await client.exchange_code_for_token("c0de123", 123, "user-1")

    assert token.access_token == "AT-1"
    failing_store.save.assert_called_once()


@pytest.mark.anyio
async def test_signed_request_get_without_body(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.routes[GET_CATEGORY_PATH] = {"error": "", "response": {"category_list": []}}

    await shopee_client.signed_request(GET_CATEGORY_PATH, "AT-1", 123, params={"language": "en"})

    method, _, kwargs = fake_api.calls[0]
    assert method == "GET"
    assert kwargs["json"] is None
    assert kwargs["params"]["access_token"] == "AT-1"
    assert kwargs["params"]["shop_id"] == 123
    assert kwargs["params"]["language"] == "en"
    assert kwargs["params"]["sign"] == sign(
        GET_CATEGORY_PATH, TIMESTAMP, "1001141", "test_partner_key", "AT-1", 123
    )


@pytest.mark.anyio
async def test_signed_request_post_with_body(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.routes[ADD_ITEM_PATH] = {"error": "", "response": {"item_id": 1}}

    data = await shopee_client.signed_request(ADD_ITEM_PATH, "AT-1", 123, body={"a": 1})

    assert data["response"]["item_id"] == 1
    method, _, kwargs = fake_api.calls[0]
    assert method == "POST"
    assert kwargs["json"] == {"a": 1}


@pytest.mark.anyio
async def test_signed_request_error_field(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.routes[ADD_ITEM_PATH] = {
        "error": "product.error_param",
        "message": "category is invalid",
        "request_id": "req-1",
    }

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.signed_request(ADD_ITEM_PATH, "AT-1", 123, body={})

    assert "category is invalid" in str(exc_info.value)
    assert exc_info.value.request_id == "req-1"


@pytest.mark.anyio
async def test_non_json_response(shopee_client: ShopeeClient, fake_api: FakeShopeeApi) -> None:
    fake_api.routes[ADD_ITEM_PATH] = make_response(502, content=b"<html>Bad gateway</html>")

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.signed_request(ADD_ITEM_PATH, "AT-1", 123, body={})

    assert exc_info.value.code == "invalid_response"


@pytest.mark.anyio
async def test_connection_error_is_retried_with_fresh_signature(
    shopee_settings: ShopeeSettings, fake_api: FakeShopeeApi
) -> None:
    clock = itertools.count(TIMESTAMP)
    client = ShopeeClient(shopee_settings, http=fake_api, clock=lambda: next(clock))
    fake_api.routes[GET_CATEGORY_PATH] = [
        requests.ConnectionError("connection reset"),
        {"error": "", "response": {"category_list": [{"category_id": 1}]}},
    ]

    categories = await client.get_categories("AT-1", 123)

    assert categories == [{"category_id": 1}]
    first, second = fake_api.calls_to(GET_CATEGORY_PATH)
    assert first[2]["params"]["timestamp"] != second[2]["params"]["timestamp"]
    assert first[2]["params"]["sign"] != second[2]["params"]["sign"]


@pytest.mark.anyio
async def test_read_timeout_is_not_retried(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.routes[ADD_ITEM_PATH] = [requests.ReadTimeout("too slow"), {"error": ""}]

    with pytest.raises(MarketplaceApiError) as exc_info:
        await shopee_client.signed_request(ADD_ITEM_PATH, "AT-1", 123, body={})

    assert exc_info.value.code == "network_error"
    assert len(fake_api.calls_to(ADD_ITEM_PATH)) == 1


@pytest.mark.anyio
async def test_refresh_updates_connection_in_place(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi, token_store: TokenStore
) -> None:
    fake_api.routes[TOKEN_GET_PATH] = TOKEN_BODY
    fake_api.routes[ACCESS_TOKEN_GET_PATH] = {
        "access_token": "AT-2",
        "refresh_token": "RT-2",
        "expire_in": 7200,
        "error": "",
    }
    await shopee_client.exchange_code_for_token("c0de123", 123, "user-1")

    token = await shopee_client.refresh_access_token("RT-1", 123)

    assert token.access_token == "AT-2"
    _, _, kwargs = fake_api.calls_to(ACCESS_TOKEN_GET_PATH)[0]
    assert kwargs["json"] == {"refresh_token": "RT-1", "shop_id": 123, "partner_id": 1001141}
    shop = token_store.get(123)
    assert shop.access_token == "AT-2"
    assert shop.refresh_token == "RT-2"
    assert shop.expire_in == 7200
    assert shop.user_id == "user-1"


@pytest.mark.anyio
async def test_concurrent_refreshes_of_one_shop_hit_shopee_once(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.routes[ACCESS_TOKEN_GET_PATH] = {
        "access_token": "AT-2",
        "refresh_token": "RT-2",
        "expire_in": 7200,
        "error": "",
    }
    results = []

    async def refresh() -> None:
        results.append(await shopee_client.refresh_access_token("RT-1", 123))

    async with anyio.create_task_group() as tg:
        tg.start_soon(refresh)
        tg.start_soon(refresh)

    assert len(fake_api.calls_to(ACCESS_TOKEN_GET_PATH)) == 1
    assert [r.access_token for r in results] == ["AT-2", "AT-2"]
