"""Shared fixtures: in-memory database, fake Shopee HTTP endpoint, test settings."""

import datetime
import json
from typing import Any, Callable
from urllib.parse import urlparse

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.core import models  # noqa: F401
from backoffice.core.database import Base
from backoffice.core.settings import AppSettings, ShopeeSettings
from backoffice.shopee.client import ShopeeClient
from backoffice.shopee.token_store import TokenStore

NOW = datetime.datetime(2025, 1, 1, 12, 0, 0)
TIMESTAMP = 1700000000


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    content: bytes | None = None,
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    if json_data is not None:
        response._content = json.dumps(json_data).encode("utf-8")
        response.headers["content-type"] = "application/json"
    else:
        response._content = content or b""
    response.headers.update(headers or {})
    return response


class FakeShopeeApi:
    """
    Stands in for ``requests.Session``.

    ``routes`` maps an API path to either a payload, a list of payloads
    (consumed in order), or a callable ``(method, kwargs) -> payload``. A
    payload may be a dict (JSON body), a ``requests.Response`` or an exception
    to raise. ``images`` maps image URLs to the response of a plain GET.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.images: dict[str, requests.Response] = {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = urlparse(url).path
        self.calls.append((method, path, kwargs))
        route = self.routes.get(path)
        if route is None:
            return make_response(404, {"error": "not_found", "message": path})
        if isinstance(route, list):
            result = route.pop(0)
        elif callable(route):
            result = route(method, kwargs)
        else:
            result = route
        if isinstance(result, Exception):
            raise result
        if isinstance(result, requests.Response):
            return result
        return make_response(200, result)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append(("GET", url, kwargs))
        response = self.images.get(url)
        if response is None:
            return make_response(404, content=b"missing")
        return response

    def calls_to(self, path: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [call for call in self.calls if call[1] == path]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def app_settings(monkeypatch: pytest.MonkeyPatch) -> AppSettings:
    settings = AppSettings(jwt_secret_key="test_secret_key", database_url="sqlite://")
    monkeypatch.setattr("backoffice.core.auth.get_app_settings", lambda: settings)
    return settings


@pytest.fixture
def session_factory() -> Callable[[], Session]:
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def shopee_settings() -> ShopeeSettings:
    return ShopeeSettings(
        partner_id="1001141",
        partner_key="test_partner_key",
        redirect_uri="http://localhost:8000/integrations/shopee/callback",
        api_url="https://partner.example.test",
        status_page_url="http://localhost:3000/dashboard/marketplace/shopee",
        max_retries=1,
    )


@pytest.fixture
def fake_api() -> FakeShopeeApi:
    return FakeShopeeApi()


@pytest.fixture
def token_store(session_factory: Callable[[], Session]) -> TokenStore:
    return TokenStore(session_factory, now=lambda: NOW)


@pytest.fixture
def shopee_client(
    shopee_settings: ShopeeSettings, token_store: TokenStore, fake_api: FakeShopeeApi
) -> ShopeeClient:
    return ShopeeClient(shopee_settings, token_store, http=fake_api, clock=lambda: TIMESTAMP)
