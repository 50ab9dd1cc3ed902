"""Tests for the Shopee image pipeline."""

import pytest
import requests

from backoffice.shopee.client import UPLOAD_IMAGE_PATH, ShopeeClient
from backoffice.shopee.media import ShopeeMediaUploader
from backoffice.shopee.signer import sign
from conftest import TIMESTAMP, FakeShopeeApi, make_response

URLS = [
    "https://cdn.example.test/a.jpg",
    "https://cdn.example.test/b.jpg",
    "https://cdn.example.test/c.png",
]


def serve_images(fake_api: FakeShopeeApi, urls: list[str]) -> None:
    for url in urls:
        fake_api.images[url] = make_response(
            200, content=b"\x89PNG-bytes", headers={"content-type": "image/png"}
        )


@pytest.mark.anyio
async def test_failed_fetch_is_skipped_and_order_kept(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    serve_images(fake_api, [URLS[0], URLS[2]])
    fake_api.routes[UPLOAD_IMAGE_PATH] = [
        {"image_info": {"image_id": "IMG-A"}},
        {"image_info": {"image_id": "IMG-C"}},
    ]

    report = await ShopeeMediaUploader(shopee_client).upload_images(URLS, "AT-1", 123)

    assert report.image_ids == ["IMG-A", "IMG-C"]
    assert [o.url for o in report.outcomes] == URLS
    assert report.outcomes[1].image_id is None
    assert "404" in report.outcomes[1].error
    assert [o.url for o in report.failures] == [URLS[1]]
    assert len(fake_api.calls_to(UPLOAD_IMAGE_PATH)) == 2


@pytest.mark.anyio
async def test_marketplace_error_for_one_image_is_skipped(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    serve_images(fake_api, URLS)
    fake_api.routes[UPLOAD_IMAGE_PATH] = [
        {"error": "", "response": {"image_info": {"image_id": "IMG-A"}}},
        {"error": "media.error_image", "message": "image too small"},
        {"error": "", "response": {"image_info": {"image_id": "IMG-C"}}},
    ]

    report = await ShopeeMediaUploader(shopee_client).upload_images(URLS, "AT-1", 123)

    assert report.image_ids == ["IMG-A", "IMG-C"]
    assert "image too small" in report.outcomes[1].error


@pytest.mark.anyio
async def test_network_failure_while_fetching_is_skipped(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    fake_api.images[URLS[0]] = make_response(200, content=b"jpeg")
    fake_api.routes[UPLOAD_IMAGE_PATH] = {"image_info": {"image_id": "IMG-A"}}

    def broken_get(url: str, **kwargs: object) -> requests.Response:
        if url == URLS[1]:
            raise requests.ConnectionError("storage unreachable")
        return FakeShopeeApi.get(fake_api, url, **kwargs)

    fake_api.get = broken_get

    report = await ShopeeMediaUploader(shopee_client).upload_images(URLS[:2], "AT-1", 123)

    assert report.image_ids == ["IMG-A"]
    assert "storage unreachable" in report.outcomes[1].error


@pytest.mark.anyio
async def test_response_without_image_id_counts_as_failure(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    serve_images(fake_api, URLS[:1])
    fake_api.routes[UPLOAD_IMAGE_PATH] = {"error": "", "response": {}}

    report = await ShopeeMediaUploader(shopee_client).upload_images(URLS[:1], "AT-1", 123)

    assert report.image_ids == []
    assert report.outcomes[0].error == "No image_id in upload response"


@pytest.mark.anyio
async def test_upload_is_signed_multipart(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    serve_images(fake_api, URLS[:1])
    fake_api.routes[UPLOAD_IMAGE_PATH] = {"image_info": {"image_id": "IMG-A"}}

    await ShopeeMediaUploader(shopee_client).upload_images(URLS[:1], "AT-1", 123)

    method, _, kwargs = fake_api.calls_to(UPLOAD_IMAGE_PATH)[0]
    assert method == "POST"
    filename, content, content_type = kwargs["files"]["image"]
    assert content == b"\x89PNG-bytes"
    assert content_type == "image/png"
    assert kwargs["params"]["access_token"] == "AT-1"
    assert kwargs["params"]["shop_id"] == 123
    assert kwargs["params"]["sign"] == sign(
        UPLOAD_IMAGE_PATH, TIMESTAMP, "1001141", "test_partner_key", "AT-1", 123
    )


@pytest.mark.anyio
async def test_malformed_upload_response_is_skipped(
    shopee_client: ShopeeClient, fake_api: FakeShopeeApi
) -> None:
    serve_images(fake_api, URLS)
    fake_api.routes[UPLOAD_IMAGE_PATH] = [
        {"image_info": None},
        {"error": "", "response": "unexpected"},
        {"image_info": {"image_id": "IMG-C"}},
    ]

    report = await ShopeeMediaUploader(shopee_client).upload_images(URLS, "AT-1", 123)

    assert report.image_ids == ["IMG-C"]
    assert report.outcomes[0].error == "No image_id in upload response"
    assert report.outcomes[1].error == "No image_id in upload response"
