"""Moves product images from the media storage into the Shopee media space."""

import functools
import logging

import anyio
import requests

from backoffice.core.exceptions import MarketplaceApiError
from backoffice.shopee.client import ShopeeClient
from backoffice.shopee.types import ImageUploadOutcome

logger = logging.getLogger("shopee.media")


def _image_id(data: object) -> object | None:
    # image_info may sit at the top level or inside "response"
    if not isinstance(data, dict):
        return None
    body = data.get("response")
    if not body or not isinstance(body, dict):
        body = data
    info = body.get("image_info")
    if not isinstance(info, dict):
        return None
    return info.get("image_id")


class ImageUploadReport:
    """Per-image outcomes of one upload batch, in input order."""

    def __init__(self, outcomes: list[ImageUploadOutcome]) -> None:
        self.outcomes = outcomes

    @property
    def image_ids(self) -> list[str]:
        """Ids of the images that made it, in the order they were uploaded."""
        return [o.image_id for o in self.outcomes if o.image_id is not None]

    @property
    def failures(self) -> list[ImageUploadOutcome]:
        return [o for o in self.outcomes if not o.ok]


class ShopeeMediaUploader:
    """
    Uploads images one at a time.

    A failing image is recorded and skipped; the batch only fails as a whole
    if the caller decides that an empty ``image_ids`` list is fatal.
    """

    def __init__(self, client: ShopeeClient, http: requests.Session | None = None) -> None:
        self.client = client
        self.http = http or client.http

    def _fetch(self, url: str) -> tuple[bytes, str]:
        response = self.http.get(url, timeout=self.client.settings.request_timeout)
        if not response.ok:
            raise requests.HTTPError(
                f"HTTP {response.status_code}: {response.reason}", response=response
            )
        return response.content, response.headers.get("content-type") or "image/jpeg"

    async def upload_image(self, url: str, access_token: str, shop_id: int) -> ImageUploadOutcome:
        try:
            logger.info("Fetching image from: %s", url)
            content, content_type = await anyio.to_thread.run_sync(
                functools.partial(self._fetch, url)
            )
            data = await self.client.upload_image(
                access_token, shop_id, content, "image.jpg", content_type
            )
        except (requests.RequestException, MarketplaceApiError) as e:
            logger.error("Failed to upload image %s: %s", url, str(e))
            return ImageUploadOutcome(url=url, error=str(e))

        image_id = _image_id(data)
        if not image_id:
            logger.error("Upload succeeded but no image_id in response: %s", data)
            return ImageUploadOutcome(url=url, error="No image_id in upload response")

        logger.info("Image uploaded successfully. ID: %s", image_id)
        return ImageUploadOutcome(url=url, image_id=str(image_id))

    async def upload_images(
        self, urls: list[str], access_token: str, shop_id: int
    ) -> ImageUploadReport:
        """
        Upload every URL sequentially.

        Args:
            urls (list[str]): Image URLs, in listing order.
            access_token (str): Access token of the shop.
            shop_id (int): Shop the images are uploaded for.

        Returns:
            ImageUploadReport: One outcome per URL.
        """
        logger.info("Starting image upload. Total images: %d", len(urls))
        outcomes = []
        for url in urls:
            outcomes.append(await self.upload_image(url, access_token, shop_id))
        report = ImageUploadReport(outcomes)
        logger.info(
            "Total images uploaded: %d (%d failed)", len(report.image_ids), len(report.failures)
        )
        return report
