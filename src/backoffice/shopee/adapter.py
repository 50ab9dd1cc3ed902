"""Shopee implementation of the marketplace export contract."""

import logging
import math
from typing import Any, Callable

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backoffice.core.exceptions import (
    ExportValidationError,
    MarketplaceApiError,
    NotConnectedError,
)
from backoffice.core.models import Product, ShopeeProduct, SyncStatus
from backoffice.core.settings import MarketplaceType
from backoffice.marketplaces.types import (
    ExportFormField,
    FieldValidation,
    MarketplaceAdapter,
    ProductData,
    ValidationResult,
)
from backoffice.shopee.client import ADD_ITEM_PATH, ShopeeClient
from backoffice.shopee.media import ShopeeMediaUploader
from backoffice.shopee.token_store import TokenStore
from backoffice.shopee.types import (
    ImageUploadOutcome,
    LogisticOption,
    ShopeeExportOptions,
    ShopeeExportResult,
)

logger = logging.getLogger("shopee.adapter")

DEFAULT_WEIGHT = 0.1
DEFAULT_DIMENSION = 10
NO_BRAND_ID = 0
NO_BRAND_NAME = "No Brand"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _first_set(*values: float | None) -> float | None:
    # zero counts as "not set", like an empty form field
    for value in values:
        if value:
            return value
    return None


def _parse_options(options: ShopeeExportOptions | dict[str, Any]) -> ShopeeExportOptions:
    if isinstance(options, ShopeeExportOptions):
        return options
    try:
        return ShopeeExportOptions.model_validate(options)
    except ValidationError as e:
        raise ExportValidationError(
            {
                ".".join(str(part) for part in err["loc"]) or "options": err["msg"]
                for err in e.errors()
            }
        ) from e


def _rule_errors(has_category: bool, channel_count: int, any_enabled: bool) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not has_category:
        errors["categoryId"] = "Valid category is required"
    if not channel_count:
        errors["logistics"] = "At least one logistics channel is required"
    elif not any_enabled:
        errors["logistics"] = "At least one logistics channel must be enabled"
    return errors


def _raw_rule_inputs(options: dict[str, Any]) -> tuple[bool, int, bool]:
    """Rule inputs read from options that did not parse as a whole."""
    if not isinstance(options, dict):
        return False, 0, False
    category_id = options.get("categoryId", options.get("category_id", 0))
    try:
        has_category = int(category_id) > 0
    except (TypeError, ValueError):
        has_category = False

    logistics = options.get("logistics") or []
    if not isinstance(logistics, list):
        logistics = []
    any_enabled = False
    for channel in logistics:
        try:
            any_enabled = any_enabled or LogisticOption.model_validate(channel).enabled
        except ValidationError:
            continue
    return has_category, len(logistics), any_enabled


def build_logistic_info(logistics: list[LogisticOption]) -> list[dict[str, Any]]:
    """Enabled channels in the shape ``add_item`` expects."""
    info = []
    for channel in logistics:
        if not channel.enabled:
            continue
        entry: dict[str, Any] = {
            "logistic_id": channel.logistic_id,
            "logistic_name": channel.logistic_name or "",
            "enabled": True,
            "is_free": channel.is_free or False,
        }
        if channel.shipping_fee is not None:
            entry["shipping_fee"] = channel.shipping_fee
        if channel.size_id is not None:
            entry["size_id"] = channel.size_id
        info.append(entry)
    return info


def build_add_item_payload(
    product: ProductData, options: ShopeeExportOptions, image_ids: list[str]
) -> dict[str, Any]:
    """
    Build the ``add_item`` request body.

    Weight and package dimensions come from the options first, then from the
    product, then from fixed defaults.
    """
    dimensions = options.dimensions
    length = _first_set(dimensions.length if dimensions else None, product.length)
    width = _first_set(dimensions.width if dimensions else None, product.width)
    height = _first_set(dimensions.height if dimensions else None, product.height)

    return {
        "item_name": product.name,
        "description": product.description or product.name,
        "original_price": product.price,
        "seller_stock": [{"stock": product.stock}],
        "weight": _first_set(options.weight, product.weight) or DEFAULT_WEIGHT,
        "item_status": "NORMAL",
        "image": {"image_id_list": image_ids},
        "brand": {
            "brand_id": NO_BRAND_ID,
            "original_brand_name": product.brand or NO_BRAND_NAME,
        },
        "dimension": {
            "package_length": _round_half_up(length or DEFAULT_DIMENSION),
            "package_width": _round_half_up(width or DEFAULT_DIMENSION),
            "package_height": _round_half_up(height or DEFAULT_DIMENSION),
        },
        "category_id": options.category_id,
        "attribute_list": [a.model_dump(exclude_none=True) for a in options.attributes],
        "logistic_info": build_logistic_info(options.logistics),
    }


class ShopeeAdapter(MarketplaceAdapter[ShopeeExportOptions, ShopeeExportResult]):
    """
    Exports catalog products as Shopee listings.

    Args:
        client (ShopeeClient): Client of the partner application.
        token_store (TokenStore): Connected shops.
        session_factory (Callable[[], Session]): Sessions for product and link records.
        uploader (ShopeeMediaUploader | None): Image pipeline, built from the client if omitted.
    """

    type = MarketplaceType.SHOPEE
    name = "Shopee"

    def __init__(
        self,
        client: ShopeeClient,
        token_store: TokenStore,
        session_factory: Callable[[], Session],
        uploader: ShopeeMediaUploader | None = None,
    ) -> None:
        self.client = client
        self.token_store = token_store
        self.session_factory = session_factory
        self.uploader = uploader or ShopeeMediaUploader(client)

    async def can_export(self, user_id: str | None = None) -> bool:
        shop = self.token_store.find_connected(user_id)
        return shop is not None and shop.connected

    async def get_export_form_fields(self) -> list[ExportFormField]:
        return [
            ExportFormField(
                name="categoryId",
                type="autocomplete",
                label="Category",
                required=True,
                description="Shopee category ID for this product",
                options_url="/integrations/shopee/categories",
                validation=FieldValidation(min=1, message="Valid category is required"),
            ),
            ExportFormField(
                name="attributes",
                type="multiselect",
                label="Attributes",
                required=False,
                description="Attributes of the selected category",
                options_url="/integrations/shopee/categories/{categoryId}/attributes",
                dependencies=["categoryId"],
            ),
            ExportFormField(
                name="logistics",
                type="multiselect",
                label="Logistics channels",
                required=True,
                description="At least one channel must be enabled",
                options_url="/integrations/shopee/logistics",
            ),
            ExportFormField(
                name="weight",
                type="number",
                label="Weight (kg)",
                placeholder=str(DEFAULT_WEIGHT),
                validation=FieldValidation(min=0),
            ),
            *[
                ExportFormField(
                    name=f"dimensions.{axis}",
                    type="number",
                    label=f"Package {axis} (cm)",
                    placeholder=str(DEFAULT_DIMENSION),
                    validation=FieldValidation(min=1),
                )
                for axis in ("length", "width", "height")
            ],
        ]

    def validate_export_options(
        self, options: ShopeeExportOptions | dict[str, Any]
    ) -> ValidationResult:
        try:
            parsed = _parse_options(options)
        except ExportValidationError as e:
            errors = _rule_errors(*_raw_rule_inputs(options))
            errors.update(e.errors)
            return ValidationResult(valid=False, errors=errors)

        errors = _rule_errors(
            parsed.category_id > 0,
            len(parsed.logistics),
            any(channel.enabled for channel in parsed.logistics),
        )
        return ValidationResult(valid=not errors, errors=errors or None)

    def _load_product(self, product_id: str) -> ProductData | None:
        with self.session_factory() as db:
            product = db.scalars(
                select(Product).options(selectinload(Product.media)).filter_by(id=product_id)
            ).first()
            return ProductData.from_product(product) if product else None

    def _save_link(self, product_id: str, shop_id: int, item_id: str) -> None:
        with self.session_factory() as db:
            db.add(
                ShopeeProduct(
                    product_id=product_id,
                    shopee_shop_id=shop_id,
                    shopee_item_id=item_id,
                    status=SyncStatus.SYNCED,
                )
            )
            db.commit()

    async def export(
        self,
        product_id: str,
        options: ShopeeExportOptions | dict[str, Any],
        user_id: str | None = None,
    ) -> ShopeeExportResult:
        uploads: list[ImageUploadOutcome] | None = None
        try:
            parsed = _parse_options(options)

            product = self._load_product(product_id)
            if product is None:
                raise LookupError("Product not found")

            shop = self.token_store.find_connected(user_id)
            if shop is None:
                raise NotConnectedError("No Shopee shop connected")

            report = await self.uploader.upload_images(
                product.images, shop.access_token, shop.shop_id
            )
            uploads = report.outcomes
            if not report.image_ids:
                raise RuntimeError("No images were uploaded successfully")

            logger.info("Creating product on Shopee: %s", product.name)
            response = await self.client.signed_request(
                ADD_ITEM_PATH,
                shop.access_token,
                shop.shop_id,
                body=build_add_item_payload(product, parsed, report.image_ids),
            )
            item_id = (response.get("response") or {}).get("item_id")
            if item_id is None:
                raise MarketplaceApiError("invalid_response", "No item_id in add_item response")
            item_id = str(item_id)

            self._save_link(product.id, shop.shop_id, item_id)
            logger.info("Product %s exported to Shopee as item %s", product.id, item_id)

            return ShopeeExportResult(
                success=True,
                marketplace_item_id=item_id,
                message="Product exported successfully to Shopee",
                image_uploads=uploads,
            )
        except Exception as e:
            logger.error("Export of product %s failed: %s", product_id, str(e))
            return ShopeeExportResult(
                success=False, errors=[str(e) or "Unknown error occurred"], image_uploads=uploads
            )
