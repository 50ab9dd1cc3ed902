"""
Shopee-specific types for authentication and export operations.
"""

import datetime

from pydantic import BaseModel, ConfigDict, Field

from backoffice.core.exceptions import MarketplaceApiError
from backoffice.marketplaces.types import CamelModel, ExportResult


class TokenResponse(BaseModel):
    """Token pair returned by the code exchange and refresh endpoints."""

    access_token: str
    refresh_token: str
    expires_in_seconds: int
    shop_id: int | None = None

    @classmethod
    def from_api(cls, data: dict, shop_id: int | None = None) -> "TokenResponse":
        """
        Raises:
            MarketplaceApiError: If the body lacks the token pair or its lifetime.
        """
        try:
            return cls(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_in_seconds=int(data["expire_in"]),
                shop_id=data.get("shop_id") or shop_id,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MarketplaceApiError(
                "invalid_response",
                f"Incomplete token response: {e}",
                request_id=data.get("request_id") if isinstance(data, dict) else None,
            ) from e


class ShopConnection(BaseModel):
    """Snapshot of a connected shop as stored in the database."""

    model_config = ConfigDict(from_attributes=True)

    shop_id: int
    user_id: str | None = None
    shop_name: str | None = None
    access_token: str
    refresh_token: str
    expire_in: int
    expire_at: datetime.datetime
    created_at: datetime.datetime | None = None

    @property
    def connected(self) -> bool:
        return bool(self.access_token)


class AttributeValue(BaseModel):
    value_id: int | None = None
    original_value_name: str | None = None
    value_unit: str | None = None


class AttributeAssignment(BaseModel):
    attribute_id: int
    attribute_value_list: list[AttributeValue] = Field(default_factory=list)


class LogisticOption(BaseModel):
    """A logistics channel selection for the listing."""

    logistic_id: int
    logistic_name: str | None = None
    enabled: bool = False
    is_free: bool | None = None
    size_id: int | None = None
    shipping_fee: float | None = None


class PackageDimensions(BaseModel):
    length: float
    width: float
    height: float


class ShopeeExportOptions(CamelModel):
    """Options needed to create a Shopee listing."""

    category_id: int = 0
    attributes: list[AttributeAssignment] = Field(default_factory=list)
    logistics: list[LogisticOption] = Field(default_factory=list)
    dimensions: PackageDimensions | None = None
    weight: float | None = None


class ImageUploadOutcome(CamelModel):
    """What happened to one image of an export."""

    url: str
    image_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.image_id is not None


class ShopeeExportResult(ExportResult):
    """Export result carrying the per-image upload outcomes."""

    image_uploads: list[ImageUploadOutcome] | None = None
