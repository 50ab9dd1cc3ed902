"""
Base types and interfaces of the marketplace export system.

Every marketplace plugs into the export pipeline by implementing
``MarketplaceAdapter``; the orchestrator and the HTTP layer only talk to this
interface.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backoffice.core.models import MediaType, Product
from backoffice.core.settings import MarketplaceType

FormFieldType = Literal["text", "number", "select", "multiselect", "autocomplete", "checkbox"]


class CamelModel(BaseModel):
    """Model exchanged with the dashboard: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldOption(CamelModel):
    """One selectable value of a form field."""

    value: str | int
    label: str
    data: Any = None


class FieldValidation(CamelModel):
    """Constraints the dashboard applies before submitting a field."""

    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    message: str | None = None


class ExportFormField(CamelModel):
    """
    Description of one marketplace-specific input needed for an export.

    ``options_url`` points at an API path returning the valid option set when
    the options come from the marketplace instead of being static.
    """

    name: str
    type: FormFieldType
    label: str
    required: bool = False
    placeholder: str | None = None
    description: str | None = None
    default_value: Any = None
    options: list[FieldOption] | None = None
    options_url: str | None = None
    dependencies: list[str] | None = None
    validation: FieldValidation | None = None


class ValidationResult(CamelModel):
    """Outcome of validating export options; ``errors`` maps field name to message."""

    valid: bool
    errors: dict[str, str] | None = None


class ExportResult(CamelModel):
    """Outcome of one export attempt."""

    success: bool
    marketplace_item_id: str | None = None
    message: str | None = None
    errors: list[str] | None = None

    @classmethod
    def failure(cls, *errors: str) -> "ExportResult":
        return cls(success=False, errors=list(errors))


class ProductData(BaseModel):
    """Product as seen by the adapters: plain numbers and ordered image URLs."""

    id: str
    sku: str
    name: str
    description: str | None = None
    price: float
    stock: int
    images: list[str] = Field(default_factory=list)
    brand: str | None = None
    weight: float | None = None
    width: float | None = None
    height: float | None = None
    length: float | None = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductData":
        """Build from a Product row; media must already be ordered. Videos are dropped."""

        def _number(value: Decimal | None) -> float | None:
            return float(value) if value is not None else None

        return cls(
            id=product.id,
            sku=product.sku,
            name=product.name,
            description=product.description,
            price=float(product.price),
            stock=product.stock,
            images=[m.url for m in product.media if m.type == MediaType.IMAGE],
            brand=product.brand,
            weight=_number(product.weight),
            width=_number(product.width),
            height=_number(product.height),
            length=_number(product.length),
        )


OptionsT = TypeVar("OptionsT", bound=BaseModel)
ResultT = TypeVar("ResultT", bound=ExportResult)


class MarketplaceAdapter(ABC, Generic[OptionsT, ResultT]):
    """
    Base class all marketplace adapters must implement.

    ``user_id`` arguments scope the connected shop to its owner; when omitted
    any connected shop of the marketplace is used.
    """

    type: MarketplaceType
    name: str

    @abstractmethod
    async def can_export(self, user_id: str | None = None) -> bool:
        """Whether a connected shop with a usable access token exists."""

    @abstractmethod
    async def get_export_form_fields(self) -> list[ExportFormField]:
        """Fields the caller must fill in to export a product."""

    @abstractmethod
    def validate_export_options(self, options: OptionsT | dict[str, Any]) -> ValidationResult:
        """Validate options without side effects, reporting every invalid field."""

    @abstractmethod
    async def export(
        self,
        product_id: str,
        options: OptionsT | dict[str, Any],
        user_id: str | None = None,
    ) -> ResultT:
        """Export a product. Never raises: failures come back as a result."""
