"""
Database models for the catalog, connected marketplace shops and listing links.
"""

import datetime
import enum
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class MediaType(str, enum.Enum):
    """Kind of media attached to a product."""

    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class SyncStatus(str, enum.Enum):
    """Sync state of a product listed on a marketplace."""

    SYNCED = "SYNCED"
    PENDING = "PENDING"
    FAILED = "FAILED"


class Product(Base):
    """
    A product of the local catalog.

    Attributes:
        id (str): Local identifier.
        sku (str): Stock keeping unit.
        name (str): Product name, used as the listing title.
        description (str | None): Long description.
        price (Decimal): Unit price.
        stock (int): Units available.
        brand (str | None): Brand name.
        weight (Decimal | None): Weight in kilograms.
        width, height, length (Decimal | None): Package dimensions in centimeters.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    sku: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3), nullable=True)
    width: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    height: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    length: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    media: Mapped[List["ProductMedia"]] = relationship(
        back_populates="product",
        order_by="ProductMedia.order",
        cascade="all, delete-orphan",
    )
    shopee_products: Mapped[List["ShopeeProduct"]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )


class ProductMedia(Base):
    """An image or video hosted by the media storage service."""

    __tablename__ = "product_media"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), index=True)
    url: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[MediaType] = mapped_column(Enum(MediaType), default=MediaType.IMAGE)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[Product] = relationship(back_populates="media")


class ShopeeShop(Base):
    """
    A Shopee shop connected through OAuth.

    Attributes:
        shop_id (int): Shop identifier assigned by Shopee.
        user_id (str | None): Local user owning the connection.
        access_token (str): Current access token.
        refresh_token (str): Token used to obtain a new access token.
        expire_in (int): Lifetime of the access token in seconds.
        expire_at (datetime): Absolute expiry of the access token (UTC).
    """

    __tablename__ = "shopee_shops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String, index=True, nullable=True)
    shop_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    access_token: Mapped[str] = mapped_column(String, nullable=False)
    refresh_token: Mapped[str] = mapped_column(String, nullable=False)
    expire_in: Mapped[int] = mapped_column(Integer, nullable=False)
    expire_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    products: Mapped[List["ShopeeProduct"]] = relationship(
        back_populates="shopee_shop", cascade="all, delete-orphan"
    )


class ShopeeProduct(Base):
    """Link between a local product and the item created for it on Shopee."""

    __tablename__ = "shopee_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), index=True)
    shopee_shop_id: Mapped[int] = mapped_column(ForeignKey("shopee_shops.shop_id"), index=True)
    shopee_item_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[SyncStatus] = mapped_column(Enum(SyncStatus), default=SyncStatus.SYNCED)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    product: Mapped[Product] = relationship(back_populates="shopee_products")
    shopee_shop: Mapped[ShopeeShop] = relationship(back_populates="products")
