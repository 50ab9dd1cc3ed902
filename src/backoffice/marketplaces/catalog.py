"""Catalog views per marketplace: which products are listed and which are not."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backoffice.core.models import Product
from backoffice.core.serialization import to_wire
from backoffice.core.settings import MarketplaceType


def product_summary(product: Product, with_links: bool = False) -> dict[str, Any]:
    summary = {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "price": product.price,
        "stock": product.stock,
        "brand": product.brand,
        "createdAt": product.created_at,
        "updatedAt": product.updated_at,
    }
    if with_links:
        summary["shopeeProducts"] = [
            {
                "shopeeShopId": link.shopee_shop_id,
                "shopeeItemId": link.shopee_item_id,
                "status": link.status.value,
                "createdAt": link.created_at,
            }
            for link in product.shopee_products
        ]
    return to_wire(summary)


def get_products_for_marketplace(db: Session, marketplace: str) -> dict[str, list[dict[str, Any]]]:
    """
    Split the catalog into products already exported to ``marketplace`` and
    products still available for export.

    Only Shopee keeps link records; for other marketplaces every product is
    available.
    """
    query = select(Product).order_by(Product.created_at.desc())
    if marketplace != MarketplaceType.SHOPEE.value:
        return {
            "exported": [],
            "available": [product_summary(p) for p in db.scalars(query).all()],
        }

    products = db.scalars(query.options(selectinload(Product.shopee_products))).all()
    return {
        "exported": [product_summary(p, with_links=True) for p in products if p.shopee_products],
        "available": [product_summary(p) for p in products if not p.shopee_products],
    }
