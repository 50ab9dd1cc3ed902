"""create_catalog_and_shopee_tables

Revision ID: 3f1c2b7d9e40
Revises:
Create Date: 2025-11-03 14:12:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2b7d9e40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

media_type = sa.Enum("IMAGE", "VIDEO", name="mediatype")
sync_status = sa.Enum("SYNCED", "PENDING", "FAILED", name="syncstatus")


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("sku", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("weight", sa.Numeric(10, 3), nullable=True),
        sa.Column("width", sa.Numeric(10, 2), nullable=True),
        sa.Column("height", sa.Numeric(10, 2), nullable=True),
        sa.Column("length", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "product_media",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("product_id", sa.String(32), sa.ForeignKey("products.id"), index=True),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("type", media_type),
        sa.Column("order", sa.Integer(), nullable=False),
    )
    op.create_table(
        "shopee_shops",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shop_id", sa.BigInteger(), nullable=False, unique=True, index=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("shop_name", sa.String(), nullable=True),
        sa.Column("access_token", sa.String(), nullable=False),
        sa.Column("refresh_token", sa.String(), nullable=False),
        sa.Column("expire_in", sa.Integer(), nullable=False),
        sa.Column("expire_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "shopee_products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("product_id", sa.String(32), sa.ForeignKey("products.id"), index=True),
        sa.Column(
            "shopee_shop_id", sa.BigInteger(), sa.ForeignKey("shopee_shops.shop_id"), index=True
        ),
        sa.Column("shopee_item_id", sa.String(), nullable=False),
        sa.Column("status", sync_status),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("shopee_products")
    op.drop_table("shopee_shops")
    op.drop_table("product_media")
    op.drop_table("products")
