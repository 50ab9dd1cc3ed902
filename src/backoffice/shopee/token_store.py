"""Persistence of Shopee OAuth tokens, keyed by shop id."""

import datetime
import logging
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.core.models import ShopeeShop
from backoffice.shopee.types import ShopConnection, TokenResponse

logger = logging.getLogger("shopee.tokens")


def _utcnow() -> datetime.datetime:
    # naive UTC, the way the DateTime columns store it
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)


class TokenStore:
    """
    Reads and writes ShopeeShop rows.

    Every method opens its own session from ``session_factory`` and returns
    detached ``ShopConnection`` snapshots.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        now: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._now = now

    def save(
        self,
        shop_id: int,
        token: TokenResponse,
        user_id: str | None = None,
        shop_name: str | None = None,
    ) -> ShopConnection:
        """
        Insert or update the connection of a shop with a fresh token pair.

        The owner and shop name of an existing row are kept unless new values
        are given.
        """
        expire_at = self._now() + datetime.timedelta(seconds=token.expires_in_seconds)
        with self._session_factory() as db:
            shop = db.scalars(select(ShopeeShop).filter_by(shop_id=shop_id)).first()
            if shop is None:
                logger.info("Creating Shopee connection for shop %s", shop_id)
                shop = ShopeeShop(shop_id=shop_id)
                db.add(shop)
            else:
                logger.info("Updating Shopee connection for shop %s", shop_id)
            shop.access_token = token.access_token
            shop.refresh_token = token.refresh_token
            shop.expire_in = token.expires_in_seconds
            shop.expire_at = expire_at
            if user_id is not None:
                shop.user_id = user_id
            if shop_name is not None:
                shop.shop_name = shop_name
            db.commit()
            db.refresh(shop)
            return ShopConnection.model_validate(shop)

    def get(self, shop_id: int) -> ShopConnection | None:
        with self._session_factory() as db:
            shop = db.scalars(select(ShopeeShop).filter_by(shop_id=shop_id)).first()
            return ShopConnection.model_validate(shop) if shop else None

    def find_connected(self, user_id: str | None = None) -> ShopConnection | None:
        """Most recent shop with a non-empty access token, optionally for one user."""
        query = select(ShopeeShop).where(ShopeeShop.access_token != "")
        if user_id is not None:
            query = query.where(ShopeeShop.user_id == user_id)
        query = query.order_by(ShopeeShop.created_at.desc(), ShopeeShop.id.desc())
        with self._session_factory() as db:
            shop = db.scalars(query).first()
            return ShopConnection.model_validate(shop) if shop else None

    def delete_for_user(self, user_id: str) -> int:
        """Delete every connection owned by a user and return how many were removed."""
        with self._session_factory() as db:
            shops = db.scalars(select(ShopeeShop).filter_by(user_id=user_id)).all()
            for shop in shops:
                db.delete(shop)
            db.commit()
            logger.info("Disconnected %d Shopee shop(s) for user %s", len(shops), user_id)
            return len(shops)
