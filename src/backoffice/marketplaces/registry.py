"""
Lookup of marketplace adapters by marketplace type.

The registry is built once at startup from the implemented adapters and is
read-only afterwards; it is handed to whoever needs it instead of living in a
module global.
"""

import logging
from types import MappingProxyType
from typing import Iterable, TypeGuard

from backoffice.core.settings import MarketplaceType
from backoffice.marketplaces.types import MarketplaceAdapter

logger = logging.getLogger("marketplaces")


class MarketplaceRegistry:
    """Read-only mapping from marketplace type to its adapter."""

    def __init__(self, adapters: Iterable[MarketplaceAdapter]) -> None:
        table: dict[MarketplaceType, MarketplaceAdapter] = {}
        for adapter in adapters:
            # a later adapter for the same type replaces the earlier one
            table[MarketplaceType(adapter.type)] = adapter
            logger.info("Registered marketplace adapter: %s", adapter.name)
        self._adapters = MappingProxyType(table)

    def get(self, marketplace: str) -> MarketplaceAdapter | None:
        """Adapter registered for ``marketplace``, or None if unknown or not implemented."""
        try:
            return self._adapters.get(MarketplaceType(marketplace))
        except ValueError:
            return None

    def get_all(self) -> list[MarketplaceAdapter]:
        return list(self._adapters.values())

    def is_supported(self, marketplace: str) -> TypeGuard[MarketplaceType]:
        return self.get(marketplace) is not None

    def __contains__(self, marketplace: object) -> bool:
        return isinstance(marketplace, str) and self.is_supported(marketplace)
