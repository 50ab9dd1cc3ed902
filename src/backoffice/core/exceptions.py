"""Errors raised by the marketplace integration."""


class ConfigurationError(RuntimeError):
    """A required credential or setting is missing or malformed."""


class MarketplaceApiError(Exception):
    """
    The marketplace answered with a structured error.

    Attributes:
        code (str): Error code reported by the marketplace (e.g. ``error_auth``).
        message (str): Human readable message reported by the marketplace.
        request_id (str | None): Marketplace request id, when present.
        marketplace (str): Display name of the marketplace.
    """

    def __init__(
        self,
        code: str,
        message: str = "",
        request_id: str | None = None,
        marketplace: str = "Shopee",
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        self.marketplace = marketplace
        super().__init__(f"{marketplace} API Error: {code} - {message}")


class NotConnectedError(Exception):
    """No shop (or no usable access token) is connected for the marketplace."""


class ExportValidationError(ValueError):
    """Export options rejected by an adapter, keyed by field name."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))
